class ConfigError(Exception):
    """Configuration file missing, unreadable or incomplete."""


class ActuatorError(Exception):
    """Actuator cannot perform the requested movement."""


class HardwareWriteError(ActuatorError):
    """A write to an output line failed mid-movement."""


class GPIOAcquireError(OSError):
    """An output line could not be resolved or requested."""
