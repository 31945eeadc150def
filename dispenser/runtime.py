# dispenser/runtime.py
from __future__ import annotations

import threading
from typing import Optional

from dispenser.command_poller import CommandPoller
from dispenser.device_client import DeviceApiClient
from system.actuator.actuator_control import ActuatorController
from system.clock import SYSTEM_CLOCK, Clock
from system.config import Config
from system.errors import ActuatorError
from system.gpio.gpio_control import acquire_output_lines
from system.log_utils import error, info

HOMING_DELAY_SEC = 1.0


class DispenserRuntime:
    """
    Owns every long-lived object of the process and wires them together.

    The actuator lock created here is the only one guarding movement; it is
    handed to the poller and used by trigger() and the startup homing task.
    """

    def __init__(self, config: Config, *, clock: Clock = SYSTEM_CLOCK,
                 line_factory=acquire_output_lines, session=None):
        self.config = config
        self.actuator_lock = threading.Lock()
        self.actuator = ActuatorController(
            config.actuator_config(), clock=clock, line_factory=line_factory
        )
        self.api_client = DeviceApiClient(config.api_url, config.api_key, session=session)
        self.poller = CommandPoller(
            self.api_client,
            self.actuator,
            self.actuator_lock,
            default_duration=self.actuator.movement_time,
            poll_interval=config.poll_interval,
            clock=clock,
        )
        self._homing_timer: Optional[threading.Timer] = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, *, homing_delay: float = HOMING_DELAY_SEC, start_poller: bool = True) -> None:
        if self._started:
            return
        self.actuator.initialize()

        # homing runs after startup so it never blocks request handling
        self._homing_timer = threading.Timer(homing_delay, self.run_homing)
        self._homing_timer.daemon = True
        self._homing_timer.start()

        if start_poller:
            self.poller.start()
        self._started = True
        info("[RUNTIME] started")

    def shutdown(self) -> None:
        if self._homing_timer is not None:
            self._homing_timer.cancel()
            self._homing_timer = None
        self.poller.stop()
        with self.actuator_lock:
            self.actuator.cleanup()
        self._started = False
        info("[RUNTIME] shut down")

    # ------------------------------------------------------------------
    # Lock-holding entry points
    # ------------------------------------------------------------------
    def run_homing(self) -> None:
        try:
            with self.actuator_lock:
                self.actuator.home()
        except ActuatorError as e:
            error(f"[RUNTIME] homing failed: {e}")

    def trigger(self) -> int:
        with self.actuator_lock:
            return self.actuator.trigger()

    def status(self) -> dict:
        cmd = self.poller.get_executing_command()
        return {
            "payment_id": self.poller.get_payment_id(),
            "executing_command": cmd.to_dict() if cmd else None,
            "actuator": self.actuator.state(),
        }
