import glob
from typing import Dict, Iterable, List, Tuple

import gpiod
from gpiod.line import Direction, Value

from system.errors import GPIOAcquireError, HardwareWriteError
from system.gpio.iface import OutputLines
from system.gpio.pin_assignments import GPIO_CONSUMER
from system.log_utils import debug, info, verbose, warn


def find_line(pin_name: str) -> Tuple[str, int]:
    """Finds the gpiochip exposing a line with this name, returns (chip_path, offset)."""
    for chip_path in sorted(glob.glob("/dev/gpiochip*")):
        try:
            if not gpiod.is_gpiochip_device(chip_path):
                continue
            with gpiod.Chip(chip_path) as chip:
                return chip_path, chip.line_offset_from_id(pin_name)
        except (OSError, ValueError):
            continue
    raise GPIOAcquireError(f"failed to open pin {pin_name}")


class GPIOOutputLines:
    """
    Real output lines using libgpiod v2 request objects.
    Lines are requested once (inactive) and held until release().
    """

    simulated = False

    def __init__(self, pin_names: Iterable[str], consumer: str = GPIO_CONSUMER):
        self._lines: Dict[str, Tuple[object, int]] = {}
        self._requests: List[object] = []

        by_chip: Dict[str, Dict[str, int]] = {}
        for name in pin_names:
            chip_path, offset = find_line(name)
            by_chip.setdefault(chip_path, {})[name] = offset

        try:
            for chip_path, named in by_chip.items():
                request = gpiod.request_lines(
                    chip_path,
                    consumer=consumer,
                    config={
                        tuple(named.values()): gpiod.LineSettings(
                            direction=Direction.OUTPUT,
                            output_value=Value.INACTIVE,
                        )
                    },
                )
                self._requests.append(request)
                for name, offset in named.items():
                    self._lines[name] = (request, offset)
                debug(f"[GPIO] requested {sorted(named)} on {chip_path}")
        except OSError as e:
            self.release()
            raise GPIOAcquireError(f"failed to request lines: {e}") from e

    def _write(self, pin_name: str, value) -> None:
        level = "high" if value == Value.ACTIVE else "low"
        entry = self._lines.get(pin_name)
        if entry is None:
            raise HardwareWriteError(f"failed to set {pin_name} {level}: line not requested")
        request, offset = entry
        try:
            request.set_value(offset, value)
        except OSError as e:
            raise HardwareWriteError(f"failed to set {pin_name} {level}: {e}") from e

    def set_high(self, pin_name: str) -> None:
        self._write(pin_name, Value.ACTIVE)

    def set_low(self, pin_name: str) -> None:
        self._write(pin_name, Value.INACTIVE)

    def release(self) -> None:
        for request in self._requests:
            try:
                request.release()
            except OSError as e:
                warn(f"[GPIO] release failed: {e}")
        self._requests = []
        self._lines = {}


class SimulatedOutputLines:
    """Accepts the same calls as GPIOOutputLines and only records pin states."""

    simulated = True

    def __init__(self, pin_names: Iterable[str]):
        self.pin_names = tuple(pin_names)
        self.pin_states: Dict[str, int] = {name: 0 for name in self.pin_names}

    def set_high(self, pin_name: str) -> None:
        self.pin_states[pin_name] = 1
        verbose(f"[GPIO-SIM] {pin_name} -> HIGH")

    def set_low(self, pin_name: str) -> None:
        self.pin_states[pin_name] = 0
        verbose(f"[GPIO-SIM] {pin_name} -> LOW")

    def release(self) -> None:
        self.pin_states = {name: 0 for name in self.pin_names}


def acquire_output_lines(pin_names: Iterable[str]) -> OutputLines:
    """Requests real lines; any failure degrades to simulated lines."""
    pin_names = tuple(pin_names)
    try:
        lines = GPIOOutputLines(pin_names)
        info(f"[GPIO] hardware lines acquired: {', '.join(pin_names)}")
        return lines
    except Exception as e:
        warn(f"[GPIO] hardware unavailable ({e}); using simulated outputs")
        return SimulatedOutputLines(pin_names)
