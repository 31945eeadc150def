# ============================================================
# LINEAR ACTUATOR CONTROL
# ============================================================
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from system.clock import SYSTEM_CLOCK, Clock
from system.errors import ActuatorError, HardwareWriteError
from system.gpio import pin_assignments as PINS
from system.gpio.gpio_control import SimulatedOutputLines, acquire_output_lines
from system.gpio.iface import OutputLines
from system.log_utils import debug, error, info, warn

# Timing constants
SETTLING_DELAY = 0.1       # seconds after every stop, before any reversal
HOMING_DURATION = 10.0     # seconds; must exceed a full stroke from any position


@dataclass(frozen=True)
class ActuatorConfig:
    enabled: bool = False
    ena_pin: str = PINS.ACTUATOR_ENA_PIN
    in1_pin: str = PINS.ACTUATOR_IN1_PIN
    in2_pin: str = PINS.ACTUATOR_IN2_PIN
    movement_time: float = 2.0       # seconds, shared by extend and retract
    pause_time: float = 2.0          # seconds between extend and retract
    cooldown_ms: int = 0             # optional rest after a full cycle
    homing_time: float = HOMING_DURATION


class MotionPhase:
    UNKNOWN = "UNKNOWN"         # position not known (boot, after single moves, after faults)
    HOMING = "HOMING"           # retract sweep past the limit
    HOME = "HOME"               # fully retracted reference
    EXTENDING = "EXTENDING"
    SETTLING = "SETTLING"       # lines low, momentum dissipating
    PAUSED = "PAUSED"           # extended, waiting before retract
    RETRACTING = "RETRACTING"

    AT_REST = (UNKNOWN, HOME)


class ActuatorController:
    """
    Open-loop, timing-based control of a linear actuator behind an H-bridge.

    Pins:
      - ENA  driver enable, HIGH while initialized
      - IN1  HIGH = extend
      - IN2  HIGH = retract

    Safety:
      - Never drives IN1 and IN2 HIGH at the same time.
      - Every stop is followed by the settling delay before the next move.
      - Extend and retract of a full cycle always use the same movement_time.

    No internal locking: callers hold the shared actuator lock around every
    movement primitive.
    """

    def __init__(
        self,
        config: ActuatorConfig,
        *,
        clock: Clock = SYSTEM_CLOCK,
        line_factory: Callable[[Iterable[str]], OutputLines] = acquire_output_lines,
        settle_seconds: float = SETTLING_DELAY,
    ):
        self.enabled = config.enabled
        self.ena_pin = config.ena_pin
        self.in1_pin = config.in1_pin
        self.in2_pin = config.in2_pin
        self.movement_time = float(config.movement_time)
        self.pause_time = float(config.pause_time)
        self.cooldown = config.cooldown_ms / 1000.0
        self.homing_time = float(config.homing_time)
        self.settle = settle_seconds

        self.clock = clock
        self._line_factory = line_factory
        self.lines: Optional[OutputLines] = None

        self.is_home = False
        self.phase = MotionPhase.UNKNOWN

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def pins(self) -> tuple[str, str, str]:
        return (self.ena_pin, self.in1_pin, self.in2_pin)

    @property
    def simulated(self) -> bool:
        return self.lines is not None and self.lines.simulated

    def initialize(self) -> None:
        if not self.enabled:
            info("[ACTUATOR] control disabled; full cycles will use mock timing")
            return
        if self.lines is not None:
            debug("[ACTUATOR] already initialized; skipping")
            return

        info(
            f"[ACTUATOR] config: movement_time={self.movement_time}s (extend=retract), "
            f"pause={self.pause_time}s"
        )

        lines = self._line_factory(self.pins)
        try:
            lines.set_high(self.ena_pin)
        except HardwareWriteError as e:
            warn(f"[ACTUATOR] failed to set ENA high ({e}); using simulated outputs")
            lines.release()
            lines = SimulatedOutputLines(self.pins)
            lines.set_high(self.ena_pin)

        self.lines = lines
        mode = "simulated" if lines.simulated else "hardware"
        info(f"[ACTUATOR] initialized ({mode}); homing will run in background")

    def cleanup(self) -> None:
        if self.lines is None:
            debug("[ACTUATOR] cleanup skipped (not initialized)")
            return

        try:
            self.stop_motor()
            self.lines.set_low(self.ena_pin)
        except HardwareWriteError as e:
            warn(f"[ACTUATOR] cleanup write failed: {e}")
        finally:
            self.lines.release()
            self.lines = None
            self.is_home = False
            self.phase = MotionPhase.UNKNOWN
            info("[ACTUATOR] GPIO cleaned up")

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    def _require_ready(self) -> OutputLines:
        if not self.enabled:
            raise ActuatorError("actuator is disabled")
        if self.lines is None:
            raise ActuatorError("actuator not initialized")
        if self.phase not in MotionPhase.AT_REST:
            raise ActuatorError(f"actuator busy ({self.phase})")
        return self.lines

    @contextmanager
    def _movement(self, name: str):
        try:
            yield
        except BaseException as e:
            self.phase = MotionPhase.UNKNOWN
            self.is_home = False
            error(f"[ACTUATOR] {name} aborted: {e}")
            try:
                self._direction_lines_low()
            except HardwareWriteError as stop_err:
                warn(f"[ACTUATOR] could not stop motor after abort: {stop_err}")
            raise

    def _drive(self, phase: str, *, extend: bool) -> None:
        # the idle direction goes low first so both lines are never HIGH together
        if extend:
            self.lines.set_low(self.in2_pin)
            self.lines.set_high(self.in1_pin)
        else:
            self.lines.set_low(self.in1_pin)
            self.lines.set_high(self.in2_pin)
        self.phase = phase

    def _direction_lines_low(self) -> None:
        # both lines are attempted even if the first write fails
        failure = None
        for pin in (self.in1_pin, self.in2_pin):
            try:
                self.lines.set_low(pin)
            except HardwareWriteError as e:
                failure = failure or e
        if failure is not None:
            raise failure

    def stop_motor(self) -> None:
        """Both direction lines LOW, then wait out the settling delay."""
        if self.lines is None:
            return
        was_at_rest = self.phase in MotionPhase.AT_REST
        self._direction_lines_low()
        self.phase = MotionPhase.SETTLING
        try:
            self.clock.sleep(self.settle)
        finally:
            # a direct call from rest returns to rest; movements set their own next phase
            if was_at_rest:
                self.phase = MotionPhase.HOME if self.is_home else MotionPhase.UNKNOWN

    # ------------------------------------------------------------------
    # Movement primitives
    # ------------------------------------------------------------------

    def mock_cycle_seconds(self) -> float:
        return 2 * self.movement_time + self.pause_time + 2 * self.settle + self.cooldown

    def home(self) -> None:
        if not self.enabled:
            info("[ACTUATOR] skipping homing (disabled)")
            return
        self._require_ready()

        info(f"[ACTUATOR] retracting to home position for {self.homing_time}s")
        with self._movement("homing"):
            self._drive(MotionPhase.HOMING, extend=False)
            self.clock.sleep(self.homing_time)
            self.stop_motor()

        self.is_home = True
        self.phase = MotionPhase.HOME
        info("[ACTUATOR] homing complete; at home position")

    def trigger(self) -> int:
        """
        One full dispense cycle:
          EXTEND -> settle -> PAUSE -> RETRACT (same time) -> settle -> cooldown
        Returns elapsed wall-clock milliseconds.
        """
        if not self.enabled:
            mock = self.mock_cycle_seconds()
            info(f"[ACTUATOR] disabled; mock cycle of {mock:.3f}s")
            self.clock.sleep(mock)
            return int(round(mock * 1000))

        self._require_ready()
        if not self.is_home:
            warn("[ACTUATOR] not at home position before trigger")

        start = self.clock.monotonic()
        with self._movement("cycle"):
            info(f"[ACTUATOR] extending for exactly {self.movement_time}s")
            self._drive(MotionPhase.EXTENDING, extend=True)
            self.is_home = False
            self.clock.sleep(self.movement_time)
            self.stop_motor()

            self.phase = MotionPhase.PAUSED
            self.clock.sleep(self.pause_time)

            info(f"[ACTUATOR] retracting for exactly {self.movement_time}s (same as extend)")
            self._drive(MotionPhase.RETRACTING, extend=False)
            self.clock.sleep(self.movement_time)
            self.stop_motor()

        self.is_home = True
        self.phase = MotionPhase.HOME
        self.clock.sleep(self.cooldown)

        total_ms = self.clock.elapsed_ms(start)
        info(f"[ACTUATOR] cycle complete: movement={self.movement_time}s x2, total={total_ms}ms")
        return total_ms

    def extend(self, duration: float) -> None:
        self._single_move(duration, extend=True)

    def retract(self, duration: float) -> None:
        # Deliberately leaves is_home untouched: only a homing sweep or a full
        # cycle may claim the home reference.
        self._single_move(duration, extend=False)

    def _single_move(self, duration: float, *, extend: bool) -> None:
        name = "extend" if extend else "retract"
        if duration <= 0:
            raise ActuatorError(f"{name} duration must be positive, got {duration}")
        self._require_ready()

        info(f"[ACTUATOR] {name} for {duration}s")
        with self._movement(name):
            self._drive(MotionPhase.EXTENDING if extend else MotionPhase.RETRACTING, extend=extend)
            if extend:
                self.is_home = False
            self.clock.sleep(duration)
            self.stop_motor()

        self.phase = MotionPhase.HOME if self.is_home else MotionPhase.UNKNOWN

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def state(self) -> dict:
        return {
            "enabled": self.enabled,
            "simulated": self.simulated,
            "is_home": self.is_home,
            "phase": self.phase,
            "movement_time": self.movement_time,
            "pause_time": self.pause_time,
        }
