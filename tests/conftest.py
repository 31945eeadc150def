"""
Shared test fixtures.

Provides:
- FakeClock: virtual time, sleeps advance it instantly
- RecordingLines: output-lines double that records every write with its
  virtual timestamp and can be told to fail on a given write
- Controller / config factories wired to both
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Tuple

import pytest

from system.actuator.actuator_control import ActuatorConfig, ActuatorController
from system.clock import Clock
from system.config import Config
from system.errors import HardwareWriteError

ENA, IN1, IN2 = "GPIO25", "GPIO8", "GPIO7"

logging.getLogger("dispenser").setLevel(logging.WARNING)


class FakeClock(Clock):
    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []
        self._lock = threading.Lock()

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            if seconds > 0:
                self.now += seconds


class RecordingLines:
    simulated = False

    def __init__(self, clock: Clock, fail_on: Optional[Tuple[str, int]] = None):
        self.clock = clock
        self.fail_on = fail_on
        self.calls: List[Tuple[float, str, int]] = []
        self.states = {ENA: 0, IN1: 0, IN2: 0}
        self.released = False
        self.on_write: Optional[Callable[[str, int], None]] = None

    def _write(self, pin: str, value: int) -> None:
        if self.fail_on == (pin, value):
            raise HardwareWriteError(f"failed to set {pin} {'high' if value else 'low'}")
        self.calls.append((self.clock.monotonic(), pin, value))
        self.states[pin] = value
        if self.on_write:
            self.on_write(pin, value)

    def set_high(self, pin: str) -> None:
        self._write(pin, 1)

    def set_low(self, pin: str) -> None:
        self._write(pin, 0)

    def release(self) -> None:
        self.released = True

    def high_intervals(self, pin: str) -> List[Tuple[float, float]]:
        """[start, end) spans during which pin was HIGH."""
        spans, start = [], None
        for ts, name, value in self.calls:
            if name != pin:
                continue
            if value and start is None:
                start = ts
            elif not value and start is not None:
                spans.append((start, ts))
                start = None
        return spans


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def lines(clock):
    return RecordingLines(clock)


@pytest.fixture()
def make_controller(clock, lines):
    """Factory for an initialized controller on recording lines."""

    def _make(initialize: bool = True, **overrides) -> ActuatorController:
        params = dict(
            enabled=True,
            ena_pin=ENA,
            in1_pin=IN1,
            in2_pin=IN2,
            movement_time=2.0,
            pause_time=2.0,
            cooldown_ms=0,
            homing_time=10.0,
        )
        params.update(overrides)
        ctrl = ActuatorController(ActuatorConfig(**params), clock=clock, line_factory=lambda names: lines)
        if initialize:
            ctrl.initialize()
        return ctrl

    return _make


@pytest.fixture()
def config_data():
    return {
        "BAENDAELI_API_KEY": "test-key",
        "BAENDAELI_URL": "http://api.test",
        "DEFAULT_AMOUNT_CENTS": 1234,
        "SUCCESS_OVERLAY_MILLIS": 5555,
        "ACTUATOR_ENABLED": True,
        "ACTUATOR_ENA_PIN": ENA,
        "ACTUATOR_IN1_PIN": IN1,
        "ACTUATOR_IN2_PIN": IN2,
        "ACTUATOR_MOVEMENT_SECONDS": 2,
        "ACTUATOR_PAUSE_SECONDS": 2,
    }


@pytest.fixture()
def config(config_data):
    cfg = Config(config_data)
    cfg.set_defaults()
    cfg.validate()
    return cfg
