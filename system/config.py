from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from system.actuator.actuator_control import ActuatorConfig
from system.errors import ConfigError
from system.gpio import pin_assignments as PINS
from system.log_utils import debug, info, warn

# --- Config Keys ---
KEY_API_KEY               = "BAENDAELI_API_KEY"
KEY_API_URL               = "BAENDAELI_URL"
KEY_DEFAULT_AMOUNT        = "DEFAULT_AMOUNT_CENTS"
KEY_SUCCESS_OVERLAY_MS    = "SUCCESS_OVERLAY_MILLIS"
KEY_ACTUATOR_ENABLED      = "ACTUATOR_ENABLED"
KEY_ACTUATOR_ENA_PIN      = "ACTUATOR_ENA_PIN"
KEY_ACTUATOR_IN1_PIN      = "ACTUATOR_IN1_PIN"
KEY_ACTUATOR_IN2_PIN      = "ACTUATOR_IN2_PIN"
KEY_ACTUATOR_MOVEMENT     = "ACTUATOR_MOVEMENT_SECONDS"
KEY_ACTUATOR_PAUSE        = "ACTUATOR_PAUSE_SECONDS"
KEY_ACTUATOR_COOLDOWN_MS  = "ACTUATOR_COOLDOWN_MILLIS"
KEY_ACTUATOR_HOMING       = "ACTUATOR_HOMING_SECONDS"
KEY_POLL_INTERVAL         = "POLL_INTERVAL_SECONDS"

# Zero or missing values fall back to these
DEFAULTS: Dict[str, Any] = {
    KEY_DEFAULT_AMOUNT: 2000,         # 20.00 CHF
    KEY_SUCCESS_OVERLAY_MS: 10000,
    KEY_ACTUATOR_ENA_PIN: PINS.ACTUATOR_ENA_PIN,
    KEY_ACTUATOR_IN1_PIN: PINS.ACTUATOR_IN1_PIN,
    KEY_ACTUATOR_IN2_PIN: PINS.ACTUATOR_IN2_PIN,
    KEY_ACTUATOR_MOVEMENT: 2,
    KEY_ACTUATOR_PAUSE: 2,
    KEY_ACTUATOR_HOMING: 10,
    KEY_POLL_INTERVAL: 7,
}

REQUIRED_KEYS = (KEY_API_KEY, KEY_API_URL)

DEFAULT_CONFIG_FILE = "config.yaml"


class Config:
    """
    YAML-backed configuration with typed accessors.
    Values are read once; zero/missing entries are replaced by DEFAULTS.
    """

    def __init__(self, data: Dict[str, Any] | None = None):
        self.data: Dict[str, Any] = dict(data or {})

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, filename: str = DEFAULT_CONFIG_FILE) -> "Config":
        path = Path(filename)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"failed to read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")

        cfg = cls(data)
        cfg.set_defaults()
        cfg.validate()
        info(f"[CONFIG] loaded {path}")
        return cfg

    def set_defaults(self) -> None:
        for key, value in DEFAULTS.items():
            if not self.data.get(key):
                self.data[key] = value
                debug(f"[CONFIG] {key} defaulted to {value}")

    def validate(self) -> None:
        missing = [k for k in REQUIRED_KEYS if not self.data.get(k)]
        if missing:
            raise ConfigError(f"configuration missing required fields: {', '.join(missing)}")

        if self.get_float(KEY_ACTUATOR_HOMING) <= self.get_float(KEY_ACTUATOR_MOVEMENT):
            warn(
                f"[CONFIG] {KEY_ACTUATOR_HOMING} should exceed {KEY_ACTUATOR_MOVEMENT}; "
                "homing may not reach the retracted limit"
            )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_str(self, key: str, default: str = "") -> str:
        value = self.data.get(key, default)
        return default if value is None else str(value)

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self.data.get(key, default))
        except (TypeError, ValueError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        try:
            return float(self.data.get(key, default))
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.data.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes", "on")
        return bool(value)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def api_url(self) -> str:
        return self.get_str(KEY_API_URL)

    @property
    def api_key(self) -> str:
        return self.get_str(KEY_API_KEY)

    @property
    def poll_interval(self) -> float:
        return self.get_float(KEY_POLL_INTERVAL, DEFAULTS[KEY_POLL_INTERVAL])

    def actuator_config(self) -> ActuatorConfig:
        return ActuatorConfig(
            enabled=self.get_bool(KEY_ACTUATOR_ENABLED),
            ena_pin=self.get_str(KEY_ACTUATOR_ENA_PIN, PINS.ACTUATOR_ENA_PIN),
            in1_pin=self.get_str(KEY_ACTUATOR_IN1_PIN, PINS.ACTUATOR_IN1_PIN),
            in2_pin=self.get_str(KEY_ACTUATOR_IN2_PIN, PINS.ACTUATOR_IN2_PIN),
            movement_time=self.get_float(KEY_ACTUATOR_MOVEMENT, DEFAULTS[KEY_ACTUATOR_MOVEMENT]),
            pause_time=self.get_float(KEY_ACTUATOR_PAUSE, DEFAULTS[KEY_ACTUATOR_PAUSE]),
            cooldown_ms=self.get_int(KEY_ACTUATOR_COOLDOWN_MS, 0),
            homing_time=self.get_float(KEY_ACTUATOR_HOMING, DEFAULTS[KEY_ACTUATOR_HOMING]),
        )
