from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

MAX_ERROR_MESSAGE_LEN = 1000


class CommandError(Exception):
    """A fetched command cannot be executed locally."""


class CommandKind:
    EXTEND = "extend"
    RETRACT = "retract"
    HOME = "home"
    MESSAGE = "message"       # UI-only hold, no hardware
    CANCEL = "cancel"         # drop the tracked payment, no hardware
    UNKNOWN = "unknown"

    KNOWN = (EXTEND, RETRACT, HOME, MESSAGE, CANCEL)

    @classmethod
    def parse(cls, raw: str) -> str:
        kind = (raw or "").strip().lower()
        return kind if kind in cls.KNOWN else cls.UNKNOWN


class AckStatus:
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Command:
    id: int
    kind: str
    name: str                          # as sent by the server
    duration_ms: Optional[int] = None
    message: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["Command"]:
        """Returns None when the server has no pending command."""
        name = payload.get("command") or ""
        if not name:
            return None
        duration = payload.get("duration_ms")
        return cls(
            id=int(payload.get("id", 0)),
            kind=CommandKind.parse(name),
            name=name,
            duration_ms=int(duration) if duration is not None else None,
            message=payload.get("message") or "",
        )

    def resolve_duration(self, default_seconds: float) -> float:
        """Command-supplied duration if strictly positive, else the device default."""
        if self.duration_ms is not None and self.duration_ms > 0:
            return self.duration_ms / 1000.0
        return default_seconds

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "command": self.name}
        if self.duration_ms is not None:
            d["duration_ms"] = self.duration_ms
        if self.message:
            d["message"] = self.message
        return d


@dataclass(frozen=True)
class AckResult:
    status: str
    error_message: str = ""

    @classmethod
    def success(cls) -> "AckResult":
        return cls(AckStatus.SUCCESS)

    @classmethod
    def failed(cls, err: Exception | str) -> "AckResult":
        return cls(AckStatus.FAILED, str(err)[:MAX_ERROR_MESSAGE_LEN])

    def to_dict(self) -> Dict[str, str]:
        return {"status": self.status, "error_message": self.error_message}
