from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def _omit_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class _Absent:
    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


# Marks a request field that must be left out of the payload entirely.
ABSENT = _Absent()


@dataclass(frozen=True, slots=True)
class ErrorEnvelope:
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}

    @staticmethod
    def is_envelope(data: Any) -> bool:
        return isinstance(data, dict) and set(data.keys()) == {"error"} and isinstance(data["error"], str)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ErrorEnvelope":
        return ErrorEnvelope(error=data["error"])


@dataclass(frozen=True, slots=True)
class WaitingEntry:
    who: str
    for_whom: str
    to_do_what: str

    def describe(self) -> str:
        return f"{self.who} is waiting for {self.for_whom} to {self.to_do_what}"

    def to_dict(self) -> dict[str, Any]:
        return {"who": self.who, "forWhom": self.for_whom, "toDoWhat": self.to_do_what}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "WaitingEntry":
        return WaitingEntry(
            who=data["who"],
            for_whom=data["forWhom"],
            to_do_what=data["toDoWhat"],
        )


@dataclass(frozen=True, slots=True)
class SandboxStatus:
    waiting: tuple[WaitingEntry, ...] = ()

    @property
    def is_waiting(self) -> bool:
        return bool(self.waiting)

    def to_dict(self) -> dict[str, Any]:
        return {"waiting": [w.to_dict() for w in self.waiting]}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SandboxStatus":
        waiting = data.get("waiting")
        return SandboxStatus(
            waiting=tuple(WaitingEntry.from_dict(x) for x in waiting) if isinstance(waiting, list) else (),
        )


@dataclass(frozen=True, slots=True)
class ActionExchanges:
    """Exchange log of the current action, kept verbatim for inspection."""

    payload: Any

    def to_dict(self) -> Any:
        return self.payload
