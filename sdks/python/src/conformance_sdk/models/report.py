from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import UnknownConformanceStatusError


class ConformanceStatus(str, Enum):
    CONFORMANT = "CONFORMANT"
    NON_CONFORMANT = "NON_CONFORMANT"
    PARTIALLY_CONFORMANT = "PARTIALLY_CONFORMANT"
    NO_TRAFFIC = "NO_TRAFFIC"
    IRRELEVANT = "IRRELEVANT"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]

    @property
    def display_title(self) -> str:
        return _TITLES[self]

    @classmethod
    def parse(cls, value: Any) -> "ConformanceStatus":
        if isinstance(value, ConformanceStatus):
            return value
        if not isinstance(value, str) or not value.strip():
            raise UnknownConformanceStatusError(value)
        try:
            return cls(value)
        except ValueError:
            raise UnknownConformanceStatusError(value) from None


_GLYPHS: dict[ConformanceStatus, str] = {
    ConformanceStatus.CONFORMANT: "✅",
    ConformanceStatus.NON_CONFORMANT: "🚫",
    ConformanceStatus.PARTIALLY_CONFORMANT: "⚠️",
    ConformanceStatus.NO_TRAFFIC: "❔",
    ConformanceStatus.IRRELEVANT: "➖",
}

_TITLES: dict[ConformanceStatus, str] = {
    ConformanceStatus.CONFORMANT: "Conformant",
    ConformanceStatus.NON_CONFORMANT: "Non-conformant",
    ConformanceStatus.PARTIALLY_CONFORMANT: "Partially conformant",
    ConformanceStatus.NO_TRAFFIC: "No traffic",
    ConformanceStatus.IRRELEVANT: "Irrelevant",
}


@dataclass(frozen=True, slots=True)
class ConformanceReport:
    """One node of a conformance report tree.

    The status of an aggregate node is whatever the service computed; it is
    never derived from the children here.
    """

    title: str
    status: ConformanceStatus
    error_messages: tuple[str, ...] = ()
    sub_reports: tuple["ConformanceReport", ...] = ()

    @property
    def is_aggregate(self) -> bool:
        return bool(self.sub_reports)

    def walk(self, depth: int = 0):
        yield depth, self
        for child in self.sub_reports:
            yield from child.walk(depth + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "status": self.status.value,
            "errorMessages": list(self.error_messages),
            "subReports": [r.to_dict() for r in self.sub_reports],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ConformanceReport":
        sub_reports = data.get("subReports")
        error_messages = data.get("errorMessages")
        return ConformanceReport(
            title=data["title"],
            status=ConformanceStatus.parse(data.get("status")),
            error_messages=tuple(error_messages) if isinstance(error_messages, list) else (),
            sub_reports=tuple(ConformanceReport.from_dict(x) for x in sub_reports)
            if isinstance(sub_reports, list)
            else (),
        )
