from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .common import _omit_none
from .report import ConformanceReport, ConformanceStatus

NEXT_ACTIONS_SEPARATOR = " - "


class ActionInputKind(str, Enum):
    FREE_TEXT = "FREE_TEXT"
    STRUCTURED_JSON = "STRUCTURED_JSON"

    @classmethod
    def for_prompt(cls, json_for_prompt_text: Any | None) -> "ActionInputKind":
        return cls.FREE_TEXT if json_for_prompt_text is None else cls.STRUCTURED_JSON


@dataclass(frozen=True, slots=True)
class ScenarioDigest:
    id: str
    name: str
    is_running: bool
    conformance_status: ConformanceStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "isRunning": self.is_running,
            "conformanceStatus": self.conformance_status.value,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ScenarioDigest":
        return ScenarioDigest(
            id=data["id"],
            name=data["name"],
            is_running=bool(data.get("isRunning", False)),
            conformance_status=ConformanceStatus.parse(data.get("conformanceStatus")),
        )


@dataclass(frozen=True, slots=True)
class ModuleDigest:
    module_name: str
    scenarios: tuple[ScenarioDigest, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"moduleName": self.module_name, "scenarios": [s.to_dict() for s in self.scenarios]}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ModuleDigest":
        scenarios = data.get("scenarios")
        return ModuleDigest(
            module_name=data.get("moduleName", ""),
            scenarios=tuple(ScenarioDigest.from_dict(x) for x in scenarios) if isinstance(scenarios, list) else (),
        )


@dataclass(frozen=True, slots=True)
class ScenarioStatus:
    is_running: bool
    next_actions: str = ""
    prompt_text: str = ""
    json_for_prompt_text: Any | None = None
    prompt_action_id: str | None = None
    confirmation_required: bool = False
    input_required: bool = False
    is_skippable: bool = False
    needs_action: bool = False
    conformance_sub_report: ConformanceReport | None = None
    input_kind: ActionInputKind = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_kind", ActionInputKind.for_prompt(self.json_for_prompt_text))

    @property
    def current_action_title(self) -> str:
        return self.next_actions.split(NEXT_ACTIONS_SEPARATOR, 1)[0].strip()

    @property
    def can_submit(self) -> bool:
        return bool(self.prompt_action_id)

    def to_dict(self) -> dict[str, Any]:
        return _omit_none(
            {
                "isRunning": self.is_running,
                "nextActions": self.next_actions,
                "promptText": self.prompt_text,
                "jsonForPromptText": self.json_for_prompt_text,
                "promptActionId": self.prompt_action_id,
                "confirmationRequired": self.confirmation_required,
                "inputRequired": self.input_required,
                "isSkippable": self.is_skippable,
                "needsAction": self.needs_action,
                "conformanceSubReport": self.conformance_sub_report.to_dict()
                if self.conformance_sub_report is not None
                else None,
            }
        )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ScenarioStatus":
        report = data.get("conformanceSubReport")
        return ScenarioStatus(
            is_running=bool(data.get("isRunning", False)),
            next_actions=data.get("nextActions") or "",
            prompt_text=data.get("promptText") or "",
            json_for_prompt_text=data.get("jsonForPromptText"),
            prompt_action_id=data.get("promptActionId") or None,
            confirmation_required=bool(data.get("confirmationRequired", False)),
            input_required=bool(data.get("inputRequired", False)),
            is_skippable=bool(data.get("isSkippable", False)),
            needs_action=bool(data.get("needsAction", False)),
            conformance_sub_report=ConformanceReport.from_dict(report) if isinstance(report, dict) else None,
        )
