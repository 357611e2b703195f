from __future__ import annotations

import json
from typing import Any

from .errors import ActionInputParseError
from .models.common import ABSENT
from .models.scenario import ActionInputKind, ScenarioStatus


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


class ActionInputCodec:
    """Turns the operator's input buffer into the `actionInput` field."""

    @staticmethod
    def seed(status: ScenarioStatus | None) -> str:
        if status is None or status.json_for_prompt_text is None:
            return ""
        return json.dumps(status.json_for_prompt_text, indent=2, ensure_ascii=False)

    @staticmethod
    def encode(kind: ActionInputKind, text: str, with_input: bool = True) -> Any:
        if not with_input:
            return ABSENT
        if kind is ActionInputKind.FREE_TEXT:
            # Sent as typed; digits or braces in free text stay a string.
            return text.strip()
        try:
            return json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            raise ActionInputParseError(f"Invalid JSON: {exc}", text=text) from exc
