from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .base import BaseClient
from ..errors import ConsoleError, ResponseShapeError
from ..models.common import ABSENT, ActionExchanges, SandboxStatus
from ..models.sandbox import (
    CreateSandboxRequest,
    SandboxConfig,
    SandboxConfigUpdate,
    SandboxSummary,
    Standard,
)
from ..models.scenario import ModuleDigest, ScenarioDigest, ScenarioStatus


class ConformanceWebuiClient(BaseClient):
    async def get_sandbox_status(self, sandbox_id: str) -> SandboxStatus:
        op = "getSandboxStatus"
        payload = await self._request(op, {"sandboxId": sandbox_id})
        return SandboxStatus.from_dict(self._validated(op, payload, schema_name="sandbox_status.schema.json"))

    async def get_scenario_digests(self, sandbox_id: str) -> list[ModuleDigest]:
        op = "getScenarioDigests"
        payload = await self._request(op, {"sandboxId": sandbox_id})
        payload = self._validated(op, payload, schema_name="scenario_digests.schema.json")
        return [ModuleDigest.from_dict(x) for x in payload]

    async def get_scenario(self, sandbox_id: str, scenario_id: str) -> ScenarioDigest:
        op = "getScenario"
        payload = await self._request(op, {"sandboxId": sandbox_id, "scenarioId": scenario_id})
        return ScenarioDigest.from_dict(self._validated(op, payload, schema_name="scenario_digest.schema.json"))

    async def get_scenario_status(self, sandbox_id: str, scenario_id: str) -> ScenarioStatus:
        op = "getScenarioStatus"
        payload = await self._request(op, {"sandboxId": sandbox_id, "scenarioId": scenario_id})
        return ScenarioStatus.from_dict(self._validated(op, payload, schema_name="scenario_status.schema.json"))

    async def start_or_stop_scenario(self, sandbox_id: str, scenario_id: str) -> None:
        await self._request("startOrStopScenario", {"sandboxId": sandbox_id, "scenarioId": scenario_id})
        return None

    async def handle_action_input(
        self,
        sandbox_id: str,
        scenario_id: str,
        action_id: str,
        action_input: Any = ABSENT,
    ) -> Any:
        return await self._request(
            "handleActionInput",
            {
                "sandboxId": sandbox_id,
                "scenarioId": scenario_id,
                "actionId": action_id,
                "actionInput": action_input,
            },
        )

    async def complete_current_action(self, sandbox_id: str, skip: bool) -> None:
        await self._request("completeCurrentAction", {"sandboxId": sandbox_id, "skip": bool(skip)})
        return None

    async def get_current_action_exchanges(self, sandbox_id: str, scenario_id: str) -> ActionExchanges:
        payload = await self._request(
            "getCurrentActionExchanges", {"sandboxId": sandbox_id, "scenarioId": scenario_id}
        )
        return ActionExchanges(payload=payload)

    async def get_available_standards(self) -> list[Standard]:
        op = "getAvailableStandards"
        payload = await self._request(op)
        return self._parse_list(op, payload, Standard)

    async def get_all_sandboxes(self) -> list[SandboxSummary]:
        op = "getAllSandboxes"
        payload = await self._request(op)
        return self._parse_list(op, payload, SandboxSummary)

    async def get_sandbox(self, sandbox_id: str, *, include_operator_log: bool = False) -> SandboxSummary:
        op = "getSandbox"
        payload = await self._request(op, {"sandboxId": sandbox_id, "includeOperatorLog": include_operator_log})
        return self._parse(op, payload, SandboxSummary)

    async def create_sandbox(self, request: CreateSandboxRequest) -> str:
        op = "createSandbox"
        payload = await self._request(op, request.to_dict())
        sandbox_id = payload.get("sandboxId") if isinstance(payload, dict) else None
        if not isinstance(sandbox_id, str) or not sandbox_id:
            raise ResponseShapeError("Missing sandboxId", operation=op)
        return sandbox_id

    async def get_sandbox_config(self, sandbox_id: str) -> SandboxConfig:
        op = "getSandboxConfig"
        payload = await self._request(op, {"sandboxId": sandbox_id})
        return self._parse(op, payload, SandboxConfig)

    async def update_sandbox_config(self, update: SandboxConfigUpdate | SandboxConfig) -> None:
        if isinstance(update, SandboxConfig):
            try:
                update = SandboxConfigUpdate.from_config(update)
            except ValidationError as exc:
                raise ConsoleError(str(exc), operation="updateSandboxConfig") from exc
        await self._request("updateSandboxConfig", update.to_dict())
        return None

    async def notify_party(self, sandbox_id: str) -> None:
        await self._request("notifyParty", {"sandboxId": sandbox_id})
        return None

    async def reset_party(self, sandbox_id: str) -> None:
        await self._request("resetParty", {"sandboxId": sandbox_id})
        return None

    @staticmethod
    def _parse(operation: str, payload: Any, model: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ResponseShapeError(
                "Response did not match model",
                operation=operation,
                errors=[f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()],
            ) from exc

    @classmethod
    def _parse_list(cls, operation: str, payload: Any, model: Any) -> list[Any]:
        if not isinstance(payload, list):
            raise ResponseShapeError("Expected JSON array", operation=operation)
        return [cls._parse(operation, item, model) for item in payload]
