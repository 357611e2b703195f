from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterator, Union

from .clients.webui import ConformanceWebuiClient
from .errors import ActionNotPermittedError
from .models.report import ConformanceStatus
from .models.scenario import ModuleDigest, ScenarioDigest

logger = logging.getLogger(__name__)

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]

STOP_CONFIRMATION = "A stopped scenario cannot be resumed, only restarted from the beginning."
RESTART_CONFIRMATION = "Restarting discards all traffic exchanged by the previous run. This cannot be undone."


class AffordanceAction(str, Enum):
    START = "START"
    RESTART = "RESTART"
    STOP = "STOP"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ScenarioAffordance:
    action: AffordanceAction
    enabled: bool
    confirmation: str | None = None


def affordance_for(digest: ScenarioDigest, any_running: bool) -> ScenarioAffordance:
    """Start/restart/stop button state for one scenario of a sandbox.

    At most one scenario of a sandbox runs at a time: while one does, it can
    only be stopped and every other scenario is locked.
    """

    if digest.is_running:
        return ScenarioAffordance(AffordanceAction.STOP, enabled=True, confirmation=STOP_CONFIRMATION)
    if digest.conformance_status is ConformanceStatus.NO_TRAFFIC:
        return ScenarioAffordance(AffordanceAction.START, enabled=not any_running)
    return ScenarioAffordance(AffordanceAction.RESTART, enabled=not any_running, confirmation=RESTART_CONFIRMATION)


async def confirm_with(confirm: Confirm | None, message: str) -> bool:
    if confirm is None:
        return False
    answer = confirm(message)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class ScenarioListing:
    def __init__(self, client: ConformanceWebuiClient, sandbox_id: str) -> None:
        self._client = client
        self.sandbox_id = sandbox_id
        self.modules: tuple[ModuleDigest, ...] = ()

    async def load(self) -> tuple[ModuleDigest, ...]:
        self.modules = tuple(await self._client.get_scenario_digests(self.sandbox_id))
        return self.modules

    def scenarios(self) -> Iterator[ScenarioDigest]:
        for module in self.modules:
            yield from module.scenarios

    def find(self, scenario_id: str) -> ScenarioDigest:
        for scenario in self.scenarios():
            if scenario.id == scenario_id:
                return scenario
        raise KeyError(scenario_id)

    @property
    def any_running(self) -> bool:
        return any(s.is_running for s in self.scenarios())

    def affordances(self, scenario: ScenarioDigest | str) -> ScenarioAffordance:
        if isinstance(scenario, str):
            scenario = self.find(scenario)
        return affordance_for(scenario, self.any_running)

    async def trigger(self, scenario_id: str, confirm: Confirm | None = None) -> bool:
        """Start, restart or stop a scenario; returns False when the operator declined.

        The server has the last word on concurrency: a rejected start comes
        back as a `ProtocolError`.
        """

        try:
            affordance = self.affordances(scenario_id)
        except KeyError:
            raise ActionNotPermittedError(
                f"Unknown scenario {scenario_id}", operation="startOrStopScenario"
            ) from None
        if not affordance.enabled:
            raise ActionNotPermittedError(
                "Another scenario is running in this sandbox", operation="startOrStopScenario"
            )
        if affordance.confirmation is not None:
            if not await confirm_with(confirm, affordance.confirmation):
                logger.info("%s of scenario %s not confirmed", affordance.action.label, scenario_id)
                return False

        await self._client.start_or_stop_scenario(self.sandbox_id, scenario_id)
        await self.load()
        return True
