from __future__ import annotations

import logging
from dataclasses import dataclass

from .clients.webui import ConformanceWebuiClient
from .controller import ControllerState, ScenarioExecutionController
from .errors import ActionNotPermittedError, ConsoleError, InputRequiredError
from .listing import AffordanceAction, ScenarioListing
from .models.report import ConformanceReport, ConformanceStatus
from .models.scenario import ActionInputKind, ScenarioStatus
from .polling import SandboxStatusPoller
from .render import summarize_failures

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunOptions:
    max_steps: int = 200
    counterpart_sandbox_id: str | None = None
    restart: bool = False


@dataclass(frozen=True)
class ScenarioRunResult:
    sandbox_id: str
    scenario_id: str
    steps: int
    status: ScenarioStatus

    @property
    def report(self) -> ConformanceReport | None:
        return self.status.conformance_sub_report

    @property
    def conformant(self) -> bool:
        return self.report is not None and self.report.status is ConformanceStatus.CONFORMANT

    def failure_summary(self) -> str:
        if self.report is None:
            return "No conformance report"
        return summarize_failures(self.report)


def _always(_message: str) -> bool:
    return True


class ScenarioRunner:
    """Drives one scenario to completion without an operator.

    Prompts carrying a JSON template are answered with the template as is;
    every other action is marked complete. A counterpart sandbox, when given,
    is notified after the start and whenever the scenario prompts for
    something the counterpart has to do.
    """

    def __init__(
        self,
        client: ConformanceWebuiClient,
        poller: SandboxStatusPoller,
        options: RunOptions | None = None,
    ) -> None:
        self._client = client
        self._poller = poller
        self._options = options or RunOptions()

    async def run(self, sandbox_id: str, scenario_id: str) -> ScenarioRunResult:
        listing = ScenarioListing(self._client, sandbox_id)
        await listing.load()
        try:
            affordance = listing.affordances(scenario_id)
        except KeyError:
            raise ActionNotPermittedError(f"Unknown scenario {scenario_id}", operation="startOrStopScenario") from None
        if affordance.action is AffordanceAction.STOP:
            raise ActionNotPermittedError("Scenario is already running", operation="startOrStopScenario")
        if affordance.action is AffordanceAction.RESTART and not self._options.restart:
            raise ActionNotPermittedError(
                "Scenario already has traffic; pass restart=True to discard it", operation="startOrStopScenario"
            )
        logger.info("Starting scenario %s in sandbox %s", scenario_id, sandbox_id)
        await listing.trigger(scenario_id, confirm=_always)
        await self._notify_counterpart()

        controller = ScenarioExecutionController(self._client, self._poller, sandbox_id, scenario_id)
        try:
            await controller.open()
            status = self._settled(controller)
            steps = 0
            while status.is_running:
                steps += 1
                if steps > self._options.max_steps:
                    raise ConsoleError(f"Scenario {scenario_id} did not finish within {self._options.max_steps} steps")
                logger.info("Step %d: %s", steps, status.current_action_title or "(no action)")
                if status.input_required:
                    if status.input_kind is ActionInputKind.FREE_TEXT:
                        raise InputRequiredError(
                            f"'{status.current_action_title}' needs free-text input", operation="handleActionInput"
                        )
                    await controller.submit()
                else:
                    if status.prompt_text:
                        await self._notify_counterpart()
                    await controller.complete_current_action(skip=False)
                status = self._settled(controller)
            return ScenarioRunResult(sandbox_id=sandbox_id, scenario_id=scenario_id, steps=steps, status=status)
        finally:
            controller.close()

    async def _notify_counterpart(self) -> None:
        if self._options.counterpart_sandbox_id:
            await self._client.notify_party(self._options.counterpart_sandbox_id)

    @staticmethod
    def _settled(controller: ScenarioExecutionController) -> ScenarioStatus:
        if controller.state is ControllerState.ERROR or controller.status is None:
            raise ConsoleError(controller.error or "Scenario status unavailable")
        if controller.input_error:
            raise ConsoleError(controller.input_error, operation="handleActionInput")
        return controller.status
