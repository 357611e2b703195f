from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .clients.webui import ConformanceWebuiClient
from .codec import ActionInputCodec
from .errors import (
    ActionInputParseError,
    ActionNotPermittedError,
    ActionNotSkippableError,
    ConsoleError,
    InputRequiredError,
    OperationInProgressError,
    StaleActionError,
)
from .listing import Confirm, affordance_for, confirm_with
from .models.common import ActionExchanges, WaitingEntry
from .models.report import ConformanceReport
from .models.scenario import ActionInputKind, ScenarioDigest, ScenarioStatus
from .polling import GenerationToken, PollCancelled, PollOutcome, SandboxStatusPoller, ViewGeneration

logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    IDLE = "IDLE"
    LOADING_STATUS = "LOADING_STATUS"
    READY_FOR_INPUT = "READY_FOR_INPUT"
    SUBMITTING_ACTION = "SUBMITTING_ACTION"
    COMPLETING_ACTION = "COMPLETING_ACTION"
    ERROR = "ERROR"


_ACCEPTS_TRIGGER = {ControllerState.IDLE, ControllerState.READY_FOR_INPUT, ControllerState.ERROR}

ChangeListener = Callable[["ScenarioExecutionController"], None]


class ScenarioExecutionController:
    """State machine behind one scenario view.

    One operation runs at a time. Every operation captures a generation token
    when it starts; once `close()` advances the generation, whatever that
    operation brings back is dropped.
    """

    def __init__(
        self,
        client: ConformanceWebuiClient,
        poller: SandboxStatusPoller,
        sandbox_id: str,
        scenario_id: str,
    ) -> None:
        self._client = client
        self._poller = poller
        self.sandbox_id = sandbox_id
        self.scenario_id = scenario_id

        self.state = ControllerState.IDLE
        self.error: str | None = None
        self.input_error: str | None = None
        self.input_buffer = ""
        self.status: ScenarioStatus | None = None
        self.digest: ScenarioDigest | None = None
        self.sandbox_waiting: tuple[WaitingEntry, ...] = ()
        self.last_poll: PollOutcome | None = None

        self._generation = ViewGeneration()
        self._listeners: list[ChangeListener] = []

    @property
    def report(self) -> ConformanceReport | None:
        return None if self.status is None else self.status.conformance_sub_report

    @property
    def input_kind(self) -> ActionInputKind:
        return ActionInputKind.FREE_TEXT if self.status is None else self.status.input_kind

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _transition(self, state: ControllerState) -> None:
        logger.debug("Scenario %s: %s -> %s", self.scenario_id, self.state.value, state.value)
        self.state = state
        self._notify()

    def _fail(self, message: str) -> None:
        self.error = message
        self._transition(ControllerState.ERROR)

    def _begin(self) -> GenerationToken:
        if self.state not in _ACCEPTS_TRIGGER:
            raise OperationInProgressError(f"Scenario view is busy ({self.state.value})")
        return self._generation.token()

    def _require_ready(self) -> ScenarioStatus:
        if self.state is not ControllerState.READY_FOR_INPUT or self.status is None:
            raise ActionNotPermittedError(f"No action can be taken while {self.state.value}")
        return self.status

    def _stale(self, token: GenerationToken, what: str) -> bool:
        if token.cancelled:
            logger.debug("Dropping %s for scenario %s after the view closed", what, self.scenario_id)
            return True
        return False

    def _on_waiting(self, waiting: tuple[WaitingEntry, ...]) -> None:
        self.sandbox_waiting = waiting
        self._notify()

    async def open(self) -> None:
        token = self._begin()
        self._transition(ControllerState.LOADING_STATUS)
        try:
            digest = await self._client.get_scenario(self.sandbox_id, self.scenario_id)
        except ConsoleError as exc:
            if not self._stale(token, "scenario digest error"):
                self._fail(str(exc))
            return
        if self._stale(token, "scenario digest"):
            return
        self.digest = digest
        await self._load_status(token)

    async def refresh(self) -> None:
        token = self._begin()
        self._transition(ControllerState.LOADING_STATUS)
        await self._load_status(token)

    async def _load_status(
        self,
        token: GenerationToken,
        *,
        pending_error: str | None = None,
        keep_input: bool = False,
    ) -> None:
        previous_action = None if self.status is None else self.status.prompt_action_id
        typed = self.input_buffer
        try:
            outcome = await self._poller.wait_until_idle(self.sandbox_id, token=token, on_waiting=self._on_waiting)
            status = await self._client.get_scenario_status(self.sandbox_id, self.scenario_id)
        except PollCancelled:
            logger.debug("Status load for scenario %s cancelled", self.scenario_id)
            return
        except ConsoleError as exc:
            if self._stale(token, "status error"):
                return
            self._fail(str(exc) if pending_error is None else f"{pending_error}\n{exc}")
            return
        if self._stale(token, "scenario status"):
            return

        self.last_poll = outcome
        self.sandbox_waiting = outcome.last_waiting
        self.status = status
        self.input_error = None
        if keep_input and status.prompt_action_id is not None and status.prompt_action_id == previous_action:
            self.input_buffer = typed
        else:
            self.input_buffer = ActionInputCodec.seed(status)

        if pending_error is not None:
            self._fail(pending_error)
        else:
            self.error = None
            self._transition(ControllerState.READY_FOR_INPUT)

    async def submit(self, with_input: bool = True) -> bool:
        """Send the input buffer as the answer to the pending prompt.

        Returns False when nothing reached the server: malformed JSON leaves
        the buffer as typed and sets `input_error` instead.
        """

        token = self._begin()
        status = self._require_ready()
        if not status.prompt_action_id:
            raise StaleActionError("There is no pending action to submit input for", operation="handleActionInput")
        text = self.input_buffer
        if with_input and status.input_required and not text.strip():
            raise InputRequiredError("This action requires input", operation="handleActionInput")

        try:
            action_input = ActionInputCodec.encode(status.input_kind, text, with_input=with_input)
        except ActionInputParseError as exc:
            self.input_error = exc.message
            self._notify()
            return False
        self.input_error = None

        self._transition(ControllerState.SUBMITTING_ACTION)
        try:
            await self._client.handle_action_input(
                self.sandbox_id, self.scenario_id, status.prompt_action_id, action_input
            )
        except ConsoleError as exc:
            if self._stale(token, "submission error"):
                return False
            self.input_buffer = text
            self._fail(str(exc))
            return False
        if self._stale(token, "submission result"):
            return False

        self._transition(ControllerState.LOADING_STATUS)
        await self._load_status(token)
        return True

    async def complete_current_action(self, skip: bool = False, confirm: Confirm | None = None) -> bool:
        token = self._begin()
        status = self._require_ready()
        if skip and not status.is_skippable:
            raise ActionNotSkippableError(
                f"'{status.current_action_title}' cannot be skipped", operation="completeCurrentAction"
            )
        if confirm is not None:
            verb = "Skip" if skip else "Complete"
            if not await confirm_with(confirm, f"{verb} the current action '{status.current_action_title}'?"):
                return False

        self._transition(ControllerState.COMPLETING_ACTION)
        failure: str | None = None
        try:
            await self._client.complete_current_action(self.sandbox_id, skip)
        except ConsoleError as exc:
            failure = str(exc)
        if self._stale(token, "completion result"):
            return False

        # Reload even after a failure so the view matches the server.
        self._transition(ControllerState.LOADING_STATUS)
        await self._load_status(token, pending_error=failure, keep_input=True)
        return failure is None

    async def start_or_stop(self, confirm: Confirm | None = None) -> bool:
        token = self._begin()
        if self.digest is None:
            raise ActionNotPermittedError("Scenario is not loaded", operation="startOrStopScenario")
        affordance = affordance_for(self.digest, self.digest.is_running)
        if affordance.confirmation is not None:
            if confirm is None:
                raise ActionNotPermittedError(
                    f"{affordance.action.label} must be confirmed", operation="startOrStopScenario"
                )
            if not await confirm_with(confirm, affordance.confirmation):
                return False

        self._transition(ControllerState.LOADING_STATUS)
        try:
            await self._client.start_or_stop_scenario(self.sandbox_id, self.scenario_id)
            digest = await self._client.get_scenario(self.sandbox_id, self.scenario_id)
        except ConsoleError as exc:
            if not self._stale(token, "start/stop error"):
                self._fail(str(exc))
            return False
        if self._stale(token, "start/stop result"):
            return False
        self.digest = digest
        await self._load_status(token)
        return True

    async def get_current_action_exchanges(self) -> ActionExchanges | None:
        token = self._begin()
        try:
            exchanges = await self._client.get_current_action_exchanges(self.sandbox_id, self.scenario_id)
        except ConsoleError as exc:
            if not self._stale(token, "exchanges error"):
                self._fail(str(exc))
            return None
        if self._stale(token, "exchanges"):
            return None
        return exchanges

    def acknowledge_error(self) -> None:
        if self.state is not ControllerState.ERROR:
            return
        self.error = None
        self._transition(ControllerState.READY_FOR_INPUT if self.status is not None else ControllerState.IDLE)

    def close(self) -> None:
        self._generation.advance()
        self._listeners.clear()
        self.state = ControllerState.IDLE
