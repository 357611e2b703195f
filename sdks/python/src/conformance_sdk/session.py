from __future__ import annotations

import asyncio
import time

from .auth import AnonymousTokenProvider, AuthState, StaticTokenProvider, TokenProvider
from .clients.base import Transport
from .clients.webui import ConformanceWebuiClient
from .config import ConsoleSettings
from .controller import ScenarioExecutionController
from .listing import ScenarioListing
from .models.sandbox import SandboxConfigDraft
from .polling import Clock, SandboxStatusPoller, Sleep
from .schemas import SchemaRegistry


class ConsoleSession:
    """Everything one operator session needs, built once and passed down.

    Views get their client, poller and auth signal from here; nothing is
    looked up from module state.
    """

    def __init__(
        self,
        settings: ConsoleSettings,
        *,
        token_provider: TokenProvider | None = None,
        transport: Transport | None = None,
        schemas: SchemaRegistry | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings
        if token_provider is None:
            token_provider = StaticTokenProvider(settings.token) if settings.token else AnonymousTokenProvider()
        self.token_provider = token_provider
        self.client = ConformanceWebuiClient(
            base_url=settings.base_url,
            timeout=settings.timeout_s,
            token_provider=token_provider,
            transport=transport,
            schemas=schemas,
        )
        self.poller = SandboxStatusPoller(
            self.client,
            budget_s=settings.poll_budget_s,
            interval_s=settings.poll_interval_s,
            clock=clock,
            sleep=sleep,
        )

    @property
    def auth(self) -> AuthState:
        return self.token_provider.state

    def listing(self, sandbox_id: str) -> ScenarioListing:
        return ScenarioListing(self.client, sandbox_id)

    def controller(self, sandbox_id: str, scenario_id: str) -> ScenarioExecutionController:
        return ScenarioExecutionController(self.client, self.poller, sandbox_id, scenario_id)

    async def config_draft(self, sandbox_id: str) -> SandboxConfigDraft:
        return SandboxConfigDraft(await self.client.get_sandbox_config(sandbox_id))
