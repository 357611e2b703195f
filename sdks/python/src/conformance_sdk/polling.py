from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from .clients.webui import ConformanceWebuiClient
from .models.common import WaitingEntry

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
WaitingListener = Callable[[tuple[WaitingEntry, ...]], None]


class PollCancelled(Exception):
    """The view that started the wait has gone away."""


class GenerationToken:
    def __init__(self, owner: "ViewGeneration", generation: int) -> None:
        self._owner = owner
        self.generation = generation

    @property
    def cancelled(self) -> bool:
        return self._owner.current != self.generation

    def check(self) -> None:
        if self.cancelled:
            raise PollCancelled(f"generation {self.generation} is stale")


class ViewGeneration:
    """Monotonic counter; advancing it cancels every token handed out before."""

    def __init__(self) -> None:
        self.current = 0

    def token(self) -> GenerationToken:
        return GenerationToken(self, self.current)

    def advance(self) -> int:
        self.current += 1
        return self.current


@dataclass(frozen=True)
class PollOutcome:
    settled: bool
    timed_out: bool = False
    last_waiting: tuple[WaitingEntry, ...] = ()
    attempts: int = 0


class SandboxStatusPoller:
    def __init__(
        self,
        client: ConformanceWebuiClient,
        *,
        budget_s: float = 60.0,
        interval_s: float = 1.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self.budget_s = budget_s
        self.interval_s = interval_s
        self._clock = clock
        self._sleep = sleep

    async def wait_until_idle(
        self,
        sandbox_id: str,
        token: GenerationToken | None = None,
        on_waiting: WaitingListener | None = None,
    ) -> PollOutcome:
        """Poll `getSandboxStatus` until nobody is waiting or the budget runs out.

        Running out of budget is not an error: the outcome says so and the
        caller goes on to read scenario status anyway.
        """

        deadline = self._clock() + self.budget_s
        attempts = 0
        last: tuple[WaitingEntry, ...] = ()
        while True:
            _check(token)
            status = await self._client.get_sandbox_status(sandbox_id)
            _check(token)
            attempts += 1

            if not status.is_waiting:
                return PollOutcome(settled=True, attempts=attempts)

            last = status.waiting
            for entry in last:
                logger.info("Sandbox %s: %s", sandbox_id, entry.describe())
            if on_waiting is not None:
                on_waiting(last)

            if self._clock() >= deadline:
                logger.warning(
                    "Sandbox %s still waiting after %.0fs; reading scenario status anyway",
                    sandbox_id,
                    self.budget_s,
                )
                return PollOutcome(settled=False, timed_out=True, last_waiting=last, attempts=attempts)

            await self._sleep(self.interval_s)


def _check(token: GenerationToken | None) -> None:
    if token is not None:
        token.check()
