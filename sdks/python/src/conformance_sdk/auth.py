from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

import jwt

logger = logging.getLogger(__name__)

AuthListener = Callable[[bool], None]


class AuthState:
    """Single boolean signal telling observers whether the operator is signed in."""

    def __init__(self, value: bool = False) -> None:
        self._value = value
        self._listeners: list[AuthListener] = []

    @property
    def value(self) -> bool:
        return self._value

    def set(self, value: bool) -> None:
        if value == self._value:
            return
        self._value = value
        for listener in list(self._listeners):
            listener(value)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._value)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe


class TokenProvider(Protocol):
    state: AuthState

    async def get_token(self) -> str | None: ...


class AnonymousTokenProvider:
    def __init__(self) -> None:
        self.state = AuthState(False)

    async def get_token(self) -> str | None:
        return None


class StaticTokenProvider:
    def __init__(self, token: str | None) -> None:
        self._token = token or None
        self.state = AuthState(self._token is not None)

    async def get_token(self) -> str | None:
        return self._token


def dummy_token_for(email: str) -> str:
    user_id = "-at-".join(email.split("@"))
    user_id = "-dot-".join(user_id.split("."))
    return f"DummyAuthToken#{user_id}"


class DummyTokenProvider:
    """Local-development identity: any e-mail signs in, no password check."""

    def __init__(self) -> None:
        self.state = AuthState(False)
        self._email = ""
        logger.warning("Using the dummy authenticator")

    @property
    def email(self) -> str:
        return self._email

    def login(self, email: str) -> None:
        self._email = email
        self.state.set(True)

    def logout(self) -> None:
        self._email = ""
        self.state.set(False)

    async def get_token(self) -> str | None:
        if not self.state.value:
            return None
        return dummy_token_for(self._email)


class JwtTokenProvider:
    """Serves an identity token obtained elsewhere while it is unexpired.

    The signature is verified by the service; here the token is only decoded
    to read its `exp` claim.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        leeway_s: float = 0.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._token: str | None = None
        self._leeway_s = leeway_s
        self._clock = clock
        self.state = AuthState(False)
        if token:
            self.set_token(token)

    def set_token(self, token: str) -> None:
        jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        self._token = token
        self.state.set(self.is_valid())

    def clear(self) -> None:
        self._token = None
        self.state.set(False)

    def expires_at(self) -> float | None:
        if self._token is None:
            return None
        claims = jwt.decode(self._token, options={"verify_signature": False, "verify_exp": False})
        exp = claims.get("exp")
        return float(exp) if isinstance(exp, (int, float)) else None

    def is_valid(self) -> bool:
        if self._token is None:
            return False
        exp = self.expires_at()
        if exp is None:
            return True
        return self._clock() < exp + self._leeway_s

    async def get_token(self) -> str | None:
        valid = self.is_valid()
        self.state.set(valid)
        if not valid:
            return None
        return self._token
