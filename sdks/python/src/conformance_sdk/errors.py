from __future__ import annotations

from typing import Any


class ConsoleError(Exception):
    def __init__(self, message: str, *, operation: str | None = None) -> None:
        self.message = message
        self.operation = operation
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ProtocolError(ConsoleError):
    """The service answered with an `{"error": ...}` envelope."""


class TransportError(ConsoleError):
    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        status_code: int = 0,
        response_body: Any | None = None,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, operation=operation)

    def __str__(self) -> str:
        prefix = f"{self.operation}: " if self.operation else ""
        if self.status_code:
            return f"{prefix}transport error {self.status_code}: {self.message}"
        return f"{prefix}transport error: {self.message}"


class ResponseShapeError(ConsoleError):
    def __init__(self, message: str, *, operation: str | None = None, errors: list[str] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(message, operation=operation)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return base + "\n" + "\n".join(f"  - {e}" for e in self.errors)


class ActionInputParseError(ConsoleError, ValueError):
    def __init__(self, message: str, *, text: str) -> None:
        self.text = text
        super().__init__(message)


class InputRequiredError(ConsoleError):
    pass


class StaleActionError(ConsoleError):
    pass


class ActionNotSkippableError(ConsoleError):
    pass


class ActionNotPermittedError(ConsoleError):
    pass


class OperationInProgressError(ConsoleError):
    pass


class UnknownConformanceStatusError(ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown conformance status: {value!r}")


class ReportFormatError(ValueError):
    pass


class SettingsError(ConsoleError):
    pass
