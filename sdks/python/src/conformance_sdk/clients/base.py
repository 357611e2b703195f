from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable

from ..auth import AnonymousTokenProvider, TokenProvider
from ..errors import ConsoleError, ProtocolError, ResponseShapeError, TransportError
from ..models.common import ABSENT, ErrorEnvelope
from ..schemas import SchemaRegistry

logger = logging.getLogger(__name__)

WEBUI_PATH = "conformance/webui"


def _looks_like_json(content_type: str) -> bool:
    if not content_type:
        return False
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or mime.endswith("+json") or mime == "text/json"


@dataclass(frozen=True)
class TransportRequest:
    url: str
    body: bytes
    headers: dict[str, str]
    timeout: float


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""


Transport = Callable[[TransportRequest], TransportResponse]


def urllib_transport(request: TransportRequest) -> TransportResponse:
    req = urllib.request.Request(url=request.url, data=request.body, method="POST")
    for key, value in request.headers.items():
        req.add_header(key, value)
    try:
        with urllib.request.urlopen(req, timeout=request.timeout) as response:
            status = response.getcode()
            resp_headers = dict(response.headers.items())
            raw = response.read()
    except urllib.error.HTTPError as exc:
        status = exc.code
        resp_headers = dict(exc.headers.items())
        raw = exc.read()
    except urllib.error.URLError as exc:
        raise TransportError(str(exc.reason)) from exc
    except TimeoutError as exc:
        raise TransportError(f"timed out after {request.timeout}s") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise TransportError(str(exc) or type(exc).__name__) from exc
    return TransportResponse(status=status, body=raw, headers=resp_headers)


class BaseClient:
    """One opaque request/response channel: operation name plus payload in,
    result or `{"error": ...}` out.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 30.0,
        token_provider: TokenProvider | None = None,
        transport: Transport | None = None,
        schemas: SchemaRegistry | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = timeout
        self._token_provider = token_provider or AnonymousTokenProvider()
        self._transport = transport or urllib_transport
        self._schemas = schemas or SchemaRegistry.load()
        self._default_headers = dict(default_headers or {})

    @property
    def endpoint(self) -> str:
        return urllib.parse.urljoin(self._base_url, WEBUI_PATH)

    async def call(self, operation: str, payload: dict[str, Any] | None = None) -> Any:
        """Issue one operation and return the raw result or an `ErrorEnvelope`.

        Transport failures are raised as `TransportError`.
        """

        body: dict[str, Any] = {"operation": operation}
        for key, value in (payload or {}).items():
            if value is ABSENT:
                continue
            body[key] = value

        headers = {"Accept": "application/json", "Content-Type": "application/json", **self._default_headers}
        token = await self._token_provider.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            encoded = json.dumps(body, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise ConsoleError(f"Request is not valid JSON: {exc}", operation=operation) from exc
        request = TransportRequest(
            url=self.endpoint,
            body=encoded,
            headers=headers,
            timeout=self._timeout,
        )
        logger.info("Calling %s", operation)
        try:
            response = await asyncio.to_thread(self._transport, request)
        except TransportError as exc:
            exc.operation = exc.operation or operation
            raise
        except Exception as exc:
            raise TransportError(str(exc) or type(exc).__name__, operation=operation) from exc

        return self._decode(operation, response)

    def _decode(self, operation: str, response: TransportResponse) -> Any:
        status = response.status
        raw = response.body
        if status == 204 or not raw:
            if status >= 400:
                raise TransportError("empty error response", operation=operation, status_code=status)
            return None

        if not _looks_like_json(response.content_type()):
            text = raw.decode("utf-8", errors="replace")
            if status >= 400:
                raise TransportError(text, operation=operation, status_code=status, response_body=text)
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                return text
        else:
            try:
                payload = json.loads(raw.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise TransportError(
                    f"Invalid JSON response: {exc}", operation=operation, status_code=status
                ) from exc

        if ErrorEnvelope.is_envelope(payload):
            return ErrorEnvelope.from_dict(payload)
        if status >= 400:
            raise TransportError(
                f"unexpected status {status}", operation=operation, status_code=status, response_body=payload
            )
        return payload

    async def _request(self, operation: str, payload: dict[str, Any] | None = None) -> Any:
        result = await self.call(operation, payload)
        if isinstance(result, ErrorEnvelope):
            logger.info("%s was rejected: %s", operation, result.error)
            raise ProtocolError(result.error, operation=operation)
        return result

    def _validated(self, operation: str, result: Any, *, schema_name: str) -> Any:
        errors = self._schemas.validate(result, schema_name=schema_name)
        if errors:
            raise ResponseShapeError("Response did not match schema", operation=operation, errors=errors)
        return result
