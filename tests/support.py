from __future__ import annotations

import json
import sys
import urllib.parse
from pathlib import Path
from typing import Any, Callable

SRC = Path(__file__).resolve().parents[1] / "sdks" / "python" / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from conformance_sdk.clients.base import TransportRequest, TransportResponse  # noqa: E402
from conformance_sdk.clients.webui import ConformanceWebuiClient  # noqa: E402
from conformance_sdk.polling import SandboxStatusPoller  # noqa: E402

BASE_URL = "http://sandbox.test/"


class FakeWebui:
    """In-process stand-in for the `/conformance/webui` endpoint.

    `responses` maps an operation name to a value, a callable taking the
    request body, or an exception to raise from the transport.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.headers: list[dict[str, str]] = []
        self.responses: dict[str, Any] = {"getSandboxStatus": {"waiting": []}}

    def on(self, operation: str, response: Any) -> None:
        self.responses[operation] = response

    def handle(self, body: dict[str, Any]) -> Any:
        self.calls.append(body)
        response = self.responses.get(body["operation"], {})
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(body)
        return response

    def operations(self) -> list[str]:
        return [c["operation"] for c in self.calls]

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["operation"] == operation]

    def transport(self, request: TransportRequest) -> TransportResponse:
        self.headers.append(dict(request.headers))
        result = self.handle(json.loads(request.body.decode("utf-8")))
        return TransportResponse(
            status=200,
            body=json.dumps(result).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )


def app_transport(client: Any) -> Callable[[TransportRequest], TransportResponse]:
    """Route gateway requests into a FastAPI app through `TestClient`."""

    def send(request: TransportRequest) -> TransportResponse:
        path = urllib.parse.urlsplit(request.url).path
        resp = client.post(path, content=request.body, headers=request.headers)
        return TransportResponse(status=resp.status_code, body=resp.content, headers=dict(resp.headers))

    return send


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_client(fake: FakeWebui, **kwargs: Any) -> ConformanceWebuiClient:
    return ConformanceWebuiClient(base_url=BASE_URL, transport=fake.transport, **kwargs)


def make_poller(client: ConformanceWebuiClient, clock: FakeClock, **kwargs: Any) -> SandboxStatusPoller:
    return SandboxStatusPoller(client, clock=clock, sleep=clock.sleep, **kwargs)


def waiting_entry(who: str = "Carrier", for_whom: str = "Shipper", to_do_what: str = "send a booking") -> dict[str, str]:
    return {"who": who, "forWhom": for_whom, "toDoWhat": to_do_what}


def report_payload(status: str = "CONFORMANT", title: str = "Scenario", **extra: Any) -> dict[str, Any]:
    return {"title": title, "status": status, "errorMessages": [], "subReports": [], **extra}


def scenario_status(**fields: Any) -> dict[str, Any]:
    status: dict[str, Any] = {
        "isRunning": True,
        "nextActions": "Supply parameters - Send booking - Confirm",
        "promptText": "Supply the scenario parameters",
        "promptActionId": "action-1",
        "confirmationRequired": False,
        "inputRequired": True,
        "isSkippable": False,
        "needsAction": True,
        "conformanceSubReport": report_payload("NO_TRAFFIC"),
    }
    status.update(fields)
    return status


def scenario_digest(
    scenario_id: str = "sc-1",
    name: str = "Booking happy path",
    *,
    is_running: bool = False,
    conformance_status: str = "NO_TRAFFIC",
) -> dict[str, Any]:
    return {"id": scenario_id, "name": name, "isRunning": is_running, "conformanceStatus": conformance_status}
