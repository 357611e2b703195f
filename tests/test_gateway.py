from __future__ import annotations

import unittest
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient

import support

from conformance_sdk.auth import StaticTokenProvider
from conformance_sdk.clients.base import TransportRequest, TransportResponse
from conformance_sdk.clients.webui import ConformanceWebuiClient
from conformance_sdk.errors import ConsoleError, ProtocolError, ResponseShapeError, TransportError
from conformance_sdk.models.common import ABSENT, ErrorEnvelope
from conformance_sdk.models.report import ConformanceStatus
from conformance_sdk.models.sandbox import CreateSandboxRequest


class _Service:
    """What the fake endpoint answers; tests overwrite `result` and `status_code`."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.auth_headers: list[str | None] = []
        self.result: Any = {}
        self.status_code = 200
        self.plain_text: str | None = None


def _build_app(service: _Service) -> FastAPI:
    app = FastAPI()

    @app.post("/conformance/webui")
    async def webui(request: Request):
        service.requests.append(await request.json())
        service.auth_headers.append(request.headers.get("authorization"))
        if service.plain_text is not None:
            return PlainTextResponse(service.plain_text, status_code=service.status_code)
        return JSONResponse(service.result, status_code=service.status_code)

    return app


class TestWebuiGateway(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.service = _Service()
        self.http = TestClient(_build_app(self.service))
        self.client = self._client()

    def _client(self, **kwargs: Any) -> ConformanceWebuiClient:
        return ConformanceWebuiClient(
            base_url="http://sandbox.test", transport=support.app_transport(self.http), **kwargs
        )

    async def test_request_body_carries_operation_and_fields(self) -> None:
        self.service.result = {"waiting": []}
        status = await self.client.get_sandbox_status("sb-1")
        self.assertEqual(self.service.requests, [{"operation": "getSandboxStatus", "sandboxId": "sb-1"}])
        self.assertFalse(status.is_waiting)

    async def test_endpoint_path(self) -> None:
        self.assertEqual(self.client.endpoint, "http://sandbox.test/conformance/webui")

    async def test_anonymous_call_has_no_authorization_header(self) -> None:
        await self.client.notify_party("sb-1")
        self.assertEqual(self.service.auth_headers, [None])

    async def test_bearer_token_is_attached(self) -> None:
        client = self._client(token_provider=StaticTokenProvider("tok-123"))
        await client.reset_party("sb-1")
        self.assertEqual(self.service.auth_headers, ["Bearer tok-123"])

    async def test_error_envelope_with_success_status_is_protocol_error(self) -> None:
        self.service.result = {"error": "Scenario is already running"}
        with self.assertRaises(ProtocolError) as ctx:
            await self.client.start_or_stop_scenario("sb-1", "sc-1")
        self.assertEqual(ctx.exception.message, "Scenario is already running")
        self.assertEqual(ctx.exception.operation, "startOrStopScenario")

    async def test_error_envelope_with_failure_status_is_protocol_error(self) -> None:
        self.service.result = {"error": "Unknown sandbox"}
        self.service.status_code = 400
        with self.assertRaises(ProtocolError):
            await self.client.get_sandbox_status("nope")

    async def test_raw_call_returns_envelope(self) -> None:
        self.service.result = {"error": "nope"}
        result = await self.client.call("getSandboxStatus", {"sandboxId": "sb-1"})
        self.assertEqual(result, ErrorEnvelope(error="nope"))

    async def test_object_with_error_and_other_keys_is_not_envelope(self) -> None:
        self.service.result = {"error": "x", "details": 1}
        result = await self.client.call("getCurrentActionExchanges", {})
        self.assertEqual(result, {"error": "x", "details": 1})

    async def test_non_json_failure_is_transport_error(self) -> None:
        self.service.plain_text = "upstream unavailable"
        self.service.status_code = 502
        with self.assertRaises(TransportError) as ctx:
            await self.client.notify_party("sb-1")
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.operation, "notifyParty")

    async def test_json_failure_without_envelope_is_transport_error(self) -> None:
        self.service.result = {"message": "boom"}
        self.service.status_code = 500
        with self.assertRaises(TransportError) as ctx:
            await self.client.notify_party("sb-1")
        self.assertEqual(ctx.exception.response_body, {"message": "boom"})

    async def test_channel_failure_is_tagged_with_operation(self) -> None:
        def broken(request: TransportRequest):
            raise TransportError("connection refused")

        client = ConformanceWebuiClient(base_url="http://sandbox.test", transport=broken)
        with self.assertRaises(TransportError) as ctx:
            await client.get_all_sandboxes()
        self.assertEqual(ctx.exception.operation, "getAllSandboxes")
        self.assertIn("connection refused", str(ctx.exception))

    async def test_raw_channel_failure_becomes_transport_error(self) -> None:
        def broken(request: TransportRequest):
            raise ConnectionResetError("peer reset")

        client = ConformanceWebuiClient(base_url="http://sandbox.test", transport=broken)
        with self.assertRaises(TransportError) as ctx:
            await client.notify_party("sb-1")
        self.assertEqual(ctx.exception.operation, "notifyParty")
        self.assertIn("peer reset", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, ConnectionResetError)

    async def test_invalid_utf8_json_body_is_transport_error(self) -> None:
        def garbled(request: TransportRequest) -> TransportResponse:
            return TransportResponse(status=200, body=b'{"a": "\xff"}', headers={"Content-Type": "application/json"})

        client = ConformanceWebuiClient(base_url="http://sandbox.test", transport=garbled)
        with self.assertRaises(TransportError) as ctx:
            await client.call("getAllSandboxes")
        self.assertIn("Invalid JSON response", ctx.exception.message)

    async def test_non_finite_numbers_are_not_sent(self) -> None:
        with self.assertRaises(ConsoleError):
            await self.client.handle_action_input("sb-1", "sc-1", "act-1", {"x": float("nan")})
        self.assertEqual(self.service.requests, [])

    async def test_absent_action_input_is_omitted(self) -> None:
        await self.client.handle_action_input("sb-1", "sc-1", "act-1")
        self.assertNotIn("actionInput", self.service.requests[0])

    async def test_action_input_values_are_sent_as_given(self) -> None:
        for value in ("", None, {"x": 1}, "42"):
            with self.subTest(value=value):
                self.service.requests.clear()
                await self.client.handle_action_input("sb-1", "sc-1", "act-1", value)
                self.assertIn("actionInput", self.service.requests[0])
                self.assertEqual(self.service.requests[0]["actionInput"], value)
        self.service.requests.clear()
        await self.client.handle_action_input("sb-1", "sc-1", "act-1", ABSENT)
        self.assertNotIn("actionInput", self.service.requests[0])

    async def test_complete_current_action_always_sends_skip(self) -> None:
        await self.client.complete_current_action("sb-1", False)
        await self.client.complete_current_action("sb-1", True)
        self.assertEqual(
            self.service.requests,
            [
                {"operation": "completeCurrentAction", "sandboxId": "sb-1", "skip": False},
                {"operation": "completeCurrentAction", "sandboxId": "sb-1", "skip": True},
            ],
        )

    async def test_scenario_status_is_decoded(self) -> None:
        self.service.result = support.scenario_status(jsonForPromptText={"x": 1})
        status = await self.client.get_scenario_status("sb-1", "sc-1")
        self.assertEqual(status.current_action_title, "Supply parameters")
        self.assertEqual(status.prompt_action_id, "action-1")
        self.assertEqual(status.json_for_prompt_text, {"x": 1})
        self.assertIs(status.conformance_sub_report.status, ConformanceStatus.NO_TRAFFIC)

    async def test_scenario_status_with_unknown_report_status_is_rejected(self) -> None:
        self.service.result = support.scenario_status(conformanceSubReport=support.report_payload("not fetched"))
        with self.assertRaises(ResponseShapeError) as ctx:
            await self.client.get_scenario_status("sb-1", "sc-1")
        self.assertTrue(any(e.startswith("$.conformanceSubReport.status") for e in ctx.exception.errors))

    async def test_scenario_digests_are_decoded(self) -> None:
        self.service.result = [
            {
                "moduleName": "Booking",
                "scenarios": [support.scenario_digest("a"), support.scenario_digest("b", is_running=True)],
            }
        ]
        modules = await self.client.get_scenario_digests("sb-1")
        self.assertEqual(modules[0].module_name, "Booking")
        self.assertEqual([s.is_running for s in modules[0].scenarios], [False, True])

    async def test_create_sandbox_returns_id(self) -> None:
        self.service.result = {"sandboxId": "sb-new"}
        request = CreateSandboxRequest(
            standard_name="Booking",
            version_number="2.0.0",
            scenario_suite="Conformance",
            tested_party_role="Carrier",
            sandbox_name="mine",
        )
        self.assertEqual(await self.client.create_sandbox(request), "sb-new")
        self.assertEqual(
            self.service.requests[0],
            {
                "operation": "createSandbox",
                "standardName": "Booking",
                "versionNumber": "2.0.0",
                "scenarioSuite": "Conformance",
                "testedPartyRole": "Carrier",
                "isDefaultType": True,
                "sandboxName": "mine",
            },
        )

    async def test_get_sandbox_decodes_summary(self) -> None:
        self.service.result = {"id": "sb-1", "name": "mine", "operatorLog": ["started"], "canNotifyParty": True}
        sandbox = await self.client.get_sandbox("sb-1", include_operator_log=True)
        self.assertTrue(sandbox.can_notify_party)
        self.assertEqual(sandbox.operator_log, ["started"])
        self.assertTrue(self.service.requests[0]["includeOperatorLog"])

    async def test_malformed_list_is_shape_error(self) -> None:
        self.service.result = {"not": "a list"}
        with self.assertRaises(ResponseShapeError):
            await self.client.get_available_standards()


if __name__ == "__main__":
    unittest.main()
