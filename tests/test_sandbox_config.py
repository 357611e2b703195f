from __future__ import annotations

import unittest

from pydantic import ValidationError

import support

from conformance_sdk.models.sandbox import (
    CreateSandboxRequest,
    HttpHeaderConfiguration,
    SandboxConfig,
    SandboxConfigDraft,
    SandboxConfigUpdate,
    is_valid_header_name,
    is_valid_header_value,
)

CONFIG_PAYLOAD = {
    "sandboxId": "sb-1",
    "sandboxName": "Carrier testing",
    "sandboxUrl": "https://conformance.example/conformance/sandbox/sb-1",
    "sandboxAuthHeaderName": "Authorization",
    "sandboxAuthHeaderValue": "secret",
    "externalPartyUrl": "https://carrier.example/v2",
    "externalPartyAuthHeaderName": "X-Api-Key",
    "externalPartyAuthHeaderValue": "key",
    "externalPartyAdditionalHeaders": [{"headerName": "X-Trace", "headerValue": "1"}],
}


class TestHeaderSyntax(unittest.TestCase):
    def test_header_names(self) -> None:
        for name in ("X-Api-Key", "x_custom", "a.b", "!#$%&'*+.^_`|~-", "A1"):
            with self.subTest(name=name):
                self.assertTrue(is_valid_header_name(name))
        for name in ("", "Bad Header", "X:Y", "Ünicode", "X-Api-Key\n", "(comment)"):
            with self.subTest(name=name):
                self.assertFalse(is_valid_header_name(name))

    def test_header_values(self) -> None:
        for value in ("", "plain value", "tab\there", "caf\xe9"):
            with self.subTest(value=value):
                self.assertTrue(is_valid_header_value(value))
        for value in ("line\nbreak", "nul\x00", "del\x7f", "emoji 😀"):
            with self.subTest(value=value):
                self.assertFalse(is_valid_header_value(value))


class TestSandboxConfig(unittest.TestCase):
    def test_round_trips_camel_case(self) -> None:
        config = SandboxConfig.model_validate(CONFIG_PAYLOAD)
        self.assertEqual(config.external_party_additional_headers[0].header_name, "X-Trace")
        self.assertIsNone(config.external_party_endpoint_uri_overrides)
        self.assertEqual(config.to_dict(), CONFIG_PAYLOAD)

    def test_endpoint_overrides(self) -> None:
        payload = dict(CONFIG_PAYLOAD)
        payload["externalPartyEndpointUriOverrides"] = [
            {"method": "GET", "endpointUri": "/bookings/{ref}", "overrideUri": "/v2/bookings/{ref}"}
        ]
        config = SandboxConfig.model_validate(payload)
        self.assertEqual(config.external_party_endpoint_uri_overrides[0].override_uri, "/v2/bookings/{ref}")


class TestSandboxConfigDraft(unittest.TestCase):
    def setUp(self) -> None:
        self.original = SandboxConfig.model_validate(CONFIG_PAYLOAD)
        self.draft = SandboxConfigDraft(self.original)

    def test_unchanged_draft_cannot_update(self) -> None:
        self.assertFalse(self.draft.is_dirty())
        self.assertFalse(self.draft.can_update())

    def test_edit_does_not_touch_original(self) -> None:
        self.draft.updated.external_party_additional_headers[0].header_value = "2"
        self.assertEqual(self.original.external_party_additional_headers[0].header_value, "1")
        self.assertTrue(self.draft.can_update())

    def test_invalid_header_blocks_update(self) -> None:
        self.draft.add_header("Bad Header", "x")
        self.assertTrue(self.draft.is_dirty())
        self.assertFalse(self.draft.can_update())
        self.draft.remove_header()
        self.assertFalse(self.draft.can_update())
        self.draft.add_header("X-Good", "x")
        self.assertTrue(self.draft.can_update())

    def test_to_update_payload(self) -> None:
        self.draft.updated.external_party_url = "https://carrier.example/v3"
        payload = self.draft.to_update().to_dict()
        self.assertEqual(payload["externalPartyUrl"], "https://carrier.example/v3")
        self.assertNotIn("sandboxAuthHeaderValue", payload)
        self.assertEqual(payload["externalPartyAdditionalHeaders"], [{"headerName": "X-Trace", "headerValue": "1"}])

    def test_update_model_refuses_bad_headers(self) -> None:
        with self.assertRaises(ValidationError):
            SandboxConfigUpdate(
                sandbox_id="sb-1",
                sandbox_name="x",
                external_party_url="",
                external_party_auth_header_name="",
                external_party_auth_header_value="",
                external_party_additional_headers=[HttpHeaderConfiguration(header_name="a b", header_value="")],
            )

    def test_remove_header_on_empty_list(self) -> None:
        draft = SandboxConfigDraft(SandboxConfig(sandbox_id="sb-2", sandbox_name="empty"))
        self.assertIsNone(draft.remove_header())


class TestCreateSandboxRequest(unittest.TestCase):
    def test_blank_name_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            CreateSandboxRequest(
                standard_name="Booking",
                version_number="2.0.0",
                scenario_suite="Conformance",
                tested_party_role="Carrier",
                sandbox_name="  ",
            )


class TestGatewayConfigOperations(unittest.IsolatedAsyncioTestCase):
    async def test_update_sends_draft(self) -> None:
        fake = support.FakeWebui()
        fake.on("getSandboxConfig", CONFIG_PAYLOAD)
        client = support.make_client(fake)
        draft = SandboxConfigDraft(await client.get_sandbox_config("sb-1"))
        draft.add_header("X-Extra", "yes")
        await client.update_sandbox_config(draft.to_update())
        sent = fake.calls_to("updateSandboxConfig")[0]
        self.assertEqual(sent["sandboxId"], "sb-1")
        self.assertEqual(sent["externalPartyAdditionalHeaders"][-1], {"headerName": "X-Extra", "headerValue": "yes"})


if __name__ == "__main__":
    unittest.main()
