from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HEADER_NAME_PATTERN = re.compile(r"^[!#$%&'*+.^_`|~\w-]+$", re.ASCII)
HEADER_VALUE_PATTERN = re.compile(r"^[\t\x20-\x7E\x80-\xFF]*$")


def is_valid_header_name(name: str) -> bool:
    return HEADER_NAME_PATTERN.fullmatch(name) is not None


def is_valid_header_value(value: str) -> bool:
    return HEADER_VALUE_PATTERN.fullmatch(value) is not None


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class HttpHeaderConfiguration(_WireModel):
    header_name: str = ""
    header_value: str = ""

    @property
    def is_valid(self) -> bool:
        return is_valid_header_name(self.header_name) and is_valid_header_value(self.header_value)


class EndpointUriOverride(_WireModel):
    method: str
    endpoint_uri: str
    override_uri: str


class SandboxConfig(_WireModel):
    sandbox_id: str
    sandbox_name: str
    sandbox_url: str = ""
    sandbox_auth_header_name: str = ""
    sandbox_auth_header_value: str = ""
    external_party_url: str = ""
    external_party_auth_header_name: str = ""
    external_party_auth_header_value: str = ""
    external_party_additional_headers: list[HttpHeaderConfiguration] = Field(default_factory=list)
    external_party_endpoint_uri_overrides: list[EndpointUriOverride] | None = None

    @property
    def has_valid_headers(self) -> bool:
        return all(h.is_valid for h in self.external_party_additional_headers)


class SandboxConfigUpdate(_WireModel):
    """Payload of `updateSandboxConfig`; refuses headers that would corrupt requests."""

    sandbox_id: str
    sandbox_name: str
    external_party_url: str
    external_party_auth_header_name: str
    external_party_auth_header_value: str
    external_party_additional_headers: list[HttpHeaderConfiguration] = Field(default_factory=list)
    external_party_endpoint_uri_overrides: list[EndpointUriOverride] | None = None

    @field_validator("external_party_additional_headers")
    @classmethod
    def _check_headers(cls, headers: list[HttpHeaderConfiguration]) -> list[HttpHeaderConfiguration]:
        for header in headers:
            if not is_valid_header_name(header.header_name):
                raise ValueError(f"Invalid header name: {header.header_name!r}")
            if not is_valid_header_value(header.header_value):
                raise ValueError(f"Invalid value for header {header.header_name!r}")
        return headers

    @classmethod
    def from_config(cls, config: SandboxConfig) -> "SandboxConfigUpdate":
        return cls(
            sandbox_id=config.sandbox_id,
            sandbox_name=config.sandbox_name,
            external_party_url=config.external_party_url,
            external_party_auth_header_name=config.external_party_auth_header_name,
            external_party_auth_header_value=config.external_party_auth_header_value,
            external_party_additional_headers=[h.model_copy() for h in config.external_party_additional_headers],
            external_party_endpoint_uri_overrides=config.external_party_endpoint_uri_overrides,
        )


class SandboxConfigDraft:
    """Editable copy of a sandbox configuration.

    The original is never touched; `can_update()` compares the two field by
    field and gates on header syntax.
    """

    def __init__(self, original: SandboxConfig) -> None:
        self.original = original
        self.updated = original.model_copy(deep=True)

    def add_header(self, name: str = "", value: str = "") -> HttpHeaderConfiguration:
        header = HttpHeaderConfiguration(header_name=name, header_value=value)
        self.updated.external_party_additional_headers.append(header)
        return header

    def remove_header(self) -> HttpHeaderConfiguration | None:
        if not self.updated.external_party_additional_headers:
            return None
        return self.updated.external_party_additional_headers.pop()

    def is_dirty(self) -> bool:
        return self.original.model_dump() != self.updated.model_dump()

    def can_update(self) -> bool:
        if not self.updated.has_valid_headers:
            return False
        return self.is_dirty()

    def to_update(self) -> SandboxConfigUpdate:
        return SandboxConfigUpdate.from_config(self.updated)


class SandboxSummary(_WireModel):
    id: str
    name: str
    operator_log: Any | None = None
    can_notify_party: bool = False


class StandardVersion(_WireModel):
    number: str
    suites: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)


class Standard(_WireModel):
    name: str
    versions: list[StandardVersion] = Field(default_factory=list)


class CreateSandboxRequest(_WireModel):
    standard_name: str
    version_number: str
    scenario_suite: str
    tested_party_role: str
    is_default_type: bool = True
    sandbox_name: str

    @field_validator("sandbox_name")
    @classmethod
    def _non_blank_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Sandbox name must not be blank")
        return value
