from .common import ABSENT, ActionExchanges, ErrorEnvelope, SandboxStatus, WaitingEntry
from .report import ConformanceReport, ConformanceStatus
from .sandbox import (
    CreateSandboxRequest,
    EndpointUriOverride,
    HttpHeaderConfiguration,
    SandboxConfig,
    SandboxConfigDraft,
    SandboxConfigUpdate,
    SandboxSummary,
    Standard,
    StandardVersion,
)
from .scenario import ActionInputKind, ModuleDigest, ScenarioDigest, ScenarioStatus

__all__ = [
    "ABSENT",
    "ActionExchanges",
    "ErrorEnvelope",
    "SandboxStatus",
    "WaitingEntry",
    "ConformanceReport",
    "ConformanceStatus",
    "ActionInputKind",
    "ModuleDigest",
    "ScenarioDigest",
    "ScenarioStatus",
    "CreateSandboxRequest",
    "EndpointUriOverride",
    "HttpHeaderConfiguration",
    "SandboxConfig",
    "SandboxConfigDraft",
    "SandboxConfigUpdate",
    "SandboxSummary",
    "Standard",
    "StandardVersion",
]
