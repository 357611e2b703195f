from __future__ import annotations

__all__ = [
    "__version__",
    "clients",
    "models",
    "ConformanceWebuiClient",
    "ConsoleError",
    "ConsoleSession",
    "ConsoleSettings",
    "ControllerState",
    "SandboxStatusPoller",
    "ScenarioExecutionController",
    "ScenarioListing",
]

__version__ = "0.1.0"

from . import clients, models  # noqa: E402
from .clients.webui import ConformanceWebuiClient  # noqa: E402
from .config import ConsoleSettings  # noqa: E402
from .controller import ControllerState, ScenarioExecutionController  # noqa: E402
from .errors import ConsoleError  # noqa: E402
from .listing import ScenarioListing  # noqa: E402
from .polling import SandboxStatusPoller  # noqa: E402
from .session import ConsoleSession  # noqa: E402
