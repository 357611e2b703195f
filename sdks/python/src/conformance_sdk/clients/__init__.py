from .base import BaseClient, Transport, TransportRequest, TransportResponse, urllib_transport
from .webui import ConformanceWebuiClient

__all__ = [
    "BaseClient",
    "ConformanceWebuiClient",
    "Transport",
    "TransportRequest",
    "TransportResponse",
    "urllib_transport",
]
