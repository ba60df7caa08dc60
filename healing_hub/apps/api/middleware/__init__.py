"""API middleware utilities for the Healing Hub."""

from .request_context import REQUEST_STATS, RequestContextMiddleware, client_ip, peer_ip
from .telemetry import TelemetryMiddleware

__all__ = ["REQUEST_STATS", "RequestContextMiddleware", "TelemetryMiddleware", "client_ip", "peer_ip"]
