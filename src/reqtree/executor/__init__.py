"""
reqtree request execution

Sends tab content over HTTP and records responses.
"""

from .engine import ExecutionState, PreparedRequest, RequestExecutor, build_request
from .transport import AiohttpTransport, Transport, TransportResponse

__all__ = [
    "RequestExecutor",
    "ExecutionState",
    "PreparedRequest",
    "build_request",
    "Transport",
    "TransportResponse",
    "AiohttpTransport",
]
