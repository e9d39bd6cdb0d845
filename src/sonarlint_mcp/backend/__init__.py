"""Analysis backend contract and the SLOOP JSON-RPC client."""

from sonarlint_mcp.backend.protocol import (
    AnalysisBackend,
    BackendError,
    client_file_dto,
    file_uri,
)
from sonarlint_mcp.backend.sloop import SloopBridge

__all__ = [
    "AnalysisBackend",
    "BackendError",
    "SloopBridge",
    "client_file_dto",
    "file_uri",
]
