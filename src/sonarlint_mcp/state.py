"""
Shared server state.

All cross-call state lives on one ``ServerContext``: the backend connection,
the scope registry and the session cache of analysis results. Tools receive
the context explicitly; ``get_context()`` returns the process-wide instance
used by the MCP server.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time

from sonarlint_mcp.backend.protocol import AnalysisBackend, BackendError
from sonarlint_mcp.backend.sloop import SloopBridge
from sonarlint_mcp.config import ServerConfig, load_config
from sonarlint_mcp.errors import BackendUnavailableError
from sonarlint_mcp.models import AnalysisResult
from sonarlint_mcp.scope import ScopeRegistry

logger = logging.getLogger(__name__)


class ServerContext:
    """
    Owns the backend handle, the scope map and the session result cache.

    Args:
        config: Server configuration.
        backend: An already connected backend. When omitted a ``SloopBridge``
            is started lazily by ``ensure_backend``.
    """

    def __init__(self, config: ServerConfig | None = None, backend: AnalysisBackend | None = None):
        self.config = config or load_config()
        self.backend = backend
        self.scopes = ScopeRegistry(backend)
        self.started_at = time.time()
        self._session_results: dict[str, AnalysisResult] = {}
        self._results_lock = threading.Lock()
        self._backend_lock = asyncio.Lock()

    async def ensure_backend(self) -> AnalysisBackend:
        """
        Return the backend, starting the SLOOP process on first use.

        Raises:
            BackendUnavailableError: If the backend is not installed or
                cannot be started.
        """
        if self.backend is not None:
            return self.backend

        async with self._backend_lock:
            if self.backend is not None:
                return self.backend

            if not self.config.plugins_dir.exists():
                raise BackendUnavailableError(
                    f"Backend not found at {self.config.plugins_dir}",
                    "SonarLint backend not installed. Set SONARLINT_MCP_BACKEND_HOME to the "
                    "directory containing the backend, or reinstall sonarlint-mcp.",
                )

            logger.info("Initializing SLOOP bridge...")
            bridge = SloopBridge(self.config)
            try:
                await bridge.connect()
            except (BackendError, OSError, asyncio.TimeoutError) as e:
                await bridge.disconnect()
                raise BackendUnavailableError(
                    f"Failed to initialize SLOOP: {e}",
                    "Failed to start SonarLint backend. Please check that Java is installed and try again.",
                    recoverable=True,
                ) from e

            self.backend = bridge
            self.scopes.backend = bridge
            logger.info("SLOOP bridge initialized successfully")
            return bridge

    async def shutdown(self) -> None:
        if isinstance(self.backend, SloopBridge):
            await self.backend.disconnect()

    # -------------------------------------------------------------------------
    # Session results
    # -------------------------------------------------------------------------

    def store_result(self, result: AnalysisResult) -> None:
        with self._results_lock:
            self._session_results[result.file_path] = result

    def get_result(self, file_path: str) -> AnalysisResult | None:
        with self._results_lock:
            return self._session_results.get(file_path)

    def session_results(self) -> dict[str, AnalysisResult]:
        with self._results_lock:
            return dict(self._session_results)


_context: ServerContext | None = None
_context_lock = threading.Lock()


def get_context() -> ServerContext:
    """Return the process-wide context, creating it on first use."""
    global _context
    with _context_lock:
        if _context is None:
            _context = ServerContext()
        return _context


def set_context(context: ServerContext | None) -> None:
    """Replace the process-wide context (``None`` resets it)."""
    global _context
    with _context_lock:
        _context = context
