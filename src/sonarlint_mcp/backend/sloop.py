"""
JSON-RPC client for the SonarLint backend process (SLOOP).

The backend is a Java process speaking JSON-RPC 2.0 over stdio with
``Content-Length`` framed messages. Issues are not returned by the analyze
request itself: the backend pushes them through ``client/raiseIssues``
notifications while the request is in flight, and the bridge collects them
per analysis id.

Example:
    >>> bridge = SloopBridge(load_config())
    >>> await bridge.connect()
    >>> bridge.register_scope("scope-1a2b3c4d", {"name": "Project: /src"})
    >>> raw_issues = await bridge.analyze("scope-1a2b3c4d", ["/src/app.js"])
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import os
import time
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any

from sonarlint_mcp import __version__
from sonarlint_mcp.backend.protocol import BackendError, client_file_dto, file_uri
from sonarlint_mcp.config import ServerConfig
from sonarlint_mcp.language import LANGUAGE_TO_BACKEND

logger = logging.getLogger(__name__)

SERVER_MAIN_CLASS = "org.sonarsource.sonarlint.core.backend.cli.SonarLintServerCli"
HEADER_ENCODING = "ascii"


class SloopBridge:
    """
    Connection to one SLOOP process.

    Requests are matched to responses by id. Requests initiated by the
    backend are answered from ``_handle_server_request``; unknown ones get a
    null result so the backend never blocks waiting for the client.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._raised_issues: dict[str, list[dict[str, Any]]] = {}
        self._scope_files: dict[str, set[str]] = defaultdict(set)

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _command(self) -> list[str]:
        classpath = str(self.config.backend_home / "lib" / "*")
        return [self.config.java_command, "-classpath", classpath, SERVER_MAIN_CLASS]

    def _initialize_params(self) -> dict[str, Any]:
        plugins = sorted(str(p) for p in self.config.plugins_dir.glob("*.jar"))
        return {
            "clientConstantInfo": {"name": "sonarlint-mcp", "userAgent": f"sonarlint-mcp {__version__}"},
            "featureFlags": {"shouldManageLocalServer": False, "enableSecurityHotspots": False},
            "storageRoot": str(self.config.backend_home / "storage"),
            "workDir": str(self.config.backend_home / "work"),
            "embeddedPluginPaths": plugins,
            "enabledLanguagesInStandaloneMode": sorted(LANGUAGE_TO_BACKEND.values()),
            "sonarQubeConnections": [],
            "sonarCloudConnections": [],
        }

    async def connect(self) -> None:
        """Start the backend process and perform the initialize handshake."""
        logger.info("Starting SLOOP backend", extra={"command": self._command()})
        self._process = await asyncio.create_subprocess_exec(
            *self._command(),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._reader_task = asyncio.create_task(self._read_loop())
        await self.send_request("initialize", self._initialize_params())
        logger.info("SLOOP backend initialized")

    async def disconnect(self) -> None:
        """Shut the backend down and fail any pending requests."""
        if self._process is None:
            return
        try:
            if self.is_running:
                await self.send_request("shutdown", None, timeout=5.0)
        except (BackendError, asyncio.TimeoutError) as e:
            logger.warning(f"SLOOP shutdown request failed: {e}")
        finally:
            if self.is_running:
                self._process.terminate()
                await self._process.wait()
            if self._reader_task is not None:
                self._reader_task.cancel()
            self._fail_pending(BackendError("Backend disconnected"))
            self._process = None
            logger.info("SLOOP backend stopped")

    # -------------------------------------------------------------------------
    # Framing
    # -------------------------------------------------------------------------

    def _write_message(self, message: dict[str, Any]) -> None:
        if not self.is_running or self._process.stdin is None:
            raise BackendError("Backend process is not running")
        body = json.dumps(message).encode("utf-8")
        header = f"Content-Length: {len(body)}\r\n\r\n".encode(HEADER_ENCODING)
        self._process.stdin.write(header + body)

    async def _read_message(self, stream: asyncio.StreamReader) -> dict[str, Any] | None:
        content_length: int | None = None
        while True:
            line = await stream.readline()
            if not line:
                return None
            line = line.strip()
            if not line:
                break
            name, _, value = line.decode(HEADER_ENCODING).partition(":")
            if name.strip().lower() == "content-length":
                content_length = int(value.strip())
        if content_length is None:
            raise BackendError("Missing Content-Length header")
        body = await stream.readexactly(content_length)
        return json.loads(body.decode("utf-8"))

    async def _read_loop(self) -> None:
        if self._process is None or self._process.stdout is None:
            raise BackendError("Backend process is not running")
        stream = self._process.stdout
        try:
            while True:
                message = await self._read_message(stream)
                if message is None:
                    break
                self._dispatch(message)
        except (BackendError, asyncio.IncompleteReadError, json.JSONDecodeError, ValueError) as e:
            logger.error(f"SLOOP stream error: {e}")
        finally:
            self._fail_pending(BackendError("Backend stream closed"))

    def _fail_pending(self, error: BackendError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _dispatch(self, message: dict[str, Any]) -> None:
        if "method" not in message:
            future = self._pending.pop(message.get("id"), None)
            if future is None or future.done():
                return
            if "error" in message:
                err = message["error"] or {}
                future.set_exception(
                    BackendError(err.get("message", "Backend error"), err.get("code"), err.get("data"))
                )
            else:
                future.set_result(message.get("result"))
            return

        if "id" in message:
            result = self._handle_server_request(message["method"], message.get("params") or {})
            self._write_message({"jsonrpc": "2.0", "id": message["id"], "result": result})
        else:
            self._handle_server_notification(message["method"], message.get("params") or {})

    def _handle_server_request(self, method: str, params: dict[str, Any]) -> Any:
        if method == "client/listFiles":
            scope_id = params.get("configScopeId", "")
            return {
                "files": [
                    client_file_dto(path, scope_id, os.path.dirname(path))
                    for path in sorted(self._scope_files.get(scope_id, ()))
                ]
            }
        logger.debug(f"Unhandled SLOOP request {method}, answering null")
        return None

    def _handle_server_notification(self, method: str, params: dict[str, Any]) -> None:
        if method == "client/raiseIssues":
            analysis_id = params.get("analysisId")
            bucket = self._raised_issues.get(analysis_id) if analysis_id else None
            if bucket is None:
                return
            for uri, issues in (params.get("issuesByFileUri") or {}).items():
                for issue in issues or []:
                    issue.setdefault("fileUri", uri)
                    bucket.append(issue)
        elif method == "client/log":
            logger.debug(f"SLOOP: {params.get('message', '')}")

    # -------------------------------------------------------------------------
    # JSON-RPC
    # -------------------------------------------------------------------------

    async def send_request(self, method: str, params: Any, timeout: float | None = None) -> Any:
        """Send a request and wait for its result."""
        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            self._write_message({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})
            await self._process.stdin.drain()
        except (BackendError, OSError) as e:
            self._pending.pop(request_id, None)
            raise BackendError(f"Cannot send {method}: {e}") from e
        try:
            return await asyncio.wait_for(future, timeout or self.config.request_timeout_seconds)
        finally:
            self._pending.pop(request_id, None)

    def send_notification(self, method: str, params: Any) -> None:
        """Send a notification; the backend never answers these."""
        self._write_message({"jsonrpc": "2.0", "method": method, "params": params})

    # -------------------------------------------------------------------------
    # AnalysisBackend
    # -------------------------------------------------------------------------

    def register_scope(self, scope_id: str, metadata: dict[str, Any]) -> None:
        self.send_notification(
            "configurationScope/didAddConfigurationScopes",
            {
                "addedScopes": [
                    {
                        "id": scope_id,
                        "parentId": None,
                        "bindable": False,
                        "name": metadata.get("name", scope_id),
                        "binding": None,
                    }
                ]
            },
        )

    def mark_file_open(self, scope_id: str, file_uri: str) -> None:
        self.send_notification(
            "file/didOpenFile",
            {"configurationScopeId": scope_id, "fileUri": file_uri},
        )

    def notify_filesystem_changed(self, changes: dict[str, list[dict[str, Any]]]) -> None:
        self.send_notification("file/didUpdateFileSystem", changes)

    async def analyze(self, scope_id: str, file_paths: list[str]) -> list[dict[str, Any]]:
        analysis_id = str(uuid.uuid4())
        self._scope_files[scope_id].update(str(Path(p).absolute()) for p in file_paths)
        self._raised_issues[analysis_id] = []
        try:
            result = await self.send_request(
                "analysis/analyzeFilesAndTrack",
                {
                    "configurationScopeId": scope_id,
                    "analysisId": analysis_id,
                    "filesToAnalyze": [file_uri(p) for p in file_paths],
                    "extraProperties": {},
                    "shouldFetchServerIssues": False,
                    "startTime": int(time.time() * 1000),
                },
            )
            collected = self._raised_issues[analysis_id]
        finally:
            self._raised_issues.pop(analysis_id, None)

        if isinstance(result, dict) and result.get("rawIssues"):
            return list(result["rawIssues"])
        return collected
