"""Tests for the SLOOP JSON-RPC bridge that do not need a Java process."""

import asyncio
import json

import pytest

from sonarlint_mcp.backend.protocol import BackendError
from sonarlint_mcp.backend.sloop import SloopBridge
from sonarlint_mcp.config import ServerConfig


def _frame(message):
    body = json.dumps(message).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body


@pytest.fixture
def bridge(tmp_path):
    return SloopBridge(ServerConfig(backend_home=tmp_path))


@pytest.mark.asyncio
async def test_read_message(bridge):
    stream = asyncio.StreamReader()
    stream.feed_data(_frame({"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}))
    stream.feed_eof()

    assert await bridge._read_message(stream) == {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}
    assert await bridge._read_message(stream) is None


@pytest.mark.asyncio
async def test_read_message_without_length(bridge):
    stream = asyncio.StreamReader()
    stream.feed_data(b"Content-Type: application/json\r\n\r\n{}")
    stream.feed_eof()

    with pytest.raises(BackendError):
        await bridge._read_message(stream)


@pytest.mark.asyncio
async def test_dispatch_resolves_pending_requests(bridge):
    loop = asyncio.get_running_loop()
    ok = loop.create_future()
    failed = loop.create_future()
    bridge._pending = {1: ok, 2: failed}

    bridge._dispatch({"jsonrpc": "2.0", "id": 1, "result": [1, 2]})
    bridge._dispatch({"jsonrpc": "2.0", "id": 2, "error": {"code": -32601, "message": "no such method"}})

    assert ok.result() == [1, 2]
    with pytest.raises(BackendError) as exc_info:
        failed.result()
    assert exc_info.value.code == -32601
    assert bridge._pending == {}


@pytest.mark.asyncio
async def test_analyze_collects_raised_issues(bridge, tmp_path):
    path = str(tmp_path / "a.js")
    sent = []

    async def fake_request(method, params, timeout=None):
        sent.append((method, params))
        bridge._dispatch(
            {
                "jsonrpc": "2.0",
                "method": "client/raiseIssues",
                "params": {
                    "configurationScopeId": params["configurationScopeId"],
                    "analysisId": params["analysisId"],
                    "issuesByFileUri": {params["filesToAnalyze"][0]: [{"ruleKey": "javascript:S3504"}]},
                    "isIntermediatePublication": False,
                },
            }
        )
        return {"failedAnalysisFiles": []}

    bridge.send_request = fake_request

    issues = await bridge.analyze("scope-1", [path])

    assert issues == [{"ruleKey": "javascript:S3504", "fileUri": sent[0][1]["filesToAnalyze"][0]}]
    assert sent[0][0] == "analysis/analyzeFilesAndTrack"
    assert bridge._raised_issues == {}
    assert bridge._handle_server_request("client/listFiles", {"configScopeId": "scope-1"})["files"][0]["fsPath"] == path


def test_unknown_server_request_gets_null(bridge):
    assert bridge._handle_server_request("client/showMessage", {}) is None


def test_notifications_require_running_process(bridge):
    with pytest.raises(BackendError):
        bridge.mark_file_open("scope-1", "file:///tmp/a.js")


class _SilentStdin:
    def __init__(self):
        self.written = []

    def write(self, data):
        self.written.append(data)

    async def drain(self):
        pass


class _SilentProcess:
    """A backend process that accepts requests and never answers."""

    returncode = None

    def __init__(self):
        self.stdin = _SilentStdin()
        self.stdout = None


@pytest.mark.asyncio
async def test_timed_out_request_is_forgotten(bridge):
    bridge._process = _SilentProcess()

    with pytest.raises(asyncio.TimeoutError):
        await bridge.send_request("analysis/analyzeFilesAndTrack", {}, timeout=0.01)

    assert bridge._pending == {}
    assert len(bridge._process.stdin.written) == 1


@pytest.mark.asyncio
async def test_read_loop_without_process(bridge):
    with pytest.raises(BackendError):
        await bridge._read_loop()
