"""Tests for backend change notification."""

import asyncio

import pytest

from sonarlint_mcp.backend.protocol import file_uri
from sonarlint_mcp.config import ServerConfig
from sonarlint_mcp.errors import NotificationError
from sonarlint_mcp.state import ServerContext
from sonarlint_mcp.tools.notifier import notify_file_changed, send_change_notification


def test_marks_open_before_notifying(context, fake_backend, sample_file):
    scope_id = context.scopes.resolve(str(sample_file))

    send_change_notification(context, str(sample_file), scope_id)

    assert fake_backend.call_names() == ["register_scope", "mark_file_open", "notify_filesystem_changed"]
    assert fake_backend.calls[1][1] == file_uri(str(sample_file))
    assert context.scopes.open_files(scope_id) == {str(sample_file)}


def test_change_carries_content(context, fake_backend, tmp_path):
    path = tmp_path / "a.js"
    path.write_bytes(b"const a = 1;\r\n")
    scope_id = context.scopes.resolve(str(path))

    send_change_notification(context, str(path), scope_id)

    changes = fake_backend.calls[-1][1]
    assert changes["addedFiles"] == []
    assert changes["removedFiles"] == []
    (dto,) = changes["changedFiles"]
    assert dto["content"] == "const a = 1;\r\n"
    assert dto["ideRelativePath"] == "a.js"
    assert dto["configScopeId"] == scope_id
    assert dto["detectedLanguage"] == "JS"
    assert dto["isUserDefined"] is True


def test_backend_failure_raises_notification_error(context, fake_backend, sample_file):
    fake_backend.fail_notifications = True
    scope_id = context.scopes.resolve(str(sample_file))

    with pytest.raises(NotificationError):
        send_change_notification(context, str(sample_file), scope_id)


@pytest.mark.asyncio
async def test_notify_swallows_errors_and_still_waits(fake_backend, sample_file, monkeypatch):
    context = ServerContext(config=ServerConfig(settle_interval_seconds=0.25), backend=fake_backend)
    fake_backend.fail_notifications = True
    scope_id = context.scopes.resolve(str(sample_file))
    waits = []

    async def fake_sleep(delay):
        waits.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    await notify_file_changed(context, str(sample_file), scope_id)

    assert waits == [0.25]
    assert "notify_filesystem_changed" not in fake_backend.call_names()
