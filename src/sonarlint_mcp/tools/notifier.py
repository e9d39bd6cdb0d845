"""
Backend cache invalidation after a file has been written.

The backend keeps its own copy of every file it has analyzed. After the
server writes a fix it must:

1. mark the file as open, since the backend ignores filesystem events for
   closed files;
2. send a filesystem-changed notification that carries the new content,
   which takes precedence over the backend's disk read;
3. wait the configured settle interval, because the notification is
   asynchronous and never acknowledged.

Failures are logged and swallowed: a missed notification only risks a stale
next analysis.
"""

from __future__ import annotations

import asyncio
import logging
import os

from sonarlint_mcp.backend.protocol import client_file_dto, file_uri
from sonarlint_mcp.errors import NotificationError
from sonarlint_mcp.state import ServerContext

logger = logging.getLogger(__name__)


def _read_content(file_path: str) -> str:
    with open(file_path, encoding="utf-8", newline="") as f:
        return f.read()


def send_change_notification(context: ServerContext, file_path: str, scope_id: str) -> None:
    """
    Mark ``file_path`` open and report its new content to the backend.

    Raises:
        NotificationError: If the backend cannot be notified.
    """
    backend = context.backend
    if backend is None:
        raise NotificationError("Backend is not running", file_path)

    project_root = context.scopes.root_for(scope_id) or os.path.dirname(os.path.abspath(file_path))
    try:
        backend.mark_file_open(scope_id, file_uri(file_path))
        context.scopes.mark_open(scope_id, file_path)

        content = _read_content(file_path)
        backend.notify_filesystem_changed(
            {
                "addedFiles": [],
                "changedFiles": [client_file_dto(file_path, scope_id, project_root, content=content)],
                "removedFiles": [],
            }
        )
    except Exception as e:
        raise NotificationError(f"Failed to notify file system update for {file_path}: {e}", file_path) from e

    logger.info(
        f"Notified file system update: {file_path}",
        extra={"scope_id": scope_id, "project_root": project_root, "content_length": len(content)},
    )


async def notify_file_changed(context: ServerContext, file_path: str, scope_id: str) -> None:
    """Best-effort change notification followed by the settle interval."""
    try:
        send_change_notification(context, file_path, scope_id)
    except NotificationError as e:
        logger.warning(e.message)

    settle = context.config.settle_interval_seconds
    logger.debug(f"Waiting {settle:.3f}s for the backend to process the notification")
    await asyncio.sleep(settle)
