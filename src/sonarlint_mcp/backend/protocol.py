"""Contract between the server and the static-analysis backend."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Protocol

from sonarlint_mcp.language import detect_language, language_to_backend


class BackendError(Exception):
    """Raised when the backend rejects a request or the transport fails."""

    def __init__(self, message: str, code: int | None = None, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(message)


class AnalysisBackend(Protocol):
    """
    Operations the quick-fix engine consumes from the backend.

    Notifications (``register_scope``, ``mark_file_open`` and
    ``notify_filesystem_changed``) are fire-and-forget: the backend sends no
    acknowledgment, so callers cannot know when they have been processed.
    """

    def register_scope(self, scope_id: str, metadata: dict[str, Any]) -> None: ...

    def mark_file_open(self, scope_id: str, file_uri: str) -> None: ...

    def notify_filesystem_changed(self, changes: dict[str, list[dict[str, Any]]]) -> None: ...

    async def analyze(self, scope_id: str, file_paths: list[str]) -> list[dict[str, Any]]: ...


def file_uri(file_path: str) -> str:
    """Return the ``file://`` URI the backend uses to identify a file."""
    return Path(file_path).absolute().as_uri()


def client_file_dto(
    file_path: str,
    scope_id: str,
    project_root: str,
    content: str | None = None,
) -> dict[str, Any]:
    """
    Describe a file to the backend.

    When ``content`` is given the backend treats the file as dirty and uses
    the content instead of re-reading the file from disk.
    """
    return {
        "uri": file_uri(file_path),
        "ideRelativePath": os.path.relpath(file_path, project_root),
        "configScopeId": scope_id,
        "isTest": None,
        "charset": "UTF-8",
        "fsPath": file_path,
        "content": content,
        "detectedLanguage": language_to_backend(detect_language(file_path)),
        "isUserDefined": True,
    }
