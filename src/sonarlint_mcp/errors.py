"""
Exception taxonomy for the SonarLint MCP server.

Every error carries two messages: ``message`` for logs and ``user_message``
for the MCP client, plus a ``recoverable`` flag telling the client whether
retrying the same call can succeed.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class SonarLintMcpError(Exception):
    """Base exception for all server errors."""

    def __init__(self, message: str, user_message: str | None = None, recoverable: bool = False):
        self.message = message
        self.user_message = user_message or message
        self.recoverable = recoverable
        super().__init__(message)


class SourceFileNotFoundError(SonarLintMcpError, FileNotFoundError):
    """Raised before any backend call when a target file does not exist."""

    def __init__(self, file_path: str, *more_paths: str):
        self.file_paths = [file_path, *more_paths]
        self.file_path = file_path
        if not more_paths:
            super().__init__(
                f"File not found: {file_path}",
                f"The file {file_path} does not exist. Please check the path and try again.",
            )
            return
        listing = "\n".join(f"- {path}" for path in self.file_paths)
        super().__init__(
            f"Files not found: {', '.join(self.file_paths)}",
            f"The following files do not exist:\n{listing}",
        )


class InvalidRequestError(SonarLintMcpError):
    """Raised when a tool is called with empty or unusable arguments."""

    pass


class UnsupportedLanguageError(SonarLintMcpError):
    """Raised when no backend analyzer handles the file's extension."""

    def __init__(self, file_path: str, extension: str, supported_extensions: list[str]):
        self.file_path = file_path
        self.extension = extension
        self.supported_extensions = supported_extensions
        super().__init__(
            f"Unknown language for {file_path}",
            f"No analyzer available for {extension or 'extensionless'} files. "
            f"Supported extensions: {', '.join(supported_extensions)}",
        )


class IssueNotFoundError(SonarLintMcpError):
    """Raised when no issue matches (line, rule) in a fresh analysis."""

    def __init__(self, file_path: str, line: int, rule: str):
        self.file_path = file_path
        self.line = line
        self.rule = rule
        super().__init__(
            "Issue not found",
            f"No issue found at line {line} with rule {rule}. "
            "The file may have changed since the last analysis.",
        )


class NoQuickFixAvailableError(SonarLintMcpError):
    """Raised when the matching issue carries no applicable quick fix."""

    def __init__(self, file_path: str, line: int, rule: str):
        self.file_path = file_path
        self.line = line
        self.rule = rule
        super().__init__(
            "No quick fix available",
            f"The issue at line {line} ({rule}) does not have an automated quick fix available.",
        )


class EditApplicationError(SonarLintMcpError):
    """Raised when a text edit does not fit the current file content."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.details = details or {}
        super().__init__(message, recoverable=True)


class NotificationError(SonarLintMcpError):
    """Raised when the backend cannot be told about a file change."""

    def __init__(self, message: str, file_path: str):
        self.file_path = file_path
        super().__init__(message, recoverable=True)


class BackendUnavailableError(SonarLintMcpError):
    """Raised when the analysis backend cannot be started or reached."""

    pass


class ConfigurationError(SonarLintMcpError):
    """Raised when the configuration file is invalid."""

    pass


# =============================================================================
# MCP error formatting
# =============================================================================


def format_tool_error(error: BaseException) -> dict[str, Any]:
    """
    Convert an exception raised by a tool into an MCP error payload.

    Known errors expose their ``user_message``; anything else falls back to
    ``str(error)``.
    """
    if isinstance(error, SonarLintMcpError):
        logger.warning(f"Tool call failed: {error.message}")
        return {
            "error": type(error).__name__,
            "message": error.user_message,
            "recoverable": error.recoverable,
        }

    logger.exception("Unexpected error handling tool call", exc_info=error)
    return {
        "error": type(error).__name__,
        "message": str(error),
        "recoverable": False,
    }
