"""SonarLint MCP - SonarLint analysis and quick fixes via Model Context Protocol."""

__version__ = "0.1.0"

from sonarlint_mcp.errors import (
    BackendUnavailableError,
    IssueNotFoundError,
    NoQuickFixAvailableError,
    SonarLintMcpError,
    SourceFileNotFoundError,
)
from sonarlint_mcp.models import FixReport, Issue, Severity

__all__ = [
    "BackendUnavailableError",
    "FixReport",
    "Issue",
    "IssueNotFoundError",
    "NoQuickFixAvailableError",
    "Severity",
    "SonarLintMcpError",
    "SourceFileNotFoundError",
]
