"""MCP tools for analysis and quick-fix application."""

from sonarlint_mcp.tools.analyzer import (
    analyze_content,
    analyze_file,
    analyze_files,
    filter_issues,
    retrieve_issues,
)
from sonarlint_mcp.tools.fixer import (
    apply_all_quick_fixes,
    apply_fixes,
    apply_quick_fix,
    apply_text_edit,
)
from sonarlint_mcp.tools.notifier import notify_file_changed
from sonarlint_mcp.tools.planner import plan_fixes
from sonarlint_mcp.tools.reconciler import reconcile

__all__ = [
    "analyze_content",
    "analyze_file",
    "analyze_files",
    "apply_all_quick_fixes",
    "apply_fixes",
    "apply_quick_fix",
    "apply_text_edit",
    "filter_issues",
    "notify_file_changed",
    "plan_fixes",
    "reconcile",
    "retrieve_issues",
]
