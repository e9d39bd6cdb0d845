"""Selection and ordering of issues whose quick fixes will be applied."""

from __future__ import annotations

import logging

from sonarlint_mcp.models import Issue

logger = logging.getLogger(__name__)


def fix_order_key(issue: Issue) -> int:
    """Start line used for ordering; unresolved positions count as line 0."""
    return issue.start_line or 0


def plan_fixes(issues: list[Issue]) -> list[Issue]:
    """
    Return the issues to fix, in the order their fixes must be applied.

    Only issues whose first fix has at least one edit are kept. The result is
    sorted by start line, highest first, so writing a fix never moves the
    lines of a fix still waiting to be applied. The sort is stable: issues on
    the same line keep the backend's order.
    """
    fixable = [issue for issue in issues if issue.has_applicable_fix]
    for issue in fixable:
        logger.debug(
            f"Issue at line {issue.line}: {issue.rule} has {len(issue.fixes)} quick fixes"
        )
    return sorted(fixable, key=fix_order_key, reverse=True)
