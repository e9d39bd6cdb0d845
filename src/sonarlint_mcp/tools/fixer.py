"""
Quick-fix application for issues reported by the SonarLint backend.

This module provides the apply_quick_fix and apply_all_quick_fixes MCP tools:
they re-analyze the file, apply the backend's quick-fix edits directly to the
file on disk, keep the backend's cached copy of the file in sync and, for the
batch tool, report which fixes were applied and which issues remain.

Application rules:
- Only the first quick fix of an issue is ever applied.
- Issues are applied from the highest start line to the lowest, and the edits
  of one fix from the last position to the first, so that already applied
  edits never shift the coordinates of pending ones.
- Every issue is applied against the file as written by the previous one;
  the loop is strictly sequential.
- A failing issue is recorded and skipped; it never aborts the batch, and
  nothing already written is rolled back.
"""

from __future__ import annotations

import logging

from sonarlint_mcp.errors import (
    EditApplicationError,
    IssueNotFoundError,
    NoQuickFixAvailableError,
)
from sonarlint_mcp.models import (
    AppliedFix,
    ApplyOutcome,
    FailedFix,
    Fix,
    FixReport,
    Issue,
    SingleFixResult,
    TextEdit,
)
from sonarlint_mcp.state import ServerContext, get_context
from sonarlint_mcp.tools.analyzer import require_file, resolve_scope, retrieve_issues
from sonarlint_mcp.tools.notifier import notify_file_changed
from sonarlint_mcp.tools.planner import plan_fixes
from sonarlint_mcp.tools.reconciler import no_fixes_report, reconcile

logger = logging.getLogger(__name__)


# =============================================================================
# Line buffer editing
# =============================================================================


def read_lines(file_path: str) -> list[str]:
    """Read a file into a list of lines, keeping line endings intact."""
    with open(file_path, encoding="utf-8", newline="") as f:
        return f.read().split("\n")


def write_lines(file_path: str, lines: list[str]) -> None:
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write("\n".join(lines))


def _content_length(line: str) -> int:
    # CRLF files keep "\r" at the end of each line
    return len(line) - 1 if line.endswith("\r") else len(line)


def apply_text_edit(lines: list[str], edit: TextEdit) -> None:
    """
    Apply one edit to ``lines`` in place.

    A same-line edit replaces ``[start_column, end_column)``. A multi-line
    edit keeps the start line's prefix and the end line's suffix around the
    new text and replaces the whole range with that single line.

    Raises:
        EditApplicationError: If the edit does not fit the buffer.
    """
    start = edit.start_line - 1
    end = edit.end_line - 1
    details = {"start_line": edit.start_line, "end_line": edit.end_line, "line_count": len(lines)}

    if start < 0 or end < start or end >= len(lines):
        raise EditApplicationError(
            f"Edit range {edit.start_line}-{edit.end_line} is outside the file ({len(lines)} lines)",
            details,
        )

    start_text = lines[start]
    end_text = lines[end]
    end_column = _content_length(end_text) if edit.end_column is None else edit.end_column

    if (
        edit.start_column < 0
        or end_column < 0
        or edit.start_column > len(start_text)
        or end_column > len(end_text)
    ):
        raise EditApplicationError(
            f"Edit columns {edit.start_column}-{end_column} do not fit line {edit.start_line}",
            details,
        )
    if start == end and edit.start_column > end_column:
        raise EditApplicationError(
            f"Edit on line {edit.start_line} ends before it starts ({edit.start_column} > {end_column})",
            details,
        )

    if start == end:
        lines[start] = start_text[: edit.start_column] + edit.new_text + start_text[end_column:]
    else:
        lines[start : end + 1] = [start_text[: edit.start_column] + edit.new_text + end_text[end_column:]]


def apply_fix_to_lines(lines: list[str], fix: Fix) -> None:
    """Apply all edits of ``fix``, last position first."""
    for edit in sorted(fix.edits, key=lambda e: e.sort_key, reverse=True):
        logger.debug(
            f"Applying edit at {edit.start_line}:{edit.start_column} to {edit.end_line}:{edit.end_column}"
        )
        apply_text_edit(lines, edit)


def apply_issue_fix(file_path: str, issue: Issue) -> Fix:
    """
    Apply the first quick fix of ``issue`` to the file on disk.

    Returns:
        The fix that was written.

    Raises:
        NoQuickFixAvailableError: If the issue has no applicable fix.
        EditApplicationError: If an edit does not fit the file.
        OSError: If the file cannot be read or written.
    """
    fix = issue.first_fix
    if fix is None or not fix.edits:
        raise NoQuickFixAvailableError(file_path, issue.line, issue.rule)

    lines = read_lines(file_path)
    apply_fix_to_lines(lines, fix)
    write_lines(file_path, lines)
    return fix


def apply_fixes(file_path: str, ordered_issues: list[Issue]) -> ApplyOutcome:
    """
    Apply the fixes of ``ordered_issues`` one after another.

    ``ordered_issues`` must already be in application order (see
    ``plan_fixes``). Each issue reads the file as left by the previous one.

    Returns:
        ApplyOutcome with applied and failed entries in application order.
    """
    outcome = ApplyOutcome()

    for issue in ordered_issues:
        logger.info(f"Applying fix for {issue.rule} at line {issue.line}")
        try:
            fix = apply_issue_fix(file_path, issue)
        except (EditApplicationError, NoQuickFixAvailableError, OSError, UnicodeError) as e:
            error = e.message if isinstance(e, EditApplicationError) else str(e)
            logger.warning(f"Failed to apply fix for {issue.rule} at line {issue.line}: {error}")
            outcome.failed.append(FailedFix(line=issue.line, rule=issue.rule, error=error))
            continue

        outcome.applied.append(AppliedFix(line=issue.line, rule=issue.rule, description=fix.description))

    return outcome


# =============================================================================
# MCP tools
# =============================================================================


async def apply_quick_fix(
    file_path: str,
    line: int,
    rule: str,
    context: ServerContext | None = None,
) -> SingleFixResult:
    """
    Apply the quick fix of one issue identified by line and rule.

    The file is re-analyzed first so the fix is computed against its current
    content.

    Args:
        file_path: Absolute path of the file to fix.
        line: Start line of the issue.
        rule: Rule key of the issue, e.g. ``javascript:S3504``.
        context: Server context; defaults to the process-wide one.

    Raises:
        SourceFileNotFoundError: If the file does not exist.
        IssueNotFoundError: If no issue has that exact line and rule.
        NoQuickFixAvailableError: If the issue has no quick fix.
        EditApplicationError: If the fix does not fit the file.
        BackendUnavailableError: If the backend fails.
    """
    context = context or get_context()
    require_file(file_path)
    logger.info(f"Applying quick fix for {rule} at {file_path}:{line}")

    scope_id = await resolve_scope(context, file_path)
    issues = await retrieve_issues(context, scope_id, [file_path])

    target = next(
        (issue for issue in issues if (issue.start_line or 0) == line and issue.rule == rule),
        None,
    )
    if target is None:
        raise IssueNotFoundError(file_path, line, rule)

    fix = apply_issue_fix(file_path, target)
    await notify_file_changed(context, file_path, scope_id)

    return SingleFixResult(
        file_path=file_path,
        line=line,
        rule=rule,
        applied_description=fix.description,
    )


async def apply_all_quick_fixes(
    file_path: str,
    context: ServerContext | None = None,
) -> FixReport:
    """
    Apply every available quick fix in a file and report what remains.

    Steps: analyze, plan, apply each fix, notify the backend, wait for it to
    settle, re-analyze and reconcile. Partial success is a normal result;
    failed fixes are listed in the report.

    Args:
        file_path: Absolute path of the file to fix.
        context: Server context; defaults to the process-wide one.

    Raises:
        SourceFileNotFoundError: If the file does not exist.
        BackendUnavailableError: If either analysis fails.
    """
    context = context or get_context()
    require_file(file_path)
    logger.info(f"Applying all quick fixes for {file_path}")

    scope_id = await resolve_scope(context, file_path)
    issues = await retrieve_issues(context, scope_id, [file_path])

    planned = plan_fixes(issues)
    logger.info(
        f"Found {len(planned)} issues with quick fixes",
        extra={"file_path": file_path, "total_issues": len(issues)},
    )
    if not planned:
        return no_fixes_report(file_path, issues)

    outcome = apply_fixes(file_path, planned)

    await notify_file_changed(context, file_path, scope_id)

    outcome.remaining = await retrieve_issues(context, scope_id, [file_path])
    report = reconcile(file_path, outcome, outcome.remaining)
    logger.info(
        "Quick fixes applied",
        extra={
            "file_path": file_path,
            "applied": report.applied_count,
            "failed": report.failed_count,
            "remaining": report.remaining_count,
        },
    )
    return report
