"""Builds the report of an apply-all run from its outcome and the re-analysis."""

from __future__ import annotations

from sonarlint_mcp.models import (
    SEVERITY_REPORT_ORDER,
    ApplyOutcome,
    FixReport,
    Issue,
)


def group_by_severity(issues: list[Issue]) -> dict[str, list[Issue]]:
    """Group issues BLOCKER first down to INFO, omitting empty groups."""
    grouped: dict[str, list[Issue]] = {}
    for severity in SEVERITY_REPORT_ORDER:
        matching = [issue for issue in issues if issue.severity == severity]
        if matching:
            grouped[severity.value] = matching
    return grouped


def reconcile(file_path: str, outcome: ApplyOutcome, post_issues: list[Issue]) -> FixReport:
    """
    Combine applied/failed fixes with the issues still reported.

    No deduplication is done against the applied list: an issue the backend
    still reports after its fix was written counts as remaining.
    """
    report = FixReport(
        file_path=file_path,
        applied_count=len(outcome.applied),
        failed_count=len(outcome.failed),
        remaining_count=len(post_issues),
        applied=list(outcome.applied),
        failed=list(outcome.failed),
        remaining_by_severity=group_by_severity(post_issues),
    )

    parts = [f"Applied {report.applied_count} fixes"]
    if report.failed_count:
        parts.append(f"{report.failed_count} failed")
    if report.remaining_count:
        parts.append(f"{report.remaining_count} issues remain and require manual fixing")
    else:
        parts.append("all issues resolved")
    report.summary = ", ".join(parts)
    return report


def no_fixes_report(file_path: str, issues: list[Issue]) -> FixReport:
    """Report for a file where no issue carries an applicable quick fix."""
    report = reconcile(file_path, ApplyOutcome(), issues)
    report.no_fixes_available = True
    report.summary = (
        f"No quick fixes available. Total issues: {len(issues)}. "
        "None of the issues in this file have automated quick fixes; they must be fixed manually."
    )
    return report
