"""
Pydantic models for the SonarLint MCP server.

This module defines the records exchanged between the analysis backend, the
quick-fix engine and MCP clients: severities, issues, quick fixes, text edits,
and the outcome/report structures produced when fixes are applied.

Raw backend payloads are loosely structured. Each model that is built from
backend data exposes a ``from_backend`` classmethod which is the single place
where backend field names and their defaults are interpreted:

- missing line defaults to 1 (display) and is kept as unresolved for ordering
- missing column defaults to 0
- missing severity defaults to MAJOR
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """
    Issue severity levels reported by the backend.

    Ordered from least to most severe: INFO < MINOR < MAJOR < CRITICAL < BLOCKER.
    """

    INFO = "INFO"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"
    BLOCKER = "BLOCKER"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER[self]

    @classmethod
    def parse(cls, value: Any) -> Severity:
        """Parse a backend severity value, defaulting to MAJOR."""
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.MAJOR


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.MINOR: 1,
    Severity.MAJOR: 2,
    Severity.CRITICAL: 3,
    Severity.BLOCKER: 4,
}

# Order used when grouping issues for reports
SEVERITY_REPORT_ORDER: list[Severity] = sorted(
    SEVERITY_ORDER, key=SEVERITY_ORDER.__getitem__, reverse=True
)


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


class TextEdit(BaseModel):
    """
    A positional replacement inside one file.

    Lines are 1-based, columns are 0-based offsets. The span covers
    ``[start_column, end_column)`` when both ends are on the same line.

    Attributes:
        start_line: First line touched by the edit.
        start_column: Offset in ``start_line`` where the replacement begins.
        end_line: Last line touched by the edit.
        end_column: Offset in ``end_line`` where the retained suffix begins.
            ``None`` means the edit runs to the end of ``end_line``.
        new_text: Replacement text. Empty for deletions, may span lines.

    Coordinates are kept as the backend sent them; ``apply_text_edit``
    rejects those that do not fit the file.
    """

    start_line: int = Field(..., description="1-based start line")
    start_column: int = Field(default=0, description="0-based start column")
    end_line: int = Field(..., description="1-based end line")
    end_column: Optional[int] = Field(
        default=None,
        description="0-based end column; None runs to end of line",
    )
    new_text: str = Field(default="", description="Replacement text")

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.start_line, self.start_column)

    @classmethod
    def from_backend(cls, raw: dict[str, Any]) -> TextEdit:
        text_range = raw.get("range") or {}
        start_line = text_range.get("startLine") or 1
        return cls(
            start_line=start_line,
            start_column=text_range.get("startLineOffset") or 0,
            end_line=text_range.get("endLine") or start_line,
            end_column=text_range.get("endLineOffset"),
            new_text=raw.get("newText") or "",
        )


class Fix(BaseModel):
    """
    A quick fix: a description plus edits computed against one file snapshot.
    """

    description: str = Field(default="Apply fix", description="What the fix does")
    edits: list[TextEdit] = Field(default_factory=list)

    @classmethod
    def from_backend(cls, raw: dict[str, Any]) -> Fix:
        file_edits = _first_present(raw, "inputFileEdits", "fileEdits") or []
        edits = [
            TextEdit.from_backend(edit)
            for file_edit in file_edits
            for edit in (file_edit.get("textEdits") or [])
        ]
        return cls(description=raw.get("message") or "Apply fix", edits=edits)


class Issue(BaseModel):
    """
    A single finding reported by the analysis backend.

    Attributes:
        rule: Rule key, e.g. ``javascript:S3504``.
        severity: Issue severity.
        start_line: 1-based start line, or None when the backend reported no
            position. Use ``line`` for display.
        start_column: 0-based start column.
        end_line: 1-based end line.
        end_column: 0-based end column.
        message: Human-readable description.
        fixes: Candidate quick fixes, in backend order.
        file_uri: ``file://`` URI of the file the backend reported the issue
            for, used to split multi-file analyses. Not serialized.
    """

    rule: str = Field(default="unknown", description="Rule key")
    severity: Severity = Field(default=Severity.MAJOR)
    start_line: Optional[int] = Field(default=None)
    start_column: int = Field(default=0)
    end_line: int = Field(default=1)
    end_column: int = Field(default=0)
    message: str = Field(default="No description")
    fixes: list[Fix] = Field(default_factory=list)
    file_uri: Optional[str] = Field(default=None, exclude=True)

    @property
    def line(self) -> int:
        return self.start_line or 1

    @property
    def first_fix(self) -> Fix | None:
        return self.fixes[0] if self.fixes else None

    @property
    def has_applicable_fix(self) -> bool:
        fix = self.first_fix
        return fix is not None and bool(fix.edits)

    @classmethod
    def from_backend(cls, raw: dict[str, Any]) -> Issue:
        """Build an Issue from a raw backend issue dict."""
        text_range = raw.get("textRange") or {}
        start_line = _first_present(text_range, "startLine") or raw.get("startLine")
        start_column = (
            _first_present(text_range, "startLineOffset")
            or raw.get("startColumn")
            or 0
        )
        end_line = (
            _first_present(text_range, "endLine")
            or raw.get("endLine")
            or start_line
            or 1
        )
        end_column = (
            _first_present(text_range, "endLineOffset")
            or raw.get("endColumn")
            or start_column
        )
        return cls(
            rule=raw.get("ruleKey") or "unknown",
            severity=Severity.parse(raw.get("severity")),
            start_line=start_line,
            start_column=start_column,
            end_line=end_line,
            end_column=end_column,
            message=_first_present(raw, "primaryMessage", "message") or "No description",
            fixes=[Fix.from_backend(fix) for fix in (raw.get("quickFixes") or [])],
            file_uri=raw.get("fileUri"),
        )


class AnalysisSummary(BaseModel):
    """Issue totals for one analysis."""

    total: int = Field(default=0, ge=0)
    by_severity: dict[str, int] = Field(
        default_factory=lambda: {s.value: 0 for s in SEVERITY_REPORT_ORDER}
    )
    fixable: int = Field(default=0, ge=0, description="Issues with an applicable quick fix")

    @classmethod
    def from_issues(cls, issues: list[Issue]) -> AnalysisSummary:
        summary = cls(total=len(issues))
        for issue in issues:
            summary.by_severity[issue.severity.value] += 1
            if issue.has_applicable_fix:
                summary.fixable += 1
        return summary


class AnalysisResult(BaseModel):
    """Result of analyzing a single file, stored in the session cache."""

    file_path: str = Field(..., min_length=1)
    language: str = Field(...)
    issues: list[Issue] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)


class BatchSummary(BaseModel):
    """Totals across the files of one batch analysis."""

    total_files: int = Field(default=0, ge=0)
    total_issues: int = Field(default=0, ge=0)
    files_with_issues: int = Field(default=0, ge=0)
    by_severity: dict[str, int] = Field(
        default_factory=lambda: {s.value: 0 for s in SEVERITY_REPORT_ORDER}
    )

    @classmethod
    def from_results(cls, results: list[AnalysisResult]) -> BatchSummary:
        summary = cls(total_files=len(results))
        for result in results:
            summary.total_issues += result.summary.total
            if result.summary.total:
                summary.files_with_issues += 1
            for severity, count in result.summary.by_severity.items():
                summary.by_severity[severity] += count
        return summary


class BatchAnalysisResult(BaseModel):
    """Result of analyzing several files in one call."""

    files: list[AnalysisResult] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)


class AppliedFix(BaseModel):
    """A quick fix that was written to disk."""

    line: int
    rule: str
    description: str


class FailedFix(BaseModel):
    """A quick fix that could not be applied."""

    line: int
    rule: str
    error: str


class ApplyOutcome(BaseModel):
    """
    Outcome of applying planned fixes to one file.

    ``applied`` and ``failed`` keep application order; ``remaining`` holds the
    issues reported by the analysis that followed the writes.
    """

    applied: list[AppliedFix] = Field(default_factory=list)
    failed: list[FailedFix] = Field(default_factory=list)
    remaining: list[Issue] = Field(default_factory=list)


class FixReport(BaseModel):
    """
    Report returned by ``apply_all_quick_fixes``.

    Attributes:
        file_path: The file that was fixed.
        applied_count: Number of fixes written.
        failed_count: Number of fixes that failed.
        remaining_count: Issues still reported after the second analysis.
        applied: Applied fixes, in application order.
        failed: Failed fixes, in application order.
        remaining_by_severity: Remaining issues grouped BLOCKER first;
            severities without issues are omitted.
        no_fixes_available: True when no issue carried an applicable fix and
            the file was left untouched.
        summary: One-line description of the outcome.
    """

    file_path: str
    applied_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)
    remaining_count: int = Field(default=0, ge=0)
    applied: list[AppliedFix] = Field(default_factory=list)
    failed: list[FailedFix] = Field(default_factory=list)
    remaining_by_severity: dict[str, list[Issue]] = Field(default_factory=dict)
    no_fixes_available: bool = False
    summary: str = ""


class SingleFixResult(BaseModel):
    """Result of ``apply_quick_fix``."""

    file_path: str
    line: int
    rule: str
    applied_description: str
