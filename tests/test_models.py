"""Tests for backend payload parsing and model helpers."""

from sonarlint_mcp.models import (
    SEVERITY_REPORT_ORDER,
    AnalysisSummary,
    Fix,
    Issue,
    Severity,
    TextEdit,
)


def test_severity_order():
    ranks = [s.rank for s in (Severity.INFO, Severity.MINOR, Severity.MAJOR, Severity.CRITICAL, Severity.BLOCKER)]
    assert ranks == sorted(ranks)
    assert [s.value for s in SEVERITY_REPORT_ORDER] == ["BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO"]


def test_severity_parse():
    assert Severity.parse("critical") is Severity.CRITICAL
    assert Severity.parse(None) is Severity.MAJOR
    assert Severity.parse("HIGH") is Severity.MAJOR


def test_issue_defaults_for_missing_fields():
    issue = Issue.from_backend({})
    assert issue.rule == "unknown"
    assert issue.severity is Severity.MAJOR
    assert issue.start_line is None
    assert issue.line == 1
    assert issue.start_column == 0
    assert issue.message == "No description"
    assert issue.fixes == []
    assert issue.has_applicable_fix is False


def test_issue_from_text_range():
    issue = Issue.from_backend(
        {
            "ruleKey": "javascript:S3504",
            "severity": "CRITICAL",
            "primaryMessage": "Unexpected var",
            "textRange": {"startLine": 3, "startLineOffset": 2, "endLine": 3, "endLineOffset": 5},
        }
    )
    assert (issue.start_line, issue.start_column, issue.end_line, issue.end_column) == (3, 2, 3, 5)
    assert issue.message == "Unexpected var"


def test_issue_flat_position_fields():
    issue = Issue.from_backend({"ruleKey": "r", "startLine": 8, "startColumn": 4, "message": "m"})
    assert issue.start_line == 8
    assert issue.start_column == 4
    assert issue.end_line == 8
    assert issue.message == "m"


def test_fix_flattens_file_edits():
    fix = Fix.from_backend(
        {
            "message": "Replace with const",
            "fileEdits": [
                {"textEdits": [{"range": {"startLine": 2, "startLineOffset": 2, "endLine": 2, "endLineOffset": 5}, "newText": "const"}]},
                {"textEdits": [{"range": {"startLine": 1}, "newText": ""}]},
            ],
        }
    )
    assert fix.description == "Replace with const"
    assert len(fix.edits) == 2
    assert fix.edits[0] == TextEdit(start_line=2, start_column=2, end_line=2, end_column=5, new_text="const")
    assert fix.edits[1].end_line == 1
    assert fix.edits[1].end_column is None


def test_fix_without_edits_is_not_applicable():
    issue = Issue.from_backend({"ruleKey": "r", "quickFixes": [{"message": "noop"}]})
    assert issue.first_fix is not None
    assert issue.first_fix.description == "noop"
    assert issue.has_applicable_fix is False


def test_summary_counts():
    issues = [
        Issue(rule="a", severity=Severity.MAJOR),
        Issue(rule="b", severity=Severity.MAJOR, fixes=[Fix(edits=[TextEdit(start_line=1, end_line=1)])]),
        Issue(rule="c", severity=Severity.INFO),
    ]
    summary = AnalysisSummary.from_issues(issues)
    assert summary.total == 3
    assert summary.by_severity["MAJOR"] == 2
    assert summary.by_severity["INFO"] == 1
    assert summary.by_severity["BLOCKER"] == 0
    assert summary.fixable == 1


def test_out_of_range_coordinates_still_parse():
    issue = Issue.from_backend(
        {
            "ruleKey": "r",
            "textRange": {"startLine": 2, "startLineOffset": -1},
            "quickFixes": [
                {"message": "m", "inputFileEdits": [{"textEdits": [{"range": {"startLine": 2, "startLineOffset": -1, "endLine": 2, "endLineOffset": 3}, "newText": "x"}]}]}
            ],
        }
    )
    assert issue.start_column == -1
    assert issue.first_fix.edits[0].start_column == -1
    assert issue.has_applicable_fix is True
