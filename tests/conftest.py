"""Pytest configuration and fixtures."""

import re
import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure src is on path for tests
root = Path(__file__).resolve().parent.parent
src = root / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from sonarlint_mcp.backend.protocol import BackendError, file_uri  # noqa: E402
from sonarlint_mcp.config import ServerConfig  # noqa: E402
from sonarlint_mcp.state import ServerContext  # noqa: E402

VAR_RULE = "javascript:S3504"
FOR_OF_RULE = "javascript:S4138"
RETURN_RULE = "javascript:S3626"
TODO_RULE = "javascript:S1135"

FOR_OF_PATTERN = re.compile(r"^(\s*)for \(const (\w+) of (\w+)\) \{$")
VAR_PATTERN = re.compile(r"\bvar\b")


def _edit(line: int, start: int, end_line: int, end: int | None, text: str) -> dict[str, Any]:
    text_range: dict[str, Any] = {"startLine": line, "startLineOffset": start, "endLine": end_line}
    if end is not None:
        text_range["endLineOffset"] = end
    return {"range": text_range, "newText": text}


def _issue(rule: str, severity: str, line: int, column: int, message: str, uri: str, fixes=None):
    quick_fixes = []
    for description, edits in fixes or []:
        quick_fixes.append(
            {"message": description, "inputFileEdits": [{"target": uri, "textEdits": edits}]}
        )
    return {
        "fileUri": uri,
        "ruleKey": rule,
        "severity": severity,
        "primaryMessage": message,
        "textRange": {
            "startLine": line,
            "startLineOffset": column,
            "endLine": line,
            "endLineOffset": column + 1,
        },
        "quickFixes": quick_fixes,
    }


class FakeBackend:
    """
    In-memory stand-in for the SLOOP backend.

    Like the real backend it caches file content on first analysis and only
    refreshes the cache from change notifications for files marked open.
    Its rules detect ``var`` declarations, ``for...of`` loops, bare
    ``return;`` statements and TODO comments.
    """

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.scopes: dict[str, dict[str, Any]] = {}
        self.open_files: set[tuple[str, str]] = set()
        self.cache: dict[str, str] = {}
        self.broken_rules: set[str] = set()
        self.negative_offset_rules: set[str] = set()
        self.fail_analysis = False
        self.fail_notifications = False

    def register_scope(self, scope_id, metadata):
        self.calls.append(("register_scope", scope_id))
        self.scopes[scope_id] = metadata

    def mark_file_open(self, scope_id, file_uri):
        if self.fail_notifications:
            raise BackendError("Backend process is not running")
        self.calls.append(("mark_file_open", file_uri))
        self.open_files.add((scope_id, file_uri))

    def notify_filesystem_changed(self, changes):
        self.calls.append(("notify_filesystem_changed", changes))
        for dto in changes["changedFiles"]:
            if (dto["configScopeId"], dto["uri"]) in self.open_files:
                self.cache[dto["uri"]] = dto["content"]

    async def analyze(self, scope_id, file_paths):
        self.calls.append(("analyze", list(file_paths)))
        if self.fail_analysis:
            raise BackendError("Backend stream closed")
        issues = []
        for path in file_paths:
            uri = file_uri(path)
            if uri not in self.cache:
                self.cache[uri] = Path(path).read_text(encoding="utf-8")
            issues.extend(self._analyze_content(self.cache[uri], uri))
        return issues

    def _broken(self, rule: str, edits: list[dict[str, Any]]) -> list[dict[str, Any]]:
        for edit in edits:
            if rule in self.broken_rules:
                edit["range"]["endLineOffset"] = 999
            if rule in self.negative_offset_rules:
                edit["range"]["startLineOffset"] = -1
        return edits

    def _analyze_content(self, content: str, uri: str) -> list[dict[str, Any]]:
        lines = content.split("\n")
        issues = []
        for index, text in enumerate(lines):
            line = index + 1
            if match := VAR_PATTERN.search(text):
                col = match.start()
                edits = self._broken(VAR_RULE, [_edit(line, col, line, col + 3, "const")])
                issues.append(
                    _issue(VAR_RULE, "CRITICAL", line, col, "Unexpected var, use let or const instead.",
                           uri, [("Replace with const", edits)])
                )
            if match := FOR_OF_PATTERN.match(text):
                indent, item, items = match.groups()
                closing = next(
                    (j for j in range(index + 1, len(lines)) if lines[j] == f"{indent}}}"), None
                )
                if closing is not None:
                    edits = self._broken(FOR_OF_RULE, [
                        _edit(line, len(indent), line, None, f"{items}.forEach(({item}) => {{"),
                        _edit(closing + 1, len(indent), closing + 1, len(indent) + 1, "});"),
                    ])
                    issues.append(
                        _issue(FOR_OF_RULE, "MINOR", line, len(indent), "Use forEach.", uri,
                               [("Convert to forEach", edits)])
                    )
            if text.strip() == "return;":
                col = len(text) - len(text.lstrip())
                edits = self._broken(RETURN_RULE, [_edit(line, col, line, col + 7, "")])
                issues.append(
                    _issue(RETURN_RULE, "MINOR", line, col, "Remove this redundant jump.", uri,
                           [("Remove redundant return", edits)])
                )
            if "TODO" in text:
                col = text.index("TODO")
                issues.append(_issue(TODO_RULE, "INFO", line, col, "Complete the task.", uri))
        return issues

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


SAMPLE_LINES = [
    "function process(items) {",
    "  // setup",
    "  var a = 1;",
    "  var b = 2;",
    "  var c = 3;",
    "  console.log(a + b + c);",
    "  for (const item of items) {",
    "    console.log(item);",
    "  }",
    '  console.log("done");',
    "  return;",
    "}",
    "",
    "process([1, 2, 3]);",
    "// end",
]


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def context(fake_backend) -> ServerContext:
    """Server context wired to the fake backend with no settle delay."""
    return ServerContext(config=ServerConfig(settle_interval_seconds=0), backend=fake_backend)


@pytest.fixture
def sample_file(tmp_path) -> Path:
    path = tmp_path / "process.js"
    path.write_text("\n".join(SAMPLE_LINES) + "\n", encoding="utf-8")
    return path
