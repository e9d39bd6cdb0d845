"""
File analysis through the SonarLint backend.

This module holds the issue retrieval step shared by every tool, plus the
analysis MCP tools: ``analyze_file`` and ``analyze_files`` add severity/rule
filtering and store their results in the session cache; ``analyze_content``
analyzes unsaved content through a temporary file.

Example:
    >>> result = await analyze_file("/src/app.js", min_severity="MAJOR")
    >>> print(result.summary.total)
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Optional

from sonarlint_mcp.backend.protocol import BackendError, file_uri
from sonarlint_mcp.errors import (
    BackendUnavailableError,
    InvalidRequestError,
    SourceFileNotFoundError,
    UnsupportedLanguageError,
)
from sonarlint_mcp.language import (
    UNKNOWN_LANGUAGE,
    detect_language,
    extension_for,
    supported_extensions,
)
from sonarlint_mcp.models import (
    AnalysisResult,
    AnalysisSummary,
    BatchAnalysisResult,
    BatchSummary,
    Issue,
    Severity,
)
from sonarlint_mcp.state import ServerContext, get_context

logger = logging.getLogger(__name__)


def require_file(file_path: str) -> None:
    """Raise SourceFileNotFoundError unless ``file_path`` is an existing file."""
    if not Path(file_path).is_file():
        raise SourceFileNotFoundError(file_path)


async def resolve_scope(context: ServerContext, file_path: str) -> str:
    """Start the backend if needed and return the scope id for ``file_path``."""
    await context.ensure_backend()
    return context.scopes.resolve(file_path)


async def retrieve_issues(
    context: ServerContext,
    scope_id: str,
    file_paths: list[str],
) -> list[Issue]:
    """
    Run the backend analysis for ``file_paths`` and parse the issues.

    No retries are made here.

    Raises:
        BackendUnavailableError: If the backend fails or does not answer.
    """
    backend = await context.ensure_backend()
    start_time = time.time()
    try:
        raw_issues = await backend.analyze(scope_id, file_paths)
    except (BackendError, OSError, asyncio.TimeoutError) as e:
        logger.error(f"Backend analysis failed for {file_paths}: {e}")
        raise BackendUnavailableError(
            f"Analysis failed: {e}",
            "The SonarLint backend did not complete the analysis. "
            "Restart the MCP server; if the problem persists, reinstall the backend.",
        ) from e

    issues = [Issue.from_backend(raw) for raw in raw_issues or []]
    logger.info(
        f"Found {len(issues)} issues",
        extra={
            "scope_id": scope_id,
            "files": len(file_paths),
            "elapsed_ms": int((time.time() - start_time) * 1000),
        },
    )
    return issues


def filter_issues(
    issues: list[Issue],
    min_severity: Optional[str] = None,
    exclude_rules: Optional[list[str]] = None,
) -> list[Issue]:
    """Drop issues below ``min_severity`` or raised by an excluded rule."""
    if min_severity:
        threshold = Severity.parse(min_severity).rank
        issues = [i for i in issues if i.severity.rank >= threshold]
    if exclude_rules:
        excluded = set(exclude_rules)
        issues = [i for i in issues if i.rule not in excluded]
    return issues


async def analyze_file(
    file_path: str,
    min_severity: Optional[str] = None,
    exclude_rules: Optional[list[str]] = None,
    context: ServerContext | None = None,
) -> AnalysisResult:
    """
    Analyze one file and cache the result for the session.

    Args:
        file_path: Absolute path of the file.
        min_severity: Lowest severity to keep (INFO, MINOR, MAJOR, CRITICAL,
            BLOCKER). Default keeps everything.
        exclude_rules: Rule keys to drop from the result.
        context: Server context; defaults to the process-wide one.

    Raises:
        SourceFileNotFoundError: If the file does not exist.
        UnsupportedLanguageError: If no analyzer handles the extension.
        BackendUnavailableError: If the backend fails.
    """
    context = context or get_context()
    require_file(file_path)

    language = detect_language(file_path)
    if language == UNKNOWN_LANGUAGE:
        raise UnsupportedLanguageError(file_path, Path(file_path).suffix, supported_extensions())

    scope_id = await resolve_scope(context, file_path)

    logger.info(f"Analyzing file: {file_path}", extra={"scope_id": scope_id, "language": language})
    issues = await retrieve_issues(context, scope_id, [file_path])
    issues = filter_issues(issues, min_severity, exclude_rules)

    result = AnalysisResult(
        file_path=file_path,
        language=language,
        issues=issues,
        summary=AnalysisSummary.from_issues(issues),
    )
    context.store_result(result)
    return result


async def analyze_files(
    file_paths: list[str],
    min_severity: Optional[str] = None,
    exclude_rules: Optional[list[str]] = None,
    context: ServerContext | None = None,
) -> BatchAnalysisResult:
    """
    Analyze several files, with one backend call per configuration scope.

    Every per-file result is stored in the session cache.

    Raises:
        InvalidRequestError: If ``file_paths`` is empty.
        SourceFileNotFoundError: If any file does not exist; lists them all.
        BackendUnavailableError: If the backend fails.
    """
    context = context or get_context()
    if not file_paths:
        raise InvalidRequestError("No files provided", "Please provide at least one file path to analyze.")

    missing = [path for path in file_paths if not Path(path).is_file()]
    if missing:
        raise SourceFileNotFoundError(*missing)

    logger.info(f"Batch analyzing {len(file_paths)} files")
    await context.ensure_backend()

    files_by_scope: dict[str, list[str]] = {}
    for path in file_paths:
        files_by_scope.setdefault(context.scopes.resolve(path), []).append(path)

    results: list[AnalysisResult] = []
    for scope_id, scope_files in files_by_scope.items():
        logger.info(f"Analyzing {len(scope_files)} files in scope {scope_id}")
        issues = await retrieve_issues(context, scope_id, scope_files)

        for path in scope_files:
            uri = file_uri(path)
            # An issue without a file URI can only belong to a single-file analysis
            file_issues = [
                issue
                for issue in issues
                if issue.file_uri == uri or (issue.file_uri is None and len(scope_files) == 1)
            ]
            file_issues = filter_issues(file_issues, min_severity, exclude_rules)
            result = AnalysisResult(
                file_path=path,
                language=detect_language(path),
                issues=file_issues,
                summary=AnalysisSummary.from_issues(file_issues),
            )
            context.store_result(result)
            results.append(result)

    return BatchAnalysisResult(files=results, summary=BatchSummary.from_results(results))


def _content_extension(language: str, file_name: Optional[str]) -> str:
    if file_name and detect_language(file_name) != UNKNOWN_LANGUAGE:
        return Path(file_name).suffix.lower()
    extension = extension_for(language)
    if extension is None:
        raise UnsupportedLanguageError(file_name or "content", language, supported_extensions())
    return extension


async def analyze_content(
    content: str,
    language: str,
    file_name: Optional[str] = None,
    context: ServerContext | None = None,
) -> AnalysisResult:
    """
    Analyze unsaved content through a temporary file.

    The temporary file is created in the working directory, so it shares the
    project's configuration scope, and is removed afterwards. The result is
    not stored in the session cache.

    Args:
        content: Source code to analyze.
        language: Language name, e.g. ``javascript``.
        file_name: Name reported in the result; its extension takes
            precedence over ``language`` when it is a supported one.
        context: Server context; defaults to the process-wide one.

    Raises:
        InvalidRequestError: If ``content`` is blank.
        UnsupportedLanguageError: If neither ``file_name`` nor ``language``
            maps to an analyzer.
        BackendUnavailableError: If the backend fails.
    """
    context = context or get_context()
    if not content or not content.strip():
        raise InvalidRequestError("Empty content", "Please provide non-empty content to analyze.")

    extension = _content_extension(language, file_name)
    temp_path = os.path.join(os.getcwd(), f".sonarlint-tmp-{int(time.time() * 1000)}{extension}")
    logger.info(f"Analyzing content as {language}", extra={"temp_file": temp_path})

    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

        scope_id = await resolve_scope(context, temp_path)
        issues = await retrieve_issues(context, scope_id, [temp_path])
    finally:
        try:
            os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clean up temp file {temp_path}: {e}")

    return AnalysisResult(
        file_path=file_name or "content",
        language=detect_language(temp_path),
        issues=issues,
        summary=AnalysisSummary.from_issues(issues),
    )
