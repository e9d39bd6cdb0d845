"""SonarLint MCP Server - code quality analysis and quick fixes for MCP clients."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from sonarlint_mcp.errors import SonarLintMcpError, format_tool_error
from sonarlint_mcp.resources.session import get_session_index, get_session_result
from sonarlint_mcp.state import get_context
from sonarlint_mcp.tools import analyze_content as run_analyze_content
from sonarlint_mcp.tools import analyze_file as run_analyze_file
from sonarlint_mcp.tools import analyze_files as run_analyze_files
from sonarlint_mcp.tools import apply_all_quick_fixes as run_apply_all_quick_fixes
from sonarlint_mcp.tools import apply_quick_fix as run_apply_quick_fix

# ────────────────────────────────────────────
# LOGGING SETUP
# ────────────────────────────────────────────

logger = logging.getLogger("sonarlint_mcp")


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the MCP stream."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)


# ────────────────────────────────────────────
# SERVER INSTANTIATION
# ────────────────────────────────────────────


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    try:
        yield
    finally:
        logger.info("Shutting down...")
        await get_context().shutdown()


mcp = FastMCP(
    name="SonarLint MCP",
    instructions="Code quality analysis with SonarLint rules. Analyze files for bugs, code smells and "
    "vulnerabilities, and apply SonarLint quick fixes directly to the files.",
    lifespan=lifespan,
)

# ────────────────────────────────────────────
# TOOLS
# ────────────────────────────────────────────


@mcp.tool()
async def analyze_file(
    file_path: str,
    min_severity: str | None = None,
    exclude_rules: list[str] | None = None,
) -> dict:
    """Analyze a single file for code quality issues, bugs, and security vulnerabilities using SonarLint rules. min_severity is one of INFO, MINOR, MAJOR, CRITICAL, BLOCKER. exclude_rules lists rule keys to drop (e.g. ['javascript:S1135']). Returns issues with line numbers, severity and quick fix availability."""
    try:
        result = await run_analyze_file(file_path, min_severity, exclude_rules)
    except Exception as e:
        return format_tool_error(e)
    logger.info(f"analyze_file: {file_path}, {result.summary.total} issues")
    return result.model_dump(mode="json")


@mcp.tool()
async def analyze_files(
    file_paths: list[str],
    min_severity: str | None = None,
    exclude_rules: list[str] | None = None,
) -> dict:
    """Analyze multiple files in one operation. Files under the same directory share one backend analysis. Returns issues per file and an overall summary. Accepts the same min_severity and exclude_rules filters as analyze_file."""
    try:
        result = await run_analyze_files(file_paths, min_severity, exclude_rules)
    except Exception as e:
        return format_tool_error(e)
    logger.info(f"analyze_files: {result.summary.total_files} files, {result.summary.total_issues} issues")
    return result.model_dump(mode="json")


@mcp.tool()
async def analyze_content(content: str, language: str, file_name: str | None = None) -> dict:
    """Analyze code that has not been saved to disk. language is e.g. 'javascript', 'typescript' or 'python'; file_name is optional and only labels the result (a supported extension in it overrides language)."""
    try:
        result = await run_analyze_content(content, language, file_name)
    except Exception as e:
        return format_tool_error(e)
    logger.info(f"analyze_content: {language}, {result.summary.total} issues")
    return result.model_dump(mode="json")


@mcp.tool()
async def apply_quick_fix(file_path: str, line: int, rule: str) -> dict:
    """Apply a quick fix for ONE SPECIFIC ISSUE, identified by file_path + line + rule (e.g. 'javascript:S3504'). The file is modified directly. To fix multiple issues prefer apply_all_quick_fixes."""
    try:
        result = await run_apply_quick_fix(file_path, line, rule)
    except Exception as e:
        return format_tool_error(e)
    logger.info(f"apply_quick_fix: {rule} at {file_path}:{line}")
    return result.model_dump(mode="json")


@mcp.tool()
async def apply_all_quick_fixes(file_path: str) -> dict:
    """Apply ALL available quick fixes for a file in one operation. Returns which fixes were applied, which failed, and the issues that remain (grouped by severity) and must be fixed manually."""
    try:
        report = await run_apply_all_quick_fixes(file_path)
    except Exception as e:
        return format_tool_error(e)
    logger.info(
        f"apply_all_quick_fixes: {file_path}, applied={report.applied_count}, "
        f"failed={report.failed_count}, remaining={report.remaining_count}"
    )
    return report.model_dump(mode="json")


# ────────────────────────────────────────────
# RESOURCES
# ────────────────────────────────────────────


@mcp.resource("sonarlint://session")
def session_index() -> str:
    """Analysis results stored during this session."""
    return get_session_index()


@mcp.resource("sonarlint://session/{resource_id}")
def session_analysis(resource_id: str) -> str:
    """A single analysis result from this session, as JSON."""
    return get_session_result(resource_id)


# ────────────────────────────────────────────
# ENTRY POINT
# ────────────────────────────────────────────


def main() -> None:
    try:
        config = get_context().config
    except SonarLintMcpError as e:
        print(f"sonarlint-mcp: {e.user_message}", file=sys.stderr)
        sys.exit(1)
    configure_logging(config.log_level)
    logger.info("Starting SonarLint MCP server...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
