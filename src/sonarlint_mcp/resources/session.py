"""Resource handlers exposing cached analysis results via MCP."""

from __future__ import annotations

import hashlib
import json
import os

from sonarlint_mcp.state import ServerContext, get_context


def resource_id_for(file_path: str) -> str:
    return "analysis-" + hashlib.md5(file_path.encode("utf-8")).hexdigest()[:8]


def get_session_index(context: ServerContext | None = None) -> str:
    """List the analysis results stored in this session as JSON."""
    context = context or get_context()
    entries = [
        {
            "uri": f"sonarlint://session/{resource_id_for(file_path)}",
            "name": f"Analysis: {os.path.basename(file_path)}",
            "description": f"{result.summary.total} issues found",
            "file_path": file_path,
        }
        for file_path, result in sorted(context.session_results().items())
    ]
    return json.dumps(entries, indent=2)


def get_session_result(resource_id: str, context: ServerContext | None = None) -> str:
    """
    Return one stored analysis result as JSON.

    Raises:
        KeyError: If no stored result has that resource id.
    """
    context = context or get_context()
    for file_path, result in context.session_results().items():
        if resource_id_for(file_path) == resource_id:
            return result.model_dump_json(indent=2)
    raise KeyError(f"Session resource not found: {resource_id}")
