"""
Configuration scope management.

The backend groups files into configuration scopes. A scope is created per
project root (the parent directory of the analyzed file) the first time a
file under that root is seen, and lives until the server exits.
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from dataclasses import dataclass, field

from sonarlint_mcp.backend.protocol import AnalysisBackend

logger = logging.getLogger(__name__)

SCOPE_PREFIX = "scope-"
SCOPE_HASH_LENGTH = 8


@dataclass
class Scope:
    """A configuration scope registered with the backend."""

    scope_id: str
    project_root: str
    open_files: set[str] = field(default_factory=set)


def scope_id_for_root(project_root: str) -> str:
    """Deterministic scope id for a project root."""
    digest = hashlib.md5(project_root.encode("utf-8")).hexdigest()
    return f"{SCOPE_PREFIX}{digest[:SCOPE_HASH_LENGTH]}"


class ScopeRegistry:
    """
    Maps project roots to scopes, registering new scopes with the backend.

    Thread-safe; all map access goes through one lock.
    """

    def __init__(self, backend: AnalysisBackend | None = None):
        self.backend = backend
        self._scopes: dict[str, Scope] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._scopes)

    def resolve(self, file_path: str) -> str:
        """
        Return the scope id for the project containing ``file_path``.

        The scope is registered with the backend on first use.
        """
        project_root = os.path.dirname(os.path.abspath(file_path))
        with self._lock:
            scope = self._scopes.get(project_root)
            if scope is not None:
                return scope.scope_id

            scope = Scope(scope_id=scope_id_for_root(project_root), project_root=project_root)
            logger.info(
                f"Creating new configuration scope: {scope.scope_id}",
                extra={"scope_id": scope.scope_id, "project_root": project_root},
            )
            if self.backend is not None:
                self.backend.register_scope(scope.scope_id, {"name": f"Project: {project_root}"})
            self._scopes[project_root] = scope
            return scope.scope_id

    def root_for(self, scope_id: str) -> str | None:
        """Reverse lookup of a scope id; linear in the number of scopes."""
        with self._lock:
            for root, scope in self._scopes.items():
                if scope.scope_id == scope_id:
                    return root
        return None

    def mark_open(self, scope_id: str, file_path: str) -> None:
        with self._lock:
            for scope in self._scopes.values():
                if scope.scope_id == scope_id:
                    scope.open_files.add(os.path.abspath(file_path))
                    return

    def open_files(self, scope_id: str) -> set[str]:
        with self._lock:
            for scope in self._scopes.values():
                if scope.scope_id == scope_id:
                    return set(scope.open_files)
        return set()
