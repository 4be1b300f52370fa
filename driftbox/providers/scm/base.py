"""SCM provider interface."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from driftbox.models.scm import RepositoryRef


class ScmProvider(Protocol):
    def authenticated_url(self, repo: RepositoryRef) -> str:
        ...

    def fetch_tree(self, repo: RepositoryRef, dest: Path) -> Path:
        ...
