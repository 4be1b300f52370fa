"""Data models for SCM interactions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str
    branch: str
    host: str = "github.com"

    @property
    def https_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.name}.git"
