"""SCM provider implementations and interfaces."""

from driftbox.providers.scm.base import ScmProvider
from driftbox.providers.scm.github import GitHubProvider

__all__ = ["GitHubProvider", "ScmProvider"]
