"""Provider package for container and SCM integrations."""

from driftbox.providers.sandbox import ContainerProvider, DockerProvider
from driftbox.providers.scm import GitHubProvider, ScmProvider

__all__ = [
    "ContainerProvider",
    "DockerProvider",
    "GitHubProvider",
    "ScmProvider",
]
