"""Container provider implementations and interfaces."""

from driftbox.providers.sandbox.base import ContainerProvider
from driftbox.providers.sandbox.docker import DockerProvider

__all__ = ["ContainerProvider", "DockerProvider"]
