"""Cluster lifecycle: provisioning, readiness and tool access."""

from driftbox.cluster.bootstrap import ClusterBootstrapper
from driftbox.cluster.readiness import wait_until_ready
from driftbox.cluster.tools import ToolFacade

__all__ = ["ClusterBootstrapper", "ToolFacade", "wait_until_ready"]
