"""Shared data models for the driftbox application."""

from driftbox.models.cluster import (
    BootstrapSpec,
    DiffTarget,
    RetryPolicy,
    RunReport,
    RunState,
    StatusCheck,
    StepFailure,
)
from driftbox.models.sandbox import (
    ClusterSandbox,
    CommandResult,
    EnvironmentSpec,
    ExecResult,
    ExecutionContext,
    Mount,
    ServiceHandle,
)
from driftbox.models.scm import RepositoryRef

__all__ = [
    "BootstrapSpec",
    "ClusterSandbox",
    "CommandResult",
    "DiffTarget",
    "EnvironmentSpec",
    "ExecResult",
    "ExecutionContext",
    "Mount",
    "RepositoryRef",
    "RetryPolicy",
    "RunReport",
    "RunState",
    "ServiceHandle",
    "StatusCheck",
    "StepFailure",
]
