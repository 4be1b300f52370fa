"""Data models for the cluster run lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from driftbox.models.scm import RepositoryRef


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    delay_s: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_s < 0:
            raise ValueError("delay_s must not be negative")


@dataclass(frozen=True)
class BootstrapSpec:
    owner: str
    repository: str
    branch: str = "main"
    path: str = "clusters/tests"
    checkout_ref: str = "diff"
    token: str = field(default="", repr=False)

    @property
    def checkout(self) -> RepositoryRef:
        return RepositoryRef(owner=self.owner, name=self.repository, branch=self.checkout_ref)

    def bootstrap_args(self) -> str:
        return (
            "bootstrap github"
            f" --owner={self.owner}"
            f" --repository={self.repository}"
            f" --branch={self.branch}"
            f" --path={self.path}"
        )


@dataclass(frozen=True)
class StatusCheck:
    name: str
    tool: str
    command: str


@dataclass(frozen=True)
class DiffTarget:
    name: str
    subpath: str


class RunState(str, Enum):
    INIT = "init"
    PROVISIONED = "provisioned"
    READY = "ready"
    BOOTSTRAPPED = "bootstrapped"
    STATUS_CHECKED = "status_checked"
    DIFFED = "diffed"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class StepFailure:
    step: str
    cause: str
    exit_code: Optional[int] = None


@dataclass
class RunReport:
    run_id: str
    state: RunState = RunState.INIT
    outputs: dict[str, str] = field(default_factory=dict)
    failures: list[StepFailure] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.DONE

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "outputs": dict(self.outputs),
            "failures": [
                {"step": f.step, "cause": f.cause, "exit_code": f.exit_code}
                for f in self.failures
            ],
            "error": self.error,
        }
