"""Data models for sandbox interactions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import threading
from pathlib import Path
from typing import Optional
from uuid import uuid4


@dataclass(frozen=True)
class Mount:
    kind: str
    target: str
    source: str = ""
    read_only: bool = False

    def __post_init__(self) -> None:
        if self.kind not in {"volume", "bind", "tmpfs"}:
            raise ValueError(f"Unknown mount kind: {self.kind}")


@dataclass(frozen=True)
class EnvironmentSpec:
    """Immutable description of the toolchain container.

    Every ``with_*`` call returns a new descriptor layered on this one; the
    original is never modified.
    """

    image: str
    network: str | None = None
    mounts: tuple[Mount, ...] = ()
    env: tuple[tuple[str, str], ...] = ()
    user: str | None = None
    workdir: str | None = None
    entrypoint: tuple[str, ...] = ("sh", "-c")
    pipeline: tuple[str, ...] = ()

    def with_env(self, key: str, value: str) -> "EnvironmentSpec":
        env = tuple((k, v) for k, v in self.env if k != key) + ((key, value),)
        return replace(self, env=env)

    def with_mount(self, mount: Mount) -> "EnvironmentSpec":
        mounts = tuple(m for m in self.mounts if m.target != mount.target)
        return replace(self, mounts=mounts + (mount,))

    def with_network(self, network: str) -> "EnvironmentSpec":
        return replace(self, network=network)

    def with_user(self, user: str) -> "EnvironmentSpec":
        return replace(self, user=user)

    def with_workdir(self, workdir: str) -> "EnvironmentSpec":
        return replace(self, workdir=workdir)

    def with_pipeline(self, *labels: str) -> "EnvironmentSpec":
        return replace(self, pipeline=self.pipeline + labels)

    def env_dict(self) -> dict[str, str]:
        return dict(self.env)


@dataclass(frozen=True)
class ServiceHandle:
    container: str
    alias: str
    network: str
    port: int


@dataclass
class ExecutionContext:
    run_id: str = field(default_factory=lambda: uuid4().hex[:8])
    _cancel: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()


@dataclass
class ClusterSandbox:
    node: ServiceHandle
    environment: EnvironmentSpec
    cache_volume: str
    kube_volume: str
    network: str
    checkout_dir: Path
    context: ExecutionContext
    token: str = field(default="", repr=False)


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int


@dataclass(frozen=True)
class CommandResult:
    output: str
    cause: Optional[Exception] = None
    exit_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.cause is None
