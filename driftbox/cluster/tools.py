"""Named tool wrappers over the process runner."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Protocol

from driftbox.models.sandbox import ClusterSandbox, CommandResult, EnvironmentSpec

CACHE_ENV = "CACHE"


class Runner(Protocol):
    def run(self, environment: EnvironmentSpec, command: str) -> CommandResult:
        ...


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ToolFacade:
    def __init__(
        self,
        sandbox: ClusterSandbox,
        runner: Runner,
        clock: Callable[[], str] = _timestamp,
    ) -> None:
        self._sandbox = sandbox
        self._runner = runner
        self._clock = clock
        self._last_marker: str | None = None
        self._calls = 0

    @property
    def cancelled(self) -> bool:
        return self._sandbox.context.cancelled

    def control_plane(self, command: str) -> CommandResult:
        return self.exec("kubectl", f"kubectl {command}")

    def package_manager(self, command: str) -> CommandResult:
        return self.exec("helm", f"helm {command}")

    def reconciler(self, command: str) -> CommandResult:
        return self.exec("flux", f"flux {command}")

    def source_control(self, command: str) -> CommandResult:
        return self.exec("git", f"git {command}")

    def tool(self, name: str, command: str) -> CommandResult:
        handlers = {
            "kubectl": self.control_plane,
            "helm": self.package_manager,
            "flux": self.reconciler,
            "git": self.source_control,
        }
        if name in handlers:
            return handlers[name](command)
        return self.exec(name, f"{name} {command}")

    def exec(self, name: str, command: str) -> CommandResult:
        environment = self._sandbox.environment.with_env(CACHE_ENV, self._next_marker())
        self._sandbox.environment = environment
        return self._runner.run(environment.with_pipeline(name), command)

    def _next_marker(self) -> str:
        self._calls += 1
        marker = self._clock()
        if marker == self._last_marker:
            marker = f"{marker}#{self._calls}"
        self._last_marker = marker
        return marker
