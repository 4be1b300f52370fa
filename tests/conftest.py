"""
Shared pytest fixtures for driftbox tests.

Nothing here talks to Docker or GitHub:
- FakeProvider records container operations and answers exec calls
- FakeScm pretends to clone the configuration repository
- ScriptedRunner answers tool commands by substring match
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from driftbox.config import DriftConfig
from driftbox.errors import CommandError
from driftbox.models.cluster import BootstrapSpec, RetryPolicy
from driftbox.models.sandbox import (
    ClusterSandbox,
    CommandResult,
    EnvironmentSpec,
    ExecResult,
    ExecutionContext,
    ServiceHandle,
)

NODES_READY = (
    "NAME           STATUS   ROLES                  AGE   VERSION\n"
    "3f2a9c1b7e0d   Ready    control-plane,master   12s   v1.27.3+k3s1\n"
)
NODES_NOT_READY = (
    "NAME           STATUS     ROLES                  AGE   VERSION\n"
    "3f2a9c1b7e0d   NotReady   control-plane,master   2s    v1.27.3+k3s1\n"
)


def ok(output: str = "") -> CommandResult:
    return CommandResult(output=output, exit_code=0)


def failed(command: str, exit_code: int = 1, stderr: str = "boom") -> CommandResult:
    return CommandResult(
        output="",
        cause=CommandError(command, exit_code=exit_code, stderr=stderr),
        exit_code=exit_code,
    )


@dataclass
class FakeProvider:
    """In-memory ContainerProvider."""

    exec_results: List[ExecResult] = field(default_factory=list)
    fail_on: Optional[str] = None
    calls: List[Tuple[str, tuple]] = field(default_factory=list)
    execs: List[Tuple[EnvironmentSpec, str]] = field(default_factory=list)

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    def create_volume(self, name):
        self._record("create_volume", name)

    def remove_volume(self, name):
        self._record("remove_volume", name)

    def create_network(self, name):
        self._record("create_network", name)

    def remove_network(self, name):
        self._record("remove_network", name)

    def build_image(self, tag, dockerfile):
        self._record("build_image", tag, dockerfile)

    def start_service(self, name, image, command, network, alias, mounts=(), port=None, privileged=False):
        self._record("start_service", name, image, command, network, alias, tuple(mounts), port, privileged)
        return "c0ffee"

    def stop_service(self, container):
        self._record("stop_service", container)

    def exec(self, environment, command, timeout_s=None):
        self.execs.append((environment, command))
        if self.exec_results:
            return self.exec_results.pop(0)
        return ExecResult(exit_code=0, stdout="", stderr="", duration_ms=1)

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


@dataclass
class FakeScm:
    token: str = ""
    error: Optional[Exception] = None
    fetched: List[Tuple[object, Path]] = field(default_factory=list)

    def authenticated_url(self, repo):
        return repo.https_url

    def fetch_tree(self, repo, dest):
        if self.error is not None:
            raise self.error
        dest.mkdir(parents=True, exist_ok=True)
        self.fetched.append((repo, dest))
        return dest


class ScriptedRunner:
    """Runner whose answers are chosen by the first matching substring."""

    def __init__(self, script: Optional[Dict[str, Callable[[str], CommandResult]]] = None):
        self.script = script or {}
        self.commands: List[str] = []
        self.environments: List[EnvironmentSpec] = []

    def run(self, environment, command):
        self.commands.append(command)
        self.environments.append(environment)
        for needle, answer in self.script.items():
            if needle in command:
                return answer(command)
        if "get nodes" in command:
            return ok(NODES_READY)
        return ok(f"output of {command}")


class FakeBootstrapper:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.provisioned: List[ClusterSandbox] = []
        self.torn_down: List[ClusterSandbox] = []

    def provision(self, config, context):
        if self.error is not None:
            raise self.error
        sandbox = make_sandbox(context)
        self.provisioned.append(sandbox)
        return sandbox

    def teardown(self, sandbox):
        self.torn_down.append(sandbox)


def make_sandbox(context: Optional[ExecutionContext] = None) -> ClusterSandbox:
    context = context or ExecutionContext(run_id="test")
    return ClusterSandbox(
        node=ServiceHandle(container="c0ffee", alias="k3s", network="driftbox-test", port=6443),
        environment=EnvironmentSpec(image="driftbox-toolchain:latest"),
        cache_volume="k3s_config",
        kube_volume="driftbox-kube-test",
        network="driftbox-test",
        checkout_dir=Path("/tmp/driftbox-test"),
        context=context,
        token="t0ken",
    )


@pytest.fixture
def config() -> DriftConfig:
    return DriftConfig(
        bootstrap=BootstrapSpec(owner="shaked", repository="fluxcd-test", token="t0ken"),
        readiness=RetryPolicy(max_attempts=3, delay_s=0),
    )


@pytest.fixture
def sandbox() -> ClusterSandbox:
    return make_sandbox()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sleeps() -> List[float]:
    return []
