import subprocess

from conftest import FakeProvider

from driftbox.errors import CommandCancelledError, CommandError
from driftbox.models.sandbox import EnvironmentSpec, ExecResult, ExecutionContext
from driftbox.runner import ProcessRunner

ENV = EnvironmentSpec(image="toolchain")


class RaisingProvider(FakeProvider):
    def __init__(self, error):
        super().__init__()
        self.error = error

    def exec(self, environment, command, timeout_s=None):
        raise self.error


def test_success_returns_stdout_verbatim():
    provider = FakeProvider(exec_results=[ExecResult(0, "  line\n", "", 3)])
    result = ProcessRunner(provider, ExecutionContext()).run(ENV, "kubectl get nodes")

    assert result.ok
    assert result.output == "  line\n"
    assert result.exit_code == 0
    assert provider.execs == [(ENV, "kubectl get nodes")]


def test_non_zero_exit_is_a_failed_result():
    provider = FakeProvider(exec_results=[ExecResult(3, "partial", "error: forbidden\n", 3)])
    result = ProcessRunner(provider, ExecutionContext()).run(ENV, "flux diff kustomization apps")

    assert not result.ok
    assert isinstance(result.cause, CommandError)
    assert result.cause.exit_code == 3
    assert result.exit_code == 3
    assert result.output == "partial"
    assert "forbidden" in str(result.cause)


def test_launch_error_is_a_failed_result():
    provider = RaisingProvider(FileNotFoundError("docker"))
    result = ProcessRunner(provider, ExecutionContext()).run(ENV, "helm ls -A")

    assert not result.ok
    assert str(result.cause)
    assert result.exit_code is None


def test_timeout_is_a_failed_result():
    provider = RaisingProvider(subprocess.TimeoutExpired(cmd="docker", timeout=5, output=b"half"))
    result = ProcessRunner(provider, ExecutionContext(), timeout_s=5).run(ENV, "flux get all -A")

    assert not result.ok
    assert "timed out" in str(result.cause)
    assert result.output == "half"


def test_cancelled_context_does_not_launch():
    provider = FakeProvider()
    context = ExecutionContext()
    context.cancel()

    result = ProcessRunner(provider, context).run(ENV, "kubectl get pods")

    assert isinstance(result.cause, CommandCancelledError)
    assert provider.execs == []
