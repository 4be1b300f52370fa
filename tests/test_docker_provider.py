import subprocess

import pytest

from driftbox.models.sandbox import EnvironmentSpec, Mount
from driftbox.providers.sandbox import docker as docker_module
from driftbox.providers.sandbox.docker import DockerProvider


class FakeRun:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun(stdout="abc123\n")
    monkeypatch.setattr(docker_module.subprocess, "run", fake)
    return fake


def test_exec_keeps_secrets_out_of_argv(fake_run):
    env = (
        EnvironmentSpec(image="toolchain", network="net")
        .with_mount(Mount("volume", "/cache/k3s", source="k3s_config", read_only=True))
        .with_mount(Mount("bind", "/src", source="/tmp/repo", read_only=True))
        .with_env("GITHUB_TOKEN", "s3cret")
        .with_user("root")
        .with_workdir("/tmp")
    )

    result = DockerProvider().exec(env, "flux get all -A", timeout_s=30)

    args, kwargs = fake_run.calls[0]
    assert args[:3] == ["docker", "run", "--rm"]
    assert "s3cret" not in " ".join(args)
    assert ["--env", "GITHUB_TOKEN"] == args[args.index("--env"):args.index("--env") + 2]
    assert kwargs["env"]["GITHUB_TOKEN"] == "s3cret"
    assert kwargs["timeout"] == 30
    assert "type=volume,source=k3s_config,target=/cache/k3s,readonly" in args
    assert "type=bind,source=/tmp/repo,target=/src,readonly" in args
    assert args[-3:] == ["toolchain", "-c", "flux get all -A"]
    assert result.exit_code == 0
    assert result.stdout == "abc123\n"


def test_start_service_returns_container_id(fake_run):
    container = DockerProvider().start_service(
        name="k3s-node",
        image="rancher/k3s",
        command="k3s server",
        network="net",
        alias="k3s",
        mounts=[Mount("tmpfs", "/var/log")],
        port=6443,
        privileged=True,
    )

    args, _ = fake_run.calls[0]
    assert container == "abc123"
    assert "--privileged" in args
    assert ["--tmpfs", "/var/log"] == args[args.index("--tmpfs"):args.index("--tmpfs") + 2]
    assert args[-4:] == ["sh", "rancher/k3s", "-c", "k3s server"]


def test_build_image_reads_dockerfile_from_stdin(fake_run):
    DockerProvider().build_image("toolchain:latest", "FROM scratch\n")

    args, kwargs = fake_run.calls[0]
    assert args == ["docker", "build", "--tag", "toolchain:latest", "-"]
    assert kwargs["input"] == "FROM scratch\n"


def test_management_failure_raises(monkeypatch):
    monkeypatch.setattr(docker_module.subprocess, "run", FakeRun(returncode=1, stderr="network exists"))

    with pytest.raises(RuntimeError, match="network exists"):
        DockerProvider().create_network("net")
