"""Docker CLI container provider implementation."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Sequence

from driftbox.models.sandbox import EnvironmentSpec, ExecResult, Mount
from driftbox.providers.sandbox.base import ContainerProvider

logger = logging.getLogger(__name__)


class DockerProvider(ContainerProvider):
    def __init__(self, binary: str = "docker") -> None:
        self._binary = binary

    def create_volume(self, name: str) -> None:
        self._run(["volume", "create", name])

    def remove_volume(self, name: str) -> None:
        self._run(["volume", "rm", "--force", name])

    def create_network(self, name: str) -> None:
        self._run(["network", "create", name])

    def remove_network(self, name: str) -> None:
        self._run(["network", "rm", name])

    def build_image(self, tag: str, dockerfile: str) -> None:
        logger.info(f"Building toolchain image {tag}")
        self._run(["build", "--tag", tag, "-"], stdin=dockerfile)

    def start_service(
        self,
        name: str,
        image: str,
        command: str,
        network: str,
        alias: str,
        mounts: Sequence[Mount] = (),
        port: int | None = None,
        privileged: bool = False,
    ) -> str:
        args = ["run", "--detach", "--name", name, "--network", network]
        args.extend(["--network-alias", alias])
        if privileged:
            args.append("--privileged")
        for mount in mounts:
            args.extend(self._mount_args(mount))
        if port is not None:
            args.extend(["--expose", str(port)])
        args.extend(["--entrypoint", "sh", image, "-c", command])
        output = self._run(args)
        return output.stdout.strip()

    def stop_service(self, container: str) -> None:
        self._run(["rm", "--force", "--volumes", container])

    def exec(
        self,
        environment: EnvironmentSpec,
        command: str,
        timeout_s: int | None = None,
    ) -> ExecResult:
        args = [self._binary, "run", "--rm"]
        if environment.network:
            args.extend(["--network", environment.network])
        for mount in environment.mounts:
            args.extend(self._mount_args(mount))
        # Values travel through the client environment so they stay out of argv.
        for key, _ in environment.env:
            args.extend(["--env", key])
        if environment.user:
            args.extend(["--user", environment.user])
        if environment.workdir:
            args.extend(["--workdir", environment.workdir])
        entrypoint = list(environment.entrypoint)
        if entrypoint:
            args.extend(["--entrypoint", entrypoint[0]])
        args.append(environment.image)
        args.extend(entrypoint[1:])
        args.append(command)
        start = time.monotonic()
        process = subprocess.run(
            args,
            env=self._merge_env(environment.env_dict()),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
        duration_ms = int((time.monotonic() - start) * 1000)
        return ExecResult(
            exit_code=process.returncode,
            stdout=process.stdout,
            stderr=process.stderr,
            duration_ms=duration_ms,
        )

    def _mount_args(self, mount: Mount) -> list[str]:
        if mount.kind == "tmpfs":
            return ["--tmpfs", mount.target]
        spec = f"type={mount.kind},source={mount.source},target={mount.target}"
        if mount.read_only:
            spec += ",readonly"
        return ["--mount", spec]

    def _merge_env(self, env: dict[str, str] | None) -> dict[str, str]:
        merged = os.environ.copy()
        if env:
            merged.update(env)
        return merged

    def _run(
        self, args: Sequence[str], stdin: str | None = None
    ) -> subprocess.CompletedProcess[str]:
        command = [self._binary, *args]
        process = subprocess.run(
            command,
            input=stdin,
            capture_output=True,
            text=True,
            check=False,
        )
        if process.returncode != 0:
            raise RuntimeError(
                "Docker command failed: "
                f"{' '.join(command)}\n{process.stderr.strip()}"
            )
        return process
