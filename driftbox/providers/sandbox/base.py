"""Container provider interface."""

from __future__ import annotations

from typing import Protocol, Sequence

from driftbox.models.sandbox import EnvironmentSpec, ExecResult, Mount


class ContainerProvider(Protocol):
    def create_volume(self, name: str) -> None:
        ...

    def remove_volume(self, name: str) -> None:
        ...

    def create_network(self, name: str) -> None:
        ...

    def remove_network(self, name: str) -> None:
        ...

    def build_image(self, tag: str, dockerfile: str) -> None:
        ...

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
        ...

    def stop_service(self, container: str) -> None:
        ...

    def exec(
        self,
        environment: EnvironmentSpec,
        command: str,
        timeout_s: int | None = None,
    ) -> ExecResult:
        ...
