"""Provisions the k3s node service and the toolchain sandbox around it."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable

from driftbox.config import DriftConfig, ImageConfig
from driftbox.errors import ProvisioningError
from driftbox.models.sandbox import (
    ClusterSandbox,
    EnvironmentSpec,
    ExecutionContext,
    Mount,
    ServiceHandle,
)
from driftbox.providers.sandbox.base import ContainerProvider
from driftbox.providers.scm.base import ScmProvider
from driftbox.providers.scm.github import GitHubProvider, redact
from driftbox.runner import ProcessRunner

logger = logging.getLogger(__name__)

NODE_ALIAS = "k3s"
API_PORT = 6443
NODE_CONFIG_DIR = "/etc/rancher/k3s"
CACHE_MOUNT = "/cache/k3s"
KUBE_DIR = "/.kube"
KUBECONFIG = f"{KUBE_DIR}/config"
NODE_USER = "1001:0"

NODE_COMMAND = (
    "k3s server"
    " --bind-address $(ip route | grep src | awk '{print $NF}')"
    f" --tls-san {NODE_ALIAS}"
    " --disable traefik"
    " --disable metrics-server"
)

NODE_SCRATCH = ("/etc/lib/cni", "/var/lib/kubelet", "/var/lib/rancher/k3s", "/var/log")


def toolchain_dockerfile(images: ImageConfig) -> str:
    return "\n".join(
        [
            f"FROM {images.kubectl} AS kubectl",
            f"FROM {images.helm} AS helm",
            f"FROM {images.flux} AS flux",
            f"FROM {images.base}",
            "COPY --from=kubectl /opt/bitnami/kubectl/bin/kubectl /usr/local/bin/kubectl",
            "COPY --from=helm /usr/bin/helm /usr/local/bin/helm",
            "COPY --from=flux /usr/local/bin/flux /usr/local/bin/flux",
            f"RUN apk add --no-cache {' '.join(images.packages)}",
            "",
        ]
    )


def credentials_command(wait_s: int = 60) -> str:
    # k3s writes k3s.yaml some time after the server starts.
    return (
        f"for i in $(seq 1 {wait_s}); do [ -s {CACHE_MOUNT}/k3s.yaml ] && break; sleep 1; done"
        f" && mkdir -p {KUBE_DIR}"
        f" && sed 's#https://127.0.0.1:{API_PORT}#https://{NODE_ALIAS}:{API_PORT}#'"
        f" {CACHE_MOUNT}/k3s.yaml > {KUBECONFIG}"
        f" && chown {NODE_USER} {KUBECONFIG}"
    )


class ClusterBootstrapper:
    def __init__(
        self,
        provider: ContainerProvider,
        scm_factory: Callable[[str], ScmProvider] = GitHubProvider,
        checkout_root: str | None = None,
    ) -> None:
        self._provider = provider
        self._scm_factory = scm_factory
        self._checkout_root = checkout_root

    @property
    def provider(self) -> ContainerProvider:
        return self._provider

    def provision(self, config: DriftConfig, context: ExecutionContext) -> ClusterSandbox:
        """Start the node service and assemble the toolchain around it.

        Any failed step releases what was created so far and raises
        ProvisioningError.
        """
        cleanup: list[Callable[[], None]] = []
        try:
            return self._provision(config, context, cleanup)
        except ProvisioningError:
            self._unwind(cleanup)
            raise
        except (RuntimeError, OSError) as exc:
            self._unwind(cleanup)
            raise ProvisioningError(redact(str(exc))) from exc

    def _provision(
        self,
        config: DriftConfig,
        context: ExecutionContext,
        cleanup: list[Callable[[], None]],
    ) -> ClusterSandbox:
        run_id = context.run_id
        network = f"driftbox-{run_id}"
        kube_volume = f"driftbox-kube-{run_id}"

        self._provider.create_volume(config.cache_volume)
        self._provider.create_network(network)
        cleanup.append(lambda: self._provider.remove_network(network))

        logger.info(f"[{run_id}] Starting k3s node service")
        node_mounts = [Mount("volume", NODE_CONFIG_DIR, source=config.cache_volume)]
        node_mounts.extend(Mount("tmpfs", target) for target in NODE_SCRATCH)
        container = self._provider.start_service(
            name=f"driftbox-k3s-{run_id}",
            image=config.images.node,
            command=NODE_COMMAND,
            network=network,
            alias=NODE_ALIAS,
            mounts=node_mounts,
            port=API_PORT,
            privileged=True,
        )
        cleanup.append(lambda: self._provider.stop_service(container))
        node = ServiceHandle(container=container, alias=NODE_ALIAS, network=network, port=API_PORT)

        self._provider.build_image(config.images.toolchain_tag, toolchain_dockerfile(config.images))

        self._provider.create_volume(kube_volume)
        cleanup.append(lambda: self._provider.remove_volume(kube_volume))

        checkout_root = Path(tempfile.mkdtemp(prefix="driftbox-", dir=self._checkout_root))
        cleanup.append(lambda: shutil.rmtree(checkout_root, ignore_errors=True))
        scm = self._scm_factory(config.bootstrap.token)
        tree = scm.fetch_tree(config.bootstrap.checkout, checkout_root / "repo")

        environment = (
            EnvironmentSpec(image=config.images.toolchain_tag)
            .with_network(network)
            .with_mount(Mount("volume", CACHE_MOUNT, source=config.cache_volume, read_only=True))
            .with_mount(Mount("volume", KUBE_DIR, source=kube_volume))
            .with_env("KUBECONFIG", KUBECONFIG)
            .with_env("GITHUB_TOKEN", config.bootstrap.token)
            .with_user("root")
            .with_mount(Mount("bind", config.repo_mount, source=str(tree), read_only=True))
            .with_workdir("/tmp")
        )

        runner = ProcessRunner(self._provider, context)
        result = runner.run(environment.with_pipeline("credentials"), credentials_command())
        if not result.ok:
            raise ProvisioningError(f"Could not install cluster credentials: {result.cause}")

        logger.info(f"[{run_id}] Sandbox provisioned")
        return ClusterSandbox(
            node=node,
            environment=environment,
            cache_volume=config.cache_volume,
            kube_volume=kube_volume,
            network=network,
            checkout_dir=checkout_root,
            context=context,
            token=config.bootstrap.token,
        )

    def teardown(self, sandbox: ClusterSandbox) -> None:
        """Release everything but the cache volume, which keeps the cluster identity."""
        steps: list[Callable[[], None]] = [
            lambda: shutil.rmtree(sandbox.checkout_dir, ignore_errors=True),
            lambda: self._provider.remove_volume(sandbox.kube_volume),
            lambda: self._provider.stop_service(sandbox.node.container),
            lambda: self._provider.remove_network(sandbox.network),
        ]
        self._unwind(list(reversed(steps)))

    def _unwind(self, cleanup: list[Callable[[], None]]) -> None:
        while cleanup:
            step = cleanup.pop()
            try:
                step()
            except (RuntimeError, OSError) as exc:
                logger.warning(f"Cleanup step failed: {exc}")
