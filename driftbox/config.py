"""Loads run configuration from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

from driftbox.errors import ConfigError
from driftbox.models.cluster import BootstrapSpec, DiffTarget, RetryPolicy, StatusCheck

DEFAULT_CONFIG_PATH = "config/driftbox.yaml"
CONFIG_ENV = "DRIFTBOX_CONFIG"

DEFAULT_CHECKS = (
    StatusCheck(
        "wait-apps",
        "kubectl",
        "wait kustomization/apps --for=condition=ready --timeout=5m -n flux-system",
    ),
    StatusCheck("helm-releases", "kubectl", "get hr -A -o wide"),
    StatusCheck("flux-resources", "flux", "get all -A"),
    StatusCheck("pods", "kubectl", "get pods -A -o wide"),
    StatusCheck("helm-ls", "helm", "ls -A"),
    StatusCheck("source-tree", "ls", "-la /src"),
)

DEFAULT_DIFFS = (
    DiffTarget("infra-custom", "infra"),
    DiffTarget("apps", "apps"),
    DiffTarget("flux-system", "clusters/tests"),
)


@dataclass(frozen=True)
class ImageConfig:
    node: str = "rancher/k3s"
    base: str = "cgr.dev/chainguard/wolfi-base:latest"
    kubectl: str = "bitnami/kubectl"
    helm: str = "alpine/helm"
    flux: str = "ghcr.io/fluxcd/flux-cli:v2.0.0-rc.5"
    toolchain_tag: str = "driftbox-toolchain:latest"
    packages: tuple[str, ...] = ("curl", "jq", "openssh-client", "git")


@dataclass(frozen=True)
class DriftConfig:
    bootstrap: BootstrapSpec
    readiness: RetryPolicy = field(default_factory=RetryPolicy)
    ready_marker: str = "Ready"
    images: ImageConfig = field(default_factory=ImageConfig)
    checks: tuple[StatusCheck, ...] = DEFAULT_CHECKS
    diffs: tuple[DiffTarget, ...] = DEFAULT_DIFFS
    cache_volume: str = "k3s_config"
    repo_mount: str = "/src"
    command_timeout_s: int | None = None
    strict: bool = False


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DriftConfig:
    """Build a DriftConfig from a YAML file plus the access token.

    A missing file falls back to built-in defaults. The token is read from
    ``environ`` exactly once, here.
    """
    environ = os.environ if environ is None else environ
    config_path = Path(path or environ.get(CONFIG_ENV) or DEFAULT_CONFIG_PATH)
    data: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return parse_config(data, environ)


def parse_config(data: Mapping[str, Any], environ: Mapping[str, str]) -> DriftConfig:
    token = environ.get(str(data.get("token_env", "GITHUB_TOKEN")), "")
    bootstrap = _section(data, "bootstrap")
    readiness = _section(data, "readiness")
    images = _section(data, "images")
    try:
        spec = BootstrapSpec(
            owner=str(bootstrap.get("owner", "shaked")),
            repository=str(bootstrap.get("repository", "fluxcd-test")),
            branch=str(bootstrap.get("branch", "main")),
            path=str(bootstrap.get("path", "clusters/tests")),
            checkout_ref=str(bootstrap.get("checkout_ref", "diff")),
            token=token,
        )
        policy = RetryPolicy(
            max_attempts=int(readiness.get("max_attempts", 5)),
            delay_s=float(readiness.get("delay_s", 5.0)),
        )
        if "packages" in images:
            images = {**images, "packages": tuple(images["packages"])}
        image_config = ImageConfig(**images)
        checks = DEFAULT_CHECKS
        if data.get("checks") is not None:
            checks = tuple(
                StatusCheck(str(item["name"]), str(item["tool"]), str(item["command"]))
                for item in data["checks"]
            )
        diffs = DEFAULT_DIFFS
        if data.get("diffs") is not None:
            diffs = tuple(
                DiffTarget(str(item["name"]), str(item["subpath"]))
                for item in data["diffs"]
            )
        _check_step_names([check.name for check in checks] + [diff.name for diff in diffs])
        marker = str(readiness.get("marker", "Ready"))
        if not marker or re.search(r"[\s,]", marker):
            raise ConfigError(f"readiness marker must be a single word, got {marker!r}")
        strict = data.get("strict", False)
        if not isinstance(strict, bool):
            raise ConfigError(f"'strict' must be true or false, got {strict!r}")
        timeout = data.get("command_timeout_s")
        return DriftConfig(
            bootstrap=spec,
            readiness=policy,
            ready_marker=marker,
            images=image_config,
            checks=checks,
            diffs=diffs,
            cache_volume=str(data.get("cache_volume", "k3s_config")),
            repo_mount=str(data.get("repo_mount", "/src")),
            command_timeout_s=int(timeout) if timeout is not None else None,
            strict=strict,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _check_step_names(names: list[str]) -> None:
    # Step outputs are reported by name; "bootstrap" is taken.
    seen = {"bootstrap"}
    for name in names:
        if name in seen:
            raise ConfigError(f"Duplicate or reserved step name: {name}")
        seen.add(name)


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section
