"""Runs shell commands inside the toolchain sandbox."""

from __future__ import annotations

import logging
import subprocess

from driftbox.errors import CommandCancelledError, CommandError
from driftbox.models.sandbox import CommandResult, EnvironmentSpec, ExecutionContext
from driftbox.providers.sandbox.base import ContainerProvider

logger = logging.getLogger(__name__)


class ProcessRunner:
    """Executes one command per call against an environment snapshot.

    Failures are reported on the returned ``CommandResult`` rather than
    raised. There is no retry at this layer.
    """

    def __init__(
        self,
        provider: ContainerProvider,
        context: ExecutionContext,
        timeout_s: int | None = None,
    ) -> None:
        self._provider = provider
        self._context = context
        self._timeout_s = timeout_s

    def run(self, environment: EnvironmentSpec, command: str) -> CommandResult:
        if self._context.cancelled:
            return CommandResult(output="", cause=CommandCancelledError(command))
        label = "/".join(environment.pipeline) or "exec"
        logger.debug(f"[{self._context.run_id}] {label}: {command}")
        try:
            result = self._provider.exec(environment, command, timeout_s=self._timeout_s)
        except subprocess.TimeoutExpired as exc:
            error = CommandError(command, reason=f"timed out after {exc.timeout}s")
            return CommandResult(output=_text(exc.output), cause=error)
        except OSError as exc:
            error = CommandError(command, reason=f"could not be launched: {exc}")
            error.__cause__ = exc
            return CommandResult(output="", cause=error)
        if result.exit_code != 0:
            error = CommandError(command, exit_code=result.exit_code, stderr=result.stderr)
            return CommandResult(output=result.stdout, cause=error, exit_code=result.exit_code)
        return CommandResult(output=result.stdout, exit_code=result.exit_code)


def _text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""
