"""Exception types raised by driftbox."""

from __future__ import annotations

from typing import Optional


class DriftboxError(Exception):
    """Base class for driftbox errors."""


class ConfigError(DriftboxError):
    pass


class ProvisioningError(DriftboxError):
    pass


class ReadinessTimeoutError(DriftboxError, TimeoutError):
    pass


class BootstrapError(DriftboxError):
    pass


class CommandError(DriftboxError):
    def __init__(
        self,
        command: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
        reason: str | None = None,
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        if reason is None:
            reason = f"exited with status {exit_code}"
        message = f"Command failed: {command}: {reason}"
        tail = stderr.strip().splitlines()[-5:]
        if tail:
            message += "\n" + "\n".join(tail)
        super().__init__(message)


class CommandCancelledError(CommandError):
    def __init__(self, command: str) -> None:
        super().__init__(command, reason="run was cancelled")


class RunCancelledError(DriftboxError):
    pass
