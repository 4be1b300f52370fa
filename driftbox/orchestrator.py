"""Top-level driver for one ephemeral cluster run."""

from __future__ import annotations

import logging
import posixpath
import time
from typing import Callable

from driftbox.cluster.bootstrap import ClusterBootstrapper
from driftbox.cluster.readiness import wait_until_ready
from driftbox.cluster.tools import Runner, ToolFacade
from driftbox.config import DriftConfig
from driftbox.errors import BootstrapError, CommandCancelledError, DriftboxError, RunCancelledError
from driftbox.models.cluster import RunReport, RunState, StepFailure
from driftbox.models.sandbox import ClusterSandbox, CommandResult, ExecutionContext
from driftbox.runner import ProcessRunner

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """Provision, wait, bootstrap, then check status and diff.

    Only the first three phases are fatal. Status checks and diffs log
    their failures and the run moves on, unless the run was cancelled.
    """

    def __init__(
        self,
        config: DriftConfig,
        bootstrapper: ClusterBootstrapper,
        runner_factory: Callable[[ExecutionContext], Runner] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        context: ExecutionContext | None = None,
    ) -> None:
        self._config = config
        self._bootstrapper = bootstrapper
        self._runner_factory = runner_factory
        self._sleep = sleep
        self.context = context or ExecutionContext()
        self.report = RunReport(run_id=self.context.run_id)

    def run(self) -> RunReport:
        sandbox: ClusterSandbox | None = None
        try:
            sandbox = self._bootstrapper.provision(self._config, self.context)
            self._transition(RunState.PROVISIONED)
            tools = ToolFacade(sandbox, self._make_runner())
            wait_until_ready(
                tools,
                self._config.readiness,
                marker=self._config.ready_marker,
                sleep=self._sleep,
            )
            self._transition(RunState.READY)
            self._bootstrap(tools)
            self._transition(RunState.BOOTSTRAPPED)
            self._status_checks(tools)
            self._transition(RunState.STATUS_CHECKED)
            self._diffs(tools)
            self._transition(RunState.DIFFED)
            self._transition(RunState.DONE)
        except DriftboxError as exc:
            logger.error(f"[{self.context.run_id}] Run failed in state {self.report.state.value}: {exc}")
            self.report.error = str(exc)
            self._transition(RunState.FAILED)
        finally:
            if sandbox is not None:
                self._bootstrapper.teardown(sandbox)
        if self.report.failures:
            logger.warning(
                f"[{self.context.run_id}] {len(self.report.failures)} step(s) failed: "
                + ", ".join(failure.step for failure in self.report.failures)
            )
        return self.report

    def _make_runner(self) -> Runner:
        if self._runner_factory is not None:
            return self._runner_factory(self.context)
        return ProcessRunner(
            self._bootstrapper.provider,
            self.context,
            timeout_s=self._config.command_timeout_s,
        )

    def _bootstrap(self, tools: ToolFacade) -> None:
        spec = self._config.bootstrap
        logger.info(f"Bootstrapping flux from {spec.owner}/{spec.repository}@{spec.branch}:{spec.path}")
        result = tools.reconciler(spec.bootstrap_args())
        self._raise_if_cancelled("bootstrap", result)
        if not result.ok:
            raise BootstrapError(f"flux bootstrap failed: {result.cause}")
        self.report.outputs["bootstrap"] = result.output

    def _status_checks(self, tools: ToolFacade) -> None:
        for check in self._config.checks:
            self._soft_step(check.name, tools.tool(check.tool, check.command))

    def _diffs(self, tools: ToolFacade) -> None:
        root = self._config.repo_mount
        for target in self._config.diffs:
            path = posixpath.join(root, target.subpath)
            result = tools.reconciler(f"diff kustomization {target.name} --path {path}")
            self._soft_step(target.name, result)

    def _soft_step(self, step: str, result: CommandResult) -> None:
        self._raise_if_cancelled(step, result)
        if result.ok:
            logger.info(f"{step}:\n{result.output}")
        else:
            logger.error(f"{step} error, failed for error: {result.cause} (exit code {result.exit_code})")
            self.report.failures.append(
                StepFailure(step=step, cause=str(result.cause), exit_code=result.exit_code)
            )
        self.report.outputs[step] = result.output

    def _raise_if_cancelled(self, step: str, result: CommandResult) -> None:
        if isinstance(result.cause, CommandCancelledError) or self.context.cancelled:
            raise RunCancelledError(f"Run cancelled at step {step}")

    def _transition(self, state: RunState) -> None:
        logger.debug(f"[{self.context.run_id}] {self.report.state.value} -> {state.value}")
        self.report.state = state
