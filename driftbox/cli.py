"""Command-line interface for driftbox."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys

from driftbox import __version__
from driftbox.cluster.bootstrap import ClusterBootstrapper
from driftbox.config import DriftConfig, load_config
from driftbox.errors import ConfigError
from driftbox.models.cluster import RunState
from driftbox.orchestrator import RunOrchestrator
from driftbox.providers.sandbox.docker import DockerProvider

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SOFT_FAILURES = 2


def build_orchestrator(config: DriftConfig) -> RunOrchestrator:
    return RunOrchestrator(config, ClusterBootstrapper(DockerProvider()))


def cmd_run(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error(str(exc))
        return EXIT_FAILED
    orchestrator = build_orchestrator(config)

    def _cancel(signum, _frame) -> None:
        logger.warning(f"Received signal {signum}, finishing current step")
        orchestrator.context.cancel()

    signal.signal(signal.SIGTERM, _cancel)
    report = orchestrator.run()
    if report.state is not RunState.DONE:
        print(f"driftbox: run failed: {report.error}", file=sys.stderr)
        return EXIT_FAILED
    if report.failures and (args.strict or config.strict):
        return EXIT_SOFT_FAILURES
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("driftbox.api.main:app", host=args.host, port=args.port)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="driftbox")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Provision a cluster, bootstrap flux and diff")
    run.add_argument("--config", default=None, help="Path to driftbox.yaml")
    run.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 when any status or diff step failed",
    )
    run.set_defaults(func=cmd_run)

    serve = sub.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
