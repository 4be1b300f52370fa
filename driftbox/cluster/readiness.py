"""Polls the node listing until the cluster reports a ready node."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from driftbox.cluster.tools import ToolFacade
from driftbox.errors import CommandCancelledError, ReadinessTimeoutError, RunCancelledError
from driftbox.models.cluster import RetryPolicy

logger = logging.getLogger(__name__)

READY_MARKER = "Ready"
NODES_COMMAND = "get nodes -o wide"


def is_ready(listing: str, marker: str = READY_MARKER) -> bool:
    # "NotReady" must not match; conditions may be comma joined.
    for line in listing.splitlines():
        if marker in re.split(r"[\s,]+", line):
            return True
    return False


def wait_until_ready(
    tools: ToolFacade,
    policy: RetryPolicy,
    marker: str = READY_MARKER,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Return the attempt number on which the node became ready.

    Raises ReadinessTimeoutError once ``policy.max_attempts`` probes have
    gone by without the marker.
    """
    for attempt in range(1, policy.max_attempts + 1):
        if tools.cancelled:
            raise RunCancelledError("Run cancelled while waiting for the cluster")
        sleep(policy.delay_s)
        result = tools.control_plane(NODES_COMMAND)
        if isinstance(result.cause, CommandCancelledError):
            raise RunCancelledError("Run cancelled while waiting for the cluster") from result.cause
        if not result.ok:
            logger.warning(f"Could not fetch nodes (attempt {attempt}/{policy.max_attempts}): {result.cause}")
            continue
        if is_ready(result.output, marker):
            logger.info(f"Cluster ready after {attempt} attempt(s)")
            return attempt
        logger.info(f"Waiting for k8s to start (attempt {attempt}/{policy.max_attempts}):\n{result.output}")
    raise ReadinessTimeoutError(
        f"k8s took too long to start ({policy.max_attempts} attempts, {policy.delay_s}s apart)"
    )
