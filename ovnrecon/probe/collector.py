"""Live snapshot collector — one probe collection per node request."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ovnrecon.models import Snapshot
from ovnrecon.probe.collect import CollectOptions, collect_snapshot
from ovnrecon.probe.deadline import Deadline
from ovnrecon.probe.errors import ConfigurationError, ProbeError
from ovnrecon.probe.kube_runner import Runner, RunnerFactory


class StaticRunnerFactory:
    """Always returns the same runner, regardless of node."""

    def __init__(self, runner: Optional[Runner]) -> None:
        self.runner = runner

    def runner_for_node(self, node_name: str, deadline: Optional[Deadline] = None) -> Runner:
        if self.runner is None:
            raise ConfigurationError("runner is nil")
        return self.runner


class SnapshotCollector:
    """Executes live probe collection for a requested node.

    Failover across execution targets already happens inside the runner,
    so failures to obtain a runner are reported once and never retried.
    """

    def __init__(
        self,
        runner_factory: RunnerFactory,
        logger: Optional[logging.Logger] = None,
        include_probe_output: bool = False,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.runner_factory = runner_factory
        self.logger = logger or logging.getLogger("ovnrecon.collector")
        self.include_probe_output = include_probe_output
        self.now = now or (lambda: datetime.now(timezone.utc))

    def collect(self, node_name: str, deadline: Optional[Deadline] = None) -> Snapshot:
        """Build a snapshot for *node_name* by running the probe commands.

        Raises:
            ProbeError: The runner could not be resolved (configuration or
                target-resolution failure).
        """
        try:
            runner = self.runner_factory.runner_for_node(node_name, deadline)
        except ProbeError as exc:
            self.logger.error("resolve probe runner failed node=%s error=%s", node_name, exc)
            raise

        start = time.monotonic()
        self.logger.info("collecting logical topology snapshot node=%s", node_name)
        snapshot = collect_snapshot(
            runner,
            node_name,
            self.now(),
            CollectOptions(
                logger=self.logger.getChild("probe"),
                include_probe_output=self.include_probe_output,
            ),
            deadline,
        )
        duration_ms = int((time.monotonic() - start) * 1000)

        self.logger.info(
            "logical topology snapshot collected node=%s duration_ms=%d node_count=%d "
            "edge_count=%d warning_count=%d source_health=%s",
            node_name,
            duration_ms,
            len(snapshot.nodes),
            len(snapshot.edges),
            len(snapshot.warnings),
            snapshot.metadata.source_health.value,
        )
        return snapshot
