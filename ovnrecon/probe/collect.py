"""Probe orchestrator — runs the four NB list commands and builds a snapshot.

Each resource kind is probed and parsed independently.  A failed command or
unparseable output becomes a structured warning and an empty resource set;
collection itself never fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from ovnrecon import config
from ovnrecon.models import (
    LogicalRouter,
    LogicalRouterPort,
    LogicalSwitch,
    LogicalSwitchPort,
    Metadata,
    Snapshot,
    SnapshotWarning,
    SourceHealth,
    WarningCode,
)
from ovnrecon.probe.deadline import Deadline
from ovnrecon.probe.errors import ProbeError
from ovnrecon.probe.graph_builder import build_graph
from ovnrecon.probe.kube_runner import Runner
from ovnrecon.probe.parser import (
    parse_logical_router_ports,
    parse_logical_routers,
    parse_logical_switch_ports,
    parse_logical_switches,
)

NORMALIZED_MESSAGE = "Input required normalization due to inconsistent OVN command output"


@dataclass
class CollectOptions:
    """Per-call logging behaviour for probe collection."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("ovnrecon.probe"))
    # Log raw command output / parser input instead of byte counts.
    include_probe_output: bool = False


class CollectedResources(BaseModel):
    routers: list[LogicalRouter] = Field(default_factory=list)
    router_ports: list[LogicalRouterPort] = Field(default_factory=list)
    switches: list[LogicalSwitch] = Field(default_factory=list)
    switch_ports: list[LogicalSwitchPort] = Field(default_factory=list)
    warnings: list[SnapshotWarning] = Field(default_factory=list)


@dataclass(frozen=True)
class _Probe:
    resource: str
    command: tuple[str, ...]
    parse: Callable[[str], tuple[list[Any], bool]]
    attr: str


PROBES: tuple[_Probe, ...] = (
    _Probe("Logical_Router", config.LOGICAL_ROUTER_COMMAND, parse_logical_routers, "routers"),
    _Probe("Logical_Router_Port", config.LOGICAL_ROUTER_PORT_COMMAND, parse_logical_router_ports, "router_ports"),
    _Probe("Logical_Switch", config.LOGICAL_SWITCH_COMMAND, parse_logical_switches, "switches"),
    _Probe("Logical_Switch_Port", config.LOGICAL_SWITCH_PORT_COMMAND, parse_logical_switch_ports, "switch_ports"),
)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def collect_snapshot(
    runner: Runner,
    node_name: str,
    now: Optional[datetime] = None,
    options: Optional[CollectOptions] = None,
    deadline: Optional[Deadline] = None,
) -> Snapshot:
    """Build a logical topology snapshot from OVN NB command outputs."""
    collected = collect_resources(runner, options, deadline)
    nodes, edges = build_graph(
        collected.routers,
        collected.router_ports,
        collected.switches,
        collected.switch_ports,
    )
    generated_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    health = SourceHealth.degraded if collected.warnings else SourceHealth.healthy

    return Snapshot(
        metadata=Metadata(
            schema_version=config.SCHEMA_VERSION,
            generated_at=generated_at,
            source_health=health,
            node_name=node_name,
        ),
        nodes=nodes,
        edges=edges,
        groups=[],
        warnings=collected.warnings,
    )


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

def collect_resources(
    runner: Runner,
    options: Optional[CollectOptions] = None,
    deadline: Optional[Deadline] = None,
) -> CollectedResources:
    """Run every probe in order; failures become deduplicated warnings."""
    options = options or CollectOptions()
    logger = options.logger
    collected = CollectedResources()
    seen: set[tuple[str, str]] = set()

    def add_warning(code: WarningCode, message: str) -> None:
        if (code.value, message) in seen:
            return
        seen.add((code.value, message))
        collected.warnings.append(SnapshotWarning(code=code, message=message))

    for probe in PROBES:
        command = " ".join(probe.command)
        logger.debug("running OVN probe command resource=%s command=%r", probe.resource, command)
        try:
            raw = runner.run(list(probe.command), deadline)
        except ProbeError as exc:
            logger.warning("OVN probe command failed resource=%s error=%s", probe.resource, exc)
            add_warning(WarningCode.command_failed, f"{probe.resource} command failed: {exc}")
            continue

        _log_probe_output(logger, options.include_probe_output, command, raw)
        try:
            records, normalized = probe.parse(raw)
        except ProbeError as exc:
            logger.warning("OVN probe parser failed resource=%s error=%s", probe.resource, exc)
            _log_parse_context(logger, options.include_probe_output, raw)
            add_warning(WarningCode.parser_failed, f"{probe.resource} parse failed: {exc}")
            continue

        setattr(collected, probe.attr, records)
        if normalized:
            logger.debug("OVN probe parser normalized input resource=%s", probe.resource)
            add_warning(WarningCode.parser_normalized, NORMALIZED_MESSAGE)

    return collected


def _log_probe_output(logger: logging.Logger, include: bool, command: str, output: str) -> None:
    if include:
        logger.debug("OVN probe command output command=%r output=%s", command, output)
        return
    logger.debug("OVN probe command completed command=%r output_bytes=%d", command, len(output.encode("utf-8")))


def _log_parse_context(logger: logging.Logger, include: bool, output: str) -> None:
    if include:
        logger.debug("OVN probe parser input output=%s", output)
        return
    logger.debug("OVN probe parser input output_bytes=%d", len(output.encode("utf-8")))
