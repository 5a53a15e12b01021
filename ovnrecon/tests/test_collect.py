"""
Tests for probe/collect.py - probe orchestration and snapshot assembly.

Tests use a fake runner with canned ovn-nbctl output, no cluster required.
"""

import logging

from ovnrecon.models import SourceHealth, WarningCode, dump_snapshot
from ovnrecon.probe.collect import (
    NORMALIZED_MESSAGE,
    CollectOptions,
    collect_resources,
    collect_snapshot,
)
from ovnrecon.probe.errors import ExecutionError, ProbeCancelledError


def test_collect_snapshot_builds_expected_topology(make_runner, topology_outputs, fixed_now):
    """Test that a clean collection is healthy and fully connected."""
    runner = make_runner(topology_outputs)

    snapshot = collect_snapshot(runner, "worker-a", fixed_now)

    assert snapshot.metadata.node_name == "worker-a"
    assert snapshot.metadata.schema_version == "v1alpha1"
    assert snapshot.metadata.source_health == SourceHealth.healthy
    assert snapshot.warnings == []
    assert snapshot.groups == []
    assert {n.id: n.kind.value for n in snapshot.nodes} == {
        "lr-1": "logical_router",
        "ls-1": "logical_switch",
        "lsp-r": "logical_switch_port",
        "lsp-pod": "logical_switch_port",
    }
    edge_ids = {e.id for e in snapshot.edges}
    assert "router_to_switch:lr-1:ls-1" in edge_ids
    assert "switch_to_port:ls-1:lsp-pod" in edge_ids


def test_probes_run_sequentially_in_fixed_order(make_runner, topology_outputs):
    runner = make_runner(topology_outputs)

    collect_resources(runner)

    assert runner.calls == [
        ["ovn-nbctl", "--format=json", "list", "Logical_Router"],
        ["ovn-nbctl", "--format=json", "list", "Logical_Router_Port"],
        ["ovn-nbctl", "--format=json", "list", "Logical_Switch"],
        ["ovn-nbctl", "--format=json", "list", "Logical_Switch_Port"],
    ]


def test_router_command_failure_degrades(make_runner, topology_outputs):
    """Test that a failed router probe keeps the other three resource kinds."""
    runner = make_runner(
        topology_outputs,
        errors={"Logical_Router": ExecutionError("exec denied")},
    )

    snapshot = collect_snapshot(runner, "worker-a")

    assert snapshot.metadata.source_health == SourceHealth.degraded
    assert [(w.code, w.message) for w in snapshot.warnings] == [
        (WarningCode.command_failed, "Logical_Router command failed: exec denied"),
    ]
    kinds = {n.kind.value for n in snapshot.nodes}
    assert "logical_router" not in kinds
    assert kinds == {"logical_switch", "logical_switch_port"}
    assert all(e.kind.value == "switch_to_port" for e in snapshot.edges)
    assert len(snapshot.edges) == 2


def test_parse_failure_records_parser_failed(make_runner, topology_outputs):
    topology_outputs["Logical_Switch_Port"] = "ovn-nbctl: database connection failed"
    runner = make_runner(topology_outputs)

    snapshot = collect_snapshot(runner, "worker-a")

    assert snapshot.metadata.source_health == SourceHealth.degraded
    assert len(snapshot.warnings) == 1
    assert snapshot.warnings[0].code == WarningCode.parser_failed
    assert snapshot.warnings[0].message.startswith("Logical_Switch_Port parse failed: ")
    assert not [n for n in snapshot.nodes if n.kind.value == "logical_switch_port"]


def test_row_shape_failure_is_parser_failed(make_runner, topology_outputs):
    topology_outputs["Logical_Router_Port"] = '{"headings":["_uuid","name"],"data":[[["uuid","lrp-1"]]]}'

    collected = collect_resources(make_runner(topology_outputs))

    assert collected.router_ports == []
    assert collected.warnings[0].message == (
        "Logical_Router_Port parse failed: row 0 has 1 values but 2 headings"
    )


def test_normalized_warning_deduplicated(make_runner, topology_outputs):
    """Test that identical normalization warnings across kinds collapse to one."""
    for table in ("Logical_Router", "Logical_Switch"):
        topology_outputs[table] = topology_outputs[table].replace('"', "'")
    runner = make_runner(topology_outputs)

    snapshot = collect_snapshot(runner, "worker-a")

    assert [(w.code, w.message) for w in snapshot.warnings] == [
        (WarningCode.parser_normalized, NORMALIZED_MESSAGE),
    ]
    assert snapshot.metadata.source_health == SourceHealth.degraded
    assert "router_to_switch:lr-1:ls-1" in {e.id for e in snapshot.edges}


def test_distinct_failures_are_all_kept(make_runner):
    """Test that every kind failing yields one warning per kind."""
    runner = make_runner()

    collected = collect_resources(runner)

    assert [w.code for w in collected.warnings] == [WarningCode.command_failed] * 4
    assert len({w.message for w in collected.warnings}) == 4


def test_cancellation_becomes_command_failed(make_runner, topology_outputs):
    runner = make_runner(
        topology_outputs,
        errors={"Logical_Switch": ProbeCancelledError("probe deadline exceeded")},
    )

    snapshot = collect_snapshot(runner, "worker-a")

    assert snapshot.warnings[0].message == "Logical_Switch command failed: probe deadline exceeded"


def test_generated_at_serialised_as_utc(make_runner, topology_outputs, fixed_now):
    snapshot = collect_snapshot(make_runner(topology_outputs), "worker-a", fixed_now)

    wire = dump_snapshot(snapshot)

    assert wire["metadata"] == {
        "schemaVersion": "v1alpha1",
        "generatedAt": "2026-02-14T12:00:00Z",
        "sourceHealth": "healthy",
        "nodeName": "worker-a",
    }
    assert wire["groups"] == []
    assert wire["warnings"] == []


def test_probe_output_logged_when_enabled(make_runner, topology_outputs, caplog):
    logger = logging.getLogger("test.probe.verbose")
    caplog.set_level(logging.DEBUG, logger="test.probe.verbose")

    collect_resources(
        make_runner(topology_outputs),
        CollectOptions(logger=logger, include_probe_output=True),
    )

    assert "cluster-router" in caplog.text
    assert "output_bytes" not in caplog.text


def test_probe_output_omitted_by_default(make_runner, topology_outputs, caplog):
    logger = logging.getLogger("test.probe.quiet")
    caplog.set_level(logging.DEBUG, logger="test.probe.quiet")

    collect_resources(make_runner(topology_outputs), CollectOptions(logger=logger))

    assert "output_bytes" in caplog.text
    assert "cluster-router" not in caplog.text
