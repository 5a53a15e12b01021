"""
Tests for config.py and probe/deadline.py - environment parsing and deadlines.
"""

import importlib
import logging

import pytest

from ovnrecon import config
from ovnrecon.probe.deadline import Deadline
from ovnrecon.probe.errors import ProbeCancelledError


def test_parse_csv_trims_and_deduplicates():
    assert config.parse_csv(" a, b,,a , c ") == ["a", "b", "c"]
    assert config.parse_csv("") == []


@pytest.mark.parametrize("raw", ["1", "t", "TRUE", "yes", " on "])
def test_parse_bool_truthy(raw):
    assert config.parse_bool(raw) is True


@pytest.mark.parametrize("raw", ["", "0", "false", "off", "maybe"])
def test_parse_bool_falsy(raw):
    assert config.parse_bool(raw) is False


def test_parse_log_level():
    assert config.parse_log_level("debug") == logging.DEBUG
    assert config.parse_log_level("trace") == logging.DEBUG
    assert config.parse_log_level("WARN") == logging.WARNING
    assert config.parse_log_level("error") == logging.ERROR
    assert config.parse_log_level("bogus") == logging.INFO


def test_env_blank_value_means_default(monkeypatch):
    monkeypatch.setenv("SNAPSHOT_DIR", "   ")
    assert config.env("SNAPSHOT_DIR", "./fixtures/snapshots") == "./fixtures/snapshots"

    monkeypatch.setenv("SNAPSHOT_DIR", "/var/lib/snapshots")
    assert config.env("SNAPSHOT_DIR", "./fixtures/snapshots") == "/var/lib/snapshots"

    monkeypatch.delenv("SNAPSHOT_DIR")
    assert config.env("SNAPSHOT_DIR", "x") == "x"


def test_empty_environment_keeps_module_defaults(monkeypatch):
    """Test that empty variables neither crash import nor disable live probing."""
    for key in ("PORT", "COLLECTOR_PROBE_TIMEOUT", "COLLECTOR_TARGET_NAMESPACES", "COLLECTOR_LOG_LEVEL"):
        monkeypatch.setenv(key, "")
    try:
        reloaded = importlib.reload(config)

        assert reloaded.PORT == 8090
        assert reloaded.PROBE_TIMEOUT_SECONDS == 30.0
        assert reloaded.TARGET_NAMESPACES == ["openshift-ovn-kubernetes", "openshift-frr-k8s"]
        assert reloaded.LOG_LEVEL == logging.INFO
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_probe_commands_vary_only_by_table():
    commands = [
        config.LOGICAL_ROUTER_COMMAND,
        config.LOGICAL_ROUTER_PORT_COMMAND,
        config.LOGICAL_SWITCH_COMMAND,
        config.LOGICAL_SWITCH_PORT_COMMAND,
    ]

    assert {c[:-1] for c in commands} == {("ovn-nbctl", "--format=json", "list")}
    assert [c[-1] for c in commands] == [
        "Logical_Router", "Logical_Router_Port", "Logical_Switch", "Logical_Switch_Port",
    ]


def test_deadline_without_timeout_never_expires():
    deadline = Deadline()

    deadline.check()
    assert deadline.remaining() is None
    assert not deadline.expired


def test_deadline_expires_with_clock():
    now = [100.0]
    deadline = Deadline(timeout=5, clock=lambda: now[0])

    assert deadline.remaining() == 5
    now[0] = 106.0
    assert deadline.expired
    assert deadline.remaining() == 0.0
    with pytest.raises(ProbeCancelledError, match="deadline exceeded"):
        deadline.check()


def test_deadline_cancel():
    deadline = Deadline(timeout=60)
    deadline.cancel()

    assert deadline.cancelled
    with pytest.raises(ProbeCancelledError, match="probe cancelled"):
        deadline.check()
