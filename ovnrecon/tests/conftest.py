"""Shared fixtures: canned ovn-nbctl outputs and a fake command runner."""

from datetime import datetime, timezone

import pytest

from ovnrecon.probe.errors import ExecutionError

ROUTERS_JSON = (
    '{"headings":["_uuid","name","ports"],'
    '"data":[[["uuid","lr-1"],"cluster-router",["set",[["uuid","lrp-1"]]]]]}'
)
ROUTER_PORTS_JSON = '{"headings":["_uuid","name"],"data":[[["uuid","lrp-1"],"rtos-red"]]}'
SWITCHES_JSON = (
    '{"headings":["_uuid","name","ports"],'
    '"data":[[["uuid","ls-1"],"red-net",["set",[["uuid","lsp-r"],["uuid","lsp-pod"]]]]]}'
)
SWITCH_PORTS_JSON = (
    '{"headings":["_uuid","name","type","options"],"data":['
    '[["uuid","lsp-r"],"red-router-port","router",["map",[["router-port","rtos-red"]]]],'
    '[["uuid","lsp-pod"],"pod-a","",["map",[]]]]}'
)


class FakeRunner:
    """Answers probe commands from a table keyed by the command's table name."""

    def __init__(self, outputs=None, errors=None):
        self.outputs = dict(outputs or {})
        self.errors = dict(errors or {})
        self.calls = []

    def run(self, command, deadline=None):
        self.calls.append(list(command))
        table = command[-1]
        if table in self.errors:
            raise self.errors[table]
        if table in self.outputs:
            return self.outputs[table]
        raise ExecutionError(f"missing fixture for command: {' '.join(command)}")


@pytest.fixture
def topology_outputs():
    return {
        "Logical_Router": ROUTERS_JSON,
        "Logical_Router_Port": ROUTER_PORTS_JSON,
        "Logical_Switch": SWITCHES_JSON,
        "Logical_Switch_Port": SWITCH_PORTS_JSON,
    }


@pytest.fixture
def make_runner():
    return FakeRunner


@pytest.fixture
def fixed_now():
    return datetime(2026, 2, 14, 12, 0, 0, tzinfo=timezone.utc)
