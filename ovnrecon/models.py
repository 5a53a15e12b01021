"""Shared Pydantic models for OVN Recon.

Raw OVN resource records produced by the probe parsers, plus the canonical
logical topology snapshot served to consumers.  Snapshot fields serialise
with camelCase aliases; use :func:`dump_snapshot` for the wire shape.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ovnrecon.config import SCHEMA_VERSION


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class NodeKind(str, Enum):
    """Graph node kinds."""
    logical_router = "logical_router"
    logical_switch = "logical_switch"
    logical_switch_port = "logical_switch_port"


class EdgeKind(str, Enum):
    """Graph edge kinds."""
    router_to_switch = "router_to_switch"
    switch_to_port = "switch_to_port"


class SourceHealth(str, Enum):
    """Whether every probe command and parse step succeeded."""
    healthy = "healthy"
    degraded = "degraded"


class WarningCode(str, Enum):
    command_failed = "COMMAND_FAILED"
    parser_failed = "PARSER_FAILED"
    parser_normalized = "PARSER_NORMALIZED"
    live_probe_failed = "LIVE_PROBE_FAILED"


# ---------------------------------------------------------------------------
# Raw OVN resource records (intermediate, discarded after graph assembly)
# ---------------------------------------------------------------------------

class LogicalRouter(BaseModel):
    uuid: str = ""
    name: str = ""
    port_uuids: list[str] = Field(default_factory=list)


class LogicalRouterPort(BaseModel):
    uuid: str = ""
    name: str = ""


class LogicalSwitch(BaseModel):
    uuid: str = ""
    name: str = ""
    port_uuids: list[str] = Field(default_factory=list)


class LogicalSwitchPort(BaseModel):
    uuid: str = ""
    name: str = ""
    type: str = ""
    options: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Canonical snapshot
# ---------------------------------------------------------------------------

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Metadata(_WireModel):
    """Collection metadata returned with each snapshot."""
    schema_version: str = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="generatedAt"
    )
    source_health: SourceHealth = Field(default=SourceHealth.healthy, alias="sourceHealth")
    node_name: str = Field(default="", alias="nodeName")

    @field_serializer("generated_at")
    def _serialise_generated_at(self, value: datetime) -> str:
        return format_rfc3339(value)


class Node(_WireModel):
    id: str
    kind: NodeKind
    label: str
    data: dict[str, Any] = Field(default_factory=dict)


class Edge(_WireModel):
    id: str
    source: str
    target: str
    kind: EdgeKind
    data: dict[str, Any] = Field(default_factory=dict)


class Group(_WireModel):
    """Optional grouping metadata for graph rendering (never populated by the probe)."""
    id: str
    label: str = ""
    node_ids: list[str] = Field(default_factory=list, alias="nodeIds")


class SnapshotWarning(_WireModel):
    """Structured, non-fatal warning for degraded collection states."""
    code: WarningCode
    message: str


class Snapshot(_WireModel):
    """The logical topology snapshot for one node."""
    metadata: Metadata = Field(default_factory=Metadata)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    warnings: list[SnapshotWarning] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def format_rfc3339(value: datetime) -> str:
    """Format *value* as an RFC 3339 UTC timestamp with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def dump_snapshot(snapshot: Snapshot) -> dict[str, Any]:
    """Return the JSON-ready wire representation of *snapshot*."""
    return snapshot.model_dump(by_alias=True, mode="json")
