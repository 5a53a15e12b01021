"""OVN table decoder and resource parsers.

``ovn-nbctl --format=json list <Table>`` emits::

    {"headings": ["_uuid", "name", "ports"],
     "data": [[["uuid", "a1"], "r1", ["set", [["uuid", "p1"]]]]]}

Non-primitive values are tagged two-element arrays (``uuid``, ``set``,
``map``).  Some command paths emit pseudo-JSON with single quotes; those
payloads are accepted after quote normalization and reported as such.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError

from ovnrecon.models import (
    LogicalRouter,
    LogicalRouterPort,
    LogicalSwitch,
    LogicalSwitchPort,
)
from ovnrecon.probe.errors import DecodeError, RowShapeError

OVSValue = Union[str, int, float, bool, None, list["OVSValue"], dict[str, "OVSValue"]]
Row = dict[str, OVSValue]


class TablePayload(BaseModel):
    headings: list[str] = Field(default_factory=list)
    data: list[list[Any]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Table decoding
# ---------------------------------------------------------------------------

def decode_table_payload(raw: str) -> tuple[TablePayload, bool]:
    """Parse *raw* strictly, retrying once with single quotes normalized.

    Returns the payload and whether normalization was required.
    """
    try:
        return TablePayload.model_validate_json(raw), False
    except ValidationError:
        pass

    normalized_raw = raw.replace("'", '"')
    if normalized_raw == raw:
        raise DecodeError("decode table payload: not a valid OVN table")

    try:
        return TablePayload.model_validate_json(normalized_raw), True
    except ValidationError as exc:
        raise DecodeError(
            f"decode normalized table payload: {exc.error_count()} validation error(s)"
        ) from exc


def parse_table_rows(raw: str) -> tuple[list[Row], bool]:
    """Decode *raw* into one ``heading -> value`` dict per row."""
    payload, normalized = decode_table_payload(raw)

    rows: list[Row] = []
    for row_index, row in enumerate(payload.data):
        if len(row) != len(payload.headings):
            raise RowShapeError(row_index, len(row), len(payload.headings))
        rows.append({
            heading: decode_ovs_value(value)
            for heading, value in zip(payload.headings, row)
        })
    return rows, normalized


def decode_ovs_value(value: Any) -> OVSValue:
    """Resolve OVSDB tagged values (``uuid``/``set``/``map``) recursively."""
    if isinstance(value, list):
        if len(value) == 2 and isinstance(value[0], str):
            tag, payload = value
            if tag == "uuid":
                return as_string(payload)
            if tag == "set":
                if not isinstance(payload, list):
                    return []
                return [decode_ovs_value(item) for item in payload]
            if tag == "map":
                if not isinstance(payload, list):
                    return {}
                decoded: dict[str, OVSValue] = {}
                for pair in payload:
                    if not isinstance(pair, list) or len(pair) != 2:
                        continue
                    decoded[as_string(decode_ovs_value(pair[0]))] = decode_ovs_value(pair[1])
                return decoded
        return [decode_ovs_value(item) for item in value]

    if isinstance(value, dict):
        return {key: decode_ovs_value(item) for key, item in value.items()}

    return value


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def string_field(row: Row, key: str) -> str:
    return as_string(row.get(key))


def string_list_field(row: Row, key: str) -> list[str]:
    """Coerce a set-valued column; single-element sets arrive unwrapped."""
    if key not in row:
        return []
    raw = row[key]
    if not isinstance(raw, list):
        value = as_string(raw)
        return [value] if value else []
    return [value for value in (as_string(item) for item in raw) if value]


def string_map_field(row: Row, key: str) -> dict[str, str]:
    raw = row.get(key)
    if not isinstance(raw, dict):
        return {}
    return {map_key: as_string(map_value) for map_key, map_value in raw.items()}


# ---------------------------------------------------------------------------
# Resource parsers
# ---------------------------------------------------------------------------

def parse_logical_routers(raw: str) -> tuple[list[LogicalRouter], bool]:
    rows, normalized = parse_table_rows(raw)
    routers = [
        LogicalRouter(
            uuid=string_field(row, "_uuid"),
            name=string_field(row, "name"),
            port_uuids=string_list_field(row, "ports"),
        )
        for row in rows
    ]
    return routers, normalized


def parse_logical_router_ports(raw: str) -> tuple[list[LogicalRouterPort], bool]:
    rows, normalized = parse_table_rows(raw)
    ports = [
        LogicalRouterPort(
            uuid=string_field(row, "_uuid"),
            name=string_field(row, "name"),
        )
        for row in rows
    ]
    return ports, normalized


def parse_logical_switches(raw: str) -> tuple[list[LogicalSwitch], bool]:
    rows, normalized = parse_table_rows(raw)
    switches = [
        LogicalSwitch(
            uuid=string_field(row, "_uuid"),
            name=string_field(row, "name"),
            port_uuids=string_list_field(row, "ports"),
        )
        for row in rows
    ]
    return switches, normalized


def parse_logical_switch_ports(raw: str) -> tuple[list[LogicalSwitchPort], bool]:
    rows, normalized = parse_table_rows(raw)
    ports = [
        LogicalSwitchPort(
            uuid=string_field(row, "_uuid"),
            name=string_field(row, "name"),
            type=string_field(row, "type"),
            options=string_map_field(row, "options"),
        )
        for row in rows
    ]
    return ports, normalized
