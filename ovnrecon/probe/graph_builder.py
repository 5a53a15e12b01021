"""Graph builder — assembles OVN resources into a logical topology graph.

Nodes:  logical routers, logical switches, logical switch ports.
Edges:  switch → port (port listed in the switch's ``ports`` set),
        router → switch (inferred from a ``router``-type switch port whose
        ``options:router-port`` names one of the router's ports).

The router side of a peering is matched by router-port *name*: switch ports
reference their peer by name and the two NB tables share no foreign key.

Usage::

    from ovnrecon.probe.graph_builder import build_graph, graph_summary
    nodes, edges = build_graph(routers, router_ports, switches, switch_ports)
"""

from __future__ import annotations

from typing import Any, Iterable

import networkx as nx

from ovnrecon.models import (
    Edge,
    EdgeKind,
    LogicalRouter,
    LogicalRouterPort,
    LogicalSwitch,
    LogicalSwitchPort,
    Node,
    NodeKind,
    Snapshot,
)


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def build_graph(
    routers: Iterable[LogicalRouter],
    router_ports: Iterable[LogicalRouterPort],
    switches: Iterable[LogicalSwitch],
    switch_ports: Iterable[LogicalSwitchPort],
) -> tuple[list[Node], list[Edge]]:
    """Cross-reference the four NB tables into nodes and edges.

    Nodes and edges are keyed by id (last write wins) and returned sorted
    by id, so reordering the inputs never changes the output.
    """
    nodes: dict[str, Node] = {}
    edges: dict[str, Edge] = {}

    router_port_by_uuid = {port.uuid: port for port in router_ports}

    # --- Routers ---
    router_id_by_port_name: dict[str, str] = {}
    for router in routers:
        router_id = node_id(router.uuid, router.name)
        nodes[router_id] = Node(
            id=router_id,
            kind=NodeKind.logical_router,
            label=label_or_id(router.name, router_id),
            data={"uuid": router.uuid},
        )
        for port_uuid in router.port_uuids:
            port = router_port_by_uuid.get(port_uuid)
            if port is not None and port.name:
                router_id_by_port_name[port.name] = router_id

    # --- Switches ---
    switch_id_by_port_uuid: dict[str, str] = {}
    for switch in switches:
        switch_id = node_id(switch.uuid, switch.name)
        nodes[switch_id] = Node(
            id=switch_id,
            kind=NodeKind.logical_switch,
            label=label_or_id(switch.name, switch_id),
            data={"uuid": switch.uuid},
        )
        for port_uuid in switch.port_uuids:
            switch_id_by_port_uuid[port_uuid] = switch_id

    # --- Switch ports → edges ---
    for port in switch_ports:
        port_id = node_id(port.uuid, port.name)
        nodes[port_id] = Node(
            id=port_id,
            kind=NodeKind.logical_switch_port,
            label=label_or_id(port.name, port_id),
            data={"uuid": port.uuid, "type": port.type, "options": dict(port.options)},
        )

        switch_id = switch_id_by_port_uuid.get(port.uuid)
        if switch_id is not None:
            _add_edge(edges, EdgeKind.switch_to_port, switch_id, port_id)

        if port.type == "router":
            router_id = router_id_by_port_name.get(port.options.get("router-port", ""))
            if router_id is not None and switch_id is not None:
                _add_edge(edges, EdgeKind.router_to_switch, router_id, switch_id)

    ordered_nodes = [nodes[key] for key in sorted(nodes)]
    ordered_edges = [edges[key] for key in sorted(edges)]
    return ordered_nodes, ordered_edges


def node_id(uuid: str, name: str) -> str:
    """UUID when present, else name.

    Two resources without UUIDs that share a name map to the same id; the
    later one replaces the earlier in the graph.
    """
    if uuid.strip():
        return uuid
    return name.strip()


def label_or_id(label: str, ident: str) -> str:
    return label if label.strip() else ident


def edge_id(kind: EdgeKind, source: str, target: str) -> str:
    return f"{kind.value}:{source}:{target}"


def _add_edge(edges: dict[str, Edge], kind: EdgeKind, source: str, target: str) -> None:
    ident = edge_id(kind, source, target)
    edges[ident] = Edge(id=ident, source=source, target=target, kind=kind)


# ---------------------------------------------------------------------------
# Analysis helpers
# ---------------------------------------------------------------------------

def to_digraph(snapshot: Snapshot) -> nx.DiGraph:
    """Load a snapshot into a NetworkX directed graph keyed by node id."""
    G = nx.DiGraph()
    for node in snapshot.nodes:
        G.add_node(node.id, kind=node.kind.value, label=node.label)
    for edge in snapshot.edges:
        G.add_edge(edge.source, edge.target, kind=edge.kind.value, id=edge.id)
    return G


def graph_summary(snapshot: Snapshot) -> dict[str, Any]:
    """Return a plain-dict summary of a snapshot graph for the CLI / logs."""
    G = to_digraph(snapshot)
    kind_counts: dict[str, int] = {}
    for _, data in G.nodes(data=True):
        kind = data.get("kind", "unknown")
        kind_counts[kind] = kind_counts.get(kind, 0) + 1

    unattached_ports = sorted(
        node for node, data in G.nodes(data=True)
        if data.get("kind") == NodeKind.logical_switch_port.value and G.in_degree(node) == 0
    )
    return {
        "node_count": G.number_of_nodes(),
        "edge_count": len(snapshot.edges),
        "kind_counts": kind_counts,
        "unattached_switch_ports": unattached_ports,
    }
