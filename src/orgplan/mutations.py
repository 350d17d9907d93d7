"""Snapshot mutations driven by user intents from the rendering layer.

Each function takes the current ``(nodes, edges)`` or ``ViewState`` and
returns the next one; inputs are never modified. Intents that would corrupt
the hierarchy (a self-report, a reporting cycle) are refused with a warning
and the snapshot comes back unchanged.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import replace

from orgplan.hierarchy import HierarchyIndex
from orgplan.model import Edge, Node, NodeStatus, Position, ViewState, make_edge_id

logger = logging.getLogger(__name__)

NEW_POSITION_TITLE = "New Position"
NEW_REPORT_OFFSET_Y = 200


def toggle_collapse(view: ViewState, node_id: str, is_collapsed: bool) -> ViewState:
    """Flip the displayed collapse state of ``node_id``.

    ``is_collapsed`` is the node's currently displayed state. The id ends up
    in exactly one of the override sets.
    """
    if is_collapsed:
        return replace(
            view,
            collapsed_nodes=view.collapsed_nodes - {node_id},
            expanded_nodes=view.expanded_nodes | {node_id},
        )
    return replace(
        view,
        collapsed_nodes=view.collapsed_nodes | {node_id},
        expanded_nodes=view.expanded_nodes - {node_id},
    )


def new_node_id(now_ms: int | None = None) -> str:
    """Time-based id for an interactively added position."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"empty-{now_ms}"


def add_subordinate(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    parent_id: str,
    node_id: str | None = None,
) -> tuple[list[Node], list[Edge], str]:
    """Add an open position reporting to ``parent_id``.

    The vacancy inherits the manager's team and starts just below it.
    Returns the new nodes, the new edges and the id of the added node.
    """
    parent = next((n for n in nodes if n.id == parent_id), None)
    base_id = node_id or new_node_id()
    existing = {n.id for n in nodes}
    new_id, suffix = base_id, 1
    while new_id in existing:
        new_id = f"{base_id}-{suffix}"
        suffix += 1

    position = (
        Position(x=parent.position.x, y=parent.position.y + NEW_REPORT_OFFSET_Y) if parent is not None else Position()
    )
    vacancy = Node(
        id=new_id,
        status=NodeStatus.EMPTY,
        job_title=NEW_POSITION_TITLE,
        team=parent.team if parent is not None else "",
        position=position,
    )
    next_edges = list(edges)
    if parent is not None:
        next_edges.append(Edge(id=make_edge_id(parent_id, new_id), source=parent_id, target=new_id))
    else:
        logger.warning("add_subordinate: unknown manager %r; new position added as a root", parent_id)
    return [*nodes, vacancy], next_edges, new_id


def edit_node(nodes: Sequence[Node], node_id: str, **changes: object) -> list[Node]:
    """Replace fields of one node. The id itself cannot change."""
    changes.pop("id", None)
    return [replace(n, **changes) if n.id == node_id else n for n in nodes]


def delete_node(nodes: Sequence[Node], edges: Sequence[Edge], node_id: str) -> tuple[list[Node], list[Edge]]:
    """Remove a node and every edge touching it; its reports become roots."""
    return (
        [n for n in nodes if n.id != node_id],
        [e for e in edges if e.source != node_id and e.target != node_id],
    )


def reconnect_edge(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    edge_id: str,
    new_source: str,
) -> list[Edge]:
    """Point an existing reporting line at a new manager.

    Refused (edges returned unchanged) when the edge or manager is unknown,
    or when the new manager reports, directly or not, to the edge's target.
    """
    edge = next((e for e in edges if e.id == edge_id), None)
    if edge is None or not any(n.id == new_source for n in nodes):
        logger.warning("reconnect_edge: unknown edge %r or manager %r", edge_id, new_source)
        return list(edges)

    index = HierarchyIndex(nodes, edges)
    if new_source == edge.target or new_source in index.descendants(edge.target):
        logger.warning("reconnect_edge: %r cannot report to %r without a cycle", edge.target, new_source)
        return list(edges)

    rewired = Edge(id=make_edge_id(new_source, edge.target), source=new_source, target=edge.target)
    return [rewired if e.id == edge_id else e for e in edges]


def supervisor_name(node_id: str, index: HierarchyIndex) -> str:
    """``"LastName, FirstName"`` of the manager, for CSV export.

    Empty when the node has no manager or the manager is a vacancy.
    """
    parent_id = index.parent_of.get(node_id)
    if parent_id is None:
        return ""
    parent = index.node(parent_id)
    return "" if parent.is_vacancy else parent.display_name


def vacancies(index: HierarchyIndex) -> list[tuple[Node, str]]:
    """Every open position with its supervisor name (recruiter export)."""
    return [(index.node(nid), supervisor_name(nid, index)) for nid in index if index.node(nid).is_vacancy]
