"""Resolve pipeline from a snapshot to everything the renderer draws.

    nodes + edges + ViewState
        → HierarchyIndex
        → visibility, ranks
        → layout of the visible subgraph
        → colors, team frames

``resolve_view`` is recomputed from scratch on every change and is a pure
function of its arguments.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from orgplan import mutations
from orgplan.colors import contrast_text_color, node_color
from orgplan.hierarchy import HierarchyIndex
from orgplan.layout import layout_graph
from orgplan.model import Direction, Edge, Node, Position, ViewState
from orgplan.ranks import assign_ranks
from orgplan.teams import TeamGroupBox, team_group_boxes, team_groups
from orgplan.visibility import edge_hidden, resolve_visibility

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedNode:
    id: str
    node: Node
    position: Position
    hidden: bool
    depth: int
    is_collapsed: bool
    direct_reports_count: int
    total_reports_count: int
    matches_search: bool
    color: str
    text_color: str
    rank: int
    target_handle: str
    source_handle: str


@dataclass(frozen=True)
class ResolvedEdge:
    id: str
    source: str
    target: str
    hidden: bool


@dataclass(frozen=True)
class ResolvedView:
    """Renderer-ready view of one snapshot.

    Nodes and edges keep their input order. Hidden nodes keep their stored
    position; only visible nodes are laid out.
    """

    nodes: list[ResolvedNode] = field(default_factory=list)
    edges: list[ResolvedEdge] = field(default_factory=list)
    team_groups: list[TeamGroupBox] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def node(self, node_id: str) -> ResolvedNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def visible_nodes(self) -> list[ResolvedNode]:
        return [n for n in self.nodes if not n.hidden]


@dataclass(frozen=True)
class CollapseToggle:
    """Result of a collapse toggle: the next view state and the node's
    position before and after, so the viewport can keep it anchored."""

    view_state: ViewState
    before: Position | None
    after: Position | None


def _warnings(index: HierarchyIndex) -> list[str]:
    result: list[str] = []
    if index.cycle_nodes:
        result.append(f"reporting cycle: {', '.join(index.cycle_nodes)} unreachable from any root")
    for edge in index.ignored_edges:
        result.append(f"edge {edge.id} ignored ({edge.source} -> {edge.target})")
    return result


def resolve_view(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    view_state: ViewState,
    direction: Direction = Direction.TB,
) -> ResolvedView:
    """Resolve visibility, layout, colors and team frames for one snapshot."""
    index = HierarchyIndex(nodes, edges)
    visibility = resolve_visibility(index, view_state)
    ranks = assign_ranks(index, view_state.leadership_layers)

    visible_ids = [nid for nid in index if not visibility[nid].hidden]
    visible_edges = [
        (e.source, e.target) for e in index.honored_edges() if not edge_hidden(e, visibility)
    ]
    layout = layout_graph(visible_ids, visible_edges, ranks, view_state.leaf_columns, direction)

    resolved_nodes: list[ResolvedNode] = []
    positions: dict[str, Position] = {}
    for node in index.nodes():
        vis = visibility[node.id]
        position = layout.positions.get(node.id, node.position)
        positions[node.id] = position
        color = node_color(node.job_title, view_state)
        resolved_nodes.append(
            ResolvedNode(
                id=node.id,
                node=node,
                position=position,
                hidden=vis.hidden,
                depth=vis.depth,
                is_collapsed=vis.is_collapsed,
                direct_reports_count=vis.direct_reports_count,
                total_reports_count=vis.total_reports_count,
                matches_search=vis.matches_search,
                color=color,
                text_color=contrast_text_color(color),
                rank=ranks[node.id],
                target_handle=layout.target_handle,
                source_handle=layout.source_handle,
            )
        )

    resolved_edges = [
        ResolvedEdge(id=e.id, source=e.source, target=e.target, hidden=edge_hidden(e, visibility)) for e in edges
    ]

    hidden = {nid: vis.hidden for nid, vis in visibility.items()}
    boxes = team_group_boxes(team_groups(index), positions, hidden)

    logger.debug(
        "resolved %d node(s), %d visible, %d team frame(s)",
        len(resolved_nodes),
        len(visible_ids),
        len(boxes),
    )
    return ResolvedView(
        nodes=resolved_nodes,
        edges=resolved_edges,
        team_groups=boxes,
        warnings=_warnings(index),
    )


def toggle_collapse(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    view_state: ViewState,
    node_id: str,
    direction: Direction = Direction.TB,
) -> CollapseToggle:
    """Flip the displayed collapse state of ``node_id``.

    Unknown ids leave the view state unchanged.
    """
    before_view = resolve_view(nodes, edges, view_state, direction)
    before = before_view.node(node_id)
    if before is None:
        logger.warning("toggle_collapse: unknown node %r", node_id)
        return CollapseToggle(view_state=view_state, before=None, after=None)

    next_state = mutations.toggle_collapse(view_state, node_id, before.is_collapsed)
    after = resolve_view(nodes, edges, next_state, direction).node(node_id)
    return CollapseToggle(
        view_state=next_state,
        before=before.position,
        after=after.position if after is not None else None,
    )
