"""Layout module — layered org-chart layout with leaf clustering.

Phases:
  0. Leaf clustering  (childless reports of one manager become one grid node)
  1. Cycle removal    (greedy-FAS, only matters for corrupt reporting lines)
  2. Layer assignment (longest path, honoring per-edge minimum rank distance)
  3. Dummy insertion  (long edges become chains through every layer)
  4. Crossing minimization (barycenter heuristic)
  5. Coordinate assignment (x/y in logical units)
  6. Cluster expansion (grid cells back to individual leaf positions)

The layout is a pure function of its input: no state survives between calls
and every iteration order is derived from the input order, so identical
input always yields identical positions.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import networkx as nx

from orgplan.model import Direction, Position

logger = logging.getLogger(__name__)

# Logical-unit geometry of a person box and the spacing around it.
NODE_WIDTH: int = 240
NODE_HEIGHT: int = 150
LEAF_GUTTER: int = 50  # gap between boxes inside a leaf cluster
H_GAP: int = 50  # gap between neighbours in the same layer
V_GAP: int = 80  # gap between adjacent layers
DUMMY_WIDTH: int = 10

DUMMY_PREFIX = "__dummy_"
CLUSTER_PREFIX = "__leaves_"

# Passes of the coordinate refinement, alternating reference layers.
_REFINE_SWEEPS = ("up", "down", "up")

# ─── Handles ──────────────────────────────────────────────────────────────────


def handle_positions(direction: Direction) -> tuple[str, str]:
    """Return ``(target_handle, source_handle)`` anchor sides for a flow direction."""
    if direction == Direction.LR:
        return "left", "right"
    return "top", "bottom"


def frame_size(width: int, height: int, direction: Direction) -> tuple[int, int]:
    """Size of a box in the layout frame.

    The layered layout always runs top-down; for LR the box is rotated into
    the frame and the result is transposed back at the end.
    """
    if direction == Direction.LR:
        return height, width
    return width, height


# ─── Leaf Clustering ──────────────────────────────────────────────────────────


@dataclass
class LeafCluster:
    """Childless reports of one manager packed into a row-major grid.

    Leaves are grouped per (manager, rank) so a leadership layer rule still
    decides the tier of every leaf.
    """

    cluster_id: str
    parent_id: str
    rank: int
    member_ids: list[str]
    columns: int

    @property
    def rows(self) -> int:
        return math.ceil(len(self.member_ids) / self.columns)

    def cell(self, index: int) -> tuple[int, int]:
        """Return ``(row, column)`` of the member at ``index``."""
        return divmod(index, self.columns)


def cluster_dimensions(cluster: LeafCluster, direction: Direction) -> tuple[int, int]:
    """Frame ``(width, height)`` holding ``rows × columns`` boxes plus gutters.

    The grid itself is never rotated: columns run left to right on screen in
    both directions.
    """
    width = cluster.columns * NODE_WIDTH + (cluster.columns - 1) * LEAF_GUTTER
    height = cluster.rows * NODE_HEIGHT + (cluster.rows - 1) * LEAF_GUTTER
    return frame_size(width, height, direction)


def build_graph(
    node_ids: Sequence[str],
    edges: Sequence[tuple[str, str]],
    ranks: Mapping[str, int],
) -> nx.DiGraph:
    """Build the layout DiGraph from visible node ids and (manager, report) pairs.

    Edges to unknown ids, self-loops and every inbound edge after the first
    are dropped. Each edge carries ``minlen = max(1, rank(tgt) - rank(src))``.
    """
    g: nx.DiGraph = nx.DiGraph()
    for node_id in node_ids:
        g.add_node(node_id, rank=ranks.get(node_id, 0))

    for src, tgt in edges:
        if src not in g or tgt not in g or src == tgt:
            continue
        if g.in_degree(tgt) > 0:
            logger.debug("layout ignores extra inbound edge %s -> %s", src, tgt)
            continue
        g.add_edge(src, tgt, minlen=max(1, g.nodes[tgt]["rank"] - g.nodes[src]["rank"]))
    return g


def collapse_leaves(graph: nx.DiGraph, leaf_columns: int) -> tuple[nx.DiGraph, list[LeafCluster]]:
    """Replace groups of sibling leaves with one cluster node each.

    A leaf is a node without reports whose manager is part of the graph.
    The cluster inherits the group's rank and the manager → leaf edge.
    """
    columns = max(1, leaf_columns)
    groups: dict[tuple[str, int], list[str]] = {}
    for node_id in graph.nodes:
        if graph.out_degree(node_id) != 0 or graph.in_degree(node_id) != 1:
            continue
        (parent_id,) = graph.predecessors(node_id)
        groups.setdefault((parent_id, graph.nodes[node_id]["rank"]), []).append(node_id)

    clusters: list[LeafCluster] = []
    member_to_cluster: dict[str, str] = {}
    for (parent_id, rank), members in groups.items():
        cluster_id = f"{CLUSTER_PREFIX}{parent_id}_{rank}"
        clusters.append(
            LeafCluster(
                cluster_id=cluster_id,
                parent_id=parent_id,
                rank=rank,
                member_ids=members,
                # Never wider than the group itself.
                columns=min(columns, len(members)),
            )
        )
        for member in members:
            member_to_cluster[member] = cluster_id

    collapsed: nx.DiGraph = nx.DiGraph()
    cluster_by_id = {c.cluster_id: c for c in clusters}
    for node_id in graph.nodes:
        target = member_to_cluster.get(node_id, node_id)
        if target in collapsed:
            continue
        if target in cluster_by_id:
            collapsed.add_node(target, rank=cluster_by_id[target].rank, cluster=True)
        else:
            collapsed.add_node(target, **graph.nodes[node_id])

    for src, tgt, attrs in graph.edges(data=True):
        actual_tgt = member_to_cluster.get(tgt, tgt)
        if collapsed.has_edge(src, actual_tgt):
            continue
        collapsed.add_edge(src, actual_tgt, **attrs)

    return collapsed, clusters


# ─── Cycle Removal (Greedy-FAS) ───────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Order nodes so that as few edges as possible point backwards.

    Eades, Lin & Smyth greedy heuristic: peel off sinks to the tail, sources
    to the head, and when only cycles remain move the node with the largest
    (out - in) degree surplus to the head. Ties resolve by input order.
    """
    index: dict[str, int] = {node: i for i, node in enumerate(graph.nodes)}
    active: set[str] = set(graph.nodes)
    out_deg: dict[str, int] = dict(graph.out_degree())
    in_deg: dict[str, int] = dict(graph.in_degree())

    head: list[str] = []
    tail: list[str] = []

    def remove(node: str) -> None:
        active.remove(node)
        for succ in graph.successors(node):
            if succ in active:
                in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            if pred in active:
                out_deg[pred] -= 1

    while active:
        sinks = sorted((n for n in active if out_deg[n] == 0), key=index.__getitem__)
        while sinks:
            for sink in sinks:
                remove(sink)
                tail.append(sink)
            sinks = sorted((n for n in active if out_deg[n] == 0), key=index.__getitem__)

        sources = sorted((n for n in active if in_deg[n] == 0), key=index.__getitem__)
        while sources:
            for source in sources:
                remove(source)
                head.append(source)
            sources = sorted((n for n in active if in_deg[n] == 0), key=index.__getitem__)

        if active:
            best = min(active, key=lambda n: (in_deg[n] - out_deg[n], index[n]))
            remove(best)
            head.append(best)

    tail.reverse()
    return head + tail


def remove_cycles(graph: nx.DiGraph) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Return a DAG copy of ``graph`` plus the set of edges that were reversed."""
    if graph.number_of_nodes() == 0:
        return graph.copy(), set()

    position = {node: pos for pos, node in enumerate(greedy_fas_ordering(graph))}
    reversed_edges = {(src, tgt) for src, tgt in graph.edges() if src == tgt or position[src] > position[tgt]}

    dag: nx.DiGraph = nx.DiGraph()
    for node_id in graph.nodes:
        dag.add_node(node_id, **graph.nodes[node_id])
    for src, tgt, attrs in graph.edges(data=True):
        if src == tgt:
            continue
        if (src, tgt) in reversed_edges:
            dag.add_edge(tgt, src, **attrs)
        else:
            dag.add_edge(src, tgt, **attrs)

    if reversed_edges:
        logger.debug("layout reversed %d edge(s) to break cycles", len(reversed_edges))
    return dag, reversed_edges


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class LayerAssignment:
    """Layer (vertical tier) of every node in the reduced graph.

    Layer 0 is the top tier. Every edge ``u → v`` satisfies
    ``layers[v] - layers[u] >= minlen(u, v)``, so a report whose leadership
    rank is several tiers below its manager is pushed down accordingly.

    Attributes:
        layers: Maps node id → layer index.
        layer_count: Total number of layers.
        reversed_edges: Edges reversed during cycle removal.
        dag: The cycle-free graph the layers were computed on.
    """

    def __init__(
        self,
        layers: dict[str, int],
        layer_count: int,
        reversed_edges: set[tuple[str, str]],
        dag: nx.DiGraph,
    ) -> None:
        self.layers = layers
        self.layer_count = layer_count
        self.reversed_edges = reversed_edges
        self.dag = dag

    @classmethod
    def assign(cls, graph: nx.DiGraph) -> LayerAssignment:
        """Longest-path layering by fixed-point iteration over the DAG edges."""
        dag, reversed_edges = remove_cycles(graph)
        layers: dict[str, int] = {node_id: 0 for node_id in dag.nodes}

        changed = True
        while changed:
            changed = False
            for src, tgt, attrs in dag.edges(data=True):
                wanted = layers[src] + attrs.get("minlen", 1)
                if layers[tgt] < wanted:
                    layers[tgt] = wanted
                    changed = True

        layer_count = (max(layers.values()) + 1) if layers else 0
        return cls(layers=layers, layer_count=layer_count, reversed_edges=reversed_edges, dag=dag)


# ─── Dummy Node Insertion ─────────────────────────────────────────────────────


@dataclass
class AugmentedGraph:
    """The layered graph where every edge joins two adjacent layers."""

    graph: nx.DiGraph
    layers: dict[str, int]
    layer_count: int
    dummy_chains: dict[tuple[str, str], list[str]] = field(default_factory=dict)


def insert_dummy_nodes(la: LayerAssignment) -> AugmentedGraph:
    """Split every edge spanning more than one layer into a chain of dummies.

    ``u → v`` with ``layer[v] - layer[u] = k > 1`` becomes
    ``u → d₁ → … → dₖ₋₁ → v``, one dummy per intermediate layer.
    """
    g: nx.DiGraph = nx.DiGraph()
    for node_id in la.dag.nodes:
        g.add_node(node_id, **la.dag.nodes[node_id])

    layers: dict[str, int] = copy.copy(la.layers)
    chains: dict[tuple[str, str], list[str]] = {}

    for edge_no, (src, tgt) in enumerate(list(la.dag.edges())):
        span = layers[tgt] - layers[src]
        if span <= 1:
            g.add_edge(src, tgt)
            continue

        chain: list[str] = []
        prev = src
        for step in range(span - 1):
            dummy_id = f"{DUMMY_PREFIX}{edge_no}_{step}"
            g.add_node(dummy_id, dummy=True)
            layers[dummy_id] = layers[src] + step + 1
            g.add_edge(prev, dummy_id)
            chain.append(dummy_id)
            prev = dummy_id
        g.add_edge(prev, tgt)
        chains[(src, tgt)] = chain

    return AugmentedGraph(graph=g, layers=layers, layer_count=la.layer_count, dummy_chains=chains)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def initial_ordering(aug: AugmentedGraph) -> list[list[str]]:
    """Group nodes per layer in depth-first order from the top sources.

    For a tree this ordering is already crossing-free, which gives the
    barycenter sweeps a good starting point.
    """
    ordering: list[list[str]] = [[] for _ in range(aug.layer_count)]
    seen: set[str] = set()
    starts = [n for n in aug.graph.nodes if aug.graph.in_degree(n) == 0] + list(aug.graph.nodes)
    for start in starts:
        if start in seen:
            continue
        stack = [start]
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            ordering[aug.layers[node_id]].append(node_id)
            stack.extend(reversed([s for s in aug.graph.successors(node_id) if s not in seen]))
    return ordering


def minimise_crossings(aug: AugmentedGraph, max_passes: int = 24) -> list[list[str]]:
    """Reorder each layer to reduce edge crossings.

    Alternating top-down and bottom-up barycenter sweeps run until a sweep no
    longer improves the crossing count; the best ordering seen is returned.
    """
    ordering = initial_ordering(aug)
    best = count_crossings(ordering, aug.graph)
    best_ordering = [list(layer) for layer in ordering]
    layer_count = aug.layer_count

    for _pass in range(max_passes):
        if best == 0:
            break
        for layer_idx in range(1, layer_count):
            prev = {nid: float(i) for i, nid in enumerate(ordering[layer_idx - 1])}
            current = {nid: float(i) for i, nid in enumerate(ordering[layer_idx])}
            ordering[layer_idx].sort(key=lambda a, p=prev, c=current: _barycenter(a, aug.graph, p, "incoming", c[a]))

        for layer_idx in range(layer_count - 2, -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[layer_idx + 1])}
            current = {nid: float(i) for i, nid in enumerate(ordering[layer_idx])}
            ordering[layer_idx].sort(key=lambda a, n=nxt, c=current: _barycenter(a, aug.graph, n, "outgoing", c[a]))

        crossings = count_crossings(ordering, aug.graph)
        if crossings >= best:
            break
        best = crossings
        best_ordering = [list(layer) for layer in ordering]

    return best_ordering


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
    fallback: float,
) -> float:
    """Mean position of a node's neighbours in the reference layer.

    Nodes without neighbours there keep their current position.
    """
    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return fallback
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive layers (pairwise inversions)."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            if src_id in graph:
                edges.extend((sp, tgt_pos[nb]) for nb in graph.successors(src_id) if nb in tgt_pos)
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                (a0, a1), (b0, b1) = edges[i], edges[j]
                if (a0 - b0) * (a1 - b1) < 0:
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


@dataclass
class LayoutNode:
    """A positioned box in the layout frame (top-left corner)."""

    id: str
    layer: int
    order: int
    x: int
    y: int
    width: int
    height: int

    @property
    def center_x(self) -> int:
        return self.x + self.width // 2


def assign_coordinates(
    ordering: list[list[str]],
    aug: AugmentedGraph,
    size_overrides: Mapping[str, tuple[int, int]],
    direction: Direction = Direction.TB,
) -> list[LayoutNode]:
    """Assign frame coordinates to every node of the augmented graph.

    Layers are stacked top-down, each as tall as its tallest box. Within a
    layer boxes are first packed left to right, then refined by sweeps that
    pull every box towards the mean center of its neighbours in the adjacent
    layer (managers centered over their reports and vice versa) while
    keeping the layer order and at least ``H_GAP`` between neighbours.
    """
    default_size = frame_size(NODE_WIDTH, NODE_HEIGHT, direction)

    def node_dims(node_id: str) -> tuple[int, int]:
        if node_id in size_overrides:
            return size_overrides[node_id]
        if aug.graph.nodes[node_id].get("dummy"):
            return DUMMY_WIDTH, 0
        return default_size

    layer_y: list[int] = []
    y = 0
    for layer_nodes in ordering:
        layer_y.append(y)
        y += max([default_size[1]] + [node_dims(nid)[1] for nid in layer_nodes]) + V_GAP

    nodes: dict[str, LayoutNode] = {}
    for layer_idx, layer_nodes in enumerate(ordering):
        x = 0
        for order, node_id in enumerate(layer_nodes):
            width, height = node_dims(node_id)
            nodes[node_id] = LayoutNode(
                id=node_id, layer=layer_idx, order=order, x=x, y=layer_y[layer_idx], width=width, height=height
            )
            x += width + H_GAP

    for sweep in _REFINE_SWEEPS:
        layer_range = range(len(ordering) - 2, -1, -1) if sweep == "up" else range(1, len(ordering))
        for layer_idx in layer_range:
            _align_layer(ordering[layer_idx], nodes, aug.graph, "outgoing" if sweep == "up" else "incoming")

    result = [nodes[nid] for layer_nodes in ordering for nid in layer_nodes]
    if result:
        min_x = min(n.x for n in result)
        for n in result:
            n.x -= min_x
    return result


def _align_layer(layer: list[str], nodes: dict[str, LayoutNode], graph: nx.DiGraph, direction: str) -> None:
    """Move boxes of one layer towards their neighbours' mean center, in order.

    Consecutive boxes with the same neighbours (siblings under one manager)
    move as one block centered on those neighbours. Boxes without neighbours
    keep their place unless pushed right by the box before them.
    """
    blocks: list[tuple[tuple[str, ...], list[str]]] = []
    for node_id in layer:
        neighbors = graph.successors(node_id) if direction == "outgoing" else graph.predecessors(node_id)
        key = tuple(nb for nb in neighbors if nb in nodes)
        if key and blocks and blocks[-1][0] == key:
            blocks[-1][1].append(node_id)
        else:
            blocks.append((key, [node_id]))

    prev_right: int | None = None
    for key, members in blocks:
        block_width = sum(nodes[m].width for m in members) + H_GAP * (len(members) - 1)
        if key:
            x = sum(nodes[nb].center_x for nb in key) // len(key) - block_width // 2
        else:
            x = nodes[members[0]].x
        for member in members:
            ln = nodes[member]
            if prev_right is not None:
                x = max(x, prev_right + H_GAP)
            ln.x = x
            prev_right = x + ln.width
            x = prev_right + H_GAP


# ─── Cluster Expansion ────────────────────────────────────────────────────────


def expand_clusters(
    layout_nodes: list[LayoutNode],
    clusters: list[LeafCluster],
    direction: Direction = Direction.TB,
) -> dict[str, tuple[int, int]]:
    """Map every real node id to its frame position, unpacking cluster grids.

    Members fill the cluster row by row; a short last row stays left-aligned.
    """
    cluster_map = {c.cluster_id: c for c in clusters}
    positions: dict[str, tuple[int, int]] = {}

    for ln in layout_nodes:
        if ln.id.startswith(DUMMY_PREFIX):
            continue
        cluster = cluster_map.get(ln.id)
        if cluster is None:
            positions[ln.id] = (ln.x, ln.y)
            continue
        grid_w, grid_h = cluster_dimensions(cluster, direction)
        left = ln.x + (ln.width - grid_w) // 2
        top = ln.y + (ln.height - grid_h) // 2
        for i, member_id in enumerate(cluster.member_ids):
            row, col = cluster.cell(i)
            dx, dy = col * (NODE_WIDTH + LEAF_GUTTER), row * (NODE_HEIGHT + LEAF_GUTTER)
            if direction == Direction.LR:
                dx, dy = dy, dx
            positions[member_id] = (left + dx, top + dy)

    return positions


# ─── Full Layout Pipeline ─────────────────────────────────────────────────────


@dataclass
class LayoutResult:
    """Positions of every laid-out node plus the handle sides for edges."""

    positions: dict[str, Position]
    layers: dict[str, int]
    clusters: list[LeafCluster]
    target_handle: str
    source_handle: str


def layout_graph(
    node_ids: Sequence[str],
    edges: Sequence[tuple[str, str]],
    ranks: Mapping[str, int],
    leaf_columns: int = 1,
    direction: Direction = Direction.TB,
) -> LayoutResult:
    """Run the full layout pipeline over visible nodes and reporting lines."""
    target_handle, source_handle = handle_positions(direction)
    graph = build_graph(node_ids, edges, ranks)
    collapsed, clusters = collapse_leaves(graph, leaf_columns)
    size_overrides = {c.cluster_id: cluster_dimensions(c, direction) for c in clusters}

    la = LayerAssignment.assign(collapsed)
    aug = insert_dummy_nodes(la)
    ordering = minimise_crossings(aug)
    layout_nodes = assign_coordinates(ordering, aug, size_overrides, direction)
    frame_positions = expand_clusters(layout_nodes, clusters, direction)

    cluster_by_id = {c.cluster_id: c for c in clusters}
    layers: dict[str, int] = {}
    for node_id, layer in la.layers.items():
        cluster = cluster_by_id.get(node_id)
        for member in (cluster.member_ids if cluster else [node_id]):
            layers[member] = layer

    positions: dict[str, Position] = {}
    for node_id in node_ids:
        if node_id not in frame_positions:
            continue
        fx, fy = frame_positions[node_id]
        positions[node_id] = Position(x=fy, y=fx) if direction == Direction.LR else Position(x=fx, y=fy)

    logger.debug(
        "laid out %d node(s) in %d layer(s) with %d leaf cluster(s)",
        len(positions),
        la.layer_count,
        len(clusters),
    )
    return LayoutResult(
        positions=positions,
        layers=layers,
        clusters=clusters,
        target_handle=target_handle,
        source_handle=source_handle,
    )
