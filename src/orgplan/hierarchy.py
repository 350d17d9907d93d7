"""Hierarchy index: parent, child and descendant lookups over a reporting graph.

The index is built once per snapshot and shared by every resolver. It never
raises on bad input:

  - Edges whose source or target is not a known node are ignored.
  - Self-loops are ignored.
  - A node with several inbound edges keeps only the first one (in edge
    order) as its manager; the others are recorded in ``ignored_edges``.
  - Nodes trapped in a reporting cycle (unreachable from any root) are
    reported in ``cycle_nodes`` and logged, never corrected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import networkx as nx

from orgplan.model import Edge, Node

logger = logging.getLogger(__name__)


class HierarchyIndex:
    """Lookup tables derived from a flat node list and a flat edge list.

    Attributes:
        graph: DiGraph of honored reporting lines (manager → report). Node
            attribute ``node`` holds the ``Node`` record.
        order: Node ids in input order.
        parent_of: Maps node id → id of its (first) manager.
        roots: Ids of nodes without an honored manager, in input order.
        ignored_edges: Edges dropped as malformed or as extra inbound edges.
        cycle_nodes: Ids not reachable from any root, in input order.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self.graph: nx.DiGraph = nx.DiGraph()
        self.order: list[str] = []
        self.parent_of: dict[str, str] = {}
        self.ignored_edges: list[Edge] = []

        for node in nodes:
            if node.id in self.graph:
                logger.debug("duplicate node id %r ignored", node.id)
                continue
            self.graph.add_node(node.id, node=node)
            self.order.append(node.id)

        for edge in edges:
            if edge.source not in self.graph or edge.target not in self.graph or edge.source == edge.target:
                logger.debug("malformed edge %r ignored", edge.id)
                self.ignored_edges.append(edge)
                continue
            if edge.target in self.parent_of:
                logger.debug("extra inbound edge %r ignored for %r", edge.id, edge.target)
                self.ignored_edges.append(edge)
                continue
            self.parent_of[edge.target] = edge.source
            self.graph.add_edge(edge.source, edge.target, edge=edge)

        self.roots: list[str] = [nid for nid in self.order if nid not in self.parent_of]
        self._descendants = self._collect_descendants()
        self.cycle_nodes: list[str] = self._find_cycle_nodes()

        if self.cycle_nodes:
            logger.warning(
                "reporting lines contain a cycle; %d node(s) unreachable from any root: %s",
                len(self.cycle_nodes),
                ", ".join(self.cycle_nodes),
            )

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.graph

    def __len__(self) -> int:
        return len(self.order)

    def __iter__(self) -> Iterator[str]:
        return iter(self.order)

    def node(self, node_id: str) -> Node:
        return self.graph.nodes[node_id]["node"]

    def nodes(self) -> list[Node]:
        return [self.node(nid) for nid in self.order]

    def direct_children(self, node_id: str) -> list[str]:
        """Direct reports in edge insertion order (empty for unknown ids)."""
        if node_id not in self.graph:
            return []
        return list(self.graph.successors(node_id))

    def descendants(self, node_id: str) -> list[str]:
        """All transitive reports, children first, without duplicates."""
        return list(self._descendants.get(node_id, ()))

    def honored_edges(self) -> list[Edge]:
        return [attrs["edge"] for _, _, attrs in self.graph.edges(data=True)]

    def depth_order(self) -> Iterator[tuple[str, str | None]]:
        """Yield ``(node_id, parent_id)`` top-down, roots first.

        Nodes on a reporting cycle are yielded afterwards as pseudo-roots so
        that every node is visited exactly once. Reports hanging off a cycle
        are reached through their manager, never as pseudo-roots.
        """
        seen: set[str] = set()
        starts = self.roots + self._cycle_members()
        for start in starts:
            if start in seen:
                continue
            stack: list[tuple[str, str | None]] = [(start, None)]
            while stack:
                node_id, parent_id = stack.pop()
                if node_id in seen:
                    continue
                seen.add(node_id)
                yield node_id, parent_id
                # Reverse so the first child is visited first.
                for child in reversed(self.direct_children(node_id)):
                    if child not in seen:
                        stack.append((child, node_id))

    # ─── Internal ────────────────────────────────────────────────────────────

    def _collect_descendants(self) -> dict[str, list[str]]:
        """Memoized descendant lists via iterative post-order traversal.

        A child that is still on the current path closes a cycle; it is
        skipped, so members of a cycle get a partial result instead of an
        infinite loop.
        """
        memo: dict[str, list[str]] = {}
        for start in self.order:
            if start in memo:
                continue
            on_path: set[str] = {start}
            stack: list[tuple[str, Iterator[str]]] = [(start, iter(self.direct_children(start)))]
            while stack:
                node_id, children = stack[-1]
                child = next(children, None)
                if child is None:
                    stack.pop()
                    on_path.discard(node_id)
                    memo[node_id] = self._merge_children(node_id, memo)
                elif child in memo or child in on_path:
                    continue
                else:
                    on_path.add(child)
                    stack.append((child, iter(self.direct_children(child))))
        return memo

    def _merge_children(self, node_id: str, memo: dict[str, list[str]]) -> list[str]:
        result: list[str] = []
        seen: set[str] = {node_id}
        for child in self.direct_children(node_id):
            for desc in [child, *memo.get(child, ())]:
                if desc not in seen:
                    seen.add(desc)
                    result.append(desc)
        return result

    def _find_cycle_nodes(self) -> list[str]:
        reachable: set[str] = set(self.roots)
        for root in self.roots:
            reachable.update(self._descendants.get(root, ()))
        return [nid for nid in self.order if nid not in reachable]

    def _cycle_members(self) -> list[str]:
        if not self.cycle_nodes:
            return []
        # Each node has at most one manager, so cycles never share a node.
        on_cycle = {nid for cycle in nx.simple_cycles(self.graph) for nid in cycle}
        return [nid for nid in self.cycle_nodes if nid in on_cycle]
