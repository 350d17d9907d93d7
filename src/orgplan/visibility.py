"""Visibility & depth resolver.

Walks the hierarchy top-down from every root and decides, per node:

  - depth (roots are 1, every report is one deeper than its manager)
  - whether the node is hidden (a collapsed ancestor, or recruiter-mode pruning)
  - whether its own expand/collapse affordance shows "collapsed"
  - report counts and the search match flag

Collapse state is the combination of the depth limit and the manual
overrides in ``ViewState.collapsed_nodes`` / ``ViewState.expanded_nodes``.
In recruiter mode only vacancies and the management chain above them stay
visible: a node that leads to a vacancy always shows its children, any other
node with reports is shown collapsed.
"""

from __future__ import annotations

from dataclasses import dataclass

from orgplan.hierarchy import HierarchyIndex
from orgplan.model import Edge, Node, ViewState

VACANCY_SEARCH_TOKEN = "empty"


@dataclass(frozen=True)
class NodeVisibility:
    """Resolved visibility and badge data for one node."""

    depth: int
    hidden: bool
    is_collapsed: bool
    direct_reports_count: int
    total_reports_count: int
    matches_search: bool
    leads_to_vacancy: bool


def search_tokens(query: str) -> list[str]:
    return query.lower().split()


def matches_search(node: Node, tokens: list[str]) -> bool:
    """Every token must occur in at least one searchable field.

    Vacancies also answer to the literal token ``"empty"``. No tokens means
    every node matches.
    """
    fields = [
        node.first_name.lower(),
        node.last_name.lower(),
        node.job_title.lower(),
        node.team.lower(),
    ]
    if node.is_vacancy:
        fields.append(VACANCY_SEARCH_TOKEN)
    return all(any(token in f for f in fields) for token in tokens)


def vacancy_paths(index: HierarchyIndex) -> set[str]:
    """Ids of vacancies and of every node with a vacancy among its descendants."""
    result: set[str] = set()
    for node_id in index:
        if not index.node(node_id).is_vacancy:
            continue
        current: str | None = node_id
        # Stops at the first node already marked: its whole chain is marked too.
        while current is not None and current not in result:
            result.add(current)
            current = index.parent_of.get(current)
    return result


def collapse_rule(
    node_id: str,
    depth: int,
    view: ViewState,
    has_children: bool,
    leads_to_vacancy: bool,
) -> bool:
    """Whether ``node_id`` hides its reports (ignoring its own visibility)."""
    if view.recruiter_mode:
        return False if leads_to_vacancy else has_children
    if node_id in view.collapsed_nodes:
        return True
    return depth >= view.max_depth and node_id not in view.expanded_nodes


def resolve_visibility(index: HierarchyIndex, view: ViewState) -> dict[str, NodeVisibility]:
    """Resolve visibility for every node in ``index``, keyed by node id."""
    tokens = search_tokens(view.search_query)
    on_vacancy_path = vacancy_paths(index) if view.recruiter_mode else set()

    depth: dict[str, int] = {}
    hides_children: dict[str, bool] = {}
    result: dict[str, NodeVisibility] = {}

    for node_id, parent_id in index.depth_order():
        node = index.node(node_id)
        if parent_id is None:
            depth[node_id] = 1
            hidden_by_ancestor = False
        else:
            depth[node_id] = depth[parent_id] + 1
            hidden_by_ancestor = hides_children[parent_id]

        leads_to_vacancy = node_id in on_vacancy_path
        hidden = hidden_by_ancestor or (view.recruiter_mode and not leads_to_vacancy)

        children = index.direct_children(node_id)
        collapsed = collapse_rule(node_id, depth[node_id], view, bool(children), leads_to_vacancy)
        hides_children[node_id] = hidden or collapsed

        result[node_id] = NodeVisibility(
            depth=depth[node_id],
            hidden=hidden,
            is_collapsed=collapsed,
            direct_reports_count=len(children),
            total_reports_count=len(index.descendants(node_id)),
            matches_search=matches_search(node, tokens),
            leads_to_vacancy=leads_to_vacancy,
        )

    return result


def edge_hidden(edge: Edge, visibility: dict[str, NodeVisibility]) -> bool:
    """An edge is hidden when either endpoint is hidden or unknown."""
    source = visibility.get(edge.source)
    target = visibility.get(edge.target)
    if source is None or target is None:
        return True
    return source.hidden or target.hidden
