"""Organization statistics: size, depth, leadership span and filter counts."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from orgplan.colors import match_filter
from orgplan.hierarchy import HierarchyIndex
from orgplan.model import FilterGroup, NodeFilter

SCRATCHPAD_GROUP_ID = "scratchpad"


@dataclass(frozen=True)
class FilterCount:
    id: str
    name: str
    pattern: str
    color: str
    count: int


@dataclass(frozen=True)
class GroupedFilterStats:
    """Per-filter match counts for one group; ``rest_count`` matched none."""

    id: str
    name: str
    is_active: bool
    filter_counts: tuple[FilterCount, ...]
    rest_count: int


@dataclass(frozen=True)
class OrgStats:
    node_count: int
    depth: int
    min_span: int
    max_span: int
    grouped_filter_counts: tuple[GroupedFilterStats, ...]


def org_depth(index: HierarchyIndex) -> int:
    """Number of levels in the deepest reporting chain (0 when empty)."""
    depth: dict[str, int] = {}
    for node_id, parent_id in index.depth_order():
        depth[node_id] = 1 if parent_id is None else depth[parent_id] + 1
    return max(depth.values(), default=0)


def _group_stats(
    group_id: str,
    name: str,
    is_active: bool,
    filters: Sequence[NodeFilter],
    index: HierarchyIndex,
) -> GroupedFilterStats:
    titles = {nid: index.node(nid).job_title for nid in index}
    matched: set[str] = set()
    counts: list[FilterCount] = []
    for node_filter in filters:
        hits = {nid for nid, title in titles.items() if match_filter(title, [node_filter]) is not None}
        matched |= hits
        counts.append(
            FilterCount(
                id=node_filter.id,
                name=node_filter.name,
                pattern=node_filter.pattern,
                color=node_filter.color,
                count=len(hits),
            )
        )
    return GroupedFilterStats(
        id=group_id,
        name=name,
        is_active=is_active,
        filter_counts=tuple(counts),
        rest_count=len(titles) - len(matched),
    )


def calculate_org_stats(
    index: HierarchyIndex,
    scratchpad: Sequence[NodeFilter] = (),
    groups: Sequence[FilterGroup] = (),
) -> OrgStats:
    """Summarize the organization.

    Filters count independently of each other (a title may match several);
    the scratchpad is reported as an always-active group of its own when it
    holds any filters.
    """
    if len(index) == 0:
        return OrgStats(node_count=0, depth=0, min_span=0, max_span=0, grouped_filter_counts=())

    spans = [n for n in (len(index.direct_children(nid)) for nid in index) if n > 0]

    grouped: list[GroupedFilterStats] = []
    if scratchpad:
        grouped.append(_group_stats(SCRATCHPAD_GROUP_ID, "Scratchpad", True, scratchpad, index))
    for group in groups:
        grouped.append(_group_stats(group.id, group.name, group.enabled, group.filters, index))

    return OrgStats(
        node_count=len(index),
        depth=org_depth(index),
        min_span=min(spans, default=0),
        max_span=max(spans, default=0),
        grouped_filter_counts=tuple(grouped),
    )
