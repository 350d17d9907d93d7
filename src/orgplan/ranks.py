"""Leadership-layer rank assignment.

A rank is the vertical tier a node should be pushed to in the layout: roots
sit on rank 0, titles matching leadership layer ``i`` sit on rank ``i + 1``
and everybody else sits one tier below the last layer. Layers are checked in
order and the first matching layer wins, regardless of how specific the
matching keyword is.
"""

from __future__ import annotations

from collections.abc import Sequence

from orgplan.hierarchy import HierarchyIndex
from orgplan.model import LeadershipLayer


def split_keywords(text: str) -> list[str]:
    """Split a comma-separated keyword list into trimmed lowercase keywords."""
    return [kw for kw in (part.strip().lower() for part in text.split(",")) if kw]


def leadership_rank(job_title: str, layers: Sequence[LeadershipLayer], is_root: bool) -> int:
    if is_root:
        return 0
    title = job_title.lower()
    for i, layer in enumerate(layers):
        if any(kw in title for kw in split_keywords(layer.identifier)):
            return i + 1
    return len(layers) + 1


def assign_ranks(index: HierarchyIndex, layers: Sequence[LeadershipLayer]) -> dict[str, int]:
    """Rank every node in ``index``; only honored roots get rank 0."""
    roots = set(index.roots)
    return {nid: leadership_rank(index.node(nid).job_title, layers, nid in roots) for nid in index}
