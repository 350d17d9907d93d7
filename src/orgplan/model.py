"""Core records for the org-chart editor.

Every record is frozen: mutations build a new snapshot instead of editing a
node or a view state in place, so the resolve pipeline stays a pure function
of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# ─── People & Reporting Lines ─────────────────────────────────────────────────


class NodeStatus(str, Enum):
    """Whether a position is held by a person or is an open vacancy."""

    FILLED = "FILLED"
    EMPTY = "EMPTY"


class Direction(str, Enum):
    """Flow direction of the chart: top-to-bottom or left-to-right."""

    TB = "TB"
    LR = "LR"


@dataclass(frozen=True)
class Position:
    """Top-left corner of a node box in logical layout units."""

    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class Node:
    """One position in the organization, filled or vacant."""

    id: str
    status: NodeStatus = NodeStatus.FILLED
    first_name: str = ""
    last_name: str = ""
    job_title: str = ""
    team: str = ""
    work_email: str = ""
    start_date: str | None = None
    exit_date: str | None = None
    probation_end_date: str | None = None
    salary_band_id: str | None = None
    position: Position = field(default_factory=Position)

    @property
    def is_vacancy(self) -> bool:
        return self.status == NodeStatus.EMPTY

    @property
    def display_name(self) -> str:
        """``"LastName, FirstName"``, the key supervisors are referenced by."""
        return f"{self.last_name}, {self.first_name}"


@dataclass(frozen=True)
class Edge:
    """A reporting line: ``source`` is the direct manager of ``target``."""

    id: str
    source: str
    target: str


def make_edge_id(source: str, target: str) -> str:
    return f"e-{source}-{target}"


# ─── View Configuration ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class LeadershipLayer:
    """A keyword rule pinning matching job titles to a vertical tier.

    ``identifier`` is a comma-separated list of keywords, e.g.
    ``"Engineering Manager, Principal"``.
    """

    id: str
    identifier: str
    name: str = ""


@dataclass(frozen=True)
class NodeFilter:
    """A comma-separated title pattern mapped to a display color."""

    id: str
    pattern: str
    color: str
    name: str = ""


@dataclass(frozen=True)
class FilterGroup:
    id: str
    enabled: bool = False
    filters: tuple[NodeFilter, ...] = ()
    fallback_color: str | None = None
    name: str = ""


DEFAULT_MAX_DEPTH = 3
DEFAULT_LEAF_COLUMNS = 1
DEFAULT_FALLBACK_COLOR = "#ffffff"
DEFAULT_CONNECTION_COLOR = "#94a3b8"
DEFAULT_BACKGROUND_COLOR = "#f8fafc"


@dataclass(frozen=True)
class ViewState:
    """Per-plan view configuration plus the session's search/recruiter inputs.

    ``collapsed_nodes`` and ``expanded_nodes`` record manual overrides of the
    depth-based auto-collapse; a node id is never in both.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    leaf_columns: int = DEFAULT_LEAF_COLUMNS
    collapsed_nodes: frozenset[str] = frozenset()
    expanded_nodes: frozenset[str] = frozenset()
    leadership_layers: tuple[LeadershipLayer, ...] = ()
    node_filters: tuple[NodeFilter, ...] = ()
    filter_groups: tuple[FilterGroup, ...] = ()
    default_fallback_color: str | None = DEFAULT_FALLBACK_COLOR
    connection_color: str = DEFAULT_CONNECTION_COLOR
    background_color: str = DEFAULT_BACKGROUND_COLOR
    recruiter_mode: bool = False
    search_query: str = ""
