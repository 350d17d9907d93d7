"""Layout and view-resolution core of an org-chart editor."""

from orgplan.api import CollapseToggle, ResolvedEdge, ResolvedNode, ResolvedView, resolve_view, toggle_collapse
from orgplan.hierarchy import HierarchyIndex
from orgplan.model import (
    Direction,
    Edge,
    FilterGroup,
    LeadershipLayer,
    Node,
    NodeFilter,
    NodeStatus,
    Position,
    ViewState,
)
from orgplan.plan import PlanDocument, PlanFormatError, PlanSnapshot
from orgplan.salary import (
    JobFamily,
    SalaryBand,
    add_band,
    add_job_family,
    calculate_next_midpoint,
    calculate_previous_midpoint,
    calculate_sub_bands,
    perform_sync,
    remove_band,
    remove_job_family,
    replace_family_bands,
    set_leading,
    toggle_auto_calculated,
    update_band,
)
from orgplan.stats import OrgStats, calculate_org_stats

__version__ = "0.1.0"

__all__ = [
    "CollapseToggle",
    "Direction",
    "Edge",
    "FilterGroup",
    "HierarchyIndex",
    "JobFamily",
    "LeadershipLayer",
    "Node",
    "NodeFilter",
    "NodeStatus",
    "OrgStats",
    "PlanDocument",
    "PlanFormatError",
    "PlanSnapshot",
    "Position",
    "ResolvedEdge",
    "ResolvedNode",
    "ResolvedView",
    "SalaryBand",
    "ViewState",
    "add_band",
    "add_job_family",
    "calculate_next_midpoint",
    "calculate_org_stats",
    "calculate_previous_midpoint",
    "calculate_sub_bands",
    "perform_sync",
    "remove_band",
    "remove_job_family",
    "replace_family_bands",
    "resolve_view",
    "set_leading",
    "toggle_auto_calculated",
    "toggle_collapse",
    "update_band",
]
