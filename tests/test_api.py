"""Tests for api.py — the full resolve pipeline and collapse toggling."""

from __future__ import annotations

import orgplan
from orgplan.api import resolve_view, toggle_collapse
from orgplan.layout import NODE_HEIGHT, V_GAP
from orgplan.model import Direction, Edge, LeadershipLayer, Node, NodeFilter, NodeStatus, Position, ViewState

# ─── Helpers ──────────────────────────────────────────────────────────────────


def person(node_id: str, title: str = "", team: str = "", status: NodeStatus = NodeStatus.FILLED) -> Node:
    return Node(id=node_id, job_title=title, team=team, status=status, position=Position(-1, -1))


def edges_of(*pairs: tuple[str, str]) -> list[Edge]:
    return [Edge(id=f"e-{s}-{t}", source=s, target=t) for s, t in pairs]


def org() -> tuple[list[Node], list[Edge]]:
    """CEO → (VP Eng → two devs, VP Sales → one rep)."""
    nodes = [
        person("ceo", "Chief Executive"),
        person("vpe", "VP Engineering", team="Eng"),
        person("vps", "VP Sales", team="Sales"),
        person("dev1", "Engineer", team="Eng"),
        person("dev2", "Engineer", team="Eng"),
        person("rep", "Account Executive", team="Sales"),
    ]
    edges = edges_of(("ceo", "vpe"), ("ceo", "vps"), ("vpe", "dev1"), ("vpe", "dev2"), ("vps", "rep"))
    return nodes, edges


# ─── resolve_view Tests ───────────────────────────────────────────────────────


class TestResolveView:
    def test_idempotent(self):
        """Resolving the same snapshot twice yields identical output."""
        nodes, edges = org()
        view = ViewState(leaf_columns=2, node_filters=(NodeFilter(id="f", pattern="VP", color="#000000"),))
        assert resolve_view(nodes, edges, view) == resolve_view(nodes, edges, view)

    def test_input_order_kept(self):
        nodes, edges = org()
        resolved = resolve_view(nodes, edges, ViewState())
        assert [n.id for n in resolved.nodes] == [n.id for n in nodes]
        assert [e.id for e in resolved.edges] == [e.id for e in edges]

    def test_visible_nodes_laid_out(self):
        """Visible nodes get layout positions; layers stack top-down."""
        nodes, edges = org()
        resolved = resolve_view(nodes, edges, ViewState())
        ceo, vpe = resolved.node("ceo"), resolved.node("vpe")
        assert ceo.position.y == 0
        assert vpe.position.y == NODE_HEIGHT + V_GAP
        assert (ceo.target_handle, ceo.source_handle) == ("top", "bottom")

    def test_hidden_nodes_keep_stored_position(self):
        """Nodes below a collapsed manager keep their stored position."""
        nodes, edges = org()
        resolved = resolve_view(nodes, edges, ViewState(collapsed_nodes=frozenset({"vpe"})))
        dev1 = resolved.node("dev1")
        assert dev1.hidden
        assert dev1.position == Position(-1, -1)
        assert resolved.node("vpe").is_collapsed
        assert {e.id for e in resolved.edges if e.hidden} == {"e-vpe-dev1", "e-vpe-dev2"}

    def test_colors_and_text(self):
        """Filter colors resolve with a legible text color."""
        nodes, edges = org()
        view = ViewState(node_filters=(NodeFilter(id="f", pattern="VP", color="#000000"),))
        resolved = resolve_view(nodes, edges, view)
        assert (resolved.node("vpe").color, resolved.node("vpe").text_color) == ("#000000", "white")
        assert (resolved.node("dev1").color, resolved.node("dev1").text_color) == ("#ffffff", "black")

    def test_ranks(self):
        """Leadership layers set the rank of matching titles."""
        nodes, edges = org()
        view = ViewState(leadership_layers=(LeadershipLayer(id="l", identifier="VP"),))
        resolved = resolve_view(nodes, edges, view)
        assert [resolved.node(x).rank for x in ("ceo", "vpe", "dev1")] == [0, 1, 2]

    def test_team_groups(self):
        """VP Eng and both engineers share one team frame."""
        nodes, edges = org()
        resolved = resolve_view(nodes, edges, ViewState())
        assert {g.id for g in resolved.team_groups} == {"team-group-vpe-Eng", "team-group-vps-Sales"}

    def test_recruiter_scenario(self):
        """Only the management chain to a vacancy stays visible."""
        nodes = [person("CEO"), person("VP"), person("Eng1", status=NodeStatus.EMPTY), person("CFO")]
        edges = edges_of(("CEO", "VP"), ("VP", "Eng1"), ("CEO", "CFO"))
        resolved = resolve_view(nodes, edges, ViewState(recruiter_mode=True))
        assert [n.id for n in resolved.visible_nodes()] == ["CEO", "VP", "Eng1"]
        assert not any(resolved.node(x).is_collapsed for x in ("CEO", "VP", "Eng1"))

    def test_warnings(self):
        """Ignored edges and cycles are reported, not raised."""
        nodes = [person("a"), person("b"), person("c")]
        edges = edges_of(("a", "ghost"), ("b", "c"), ("c", "b"))
        resolved = resolve_view(nodes, edges, ViewState())
        assert any("ghost" in w for w in resolved.warnings)
        assert any("cycle" in w for w in resolved.warnings)
        assert len(resolved.nodes) == 3

    def test_empty(self):
        resolved = resolve_view([], [], ViewState())
        assert (resolved.nodes, resolved.edges, resolved.team_groups, resolved.warnings) == ([], [], [], [])

    def test_lr_handles(self):
        nodes, edges = org()
        resolved = resolve_view(nodes, edges, ViewState(), direction=Direction.LR)
        assert (resolved.nodes[0].target_handle, resolved.nodes[0].source_handle) == ("left", "right")


# ─── toggle_collapse Tests ────────────────────────────────────────────────────


class TestToggleCollapse:
    def test_collapse_reports_positions(self):
        """Collapsing returns the next view and the node's old and new position."""
        nodes, edges = org()
        result = toggle_collapse(nodes, edges, ViewState(), "vpe")
        assert "vpe" in result.view_state.collapsed_nodes
        assert result.before == resolve_view(nodes, edges, ViewState()).node("vpe").position
        assert result.after == resolve_view(nodes, edges, result.view_state).node("vpe").position

    def test_expand_auto_collapsed(self):
        """A node collapsed by depth is expanded explicitly."""
        nodes, edges = org()
        view = ViewState(max_depth=1)
        result = toggle_collapse(nodes, edges, view, "ceo")
        assert "ceo" in result.view_state.expanded_nodes
        assert "ceo" not in result.view_state.collapsed_nodes

    def test_unknown_node(self):
        nodes, edges = org()
        view = ViewState()
        result = toggle_collapse(nodes, edges, view, "ghost")
        assert result.view_state is view
        assert result.before is None and result.after is None


# ─── Package Tests ────────────────────────────────────────────────────────────


class TestPackageExports:
    def test_every_public_name_importable(self):
        """Each name in ``orgplan.__all__`` resolves on the package."""
        missing = [name for name in orgplan.__all__ if not hasattr(orgplan, name)]
        assert missing == []

    def test_stats_and_salary_entry_points(self):
        """Org statistics and salary editing are reachable from the package root."""
        nodes, edges = org()
        stats = orgplan.calculate_org_stats(orgplan.HierarchyIndex(nodes, edges))
        assert (stats.node_count, stats.depth) == (6, 3)

        bands = orgplan.add_band(orgplan.add_band([], "Junior", band_id="j"), "Medior", parent_id="j", band_id="m")
        synced = orgplan.update_band(bands, "j", midpoint=100.0)
        assert synced[1].midpoint == orgplan.calculate_next_midpoint(100.0, synced[0].spread)
