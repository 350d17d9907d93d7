"""Tests for visibility.py — depth, collapse rules, recruiter pruning and search."""

from __future__ import annotations

from orgplan.hierarchy import HierarchyIndex
from orgplan.model import Edge, Node, NodeStatus, ViewState
from orgplan.visibility import (
    collapse_rule,
    edge_hidden,
    matches_search,
    resolve_visibility,
    search_tokens,
    vacancy_paths,
)

# ─── Helpers ──────────────────────────────────────────────────────────────────


def person(node_id: str, title: str = "", team: str = "", first: str = "", last: str = "") -> Node:
    return Node(id=node_id, first_name=first, last_name=last, job_title=title, team=team)


def vacancy(node_id: str, title: str = "New Position") -> Node:
    return Node(id=node_id, status=NodeStatus.EMPTY, job_title=title)


def edges_of(*pairs: tuple[str, str]) -> list[Edge]:
    return [Edge(id=f"e-{s}-{t}", source=s, target=t) for s, t in pairs]


def chain(length: int) -> tuple[list[Node], list[Edge]]:
    """A single reporting chain n0 → n1 → … of ``length`` nodes."""
    nodes = [person(f"n{i}") for i in range(length)]
    edges = edges_of(*[(f"n{i}", f"n{i + 1}") for i in range(length - 1)])
    return nodes, edges


def resolve(nodes: list[Node], edges: list[Edge], **view_kwargs):
    return resolve_visibility(HierarchyIndex(nodes, edges), ViewState(**view_kwargs))


# ─── Depth & Collapse Tests ───────────────────────────────────────────────────


class TestDepthAndCollapse:
    def test_depth_is_parent_plus_one(self):
        """Roots have depth 1 and every report sits one level deeper."""
        vis = resolve(*chain(4), max_depth=10)
        assert [vis[f"n{i}"].depth for i in range(4)] == [1, 2, 3, 4]

    def test_max_depth_auto_collapse(self):
        """Nodes at max_depth collapse and hide everything below them."""
        vis = resolve(*chain(5), max_depth=2)
        assert not vis["n0"].is_collapsed
        assert vis["n1"].is_collapsed
        assert [vis[f"n{i}"].hidden for i in range(5)] == [False, False, True, True, True]

    def test_manual_collapse(self):
        """A collapsed node stays visible while its reports are hidden."""
        vis = resolve(*chain(3), max_depth=10, collapsed_nodes=frozenset({"n0"}))
        assert vis["n0"].is_collapsed
        assert not vis["n0"].hidden
        assert vis["n1"].hidden and vis["n2"].hidden

    def test_manual_expand_overrides_depth(self):
        """An expanded node beyond max_depth shows its reports."""
        vis = resolve(*chain(4), max_depth=2, expanded_nodes=frozenset({"n1"}))
        assert not vis["n1"].is_collapsed
        assert not vis["n2"].hidden
        # n2 is itself past max_depth and collapses again.
        assert vis["n2"].is_collapsed
        assert vis["n3"].hidden

    def test_hidden_propagates_to_all_descendants(self):
        """Once a node is hidden, its whole subtree is hidden."""
        nodes = [person(x) for x in ("R", "A", "B", "a1", "a2", "b1")]
        edges = edges_of(("R", "A"), ("R", "B"), ("A", "a1"), ("A", "a2"), ("B", "b1"))
        vis = resolve(nodes, edges, max_depth=10, collapsed_nodes=frozenset({"R"}))
        assert all(vis[x].hidden for x in ("A", "B", "a1", "a2", "b1"))

    def test_report_counts(self):
        """Direct and total report counts for badges."""
        nodes = [person(x) for x in ("R", "A", "B", "a1")]
        edges = edges_of(("R", "A"), ("R", "B"), ("A", "a1"))
        vis = resolve(nodes, edges)
        assert (vis["R"].direct_reports_count, vis["R"].total_reports_count) == (2, 3)
        assert (vis["a1"].direct_reports_count, vis["a1"].total_reports_count) == (0, 0)

    def test_depth_monotonic(self):
        """depth(child) == depth(parent) + 1 for every honored edge."""
        nodes = [person(x) for x in ("R", "A", "B", "a1", "a2", "b1", "S")]
        edges = edges_of(("R", "A"), ("R", "B"), ("A", "a1"), ("A", "a2"), ("B", "b1"))
        index = HierarchyIndex(nodes, edges)
        vis = resolve_visibility(index, ViewState())
        for child, parent in index.parent_of.items():
            assert vis[child].depth == vis[parent].depth + 1

    def test_cycle_nodes_resolved(self):
        """Nodes trapped in a cycle still get an entry with depth from 1."""
        nodes = [person(x) for x in ("R", "X", "Y")]
        vis = resolve(nodes, edges_of(("X", "Y"), ("Y", "X")))
        assert vis["X"].depth == 1
        assert vis["Y"].depth == 2
        assert set(vis) == {"R", "X", "Y"}

    def test_cycle_descendant_follows_manager(self):
        """Collapsing a cycle member hides the reports hanging off it."""
        nodes = [person(x) for x in ("C", "A", "B")]
        vis = resolve(nodes, edges_of(("A", "B"), ("B", "A"), ("B", "C")), collapsed_nodes=frozenset({"B"}))
        assert vis["B"].is_collapsed
        assert vis["C"].depth == vis["B"].depth + 1
        assert vis["C"].hidden

    def test_collapse_rule_plain(self):
        """Manual collapse wins; otherwise depth decides unless expanded."""
        view = ViewState(max_depth=3, collapsed_nodes=frozenset({"a"}), expanded_nodes=frozenset({"b"}))
        assert collapse_rule("a", 1, view, True, False)
        assert not collapse_rule("b", 5, view, True, False)
        assert collapse_rule("c", 3, view, True, False)
        assert not collapse_rule("c", 2, view, True, False)


# ─── Recruiter Mode Tests ─────────────────────────────────────────────────────


class TestRecruiterMode:
    def test_chain_to_vacancy_visible(self):
        """CEO → VP → vacancy: all visible and none collapsed."""
        nodes = [person("CEO"), person("VP"), vacancy("Eng1")]
        vis = resolve(nodes, edges_of(("CEO", "VP"), ("VP", "Eng1")), recruiter_mode=True)
        for node_id in ("CEO", "VP", "Eng1"):
            assert not vis[node_id].hidden
            assert not vis[node_id].is_collapsed
        assert vis["Eng1"].leads_to_vacancy

    def test_branches_without_vacancy_pruned(self):
        """Branches with no vacancy are hidden and their managers collapsed."""
        nodes = [person("CEO"), person("VP"), vacancy("Eng1"), person("CFO"), person("Acct")]
        edges = edges_of(("CEO", "VP"), ("VP", "Eng1"), ("CEO", "CFO"), ("CFO", "Acct"))
        vis = resolve(nodes, edges, recruiter_mode=True)
        assert vis["CFO"].hidden
        assert vis["CFO"].is_collapsed
        assert vis["Acct"].hidden

    def test_recruiter_overrides_depth_and_manual_collapse(self):
        """The path to a vacancy opens even past max_depth or when collapsed."""
        nodes, edges = chain(5)
        nodes[-1] = vacancy("n4")
        vis = resolve(nodes, edges, max_depth=1, collapsed_nodes=frozenset({"n2"}), recruiter_mode=True)
        assert not any(vis[f"n{i}"].hidden for i in range(5))

    def test_vacancy_paths(self):
        """Every ancestor of a vacancy is on a vacancy path."""
        nodes = [person("R"), person("A"), vacancy("v"), person("B")]
        index = HierarchyIndex(nodes, edges_of(("R", "A"), ("A", "v"), ("R", "B")))
        assert vacancy_paths(index) == {"R", "A", "v"}

    def test_off_means_no_pruning(self):
        """Without recruiter mode filled branches stay visible."""
        nodes = [person("R"), person("A")]
        vis = resolve(nodes, edges_of(("R", "A")))
        assert not vis["A"].hidden


# ─── Search Tests ─────────────────────────────────────────────────────────────


class TestSearch:
    def test_empty_query_matches_everything(self):
        """No tokens means every node matches."""
        assert matches_search(person("a"), search_tokens("   "))

    def test_tokens_and_matched_across_fields(self):
        """Each token must hit some field; fields may differ per token."""
        node = person("a", title="Staff Engineer", team="Platform", first="Ada", last="Lovelace")
        assert matches_search(node, search_tokens("ada platform"))
        assert matches_search(node, search_tokens("LOVE eng"))
        assert not matches_search(node, search_tokens("ada finance"))

    def test_vacancy_matches_empty_token(self):
        """Vacancies answer to the literal token 'empty'."""
        assert matches_search(vacancy("v"), search_tokens("empty"))
        assert not matches_search(person("p", title="Engineer"), search_tokens("empty"))

    def test_search_flag_resolved(self):
        """matches_search is part of the resolved visibility."""
        nodes = [person("a", first="Ada"), person("b", first="Bob")]
        vis = resolve(nodes, [], search_query="ada")
        assert vis["a"].matches_search
        assert not vis["b"].matches_search


# ─── Edge Visibility Tests ────────────────────────────────────────────────────


class TestEdgeHidden:
    def test_hidden_when_endpoint_hidden(self):
        """An edge into a hidden report is hidden."""
        nodes, edges = chain(3)
        vis = resolve(nodes, edges, max_depth=1)
        assert vis["n1"].hidden
        assert edge_hidden(edges[0], vis)
        assert edge_hidden(edges[1], vis)

    def test_hidden_when_endpoint_unknown(self):
        """An edge to an unknown node is hidden."""
        nodes, edges = chain(2)
        vis = resolve(nodes, edges)
        assert edge_hidden(Edge(id="x", source="n0", target="ghost"), vis)
        assert not edge_hidden(edges[0], vis)
