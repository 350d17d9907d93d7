"""Team group frames drawn behind reports of one manager that share a team."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from orgplan.colors import team_color
from orgplan.hierarchy import HierarchyIndex
from orgplan.layout import NODE_HEIGHT, NODE_WIDTH
from orgplan.model import Position

TEAM_PADDING: int = 20


@dataclass(frozen=True)
class TeamGroup:
    id: str
    team: str
    parent_id: str
    member_ids: tuple[str, ...]


@dataclass(frozen=True)
class TeamGroupBox:
    """Axis-aligned rectangle enclosing the visible members of a team group."""

    id: str
    team: str
    color: str
    x: float
    y: float
    width: float
    height: float


def team_groups(index: HierarchyIndex) -> list[TeamGroup]:
    """Group each manager's reports by team.

    The manager joins the group of its own team. Only groups with at least
    two members are returned; reports without a team are never grouped.
    """
    groups: list[TeamGroup] = []
    for parent_id in index:
        by_team: dict[str, list[str]] = {}
        for child_id in index.direct_children(parent_id):
            team = index.node(child_id).team
            if team:
                by_team.setdefault(team, []).append(child_id)

        for team, members in by_team.items():
            if index.node(parent_id).team == team:
                members = [*members, parent_id]
            if len(members) > 1:
                groups.append(
                    TeamGroup(
                        id=f"team-group-{parent_id}-{team}",
                        team=team,
                        parent_id=parent_id,
                        member_ids=tuple(members),
                    )
                )
    return groups


def team_group_boxes(
    groups: list[TeamGroup],
    positions: Mapping[str, Position],
    hidden: Mapping[str, bool],
    node_width: int = NODE_WIDTH,
    node_height: int = NODE_HEIGHT,
    padding: int = TEAM_PADDING,
) -> list[TeamGroupBox]:
    """Bounding boxes over visible, positioned members plus ``padding``.

    Groups whose members are all hidden or unpositioned are skipped.
    """
    boxes: list[TeamGroupBox] = []
    for group in groups:
        members = [positions[m] for m in group.member_ids if m in positions and not hidden.get(m, False)]
        if not members:
            continue
        min_x = min(p.x for p in members)
        min_y = min(p.y for p in members)
        max_x = max(p.x + node_width for p in members)
        max_y = max(p.y + node_height for p in members)
        boxes.append(
            TeamGroupBox(
                id=group.id,
                team=group.team,
                color=team_color(group.team),
                x=min_x - padding,
                y=min_y - padding,
                width=(max_x - min_x) + 2 * padding,
                height=(max_y - min_y) + 2 * padding,
            )
        )
    return boxes
