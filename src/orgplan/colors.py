"""Node color resolution from title filters, plus small color helpers."""

from __future__ import annotations

from collections.abc import Sequence

from orgplan.model import FilterGroup, NodeFilter, ViewState
from orgplan.ranks import split_keywords

WHITE = "#ffffff"

# Accent palette for team group frames; team names hash onto it.
TEAM_COLORS: tuple[str, ...] = (
    "#60a5fa",
    "#34d399",
    "#a78bfa",
    "#fbbf24",
    "#fb7185",
    "#22d3ee",
    "#818cf8",
)
NO_TEAM_COLOR = "#e2e8f0"


def active_filters(scratchpad: Sequence[NodeFilter], groups: Sequence[FilterGroup]) -> list[NodeFilter]:
    """Scratchpad filters first, then the filters of every enabled group in order."""
    result = list(scratchpad)
    for group in groups:
        if group.enabled:
            result.extend(group.filters)
    return result


def match_filter(job_title: str, filters: Sequence[NodeFilter]) -> NodeFilter | None:
    """First filter with a keyword contained in the title (case-insensitive)."""
    title = job_title.lower()
    for node_filter in filters:
        if any(kw in title for kw in split_keywords(node_filter.pattern)):
            return node_filter
    return None


def fallback_color(groups: Sequence[FilterGroup], default: str | None) -> str:
    for group in groups:
        if group.enabled and group.fallback_color:
            return group.fallback_color
    return default or WHITE


def node_color(job_title: str, view: ViewState) -> str:
    """Resolve the display color of a node from its job title."""
    matched = match_filter(job_title, active_filters(view.node_filters, view.filter_groups))
    if matched is not None:
        return matched.color
    return fallback_color(view.filter_groups, view.default_fallback_color)


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` or ``#rgb``; anything unparseable reads as white."""
    digits = color.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if len(digits) != 6:
        return 255, 255, 255
    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError:
        return 255, 255, 255


def luminance(color: str) -> float:
    """Perceived brightness in ``[0, 1]``."""
    r, g, b = hex_to_rgb(color)
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255


def contrast_text_color(background: str) -> str:
    """``"black"`` on light backgrounds, ``"white"`` on dark ones."""
    return "black" if luminance(background) > 0.5 else "white"


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def team_color(team: str) -> str:
    """Stable accent color for a team name (``NO_TEAM_COLOR`` when empty)."""
    if not team:
        return NO_TEAM_COLOR
    h = 0
    for ch in team:
        # 32-bit "h * 31 + c" string hash.
        h = ord(ch) + (_int32(_int32(h) << 5) - h)
    return TEAM_COLORS[abs(h) % len(TEAM_COLORS)]
