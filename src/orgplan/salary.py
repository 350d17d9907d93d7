"""Salary-band propagation engine.

Bands of one job family form a forest through ``parent_id``: a child band is
the next career level above its parent. Manual bands are set directly; auto
bands derive midpoint and spread from a neighbour so that a level's
Learning sub-band starts exactly where the previous level's Exceeding
sub-band starts.

All operations take a band list and return a new one; records are never
mutated in place.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

SUB_BAND_NAMES: tuple[str, ...] = ("Learning", "Fulfilling", "Mastering", "Exceeding")

DEFAULT_MIDPOINT = 50000.0
DEFAULT_SPREAD = 0.075


@dataclass(frozen=True)
class SalarySubBand:
    name: str
    start: float
    end: float


@dataclass(frozen=True)
class SalaryBand:
    """One career level's pay range, centered on ``midpoint``.

    ``spread`` is fractional: 0.075 means each sub-band is 7.5% of the
    midpoint wide.
    """

    id: str
    name: str
    midpoint: float
    spread: float
    is_auto_calculated: bool = False
    parent_id: str | None = None
    is_leading: bool = False

    @property
    def sub_bands(self) -> list[SalarySubBand]:
        return calculate_sub_bands(self.midpoint, self.spread)


@dataclass(frozen=True)
class JobFamily:
    id: str
    name: str
    salary_bands: tuple[SalaryBand, ...] = field(default_factory=tuple)


# ─── Formulas ─────────────────────────────────────────────────────────────────


def check_spread(spread: float) -> None:
    """Log spreads outside ``(0, 0.5)``; they give empty or inverted sub-bands."""
    if not 0 < spread < 0.5:
        logger.warning("salary spread %r is outside (0, 0.5); sub-bands will overlap or invert", spread)


def calculate_sub_bands(midpoint: float, spread: float) -> list[SalarySubBand]:
    """The four sub-bands, each ``midpoint * spread`` wide, around ``midpoint``."""
    return [
        SalarySubBand("Learning", midpoint * (1 - 2 * spread), midpoint * (1 - spread)),
        SalarySubBand("Fulfilling", midpoint * (1 - spread), midpoint),
        SalarySubBand("Mastering", midpoint, midpoint * (1 + spread)),
        SalarySubBand("Exceeding", midpoint * (1 + spread), midpoint * (1 + 2 * spread)),
    ]


def _divide(numerator: float, denominator: float) -> float:
    if denominator == 0:
        logger.warning("degenerate salary spread: division by zero in midpoint progression")
        return math.copysign(math.inf, numerator) if numerator else math.nan
    return numerator / denominator


def calculate_next_midpoint(midpoint: float, spread: float) -> float:
    """Midpoint of the next level up.

    Learning start of level N+1 equals Exceeding start of level N:
    ``m' * (1 - 2s) = m * (1 + s)``.
    """
    return _divide(midpoint * (1 + spread), 1 - 2 * spread)


def calculate_previous_midpoint(midpoint: float, spread: float) -> float:
    """Inverse of :func:`calculate_next_midpoint`."""
    return _divide(midpoint * (1 - 2 * spread), 1 + spread)


# ─── Propagation ──────────────────────────────────────────────────────────────


def perform_sync(bands: Sequence[SalaryBand], leader_id: str) -> list[SalaryBand]:
    """Recalculate auto bands outward from ``leader_id``.

    A breadth-first walk from the leader sets every reachable auto child to
    the next midpoint and every reachable auto parent to the previous
    midpoint, copying the spread. Manual bands stop the walk. Afterwards each
    manual band the leader's walk did not reach syncs its own neighbourhood,
    so several manual anchors can coexist while the leader wins every auto
    band it reaches. A visited set guards against cyclic parent links.
    """
    result: dict[str, SalaryBand] = {b.id: b for b in bands}
    order = [b.id for b in bands]
    children: dict[str, list[str]] = {}
    for band in bands:
        if band.parent_id is not None:
            children.setdefault(band.parent_id, []).append(band.id)

    visited: set[str] = set()

    def sync_from(start_id: str) -> None:
        queue = deque([start_id])
        visited.add(start_id)
        while queue:
            current = result[queue.popleft()]

            for child_id in children.get(current.id, ()):
                child = result[child_id]
                if child_id in visited or not child.is_auto_calculated:
                    continue
                result[child_id] = replace(
                    child,
                    midpoint=calculate_next_midpoint(current.midpoint, current.spread),
                    spread=current.spread,
                )
                visited.add(child_id)
                queue.append(child_id)

            parent = result.get(current.parent_id) if current.parent_id is not None else None
            if parent is not None and parent.id not in visited and parent.is_auto_calculated:
                result[parent.id] = replace(
                    parent,
                    midpoint=calculate_previous_midpoint(current.midpoint, current.spread),
                    spread=current.spread,
                )
                visited.add(parent.id)
                queue.append(parent.id)

    if leader_id in result:
        check_spread(result[leader_id].spread)
        sync_from(leader_id)

    for band_id in order:
        band = result[band_id]
        if not band.is_auto_calculated and band_id not in visited:
            sync_from(band_id)

    return [result[band_id] for band_id in order]


def find_leader(bands: Sequence[SalaryBand]) -> str | None:
    """The leading manual band, else the first manual band, else ``None``."""
    for band in bands:
        if band.is_leading and not band.is_auto_calculated:
            return band.id
    for band in bands:
        if not band.is_auto_calculated:
            return band.id
    return None


def _with_leader(bands: Sequence[SalaryBand], leader_id: str) -> list[SalaryBand]:
    return [replace(b, is_leading=b.id == leader_id) for b in bands]


# ─── Band Editing ─────────────────────────────────────────────────────────────


def update_band(bands: Sequence[SalaryBand], band_id: str, **changes: object) -> list[SalaryBand]:
    """Apply ``changes`` to one band and re-sync the family.

    Editing a manual band makes it the leader. Editing an auto band re-syncs
    from the current leader (or the first manual band).
    """
    if not any(b.id == band_id for b in bands):
        return list(bands)
    updated = [replace(b, **changes) if b.id == band_id else b for b in bands]
    band = next(b for b in updated if b.id == band_id)

    if not band.is_auto_calculated:
        updated = _with_leader(updated, band_id)
        leader_id: str | None = band_id
    else:
        updated = [replace(b, is_leading=False) if b.id == band_id else b for b in updated]
        leader_id = find_leader(updated)

    if leader_id is None:
        return updated
    return perform_sync(updated, leader_id)


def toggle_auto_calculated(bands: Sequence[SalaryBand], band_id: str) -> list[SalaryBand]:
    """Flip a band between manual and auto.

    Switching auto off pins the band and makes it the new leader; switching
    it on lets the existing (or fallback) leader drive it.
    """
    band = next((b for b in bands if b.id == band_id), None)
    if band is None:
        return list(bands)
    return update_band(bands, band_id, is_auto_calculated=not band.is_auto_calculated, is_leading=False)


def set_leading(bands: Sequence[SalaryBand], band_id: str) -> list[SalaryBand]:
    """Make a manual band the family's leader and re-sync from it."""
    band = next((b for b in bands if b.id == band_id), None)
    if band is None or band.is_auto_calculated:
        return list(bands)
    return perform_sync(_with_leader(bands, band_id), band_id)


def add_band(
    bands: Sequence[SalaryBand],
    name: str,
    parent_id: str | None = None,
    band_id: str | None = None,
) -> list[SalaryBand]:
    """Append a new band and re-sync.

    A band added under an existing parent starts as an auto band on the
    parent's next midpoint; a top-level band starts manual with default
    values. The first band of a family becomes its leader.
    """
    midpoint, spread, is_auto = DEFAULT_MIDPOINT, DEFAULT_SPREAD, False
    parent = next((b for b in bands if b.id == parent_id), None) if parent_id else None
    if parent is not None:
        midpoint = calculate_next_midpoint(parent.midpoint, parent.spread)
        spread = parent.spread
        is_auto = True

    new_band = SalaryBand(
        id=band_id or str(uuid.uuid4()),
        name=name,
        midpoint=midpoint,
        spread=spread,
        is_auto_calculated=is_auto,
        parent_id=parent_id,
        is_leading=not bands,
    )
    result = [*bands, new_band]
    leader = next((b for b in result if b.is_leading), result[0])
    return perform_sync(result, leader.id)


def subtree_ids(bands: Sequence[SalaryBand], band_id: str) -> list[str]:
    """``band_id`` and every band below it, guarded against cyclic links."""
    result: list[str] = []
    seen: set[str] = set()
    stack = [band_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        result.append(current)
        stack.extend(b.id for b in bands if b.parent_id == current and b.id not in seen)
    return result


def remove_band(bands: Sequence[SalaryBand], band_id: str) -> list[SalaryBand]:
    """Delete a band with all bands below it.

    When the leader is among the deleted bands, the first remaining manual
    band (else the first remaining band) leads instead.
    """
    doomed = set(subtree_ids(bands, band_id))
    remaining = [b for b in bands if b.id not in doomed]
    if remaining and not any(b.is_leading for b in remaining):
        new_leader = next((b for b in remaining if not b.is_auto_calculated), remaining[0])
        remaining = _with_leader(remaining, new_leader.id)
    return remaining


# ─── Job Families ─────────────────────────────────────────────────────────────


def add_job_family(families: Sequence[JobFamily], name: str, family_id: str | None = None) -> list[JobFamily]:
    return [*families, JobFamily(id=family_id or str(uuid.uuid4()), name=name)]


def remove_job_family(families: Sequence[JobFamily], family_id: str) -> list[JobFamily]:
    return [f for f in families if f.id != family_id]


def replace_family_bands(
    families: Sequence[JobFamily],
    family_id: str,
    edit: Callable[[list[SalaryBand]], list[SalaryBand]],
) -> list[JobFamily]:
    """Apply a band-list operation to one family, leaving the others untouched.

    Example: ``replace_family_bands(families, fid, lambda b: remove_band(b, bid))``.
    """
    return [
        replace(f, salary_bands=tuple(edit(list(f.salary_bands)))) if f.id == family_id else f for f in families
    ]
