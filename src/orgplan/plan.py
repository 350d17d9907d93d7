"""Plan document, the JSON shape exchanged with the persistence layer.

A plan is one named organization: nodes, edges, view state and salary data.
The wire format is camelCase JSON; this module validates it with pydantic
and converts it to and from the frozen core records. No I/O happens here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from orgplan.model import (
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_CONNECTION_COLOR,
    DEFAULT_FALLBACK_COLOR,
    DEFAULT_LEAF_COLUMNS,
    DEFAULT_MAX_DEPTH,
    Edge,
    FilterGroup,
    LeadershipLayer,
    Node,
    NodeFilter,
    NodeStatus,
    Position,
    ViewState,
)
from orgplan.salary import JobFamily, SalaryBand


class PlanFormatError(ValueError):
    """The payload is not a readable plan document."""


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ─── Wire Models ──────────────────────────────────────────────────────────────


class PositionModel(_WireModel):
    x: float = 0
    y: float = 0


class NodeModel(_WireModel):
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
    position: PositionModel = Field(default_factory=PositionModel)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> NodeStatus:
        if isinstance(value, NodeStatus):
            return value
        # Anything that is not a vacancy counts as filled.
        return NodeStatus.EMPTY if str(value or "").upper() == NodeStatus.EMPTY.value else NodeStatus.FILLED

    @field_validator("first_name", "last_name", "job_title", "team", "work_email", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_record(self) -> Node:
        return Node(
            id=self.id,
            status=self.status,
            first_name=self.first_name,
            last_name=self.last_name,
            job_title=self.job_title,
            team=self.team,
            work_email=self.work_email,
            start_date=self.start_date or None,
            exit_date=self.exit_date or None,
            probation_end_date=self.probation_end_date or None,
            salary_band_id=self.salary_band_id,
            position=Position(x=self.position.x, y=self.position.y),
        )

    @classmethod
    def from_record(cls, node: Node) -> NodeModel:
        return cls(
            id=node.id,
            status=node.status,
            first_name=node.first_name,
            last_name=node.last_name,
            job_title=node.job_title,
            team=node.team,
            work_email=node.work_email,
            start_date=node.start_date,
            exit_date=node.exit_date,
            probation_end_date=node.probation_end_date,
            salary_band_id=node.salary_band_id,
            position=PositionModel(x=node.position.x, y=node.position.y),
        )


class EdgeModel(_WireModel):
    id: str
    source: str
    target: str


class LeadershipLayerModel(_WireModel):
    id: str
    identifier: str = ""
    name: str = ""


class NodeFilterModel(_WireModel):
    id: str
    pattern: str = ""
    color: str = DEFAULT_FALLBACK_COLOR
    name: str = ""

    def to_record(self) -> NodeFilter:
        return NodeFilter(id=self.id, pattern=self.pattern, color=self.color, name=self.name)


class FilterGroupModel(_WireModel):
    id: str
    name: str = ""
    enabled: bool = Field(default=False, validation_alias=AliasChoices("enabled", "isActive"))
    filters: list[NodeFilterModel] = Field(default_factory=list)
    fallback_color: str | None = None

    def to_record(self) -> FilterGroup:
        return FilterGroup(
            id=self.id,
            name=self.name,
            enabled=self.enabled,
            filters=tuple(f.to_record() for f in self.filters),
            fallback_color=self.fallback_color,
        )


class ViewStateModel(_WireModel):
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)
    leaf_columns: int = Field(default=DEFAULT_LEAF_COLUMNS, ge=1)
    collapsed_nodes: list[str] = Field(default_factory=list)
    expanded_nodes: list[str] = Field(default_factory=list)
    leadership_layers: list[LeadershipLayerModel] = Field(default_factory=list)
    node_filters: list[NodeFilterModel] = Field(default_factory=list)
    filter_groups: list[FilterGroupModel] = Field(default_factory=list)
    default_fallback_color: str | None = DEFAULT_FALLBACK_COLOR
    connection_color: str = DEFAULT_CONNECTION_COLOR
    background_color: str = DEFAULT_BACKGROUND_COLOR
    recruiter_mode: bool = False
    search_query: str = ""

    def to_record(self) -> ViewState:
        expanded = frozenset(self.expanded_nodes)
        # A node listed in both sets keeps its explicit expansion.
        collapsed = frozenset(self.collapsed_nodes) - expanded
        return ViewState(
            max_depth=self.max_depth,
            leaf_columns=self.leaf_columns,
            collapsed_nodes=collapsed,
            expanded_nodes=expanded,
            leadership_layers=tuple(
                LeadershipLayer(id=layer.id, identifier=layer.identifier, name=layer.name)
                for layer in self.leadership_layers
            ),
            node_filters=tuple(f.to_record() for f in self.node_filters),
            filter_groups=tuple(g.to_record() for g in self.filter_groups),
            default_fallback_color=self.default_fallback_color,
            connection_color=self.connection_color,
            background_color=self.background_color,
            recruiter_mode=self.recruiter_mode,
            search_query=self.search_query,
        )

    @classmethod
    def from_record(cls, view: ViewState) -> ViewStateModel:
        def filter_model(f: NodeFilter) -> NodeFilterModel:
            return NodeFilterModel(id=f.id, pattern=f.pattern, color=f.color, name=f.name)

        return cls(
            max_depth=view.max_depth,
            leaf_columns=view.leaf_columns,
            collapsed_nodes=sorted(view.collapsed_nodes),
            expanded_nodes=sorted(view.expanded_nodes),
            leadership_layers=[
                LeadershipLayerModel(id=layer.id, identifier=layer.identifier, name=layer.name)
                for layer in view.leadership_layers
            ],
            node_filters=[filter_model(f) for f in view.node_filters],
            filter_groups=[
                FilterGroupModel(
                    id=g.id,
                    name=g.name,
                    enabled=g.enabled,
                    filters=[filter_model(f) for f in g.filters],
                    fallback_color=g.fallback_color,
                )
                for g in view.filter_groups
            ],
            default_fallback_color=view.default_fallback_color,
            connection_color=view.connection_color,
            background_color=view.background_color,
            recruiter_mode=view.recruiter_mode,
            search_query=view.search_query,
        )


class SalaryBandModel(_WireModel):
    id: str
    name: str = ""
    midpoint: float
    spread: float
    is_auto_calculated: bool = False
    parent_id: str | None = None
    is_leading: bool = False

    def to_record(self) -> SalaryBand:
        return SalaryBand(
            id=self.id,
            name=self.name,
            midpoint=self.midpoint,
            spread=self.spread,
            is_auto_calculated=self.is_auto_calculated,
            parent_id=self.parent_id,
            is_leading=self.is_leading,
        )


class JobFamilyModel(_WireModel):
    id: str
    name: str = ""
    salary_bands: list[SalaryBandModel] = Field(default_factory=list)

    def to_record(self) -> JobFamily:
        return JobFamily(id=self.id, name=self.name, salary_bands=tuple(b.to_record() for b in self.salary_bands))

    @classmethod
    def from_record(cls, family: JobFamily) -> JobFamilyModel:
        return cls(
            id=family.id,
            name=family.name,
            salary_bands=[
                SalaryBandModel(
                    id=b.id,
                    name=b.name,
                    midpoint=b.midpoint,
                    spread=b.spread,
                    is_auto_calculated=b.is_auto_calculated,
                    parent_id=b.parent_id,
                    is_leading=b.is_leading,
                )
                for b in family.salary_bands
            ],
        )


# ─── Plan Document ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PlanSnapshot:
    """A plan in core records, ready for the resolve pipeline."""

    name: str
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    view_state: ViewState = field(default_factory=ViewState)
    job_families: list[JobFamily] = field(default_factory=list)
    last_updated: datetime | None = None


class PlanDocument(_WireModel):
    name: str
    nodes: list[NodeModel] = Field(default_factory=list)
    edges: list[EdgeModel] = Field(default_factory=list)
    last_updated: datetime | None = None
    view_state: ViewStateModel = Field(default_factory=ViewStateModel)
    job_families: list[JobFamilyModel] = Field(default_factory=list)

    @classmethod
    def from_json(cls, payload: str | bytes) -> PlanDocument:
        """Parse a plan document, raising ``PlanFormatError`` on bad input."""
        try:
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise PlanFormatError(f"invalid plan document: {exc.error_count()} error(s)\n{exc}") from exc

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PlanDocument:
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise PlanFormatError(f"invalid plan document: {exc.error_count()} error(s)\n{exc}") from exc

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        return json.loads(self.to_json())

    def snapshot(self) -> PlanSnapshot:
        return PlanSnapshot(
            name=self.name,
            nodes=[n.to_record() for n in self.nodes],
            edges=[Edge(id=e.id, source=e.source, target=e.target) for e in self.edges],
            view_state=self.view_state.to_record(),
            job_families=[f.to_record() for f in self.job_families],
            last_updated=self.last_updated,
        )

    @classmethod
    def from_snapshot(cls, snapshot: PlanSnapshot, stamp: bool = True) -> PlanDocument:
        """Build a document from core records; ``stamp`` sets ``lastUpdated`` to now (UTC)."""
        last_updated = datetime.now(timezone.utc) if stamp else snapshot.last_updated
        return cls(
            name=snapshot.name,
            nodes=[NodeModel.from_record(n) for n in snapshot.nodes],
            edges=[EdgeModel(id=e.id, source=e.source, target=e.target) for e in snapshot.edges],
            last_updated=last_updated,
            view_state=ViewStateModel.from_record(snapshot.view_state),
            job_families=[JobFamilyModel.from_record(f) for f in snapshot.job_families],
        )
