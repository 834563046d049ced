"""Generated floorplan: units, cores, corridor, fillers, stats, egress.

A FloorPlan is the generator's only output and the only thing renderers,
exporters and validators read. Coordinates are building-local and centered
on the building (origin at the footprint center, x along the corridor);
`transform` carries the world placement separately.

Layout (core side North):

    y ▲  ┌────┬──────┬────┬───────┬────┬──────┬────┐
      │  │ U  │  U   │ U  │   U   │ U  │  U   │ U  │  South units
      │  ├────┴──────┴────┴───────┴────┴──────┴────┤
      │  │                corridor                 │
      │  ├────┬─────┬──┬──────┬────┬──┬──────┬─────┤
      │  │ U  │  U  │C │  U   │ U  │C │  U   │  U  │  North units + cores
      │  └────┴─────┴──┴──────┴────┴──┴──────┴─────┘
      └──────────────────────────────────────────────► x
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from floorplate.models.config import LayoutRequest, Side, Strategy
from floorplate.models.geometry import Point2D, Rect


class CoreKind(str, Enum):
    END = "End"
    MID = "Mid"


class ComplianceStatus(str, Enum):
    PASS = "Pass"
    FAIL = "Fail"


# ── Elements ──────────────────────────────────────────────────────────


class Core(BaseModel):
    """Stair/elevator shaft. Sits on the core side, against the corridor."""

    id: str
    x: float
    y: float
    width: float = Field(gt=0)
    depth: float = Field(gt=0)
    kind: CoreKind
    side: Side

    @property
    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, depth=self.depth)


class Unit(BaseModel):
    """One apartment.

    `x/y/width/depth` describe the main rectangle. `parts` lists every
    rectangle the unit occupies (main first, then wrapped core gaps and
    corridor voids); `area` is their total, recomputed from geometry.
    `polygon` is set only for L-shaped units.
    """

    id: str
    type_id: str
    type_name: str
    x: float
    y: float
    width: float = Field(gt=0)
    depth: float = Field(gt=0)
    area: float = Field(gt=0)
    color: str
    side: Side
    parts: list[Rect] = Field(default_factory=list)
    polygon: list[Point2D] | None = None
    is_l_shaped: bool = False

    @property
    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, depth=self.depth)

    @property
    def right(self) -> float:
        return self.x + self.width

    def rects(self) -> list[Rect]:
        return self.parts or [self.rect]

    def outline(self) -> list[Point2D]:
        """Counter-clockwise outline (polygon for L-shapes, else the rectangle)."""
        return self.polygon if self.polygon else self.rect.corners()


class Filler(BaseModel):
    """Leftover rectangle no unit could absorb. Always non-residential."""

    id: str
    x: float
    y: float
    width: float = Field(gt=0)
    depth: float = Field(gt=0)
    side: Side
    space_use: str = "service"

    @property
    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, depth=self.depth)


class Corridor(BaseModel):
    x: float
    y: float
    width: float = Field(ge=0)
    depth: float = Field(gt=0)

    @property
    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, width=self.width, depth=self.depth)


class Transform(BaseModel):
    """World placement of the building-local frame."""

    center_x: float = 0.0
    center_y: float = 0.0
    rotation: float = 0.0


# ── Results ───────────────────────────────────────────────────────────


class FloorStats(BaseModel):
    gsf: float = Field(description="Gross floor area, m²")
    nrsf: float = Field(description="Net rentable area (sum of unit areas), m²")
    efficiency: float = Field(description="nrsf / gsf")
    unit_counts: dict[str, int] = Field(default_factory=dict)
    total_units: int = 0


class EgressResult(BaseModel):
    """Egress distances along the corridor and their compliance status."""

    max_dead_end: float
    max_travel_distance: float
    max_common_path: float
    dead_end_status: ComplianceStatus
    travel_distance_status: ComplianceStatus
    common_path_status: ComplianceStatus
    num_cores: int = 0

    @property
    def failures(self) -> int:
        statuses = (self.dead_end_status, self.travel_distance_status, self.common_path_status)
        return sum(1 for s in statuses if s is ComplianceStatus.FAIL)

    @property
    def compliant(self) -> bool:
        return self.failures == 0


class FloorPlan(BaseModel):
    """Complete layout of one floor."""

    units: list[Unit] = Field(default_factory=list)
    cores: list[Core] = Field(default_factory=list)
    fillers: list[Filler] = Field(default_factory=list)
    corridor: Corridor
    building_length: float = Field(gt=0)
    building_depth: float = Field(gt=0)
    floor_elevation: float = 0.0
    floor_height: float = Field(default=3.048, ge=0)
    transform: Transform = Field(default_factory=Transform)
    stats: FloorStats
    egress: EgressResult
    strategy: Strategy = Strategy.BALANCED
    target_counts: dict[Side, dict[str, int]] = Field(
        default_factory=dict,
        description="Per-side unit counts assigned before geometry (step 2)",
    )
    aligned_walls: int = Field(default=0, description="Clear-side partitions on a core-side unit edge")

    def units_on(self, side: Side) -> list[Unit]:
        return sorted((u for u in self.units if u.side is side), key=lambda u: u.x)

    def get_unit(self, unit_id: str) -> Unit | None:
        for u in self.units:
            if u.id == unit_id:
                return u
        return None

    # ── Serialization ─────────────────────────────────────────────

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, path: Path) -> FloorPlan:
        return cls.model_validate_json(path.read_text())


class LayoutOption(BaseModel):
    """One labelled strategy variant."""

    id: str
    strategy: Strategy
    label: str
    description: str
    floorplan: FloorPlan


class SavedLayout(BaseModel):
    """Generated options together with the request that produced them."""

    request: LayoutRequest
    options: list[LayoutOption] = Field(default_factory=list)

    def option(self, index: int) -> LayoutOption:
        """1-based lookup, matching the `option-N` ids."""
        if not 1 <= index <= len(self.options):
            raise IndexError(f"Option {index} out of range (1..{len(self.options)})")
        return self.options[index - 1]

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, path: Path) -> SavedLayout:
        return cls.model_validate_json(path.read_text())
