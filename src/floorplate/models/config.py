"""Generation inputs: unit mix, egress limits, strategies, layout settings.

All of these are immutable value types. A host application resolves its own
state into them before calling the generator; nothing here is global.

Lengths are meters and areas square meters. Imperial defaults are converted
once, here.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FEET_TO_METERS = 0.3048
SQ_FEET_TO_SQ_METERS = FEET_TO_METERS**2

MIN_UNIT_WIDTH = 12 * FEET_TO_METERS
DEFAULT_CORRIDOR_WIDTH = 6 * FEET_TO_METERS
DEFAULT_CORE_WIDTH = 12 * FEET_TO_METERS
DEFAULT_CORE_DEPTH = 29.5 * FEET_TO_METERS
DEFAULT_FLOOR_HEIGHT = 10 * FEET_TO_METERS
MAX_CORES = 4

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


class Side(str, Enum):
    """Corridor side. North is the low-y band, South the high-y band."""

    NORTH = "North"
    SOUTH = "South"

    @property
    def opposite(self) -> Side:
        return Side.SOUTH if self is Side.NORTH else Side.NORTH


class Strategy(str, Enum):
    BALANCED = "balanced"
    MIX_OPTIMIZED = "mixOptimized"
    EFFICIENCY_OPTIMIZED = "efficiencyOptimized"


class Pattern(str, Enum):
    """Left-to-right ordering of the units inside a segment."""

    DESC = "desc"
    ASC = "asc"
    VALLEY = "valley"
    VALLEY_INVERTED = "valley-inverted"


class StrategyProfile(BaseModel):
    """How a strategy tunes the pipeline.

    Strategies never change the algorithm, only how tightly units pack
    (`safety_factor`), how corner candidates are scored, and the unit
    ordering inside each segment.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    description: str
    safety_factor: float = Field(gt=0, le=1)
    mix_weight: float = Field(ge=0)
    efficiency_weight: float = Field(ge=0)
    safety_weight: float = Field(ge=0)
    left_corner_pattern: Pattern
    mid_pattern: Pattern
    right_corner_pattern: Pattern


STRATEGY_PROFILES: dict[Strategy, StrategyProfile] = {
    Strategy.BALANCED: StrategyProfile(
        label="Balanced",
        description="Equal priority to mix accuracy, size accuracy, and efficiency",
        safety_factor=0.99,
        mix_weight=1.0,
        efficiency_weight=1.0,
        safety_weight=1.0,
        left_corner_pattern=Pattern.VALLEY,
        mid_pattern=Pattern.VALLEY,
        right_corner_pattern=Pattern.VALLEY_INVERTED,
    ),
    Strategy.MIX_OPTIMIZED: StrategyProfile(
        label="Mix Optimized",
        description="Prioritizes hitting exact unit mix percentages",
        safety_factor=0.97,
        mix_weight=3.0,
        efficiency_weight=0.5,
        safety_weight=1.5,
        left_corner_pattern=Pattern.DESC,
        mid_pattern=Pattern.ASC,
        right_corner_pattern=Pattern.DESC,
    ),
    Strategy.EFFICIENCY_OPTIMIZED: StrategyProfile(
        label="Efficiency",
        description="Prioritizes building efficiency (NRSF/GSF)",
        safety_factor=1.0,
        mix_weight=0.5,
        efficiency_weight=2.0,
        safety_weight=1.0,
        left_corner_pattern=Pattern.VALLEY_INVERTED,
        mid_pattern=Pattern.DESC,
        right_corner_pattern=Pattern.VALLEY,
    ),
}

# Clear-side middle segments always use this pattern
CLEAR_SIDE_MID_PATTERN = Pattern.VALLEY_INVERTED

STRATEGY_ORDER = [Strategy.BALANCED, Strategy.MIX_OPTIMIZED, Strategy.EFFICIENCY_OPTIMIZED]


# ── Footprint ─────────────────────────────────────────────────────────


class BuildingFootprint(BaseModel):
    """Oriented rectangular footprint of one building floor.

    `width` runs along the corridor axis, `depth` across it. Rotation and
    center are a single rigid transform applied only at presentation time;
    layouts are generated in an axis-aligned local frame.
    """

    model_config = ConfigDict(frozen=True)

    width: float = Field(gt=0, description="Extent along the corridor (m)")
    depth: float = Field(gt=0, description="Extent across the corridor (m)")
    height: float = Field(default=DEFAULT_FLOOR_HEIGHT, ge=0)
    center_x: float = 0.0
    center_y: float = 0.0
    floor_z: float = 0.0
    rotation: float = Field(default=0.0, description="Radians, counter-clockwise")
    min_x: float | None = Field(default=None, description="World bounding box")
    max_x: float | None = None
    min_y: float | None = None
    max_y: float | None = None

    @property
    def gross_area(self) -> float:
        return self.width * self.depth


# ── Unit mix ──────────────────────────────────────────────────────────


class UnitTypeSpec(BaseModel):
    """One configured apartment type."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Stable identifier, e.g. 'studio'")
    name: str = Field(default="", description="Display name; defaults to the id")
    percentage: float = Field(ge=0, le=100, description="Target share of all units")
    area: float = Field(gt=0, description="Target (and minimum) area, m²")
    color: str | None = Field(default=None, description="#rrggbb display color")
    corner_eligible: bool | None = None
    l_shape_eligible: bool | None = None
    expansion_weight: float | None = Field(default=None, gt=0)

    @field_validator("color")
    @classmethod
    def hex_color(cls, v: str | None) -> str | None:
        if v is not None and not HEX_COLOR.match(v):
            raise ValueError(f"Color must be #rrggbb, got {v!r}")
        return v

    @property
    def display_name(self) -> str:
        return self.name or self.id


class UnitMix(BaseModel):
    """Ordered list of unit types. Percentages need not sum to exactly 100."""

    model_config = ConfigDict(frozen=True)

    types: list[UnitTypeSpec]

    @field_validator("types")
    @classmethod
    def non_empty_unique(cls, v: list[UnitTypeSpec]) -> list[UnitTypeSpec]:
        if not v:
            raise ValueError("Unit mix must contain at least one unit type")
        ids = [t.id for t in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate unit type ids: {', '.join(duplicates)}")
        return v

    @model_validator(mode="after")
    def percentages_positive(self) -> UnitMix:
        if self.total_percentage <= 0:
            raise ValueError("Unit type percentages sum to zero")
        return self

    @property
    def total_percentage(self) -> float:
        return sum(t.percentage for t in self.types)

    @property
    def active_types(self) -> list[UnitTypeSpec]:
        """Types with a positive target share, in configured order."""
        return [t for t in self.types if t.percentage > 0]

    def get(self, type_id: str) -> UnitTypeSpec | None:
        for t in self.types:
            if t.id == type_id:
                return t
        return None

    def ids(self) -> list[str]:
        return [t.id for t in self.types]

    # ── Serialization ─────────────────────────────────────────────

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, path: Path) -> UnitMix:
        return cls.model_validate_json(path.read_text())


def _sf(square_feet: float) -> float:
    return square_feet * SQ_FEET_TO_SQ_METERS


DEFAULT_UNIT_TYPES = UnitMix(
    types=[
        UnitTypeSpec(
            id="studio", name="Studio", percentage=20, area=_sf(590), color="#3b82f6",
            corner_eligible=False, l_shape_eligible=False, expansion_weight=0.1,
        ),
        UnitTypeSpec(
            id="1br", name="1BR", percentage=40, area=_sf(885), color="#22c55e",
            corner_eligible=False, l_shape_eligible=True,
        ),
        UnitTypeSpec(
            id="2br", name="2BR", percentage=30, area=_sf(1180), color="#f97316",
            corner_eligible=True, l_shape_eligible=True,
        ),
        UnitTypeSpec(
            id="3br", name="3BR", percentage=10, area=_sf(1475), color="#a855f7",
            corner_eligible=True, l_shape_eligible=True,
        ),
    ]
)

# Same four types without eligibility flags: behaviour is derived from areas.
DEFAULT_UNIT_CONFIG = UnitMix(
    types=[
        t.model_copy(update={"corner_eligible": None, "l_shape_eligible": None, "expansion_weight": None})
        for t in DEFAULT_UNIT_TYPES.types
    ]
)


# ── Egress ────────────────────────────────────────────────────────────


class EgressConfig(BaseModel):
    """Fire-egress distance limits along the corridor (meters)."""

    model_config = ConfigDict(frozen=True)

    sprinklered: bool = True
    dead_end_limit: float = Field(gt=0)
    travel_distance_limit: float = Field(gt=0)
    common_path_limit: float = Field(gt=0)

    @classmethod
    def preset(cls, sprinklered: bool) -> EgressConfig:
        return EGRESS_SPRINKLERED if sprinklered else EGRESS_UNSPRINKLERED


EGRESS_SPRINKLERED = EgressConfig(
    sprinklered=True,
    dead_end_limit=50 * FEET_TO_METERS,
    travel_distance_limit=250 * FEET_TO_METERS,
    common_path_limit=125 * FEET_TO_METERS,
)

EGRESS_UNSPRINKLERED = EgressConfig(
    sprinklered=False,
    dead_end_limit=20 * FEET_TO_METERS,
    travel_distance_limit=200 * FEET_TO_METERS,
    common_path_limit=75 * FEET_TO_METERS,
)


# ── Layout settings and requests ──────────────────────────────────────


class LayoutSettings(BaseModel):
    """Corridor/core geometry and presentation options for one generation."""

    model_config = ConfigDict(frozen=True)

    corridor_width: float = Field(default=DEFAULT_CORRIDOR_WIDTH, gt=0)
    core_width: float = Field(default=DEFAULT_CORE_WIDTH, gt=0)
    core_depth: float = Field(default=DEFAULT_CORE_DEPTH, gt=0)
    core_side: Side = Side.NORTH
    alignment_tolerance: float = Field(default=0.5, ge=0, le=1)
    color_overrides: dict[str, str] = Field(default_factory=dict)

    @field_validator("color_overrides")
    @classmethod
    def hex_colors(cls, v: dict[str, str]) -> dict[str, str]:
        for type_id, color in v.items():
            if not HEX_COLOR.match(color):
                raise ValueError(f"Color override for {type_id!r} must be #rrggbb, got {color!r}")
        return v


class LayoutRequest(BaseModel):
    """Everything needed to generate a floorplate, as one config file."""

    footprint: BuildingFootprint
    unit_mix: UnitMix = DEFAULT_UNIT_CONFIG
    egress: EgressConfig = EGRESS_SPRINKLERED
    settings: LayoutSettings = Field(default_factory=LayoutSettings)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, path: Path) -> LayoutRequest:
        return cls.model_validate_json(path.read_text())
