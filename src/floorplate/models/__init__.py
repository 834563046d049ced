"""Floorplate data models."""

from floorplate.models.ifc_id import stable_ifc_id
from floorplate.models.geometry import LineSegment, Point2D, Polygon2D, Rect
from floorplate.models.config import (
    BuildingFootprint,
    DEFAULT_UNIT_CONFIG,
    DEFAULT_UNIT_TYPES,
    EGRESS_SPRINKLERED,
    EGRESS_UNSPRINKLERED,
    EgressConfig,
    LayoutRequest,
    LayoutSettings,
    Side,
    Strategy,
    UnitMix,
    UnitTypeSpec,
)
from floorplate.models.floorplan import (
    ComplianceStatus,
    Core,
    CoreKind,
    Corridor,
    EgressResult,
    Filler,
    FloorPlan,
    FloorStats,
    LayoutOption,
    SavedLayout,
    Transform,
    Unit,
)

__all__ = [
    "stable_ifc_id",
    "LineSegment",
    "Point2D",
    "Polygon2D",
    "Rect",
    "BuildingFootprint",
    "DEFAULT_UNIT_CONFIG",
    "DEFAULT_UNIT_TYPES",
    "EGRESS_SPRINKLERED",
    "EGRESS_UNSPRINKLERED",
    "EgressConfig",
    "LayoutRequest",
    "LayoutSettings",
    "Side",
    "Strategy",
    "UnitMix",
    "UnitTypeSpec",
    "ComplianceStatus",
    "Core",
    "CoreKind",
    "Corridor",
    "EgressResult",
    "Filler",
    "FloorPlan",
    "FloorStats",
    "LayoutOption",
    "SavedLayout",
    "Transform",
    "Unit",
]
