"""Layout invariant checks.

Validators for a generated FloorPlan:
- no_shrink: every unit is at least its type's minimum width and area
- no_overlap: units, cores, fillers and the corridor never overlap
- coverage: everything together covers the gross floor area
- counts: statistics agree with the placed units and the per-side targets

Each validator returns a list of ValidationError records; none raise.
"""

from __future__ import annotations

from dataclasses import dataclass

from floorplate.models.config import UnitMix
from floorplate.models.floorplan import FloorPlan
from floorplate.models.geometry import Rect

AREA_EPSILON = 1e-6
COVERAGE_TOLERANCE = 0.005


@dataclass
class ValidationError:
    """A single validation issue."""

    severity: str  # "error" | "warning"
    element_type: str
    element_id: str
    message: str


def validate_floorplan(plan: FloorPlan, unit_mix: UnitMix | None = None) -> list[ValidationError]:
    """Run all layout validators. `unit_mix` enables the no-shrink check."""
    errors: list[ValidationError] = []
    if unit_mix is not None:
        errors.extend(validate_no_shrink(plan, unit_mix))
    errors.extend(validate_no_overlap(plan))
    errors.extend(validate_coverage(plan))
    errors.extend(validate_counts(plan))
    return errors


def validate_no_shrink(plan: FloorPlan, unit_mix: UnitMix) -> list[ValidationError]:
    """Check no unit is narrower or smaller than its type's target.

    Minimum width is target area / rentable depth, the same rule the
    generator sizes units with.
    """
    errors: list[ValidationError] = []
    rentable_depth = (plan.building_depth - plan.corridor.depth) / 2
    for unit in plan.units:
        spec = unit_mix.get(unit.type_id)
        if spec is None:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Unit",
                    element_id=unit.id,
                    message=f"Unit type '{unit.type_id}' is not in the unit mix",
                )
            )
            continue
        min_width = spec.area / rentable_depth
        if unit.width < min_width - AREA_EPSILON:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Unit",
                    element_id=unit.id,
                    message=(
                        f"Unit '{unit.id}' ({spec.display_name}) is {unit.width:.3f}m wide, "
                        f"below its minimum {min_width:.3f}m"
                    ),
                )
            )
        if unit.area < spec.area - AREA_EPSILON * max(1.0, spec.area):
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Unit",
                    element_id=unit.id,
                    message=(
                        f"Unit '{unit.id}' ({spec.display_name}) has {unit.area:.2f}m², "
                        f"below its target {spec.area:.2f}m²"
                    ),
                )
            )
    return errors


def _elements(plan: FloorPlan) -> list[tuple[str, str, Rect]]:
    elements: list[tuple[str, str, Rect]] = []
    for unit in plan.units:
        for rect in unit.rects():
            elements.append(("Unit", unit.id, rect))
    for core in plan.cores:
        elements.append(("Core", core.id, core.rect))
    for filler in plan.fillers:
        elements.append(("Filler", filler.id, filler.rect))
    if plan.corridor.width > 0:
        elements.append(("Corridor", "corridor", plan.corridor.rect))
    return elements


def validate_no_overlap(plan: FloorPlan, tolerance: float = AREA_EPSILON) -> list[ValidationError]:
    """Check that no two elements share more than `tolerance` m² of floor."""
    errors: list[ValidationError] = []
    elements = _elements(plan)
    for i, (type_a, id_a, rect_a) in enumerate(elements):
        for type_b, id_b, rect_b in elements[i + 1:]:
            if id_a == id_b:
                continue
            shared = rect_a.intersection_area(rect_b)
            if shared > tolerance:
                errors.append(
                    ValidationError(
                        severity="error",
                        element_type=type_a,
                        element_id=id_a,
                        message=f"{type_a} '{id_a}' overlaps {type_b} '{id_b}' by {shared:.4f}m²",
                    )
                )
    return errors


def validate_coverage(plan: FloorPlan, tolerance: float = COVERAGE_TOLERANCE) -> list[ValidationError]:
    """Check the elements add up to the gross area (relative `tolerance`)."""
    gross = plan.building_length * plan.building_depth
    covered = sum(rect.area for _, _, rect in _elements(plan))
    if abs(covered - gross) > tolerance * gross:
        return [
            ValidationError(
                severity="error",
                element_type="FloorPlan",
                element_id="floor",
                message=(
                    f"Elements cover {covered:.2f}m² of {gross:.2f}m² gross "
                    f"({covered / gross:.1%})"
                ),
            )
        ]
    return []


def validate_counts(plan: FloorPlan) -> list[ValidationError]:
    """Check unit statistics against the placed units and side targets."""
    errors: list[ValidationError] = []
    stats = plan.stats
    if sum(stats.unit_counts.values()) != stats.total_units or stats.total_units != len(plan.units):
        errors.append(
            ValidationError(
                severity="error",
                element_type="FloorPlan",
                element_id="stats",
                message=(
                    f"Unit counts sum to {sum(stats.unit_counts.values())}, "
                    f"total_units is {stats.total_units}, {len(plan.units)} units placed"
                ),
            )
        )

    for type_id in sorted({u.type_id for u in plan.units}):
        placed = sum(1 for u in plan.units if u.type_id == type_id)
        if stats.unit_counts.get(type_id, 0) != placed:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="FloorPlan",
                    element_id="stats",
                    message=f"Stats report {stats.unit_counts.get(type_id, 0)} '{type_id}' units, {placed} placed",
                )
            )

    if plan.target_counts:
        target = sum(sum(side.values()) for side in plan.target_counts.values())
        if target != stats.total_units:
            errors.append(
                ValidationError(
                    severity="warning",
                    element_type="FloorPlan",
                    element_id="stats",
                    message=f"{stats.total_units} units placed against a target of {target}",
                )
            )
    return errors
