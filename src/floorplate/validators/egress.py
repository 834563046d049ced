"""Fire-egress checks along the corridor.

All distances are measured along the single straight corridor axis:

    ◄─ dead end ─►                        ◄─ dead end ─►
    ├─────void───┤core├──── gap ────┤core├───────┤void┤
                     ◄── travel: gap/2 ──►

- Dead end: corridor beyond the outermost core, to the end of the
  corridor (the building end less any absorbed void). A stub shorter than
  2.5 corridor widths is an alcove and passes.
- Travel distance: the longer of the dead end and half the largest gap
  between neighbouring cores.
- Common path: the dead end plus the walk out of the deepest unit.
"""

from __future__ import annotations

from floorplate.models.config import EgressConfig
from floorplate.models.floorplan import ComplianceStatus, Core, EgressResult, FloorPlan
from floorplate.validators.layout import ValidationError

ALCOVE_FACTOR = 2.5


def _status(ok: bool) -> ComplianceStatus:
    return ComplianceStatus.PASS if ok else ComplianceStatus.FAIL


def evaluate_egress(
    cores: list[Core],
    length: float,
    rentable_depth: float,
    corridor_width: float,
    egress: EgressConfig,
    left_void: float = 0.0,
    right_void: float = 0.0,
) -> EgressResult:
    """Measure egress distances for a core arrangement.

    Args:
        cores: Cores on the floor, any order. Only x and width are used.
        length: Building length along the corridor.
        rentable_depth: Unit depth on one side of the corridor.
        corridor_width: Corridor width, for the alcove exemption.
        egress: Limits to compare against.
        left_void: Corridor absorbed by the end units at x=0.
        right_void: Corridor absorbed by the end units at x=length.
    """
    if not cores:
        worst = length - left_void - right_void
        return EgressResult(
            max_dead_end=worst,
            max_travel_distance=worst,
            max_common_path=worst + rentable_depth,
            dead_end_status=ComplianceStatus.FAIL,
            travel_distance_status=ComplianceStatus.FAIL,
            common_path_status=ComplianceStatus.FAIL,
            num_cores=0,
        )

    ordered = sorted(cores, key=lambda c: c.x)
    first, last = ordered[0], ordered[-1]
    left_dead = first.x - left_void
    right_dead = length - (last.x + last.width) - right_void
    max_dead = max(0.0, left_dead, right_dead)

    gaps = [b.x - (a.x + a.width) for a, b in zip(ordered, ordered[1:])]
    travel = max(max_dead, max(gaps, default=0.0) / 2)
    common_path = max_dead + rentable_depth

    alcove = max_dead < ALCOVE_FACTOR * corridor_width
    return EgressResult(
        max_dead_end=max_dead,
        max_travel_distance=travel,
        max_common_path=common_path,
        dead_end_status=_status(alcove or max_dead <= egress.dead_end_limit),
        travel_distance_status=_status(travel <= egress.travel_distance_limit),
        common_path_status=_status(common_path <= egress.common_path_limit),
        num_cores=len(cores),
    )


def validate_egress(plan: FloorPlan, egress: EgressConfig | None = None) -> list[ValidationError]:
    """Report each failed egress check of a plan.

    With `egress` the distances are re-measured against those limits;
    otherwise the statuses stored on the plan are reported.
    """
    result = plan.egress
    if egress is not None:
        rentable_depth = (plan.building_depth - plan.corridor.depth) / 2
        half_length = plan.building_length / 2
        cores = [c.model_copy(update={"x": c.x + half_length}) for c in plan.cores]
        left_void = plan.corridor.x + half_length
        right_void = half_length - (plan.corridor.x + plan.corridor.width)
        result = evaluate_egress(
            cores,
            plan.building_length,
            rentable_depth,
            plan.corridor.depth,
            egress,
            left_void=max(0.0, left_void),
            right_void=max(0.0, right_void),
        )

    checks = [
        ("dead end", result.max_dead_end, result.dead_end_status, egress and egress.dead_end_limit),
        ("travel distance", result.max_travel_distance, result.travel_distance_status,
         egress and egress.travel_distance_limit),
        ("common path", result.max_common_path, result.common_path_status, egress and egress.common_path_limit),
    ]
    errors: list[ValidationError] = []
    for name, value, status, limit in checks:
        if status is ComplianceStatus.FAIL:
            bound = f" (limit {limit:.2f}m)" if limit else ""
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Egress",
                    element_id=name.replace(" ", "_"),
                    message=f"Egress {name} of {value:.2f}m fails{bound} with {result.num_cores} cores",
                )
            )
    return errors
