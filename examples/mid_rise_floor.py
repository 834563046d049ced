"""Typical mid-rise floor — three strategy options for a 60m x 20m bar.

Double-loaded corridor, cores on the north side, default unit mix
(20% studio, 40% 1BR, 30% 2BR, 10% 3BR), sprinklered egress limits.

   N
   ↑
   |
   +--- E

Layout (top view, building-local):
   (-30,10) ------------------------------------ (30,10)
      |  corner  |core|     mid      |core| corner |   north units
      |----------------- corridor --------------------|
      |  corner  |          mid           |  corner  |  south units
   (-30,-10) ----------------------------------- (30,-10)
"""

from pathlib import Path

from floorplate.export.floorplan import render_floorplan
from floorplate.export.ifc import export_ifc
from floorplate.generators import generate_variants
from floorplate.models.config import (
    DEFAULT_UNIT_TYPES,
    EGRESS_SPRINKLERED,
    BuildingFootprint,
    LayoutSettings,
    Side,
)
from floorplate.validators.egress import validate_egress
from floorplate.validators.layout import validate_floorplan

# Building dimensions
LENGTH = 60.0  # along the corridor
DEPTH = 20.0   # across the corridor
HEIGHT = 45.0  # whole building, only used for the footprint record

footprint = BuildingFootprint(width=LENGTH, depth=DEPTH, height=HEIGHT)

settings = LayoutSettings(
    core_side=Side.NORTH,
    alignment_tolerance=1.0,
    color_overrides={"studio": "#0ea5e9"},
)

# --- Generate ---
options = generate_variants(footprint, DEFAULT_UNIT_TYPES, EGRESS_SPRINKLERED, settings)

output = Path(__file__).parent / "output"
output.mkdir(exist_ok=True)

for option in options:
    plan = option.floorplan
    print(f"\n{option.id}: {option.label}")

    # --- Validate ---
    errors = validate_floorplan(plan, DEFAULT_UNIT_TYPES) + validate_egress(plan, EGRESS_SPRINKLERED)
    if errors:
        print("⚠️  Validation issues:")
        for e in errors:
            print(f"  [{e.severity}] {e.element_type}: {e.message}")
    else:
        print("✅ Validation passed")

    # --- Export ---
    png = render_floorplan(plan, output / f"{option.id}.png", title=f"{option.label} ({LENGTH:.0f}m x {DEPTH:.0f}m)")
    ifc = export_ifc(plan, output / f"{option.id}.ifc", name=f"Mid-rise {option.label}")
    print(f"📁 Exported to: {ifc}, {png}")
    print(f"   Units: {plan.stats.total_units} {plan.stats.unit_counts}")
    print(f"   Cores: {len(plan.cores)}, fillers: {len(plan.fillers)}")
    print(f"   Efficiency: {plan.stats.efficiency:.1%}")
    print(f"   Dead end: {plan.egress.max_dead_end:.1f} m ({plan.egress.dead_end_status.value})")
    print(f"   Travel: {plan.egress.max_travel_distance:.1f} m ({plan.egress.travel_distance_status.value})")
