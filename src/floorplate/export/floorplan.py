"""2D floorplate rendering using matplotlib.

Generates a top-down plan of one generated floor:
- Units filled with their type color, L-shapes drawn as their outline
- Cores dark, corridor purple, fillers hatched gray
- Unit labels (type + area) and an info box with stats and egress
"""

from __future__ import annotations

from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # headless rendering
import matplotlib.pyplot as plt
import matplotlib.patheffects as pe
from matplotlib.patches import Polygon as PolygonPatch

from floorplate.models.floorplan import ComplianceStatus, FloorPlan, Unit
from floorplate.models.geometry import Point2D

# Halo effect for text readability on any background
_TEXT_HALO = [pe.withStroke(linewidth=3, foreground="white")]

CORE_COLOR = "#374151"
CORRIDOR_COLOR = "#9333EA"
FILLER_COLOR = "#D1D5DB"
OUTLINE_COLOR = "#1E1E1E"


def _xy(points: list[Point2D]) -> list[tuple[float, float]]:
    return [(p.x, p.y) for p in points]


def render_floorplan(
    plan: FloorPlan,
    output_path: str | Path,
    title: str | None = None,
    dpi: int = 150,
    show_labels: bool = True,
    show_title: bool = True,
    show_info_box: bool = True,
) -> Path:
    """Render a floor plan to PNG.

    Args:
        plan: The floor plan to render (building-centered coordinates).
        output_path: Output image path.
        title: Plot title (defaults to the strategy name).
        dpi: Image resolution.
        show_labels: Show unit type and area labels.
        show_title: Show title bar at top.
        show_info_box: Show stats and egress overlay.

    Returns:
        Path to the output image.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    aspect = plan.building_depth / plan.building_length
    fig, ax = plt.subplots(1, 1, figsize=(14, max(4.0, 14 * aspect + 2)))

    ax.set_aspect("equal")
    ax.set_facecolor("#FAFAFA")
    fig.patch.set_facecolor("white")

    # Corridor
    corridor = plan.corridor.rect
    if corridor.width > 0:
        ax.add_patch(PolygonPatch(
            _xy(corridor.corners()), closed=True,
            facecolor=CORRIDOR_COLOR, alpha=0.35, edgecolor=CORRIDOR_COLOR, linewidth=0.8, zorder=2,
        ))

    # Fillers
    for filler in plan.fillers:
        ax.add_patch(PolygonPatch(
            _xy(filler.rect.corners()), closed=True,
            facecolor=FILLER_COLOR, edgecolor="#9CA3AF", hatch="//", linewidth=0.6, zorder=3,
        ))

    # Units
    for unit in plan.units:
        _draw_unit(ax, unit, show_labels)

    # Cores
    for core in plan.cores:
        ax.add_patch(PolygonPatch(
            _xy(core.rect.corners()), closed=True,
            facecolor=CORE_COLOR, edgecolor=OUTLINE_COLOR, linewidth=1.0, zorder=6,
        ))
        if show_labels:
            c = core.rect.center
            ax.text(c.x, c.y, core.kind.value, fontsize=7, ha="center", va="center",
                    color="white", fontweight="bold", rotation=90, zorder=7)

    # Building outline
    half_l, half_d = plan.building_length / 2, plan.building_depth / 2
    ax.plot(
        [-half_l, half_l, half_l, -half_l, -half_l],
        [-half_d, -half_d, half_d, half_d, -half_d],
        color=OUTLINE_COLOR, linewidth=2.0, zorder=8,
    )

    if show_title:
        ax.set_title(
            title or f"Floorplate — {plan.strategy.value}",
            fontsize=16,
            fontweight="bold",
            pad=20,
        )

    ax.grid(True, alpha=0.2, linestyle="--")
    ax.set_xlabel("X (meters)", fontsize=10)
    ax.set_ylabel("Y (meters)", fontsize=10)

    margin = 2.0
    ax.set_xlim(-half_l - margin, half_l + margin)
    ax.set_ylim(-half_d - margin, half_d + margin)

    if show_info_box:
        egress = plan.egress
        counts = ", ".join(f"{tid}: {n}" for tid, n in plan.stats.unit_counts.items())

        def mark(status: ComplianceStatus) -> str:
            return "ok" if status is ComplianceStatus.PASS else "FAIL"

        info_lines = [
            f"Building: {plan.building_length:.1f} x {plan.building_depth:.1f} m",
            f"GSF: {plan.stats.gsf:.1f} m²   NRSF: {plan.stats.nrsf:.1f} m²",
            f"Efficiency: {plan.stats.efficiency:.1%}",
            f"Units: {plan.stats.total_units} ({counts})",
            f"Cores: {len(plan.cores)}   Fillers: {len(plan.fillers)}",
            f"Dead end: {egress.max_dead_end:.1f} m [{mark(egress.dead_end_status)}]",
            f"Travel: {egress.max_travel_distance:.1f} m [{mark(egress.travel_distance_status)}]",
            f"Common path: {egress.max_common_path:.1f} m [{mark(egress.common_path_status)}]",
        ]
        ax.text(
            0.02, 0.98, "\n".join(info_lines),
            transform=ax.transAxes,
            fontsize=8,
            verticalalignment="top",
            fontfamily="monospace",
            bbox=dict(boxstyle="round,pad=0.5", facecolor="white", alpha=0.8, edgecolor="#CCCCCC"),
            zorder=100,
        )

    plt.tight_layout()
    fig.savefig(str(output_path), dpi=dpi, bbox_inches="tight")
    plt.close(fig)

    return output_path


def _draw_unit(ax: plt.Axes, unit: Unit, show_labels: bool) -> None:
    """Draw a unit as its outline polygon, filled with the type color."""
    outline = _xy(unit.outline())
    ax.add_patch(PolygonPatch(
        outline, closed=True,
        facecolor=unit.color, alpha=0.55, edgecolor=OUTLINE_COLOR, linewidth=1.0, zorder=4,
    ))

    if show_labels:
        c = unit.rect.center
        ax.text(
            c.x, c.y,
            f"{unit.type_name}\n{unit.area:.0f} m²",
            fontsize=7,
            ha="center",
            va="center",
            color="#111827",
            zorder=5,
            path_effects=_TEXT_HALO,
        )
