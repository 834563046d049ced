"""Presentation adapter: FloorPlan → world-space triangle buffers and polygons.

The generator works in building-centered local coordinates. This module
applies the footprint transform (rotate, then translate to the center) and
produces flat buffers a viewer can upload directly:

- positions: float32, x y z per vertex, three vertices per triangle
- colors:    uint8, r g b a per vertex

Layers are drawn in order: corridor, cores, fillers, units, borders.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from floorplate.models.config import HEX_COLOR
from floorplate.models.floorplan import FloorPlan, Transform
from floorplate.models.geometry import Point2D, signed_area, triangulate

UNIT_ALPHA = 200
FALLBACK_RGBA = (128, 128, 128, UNIT_ALPHA)
CORE_RGBA = (55, 65, 81, 230)
CORRIDOR_RGBA = (147, 51, 234, 200)
FILLER_RGBA = (209, 213, 219, 200)
BORDER_RGBA = (30, 30, 30, 255)
BORDER_WIDTH = 0.15

# Lift per layer so coplanar layers don't z-fight
LAYER_OFFSET = 0.01


@dataclass
class MeshLayer:
    """Triangle soup for one layer."""

    name: str
    positions: np.ndarray
    colors: np.ndarray

    @property
    def vertex_count(self) -> int:
        return len(self.positions) // 3

    @property
    def triangle_count(self) -> int:
        return self.vertex_count // 3


def to_world(x: float, y: float, transform: Transform) -> tuple[float, float]:
    """Rotate a local point about the origin, then move it to the building center."""
    cos_r, sin_r = math.cos(transform.rotation), math.sin(transform.rotation)
    return (
        transform.center_x + x * cos_r - y * sin_r,
        transform.center_y + x * sin_r + y * cos_r,
    )


def parse_hex_color(color: str | None, alpha: int = UNIT_ALPHA) -> tuple[int, int, int, int]:
    """'#rrggbb' → (r, g, b, alpha); anything unparseable becomes gray."""
    if not color or not HEX_COLOR.match(color):
        return FALLBACK_RGBA
    return (int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16), alpha)


class _LayerBuilder:
    def __init__(self, name: str, transform: Transform, z: float):
        self.name = name
        self.transform = transform
        self.z = z
        self.positions: list[float] = []
        self.colors: list[int] = []

    def add_polygon(self, outline: list[Point2D], rgba: tuple[int, int, int, int]) -> None:
        if signed_area(outline) < 0:
            outline = list(reversed(outline))
        for tri in triangulate(outline):
            for i in tri:
                wx, wy = to_world(outline[i].x, outline[i].y, self.transform)
                self.positions.extend((wx, wy, self.z))
                self.colors.extend(rgba)

    def add_segment(self, a: Point2D, b: Point2D, width: float, rgba: tuple[int, int, int, int]) -> None:
        dx, dy = b.x - a.x, b.y - a.y
        length = math.hypot(dx, dy)
        if length <= 0:
            return
        nx, ny = -dy / length * width / 2, dx / length * width / 2
        quad = [
            Point2D(x=a.x - nx, y=a.y - ny),
            Point2D(x=b.x - nx, y=b.y - ny),
            Point2D(x=b.x + nx, y=b.y + ny),
            Point2D(x=a.x + nx, y=a.y + ny),
        ]
        self.add_polygon(quad, rgba)

    def build(self) -> MeshLayer:
        return MeshLayer(
            name=self.name,
            positions=np.array(self.positions, dtype=np.float32),
            colors=np.array(self.colors, dtype=np.uint8),
        )


def floorplan_to_meshes(plan: FloorPlan) -> list[MeshLayer]:
    """Triangulated world-space layers for a floor plan.

    Rectangles become two triangles; L-shaped units are ear-clipped from
    their outline. Every triangle is counter-clockwise seen from above.
    """
    base = plan.floor_elevation
    layers = [
        _LayerBuilder(name, plan.transform, base + k * LAYER_OFFSET)
        for k, name in enumerate(("corridor", "cores", "fillers", "units", "borders"))
    ]
    corridor, cores, fillers, units, borders = layers

    if plan.corridor.width > 0:
        corridor.add_polygon(plan.corridor.rect.corners(), CORRIDOR_RGBA)
    for core in plan.cores:
        cores.add_polygon(core.rect.corners(), CORE_RGBA)
    for filler in plan.fillers:
        fillers.add_polygon(filler.rect.corners(), FILLER_RGBA)
    for unit in plan.units:
        outline = unit.outline()
        units.add_polygon(outline, parse_hex_color(unit.color))
        for a, b in zip(outline, outline[1:] + outline[:1]):
            borders.add_segment(a, b, BORDER_WIDTH, BORDER_RGBA)

    return [layer.build() for layer in layers]


def floorplan_to_polygons(plan: FloorPlan) -> list[dict]:
    """World-space polygon records for external building-model APIs.

    Each record has `id`, `kind` (unit / core / corridor / filler),
    `vertices` as counter-clockwise [x, y] pairs, `elevation`, `height`,
    and for units `type_id`, `color` and `area`.
    """

    def world(points: list[Point2D]) -> list[list[float]]:
        if signed_area(points) < 0:
            points = list(reversed(points))
        return [list(to_world(p.x, p.y, plan.transform)) for p in points]

    common = {"elevation": plan.floor_elevation, "height": plan.floor_height}
    records: list[dict] = []
    for unit in plan.units:
        records.append({
            "id": unit.id,
            "kind": "unit",
            "type_id": unit.type_id,
            "color": unit.color,
            "area": unit.area,
            "vertices": world(unit.outline()),
            **common,
        })
    for core in plan.cores:
        records.append({"id": core.id, "kind": "core", "vertices": world(core.rect.corners()), **common})
    if plan.corridor.width > 0:
        records.append({"id": "corridor", "kind": "corridor", "vertices": world(plan.corridor.rect.corners()), **common})
    for filler in plan.fillers:
        records.append({
            "id": filler.id,
            "kind": "filler",
            "space_use": filler.space_use,
            "vertices": world(filler.rect.corners()),
            **common,
        })
    return records
