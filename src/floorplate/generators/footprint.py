"""Footprint extraction from a building mesh.

Takes the flat xyz vertex buffer of a closed building solid and fits an
oriented rectangle to its ground floor:

1. Keep the points within 1% of the height range above the lowest point
2. Convex hull of those points (Andrew's monotone chain)
3. Longest hull edge gives the corridor axis and the rotation
4. Extents along / across that axis give width and depth

Concave footprints are filled in by the hull; only rectangular buildings
are supported.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from floorplate.models.config import BuildingFootprint

logger = logging.getLogger(__name__)

GROUND_TOLERANCE = 0.01
DEDUP_DECIMALS = 3


class FootprintExtractionError(ValueError):
    """Raised when a point buffer cannot describe a footprint."""


def convex_hull(points: np.ndarray) -> np.ndarray:
    """Counter-clockwise convex hull of an (n, 2) array, collinear points dropped."""
    pts = sorted({(float(x), float(y)) for x, y in points})
    if len(pts) <= 2:
        return np.array(pts, dtype=float).reshape(-1, 2)

    def cross(o: tuple[float, float], a: tuple[float, float], b: tuple[float, float]) -> float:
        return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])

    lower: list[tuple[float, float]] = []
    for p in pts:
        while len(lower) >= 2 and cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)
    upper: list[tuple[float, float]] = []
    for p in reversed(pts):
        while len(upper) >= 2 and cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)
    return np.array(lower[:-1] + upper[:-1], dtype=float)


def _parse_points(points: Sequence[float] | np.ndarray) -> np.ndarray:
    buffer = np.asarray(points, dtype=float).ravel()
    if buffer.size == 0:
        raise FootprintExtractionError("Point buffer is empty")
    if buffer.size % 3 != 0:
        raise FootprintExtractionError(f"Point buffer length {buffer.size} is not a multiple of 3")
    if not np.all(np.isfinite(buffer)):
        raise FootprintExtractionError("Point buffer contains non-finite values")
    return buffer.reshape(-1, 3)


def extract_footprint(points: Sequence[float] | np.ndarray) -> BuildingFootprint:
    """Fit an oriented rectangle to the ground floor of a building mesh.

    Args:
        points: Flat [x0, y0, z0, x1, y1, z1, ...] vertex buffer (z up).

    Returns:
        Footprint with `width` along the longest hull edge, `rotation` the
        angle of that edge, center at the world bounding-box center and
        `floor_z` at the lowest point.

    Raises:
        FootprintExtractionError: If the buffer is empty, not xyz triples,
            non-finite, or collapses to a point or a line.
    """
    xyz = _parse_points(points)
    z = xyz[:, 2]
    min_z, max_z = float(z.min()), float(z.max())
    threshold = min_z + (max_z - min_z) * GROUND_TOLERANCE

    ground = xyz[z <= threshold][:, :2]
    ground = np.unique(np.round(ground, DEDUP_DECIMALS), axis=0)
    if len(ground) < 2:
        logger.debug("Fewer than 2 ground points; using every vertex")
        ground = np.unique(np.round(xyz[:, :2], DEDUP_DECIMALS), axis=0)

    hull = convex_hull(ground)
    if len(hull) < 2:
        raise FootprintExtractionError("Points collapse to a single location")

    edges = np.roll(hull, -1, axis=0) - hull
    lengths = np.hypot(edges[:, 0], edges[:, 1])
    longest = int(np.argmax(lengths))
    rotation = math.atan2(float(edges[longest, 1]), float(edges[longest, 0]))

    cos_r, sin_r = math.cos(-rotation), math.sin(-rotation)
    local = ground @ np.array([[cos_r, sin_r], [-sin_r, cos_r]])
    width = float(local[:, 0].max() - local[:, 0].min())
    depth = float(local[:, 1].max() - local[:, 1].min())
    if width <= 0 or depth <= 0:
        raise FootprintExtractionError("Ground points are collinear; footprint has no area")

    min_x, min_y = (float(v) for v in xyz[:, :2].min(axis=0))
    max_x, max_y = (float(v) for v in xyz[:, :2].max(axis=0))
    footprint = BuildingFootprint(
        width=width,
        depth=depth,
        height=max_z - min_z,
        center_x=(min_x + max_x) / 2,
        center_y=(min_y + max_y) / 2,
        floor_z=min_z,
        rotation=rotation,
        min_x=min_x,
        max_x=max_x,
        min_y=min_y,
        max_y=max_y,
    )
    logger.debug(
        "Footprint %.2f x %.2fm, rotation %.1f°, %d hull vertices",
        width, depth, math.degrees(rotation), len(hull),
    )
    return footprint
