"""Geometric primitives for floorplate elements.

All coordinates are meters in the building-local frame: x runs along the
corridor, y across it. Rectangles are anchored at their lower-left corner.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator

EPSILON = 1e-6


class Point2D(BaseModel):
    """2D point in the XY plane (meters)."""

    x: float
    y: float

    def distance_to(self, other: Point2D) -> float:
        """Euclidean distance to another point."""
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point2D):
            return NotImplemented
        return math.isclose(self.x, other.x, abs_tol=EPSILON) and math.isclose(
            self.y, other.y, abs_tol=EPSILON
        )

    def __hash__(self) -> int:
        return hash((round(self.x, 6), round(self.y, 6)))


def distance(a: Point2D, b: Point2D) -> float:
    return a.distance_to(b)


def midpoint(a: Point2D, b: Point2D) -> Point2D:
    return Point2D(x=(a.x + b.x) / 2, y=(a.y + b.y) / 2)


def translate_point(p: Point2D, dx: float, dy: float) -> Point2D:
    return Point2D(x=p.x + dx, y=p.y + dy)


def rotate_point(p: Point2D, angle: float, origin: Point2D | None = None) -> Point2D:
    """Rotate a point counter-clockwise by `angle` radians around `origin`."""
    ox, oy = (origin.x, origin.y) if origin is not None else (0.0, 0.0)
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    dx, dy = p.x - ox, p.y - oy
    return Point2D(x=ox + dx * cos_a - dy * sin_a, y=oy + dx * sin_a + dy * cos_a)


# ── Line segments ─────────────────────────────────────────────────────


class LineSegment(BaseModel):
    """Straight segment between two points."""

    start: Point2D
    end: Point2D

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    @property
    def direction(self) -> tuple[float, float]:
        """Unit direction vector (start → end). Zero vector for degenerate segments."""
        length = self.length
        if length < EPSILON:
            return (0.0, 0.0)
        return ((self.end.x - self.start.x) / length, (self.end.y - self.start.y) / length)

    @property
    def angle(self) -> float:
        """Angle of the segment against the +x axis, in radians."""
        return math.atan2(self.end.y - self.start.y, self.end.x - self.start.x)

    def point_at(self, t: float) -> Point2D:
        """Point at parameter t (0 = start, 1 = end)."""
        return Point2D(
            x=self.start.x + (self.end.x - self.start.x) * t,
            y=self.start.y + (self.end.y - self.start.y) * t,
        )

    def closest_point(self, p: Point2D) -> Point2D:
        dx = self.end.x - self.start.x
        dy = self.end.y - self.start.y
        denom = dx * dx + dy * dy
        if denom < EPSILON**2:
            return self.start
        t = ((p.x - self.start.x) * dx + (p.y - self.start.y) * dy) / denom
        return self.point_at(max(0.0, min(1.0, t)))

    def distance_to_point(self, p: Point2D) -> float:
        return p.distance_to(self.closest_point(p))

    def intersection(self, other: LineSegment) -> Point2D | None:
        """Intersection point of two segments, or None if they don't cross.

        Parallel (including collinear overlapping) segments return None.
        """
        x1, y1, x2, y2 = self.start.x, self.start.y, self.end.x, self.end.y
        x3, y3, x4, y4 = other.start.x, other.start.y, other.end.x, other.end.y
        denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
        if abs(denom) < EPSILON:
            return None
        t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
        u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom
        if -EPSILON <= t <= 1 + EPSILON and -EPSILON <= u <= 1 + EPSILON:
            return self.point_at(t)
        return None


# ── Polygons ──────────────────────────────────────────────────────────


def signed_area(vertices: list[Point2D]) -> float:
    """Shoelace signed area. Positive for counter-clockwise winding."""
    n = len(vertices)
    total = 0.0
    for i in range(n):
        j = (i + 1) % n
        total += vertices[i].x * vertices[j].y - vertices[j].x * vertices[i].y
    return total / 2.0


class Polygon2D(BaseModel):
    """Closed polygon in the XY plane. Minimum 3 vertices. Auto-closes (no need to repeat first vertex)."""

    vertices: list[Point2D]

    @field_validator("vertices")
    @classmethod
    def at_least_3_vertices(cls, v: list[Point2D]) -> list[Point2D]:
        if len(v) < 3:
            raise ValueError("Polygon must have at least 3 vertices")
        return v

    @property
    def signed_area(self) -> float:
        return signed_area(self.vertices)

    @property
    def area(self) -> float:
        """Compute area using the shoelace formula. Returns absolute value."""
        return abs(self.signed_area)

    @property
    def perimeter(self) -> float:
        """Total perimeter length."""
        n = len(self.vertices)
        return sum(
            self.vertices[i].distance_to(self.vertices[(i + 1) % n]) for i in range(n)
        )

    @property
    def is_counter_clockwise(self) -> bool:
        return self.signed_area > 0

    @property
    def centroid(self) -> Point2D:
        """Area centroid. Falls back to the vertex average for degenerate polygons."""
        a = self.signed_area
        n = len(self.vertices)
        if abs(a) < EPSILON:
            return Point2D(
                x=sum(v.x for v in self.vertices) / n,
                y=sum(v.y for v in self.vertices) / n,
            )
        cx = cy = 0.0
        for i in range(n):
            p, q = self.vertices[i], self.vertices[(i + 1) % n]
            cross = p.x * q.y - q.x * p.y
            cx += (p.x + q.x) * cross
            cy += (p.y + q.y) * cross
        return Point2D(x=cx / (6 * a), y=cy / (6 * a))

    @property
    def bounding_box(self) -> tuple[Point2D, Point2D]:
        """(min corner, max corner)."""
        xs = [v.x for v in self.vertices]
        ys = [v.y for v in self.vertices]
        return Point2D(x=min(xs), y=min(ys)), Point2D(x=max(xs), y=max(ys))

    def ensure_counter_clockwise(self) -> Polygon2D:
        if self.signed_area < 0:
            return Polygon2D(vertices=list(reversed(self.vertices)))
        return self

    def contains_point(self, p: Point2D) -> bool:
        """Ray-casting point-in-polygon test. Points on the boundary are unspecified."""
        inside = False
        n = len(self.vertices)
        j = n - 1
        for i in range(n):
            vi, vj = self.vertices[i], self.vertices[j]
            if (vi.y > p.y) != (vj.y > p.y):
                x_cross = (vj.x - vi.x) * (p.y - vi.y) / (vj.y - vi.y) + vi.x
                if p.x < x_cross:
                    inside = not inside
            j = i
        return inside

    def translated(self, dx: float, dy: float) -> Polygon2D:
        return Polygon2D(vertices=[translate_point(v, dx, dy) for v in self.vertices])


# ── Rectangles ────────────────────────────────────────────────────────


class Rect(BaseModel):
    """Axis-aligned rectangle anchored at its lower-left corner."""

    x: float
    y: float
    width: float = Field(ge=0, description="Extent along x (meters)")
    depth: float = Field(ge=0, description="Extent along y (meters)")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.depth

    @property
    def area(self) -> float:
        return self.width * self.depth

    @property
    def center(self) -> Point2D:
        return Point2D(x=self.x + self.width / 2, y=self.y + self.depth / 2)

    def intersection(self, other: Rect) -> Rect | None:
        """Overlapping rectangle, or None when the rectangles only touch or are apart."""
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.right, other.right)
        y1 = min(self.top, other.top)
        if x1 - x0 <= EPSILON or y1 - y0 <= EPSILON:
            return None
        return Rect(x=x0, y=y0, width=x1 - x0, depth=y1 - y0)

    def intersection_area(self, other: Rect) -> float:
        overlap = self.intersection(other)
        return overlap.area if overlap is not None else 0.0

    def overlaps(self, other: Rect, tolerance: float = EPSILON) -> bool:
        return self.intersection_area(other) > tolerance

    def contains_point(self, p: Point2D) -> bool:
        return self.x <= p.x <= self.right and self.y <= p.y <= self.top

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(x=self.x + dx, y=self.y + dy, width=self.width, depth=self.depth)

    def corners(self) -> list[Point2D]:
        """Counter-clockwise corners starting at the lower-left."""
        return [
            Point2D(x=self.x, y=self.y),
            Point2D(x=self.right, y=self.y),
            Point2D(x=self.right, y=self.top),
            Point2D(x=self.x, y=self.top),
        ]

    def to_polygon(self) -> Polygon2D:
        return Polygon2D(vertices=self.corners())


def rect_union_outline(rects: list[Rect]) -> list[Point2D]:
    """Counter-clockwise outline of the union of axis-aligned rectangles.

    The union is cut into a grid on every rectangle edge; boundary edges of
    the filled cells are chained into loops and the largest loop is returned
    with collinear vertices removed. Rectangles that only touch are merged.

        ┌────┐                ┌────┐
        │ A  │                │    │
        │    ├───┐    ──►     │    └───┐
        │    │ B │            │        │
        └────┴───┘            └────────┘
    """
    rects = [r for r in rects if r.width > EPSILON and r.depth > EPSILON]
    if not rects:
        return []

    xs = _unique_sorted([v for r in rects for v in (r.x, r.right)])
    ys = _unique_sorted([v for r in rects for v in (r.y, r.top)])

    filled: set[tuple[int, int]] = set()
    for i in range(len(xs) - 1):
        cx = (xs[i] + xs[i + 1]) / 2
        for j in range(len(ys) - 1):
            cy = (ys[j] + ys[j + 1]) / 2
            if any(r.x < cx < r.right and r.y < cy < r.top for r in rects):
                filled.add((i, j))

    # Directed boundary edges keep the filled region on their left.
    edges: dict[tuple[int, int], list[tuple[int, int]]] = {}

    def add_edge(a: tuple[int, int], b: tuple[int, int]) -> None:
        edges.setdefault(a, []).append(b)

    for i, j in sorted(filled):
        if (i, j - 1) not in filled:
            add_edge((i, j), (i + 1, j))
        if (i + 1, j) not in filled:
            add_edge((i + 1, j), (i + 1, j + 1))
        if (i, j + 1) not in filled:
            add_edge((i + 1, j + 1), (i, j + 1))
        if (i - 1, j) not in filled:
            add_edge((i, j + 1), (i, j))

    loops: list[list[tuple[int, int]]] = []
    while edges:
        start = min(edges)
        loop = [start]
        current = start
        while True:
            targets = edges.get(current)
            if not targets:
                break
            nxt = targets.pop(0)
            if not targets:
                del edges[current]
            if nxt == start:
                break
            loop.append(nxt)
            current = nxt
        loops.append(loop)

    def loop_points(loop: list[tuple[int, int]]) -> list[Point2D]:
        return [Point2D(x=xs[i], y=ys[j]) for i, j in loop]

    best = max((loop_points(loop) for loop in loops), key=lambda pts: abs(signed_area(pts)))
    return remove_collinear(best)


def remove_collinear(points: list[Point2D]) -> list[Point2D]:
    """Drop vertices that sit on the straight line between their neighbours."""
    result = list(points)
    changed = True
    while changed and len(result) > 3:
        changed = False
        for k in range(len(result)):
            a = result[k - 1]
            b = result[k]
            c = result[(k + 1) % len(result)]
            cross = (b.x - a.x) * (c.y - b.y) - (b.y - a.y) * (c.x - b.x)
            if abs(cross) < EPSILON or b == a:
                del result[k]
                changed = True
                break
    return result


def triangulate(vertices: list[Point2D]) -> list[tuple[int, int, int]]:
    """Ear-clipping triangulation of a simple polygon.

    Works for concave outlines (L-shaped units) where fan triangulation
    produces triangles outside the polygon. Returns index triples into
    `vertices`, each wound counter-clockwise.
    """
    n = len(vertices)
    if n < 3:
        return []
    order = list(range(n))
    if signed_area(vertices) < 0:
        order.reverse()

    def cross(o: Point2D, a: Point2D, b: Point2D) -> float:
        return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)

    def inside_triangle(p: Point2D, a: Point2D, b: Point2D, c: Point2D) -> bool:
        return (
            cross(a, b, p) >= -EPSILON
            and cross(b, c, p) >= -EPSILON
            and cross(c, a, p) >= -EPSILON
        )

    triangles: list[tuple[int, int, int]] = []
    guard = 0
    while len(order) > 3 and guard < n * n:
        guard += 1
        clipped = False
        m = len(order)
        for k in range(m):
            i_prev, i_cur, i_next = order[k - 1], order[k], order[(k + 1) % m]
            a, b, c = vertices[i_prev], vertices[i_cur], vertices[i_next]
            if cross(a, b, c) <= EPSILON:
                continue
            if any(
                inside_triangle(vertices[o], a, b, c)
                for o in order
                if o not in (i_prev, i_cur, i_next) and vertices[o] not in (a, b, c)
            ):
                continue
            triangles.append((i_prev, i_cur, i_next))
            del order[k]
            clipped = True
            break
        if not clipped:
            # Degenerate remainder (collinear run); drop a flat vertex.
            del order[0]
    if len(order) == 3:
        a, b, c = (vertices[i] for i in order)
        if abs(cross(a, b, c)) > EPSILON:
            triangles.append((order[0], order[1], order[2]))
    return triangles


def _unique_sorted(values: list[float], tol: float = 1e-7) -> list[float]:
    result: list[float] = []
    for v in sorted(values):
        if not result or v - result[-1] > tol:
            result.append(v)
    return result
