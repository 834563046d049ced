"""Tests for IFC, mesh and PNG export."""

import math
import tempfile
from pathlib import Path

import ifcopenshell
import numpy as np
import pytest

from floorplate.export.floorplan import render_floorplan
from floorplate.export.ifc import IFCExporter, export_ifc
from floorplate.export.mesh import (
    FALLBACK_RGBA,
    floorplan_to_meshes,
    floorplan_to_polygons,
    parse_hex_color,
    to_world,
)
from floorplate.generators import generate
from floorplate.models.config import BuildingFootprint
from floorplate.models.floorplan import Transform
from floorplate.models.geometry import Point2D, signed_area
from floorplate.models.ifc_id import is_valid_ifc_id, stable_ifc_id


def _plan(rotation: float = 0.0):
    """Generate a default 60 x 20 m floor, optionally rotated."""
    footprint = BuildingFootprint(width=60.0, depth=20.0, center_x=100.0, center_y=50.0, rotation=rotation)
    return generate(footprint, alignment_tolerance=1.0)


def _triangle_areas(positions: np.ndarray) -> np.ndarray:
    tri = positions.reshape(-1, 3, 3).astype(float)
    a, b, c = tri[:, 0, :2], tri[:, 1, :2], tri[:, 2, :2]
    return ((b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])) / 2


class TestIFCExport:
    def test_export_creates_file(self):
        """Export produces a valid IFC file."""
        plan = _plan()
        with tempfile.NamedTemporaryFile(suffix=".ifc", delete=False) as f:
            path = Path(f.name)

        result = IFCExporter(plan).export(path)

        assert result.exists()
        assert result.stat().st_size > 0
        ifc = ifcopenshell.open(str(path))
        assert ifc.schema == "IFC2X3"
        path.unlink()

    def test_one_space_per_element(self):
        plan = _plan()
        with tempfile.NamedTemporaryFile(suffix=".ifc", delete=False) as f:
            path = Path(f.name)

        export_ifc(plan, path)
        ifc = ifcopenshell.open(str(path))

        expected = len(plan.units) + len(plan.cores) + len(plan.fillers)
        expected += 1 if plan.corridor.width > 0 else 0
        spaces = ifc.by_type("IfcSpace")
        assert len(spaces) == expected

        names = {s.Name for s in spaces}
        for unit in plan.units:
            assert f"{unit.type_name} {unit.id}" in names
        path.unlink()

    def test_project_hierarchy(self):
        """IFC file has Project → Site → Building → Storey."""
        plan = _plan()
        with tempfile.NamedTemporaryFile(suffix=".ifc", delete=False) as f:
            path = Path(f.name)

        export_ifc(plan, path, name="Test Floor")
        ifc = ifcopenshell.open(str(path))

        assert len(ifc.by_type("IfcProject")) == 1
        assert len(ifc.by_type("IfcSite")) == 1
        assert len(ifc.by_type("IfcBuilding")) == 1
        assert len(ifc.by_type("IfcBuildingStorey")) == 1
        assert ifc.by_type("IfcProject")[0].Name == "Test Floor"
        path.unlink()

    def test_header_file_name(self):
        exporter = IFCExporter(_plan(), name="Test Floor")
        assert exporter.file.header.file_name.name == "Test Floor.ifc"
        assert tuple(exporter.file.header.file_name.author) == ("Floorplate",)

        with tempfile.NamedTemporaryFile(suffix=".ifc", delete=False) as f:
            path = Path(f.name)
        exporter.export(path)
        assert "Test Floor.ifc" in path.read_text()
        path.unlink()

    def test_global_ids_stable(self):
        """Exporting the same plan twice yields the same GlobalIds."""
        plan = _plan()
        ids = []
        for _ in range(2):
            with tempfile.NamedTemporaryFile(suffix=".ifc", delete=False) as f:
                path = Path(f.name)
            export_ifc(plan, path)
            ifc = ifcopenshell.open(str(path))
            ids.append(sorted(e.GlobalId for e in ifc.by_type("IfcRoot")))
            path.unlink()
        assert ids[0] == ids[1]
        assert len(set(ids[0])) == len(ids[0])

    def test_unit_properties(self):
        plan = _plan()
        with tempfile.NamedTemporaryFile(suffix=".ifc", delete=False) as f:
            path = Path(f.name)

        export_ifc(plan, path)
        ifc = ifcopenshell.open(str(path))

        unit_types = set()
        for pset in ifc.by_type("IfcPropertySet"):
            for prop in pset.HasProperties:
                if prop.Name == "UnitType":
                    unit_types.add(prop.NominalValue.wrappedValue)
        assert unit_types == {u.type_id for u in plan.units}
        path.unlink()


class TestMesh:
    def test_layers(self):
        layers = floorplan_to_meshes(_plan())
        assert [layer.name for layer in layers] == ["corridor", "cores", "fillers", "units", "borders"]
        for layer in layers:
            assert layer.positions.dtype == np.float32
            assert layer.colors.dtype == np.uint8
            assert len(layer.positions) % 9 == 0
            assert len(layer.colors) // 4 == len(layer.positions) // 3
            assert layer.triangle_count == len(layer.positions) // 9

    def test_unit_area_preserved_under_rotation(self):
        plan = _plan(rotation=math.pi / 5)
        units = next(layer for layer in floorplan_to_meshes(plan) if layer.name == "units")
        areas = _triangle_areas(units.positions)
        assert np.all(areas > 0)
        assert areas.sum() == pytest.approx(plan.stats.nrsf, rel=1e-3)

    def test_layers_stacked(self):
        plan = _plan()
        zs = [
            float(layer.positions[2])
            for layer in floorplan_to_meshes(plan)
            if len(layer.positions)
        ]
        assert zs == sorted(zs)
        assert len(set(zs)) == len(zs)

    def test_parse_hex_color(self):
        assert parse_hex_color("#ff0000") == (255, 0, 0, 200)
        assert parse_hex_color("#00ff00", alpha=255) == (0, 255, 0, 255)
        assert parse_hex_color("red") == FALLBACK_RGBA
        assert parse_hex_color(None) == FALLBACK_RGBA

    def test_to_world(self):
        t = Transform(center_x=10.0, center_y=5.0, rotation=math.pi / 2)
        x, y = to_world(1.0, 0.0, t)
        assert x == pytest.approx(10.0)
        assert y == pytest.approx(6.0)


class TestPolygons:
    def test_records(self):
        plan = _plan(rotation=0.3)
        records = floorplan_to_polygons(plan)
        kinds = [r["kind"] for r in records]
        assert kinds.count("unit") == len(plan.units)
        assert kinds.count("core") == len(plan.cores)
        assert kinds.count("filler") == len(plan.fillers)

        for record in records:
            vertices = [Point2D(x=x, y=y) for x, y in record["vertices"]]
            assert signed_area(vertices) > 0
            assert record["height"] == plan.floor_height

    def test_world_center(self):
        plan = _plan()
        records = floorplan_to_polygons(plan)
        xs = [x for r in records for x, _ in r["vertices"]]
        ys = [y for r in records for _, y in r["vertices"]]
        assert (min(xs) + max(xs)) / 2 == pytest.approx(100.0)
        assert (min(ys) + max(ys)) / 2 == pytest.approx(50.0)

    def test_unit_record_fields(self):
        plan = _plan()
        unit = next(r for r in floorplan_to_polygons(plan) if r["kind"] == "unit")
        assert {"id", "type_id", "color", "area", "vertices", "elevation", "height"} <= set(unit)


class TestRender:
    def test_render_png(self, tmp_path):
        plan = _plan()
        out = render_floorplan(plan, tmp_path / "plan.png", title="Test")
        assert out.exists()
        assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_render_without_decorations(self, tmp_path):
        out = render_floorplan(
            _plan(), tmp_path / "bare.png",
            show_labels=False, show_title=False, show_info_box=False,
        )
        assert out.stat().st_size > 0


class TestStableIds:
    def test_deterministic_and_valid(self):
        a = stable_ifc_id("Floorplate", "balanced", "space", "unit-north-0")
        assert a == stable_ifc_id("Floorplate", "balanced", "space", "unit-north-0")
        assert is_valid_ifc_id(a)

    def test_parts_matter(self):
        assert stable_ifc_id("a", "unit-north-0") != stable_ifc_id("a", "unit-north-1")
        assert not is_valid_ifc_id("too-short")
