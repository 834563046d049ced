"""Floorplate CLI.

Usage:
    python -m floorplate <command> <file> [options]

Commands take a request file (footprint + unit mix + egress + settings, see
`defaults`) or a saved layout written by `variants --output`. All output is
JSON on stdout.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError as ModelValidationError

from floorplate import __version__
from floorplate.generators.footprint import extract_footprint
from floorplate.generators.pipeline import (
    LayoutInputError,
    generate_from_request,
    variants_from_request,
)
from floorplate.models.config import BuildingFootprint, LayoutRequest, Strategy
from floorplate.models.floorplan import FloorPlan, SavedLayout
from floorplate.validators.egress import validate_egress
from floorplate.validators.layout import validate_floorplan

app = typer.Typer(
    name="floorplate",
    help="Floorplate — apartment floor layouts with fire-egress checks.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline steps to stderr"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str) -> None:
    _output({"ok": False, "error": message})
    raise typer.Exit(1)


def _load_request(path: str) -> LayoutRequest:
    """Load a request file, failing with a JSON error on bad input."""
    p = Path(path)
    if not p.exists():
        _fail(f"Request not found: {p}")
    try:
        return LayoutRequest.load(p)
    except ModelValidationError as e:
        _fail(f"Invalid request: {e}")


def _load_layout(path: str) -> SavedLayout:
    p = Path(path)
    if not p.exists():
        _fail(f"Layout not found: {p}")
    try:
        return SavedLayout.load(p)
    except ModelValidationError as e:
        _fail(f"Invalid layout: {e}")


def _pick_option(layout: SavedLayout, option: int) -> FloorPlan:
    try:
        return layout.option(option).floorplan
    except IndexError as e:
        _fail(str(e))


def _summary(plan: FloorPlan) -> dict:
    """Compact JSON view of a plan: stats, egress and element counts."""
    egress = plan.egress
    return {
        "strategy": plan.strategy.value,
        "units": plan.stats.total_units,
        "unit_counts": plan.stats.unit_counts,
        "cores": len(plan.cores),
        "fillers": len(plan.fillers),
        "l_shaped_units": sum(1 for u in plan.units if u.is_l_shaped),
        "aligned_walls": plan.aligned_walls,
        "gsf_m2": round(plan.stats.gsf, 1),
        "nrsf_m2": round(plan.stats.nrsf, 1),
        "efficiency": round(plan.stats.efficiency, 4),
        "egress": {
            "dead_end_m": round(egress.max_dead_end, 2),
            "travel_distance_m": round(egress.max_travel_distance, 2),
            "common_path_m": round(egress.max_common_path, 2),
            "dead_end": egress.dead_end_status.value,
            "travel_distance": egress.travel_distance_status.value,
            "common_path": egress.common_path_status.value,
        },
    }


def _validation_json(errors: list) -> dict:
    return {
        "errors": sum(1 for e in errors if e.severity == "error"),
        "warnings": sum(1 for e in errors if e.severity == "warning"),
        "details": [
            {
                "severity": e.severity,
                "element_type": e.element_type,
                "element_id": e.element_id,
                "message": e.message,
            }
            for e in errors
        ],
    }


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@app.command()
def generate(
    request: str = typer.Argument(..., help="Request JSON file"),
    strategy: Strategy = typer.Option(Strategy.BALANCED, "--strategy", "-s", help="Optimization strategy"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the floor plan JSON here"),
):
    """Generate one floor plan."""
    req = _load_request(request)
    try:
        plan = generate_from_request(req, strategy)
    except LayoutInputError as e:
        _fail(str(e))

    result = {"ok": True, "plan": _summary(plan)}
    if output:
        plan.save(Path(output))
        result["saved"] = output
    _output(result)


@app.command()
def variants(
    request: str = typer.Argument(..., help="Request JSON file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the saved layout JSON here"),
):
    """Generate the balanced, mix-optimized and efficiency-optimized options."""
    req = _load_request(request)
    try:
        options = variants_from_request(req)
    except LayoutInputError as e:
        _fail(str(e))

    result = {
        "ok": True,
        "options": [
            {"id": o.id, "label": o.label, "description": o.description, **_summary(o.floorplan)}
            for o in options
        ],
    }
    if output:
        SavedLayout(request=req, options=options).save(Path(output))
        result["saved"] = output
    _output(result)


# ---------------------------------------------------------------------------
# Saved layouts
# ---------------------------------------------------------------------------

@app.command()
def validate(
    layout: str = typer.Argument(..., help="Saved layout JSON file"),
):
    """Run layout and egress validators on every option of a saved layout."""
    saved = _load_layout(layout)
    results = []
    for option in saved.options:
        errors = validate_floorplan(option.floorplan, saved.request.unit_mix)
        errors.extend(validate_egress(option.floorplan, saved.request.egress))
        results.append({"id": option.id, "validation": _validation_json(errors)})
    _output({"ok": True, "options": results})


@app.command()
def render(
    layout: str = typer.Argument(..., help="Saved layout JSON file"),
    option: int = typer.Option(1, "--option", "-n", help="Option number (1-based)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output PNG path"),
):
    """Render one option to PNG."""
    from floorplate.export.floorplan import render_floorplan

    saved = _load_layout(layout)
    plan = _pick_option(saved, option)
    out = Path(output) if output else Path(layout).with_name(f"{Path(layout).stem}_option_{option}.png")
    label = saved.option(option).label
    render_floorplan(plan, out, title=f"Option {option}: {label}")
    _output({"ok": True, "rendered": str(out), "option": option})


@app.command("export")
def export_cmd(
    layout: str = typer.Argument(..., help="Saved layout JSON file"),
    output: str = typer.Option(..., "--output", "-o", help="Output file"),
    option: int = typer.Option(1, "--option", "-n", help="Option number (1-based)"),
    format: str = typer.Option("ifc", "--format", "-f", help="Export format (ifc, mesh)"),
):
    """Export one option to IFC or to world-space polygon JSON."""
    saved = _load_layout(layout)
    plan = _pick_option(saved, option)
    out = Path(output)

    if format == "ifc":
        from floorplate.export.ifc import export_ifc

        export_ifc(plan, out)
        _output({"ok": True, "exported": str(out), "format": "ifc"})
    elif format == "mesh":
        from floorplate.export.mesh import floorplan_to_meshes, floorplan_to_polygons

        layers = floorplan_to_meshes(plan)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps({
            "polygons": floorplan_to_polygons(plan),
            "layers": [
                {
                    "name": layer.name,
                    "positions": layer.positions.tolist(),
                    "colors": layer.colors.tolist(),
                }
                for layer in layers
            ],
        }))
        _output({
            "ok": True,
            "exported": str(out),
            "format": "mesh",
            "triangles": {layer.name: layer.triangle_count for layer in layers},
        })
    else:
        _fail(f"Unknown format: {format}. Use: ifc, mesh")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@app.command()
def footprint(
    points: str = typer.Argument(..., help="JSON file with a flat [x, y, z, ...] list"),
):
    """Fit a footprint to a building mesh vertex buffer."""
    p = Path(points)
    if not p.exists():
        _fail(f"Points file not found: {p}")
    try:
        data = json.loads(p.read_text())
        fp = extract_footprint(data)
    except ValueError as e:
        _fail(str(e))
    _output({"ok": True, "footprint": fp.model_dump()})


@app.command()
def defaults(
    width: float = typer.Option(60.0, "--width", help="Building length along the corridor (m)"),
    depth: float = typer.Option(20.0, "--depth", help="Building depth (m)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the request JSON here"),
):
    """Print a starter request: default unit mix, sprinklered egress, default settings."""
    try:
        req = LayoutRequest(footprint=BuildingFootprint(width=width, depth=depth))
    except ModelValidationError as e:
        _fail(f"Invalid footprint: {e}")
    if output:
        req.save(Path(output))
    _output({"ok": True, "request": req.model_dump(mode="json")})


@app.command()
def version() -> None:
    """Show version."""
    typer.echo(f"floorplate v{__version__}")


if __name__ == "__main__":
    app()
