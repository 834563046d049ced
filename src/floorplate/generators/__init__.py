"""Floorplate generation.

Pure functions from a footprint and unit mix to a FloorPlan:
- Pipeline: core count, unit counts, cores, segments, units, alignment,
  wrapping, fillers, stats, egress
- Footprint extraction: mesh vertex buffer → oriented rectangle
"""

from floorplate.generators.footprint import FootprintExtractionError, extract_footprint
from floorplate.generators.pipeline import (
    LayoutInputError,
    generate,
    generate_from_request,
    generate_variants,
    variants_from_request,
)

__all__ = [
    "FootprintExtractionError",
    "extract_footprint",
    "LayoutInputError",
    "generate",
    "generate_from_request",
    "generate_variants",
    "variants_from_request",
]
