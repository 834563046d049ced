"""IFC GlobalId generation and handling.

IFC uses 22-character compressed GUIDs (base64-ish encoding of 128-bit UUIDs).
Floorplan element ids are turned into GlobalIds by hashing them (UUID5), so
exporting the same layout twice yields the same GlobalIds. Traceability
across formats without storing ids in the layout itself.
"""

from __future__ import annotations

import uuid

import ifcopenshell.guid

FLOORPLATE_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "floorplate")


def stable_ifc_id(*parts: str) -> str:
    """Deterministic GlobalId derived from a path of name parts.

    >>> stable_ifc_id("plan", "unit-north-0") == stable_ifc_id("plan", "unit-north-0")
    True
    """
    key = "/".join(parts)
    return ifcopenshell.guid.compress(uuid.uuid5(FLOORPLATE_NAMESPACE, key).hex)


def is_valid_ifc_id(value: str) -> bool:
    """Check if a string is a valid 22-character IFC GlobalId."""
    return isinstance(value, str) and len(value) == 22
