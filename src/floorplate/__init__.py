"""Floorplate — double-loaded corridor apartment layouts with egress checks."""

__version__ = "0.1.0"
