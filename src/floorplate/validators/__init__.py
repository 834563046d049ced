"""Floorplan validation.

- layout: no-shrink, non-overlap, full coverage, count consistency
- egress: dead end, travel distance and common path along the corridor
"""
