"""
Error taxonomy for the geospatial matching layer.

Both errors subclass `ValueError` so callers that already guard input validation
with `except ValueError` keep working.
"""

from __future__ import annotations


class InvalidCoordinateError(ValueError):
    """Latitude/longitude missing, non-numeric, non-finite, or out of range."""


class MissingReferenceError(ValueError):
    """A distance-based operation was requested without a reference point."""
