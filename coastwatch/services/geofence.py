"""
geofence.py — Axis-aligned bounding-box check for report coordinates.

Inputs are raw degrees. There is no normalisation and no antimeridian
wraparound: anything outside the box, including values beyond ±180 / ±90,
is simply outside.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real

from coastwatch.core.config import Settings, settings
from coastwatch.core.errors import InvalidInput


@dataclass(frozen=True)
class BoundingBox:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> BoundingBox:
        return cls(
            min_lon=cfg.region_min_lon,
            min_lat=cfg.region_min_lat,
            max_lon=cfg.region_max_lon,
            max_lat=cfg.region_max_lat,
        )


def validate_coordinate(value: object, name: str) -> float:
    """Return *value* as a float or raise InvalidInput."""
    # bool is a Real subclass; True/False are never valid degrees
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInput(f"{name} must be a number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidInput(f"{name} must be finite, got {number}")
    return number


def is_within_region(longitude: float, latitude: float, region: BoundingBox) -> bool:
    """True when (longitude, latitude) lies inside *region*, bounds inclusive."""
    lon = validate_coordinate(longitude, "longitude")
    lat = validate_coordinate(latitude, "latitude")
    return (
        region.min_lon <= lon <= region.max_lon
        and region.min_lat <= lat <= region.max_lat
    )
