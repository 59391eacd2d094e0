"""
Geospatial utility functions for map viewports.

Parses map viewport parameters into a latitude/longitude window and tests
event coordinates against it.

Window from center + zoom:
    lat_span = 360 / 2 ** (zoom + 1)
    lng_span = lat_span / cos(center_lat in radians)
    window   = center +/- span / 2

A center window reaching past +/-180 longitude wraps around the
antimeridian; such a window has min_lng > max_lng. A longitude span of 360
or more covers every longitude.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cheerboard.services.exceptions import ValidationError


MIN_ZOOM = 0
MAX_ZOOM = 22


@dataclass(frozen=True)
class GeoWindow:
    """Inclusive latitude/longitude box; min_lng > max_lng crosses the antimeridian."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_lng > self.max_lng

    def contains(self, lat: float, lng: float) -> bool:
        """Check if a point lies inside the window (edges included)."""
        if not self.min_lat <= lat <= self.max_lat:
            return False
        if self.crosses_antimeridian:
            return lng >= self.min_lng or lng <= self.max_lng
        return self.min_lng <= lng <= self.max_lng


def wrap_longitude(lng: float) -> float:
    """Normalize a longitude to [-180, 180)."""
    return (lng + 180) % 360 - 180


def _parse_floats(raw: str, count: int, field: str) -> Tuple[float, ...]:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != count:
        raise ValidationError(
            f"{field} must contain {count} comma-separated numbers", field=field
        )
    try:
        values = tuple(float(p) for p in parts)
    except ValueError:
        raise ValidationError(f"{field} contains a non-numeric value", field=field)
    if not all(math.isfinite(v) for v in values):
        raise ValidationError(f"{field} contains a non-finite value", field=field)
    return values


def window_from_bounds(bounds: str) -> GeoWindow:
    """
    Build a window from "lat1,lng1,lat2,lng2" (corners in any order).

    Raises:
        ValidationError: If the string is malformed
    """
    lat1, lng1, lat2, lng2 = _parse_floats(bounds, 4, "bounds")
    return GeoWindow(
        min_lat=min(lat1, lat2),
        max_lat=max(lat1, lat2),
        min_lng=min(lng1, lng2),
        max_lng=max(lng1, lng2),
    )


def window_from_center(center: str, zoom: Union[int, str]) -> GeoWindow:
    """
    Build a window around "lat,lng" for a zoom level.

    Each zoom step halves both spans. The longitude span widens with
    latitude to keep the window roughly square on the map.

    Raises:
        ValidationError: If center or zoom is malformed or out of range
    """
    lat, lng = _parse_floats(center, 2, "center")
    if not -90 < lat < 90:
        raise ValidationError("center latitude must be between -90 and 90 (exclusive)", field="center")

    try:
        zoom_level = int(zoom)
    except (TypeError, ValueError):
        raise ValidationError("zoom must be an integer", field="zoom")
    if not MIN_ZOOM <= zoom_level <= MAX_ZOOM:
        raise ValidationError(f"zoom must be between {MIN_ZOOM} and {MAX_ZOOM}", field="zoom")

    lat_span = 360 / 2 ** (zoom_level + 1)
    lng_span = lat_span / math.cos(math.radians(lat))
    min_lng, max_lng = lng - lng_span / 2, lng + lng_span / 2
    if lng_span >= 360:
        min_lng, max_lng = -180.0, 180.0
    elif min_lng < -180 or max_lng > 180:
        min_lng, max_lng = wrap_longitude(min_lng), wrap_longitude(max_lng)

    return GeoWindow(
        min_lat=lat - lat_span / 2,
        max_lat=lat + lat_span / 2,
        min_lng=min_lng,
        max_lng=max_lng,
    )


def parse_window(
    bounds: Optional[str] = None,
    center: Optional[str] = None,
    zoom: Optional[Union[int, str]] = None,
) -> Optional[GeoWindow]:
    """
    Resolve map parameters to a window.

    Args:
        bounds: "lat1,lng1,lat2,lng2"; takes precedence over center/zoom
        center: "lat,lng"; requires zoom
        zoom: Zoom level 0-22

    Returns:
        GeoWindow, or None when no viewport was given (whole map)

    Raises:
        ValidationError: On malformed or incomplete parameters
    """
    if bounds:
        return window_from_bounds(bounds)
    if center:
        if zoom is None:
            raise ValidationError("center requires zoom", field="zoom")
        return window_from_center(center, zoom)
    if zoom is not None:
        raise ValidationError("zoom requires center", field="center")
    return None
