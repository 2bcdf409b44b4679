# fims/polygon.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from fims.geometry import GeoPoint
from fims.utils import flatten_coords, is_valid_number

logger = logging.getLogger(__name__)

_POINT_KEYS = (("lat", "lng"), ("lat", "lon"), ("latitude", "longitude"))


@dataclass(frozen=True)
class Recognized:
    points: tuple[GeoPoint, ...]


@dataclass(frozen=True)
class Unrecognized:
    reason: str


PolygonParse = Union[Recognized, Unrecognized]


def _number(v: Any) -> Optional[float]:
    if isinstance(v, str):
        try:
            v = float(v.strip())
        except ValueError:
            return None
    return float(v) if is_valid_number(v) else None


def _point_from_mapping(obj: dict) -> Optional[GeoPoint]:
    for lat_key, lng_key in _POINT_KEYS:
        if lat_key in obj and lng_key in obj:
            lat, lng = _number(obj[lat_key]), _number(obj[lng_key])
            if lat is None or lng is None:
                return None
            return GeoPoint(lat, lng)
    return None


def _numeric_leaves_only(coords: Any) -> bool:
    if isinstance(coords, (list, tuple)):
        return len(coords) > 0 and all(_numeric_leaves_only(c) for c in coords)
    return is_valid_number(coords)


def _outer_ring(coords: list) -> list:
    # Polygon -> first ring, MultiPolygon -> first polygon's first ring
    while (
        isinstance(coords, list)
        and coords
        and isinstance(coords[0], list)
        and coords[0]
        and isinstance(coords[0][0], list)
        and coords[0][0]
        and isinstance(coords[0][0][0], list)
    ):
        coords = coords[0]
    if coords and isinstance(coords[0], list) and coords[0] and isinstance(coords[0][0], list):
        return coords[0]
    return coords


def _drop_closing_vertex(points: list[GeoPoint]) -> list[GeoPoint]:
    if len(points) > 3 and points[0] == points[-1]:
        return points[:-1]
    return points


def _from_sequence(seq: list) -> PolygonParse:
    if not seq:
        return Unrecognized("no points")

    if all(isinstance(item, dict) for item in seq):
        points = [_point_from_mapping(item) for item in seq]
        if any(p is None for p in points):
            return Unrecognized("point objects without usable lat/lng keys")
        return Recognized(tuple(_drop_closing_vertex(points)))

    if all(is_valid_number(item) for item in seq):
        # flat [lat, lng, lat, lng, ...]
        if len(seq) % 2:
            return Unrecognized("flat coordinate array with odd length")
        points = [GeoPoint(float(seq[i]), float(seq[i + 1])) for i in range(0, len(seq), 2)]
        return Recognized(tuple(_drop_closing_vertex(points)))

    if not _numeric_leaves_only(seq):
        return Unrecognized("mixed or non-numeric coordinate array")

    # GeoJSON-style nesting, [lng, lat] order
    ring = _outer_ring(seq)
    if not all(
        isinstance(p, (list, tuple)) and len(p) >= 2 and is_valid_number(p[0]) and is_valid_number(p[1])
        for p in ring
    ):
        return Unrecognized("nested coordinates are not [lng, lat] pairs")
    # drop altitude if present
    pairs = flatten_coords([list(p[:2]) for p in ring])
    if len(pairs) != len(ring):
        return Unrecognized("nested coordinates are not [lng, lat] pairs")
    points = [GeoPoint(float(lat), float(lng)) for lng, lat in pairs]
    return Recognized(tuple(_drop_closing_vertex(points)))


def _parse(raw: Any, *, decoded: bool = False) -> PolygonParse:
    if raw is None:
        return Unrecognized("missing")

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return Unrecognized("missing")
        if decoded or not text.startswith(("[", "{")):
            return Unrecognized("string is not a JSON array or object")
        try:
            return _parse(json.loads(text), decoded=True)
        except json.JSONDecodeError as e:
            return Unrecognized(f"invalid JSON: {e.msg}")

    if isinstance(raw, dict):
        if raw.get("type") == "Feature":
            return _parse(raw.get("geometry"), decoded=True)
        if "coordinates" in raw:
            coords = raw["coordinates"]
            if isinstance(coords, list):
                return _from_sequence(coords)
            return Unrecognized("geometry coordinates are not an array")
        point = _point_from_mapping(raw)
        if point is not None:
            return Recognized((point,))
        return Unrecognized("object is neither a geometry nor a point")

    if isinstance(raw, (list, tuple)):
        return _from_sequence(list(raw))

    return Unrecognized(f"unsupported type {type(raw).__name__}")


def normalize_polygon(raw: Any) -> PolygonParse:
    """Map any supported boundary shape to points; never raises."""
    result = _parse(raw)
    if isinstance(result, Unrecognized) and result.reason != "missing":
        logger.warning("Unrecognized farm polygon (%s); treating as absent", result.reason)
    return result


def polygon_for_farm(farm) -> PolygonParse:
    """Prefer `farm_coordinates`, fall back to `farm_polygon`."""
    result = normalize_polygon(farm.farm_coordinates)
    if isinstance(result, Recognized):
        return result
    fallback = normalize_polygon(farm.farm_polygon)
    if isinstance(fallback, Recognized) or result.reason == "missing":
        return fallback
    return result
