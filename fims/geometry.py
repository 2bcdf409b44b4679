"""
Projection of farm boundary polygons onto a fixed page region.

Page coordinates use a top-left origin with y growing downward, so latitude
is inverted: north ends up at the top of the drawing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

MIN_DRAWABLE_POINTS = 3


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def lat_range(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def lng_range(self) -> float:
        return self.max_lng - self.min_lng

    @property
    def is_degenerate(self) -> bool:
        return self.lat_range == 0 and self.lng_range == 0


@dataclass(frozen=True)
class Region:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PagePoint:
    x: float
    y: float


@dataclass(frozen=True)
class Segment:
    start: PagePoint
    end: PagePoint


@dataclass(frozen=True)
class Projection:
    vertices: tuple[PagePoint, ...]
    segments: tuple[Segment, ...]
    scale: float
    offset_x: float
    offset_y: float


def bounding_box(points: Sequence[GeoPoint]) -> BoundingBox:
    if not points:
        raise ValueError("bounding box needs at least one point")
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return BoundingBox(min(lats), max(lats), min(lngs), max(lngs))


def fit_scale(bbox: BoundingBox, drawing_width: float, drawing_height: float) -> Optional[float]:
    """Uniform scale that fits the box into the drawing area; None if degenerate."""
    candidates = []
    if bbox.lng_range > 0:
        candidates.append(drawing_width / bbox.lng_range)
    if bbox.lat_range > 0:
        candidates.append(drawing_height / bbox.lat_range)
    if not candidates:
        return None
    return min(candidates)


def project_polygon(
    points: Sequence[GeoPoint],
    region: Region,
    margin: float,
) -> Optional[Projection]:
    """
    Map geographic points into `region` minus an inner `margin`, preserving
    aspect ratio and centering the shape. Returns None when there is nothing
    sensible to draw (fewer than 3 points, or all points identical).
    """
    if len(points) < MIN_DRAWABLE_POINTS:
        return None

    bbox = bounding_box(points)
    drawing_width = region.width - margin * 2
    drawing_height = region.height - margin * 2

    scale = fit_scale(bbox, drawing_width, drawing_height)
    if scale is None:
        return None

    occupied_width = bbox.lng_range * scale
    occupied_height = bbox.lat_range * scale
    offset_x = (drawing_width - occupied_width) / 2
    offset_y = (drawing_height - occupied_height) / 2

    origin_x = region.x + margin + offset_x
    origin_y = region.y + margin + offset_y
    vertices = tuple(
        PagePoint(
            x=(p.lng - bbox.min_lng) * scale + origin_x,
            y=(bbox.max_lat - p.lat) * scale + origin_y,
        )
        for p in points
    )

    n = len(vertices)
    segments = tuple(Segment(vertices[i], vertices[(i + 1) % n]) for i in range(n))
    return Projection(vertices, segments, scale, offset_x, offset_y)
