"""Percent-space field boxes and the conversions around them.

Every box uses a top-left origin with y growing downward. Field geometry is
stored in percent of the page (0-100); the preview works in raster pixels and
the export in PDF points. The two pixel/point spaces only meet through the
percent coordinates, which keeps the preview and the export proportional at
any zoom.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from pdffields.config import (
    FIELD_OVERLAP_THRESHOLD,
    FIELD_PADDING_PCT,
    MIN_FIELD_PADDING,
    MIN_HEIGHT_PCT,
    MIN_WIDTH_PCT,
    PAGE_MARGIN_PCT,
)


@dataclass(slots=True, frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float
    page: int | None = None
    key: str | None = None

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)


@dataclass(slots=True, frozen=True)
class Bounds:
    width: float
    height: float


PERCENT_BOUNDS = Bounds(100.0, 100.0)


@dataclass(slots=True, frozen=True)
class PageGeometry:
    page_number: int
    width_px: float
    height_px: float
    width_pt: float
    height_pt: float

    @property
    def zoom(self) -> float:
        if self.width_pt <= 0:
            return 1.0
        return self.width_px / self.width_pt


def _finite(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def clamp_box(
    box: Box,
    bounds: Bounds = PERCENT_BOUNDS,
    min_width: float = MIN_WIDTH_PCT,
    min_height: float = MIN_HEIGHT_PCT,
) -> Box:
    width = min(max(_finite(box.width), min_width), bounds.width)
    height = min(max(_finite(box.height), min_height), bounds.height)
    x = min(max(_finite(box.x), 0.0), bounds.width - width)
    y = min(max(_finite(box.y), 0.0), bounds.height - height)
    return Box(x, y, width, height, box.page, box.key)


def _scale(box: Box, sx: float, sy: float) -> Box:
    return Box(box.x * sx, box.y * sy, box.width * sx, box.height * sy, box.page, box.key)


def to_pixel_box(box: Box, geometry: PageGeometry) -> Box:
    return _scale(box, geometry.width_px / 100.0, geometry.height_px / 100.0)


def to_point_box(box: Box, geometry: PageGeometry) -> Box:
    return _scale(box, geometry.width_pt / 100.0, geometry.height_pt / 100.0)


def to_percent_box(box: Box, geometry: PageGeometry) -> Box:
    sx = 100.0 / geometry.width_px if geometry.width_px > 0 else 0.0
    sy = 100.0 / geometry.height_px if geometry.height_px > 0 else 0.0
    return _scale(box, sx, sy)


def intersects(a: Box, b: Box, threshold: float = FIELD_OVERLAP_THRESHOLD) -> bool:
    """Return True when the boxes overlap by more than ``threshold``.

    Boxes tagged with different pages never intersect, and a box never
    intersects itself or another box carrying the same key. Edges that
    merely touch are not an overlap.
    """
    if a is b:
        return False
    if a.page is not None and b.page is not None and a.page != b.page:
        return False
    if a.key is not None and a.key == b.key:
        return False
    return not (
        a.right <= b.x + threshold
        or b.right <= a.x + threshold
        or a.bottom <= b.y + threshold
        or b.bottom <= a.y + threshold
    )


def margin_rect(
    page_width: float,
    page_height: float,
    margin_pct: float = PAGE_MARGIN_PCT,
) -> Box:
    margin_x = (margin_pct / 100.0) * page_width
    margin_y = (margin_pct / 100.0) * page_height
    return Box(
        margin_x,
        margin_y,
        max(0.0, page_width - 2.0 * margin_x),
        max(0.0, page_height - 2.0 * margin_y),
    )


def clamp_to_margins(
    box: Box,
    page_width: float,
    page_height: float,
    margin_pct: float = PAGE_MARGIN_PCT,
    unit: float = 1.0,
) -> Box:
    # The near edge stays at least one unit inside the far margin; the far edge
    # is cut at the margin, so the result can be narrower than the input.
    # ``unit`` is one point expressed in the box's space (the zoom for pixels).
    content = margin_rect(page_width, page_height, margin_pct)
    left = max(content.x, min(box.x, content.right - unit))
    right = min(content.right, left + box.width)
    top = max(content.y, min(box.y, content.bottom - unit))
    bottom = min(content.bottom, top + box.height)
    return Box(left, top, max(0.0, right - left), max(0.0, bottom - top), box.page, box.key)


def field_padding(
    page_width: float,
    page_height: float,
    unit: float = 1.0,
) -> tuple[float, float]:
    floor = MIN_FIELD_PADDING * unit
    pad_x = max(floor, (FIELD_PADDING_PCT / 100.0) * page_width)
    pad_y = max(floor, (FIELD_PADDING_PCT / 100.0) * page_height)
    return pad_x, pad_y
