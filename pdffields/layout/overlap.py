"""Overlap detection between fields and against existing page text."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Iterable, Mapping

from pdffields.config import (
    AVERAGE_CHAR_WIDTH_RATIO,
    FIELD_OVERLAP_THRESHOLD,
    TEXT_OVERLAP_THRESHOLD_PX,
)
from pdffields.model.field import Field, FieldKind, FieldValue, format_field_value, is_filled
from pdffields.model.geometry import Box, PageGeometry, field_padding, intersects, to_pixel_box, to_point_box
from pdffields.layout.textfit import (
    DEFAULT_MEASURER,
    DEFAULT_TYPOGRAPHY,
    TextMeasurer,
    Typography,
    max_lines,
    plan_box_text,
)


@dataclass(slots=True, frozen=True)
class TextRun:
    left: float
    right: float
    top: float
    bottom: float

    @property
    def box(self) -> Box:
        return Box(self.left, self.top, self.right - self.left, self.bottom - self.top)


def _group_by_page(fields: Iterable[Field]) -> dict[int, list[Field]]:
    grouped: dict[int, list[Field]] = defaultdict(list)
    for item in fields:
        grouped[item.page_number].append(item)
    return grouped


def find_field_overlaps(
    fields: Iterable[Field],
    resolved_pages: Iterable[int] | None = None,
    threshold: float = FIELD_OVERLAP_THRESHOLD,
) -> set[str]:
    allowed = set(resolved_pages) if resolved_pages is not None else None
    overlapping: set[str] = set()
    for page_number, page_fields in _group_by_page(fields).items():
        if allowed is not None and page_number not in allowed:
            continue
        for first, second in combinations(page_fields, 2):
            if intersects(first.box, second.box, threshold):
                overlapping.add(first.id)
                overlapping.add(second.id)
    return overlapping


def find_text_overlaps(
    text_runs_by_page: Mapping[int, Iterable[TextRun]],
    fields: Iterable[Field],
    geometry_by_page: Mapping[int, PageGeometry],
    threshold: float = TEXT_OVERLAP_THRESHOLD_PX,
) -> set[str]:
    overlapping: set[str] = set()
    for page_number, page_fields in _group_by_page(fields).items():
        geometry = geometry_by_page.get(page_number)
        runs = text_runs_by_page.get(page_number)
        if geometry is None or not runs:
            continue
        run_boxes = [run.box for run in runs]
        for item in page_fields:
            pixel_box = to_pixel_box(item.box, geometry)
            if any(intersects(pixel_box, run_box, threshold) for run_box in run_boxes):
                overlapping.add(item.id)
    return overlapping


def find_text_overflow(
    fields: Iterable[Field],
    geometry_by_page: Mapping[int, PageGeometry],
    typography: Typography = DEFAULT_TYPOGRAPHY,
    char_width_ratio: float = AVERAGE_CHAR_WIDTH_RATIO,
) -> set[str]:
    """Cheap badge heuristic: does the label roughly exceed the box?

    Uses an average character width instead of real glyph metrics and can
    disagree with ``validate_text_fits``, which stays authoritative for edits.
    """
    flagged: set[str] = set()
    for item in fields:
        geometry = geometry_by_page.get(item.page_number)
        if geometry is None or not item.label:
            continue
        scaled = typography.with_size(typography.font_size * geometry.zoom)
        char_width = scaled.font_size * char_width_ratio
        pixel_box = to_pixel_box(item.box, geometry)
        pad_x, pad_y = field_padding(geometry.width_px, geometry.height_px, geometry.zoom)
        inner_width = max(0.0, pixel_box.width - 2.0 * pad_x)
        capacity = max_lines(pixel_box.height - 2.0 * pad_y, scaled)
        if len(item.label) * char_width > inner_width * capacity:
            flagged.add(item.id)
    return flagged


@dataclass(slots=True)
class OverlapWarnings:
    overlapping_field_labels: list[str] = field(default_factory=list)
    unfilled_field_labels: list[str] = field(default_factory=list)
    text_overlap_field_labels: list[str] = field(default_factory=list)
    truncated_field_labels: list[str] = field(default_factory=list)
    omitted_field_labels: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return any(
            (
                self.overlapping_field_labels,
                self.unfilled_field_labels,
                self.text_overlap_field_labels,
                self.truncated_field_labels,
                self.omitted_field_labels,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "overlappingFieldLabels": list(self.overlapping_field_labels),
            "unfilledFieldLabels": list(self.unfilled_field_labels),
            "textOverlapFieldLabels": list(self.text_overlap_field_labels),
            "truncatedFieldLabels": list(self.truncated_field_labels),
            "omittedFieldLabels": list(self.omitted_field_labels),
        }


def recompute_warnings(
    fields: list[Field],
    values: Mapping[str, FieldValue],
    text_runs_by_page: Mapping[int, Iterable[TextRun]] | None = None,
    geometry_by_page: Mapping[int, PageGeometry] | None = None,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
) -> OverlapWarnings:
    """Collect the pre-export warnings for a document.

    When ``geometry_by_page`` is given, only fields on resolved pages take
    part in the geometric checks. Truncation and clamping loss are predicted
    with the export layout in point space.
    """
    resolved = set(geometry_by_page) if geometry_by_page is not None else None
    overlapping = find_field_overlaps(fields, resolved)
    text_overlaps: set[str] = set()
    if text_runs_by_page and geometry_by_page:
        text_overlaps = find_text_overlaps(text_runs_by_page, fields, geometry_by_page)

    truncated: set[str] = set()
    omitted: set[str] = set()
    for item in fields:
        geometry = (geometry_by_page or {}).get(item.page_number)
        if geometry is None or item.kind is FieldKind.CHECKBOX:
            continue
        text = format_field_value(values.get(item.id), item.kind)
        if not text:
            continue
        plan = plan_box_text(
            to_point_box(item.box, geometry),
            geometry.width_pt,
            geometry.height_pt,
            text,
            typography,
            measurer,
        )
        if plan.omitted:
            omitted.add(item.id)
        elif plan.truncated:
            truncated.add(item.id)

    ordered = sorted(fields, key=lambda item: item.order_index)
    return OverlapWarnings(
        overlapping_field_labels=[f.label for f in ordered if f.id in overlapping],
        unfilled_field_labels=[f.label for f in ordered if not is_filled(values.get(f.id))],
        text_overlap_field_labels=[f.label for f in ordered if f.id in text_overlaps],
        truncated_field_labels=[f.label for f in ordered if f.id in truncated],
        omitted_field_labels=[f.label for f in ordered if f.id in omitted],
    )
