"""In-memory session state for a document instance being filled."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from pdffields.layout.overlap import OverlapWarnings, TextRun, find_text_overlaps, recompute_warnings
from pdffields.layout.textfit import (
    DEFAULT_MEASURER,
    DEFAULT_TYPOGRAPHY,
    BoxTextPlan,
    TextMeasurer,
    Typography,
    plan_box_text,
)
from pdffields.model.field import Field, FieldKind, FieldValue, format_field_value
from pdffields.model.geometry import PageGeometry, to_pixel_box

logger = logging.getLogger(__name__)


def plan_preview_text(
    item: Field,
    text: str,
    geometry: PageGeometry,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
) -> BoxTextPlan:
    """Lay out a field value in raster pixels, as the export would in points."""
    zoom = geometry.zoom
    return plan_box_text(
        to_pixel_box(item.box, geometry),
        geometry.width_px,
        geometry.height_px,
        text,
        typography.with_size(typography.font_size * zoom),
        measurer,
        unit=zoom,
    )


@dataclass(slots=True, frozen=True)
class EditResult:
    accepted: bool
    overflow: bool = False


@dataclass(slots=True)
class DocumentSession:
    fields: list[Field] = field(default_factory=list)
    values: dict[str, FieldValue] = field(default_factory=dict)
    overflow: set[str] = field(default_factory=set)
    editable: bool = True
    document_key: str | None = None
    unreadable: bool = False
    geometry_by_page: dict[int, PageGeometry] = field(default_factory=dict)
    text_runs_by_page: dict[int, list[TextRun]] = field(default_factory=dict)
    typography: Typography = DEFAULT_TYPOGRAPHY
    measurer: TextMeasurer = DEFAULT_MEASURER

    def reset(self, document_key: str | None) -> None:
        self.document_key = document_key
        self.unreadable = False
        self.values.clear()
        self.overflow.clear()
        self.geometry_by_page.clear()
        self.text_runs_by_page.clear()

    def get_field(self, field_id: str) -> Field | None:
        for item in self.fields:
            if item.id == field_id:
                return item
        return None

    def get_page_fields(self, page_number: int) -> list[Field]:
        return [item for item in self.fields if item.page_number == page_number]

    def set_fields(self, fields: list[Field]) -> None:
        self.fields = list(fields)
        known = {item.id for item in self.fields}
        self.overflow &= known

    def resolve_page(
        self,
        document_key: str,
        geometry: PageGeometry,
        runs: list[TextRun],
    ) -> bool:
        if document_key != self.document_key:
            logger.debug("Dropping stale page %d for %s", geometry.page_number, document_key)
            return False
        self.geometry_by_page[geometry.page_number] = geometry
        self.text_runs_by_page[geometry.page_number] = list(runs)
        return True

    def mark_unreadable(self, document_key: str) -> None:
        if document_key != self.document_key:
            return
        self.unreadable = True
        self.geometry_by_page.clear()
        self.text_runs_by_page.clear()

    def check_fits(self, item: Field, value: FieldValue) -> bool:
        if item.kind is FieldKind.CHECKBOX or isinstance(value, bool):
            return True
        text = format_field_value(value, item.kind)
        if not text.strip():
            return True
        geometry = self.geometry_by_page.get(item.page_number)
        if geometry is None:
            return True
        return plan_preview_text(item, text, geometry, self.typography, self.measurer).fits

    def propose_value(self, field_id: str, value: FieldValue) -> EditResult:
        """Validate an edit and store it only when the text fits the box.

        A rejected edit leaves the stored value untouched and raises the
        overflow flag; an accepted edit clears it. The flag never changes
        outside this path.
        """
        item = self.get_field(field_id)
        if item is None or not self.editable:
            return EditResult(accepted=False, overflow=field_id in self.overflow)

        if not self.check_fits(item, value):
            self.overflow.add(field_id)
            logger.debug("Rejected edit for %s: text overflows the field", field_id)
            return EditResult(accepted=False, overflow=True)

        self.values[field_id] = value
        self.overflow.discard(field_id)
        return EditResult(accepted=True)

    def insert_text(
        self,
        field_id: str,
        position: int,
        text: str,
        selection_end: int | None = None,
    ) -> EditResult:
        current = self.values.get(field_id)
        current_text = current if isinstance(current, str) else ""
        position = max(0, min(position, len(current_text)))
        end = position if selection_end is None else max(position, min(selection_end, len(current_text)))
        return self.propose_value(field_id, current_text[:position] + text + current_text[end:])

    def text_overlap_ids(self) -> frozenset[str]:
        """Fields sitting on existing page text; export leaves these out unless told otherwise."""
        return frozenset(find_text_overlaps(self.text_runs_by_page, self.fields, self.geometry_by_page))

    def warnings(self) -> OverlapWarnings:
        return recompute_warnings(
            self.fields,
            self.values,
            self.text_runs_by_page,
            self.geometry_by_page,
            self.typography,
            self.measurer,
        )
