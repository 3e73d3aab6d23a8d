"""Flatten filled field values into a static PDF using a reportlab overlay + pypdf."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from io import BytesIO
import logging
import re
from typing import Mapping

from pypdf import PdfReader, PdfWriter
from reportlab.lib import colors
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from pdffields.config import CHECKMARK_FONT, CHECKMARK_GLYPH
from pdffields.layout.textfit import (
    DEFAULT_MEASURER,
    DEFAULT_TYPOGRAPHY,
    BoxTextPlan,
    TextMeasurer,
    Typography,
    plan_box_text,
)
from pdffields.model.field import Field, FieldKind, FieldValue, format_field_value
from pdffields.model.geometry import PageGeometry, clamp_to_margins, to_point_box
from pdffields.pdf.loader import SourceDocumentUnreadable

logger = logging.getLogger(__name__)


class FlattenError(RuntimeError):
    """Raised when output generation fails."""


@dataclass(slots=True, frozen=True)
class FlattenOptions:
    # Lower bound for shrink-to-fit; None keeps the font size used by the preview.
    min_font_size: float | None = None
    skip_field_ids: frozenset[str] = frozenset()


@dataclass(slots=True, frozen=True)
class _PageFrame:
    geometry: PageGeometry
    left: float
    bottom: float


def flatten_document(
    source: bytes,
    fields: list[Field],
    values: Mapping[str, FieldValue],
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
    options: FlattenOptions | None = None,
) -> bytes:
    options = options or FlattenOptions()
    reader = _read_source(source)

    try:
        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)

        frames = [_page_frame(page, number) for number, page in enumerate(reader.pages, start=1)]
        grouped: dict[int, list[Field]] = defaultdict(list)
        for item in sorted(fields, key=lambda f: f.order_index):
            if item.id in options.skip_field_ids:
                logger.debug("Skipping %s (excluded by caller)", item.id)
                continue
            if not 1 <= item.page_number <= len(frames):
                logger.debug("Skipping %s: page %d not in document", item.id, item.page_number)
                continue
            grouped[item.page_number].append(item)

        overlay, drawn_pages = _build_overlay_pdf(frames, grouped, values, typography, measurer, options)
        if drawn_pages:
            overlay_reader = PdfReader(overlay)
            for page_number in sorted(drawn_pages):
                writer.pages[page_number - 1].merge_page(overlay_reader.pages[page_number - 1])

        output = BytesIO()
        writer.write(output)
    except Exception as exc:
        raise FlattenError("Failed to write flattened PDF") from exc

    logger.info("Flattened %d page(s) with field text", len(drawn_pages))
    return output.getvalue()


def _read_source(source: bytes) -> PdfReader:
    try:
        reader = PdfReader(BytesIO(source))
        if reader.is_encrypted:
            reader.decrypt("")
        page_count = len(reader.pages)
    except Exception as exc:
        raise SourceDocumentUnreadable("Failed to read source PDF") from exc
    if page_count == 0:
        raise SourceDocumentUnreadable("PDF has no pages")
    return reader


def _page_frame(page, page_number: int) -> _PageFrame:
    # The preview rasterizes the cropbox, so fields are laid out against it.
    box = page.cropbox
    if page.rotation % 360:
        logger.warning("Page %d has /Rotate %d; rotated pages are not supported", page_number, page.rotation)
    width = float(box.width)
    height = float(box.height)
    geometry = PageGeometry(
        page_number=page_number,
        width_px=width,
        height_px=height,
        width_pt=width,
        height_pt=height,
    )
    return _PageFrame(geometry=geometry, left=float(box.left), bottom=float(box.bottom))


def _build_overlay_pdf(
    frames: list[_PageFrame],
    grouped: dict[int, list[Field]],
    values: Mapping[str, FieldValue],
    typography: Typography,
    measurer: TextMeasurer,
    options: FlattenOptions,
) -> tuple[BytesIO, set[int]]:
    buffer = BytesIO()
    report = canvas.Canvas(buffer)
    drawn_pages: set[int] = set()

    for frame in frames:
        geometry = frame.geometry
        report.setPageSize((frame.left + geometry.width_pt, frame.bottom + geometry.height_pt))
        report.saveState()
        report.translate(frame.left, frame.bottom)
        report.setFillColor(colors.black)

        for item in grouped.get(geometry.page_number, []):
            text = format_field_value(values.get(item.id), item.kind)
            if not text:
                continue
            if item.kind is FieldKind.CHECKBOX:
                drawn = _draw_checkmark(report, item, geometry)
            else:
                drawn = _draw_text(report, item, text, geometry, typography, measurer, options)
            if drawn:
                drawn_pages.add(geometry.page_number)

        report.restoreState()
        report.showPage()

    report.save()
    buffer.seek(0)
    return buffer, drawn_pages


def plan_export_text(
    item: Field,
    text: str,
    geometry: PageGeometry,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
    min_font_size: float | None = None,
) -> BoxTextPlan:
    unit_box = to_point_box(item.box, geometry)
    plan = plan_box_text(unit_box, geometry.width_pt, geometry.height_pt, text, typography, measurer)
    if min_font_size is None or plan.fits or plan.omitted:
        return plan

    size = typography.font_size - 1.0
    while size >= min_font_size:
        candidate = plan_box_text(
            unit_box,
            geometry.width_pt,
            geometry.height_pt,
            text,
            typography.with_size(size),
            measurer,
        )
        plan = candidate
        if candidate.fits:
            break
        size -= 1.0
    return plan


def _draw_text(
    report: canvas.Canvas,
    item: Field,
    text: str,
    geometry: PageGeometry,
    typography: Typography,
    measurer: TextMeasurer,
    options: FlattenOptions,
) -> bool:
    plan = plan_export_text(item, text, geometry, typography, measurer, options.min_font_size)
    if plan.omitted:
        logger.warning("Field %r clamps to an empty box; skipping its text", item.label)
        return False
    if plan.truncated:
        logger.debug("Field %r truncated to %d line(s)", item.label, plan.layout.max_lines)

    report.setFont(plan.typography.font_family, plan.typography.font_size)
    for line, baseline in zip(plan.layout.visible_lines, plan.baselines):
        report.drawString(plan.text_left, geometry.height_pt - baseline, line)
    return bool(plan.layout.visible_lines)


def _draw_checkmark(report: canvas.Canvas, item: Field, geometry: PageGeometry) -> bool:
    box = clamp_to_margins(to_point_box(item.box, geometry), geometry.width_pt, geometry.height_pt)
    if box.area <= 0.0:
        logger.warning("Checkbox %r clamps to an empty box; skipping", item.label)
        return False

    size = min(box.width, box.height) * 0.8
    glyph_width = pdfmetrics.stringWidth(CHECKMARK_GLYPH, CHECKMARK_FONT, size)
    x = box.x + (box.width - glyph_width) / 2.0
    baseline = geometry.height_pt - (box.y + box.height / 2.0) - size * 0.35
    report.setFont(CHECKMARK_FONT, size)
    report.drawString(x, baseline, CHECKMARK_GLYPH)
    return True


def safe_filename(name: str) -> str:
    cleaned = re.sub(r"-+", "-", re.sub(r"[^a-zA-Z0-9_-]", "-", name))[:80]
    return cleaned or "document"
