"""Rasterize pages for the preview canvas."""

from __future__ import annotations

from dataclasses import dataclass

import fitz
from PySide6.QtGui import QImage

from pdffields.config import PREVIEW_ZOOM
from pdffields.model.geometry import PageGeometry


class PdfRenderError(RuntimeError):
    """Raised when a page cannot be rendered."""


@dataclass(slots=True, frozen=True)
class RenderedPage:
    image: QImage
    geometry: PageGeometry


def render_page(
    document: fitz.Document,
    page_number: int,
    zoom: float = PREVIEW_ZOOM,
) -> RenderedPage:
    """Render a 1-based page and report the raster size next to the page size.

    The pixel size is taken from the produced raster rather than computed from
    the zoom, so overlays are positioned against what is actually on screen.
    """
    if page_number < 1 or page_number > document.page_count:
        raise PdfRenderError(f"Page number out of range: {page_number}")

    try:
        page = document.load_page(page_number - 1)
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False, annots=False)
    except Exception as exc:
        raise PdfRenderError(f"Failed to render page {page_number}") from exc

    image = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format.Format_RGB888)
    geometry = PageGeometry(
        page_number=page_number,
        width_px=float(pix.width),
        height_px=float(pix.height),
        width_pt=float(page.rect.width),
        height_pt=float(page.rect.height),
    )
    return RenderedPage(image=image.copy(), geometry=geometry)
