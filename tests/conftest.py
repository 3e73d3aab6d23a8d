"""Pytest configuration and shared fixtures for pdffields tests."""

from io import BytesIO
import os
import sys

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import RectangleObject
from reportlab.pdfgen import canvas

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from pdffields.model.field import Field, FieldKind  # noqa: E402
from pdffields.model.geometry import PageGeometry  # noqa: E402


def build_pdf(page_sizes=((600.0, 800.0),), texts=()):
    """Build a small PDF; ``texts`` holds (page_number, x, y_from_top, text)."""
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=page_sizes[0])
    for page_number, (width, height) in enumerate(page_sizes, start=1):
        report.setPageSize((width, height))
        report.setFont("Helvetica", 12)
        for text_page, x, y_top, text in texts:
            if text_page == page_number:
                report.drawString(x, height - y_top, text)
        report.showPage()
    report.save()
    return buffer.getvalue()


def crop_pdf(data, cropbox, page_index=0):
    """Return ``data`` with one page cropped to (left, bottom, right, top)."""
    writer = PdfWriter()
    for page in PdfReader(BytesIO(data)).pages:
        writer.add_page(page)
    writer.pages[page_index].cropbox = RectangleObject(cropbox)
    output = BytesIO()
    writer.write(output)
    return output.getvalue()


def make_field(field_id, x, y, width, height, page_number=1, kind=FieldKind.TEXT, label=None, order_index=0):
    return Field(
        id=field_id,
        kind=kind,
        label=label or field_id,
        page_number=page_number,
        x=x,
        y=y,
        width=width,
        height=height,
        order_index=order_index,
    )


def make_geometry(page_number=1, width_pt=600.0, height_pt=800.0, zoom=1.0):
    return PageGeometry(
        page_number=page_number,
        width_px=width_pt * zoom,
        height_px=height_pt * zoom,
        width_pt=width_pt,
        height_pt=height_pt,
    )


@pytest.fixture
def sample_pdf():
    return build_pdf(texts=[(1, 72, 60, "Original heading")])


@pytest.fixture
def three_page_pdf():
    return build_pdf(page_sizes=((600.0, 800.0), (612.0, 792.0), (400.0, 400.0)))


@pytest.fixture(scope="session")
def qapp():
    widgets = pytest.importorskip("PySide6.QtWidgets")
    app = widgets.QApplication.instance() or widgets.QApplication([])
    yield app
