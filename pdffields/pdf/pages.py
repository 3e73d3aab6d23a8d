"""Cooperative per-page extraction of page geometry and text runs.

Pages are processed one at a time with a yield to the event loop in between,
either an asyncio loop (``process``) or any caller stepping through ``begin``.
Every result is written through ``DocumentSession.resolve_page``, which drops
it when the session has moved on to another document.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterator

import fitz

from pdffields.config import PREVIEW_ZOOM
from pdffields.layout.overlap import TextRun
from pdffields.model.document import PdfDocument
from pdffields.model.geometry import PageGeometry
from pdffields.pdf.loader import SourceDocumentUnreadable
from pdffields.state.session import DocumentSession

logger = logging.getLogger(__name__)


def extract_page(
    document: fitz.Document,
    page_number: int,
    zoom: float = PREVIEW_ZOOM,
) -> tuple[PageGeometry, list[TextRun]]:
    page = document.load_page(page_number - 1)
    width_pt = float(page.rect.width)
    height_pt = float(page.rect.height)
    geometry = PageGeometry(
        page_number=page_number,
        width_px=width_pt * zoom,
        height_px=height_pt * zoom,
        width_pt=width_pt,
        height_pt=height_pt,
    )

    runs: list[TextRun] = []
    for x0, y0, x1, y1, word, *_ in page.get_text("words"):
        if not word.strip():
            continue
        runs.append(TextRun(left=x0 * zoom, right=x1 * zoom, top=y0 * zoom, bottom=y1 * zoom))
    return geometry, runs


class PageProcessor:
    def __init__(self, session: DocumentSession, zoom: float = PREVIEW_ZOOM) -> None:
        self._session = session
        self._zoom = zoom
        self._task: asyncio.Task[int] | None = None

    @property
    def zoom(self) -> float:
        return self._zoom

    def steps(self, document: PdfDocument) -> Iterator[int]:
        """Resolve pages in order, yielding each page number once it is stored.

        Stops early when the session no longer belongs to ``document``.
        """
        for page_number in range(1, document.page_count + 1):
            try:
                geometry, runs = extract_page(document.handle, page_number, self._zoom)
            except Exception as exc:
                self._session.mark_unreadable(document.key)
                raise SourceDocumentUnreadable(
                    f"Failed to read page {page_number} of {document.display_name}"
                ) from exc

            if not self._session.resolve_page(document.key, geometry, runs):
                logger.debug("Abandoning page processing for %s", document.key)
                return
            yield page_number

    def begin(self, document: PdfDocument) -> Iterator[int]:
        """Reset the session for ``document`` and return its page steps, for callers driving their own loop."""
        self.cancel()
        self._session.reset(document.key)
        return self.steps(document)

    async def process(self, document: PdfDocument) -> int:
        resolved = 0
        for _ in self.steps(document):
            resolved += 1
            await asyncio.sleep(0)
        return resolved

    def start(self, document: PdfDocument) -> asyncio.Task[int]:
        self.cancel()
        self._session.reset(document.key)
        self._task = asyncio.get_running_loop().create_task(self.process(document))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def run(self, document: PdfDocument) -> int:
        self.cancel()
        self._session.reset(document.key)
        return asyncio.run(self.process(document))
