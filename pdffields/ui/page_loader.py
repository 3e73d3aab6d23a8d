"""Run page processing on the Qt event loop, one page per turn."""

from __future__ import annotations

import logging
from typing import Iterator

from PySide6.QtCore import QObject, QTimer, Signal

from pdffields.model.document import PdfDocument
from pdffields.pdf.loader import SourceDocumentUnreadable
from pdffields.pdf.pages import PageProcessor

logger = logging.getLogger(__name__)


class PageLoader(QObject):
    page_resolved = Signal(int)
    finished = Signal(int)
    failed = Signal(str)

    def __init__(self, processor: PageProcessor, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._processor = processor
        self._steps: Iterator[int] | None = None
        self._generation = 0
        self._resolved = 0

    @property
    def is_running(self) -> bool:
        return self._steps is not None

    def start(self, document: PdfDocument) -> None:
        self.cancel()
        self._steps = self._processor.begin(document)
        self._resolved = 0
        self._schedule(self._generation)

    def cancel(self) -> None:
        # Queued steps from an earlier generation become no-ops.
        self._generation += 1
        self._processor.cancel()
        if self._steps is not None:
            self._steps.close()
            self._steps = None

    def _schedule(self, generation: int) -> None:
        QTimer.singleShot(0, lambda: self._step(generation))

    def _step(self, generation: int) -> None:
        if generation != self._generation or self._steps is None:
            return
        try:
            page_number = next(self._steps)
        except StopIteration:
            self._steps = None
            logger.debug("Page processing finished after %d page(s)", self._resolved)
            self.finished.emit(self._resolved)
            return
        except SourceDocumentUnreadable as exc:
            self._steps = None
            logger.warning("Page processing failed: %s", exc)
            self.failed.emit(str(exc))
            return

        self._resolved += 1
        self.page_resolved.emit(page_number)
        self._schedule(generation)
