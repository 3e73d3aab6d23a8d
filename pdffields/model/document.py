"""Source document model: original bytes plus an open PyMuPDF handle."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import fitz


@dataclass(slots=True)
class PdfDocument:
    path: Path | None
    key: str
    data: bytes
    handle: fitz.Document

    @property
    def page_count(self) -> int:
        return self.handle.page_count

    @property
    def display_name(self) -> str:
        return self.path.name if self.path is not None else self.key

    def close(self) -> None:
        if not self.handle.is_closed:
            self.handle.close()
