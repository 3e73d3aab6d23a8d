"""Shared layout constants and logging setup."""

from __future__ import annotations

import logging
import os

# Percent of page width (left/right) and height (top/bottom). The preview and
# the flattener must read the same value.
PAGE_MARGIN_PCT = 6.0
FIELD_PADDING_PCT = 0.5
MIN_FIELD_PADDING = 1.0

MIN_WIDTH_PCT = 8.0
MIN_HEIGHT_PCT = 4.0
DEFAULT_FIELD_WIDTH_PCT = 20.0
DEFAULT_FIELD_HEIGHT_PCT = 5.0

FIELD_OVERLAP_THRESHOLD = 0.5
TEXT_OVERLAP_THRESHOLD_PX = 0.5

DEFAULT_FONT_FAMILY = "Helvetica"
DEFAULT_FONT_SIZE = 12.0
DEFAULT_LINE_HEIGHT_RATIO = 1.2
AVERAGE_CHAR_WIDTH_RATIO = 0.6
BASELINE_RAISE_RATIO = 0.2

CHECKMARK_FONT = "ZapfDingbats"
CHECKMARK_GLYPH = "4"
SIGNED_MARK = "Signed"
DATE_FORMAT = "%Y-%m-%d"

PREVIEW_ZOOM = 1.25

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVEL_ENV = "PDFFIELDS_LOG_LEVEL"


def configure_logging(level: str | int | None = None) -> None:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
