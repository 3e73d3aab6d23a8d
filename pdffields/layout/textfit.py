"""Text wrapping and fit checks for field boxes.

The same wrapping and line-capacity rules drive the interactive edit check
and the flattened export, so a value accepted in the preview lays out to the
same lines in the exported PDF. Glyph widths come from a pluggable measurer.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
from typing import Protocol

from reportlab.pdfbase import pdfmetrics

from pdffields.config import (
    AVERAGE_CHAR_WIDTH_RATIO,
    BASELINE_RAISE_RATIO,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_LINE_HEIGHT_RATIO,
)
from pdffields.model.geometry import Box, clamp_to_margins, field_padding


@dataclass(slots=True, frozen=True)
class Typography:
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = DEFAULT_FONT_SIZE
    line_height_ratio: float = DEFAULT_LINE_HEIGHT_RATIO

    @property
    def line_height(self) -> float:
        return self.font_size * self.line_height_ratio

    def with_size(self, font_size: float) -> Typography:
        return replace(self, font_size=font_size)


DEFAULT_TYPOGRAPHY = Typography()


@dataclass(slots=True, frozen=True)
class TextExtent:
    width: float
    height: float


class TextMeasurer(Protocol):
    def measure(
        self,
        text: str,
        typography: Typography,
        max_width: float | None = None,
    ) -> TextExtent: ...


class _WidthMeasurer:
    def text_width(self, text: str, typography: Typography) -> float:
        raise NotImplementedError

    def measure(
        self,
        text: str,
        typography: Typography,
        max_width: float | None = None,
    ) -> TextExtent:
        if max_width is None:
            height = typography.line_height if text else 0.0
            return TextExtent(self.text_width(text, typography), height)
        lines = wrap_text(text, max_width, typography, self)
        width = max((self.text_width(line, typography) for line in lines), default=0.0)
        return TextExtent(width, len(lines) * typography.line_height)


class ReportlabMeasurer(_WidthMeasurer):
    """Widths from the PDF font metrics used when drawing the export."""

    def text_width(self, text: str, typography: Typography) -> float:
        return pdfmetrics.stringWidth(text, typography.font_family, typography.font_size)


class MonospaceMeasurer(_WidthMeasurer):
    def __init__(self, char_width_ratio: float = AVERAGE_CHAR_WIDTH_RATIO) -> None:
        self.char_width_ratio = char_width_ratio

    def text_width(self, text: str, typography: Typography) -> float:
        return len(text) * typography.font_size * self.char_width_ratio


DEFAULT_MEASURER = ReportlabMeasurer()


def wrap_text(
    text: str,
    max_width: float,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
) -> list[str]:
    """Greedily wrap ``text`` into lines no wider than ``max_width``.

    Words are separated by any whitespace. A word that is wider than a line on
    its own is split between characters; every character is kept, so a single
    glyph wider than ``max_width`` still gets a line of its own.
    """

    def width_of(value: str) -> float:
        return measurer.measure(value, typography).width

    lines: list[str] = []
    current = ""
    for word in text.split():
        trial = f"{current} {word}" if current else word
        if width_of(trial) <= max_width:
            current = trial
            continue
        if current:
            lines.append(current)
            current = ""
            if width_of(word) <= max_width:
                current = word
                continue

        chunk = ""
        for char in word:
            candidate = chunk + char
            if width_of(candidate) <= max_width:
                chunk = candidate
            else:
                if chunk:
                    lines.append(chunk)
                chunk = char
        current = chunk

    if current:
        lines.append(current)
    return lines


def max_lines(available_height: float, typography: Typography = DEFAULT_TYPOGRAPHY) -> int:
    if typography.line_height <= 0:
        return 1
    return max(1, math.floor(available_height / typography.line_height + 1e-9))


@dataclass(slots=True, frozen=True)
class FitResult:
    fits: bool
    lines: list[str] = field(default_factory=list)
    max_lines: int = 1

    @property
    def would_overflow(self) -> bool:
        return not self.fits


@dataclass(slots=True, frozen=True)
class TextLayout:
    lines: list[str]
    max_lines: int

    @property
    def visible_lines(self) -> list[str]:
        return self.lines[: self.max_lines]

    @property
    def truncated(self) -> bool:
        return len(self.lines) > self.max_lines


def layout_text(
    text: str,
    available_width: float,
    available_height: float,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
) -> TextLayout:
    lines = wrap_text(text, available_width, typography, measurer)
    return TextLayout(lines=lines, max_lines=max_lines(available_height, typography))


def validate_text_fits(
    text: str,
    box_width: float,
    box_height: float,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    padding: float = 0.0,
    measurer: TextMeasurer = DEFAULT_MEASURER,
) -> FitResult:
    layout = layout_text(
        text,
        box_width - 2.0 * padding,
        box_height - 2.0 * padding,
        typography,
        measurer,
    )
    return FitResult(fits=not layout.truncated, lines=layout.lines, max_lines=layout.max_lines)


@dataclass(slots=True, frozen=True)
class BoxTextPlan:
    box: Box
    layout: TextLayout
    padding_x: float
    padding_y: float
    typography: Typography

    @property
    def omitted(self) -> bool:
        return self.box.area <= 0.0

    @property
    def truncated(self) -> bool:
        return not self.omitted and self.layout.truncated

    @property
    def fits(self) -> bool:
        return not self.omitted and not self.layout.truncated

    @property
    def text_left(self) -> float:
        return self.box.x + self.padding_x

    @property
    def baselines(self) -> list[float]:
        """Top-down baseline of each visible line, in the plan's own units."""
        size = self.typography.font_size
        first = self.box.y + self.padding_y + size - size * BASELINE_RAISE_RATIO
        return [first + index * self.typography.line_height for index in range(len(self.layout.visible_lines))]


def plan_box_text(
    unit_box: Box,
    page_width: float,
    page_height: float,
    text: str,
    typography: Typography = DEFAULT_TYPOGRAPHY,
    measurer: TextMeasurer = DEFAULT_MEASURER,
    unit: float = 1.0,
) -> BoxTextPlan:
    """Lay out ``text`` inside a field box given in page units.

    The box is first clamped into the page margins, then reduced by the field
    padding. Preview (pixels) and export (points) both go through here; the
    preview passes its zoom as ``unit`` and a font scaled by the same zoom, so
    the pixel plan is the point plan scaled.
    """
    box = clamp_to_margins(unit_box, page_width, page_height, unit=unit)
    pad_x, pad_y = field_padding(page_width, page_height, unit)
    if box.area <= 0.0:
        layout = TextLayout(lines=[], max_lines=0)
    else:
        layout = layout_text(
            text,
            box.width - 2.0 * pad_x,
            box.height - 2.0 * pad_y,
            typography,
            measurer,
        )
    return BoxTextPlan(
        box=box,
        layout=layout,
        padding_x=pad_x,
        padding_y=pad_y,
        typography=typography,
    )
