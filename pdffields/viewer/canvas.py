"""Interactive PDF page canvas that feeds pointer events to the editor controller."""

from __future__ import annotations

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QFont, QPainter, QPainterPath, QPen, QPixmap, QTextOption
from PySide6.QtWidgets import QWidget

from pdffields.editor.controller import (
    EditorController,
    EditorState,
    PageClick,
    Placing,
    PointerDown,
    PointerMove,
    PointerUp,
    SelectField,
)
from pdffields.layout.textfit import BoxTextPlan
from pdffields.model.field import Field, FieldKind, format_field_value
from pdffields.model.geometry import PageGeometry, clamp_to_margins, to_pixel_box
from pdffields.state.session import DocumentSession, plan_preview_text

HANDLE_SIZE = 10.0


class PdfCanvas(QWidget):
    field_selection_changed = Signal(object)
    placement_needs_confirmation = Signal(object)

    def __init__(self, controller: EditorController, session: DocumentSession | None = None) -> None:
        super().__init__()
        self._controller = controller
        self._session = session
        self._pixmap: QPixmap | None = None
        self._page_number: int | None = None
        self._geometry: PageGeometry | None = None
        self._overlapping: set[str] = set()
        self._text_overlaps: set[str] = set()
        self._overflowing: set[str] = set()

        self._controller.subscribe(self._on_state_changed)
        self.setMouseTracking(True)
        self.setMinimumSize(500, 600)

    @property
    def page_number(self) -> int | None:
        return self._page_number

    def set_page(self, pixmap: QPixmap, page_number: int, geometry: PageGeometry | None = None) -> None:
        self._pixmap = pixmap
        self._page_number = page_number
        self._geometry = geometry
        self.resize(pixmap.size())
        self.update()

    def clear_page(self) -> None:
        self._pixmap = None
        self._page_number = None
        self._geometry = None
        self._overlapping = set()
        self._text_overlaps = set()
        self._overflowing = set()
        self.resize(500, 600)
        self.update()

    def set_markers(
        self,
        overlapping: set[str],
        text_overlaps: set[str],
        overflowing: set[str],
    ) -> None:
        self._overlapping = set(overlapping)
        self._text_overlaps = set(text_overlaps)
        self._overflowing = set(overflowing)
        self.update()

    def to_percent(self, pos: QPointF) -> tuple[float, float]:
        if self._pixmap is None or self._pixmap.width() <= 0 or self._pixmap.height() <= 0:
            return 0.0, 0.0
        return (
            pos.x() / self._pixmap.width() * 100.0,
            pos.y() / self._pixmap.height() * 100.0,
        )

    def paintEvent(self, event) -> None:  # type: ignore[override]
        del event
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#e9eaee"))

        if self._pixmap is None or self._page_number is None:
            return

        painter.drawPixmap(0, 0, self._pixmap)
        state = self._controller.state
        placeholder_option = QTextOption(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        placeholder_option.setWrapMode(QTextOption.WrapMode.WordWrap)
        for field in sorted(state.page_fields(self._page_number), key=lambda f: f.order_index):
            rect_px = self._field_rect_to_pixels(field)
            selected = field.id == state.selected_id
            pen = QPen(self._outline_color(field, selected))
            pen.setWidth(2)
            painter.setPen(pen)
            painter.drawRect(rect_px)
            if not self._draw_value(painter, field):
                painter.setPen(QColor("#9e9e9e"))
                painter.drawText(rect_px.adjusted(3, 2, -3, -2), field.label, placeholder_option)
            if selected:
                painter.fillRect(self._resize_handle_rect(rect_px), QColor("#c62828"))

    def preview_plan(self, field: Field) -> BoxTextPlan | None:
        """Layout of a filled text value in raster pixels, or None when nothing is drawn."""
        geometry = self._page_geometry()
        if geometry is None or self._session is None or field.kind is FieldKind.CHECKBOX:
            return None
        text = format_field_value(self._session.values.get(field.id), field.kind)
        if not text:
            return None
        return plan_preview_text(field, text, geometry, self._session.typography, self._session.measurer)

    def preview_lines(self, field: Field) -> list[str]:
        plan = self.preview_plan(field)
        if plan is None or plan.omitted:
            return []
        return plan.layout.visible_lines

    def _page_geometry(self) -> PageGeometry | None:
        # The resolved geometry is what the overflow check used.
        if self._session is not None and self._page_number is not None:
            resolved = self._session.geometry_by_page.get(self._page_number)
            if resolved is not None:
                return resolved
        return self._geometry

    def _draw_value(self, painter: QPainter, field: Field) -> bool:
        if field.kind is FieldKind.CHECKBOX:
            return self._draw_check(painter, field)
        plan = self.preview_plan(field)
        if plan is None:
            return False
        if plan.omitted:
            return True

        font = QFont(plan.typography.font_family)
        font.setPixelSize(max(1, round(plan.typography.font_size)))
        painter.save()
        painter.setFont(font)
        painter.setPen(QColor("black"))
        for line, baseline in zip(plan.layout.visible_lines, plan.baselines):
            painter.drawText(QPointF(plan.text_left, baseline), line)
        painter.restore()
        return True

    def _draw_check(self, painter: QPainter, field: Field) -> bool:
        geometry = self._page_geometry()
        if geometry is None or self._session is None:
            return False
        if not format_field_value(self._session.values.get(field.id), field.kind):
            return False
        box = clamp_to_margins(
            to_pixel_box(field.box, geometry),
            geometry.width_px,
            geometry.height_px,
            unit=geometry.zoom,
        )
        if box.area <= 0.0:
            return True

        side = min(box.width, box.height) * 0.8
        left = box.x + (box.width - side) / 2.0
        top = box.y + (box.height - side) / 2.0
        path = QPainterPath(QPointF(left + 0.15 * side, top + 0.55 * side))
        path.lineTo(left + 0.4 * side, top + 0.8 * side)
        path.lineTo(left + 0.85 * side, top + 0.2 * side)
        pen = QPen(QColor("black"))
        pen.setWidthF(max(1.0, side / 8.0))
        painter.save()
        painter.setPen(pen)
        painter.drawPath(path)
        painter.restore()
        return True

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if self._pixmap is None or self._page_number is None:
            return

        if event.button() != Qt.MouseButton.LeftButton:
            return

        x, y = self.to_percent(event.position())
        if isinstance(self._controller.state.gesture, Placing):
            self._controller.dispatch(PageClick(self._page_number, x, y))
            pending = self._controller.pending_placement
            if pending is not None:
                self.placement_needs_confirmation.emit(pending)
            self.field_selection_changed.emit(self._controller.selected)
            return

        field = self._field_at(event.position())
        if field is None:
            self._controller.dispatch(SelectField(None))
        else:
            rect = self._field_rect_to_pixels(field)
            on_handle = self._resize_handle_rect(rect).contains(event.position())
            self._controller.dispatch(PointerDown(field.id, x, y, on_resize_handle=on_handle))
        self.field_selection_changed.emit(self._controller.selected)

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self._pixmap is None:
            return
        x, y = self.to_percent(event.position())
        self._controller.dispatch(PointerMove(x, y))

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        del event
        self._controller.dispatch(PointerUp())

    def _on_state_changed(self, state: EditorState) -> None:
        del state
        self.update()

    def _outline_color(self, field: Field, selected: bool) -> QColor:
        if selected:
            return QColor("#c62828")
        if field.id in self._text_overlaps:
            return QColor("#b71c1c")
        if field.id in self._overflowing:
            return QColor("#ef6c00")
        if field.id in self._overlapping:
            return QColor("#f9a825")
        return QColor("#1565c0")

    def _field_rect_to_pixels(self, field: Field) -> QRectF:
        if self._pixmap is None:
            return QRectF()
        sx = self._pixmap.width() / 100.0
        sy = self._pixmap.height() / 100.0
        return QRectF(field.x * sx, field.y * sy, field.width * sx, field.height * sy)

    def _resize_handle_rect(self, field_rect: QRectF) -> QRectF:
        return QRectF(
            field_rect.right() - HANDLE_SIZE / 2.0,
            field_rect.bottom() - HANDLE_SIZE / 2.0,
            HANDLE_SIZE,
            HANDLE_SIZE,
        )

    def _field_at(self, pos: QPointF) -> Field | None:
        if self._page_number is None:
            return None
        fields = sorted(
            self._controller.state.page_fields(self._page_number),
            key=lambda f: f.order_index,
        )
        for field in reversed(fields):
            rect = self._field_rect_to_pixels(field)
            if rect.contains(pos) or self._resize_handle_rect(rect).contains(pos):
                return field
        return None
