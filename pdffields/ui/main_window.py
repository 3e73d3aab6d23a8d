"""Main application window for field placement, filling and flattened export."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QActionGroup, QKeySequence, QPixmap
from PySide6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QFormLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QSplitter,
    QToolBar,
    QWidget,
)

from pdffields.config import PREVIEW_ZOOM
from pdffields.editor.controller import (
    ArmPlacement,
    CancelPlacement,
    ConfirmPlacement,
    DeleteField,
    DisarmPlacement,
    DuplicateField,
    EditorController,
    EditorState,
    Idle,
    PendingPlacement,
    RenameField,
    SetRequired,
)
from pdffields.layout.overlap import (
    OverlapWarnings,
    find_field_overlaps,
    find_text_overflow,
    find_text_overlaps,
)
from pdffields.model.document import PdfDocument
from pdffields.model.field import Field, FieldFormatError, FieldKind
from pdffields.pdf.flattener import FlattenError, FlattenOptions, flatten_document, safe_filename
from pdffields.pdf.loader import SourceDocumentUnreadable, load_pdf
from pdffields.pdf.pages import PageProcessor
from pdffields.pdf.renderer import PdfRenderError, render_page
from pdffields.state.session import DocumentSession
from pdffields.ui.page_loader import PageLoader
from pdffields.viewer.canvas import PdfCanvas

logger = logging.getLogger(__name__)

OVERFLOW_MESSAGE = "Text exceeds the available space for this field."


def format_warnings(warnings: OverlapWarnings) -> str:
    sections = [
        ("Fields overlapping existing PDF text", warnings.text_overlap_field_labels),
        ("Overlapping fields", warnings.overlapping_field_labels),
        ("Text cut off at the field edge", warnings.truncated_field_labels),
        ("Fields too close to the page edge to print", warnings.omitted_field_labels),
        ("Unfilled fields", warnings.unfilled_field_labels),
    ]
    lines: list[str] = []
    for title, labels in sections:
        if not labels:
            continue
        lines.append(f"{title}:")
        lines.extend(f"  - {label}" for label in labels)
    return "\n".join(lines)


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("PDF Field Studio")
        self.resize(1300, 850)

        self._document: PdfDocument | None = None
        self._session = DocumentSession()
        self._controller = EditorController()
        self._pages = PageProcessor(self._session, zoom=PREVIEW_ZOOM)
        self.page_loader = PageLoader(self._pages, self)
        self.page_loader.page_resolved.connect(self._on_page_resolved)
        self.page_loader.finished.connect(self._on_pages_finished)
        self.page_loader.failed.connect(self._on_pages_failed)
        self._current_page = 1
        self._syncing_panel = False

        self._controller.subscribe(self._on_fields_changed)

        self.page_list = QListWidget()
        self.page_list.currentRowChanged.connect(self._on_page_selected)

        self.canvas = PdfCanvas(self._controller, self._session)
        self.canvas.field_selection_changed.connect(self._on_field_selected)
        self.canvas.placement_needs_confirmation.connect(self._confirm_placement)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(False)
        self.scroll_area.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.scroll_area.setWidget(self.canvas)

        splitter = QSplitter()
        splitter.addWidget(self.page_list)
        splitter.addWidget(self.scroll_area)
        splitter.addWidget(self._build_field_panel())
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 4)
        splitter.setStretchFactor(2, 1)
        self.setCentralWidget(splitter)

        self._build_toolbar()
        self.statusBar().showMessage("Ready")

    @property
    def session(self) -> DocumentSession:
        return self._session

    @property
    def controller(self) -> EditorController:
        return self._controller

    @property
    def document(self) -> PdfDocument | None:
        return self._document

    def _build_field_panel(self) -> QWidget:
        panel = QWidget()
        layout = QFormLayout(panel)

        self.kind_label = QLabel("-")
        layout.addRow("Type", self.kind_label)

        self.label_edit = QLineEdit()
        self.label_edit.textEdited.connect(self._on_label_edited)
        layout.addRow("Label", self.label_edit)

        self.required_check = QCheckBox("Required")
        self.required_check.toggled.connect(self._on_required_toggled)
        layout.addRow("", self.required_check)

        self.value_edit = QLineEdit()
        self.value_edit.textEdited.connect(self._on_value_edited)
        layout.addRow("Value", self.value_edit)

        self.value_check = QCheckBox("Checked")
        self.value_check.toggled.connect(self._on_value_toggled)
        layout.addRow("", self.value_check)

        self.overflow_label = QLabel("")
        self.overflow_label.setStyleSheet("color: #c62828;")
        self.overflow_label.setWordWrap(True)
        layout.addRow(self.overflow_label)

        self._load_field_panel(None)
        return panel

    def _build_toolbar(self) -> None:
        toolbar = QToolBar("Fields")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        groups = [
            [
                ("Open PDF", self.open_pdf, None),
                ("Export Flattened", self.export_pdf, None),
                ("Load Layout", self.load_layout, None),
                ("Save Layout", self.save_layout, None),
            ],
            [
                ("Delete Field", self.delete_selected_field, None),
                ("Duplicate Field", self.duplicate_selected_field, "Ctrl+D"),
            ],
            [
                ("Previous Page", self.show_previous_page, None),
                ("Next Page", self.show_next_page, None),
            ],
        ]
        for group in groups:
            for text, slot, shortcut in group:
                action = QAction(text, self)
                if shortcut:
                    action.setShortcut(shortcut)
                action.triggered.connect(slot)
                toolbar.addAction(action)
            toolbar.addSeparator()

        self.skip_overlaps_action = QAction("Skip Fields Over Page Text", self)
        self.skip_overlaps_action.setCheckable(True)
        self.skip_overlaps_action.setChecked(True)
        toolbar.addAction(self.skip_overlaps_action)
        toolbar.addSeparator()

        # Placement is single-shot, so the pointer tool is re-checked once a
        # field lands (see _on_fields_changed).
        modes = QActionGroup(self)
        modes.setExclusive(True)
        for kind in (None, *FieldKind):
            text = "Pointer" if kind is None else f"Add {kind.value.capitalize()}"
            action = QAction(text, self)
            action.setCheckable(True)
            action.triggered.connect(lambda _checked=False, k=kind: self._set_mode(k))
            modes.addAction(action)
            toolbar.addAction(action)
            if kind is None:
                self._pointer_action = action
        self._pointer_action.setChecked(True)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._close_document()
        super().closeEvent(event)

    def open_pdf(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open PDF",
            str(Path.home()),
            "PDF Files (*.pdf)",
        )
        if not file_path:
            return
        self.open_document(file_path)

    def open_document(self, file_path: str | Path) -> bool:
        self._close_document()
        try:
            self._document = load_pdf(file_path)
        except SourceDocumentUnreadable as exc:
            QMessageBox.critical(self, "Open Failed", str(exc))
            return False

        self._controller.load([])
        self._current_page = 1
        self._populate_page_list()
        # Geometry and page text resolve page by page on later event-loop turns.
        self.page_loader.start(self._document)
        self.statusBar().showMessage(f"Loaded: {file_path}")
        return True

    def export_pdf(self) -> None:
        if self._document is None:
            QMessageBox.information(self, "No Document", "Open a PDF first.")
            return
        if self._session.unreadable:
            QMessageBox.critical(
                self,
                "Export Failed",
                "The source document could not be read; nothing was exported.",
            )
            return

        warnings = self._session.warnings()
        if warnings.has_warnings:
            note = ""
            if self.skip_overlaps_action.isChecked() and warnings.text_overlap_field_labels:
                note = "\n\nFields overlapping existing PDF text will be left out."
            answer = QMessageBox.question(
                self,
                "Export - Warnings",
                "The following issues may affect the exported PDF:\n\n"
                f"{format_warnings(warnings)}{note}\n\nExport anyway?",
            )
            if answer != QMessageBox.StandardButton.Yes:
                return

        default_name = f"{safe_filename(self._document.display_name.removesuffix('.pdf'))}_filled.pdf"
        output_path, _ = QFileDialog.getSaveFileName(
            self,
            "Export Flattened PDF",
            str(Path.home() / default_name),
            "PDF Files (*.pdf)",
        )
        if not output_path:
            return

        try:
            data = self.flattened_bytes()
            Path(output_path).write_bytes(data)
        except (SourceDocumentUnreadable, FlattenError, OSError) as exc:
            QMessageBox.critical(self, "Export Failed", str(exc))
            return

        self.statusBar().showMessage(f"Exported: {output_path}")

    def flattened_bytes(self) -> bytes:
        if self._document is None:
            raise FlattenError("No document is open")
        skipped: frozenset[str] = frozenset()
        if self.skip_overlaps_action.isChecked():
            skipped = self._session.text_overlap_ids()
        return flatten_document(
            self._document.data,
            self._session.fields,
            self._session.values,
            self._session.typography,
            self._session.measurer,
            FlattenOptions(skip_field_ids=skipped),
        )

    def load_layout(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Load Field Layout",
            str(Path.home()),
            "JSON Files (*.json)",
        )
        if not file_path:
            return
        try:
            records = json.loads(Path(file_path).read_text(encoding="utf-8"))
            fields = [Field.from_dict(record) for record in records]
        except (OSError, json.JSONDecodeError, FieldFormatError) as exc:
            QMessageBox.critical(self, "Load Failed", str(exc))
            return
        self._controller.load(fields)
        self.statusBar().showMessage(f"Loaded {len(fields)} field(s)")

    def save_layout(self) -> None:
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Field Layout",
            str(Path.home() / "fields.json"),
            "JSON Files (*.json)",
        )
        if not file_path:
            return
        records = [item.to_dict() for item in self._controller.fields]
        try:
            Path(file_path).write_text(json.dumps(records, indent=2), encoding="utf-8")
        except OSError as exc:
            QMessageBox.critical(self, "Save Failed", str(exc))
            return
        self.statusBar().showMessage(f"Saved {len(records)} field(s)")

    def show_previous_page(self) -> None:
        if self._document is None or self._current_page <= 1:
            return
        self.page_list.setCurrentRow(self._current_page - 2)

    def show_next_page(self) -> None:
        if self._document is None or self._current_page >= self._document.page_count:
            return
        self.page_list.setCurrentRow(self._current_page)

    def delete_selected_field(self) -> None:
        selected = self._controller.selected
        if selected is None:
            self.statusBar().showMessage("Select a field to delete.")
            return
        self._controller.dispatch(DeleteField(selected.id))
        self._load_field_panel(None)
        count = len(self._controller.state.page_fields(self._current_page))
        self.statusBar().showMessage(f"Deleted field; page {self._current_page} has {count} field(s)")

    def duplicate_selected_field(self) -> None:
        selected = self._controller.selected
        if selected is None:
            self.statusBar().showMessage("Select a field to duplicate.")
            return
        self._controller.dispatch(DuplicateField(selected.id))
        pending = self._controller.pending_placement
        if pending is not None:
            self._confirm_placement(pending)
        else:
            self._load_field_panel(self._controller.selected)
        if self._controller.selected is selected:
            return
        count = len(self._controller.state.page_fields(self._current_page))
        self.statusBar().showMessage(f"Duplicated field; page {self._current_page} has {count} field(s)")

    def keyPressEvent(self, event) -> None:  # type: ignore[override]
        if event.key() == Qt.Key.Key_Delete:
            self.delete_selected_field()
            event.accept()
            return
        if event.matches(QKeySequence.StandardKey.Copy):
            self.duplicate_selected_field()
            event.accept()
            return
        super().keyPressEvent(event)

    def _set_mode(self, kind: FieldKind | None) -> None:
        if kind is None:
            self._controller.dispatch(DisarmPlacement())
            self.statusBar().showMessage("Pointer mode")
        else:
            self._controller.dispatch(ArmPlacement(kind))
            self.statusBar().showMessage(f"Placement mode: {kind.value}")

    def _confirm_placement(self, pending: PendingPlacement) -> None:
        answer = QMessageBox.question(
            self,
            "Overlapping Field",
            "This field overlaps an existing field. Place it anyway?",
        )
        if answer == QMessageBox.StandardButton.Yes:
            self._controller.dispatch(ConfirmPlacement())
        else:
            self._controller.dispatch(CancelPlacement())
        logger.debug("Overlapping placement of %s resolved", pending.field.id)
        self._load_field_panel(self._controller.selected)

    def _on_fields_changed(self, state: EditorState) -> None:
        self._session.set_fields(list(state.fields))
        if isinstance(state.gesture, Idle):
            self._pointer_action.setChecked(True)
        self._refresh_markers()

    def _refresh_markers(self) -> None:
        fields = self._session.fields
        geometry = self._session.geometry_by_page
        self.canvas.set_markers(
            find_field_overlaps(fields, geometry.keys()),
            find_text_overlaps(self._session.text_runs_by_page, fields, geometry),
            find_text_overflow(fields, geometry, self._session.typography),
        )

    def _on_field_selected(self, field: Field | None) -> None:
        self._load_field_panel(field)

    def _load_field_panel(self, field: Field | None) -> None:
        self._syncing_panel = True
        try:
            enabled = field is not None
            for widget in (self.label_edit, self.required_check, self.value_edit, self.value_check):
                widget.setEnabled(enabled)
            self.overflow_label.setText("")
            if field is None:
                self.kind_label.setText("-")
                self.label_edit.setText("")
                self.required_check.setChecked(False)
                self.value_edit.setText("")
                self.value_check.setChecked(False)
                return

            value = self._session.values.get(field.id)
            textual = field.kind.is_textual
            self.kind_label.setText(field.kind.value)
            self.label_edit.setText(field.label)
            self.required_check.setChecked(field.required)
            self.value_edit.setVisible(textual)
            self.value_check.setVisible(not textual)
            self.value_check.setText("Signed" if field.kind is FieldKind.SIGNATURE else "Checked")
            self.value_edit.setText(value if isinstance(value, str) else "")
            self.value_check.setChecked(bool(value))
            if field.id in self._session.overflow:
                self.overflow_label.setText(OVERFLOW_MESSAGE)
        finally:
            self._syncing_panel = False

    def _on_label_edited(self, text: str) -> None:
        selected = self._controller.selected
        if selected is not None:
            self._controller.dispatch(RenameField(selected.id, text))

    def _on_required_toggled(self, checked: bool) -> None:
        selected = self._controller.selected
        if selected is not None and not self._syncing_panel:
            self._controller.dispatch(SetRequired(selected.id, checked))

    def _on_value_edited(self, text: str) -> None:
        selected = self._controller.selected
        if selected is None:
            return
        result = self._session.propose_value(selected.id, text)
        if not result.accepted:
            previous = self._session.values.get(selected.id)
            self.value_edit.setText(previous if isinstance(previous, str) else "")
        self.overflow_label.setText(OVERFLOW_MESSAGE if result.overflow else "")
        self.canvas.update()

    def _on_value_toggled(self, checked: bool) -> None:
        selected = self._controller.selected
        if selected is None or self._syncing_panel:
            return
        self._session.propose_value(selected.id, checked)
        self.canvas.update()

    def _populate_page_list(self) -> None:
        self.page_list.clear()
        if self._document is None:
            return

        for page_number in range(1, self._document.page_count + 1):
            item = QListWidgetItem(f"Page {page_number}")
            self.page_list.addItem(item)

        self.page_list.setCurrentRow(0)

    def _on_page_selected(self, row: int) -> None:
        if self._document is None or row < 0:
            return

        self._current_page = row + 1
        self._render_current_page()

    def _render_current_page(self) -> None:
        if self._document is None:
            self.canvas.clear_page()
            return

        try:
            rendered = render_page(self._document.handle, self._current_page, zoom=self._pages.zoom)
        except PdfRenderError as exc:
            QMessageBox.critical(self, "Render Failed", str(exc))
            return

        resolved = self._session.geometry_by_page.get(self._current_page)
        if resolved is not None and (resolved.width_px, resolved.height_px) != (
            rendered.geometry.width_px,
            rendered.geometry.height_px,
        ):
            logger.debug(
                "Raster for page %d is %gx%g px, layout uses %gx%g px",
                self._current_page,
                rendered.geometry.width_px,
                rendered.geometry.height_px,
                resolved.width_px,
                resolved.height_px,
            )
        self.canvas.set_page(QPixmap.fromImage(rendered.image), self._current_page, rendered.geometry)
        self._refresh_markers()
        self.statusBar().showMessage(
            f"Page {self._current_page}/{self._document.page_count}"
        )

    def _on_page_resolved(self, page_number: int) -> None:
        self._refresh_markers()
        if page_number == self._current_page:
            self._load_field_panel(self._controller.selected)

    def _on_pages_finished(self, resolved: int) -> None:
        if self._document is not None:
            self.statusBar().showMessage(f"Read {resolved} page(s) of {self._document.display_name}")

    def _on_pages_failed(self, message: str) -> None:
        QMessageBox.warning(self, "Document Unreadable", message)

    def _close_document(self) -> None:
        self.page_loader.cancel()
        if self._document is not None:
            self._document.close()
            self._document = None
        self._session.reset(None)
        self.page_list.clear()
        self.canvas.clear_page()
