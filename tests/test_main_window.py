"""Tests for main window document loading, duplication and export options."""

import fitz
import pytest

pytest.importorskip("PySide6")

from PySide6.QtTest import QTest  # noqa: E402
from PySide6.QtWidgets import QMessageBox  # noqa: E402

from pdffields.editor.controller import SelectField  # noqa: E402
from pdffields.ui.main_window import MainWindow  # noqa: E402

from conftest import make_field  # noqa: E402


def _wait_until(condition, timeout_ms=5000):
    waited = 0
    while not condition() and waited < timeout_ms:
        QTest.qWait(10)
        waited += 10
    assert condition()


@pytest.fixture
def window(qapp):
    widget = MainWindow()
    yield widget
    widget.close()


@pytest.fixture
def sample_path(tmp_path, sample_pdf):
    path = tmp_path / "sample.pdf"
    path.write_bytes(sample_pdf)
    return path


def test_pages_resolve_after_open_returns(window, sample_path):
    assert window.open_document(sample_path)

    assert window.session.geometry_by_page == {}
    assert window.page_loader.is_running

    _wait_until(lambda: not window.page_loader.is_running)
    assert sorted(window.session.geometry_by_page) == [1]
    assert window.canvas.page_number == 1


def test_opening_a_second_document_mid_processing_keeps_only_the_second(
    window, tmp_path, three_page_pdf, sample_path
):
    first = tmp_path / "three.pdf"
    first.write_bytes(three_page_pdf)
    interrupted = []

    def open_second(page_number):
        if not interrupted:
            interrupted.append(page_number)
            window.open_document(sample_path)

    window.page_loader.page_resolved.connect(open_second)
    window.open_document(first)
    _wait_until(lambda: not window.page_loader.is_running)

    assert interrupted == [1]
    assert window.document.display_name == "sample.pdf"
    assert window.session.document_key == window.document.key
    assert sorted(window.session.geometry_by_page) == [1]
    # Only the second document has words on its first page.
    assert len(window.session.text_runs_by_page[1]) == 2
    assert window.page_list.count() == 1


def test_closing_the_window_stops_page_processing(window, sample_path):
    window.show()
    window.open_document(sample_path)
    window.close()

    assert not window.page_loader.is_running
    assert window.document is None


@pytest.mark.parametrize(
    "answer, expected_count",
    [
        (QMessageBox.StandardButton.Yes, 2),
        (QMessageBox.StandardButton.No, 1),
    ],
)
def test_duplicate_over_the_source_asks_first(window, monkeypatch, answer, expected_count):
    asked = []

    def question(*args, **kwargs):
        asked.append(args[1])
        return answer

    monkeypatch.setattr(QMessageBox, "question", question)
    window.controller.load([make_field("a", 10, 10, 20, 5, label="Name")])
    window.controller.dispatch(SelectField("a"))

    window.duplicate_selected_field()

    assert asked == ["Overlapping Field"]
    assert len(window.controller.fields) == expected_count
    assert window.controller.pending_placement is None


def test_export_leaves_out_fields_over_page_text_by_default(window, sample_path):
    window.open_document(sample_path)
    _wait_until(lambda: not window.page_loader.is_running)
    # "Original heading" sits at (72, 60) on the 600x800 page.
    window.controller.load(
        [
            make_field("heading", 10, 6, 30, 4, label="Heading"),
            make_field("name", 10, 40, 30, 5, label="Name"),
        ]
    )
    window.session.values.update({"heading": "Covered", "name": "Visible"})

    assert window.skip_overlaps_action.isChecked()
    assert window.session.text_overlap_ids() == frozenset({"heading"})
    words = _words(window.flattened_bytes())
    assert "Visible" in words
    assert "Covered" not in words

    window.skip_overlaps_action.setChecked(False)
    assert "Covered" in _words(window.flattened_bytes())


def _words(data):
    with fitz.open(stream=data, filetype="pdf") as document:
        return [word[4] for word in document[0].get_text("words")]
