"""Tests for PDF loading and cooperative page processing."""

import asyncio

import pytest

from pdffields.pdf import pages
from pdffields.pdf.loader import SourceDocumentUnreadable, load_pdf, open_pdf_bytes
from pdffields.pdf.pages import PageProcessor, extract_page
from pdffields.state.session import DocumentSession


@pytest.fixture
def open_document():
    opened = []

    def _open(data):
        document = open_pdf_bytes(data)
        opened.append(document)
        return document

    yield _open
    for document in opened:
        document.close()


def test_load_pdf_from_disk(tmp_path, sample_pdf):
    path = tmp_path / "form.pdf"
    path.write_bytes(sample_pdf)

    document = load_pdf(path)
    try:
        assert document.page_count == 1
        assert document.display_name == "form.pdf"
        assert document.data == sample_pdf
    finally:
        document.close()


def test_each_load_gets_a_fresh_key(open_document, sample_pdf):
    assert open_document(sample_pdf).key != open_document(sample_pdf).key


def test_missing_or_broken_files_are_unreadable(tmp_path):
    with pytest.raises(SourceDocumentUnreadable):
        load_pdf(tmp_path / "missing.pdf")
    with pytest.raises(SourceDocumentUnreadable):
        open_pdf_bytes(b"not a pdf")


def test_extract_page_scales_geometry_and_words(open_document, sample_pdf):
    document = open_document(sample_pdf)

    geometry, runs = extract_page(document.handle, 1, zoom=2.0)

    assert (geometry.width_pt, geometry.height_pt) == (600.0, 800.0)
    assert (geometry.width_px, geometry.height_px) == (1200.0, 1600.0)
    assert geometry.zoom == pytest.approx(2.0)
    assert len(runs) == 2
    first = min(runs, key=lambda run: run.left)
    assert first.left == pytest.approx(144.0, abs=1.0)
    assert first.top < 120.0 < first.bottom


def test_run_resolves_every_page(open_document, three_page_pdf):
    document = open_document(three_page_pdf)
    session = DocumentSession()

    resolved = PageProcessor(session, zoom=1.0).run(document)

    assert resolved == 3
    assert session.document_key == document.key
    assert sorted(session.geometry_by_page) == [1, 2, 3]
    assert session.geometry_by_page[3].width_pt == 400.0
    assert session.text_runs_by_page[2] == []


def test_results_for_a_replaced_document_are_dropped(open_document, three_page_pdf):
    document = open_document(three_page_pdf)
    session = DocumentSession()
    processor = PageProcessor(session, zoom=1.0)

    async def scenario():
        task = processor.start(document)
        await asyncio.sleep(0)
        session.reset("another-document")
        return await task

    assert asyncio.run(scenario()) == 1
    assert session.geometry_by_page == {}


def test_starting_a_new_document_cancels_the_previous_one(open_document, three_page_pdf, sample_pdf):
    first = open_document(three_page_pdf)
    second = open_document(sample_pdf)
    session = DocumentSession()
    processor = PageProcessor(session, zoom=1.0)

    async def scenario():
        first_task = processor.start(first)
        second_task = processor.start(second)
        with pytest.raises(asyncio.CancelledError):
            await first_task
        return await second_task

    assert asyncio.run(scenario()) == 1
    assert session.document_key == second.key
    assert sorted(session.geometry_by_page) == [1]


def test_page_failure_marks_the_document_unreadable(open_document, sample_pdf, monkeypatch):
    document = open_document(sample_pdf)
    session = DocumentSession()

    def broken(*args, **kwargs):
        raise RuntimeError("cannot parse content stream")

    monkeypatch.setattr(pages, "extract_page", broken)
    with pytest.raises(SourceDocumentUnreadable):
        PageProcessor(session).run(document)
    assert session.unreadable


def test_begin_resolves_one_page_per_step(open_document, three_page_pdf):
    document = open_document(three_page_pdf)
    session = DocumentSession()
    session.values["old"] = "kept from another document"
    steps = PageProcessor(session, zoom=1.0).begin(document)

    assert session.document_key == document.key
    assert session.values == {}
    assert session.geometry_by_page == {}

    assert next(steps) == 1
    assert sorted(session.geometry_by_page) == [1]
    assert list(steps) == [2, 3]


def test_steps_stop_when_the_session_moves_on(open_document, three_page_pdf):
    document = open_document(three_page_pdf)
    session = DocumentSession()
    steps = PageProcessor(session, zoom=1.0).begin(document)

    assert next(steps) == 1
    session.reset("another-document")
    assert list(steps) == []
    assert session.geometry_by_page == {}
