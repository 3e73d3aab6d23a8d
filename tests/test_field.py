"""Tests for the field model and value formatting."""

from datetime import date

import pytest

from pdffields.model.field import (
    Field,
    FieldFormatError,
    FieldKind,
    format_field_value,
    is_filled,
)
from pdffields.model.geometry import Box

from conftest import make_field


def test_field_serializes_with_camel_case_keys():
    field = make_field("field-1", 10, 20, 30, 5, page_number=2, label="Name", order_index=3)
    assert field.to_dict() == {
        "id": "field-1",
        "kind": "text",
        "label": "Name",
        "pageNumber": 2,
        "x": 10,
        "y": 20,
        "width": 30,
        "height": 5,
        "required": False,
        "orderIndex": 3,
    }


def test_field_reads_back_its_own_record():
    field = make_field("field-1", 10.0, 20.0, 30.0, 5.0, kind=FieldKind.DATE, label="Due")
    assert Field.from_dict(field.to_dict()) == field


def test_loaded_field_is_clamped_into_the_page():
    loaded = Field.from_dict(
        {"id": "f", "kind": "checkbox", "pageNumber": 1, "x": 95, "y": -3, "width": 2, "height": 50}
    )
    assert loaded.kind is FieldKind.CHECKBOX
    assert loaded.label == ""
    assert (loaded.x, loaded.y, loaded.width, loaded.height) == (92.0, 0.0, 8.0, 50.0)


@pytest.mark.parametrize(
    "record",
    [
        {"kind": "text", "pageNumber": 1},
        {"id": "f", "kind": "radio", "pageNumber": 1},
        {"id": "f", "kind": "text", "pageNumber": "first"},
        {"id": "f", "kind": "text", "pageNumber": 0},
        {"id": "", "kind": "text", "pageNumber": 1},
        {"id": "f", "kind": "text", "pageNumber": 1, "x": "left"},
    ],
)
def test_malformed_records_raise_field_format_error(record):
    with pytest.raises(FieldFormatError):
        Field.from_dict(record)


def test_box_is_tagged_with_page_and_id():
    box = make_field("f", 10, 20, 30, 5, page_number=4).box
    assert (box.page, box.key) == (4, "f")
    assert box.right == 40
    assert box.bottom == 25


def test_with_box_keeps_identity():
    field = make_field("f", 10, 20, 30, 5, label="Keep")
    moved = field.with_box(Box(1, 2, 10, 6))
    assert (moved.id, moved.label) == ("f", "Keep")
    assert (moved.x, moved.y, moved.width, moved.height) == (1, 2, 10, 6)


@pytest.mark.parametrize(
    "value, kind, expected",
    [
        (None, FieldKind.TEXT, ""),
        ("Jane Doe", FieldKind.TEXT, "Jane Doe"),
        (True, FieldKind.CHECKBOX, "Yes"),
        (False, FieldKind.CHECKBOX, ""),
        (True, FieldKind.SIGNATURE, "Signed"),
        ("signed", FieldKind.SIGNATURE, "Signed"),
        ("J. Doe", FieldKind.SIGNATURE, "J. Doe"),
        (date(2024, 3, 9), FieldKind.DATE, "2024-03-09"),
        ("next Friday", FieldKind.DATE, "next Friday"),
    ],
)
def test_format_field_value(value, kind, expected):
    assert format_field_value(value, kind) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, False),
        ("", False),
        ("   ", False),
        ("x", True),
        (False, False),
        (True, True),
        (date(2024, 1, 1), True),
    ],
)
def test_is_filled(value, expected):
    assert is_filled(value) is expected


def test_only_text_and_date_are_textual():
    assert FieldKind.TEXT.is_textual
    assert FieldKind.DATE.is_textual
    assert not FieldKind.CHECKBOX.is_textual
    assert not FieldKind.SIGNATURE.is_textual
