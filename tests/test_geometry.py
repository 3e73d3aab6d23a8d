"""Tests for percent-space boxes, clamping and intersection."""

import math

import pytest

from conftest import make_field, make_geometry
from pdffields.model.geometry import (
    Bounds,
    Box,
    clamp_box,
    clamp_to_margins,
    field_padding,
    intersects,
    margin_rect,
    to_percent_box,
    to_pixel_box,
    to_point_box,
)

SAMPLE_BOXES = [
    Box(90.0, 90.0, 20.0, 10.0),
    Box(-5.0, -12.0, 30.0, 30.0),
    Box(50.0, 50.0, 1.0, 0.5),
    Box(10.0, 10.0, 150.0, 250.0),
    Box(99.9, 0.0, 8.0, 4.0),
    Box(float("nan"), 20.0, float("inf"), 10.0),
    Box(33.3, 66.6, 12.5, 7.25),
]


def test_clamp_pulls_box_back_inside_page():
    clamped = clamp_box(Box(90.0, 90.0, 20.0, 10.0))
    assert clamped.x == pytest.approx(80.0)
    assert clamped.y == pytest.approx(90.0)
    assert clamped.width == pytest.approx(20.0)
    assert clamped.height == pytest.approx(10.0)


def test_clamp_enforces_minimum_size():
    clamped = clamp_box(Box(10.0, 10.0, 1.0, -3.0))
    assert clamped.width == 8.0
    assert clamped.height == 4.0


def test_clamp_caps_oversized_boxes_to_the_page():
    clamped = clamp_box(Box(10.0, 10.0, 150.0, 250.0))
    assert (clamped.x, clamped.y, clamped.width, clamped.height) == (0.0, 0.0, 100.0, 100.0)


@pytest.mark.parametrize("box", SAMPLE_BOXES)
def test_clamp_is_idempotent(box):
    once = clamp_box(box)
    assert clamp_box(once) == once
    assert 0.0 <= once.x and once.right <= 100.0 + 1e-9
    assert 0.0 <= once.y and once.bottom <= 100.0 + 1e-9
    assert all(math.isfinite(v) for v in (once.x, once.y, once.width, once.height))


def test_clamp_with_custom_bounds_is_idempotent():
    bounds = Bounds(612.0, 792.0)
    once = clamp_box(Box(600.0, 780.0, 40.0, 30.0), bounds, min_width=10.0, min_height=10.0)
    assert once.x == pytest.approx(572.0)
    assert clamp_box(once, bounds, 10.0, 10.0) == once


def test_clamp_keeps_page_and_key():
    clamped = clamp_box(Box(-1.0, -1.0, 10.0, 10.0, page=3, key="a"))
    assert clamped.page == 3
    assert clamped.key == "a"


@pytest.mark.parametrize("box", SAMPLE_BOXES[:5] + SAMPLE_BOXES[6:])
@pytest.mark.parametrize("zoom", [0.5, 1.0, 1.25, 3.0])
def test_pixel_round_trip(box, zoom):
    geometry = make_geometry(width_pt=612.0, height_pt=792.0, zoom=zoom)
    back = to_percent_box(to_pixel_box(box, geometry), geometry)
    assert back.x == pytest.approx(box.x)
    assert back.y == pytest.approx(box.y)
    assert back.width == pytest.approx(box.width)
    assert back.height == pytest.approx(box.height)


def test_pixel_and_point_spaces_are_proportional():
    geometry = make_geometry(width_pt=600.0, height_pt=800.0, zoom=1.5)
    box = Box(10.0, 20.0, 30.0, 5.0)
    pixel = to_pixel_box(box, geometry)
    point = to_point_box(box, geometry)
    assert pixel.x == pytest.approx(point.x * 1.5)
    assert pixel.height == pytest.approx(point.height * 1.5)
    assert point.width == pytest.approx(180.0)


def test_percent_conversion_of_degenerate_page_does_not_raise():
    geometry = make_geometry(width_pt=0.0, height_pt=0.0)
    assert to_percent_box(Box(1.0, 1.0, 1.0, 1.0), geometry) == Box(0.0, 0.0, 0.0, 0.0)


def test_example_fields_overlap_until_moved():
    a = make_field("a", 10.0, 10.0, 20.0, 10.0)
    b = make_field("b", 25.0, 12.0, 20.0, 10.0)
    assert intersects(a.box, b.box)

    moved = make_field("b", 31.0, 12.0, 20.0, 10.0)
    assert not intersects(a.box, moved.box)


@pytest.mark.parametrize(
    "first, second",
    [
        (Box(0, 0, 10, 10), Box(5, 5, 10, 10)),
        (Box(0, 0, 10, 10), Box(10, 0, 10, 10)),
        (Box(0, 0, 10, 10), Box(9.8, 0, 10, 10)),
        (Box(0, 0, 10, 10), Box(20, 20, 5, 5)),
        (Box(0, 0, 50, 50), Box(10, 10, 5, 5)),
    ],
)
def test_intersection_is_symmetric(first, second):
    assert intersects(first, second) == intersects(second, first)


def test_touching_edges_do_not_overlap():
    assert not intersects(Box(0, 0, 10, 10), Box(10, 0, 10, 10))
    assert not intersects(Box(0, 0, 10, 10), Box(0, 10, 10, 10))
    # Within the tolerance as well.
    assert not intersects(Box(0, 0, 10, 10), Box(9.6, 0, 10, 10))


def test_field_never_intersects_itself():
    a = make_field("a", 10.0, 10.0, 20.0, 10.0)
    assert not intersects(a.box, a.box)

    box = Box(5.0, 5.0, 10.0, 10.0)
    assert not intersects(box, box)


def test_identical_boxes_of_different_fields_intersect():
    assert intersects(make_field("a", 10, 10, 20, 10).box, make_field("b", 10, 10, 20, 10).box)


def test_fields_on_different_pages_never_intersect():
    a = make_field("a", 10.0, 10.0, 20.0, 10.0, page_number=1)
    b = make_field("b", 10.0, 10.0, 20.0, 10.0, page_number=2)
    assert not intersects(a.box, b.box)


def test_margin_rect_uses_six_percent():
    content = margin_rect(600.0, 800.0)
    assert content.x == pytest.approx(36.0)
    assert content.y == pytest.approx(48.0)
    assert content.right == pytest.approx(564.0)
    assert content.bottom == pytest.approx(752.0)


def test_clamp_to_margins_moves_box_off_the_page_edge():
    clamped = clamp_to_margins(Box(0.0, 0.0, 120.0, 40.0), 600.0, 800.0)
    assert clamped.x == pytest.approx(36.0)
    assert clamped.y == pytest.approx(48.0)
    assert clamped.width == pytest.approx(120.0)
    assert clamped.height == pytest.approx(40.0)


def test_clamp_to_margins_cuts_the_far_edge():
    clamped = clamp_to_margins(Box(540.0, 760.0, 120.0, 40.0), 600.0, 800.0)
    assert clamped.x == pytest.approx(540.0)
    assert clamped.right == pytest.approx(564.0)
    assert clamped.y == pytest.approx(751.0)
    assert clamped.height == pytest.approx(1.0)


def test_clamp_to_margins_on_empty_page_has_no_area():
    assert clamp_to_margins(Box(0.0, 0.0, 10.0, 10.0), 0.0, 0.0).area == 0.0


def test_field_padding_has_a_floor():
    assert field_padding(600.0, 800.0) == (pytest.approx(3.0), pytest.approx(4.0))
    assert field_padding(50.0, 50.0) == (1.0, 1.0)


def test_one_point_floors_scale_with_the_unit():
    points = clamp_to_margins(Box(99.0, 99.0, 10.0, 10.0), 100.0, 100.0)
    pixels = clamp_to_margins(Box(198.0, 198.0, 20.0, 20.0), 200.0, 200.0, unit=2.0)

    assert (points.x, points.width) == (pytest.approx(93.0), pytest.approx(1.0))
    assert (pixels.x, pixels.width) == (pytest.approx(186.0), pytest.approx(2.0))
    assert field_padding(100.0, 100.0, unit=2.0) == (2.0, 2.0)
