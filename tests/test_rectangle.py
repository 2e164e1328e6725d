"""Unit tests for the Rectangle model, units and id generators."""

import pytest

from bbox_overlay.models.rectangle import (
    PageBounds,
    Rectangle,
    RectUnit,
    SequentialIdGenerator,
    ViewportBox,
    uuid_id_generator,
)


class TestRectUnit:
    """Test unit parsing."""

    @pytest.mark.parametrize("value, expected", [
        ("inch", RectUnit.INCH),
        ("RATIO", RectUnit.RATIO),
        (" pdf ", RectUnit.PDF),
        (RectUnit.PDF, RectUnit.PDF),
    ])
    def test_parse(self, value, expected):
        assert RectUnit.parse(value) is expected

    @pytest.mark.parametrize("value", ["cm", "", None, 72])
    def test_parse_unknown(self, value):
        with pytest.raises(ValueError, match="Unknown rectangle unit"):
            RectUnit.parse(value)


class TestRectangle:
    """Test Rectangle dataclass."""

    def test_defaults(self):
        rect = Rectangle(id="a", page=1, x=1, y=2, width=3, height=4)
        assert rect.unit is RectUnit.INCH
        assert rect.label is None
        assert rect.color is None

    def test_unit_string_is_coerced(self):
        rect = Rectangle(id="a", page=1, x=0, y=0, width=1, height=1, unit="ratio")
        assert rect.unit is RectUnit.RATIO

    def test_unknown_unit_rejected(self):
        with pytest.raises(ValueError):
            Rectangle(id="a", page=1, x=0, y=0, width=1, height=1, unit="px")

    def test_copy_is_independent(self):
        rect = Rectangle(id="a", page=1, x=0, y=0, width=1, height=1)
        copy = rect.copy()
        copy.x = 5
        assert rect.x == 0
        assert copy == Rectangle(id="a", page=1, x=5, y=0, width=1, height=1)

    def test_to_dict(self):
        rect = Rectangle(id="a", page=2, x=1, y=2, width=3, height=4, unit=RectUnit.PDF, label="Total")
        assert rect.to_dict() == {
            "id": "a",
            "page": 2,
            "x": 1,
            "y": 2,
            "width": 3,
            "height": 4,
            "unit": "pdf",
            "label": "Total",
            "color": None,
        }

    def test_from_dict_fills_missing_id(self):
        rect = Rectangle.from_dict(
            {"x": 1, "y": 1, "width": 2, "height": 1},
            id_generator=SequentialIdGenerator(),
        )
        assert rect.id == "rect-1"
        assert rect.page == 1
        assert rect.unit is RectUnit.INCH

    def test_from_dict_missing_coordinate(self):
        with pytest.raises(KeyError):
            Rectangle.from_dict({"id": "a", "x": 1, "y": 1, "width": 2})

    def test_from_dict_reads_to_dict_output(self):
        rect = Rectangle(id="a", page=3, x=0.1, y=0.2, width=0.3, height=0.4, unit=RectUnit.RATIO, color="#ff9900")
        assert Rectangle.from_dict(rect.to_dict()) == rect


class TestIdGenerators:
    """Test id generation."""

    def test_sequential(self):
        gen = SequentialIdGenerator(prefix="box", start=5)
        assert [gen(), gen(), gen()] == ["box-5", "box-6", "box-7"]

    def test_uuid_ids_are_unique(self):
        ids = {uuid_id_generator() for _ in range(100)}
        assert len(ids) == 100


def test_page_bounds_degenerate():
    assert not PageBounds(left=0, right=10, bottom=0, top=10).is_degenerate
    assert PageBounds(left=10, right=0, bottom=0, top=10).is_degenerate
    assert PageBounds(left=0, right=10, bottom=10, top=0).is_degenerate


def test_viewport_box_to_dict():
    box = ViewportBox(left=1, top=2, width=3, height=4)
    assert box.to_dict() == {"left": 1, "top": 2, "width": 3, "height": 4}
