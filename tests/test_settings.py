"""Unit tests for environment-driven settings."""

import logging

import pytest

from bbox_overlay.config import get_app_name, get_app_version, get_default_scale, get_default_unit
from bbox_overlay.config.settings import clamp_scale
from bbox_overlay.models.rectangle import RectUnit


@pytest.mark.parametrize("value, expected", [(0.1, 0.5), (0.5, 0.5), (1.5, 1.5), (3.0, 3.0), (7, 3.0)])
def test_clamp_scale(value, expected):
    assert clamp_scale(value) == expected


def test_default_scale_unset(monkeypatch):
    monkeypatch.delenv("BBOX_OVERLAY_SCALE", raising=False)
    assert get_default_scale() == 1.5
    assert get_default_scale(2.0) == 2.0


def test_default_scale_from_env(monkeypatch):
    monkeypatch.setenv("BBOX_OVERLAY_SCALE", "2.25")
    assert get_default_scale(1.0) == 2.25


def test_default_scale_out_of_range(monkeypatch, caplog):
    monkeypatch.setenv("BBOX_OVERLAY_SCALE", "9")
    with caplog.at_level(logging.WARNING):
        assert get_default_scale() == 3.0
    assert "out of range" in caplog.text


def test_default_scale_invalid(monkeypatch):
    monkeypatch.setenv("BBOX_OVERLAY_SCALE", "large")
    assert get_default_scale(2.0) == 2.0


def test_default_unit(monkeypatch):
    monkeypatch.delenv("BBOX_OVERLAY_UNIT", raising=False)
    assert get_default_unit() is RectUnit.INCH
    assert get_default_unit(RectUnit.PDF) is RectUnit.PDF
    monkeypatch.setenv("BBOX_OVERLAY_UNIT", "Ratio")
    assert get_default_unit() is RectUnit.RATIO
    monkeypatch.setenv("BBOX_OVERLAY_UNIT", "furlong")
    assert get_default_unit(RectUnit.PDF) is RectUnit.PDF


def test_app_identity():
    assert get_app_name() == "bbox-overlay"
    assert get_app_version() == "0.1.0"
