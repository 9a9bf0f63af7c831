import pytest

from terrainview.overlay import Overlay


def make_overlay():
    drawn = []
    return Overlay(drawer=drawn.append), drawn


def test_text_before_frame_raises():
    overlay, _ = make_overlay()
    with pytest.raises(RuntimeError):
        overlay.text("hello")


def test_render_without_frame_raises():
    overlay, _ = make_overlay()
    with pytest.raises(RuntimeError):
        overlay.render()


def test_render_joins_lines_and_draws_them():
    overlay, drawn = make_overlay()
    overlay.begin_frame()
    overlay.text("first")
    overlay.text("second")
    result = overlay.render()
    assert result == "first\nsecond"
    assert drawn == ["first\nsecond"]


def test_render_closes_the_frame():
    overlay, _ = make_overlay()
    overlay.begin_frame()
    overlay.render()
    with pytest.raises(RuntimeError):
        overlay.text("late")


def test_begin_frame_discards_previous_lines():
    overlay, drawn = make_overlay()
    overlay.begin_frame()
    overlay.text("old")
    overlay.render()
    overlay.begin_frame()
    overlay.text("new")
    assert overlay.render() == "new"
    assert drawn == ["old", "new"]


def test_non_string_text_is_converted():
    overlay, _ = make_overlay()
    overlay.begin_frame()
    overlay.text(42)
    assert overlay.lines == ["42"]