import math

import pytest

from chanviz.colors import (
    OPEN_DURATION_MS,
    PICK_DURATION_MS,
    SEGMENT_COLOURS,
    SPECTRAL_11,
    WHEEL_COLOURS,
    WHEEL_INNER_RADIUS,
    WHEEL_OUTER_RADIUS,
    ColorAssignment,
    ColorWheelController,
    swatch_anchor,
    wheel_slices,
)


class TestColorAssignment:
    def test_starts_with_segment_colours(self):
        colors = ColorAssignment()
        assert colors.to_dict() == SEGMENT_COLOURS
        assert colors.phenotype_keys() == []

    def test_lazy_assignment_is_stable(self):
        colors = ColorAssignment()
        key = colors.assign_phenotype("DS")
        assert key == "DSColour"
        first = colors[key]
        assert first == SPECTRAL_11[0]
        colors.assign_phenotype("GEFS+")
        colors.assign_phenotype("DS")
        assert colors[key] == first
        assert colors["GEFS+Colour"] == SPECTRAL_11[1]

    def test_palette_cycles_after_eleven(self):
        colors = ColorAssignment()
        for i in range(12):
            colors.assign_phenotype(f"P{i}")
        assert colors["P11Colour"] == SPECTRAL_11[0]

    def test_manual_color_is_not_reassigned(self):
        colors = ColorAssignment()
        colors.assign_phenotype("DS")
        colors.set("DSColour", "#123456")
        colors.assign_phenotype("DS")
        assert colors["DSColour"] == "#123456"


def test_swatch_anchor():
    assert swatch_anchor(0) == (20, 30)
    assert swatch_anchor(2) == (20, 110)
    assert swatch_anchor(3) == (280, 30)
    assert swatch_anchor(5) == (280, 70)


def test_wheel_slices_cover_the_circle():
    slices = wheel_slices()
    assert len(slices) == len(WHEEL_COLOURS) == 12
    assert slices[0].start_angle == 0
    assert slices[-1].end_angle == pytest.approx(2 * math.pi)
    assert all(s.outer_radius == WHEEL_OUTER_RADIUS for s in slices)


class TestColorWheelController:
    def test_starts_closed(self):
        wheel = ColorWheelController()
        assert not wheel.is_open
        assert wheel.target_key is None

    def test_click_swatch_opens_and_animates(self):
        wheel = ColorWheelController()
        wheel.click_swatch(1, "S4Colour")
        assert wheel.is_open
        assert wheel.target_key == "S4Colour"
        assert wheel.anchor == (20, 70)
        assert wheel.transition.duration_ms == OPEN_DURATION_MS
        assert wheel.transition.frame(0)[0].outer_radius == WHEEL_INNER_RADIUS
        assert wheel.slices()[0].outer_radius == WHEEL_OUTER_RADIUS

    def test_click_other_swatch_rebinds(self):
        wheel = ColorWheelController()
        wheel.click_swatch(0, "S1S3Colour")
        wheel.click_swatch(3, "DSColour")
        assert wheel.is_open
        assert wheel.target_key == "DSColour"
        assert wheel.anchor == (280, 30)

    def test_click_slice_writes_color_and_stays_open(self):
        colors = ColorAssignment()
        wheel = ColorWheelController()
        wheel.click_swatch(2, "S5S6Colour")
        color = wheel.click_slice(4, colors)
        assert color == WHEEL_COLOURS[4]
        assert colors["S5S6Colour"] == WHEEL_COLOURS[4]
        assert wheel.is_open
        assert wheel.transition.duration_ms == PICK_DURATION_MS

    @pytest.mark.parametrize("index", [-1, 12])
    def test_click_slice_outside_wheel(self, index):
        colors = ColorAssignment()
        wheel = ColorWheelController()
        wheel.click_swatch(1, "S4Colour")
        with pytest.raises(ValueError, match="0-11"):
            wheel.click_slice(index, colors)
        assert colors["S4Colour"] == SEGMENT_COLOURS["S4Colour"]

    def test_click_slice_while_closed(self):
        with pytest.raises(RuntimeError):
            ColorWheelController().click_slice(0, ColorAssignment())

    def test_close_resets(self):
        wheel = ColorWheelController()
        wheel.click_swatch(0, "S1S3Colour")
        wheel.close()
        assert not wheel.is_open
        assert wheel.anchor is None
        assert wheel.transition is None


def test_transition_frames_interpolate_and_clamp():
    wheel = ColorWheelController()
    wheel.click_swatch(0, "S1S3Colour")
    transition = wheel.transition
    middle = transition.frame(0.5)[0].outer_radius
    assert middle == pytest.approx((WHEEL_INNER_RADIUS + WHEEL_OUTER_RADIUS) / 2)
    assert transition.frame(2.0) == transition.final
