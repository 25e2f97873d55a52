"""
Tests for the status <-> colour codec.

Covers canonical colours, per-channel tolerance windows, the legacy
dominant-channel heuristics and rule priority.
"""

import pytest

from taskgrid.tasks.codec import (
    COMPLETE_COLOR,
    PENDING_COLOR,
    TODO_COLOR,
    Color,
    ToleranceRule,
    build_mapping,
    classify,
    color_for,
)
from taskgrid.tasks.models import TaskStatus


def shifted(color: Color, delta: float) -> Color:
    return Color(*(min(1.0, max(0.0, channel + delta)) for channel in color))


class TestCanonicalColors:
    def test_canonical_values(self):
        assert COMPLETE_COLOR == Color(52 / 255, 168 / 255, 83 / 255)
        assert PENDING_COLOR == Color(231 / 255, 149 / 255, 63 / 255)
        assert TODO_COLOR == Color(0.0, 0.0, 0.0)

    @pytest.mark.parametrize("status", list(TaskStatus))
    def test_color_for_classifies_back(self, status):
        assert classify(color_for(status)) == status

    def test_color_for_accepts_strings(self):
        assert color_for("complete") == COMPLETE_COLOR
        assert color_for("PENDING") == PENDING_COLOR
        assert color_for("unknown") == TODO_COLOR
        assert color_for(None) == TODO_COLOR


class TestToleranceWindows:
    """Within half the tolerance classifies; beyond twice the tolerance does not."""

    def test_within_half_tolerance(self):
        mapping = build_mapping(0.15)
        assert mapping.classify(shifted(COMPLETE_COLOR, 0.07)) == TaskStatus.COMPLETE
        assert mapping.classify(shifted(COMPLETE_COLOR, -0.07)) == TaskStatus.COMPLETE
        assert mapping.classify(shifted(PENDING_COLOR, 0.07)) == TaskStatus.PENDING
        assert mapping.classify(shifted(PENDING_COLOR, -0.07)) == TaskStatus.PENDING

    def test_beyond_twice_tolerance(self):
        mapping = build_mapping(0.15)
        far_complete = Color(COMPLETE_COLOR.red + 0.3, COMPLETE_COLOR.green, COMPLETE_COLOR.blue)
        far_pending = Color(PENDING_COLOR.red, PENDING_COLOR.green, PENDING_COLOR.blue + 0.3)
        assert mapping.classify(far_complete) == TaskStatus.TODO
        assert mapping.classify(far_pending) == TaskStatus.TODO

    def test_tolerance_bound_is_strict(self):
        rule = ToleranceRule("grey", TaskStatus.COMPLETE, Color(0.5, 0.5, 0.5), 0.25)
        assert rule.matches(Color(0.74, 0.5, 0.5))
        assert not rule.matches(Color(0.75, 0.5, 0.5))

    def test_wider_tolerance_accepts_more(self):
        drifted = Color(COMPLETE_COLOR.red + 0.2, COMPLETE_COLOR.green, COMPLETE_COLOR.blue)
        assert build_mapping(0.15).classify(drifted) == TaskStatus.TODO
        assert build_mapping(0.25).classify(drifted) == TaskStatus.COMPLETE


class TestLegacyHeuristics:
    def test_pure_green_is_complete(self):
        assert classify(Color(0.0, 1.0, 0.0)) == TaskStatus.COMPLETE

    def test_pure_red_is_pending(self):
        assert classify(Color(1.0, 0.0, 0.0)) == TaskStatus.PENDING

    def test_heuristic_thresholds(self):
        # green must exceed 0.8 and the others stay below 0.3
        assert classify(Color(0.29, 0.81, 0.29)) == TaskStatus.COMPLETE
        assert classify(Color(0.3, 0.9, 0.0)) == TaskStatus.TODO
        assert classify(Color(0.0, 0.8, 0.0)) == TaskStatus.TODO


class TestFallbacks:
    def test_none_is_todo(self):
        assert classify(None) == TaskStatus.TODO

    def test_unrelated_colors_are_todo(self):
        assert classify(Color(0.0, 0.0, 1.0)) == TaskStatus.TODO
        assert classify(Color(0.5, 0.5, 0.5)) == TaskStatus.TODO
        assert classify(Color(1.0, 1.0, 1.0)) == TaskStatus.TODO

    def test_rule_order_complete_before_legacy_red(self):
        # A tolerance wide enough for the complete window to swallow pure red
        mapping = build_mapping(1.0)
        assert mapping.classify(Color(1.0, 0.0, 0.0)) == TaskStatus.COMPLETE


class TestApiColors:
    def test_missing_channels_read_as_zero(self):
        assert Color.from_api({"green": 1.0}) == Color(0.0, 1.0, 0.0)
        assert Color.from_api({}) == Color(0.0, 0.0, 0.0)
        assert Color.from_api(None) is None

    def test_to_api(self):
        assert Color(0.1, 0.2, 0.3).to_api() == {"red": 0.1, "green": 0.2, "blue": 0.3}
