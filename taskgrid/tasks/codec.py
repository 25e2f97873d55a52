"""
Status <-> text colour codec.

A task's status is stored as the foreground colour of its line. Decoding is a
priority-ordered nearest-match classifier: several colours map to the same
status and the rule order is observable where tolerance windows overlap.
Encoding always emits the canonical colour of a status.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, NamedTuple

from taskgrid.config import COLOR_TOLERANCE
from taskgrid.tasks.models import TaskStatus


class Color(NamedTuple):
    """RGB colour with channels normalized to [0, 1]."""

    red: float = 0.0
    green: float = 0.0
    blue: float = 0.0

    @classmethod
    def from_rgb255(cls, red: int, green: int, blue: int) -> Color:
        return cls(red / 255.0, green / 255.0, blue / 255.0)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any] | None) -> Color | None:
        """Build from a Sheets API colour dict (zero channels are omitted there)."""
        if payload is None:
            return None
        return cls(
            float(payload.get("red", 0.0)),
            float(payload.get("green", 0.0)),
            float(payload.get("blue", 0.0)),
        )

    def to_api(self) -> dict[str, float]:
        return {"red": self.red, "green": self.green, "blue": self.blue}


COMPLETE_COLOR = Color.from_rgb255(52, 168, 83)
PENDING_COLOR = Color.from_rgb255(231, 149, 63)
TODO_COLOR = Color(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class ToleranceRule:
    """Matches colours within `tolerance` of `target` on every channel."""

    name: str
    status: TaskStatus
    target: Color
    tolerance: float

    def matches(self, color: Color) -> bool:
        return all(
            abs(observed - wanted) < self.tolerance
            for observed, wanted in zip(color, self.target, strict=True)
        )


@dataclass(frozen=True)
class DominantChannelRule:
    """Matches colours where one channel is high and the other two are low."""

    name: str
    status: TaskStatus
    channel: str
    high: float = 0.8
    low: float = 0.3

    def matches(self, color: Color) -> bool:
        channels = color._asdict()
        dominant = channels.pop(self.channel)
        return dominant > self.high and all(value < self.low for value in channels.values())


@dataclass(frozen=True)
class ColorStatusMapping:
    """Ordered classification rules plus canonical colours for encoding."""

    rules: Sequence[ToleranceRule | DominantChannelRule]
    canonical: Mapping[TaskStatus, Color] = field(
        default_factory=lambda: {
            TaskStatus.COMPLETE: COMPLETE_COLOR,
            TaskStatus.PENDING: PENDING_COLOR,
            TaskStatus.TODO: TODO_COLOR,
        }
    )
    default: TaskStatus = TaskStatus.TODO

    def classify(self, color: Color | None) -> TaskStatus:
        """First matching rule wins; no colour or no match is the default status."""
        if color is None:
            return self.default
        for rule in self.rules:
            if rule.matches(color):
                return rule.status
        return self.default

    def color_for(self, status: TaskStatus | str | None) -> Color:
        return self.canonical.get(TaskStatus.parse(status), TODO_COLOR)


def build_mapping(tolerance: float = COLOR_TOLERANCE) -> ColorStatusMapping:
    """Rules in priority order: complete, pending, legacy green, legacy red."""
    return ColorStatusMapping(
        rules=(
            ToleranceRule("complete", TaskStatus.COMPLETE, COMPLETE_COLOR, tolerance),
            ToleranceRule("pending", TaskStatus.PENDING, PENDING_COLOR, tolerance),
            DominantChannelRule("legacy-pure-green", TaskStatus.COMPLETE, "green"),
            DominantChannelRule("legacy-pure-red", TaskStatus.PENDING, "red"),
        )
    )


@lru_cache(maxsize=1)
def default_mapping() -> ColorStatusMapping:
    return build_mapping(COLOR_TOLERANCE)


def classify(color: Color | None) -> TaskStatus:
    return default_mapping().classify(color)


def color_for(status: TaskStatus | str | None) -> Color:
    return default_mapping().color_for(status)
