"""
Time geometry of the timeline track.

Maps between seconds and fractions of the track width for a zoom window.
A fraction of 0.0 is the left edge of the visible window and 1.0 its right
edge. All functions are pure; a ``ZoomWindow`` is an immutable value.
"""

import math
from dataclasses import dataclass, replace
from typing import Optional

from .models import TimeRange

# Fixed geometric zoom sequence
ZOOM_LEVELS = (1, 2, 4, 8, 16)

# Spans narrower than this fraction of the track render as point markers
MIN_SPAN_FRACTION = 0.005


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


@dataclass(frozen=True)
class ZoomWindow:
    """
    Visible time-subrange of the timeline.

    The window always has width ``duration / level`` and never extends past
    ``[0, duration]``: when centring would push it past an edge it is shifted
    back inside instead of shrinking.
    """
    duration: float
    level: int = 1
    center: float = 0.0

    def __post_init__(self):
        if self.level not in ZOOM_LEVELS:
            raise ValueError(f"Zoom level must be one of {ZOOM_LEVELS}, got {self.level}")
        if self.duration < 0:
            raise ValueError("Duration cannot be negative")

    @property
    def visible_duration(self) -> float:
        return self.duration / self.level

    @property
    def visible_start(self) -> float:
        naive = max(0.0, self.center - self.visible_duration / 2)
        return min(naive, self.duration - self.visible_duration)

    @property
    def visible_end(self) -> float:
        return self.visible_start + self.visible_duration

    @property
    def enabled(self) -> bool:
        """A zero-length video disables every interaction."""
        return self.duration > 0

    def contains(self, t: float) -> bool:
        return self.visible_start <= t <= self.visible_end

    def to_fraction(self, t: float) -> float:
        """Position of ``t`` as a fraction of the track width.

        Only meaningful while ``contains(t)``; callers hide elements outside
        the window instead of drawing them at a clamped position.
        """
        if not self.enabled:
            return 0.0
        return (t - self.visible_start) / self.visible_duration

    def from_fraction(self, fraction: float) -> float:
        """Time under a pointer at ``fraction`` of the track width."""
        if not self.enabled:
            return 0.0
        fraction = clamp(fraction, 0.0, 1.0)
        return clamp(self.visible_start + fraction * self.visible_duration, 0.0, self.duration)

    def span(self, time_range: TimeRange, min_width: float = 0.0) -> Optional[tuple[float, float]]:
        """Left edge and width, as track fractions, of the visible part of a range.

        Returns None when the range lies wholly outside the window.
        """
        if not self.enabled:
            return None
        if time_range.end < self.visible_start or time_range.start > self.visible_end:
            return None
        left = self.to_fraction(max(time_range.start, self.visible_start))
        right = self.to_fraction(min(time_range.end, self.visible_end))
        return left, max(right - left, min_width)

    def marker_span(self, time_range: TimeRange) -> Optional[tuple[float, float, bool]]:
        """Like ``span`` plus whether the range is wide enough to draw as a bar."""
        result = self.span(time_range)
        if result is None:
            return None
        left, width = result
        return left, width, width > MIN_SPAN_FRACTION

    # -- zoom transitions ---------------------------------------------------

    def zoomed_in(self, playhead: float) -> "ZoomWindow":
        idx = ZOOM_LEVELS.index(self.level)
        if idx == len(ZOOM_LEVELS) - 1:
            return self
        return replace(self, level=ZOOM_LEVELS[idx + 1], center=playhead)

    def zoomed_out(self, playhead: float) -> "ZoomWindow":
        idx = ZOOM_LEVELS.index(self.level)
        if idx == 0:
            return self
        return replace(self, level=ZOOM_LEVELS[idx - 1], center=playhead)

    def reset(self) -> "ZoomWindow":
        return replace(self, level=1, center=self.duration / 2)

    def following(self, playhead: float) -> "ZoomWindow":
        """Re-centre on the playhead when zoomed playback leaves the window."""
        if self.level > 1 and not self.contains(playhead):
            return replace(self, center=playhead)
        return self

    def with_duration(self, duration: float) -> "ZoomWindow":
        return ZoomWindow(duration=duration, level=1, center=duration / 2)


def format_time(seconds: float) -> str:
    """Format seconds as ``m:ss.mmm`` for precise range display."""
    mins = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    ms = math.floor((seconds % 1) * 1000)
    return f"{mins}:{secs:02d}.{ms:03d}"


def format_time_short(seconds: float) -> str:
    """Format seconds as ``m:ss``."""
    mins = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    return f"{mins}:{secs:02d}"


def format_range_label(start: float, end: float) -> str:
    """Display timestamp for an annotation: ``m:ss`` or ``m:ss - m:ss``."""
    if start == end:
        return format_time_short(start)
    return f"{format_time_short(start)} - {format_time_short(end)}"
