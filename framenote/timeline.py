"""
Timeline pointer interaction.

A small drag-state machine turning pointer events on the track into one of:
seek, create a range, move the range start, move the range end. Pointer
positions are fractions of the track width and are mapped to seconds
through the current ``ZoomWindow``.

States::

    idle --down on track-------> creating
    idle --down on left handle--> extending_start
    idle --down on right handle-> extending_end
    any  --up / cancel---------> idle

Pointer-up is the only commit point.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .geometry import MIN_SPAN_FRACTION, ZoomWindow
from .logging import get_logger
from .models import TimeRange

logger = get_logger(__name__)

# Pointer travel below this many seconds is a click (seek), not a drag
CLICK_THRESHOLD = 0.1

# A resized range never gets narrower than this
MIN_RANGE_WIDTH = 0.05


class DragMode(str, Enum):
    IDLE = "idle"
    CREATING = "creating"
    EXTENDING_START = "extending_start"
    EXTENDING_END = "extending_end"


class Handle(str, Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class DragState:
    mode: DragMode = DragMode.IDLE
    anchor: Optional[float] = None
    provisional: Optional[TimeRange] = None
    hover: Optional[float] = None


@dataclass(frozen=True)
class TimelineCommit:
    """Outcome of a pointer-up.

    ``selection`` is None for a plain seek, in which case the existing
    selection range is left untouched.
    """
    seek_to: float
    selection: Optional[TimeRange] = None


class TimelineInteraction:
    """Drag state machine plus zoom stepping for one timeline track."""

    def __init__(self, window: ZoomWindow):
        self.window = window
        self.state = DragState()

    @property
    def mode(self) -> DragMode:
        return self.state.mode

    @property
    def is_dragging(self) -> bool:
        return self.state.mode is not DragMode.IDLE

    def time_at(self, fraction: float) -> float:
        return self.window.from_fraction(fraction)

    # -- pointer events -----------------------------------------------------

    def pointer_down(self, fraction: float) -> None:
        """Press on the empty track: start creating a range."""
        if not self.window.enabled or self.is_dragging:
            return
        t = self.time_at(fraction)
        self.state = DragState(mode=DragMode.CREATING, anchor=t, hover=t)

    def pointer_down_handle(self, handle: Handle, selection: Optional[TimeRange]) -> None:
        """Press on a drag handle of the current selection range."""
        if not self.window.enabled or self.is_dragging or selection is None:
            return
        mode = DragMode.EXTENDING_START if handle is Handle.START else DragMode.EXTENDING_END
        self.state = DragState(mode=mode, provisional=selection)

    def pointer_move(self, fraction: float) -> Optional[TimeRange]:
        """Track the pointer; returns the provisional range, if any."""
        t = self.time_at(fraction)
        state = self.state
        provisional = state.provisional

        if state.mode is DragMode.CREATING:
            provisional = TimeRange.spanning(state.anchor, t)
        elif state.mode is DragMode.EXTENDING_START:
            fixed_end = state.provisional.end
            new_start = max(0.0, min(t, fixed_end - MIN_RANGE_WIDTH))
            provisional = TimeRange(new_start, fixed_end)
        elif state.mode is DragMode.EXTENDING_END:
            fixed_start = state.provisional.start
            new_end = min(self.window.duration, max(t, fixed_start + MIN_RANGE_WIDTH))
            provisional = TimeRange(fixed_start, new_end)

        self.state = replace(state, provisional=provisional, hover=t)
        return provisional

    def pointer_up(self, fraction: float) -> Optional[TimelineCommit]:
        """Release the pointer and commit. Always returns to idle."""
        state = self.state
        self.state = DragState(hover=state.hover)

        if state.mode is DragMode.CREATING:
            t = self.time_at(fraction)
            if abs(t - state.anchor) < CLICK_THRESHOLD:
                return TimelineCommit(seek_to=t)
            selection = TimeRange.spanning(state.anchor, t)
            logger.debug("Range created: %.3f-%.3f", selection.start, selection.end)
            return TimelineCommit(seek_to=selection.start, selection=selection)

        if state.mode in (DragMode.EXTENDING_START, DragMode.EXTENDING_END):
            selection = state.provisional
            logger.debug("Range resized: %.3f-%.3f", selection.start, selection.end)
            return TimelineCommit(seek_to=selection.start, selection=selection)

        return None

    def cancel(self) -> None:
        """Abandon any drag in progress without committing."""
        self.state = DragState()

    # -- zoom ---------------------------------------------------------------

    def wheel(self, delta_y: float, modifier: bool, playhead: float) -> bool:
        """Wheel with Ctrl/Cmd steps the zoom level. Returns True when handled."""
        if not modifier:
            return False
        if delta_y < 0:
            self.zoom_in(playhead)
        else:
            self.zoom_out(playhead)
        return True

    def zoom_in(self, playhead: float) -> None:
        self.window = self.window.zoomed_in(playhead)

    def zoom_out(self, playhead: float) -> None:
        self.window = self.window.zoomed_out(playhead)

    def reset_zoom(self) -> None:
        self.window = self.window.reset()

    def follow_playhead(self, playhead: float) -> None:
        self.window = self.window.following(playhead)

    def set_duration(self, duration: float) -> None:
        self.window = self.window.with_duration(duration)
        self.state = DragState()

    # -- rendering helpers --------------------------------------------------

    def display_range(self, selection: Optional[TimeRange]) -> Optional[TimeRange]:
        """Range to draw: the provisional one while dragging, else the selection."""
        if self.state.provisional is not None:
            return self.state.provisional
        return selection

    def selection_span(self, selection: Optional[TimeRange]) -> Optional[tuple[float, float]]:
        """Track-fraction placement of the displayed range with a minimum width."""
        shown = self.display_range(selection)
        if shown is None:
            return None
        return self.window.span(shown, min_width=MIN_SPAN_FRACTION)

    def playhead_fraction(self, playhead: float) -> Optional[float]:
        if not self.window.contains(playhead):
            return None
        return self.window.to_fraction(playhead)
