"""
Editor UI state as one immutable value.

Every user action is a pure function ``EditorState -> EditorState``. Keeping
the fields together lets each transition maintain the cross-field rules:

- the pen tool and an explicitly selected annotation are never both active;
- the playhead and the selection range stay inside ``[0, duration]``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from .models import Annotation, TimeRange


class Tool(str, Enum):
    POINTER = "pointer"
    PEN = "pen"


@dataclass(frozen=True)
class EditorState:
    video_id: Optional[str] = None
    duration: float = 0.0
    current_time: float = 0.0
    playing: bool = False
    tool: Tool = Tool.POINTER
    selection: Optional[TimeRange] = None
    active_annotation_id: Optional[str] = None

    @property
    def drawing_mode(self) -> bool:
        return self.tool is Tool.PEN

    def clamp_time(self, t: float) -> float:
        return min(max(t, 0.0), self.duration)


def video_loaded(state: EditorState, video_id: str) -> EditorState:
    """Fresh state for a newly opened video."""
    return EditorState(video_id=video_id)


def duration_changed(state: EditorState, duration: float) -> EditorState:
    duration = max(0.0, duration)
    selection = state.selection.clamped(duration) if state.selection else None
    return replace(
        state,
        duration=duration,
        current_time=min(max(state.current_time, 0.0), duration),
        selection=selection,
    )


def time_updated(state: EditorState, t: float) -> EditorState:
    return replace(state, current_time=state.clamp_time(t))


def seeked(state: EditorState, t: float) -> EditorState:
    return replace(state, current_time=state.clamp_time(t))


def play_toggled(state: EditorState) -> EditorState:
    return replace(state, playing=not state.playing)


def tool_changed(state: EditorState, tool: Tool) -> EditorState:
    """Entering the pen pauses playback and drops the explicit selection."""
    if tool is Tool.PEN:
        return replace(state, tool=tool, playing=False, active_annotation_id=None)
    return replace(state, tool=tool)


def range_selected(state: EditorState, selection: Optional[TimeRange]) -> EditorState:
    """A new range pauses playback and deselects any specific annotation."""
    if selection is None:
        return replace(state, selection=None)
    return replace(
        state,
        selection=selection.clamped(state.duration),
        playing=False,
        active_annotation_id=None,
    )


def annotation_selected(state: EditorState, annotation: Annotation) -> EditorState:
    """Focus an annotation: seek to it, adopt its range, leave the pen."""
    return replace(
        state,
        active_annotation_id=annotation.id,
        playing=False,
        current_time=state.clamp_time(annotation.start),
        selection=annotation.range.clamped(state.duration),
        tool=Tool.POINTER,
    )


def annotation_created(state: EditorState, annotation: Annotation) -> EditorState:
    return replace(
        annotation_selected(state, annotation),
        playing=state.playing,
    )


def annotations_removed(state: EditorState, ids: Iterable[str]) -> EditorState:
    if state.active_annotation_id in set(ids):
        return replace(state, active_annotation_id=None)
    return state


def annotation_deselected(state: EditorState) -> EditorState:
    return replace(state, active_annotation_id=None)


def selection_start_marked(state: EditorState) -> EditorState:
    """Selection starts at the playhead; the end never falls before it."""
    start = state.current_time
    end = max(start, state.selection.end) if state.selection else start
    return replace(range_selected(state, TimeRange(start, end)), playing=state.playing)


def selection_end_marked(state: EditorState) -> EditorState:
    """Selection ends at the playhead and playback pauses."""
    end = state.current_time
    start = min(state.selection.start, end) if state.selection else end
    return range_selected(state, TimeRange(start, end))
