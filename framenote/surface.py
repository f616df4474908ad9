"""
Drawing surface overlaid on the video.

The surface is a single mutable canvas with two modes. In ``EDITABLE`` mode
the user draws fresh freehand strokes. In ``LOCKED`` mode it only plays back
stored annotation drawings and nothing on it can be changed. Exactly one mode
is active at any time.
"""

import copy
from enum import Enum
from typing import Optional

from .errors import FrameNoteError
from .logging import get_logger

logger = get_logger(__name__)

DOCUMENT_VERSION = "5.3.0"


class SurfaceMode(str, Enum):
    EDITABLE = "editable"
    LOCKED = "locked"


class SurfaceModeError(FrameNoteError):
    """Mutation attempted while the surface is locked for playback."""


def empty_document() -> dict:
    return {"version": DOCUMENT_VERSION, "objects": []}


class DrawingSurface:
    """Canvas state owned by the controller."""

    def __init__(self):
        self.mode = SurfaceMode.LOCKED
        self._objects: list = []
        self._shown: Optional[dict] = None
        self.render_count = 0

    @property
    def can_mutate(self) -> bool:
        return self.mode is SurfaceMode.EDITABLE

    @property
    def objects(self) -> tuple:
        return tuple(self._objects)

    def enter_editable(self) -> None:
        """Switch to free drawing on a blank canvas."""
        self.mode = SurfaceMode.EDITABLE
        self._shown = None
        self._objects = []
        self.render_count += 1
        logger.debug("Surface editable")

    def lock(self) -> None:
        """Switch to read-only playback. Strokes drawn so far stay visible."""
        self.mode = SurfaceMode.LOCKED
        logger.debug("Surface locked")

    def show(self, document: Optional[dict]) -> bool:
        """Display a stored drawing (or nothing) in locked mode.

        Returns True when the canvas was actually reloaded. Passing the same
        document object that is already shown is a no-op.
        """
        if self.can_mutate:
            return False
        if document is self._shown and (document is not None or not self._objects):
            return False
        self._shown = document
        self._objects = list(document.get("objects", [])) if document else []
        self.render_count += 1
        return True

    def add_object(self, obj: dict) -> None:
        if not self.can_mutate:
            raise SurfaceModeError("Canvas is locked: enter drawing mode first")
        self._objects.append(copy.deepcopy(obj))

    def remove_object(self, index: int) -> dict:
        if not self.can_mutate:
            raise SurfaceModeError("Canvas is locked: enter drawing mode first")
        return self._objects.pop(index)

    def clear(self) -> None:
        self._objects = []
        self._shown = None
        self.render_count += 1

    def to_document(self) -> Optional[dict]:
        """Serialize the user's fresh drawing, or None when there is none.

        Drawings shown for playback are not the user's and are never exported.
        """
        if self._shown is not None or not self._objects:
            return None
        document = empty_document()
        document["objects"] = copy.deepcopy(self._objects)
        return document
