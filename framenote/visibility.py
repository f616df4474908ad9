"""
Which annotation drawing is composited onto the video at a given time.

Resolution runs on every playback time update, so the drawing document is
rebuilt only when the set of contributing annotations changes. The set is
summarised by a signature (sorted, comma-joined annotation ids); consecutive
updates with the same signature return the very same document object.
"""

from typing import Iterable, Optional

from .logging import get_logger
from .models import Annotation
from .surface import DOCUMENT_VERSION

logger = get_logger(__name__)

# Media elements report time with some jitter around range edges
TIME_EPSILON = 0.1


def is_time_in_range(t: float, annotation: Annotation, epsilon: float = TIME_EPSILON) -> bool:
    return annotation.range.contains(t, tolerance=epsilon)


def visible_signature(
    current_time: float,
    active_annotation_id: Optional[str],
    annotations: Iterable[Annotation],
    drawing_mode: bool,
) -> str:
    """Signature of the annotations whose drawings should be shown.

    An empty string means nothing is shown.
    """
    if drawing_mode:
        return ""

    if active_annotation_id:
        for ann in annotations:
            if ann.id == active_annotation_id:
                if ann.has_drawing() and is_time_in_range(current_time, ann):
                    return ann.id
                return ""
        return ""

    ids = sorted(
        ann.id for ann in annotations
        if ann.has_drawing() and is_time_in_range(current_time, ann)
    )
    return ",".join(ids)


def merge_drawings(annotations: list[Annotation]) -> Optional[dict]:
    """Drawing document for a list of visible annotations.

    A single drawing is returned verbatim to keep its original structure;
    several are merged by concatenating their object lists in list order.
    """
    if not annotations:
        return None
    if len(annotations) == 1:
        return annotations[0].drawing

    objects = []
    for ann in annotations:
        objects.extend((ann.drawing or {}).get("objects", []))
    return {"version": DOCUMENT_VERSION, "objects": objects}


def _same_objects(current: list, previous: Optional[tuple]) -> bool:
    if previous is None or len(current) != len(previous):
        return False
    return all(a is b for a, b in zip(current, previous))


class DrawingVisibilityResolver:
    """Memoizing resolver of the overlay drawing."""

    def __init__(self):
        self._signature: str = ""
        self._source: Optional[tuple] = None
        self._document: Optional[dict] = None
        self.rebuilds = 0

    def resolve(
        self,
        current_time: float,
        active_annotation_id: Optional[str],
        annotations: list[Annotation],
        drawing_mode: bool,
    ) -> Optional[dict]:
        """Drawing document to composite at ``current_time``, or None.

        Args:
            current_time: Playback position in seconds (may jump backwards)
            active_annotation_id: Explicitly selected annotation, if any
            annotations: Working set, ordered by start time
            drawing_mode: True while the pen tool owns the canvas
        """
        signature = visible_signature(current_time, active_annotation_id, annotations, drawing_mode)
        if not signature:
            self._signature, self._source, self._document = "", None, None
            return None

        # Same ids but edited annotations still need a rebuild
        ids = set(signature.split(","))
        visible = [ann for ann in annotations if ann.id in ids]
        if signature == self._signature and _same_objects(visible, self._source):
            return self._document

        self._signature = signature
        self._source = tuple(visible)
        self._document = merge_drawings(visible)
        self.rebuilds += 1
        logger.debug("Overlay drawing rebuilt for [%s]", signature)
        return self._document

    def invalidate(self) -> None:
        self._signature, self._source, self._document = "", None, None
