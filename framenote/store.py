"""
In-memory working set of annotations for the loaded video.

The list is kept sorted by range start (stable for ties) and offers a
one-level thread view: top-level annotations and, for each, its replies in
creation order. The store is discarded and reloaded whenever the video
identity changes.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from .logging import get_logger
from .models import Annotation

logger = get_logger(__name__)


@dataclass(frozen=True)
class Thread:
    """A top-level annotation with its direct replies."""
    annotation: Annotation
    replies: tuple


class AnnotationStore:
    """Ordered annotations of one video."""

    def __init__(self, video_id: Optional[str] = None):
        self.video_id = video_id
        self._items: list[Annotation] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._items))

    def __contains__(self, annotation_id: str) -> bool:
        return self.get(annotation_id) is not None

    @property
    def annotations(self) -> list[Annotation]:
        """Snapshot of the working set in start order."""
        return list(self._items)

    def _sort(self) -> None:
        self._items.sort(key=lambda a: a.start)

    def load(self, video_id: str, annotations) -> None:
        """Replace the working set with annotations fetched for ``video_id``."""
        annotations = list(annotations)
        self.video_id = video_id
        self._items = [a for a in annotations if a.video_id == video_id]
        dropped = len(annotations) - len(self._items)
        if dropped:
            logger.warning("Ignored %d annotations of another video", dropped)
        self._sort()

    def reset(self, video_id: Optional[str] = None) -> None:
        self.video_id = video_id
        self._items = []

    def get(self, annotation_id: str) -> Optional[Annotation]:
        for ann in self._items:
            if ann.id == annotation_id:
                return ann
        return None

    def thread_root_id(self, parent_id: str) -> str:
        """Top-level ancestor for a prospective reply to ``parent_id``.

        Replying to a reply attaches to that reply's own parent, keeping
        threads one level deep.
        """
        parent = self.get(parent_id)
        if parent is not None and parent.parent_id:
            return parent.parent_id
        return parent_id

    def add(self, annotation: Annotation) -> Annotation:
        """Insert an annotation, flattening a reply-to-a-reply.

        Returns the annotation as stored.

        Raises:
            ValueError: If it belongs to another video
        """
        if annotation.video_id != self.video_id:
            raise ValueError(
                f"Annotation for video {annotation.video_id[:12]} added to store of {str(self.video_id)[:12]}"
            )
        if annotation.parent_id:
            root = self.thread_root_id(annotation.parent_id)
            if root != annotation.parent_id:
                logger.info("Reply %s re-parented to thread root %s", annotation.id[:8], root[:8])
                annotation = annotation.with_changes(parent_id=root)
        self._items.append(annotation)
        self._sort()
        return annotation

    def replace(self, annotation_id: str, annotation: Annotation) -> Optional[Annotation]:
        """Swap the annotation stored under ``annotation_id`` for a new version."""
        for i, ann in enumerate(self._items):
            if ann.id == annotation_id:
                self._items[i] = annotation
                if ann.id != annotation.id:
                    # Replies keep pointing at the thread under its new id
                    self._items = [
                        r.with_changes(parent_id=annotation.id) if r.parent_id == ann.id else r
                        for r in self._items
                    ]
                self._sort()
                return ann
        return None

    def update(self, annotation_id: str, **changes) -> Annotation:
        """Apply field changes (``text``, ``range``) and return the new version.

        Raises:
            KeyError: If no such annotation is loaded
        """
        current = self.get(annotation_id)
        if current is None:
            raise KeyError(annotation_id)
        updated = current.with_changes(**changes)
        self.replace(annotation_id, updated)
        return updated

    def remove(self, annotation_id: str) -> list[Annotation]:
        """Delete an annotation and its replies. Returns what was removed."""
        removed = [a for a in self._items if a.id == annotation_id or a.parent_id == annotation_id]
        if removed:
            gone = {a.id for a in removed}
            self._items = [a for a in self._items if a.id not in gone]
        return removed

    def top_level(self) -> list[Annotation]:
        return [a for a in self._items if not a.parent_id]

    def replies(self, parent_id: str) -> list[Annotation]:
        return sorted(
            (a for a in self._items if a.parent_id == parent_id),
            key=lambda a: a.created_at,
        )

    def threads(self) -> list[Thread]:
        return [Thread(annotation=a, replies=tuple(self.replies(a.id))) for a in self.top_level()]

    def at_time(self, t: float, tolerance: float = 0.0) -> list[Annotation]:
        return [a for a in self._items if a.range.contains(t, tolerance)]

    def snapshot(self) -> tuple:
        return (self.video_id, tuple(self._items))

    def restore(self, snapshot: tuple) -> None:
        self.video_id, items = snapshot
        self._items = list(items)
