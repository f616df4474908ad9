"""
Annotation data model.

Times are float seconds as reported by the media element. A range whose start
equals its end is a point annotation, rendered as a marker rather than a span.
Drawing payloads are kept as the serialized vector document produced by the
canvas (``{"version": ..., "objects": [...]}``) and never interpreted here.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .errors import ValidationError


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class AnnotationKind(str, Enum):
    """What the annotation carries."""
    COMMENT = "comment"
    DRAWING = "drawing"


class AttachmentType(str, Enum):
    IMAGE = "image"
    FILE = "file"


@dataclass(frozen=True)
class TimeRange:
    """Closed interval ``[start, end]`` in seconds."""
    start: float
    end: float

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after end {self.end}")

    @classmethod
    def point(cls, t: float) -> "TimeRange":
        return cls(t, t)

    @classmethod
    def spanning(cls, a: float, b: float) -> "TimeRange":
        """Range covering two times given in either order."""
        return cls(min(a, b), max(a, b))

    @property
    def length(self) -> float:
        return self.end - self.start

    def is_point(self) -> bool:
        return self.start == self.end

    def contains(self, t: float, tolerance: float = 0.0) -> bool:
        return self.start - tolerance <= t <= self.end + tolerance

    def clamped(self, duration: float) -> "TimeRange":
        """Copy of this range clamped to ``[0, duration]``."""
        start = min(max(self.start, 0.0), duration)
        end = min(max(self.end, 0.0), duration)
        return TimeRange(start, end)


@dataclass(frozen=True)
class User:
    id: str
    name: str
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name}
        if self.created_at:
            data["created_at"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(id=str(data["id"]), name=data["name"], created_at=data.get("created_at"))


@dataclass(frozen=True)
class Attachment:
    """File attached to an annotation, inlined as a base64 data URI."""
    id: str
    type: AttachmentType
    url: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type.value, "url": self.url, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Attachment":
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            type=AttachmentType(data.get("type", "file")),
            url=data["url"],
            name=data.get("name", ""),
        )


@dataclass(frozen=True)
class Annotation:
    """
    A time-ranged comment or drawing attached to a video.

    ``parent_id`` marks a reply. Threads are one level deep: a reply's parent
    is always a top-level annotation of the same video.
    """
    id: str
    video_id: str
    range: TimeRange
    author: User
    text: str = ""
    kind: AnnotationKind = AnnotationKind.COMMENT
    drawing: Optional[dict] = None
    attachments: tuple = ()
    created_at: str = field(default_factory=utc_now)
    parent_id: Optional[str] = None

    @property
    def start(self) -> float:
        return self.range.start

    @property
    def end(self) -> float:
        return self.range.end

    def is_reply(self) -> bool:
        return self.parent_id is not None

    def has_drawing(self) -> bool:
        return self.drawing is not None

    def with_changes(self, **changes) -> "Annotation":
        return replace(self, **changes)

    @classmethod
    def from_wire(cls, data: dict) -> "Annotation":
        """Build an annotation from an Annotation API row."""
        author = data.get("author") or {"id": data.get("user_id", ""), "name": ""}
        return cls(
            id=str(data["id"]),
            video_id=data["video_id"],
            range=TimeRange(float(data["start_time"]), float(data["end_time"])),
            author=User.from_dict(author),
            text=data.get("text") or "",
            kind=AnnotationKind(data.get("type", "comment")),
            drawing=data.get("drawing_data"),
            attachments=tuple(Attachment.from_dict(a) for a in data.get("attachments") or []),
            created_at=data.get("created_at") or utc_now(),
            parent_id=str(data["parent_id"]) if data.get("parent_id") else None,
        )

    def to_wire(self) -> dict:
        """Body of a create request (author reduced to ``user_id``)."""
        body = {
            "video_id": self.video_id,
            "user_id": self.author.id,
            "start_time": self.start,
            "end_time": self.end,
            "text": self.text,
            "type": self.kind.value,
            "drawing_data": self.drawing,
            "attachments": [a.to_dict() for a in self.attachments],
        }
        if self.parent_id:
            body["parent_id"] = self.parent_id
        return body


def validate_submission(text: str, attachments, drawing: Optional[dict]) -> None:
    """Reject a submission that carries nothing.

    A valid annotation has non-empty text, at least one attachment, or a drawing.

    Raises:
        ValidationError: If all three are empty
    """
    if not (text or "").strip() and not attachments and drawing is None:
        raise ValidationError("Comment is empty: add text, an attachment or a drawing")
