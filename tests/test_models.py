"""Tests for models.py - annotation data model and wire conversion."""

import pytest

from framenote.errors import ValidationError
from framenote.models import (
    Annotation,
    AnnotationKind,
    Attachment,
    AttachmentType,
    TimeRange,
    User,
    validate_submission,
)


class TestTimeRange:
    """Tests for closed time intervals."""

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            TimeRange(5.0, 4.0)

    def test_point(self):
        point = TimeRange.point(3.0)
        assert point.is_point()
        assert point.length == 0.0

    def test_spanning_any_order(self):
        assert TimeRange.spanning(9.0, 2.0) == TimeRange(2.0, 9.0)

    def test_contains_with_tolerance(self):
        rng = TimeRange(5.0, 8.0)
        assert rng.contains(8.0)
        assert not rng.contains(8.05)
        assert rng.contains(8.05, tolerance=0.1)


class TestWireFormat:
    """Tests for conversion to and from API rows."""

    def test_from_wire(self):
        row = {
            "id": "a1",
            "video_id": "v" * 64,
            "start_time": 30,
            "end_time": 45.5,
            "text": "Look here",
            "type": "drawing",
            "drawing_data": {"version": "5.3.0", "objects": []},
            "attachments": [{"id": "f1", "type": "image", "url": "data:image/png;base64,AA==", "name": "a.png"}],
            "created_at": "2025-01-01T00:00:00+00:00",
            "author": {"id": "u1", "name": "Ada"},
        }
        ann = Annotation.from_wire(row)
        assert ann.range == TimeRange(30.0, 45.5)
        assert ann.kind is AnnotationKind.DRAWING
        assert ann.author == User("u1", "Ada")
        assert ann.attachments[0].type is AttachmentType.IMAGE
        assert not ann.is_reply()

    def test_to_wire_reduces_author(self):
        ann = Annotation(
            id="a1",
            video_id="v" * 64,
            range=TimeRange(1.0, 2.0),
            author=User("u1", "Ada"),
            text="hi",
            parent_id="p1",
        )
        body = ann.to_wire()
        assert body["user_id"] == "u1"
        assert body["type"] == "comment"
        assert body["parent_id"] == "p1"
        assert "author" not in body

    def test_attachment_round_trip(self):
        attachment = Attachment(id="f1", type=AttachmentType.FILE, url="data:text/plain;base64,aGk=", name="n.txt")
        assert Attachment.from_dict(attachment.to_dict()) == attachment


class TestSubmissionValidation:
    """Tests for empty-submission rejection."""

    def test_blank_text_rejected(self):
        with pytest.raises(ValidationError):
            validate_submission("   ", [], None)

    @pytest.mark.parametrize(
        "text, attachments, drawing",
        [
            ("note", [], None),
            ("", ["file"], None),
            ("", [], {"objects": [{}]}),
        ],
    )
    def test_any_content_accepted(self, text, attachments, drawing):
        validate_submission(text, attachments, drawing)
