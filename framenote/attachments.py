"""Attachments inlined into annotations as base64 data URIs."""

import base64
import mimetypes
import uuid
from pathlib import Path

from .errors import ValidationError
from .models import Attachment, AttachmentType

# Attachments travel inside JSON bodies; keep them reasonably small
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


def to_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def attachment_from_bytes(data: bytes, name: str, mime_type: str = None) -> Attachment:
    """Build an attachment; images are recognised from the MIME type."""
    if mime_type is None:
        mime_type, _ = mimetypes.guess_type(name)
        if mime_type is None:
            mime_type = "application/octet-stream"
    if len(data) > MAX_ATTACHMENT_BYTES:
        raise ValidationError(
            f"Attachment {name} is {len(data) / (1024 * 1024):.1f} MB, limit is "
            f"{MAX_ATTACHMENT_BYTES // (1024 * 1024)} MB"
        )
    kind = AttachmentType.IMAGE if mime_type.startswith("image/") else AttachmentType.FILE
    return Attachment(id=str(uuid.uuid4()), type=kind, url=to_data_uri(data, mime_type), name=name)


def attachment_from_file(path: Path) -> Attachment:
    """Read a local file into an attachment."""
    path = Path(path)
    if not path.is_file():
        raise ValidationError(f"Attachment not found: {path}")
    with open(path, "rb") as f:
        data = f.read()
    return attachment_from_bytes(data, path.name)


def decode_data_uri(url: str) -> tuple[str, bytes]:
    """Split a data URI back into (mime_type, bytes)."""
    header, _, payload = url.partition(",")
    if not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Not a base64 data URI")
    mime_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
    return mime_type, base64.b64decode(payload)
