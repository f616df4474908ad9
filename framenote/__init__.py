"""
FrameNote - Collaborative Video Annotation

Timestamped comments and freehand drawings on local videos:
- Videos identified by content hash, never uploaded
- Zoomable timeline with drag-to-select ranges
- Drawing overlays synchronized with playback
- Threaded replies, JSON export/import
- AI visual suggestions from captions
"""

__version__ = "0.1.0"

from .hashing import hash_file
from .models import Annotation, Attachment, TimeRange, User
from .geometry import ZoomWindow, format_time
from .timeline import TimelineInteraction
from .visibility import DrawingVisibilityResolver
from .store import AnnotationStore
from .api_client import AnnotationApiClient
from .controller import AppController

__all__ = [
    "hash_file",
    "Annotation",
    "Attachment",
    "TimeRange",
    "User",
    "ZoomWindow",
    "format_time",
    "TimelineInteraction",
    "DrawingVisibilityResolver",
    "AnnotationStore",
    "AnnotationApiClient",
    "AppController",
]
