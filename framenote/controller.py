"""
Top-level orchestration of the annotation editor.

The controller owns the editor state, the in-memory annotation store, the
timeline interaction and the drawing surface, and talks to the Annotation
API. Playback time updates flow into the visibility resolver; pointer events
flow through the timeline state machine; comment submissions become store
mutations followed by API calls.

Every I/O-bound operation remembers the video identity that was current when
it started and drops its result if the user has since opened another video.
"""

import json
import math
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from . import editor
from .api_client import AnnotationApiClient
from .attachments import attachment_from_file
from .editor import EditorState, Tool
from .errors import (
    FrameNoteError,
    HashMismatchWarning,
    IntegrityError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from .geometry import ZoomWindow
from .hashing import hash_file
from .logging import get_logger
from .models import Annotation, AnnotationKind, Attachment, TimeRange, User, validate_submission
from .session import UserCache
from .store import AnnotationStore
from .suggestions import VisualSuggestion
from .surface import DrawingSurface
from .timeline import Handle, TimelineInteraction
from .transcript import TranscriptIndex, parse_timestamp
from .visibility import DrawingVisibilityResolver

logger = get_logger(__name__)

# Default length of a drawing annotation submitted without a selection
DRAWING_DEFAULT_LENGTH = 1.0


class Notifier:
    """Blocking, user-visible notifications."""

    def alert(self, message: str) -> None:
        raise NotImplementedError

    def confirm(self, message: str) -> bool:
        raise NotImplementedError

    def inform(self, message: str) -> None:
        self.alert(message)


class ConsoleNotifier(Notifier):
    """Notifier for terminal use: alerts are logged, confirmations read stdin."""

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    def alert(self, message: str) -> None:
        logger.error(message)

    def inform(self, message: str) -> None:
        logger.info(message)

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            logger.warning(message)
            return True
        try:
            answer = input(f"{message} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")


def parse_seconds(value: Union[str, float, int, None], field: str) -> Optional[float]:
    """Parse manual time input: plain seconds or ``[h:]m:ss[.mmm]``.

    Raises:
        ValidationError: If the value is not a time
    """
    if value is None:
        return None
    invalid = ValidationError(f"{field} must be a number of seconds, got {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        if text.count(":") > 2:
            raise invalid
        try:
            seconds = parse_timestamp(text) if ":" in text else float(text)
        except ValueError:
            raise invalid from None
    if not math.isfinite(seconds):
        raise invalid
    return seconds


class AppController:
    """Editor orchestration: state, store, timeline, surface and API."""

    def __init__(
        self,
        api: AnnotationApiClient,
        notifier: Notifier = None,
        surface: DrawingSurface = None,
        user_cache: UserCache = None,
        rollback_on_failure: bool = False,
    ):
        self.api = api
        self.notifier = notifier or ConsoleNotifier()
        self.surface = surface or DrawingSurface()
        self.user_cache = user_cache or UserCache()
        self.rollback_on_failure = rollback_on_failure

        self.state = EditorState()
        self.store = AnnotationStore()
        self.timeline = TimelineInteraction(ZoomWindow(0.0))
        self.resolver = DrawingVisibilityResolver()
        self.transcript: Optional[TranscriptIndex] = None
        self.current_user: Optional[User] = None
        self.needs_onboarding = False
        self.video_path: Optional[Path] = None
        self.active_drawing: Optional[dict] = None

    @property
    def video_id(self) -> Optional[str]:
        return self.state.video_id

    # =========================================================================
    # Session
    # =========================================================================

    def start_session(self) -> Optional[User]:
        """Restore the cached user, checking the server still knows it."""
        stored = self.user_cache.load()
        if stored is None:
            self.needs_onboarding = True
            return None

        try:
            user = self.api.get_user(stored.id)
        except FrameNoteError as e:
            self.notifier.alert(f"Could not verify user {stored.name}: {e}")
            return None

        if user is None:
            logger.info("Stored user %s no longer exists, onboarding again", stored.id[:8])
            self.user_cache.clear()
            self.needs_onboarding = True
            return None

        self.current_user = user
        self.needs_onboarding = False
        return user

    def onboard(self, name: str) -> Optional[User]:
        """Create the user and remember it locally.

        Raises:
            ValidationError: If the name is empty
        """
        if not name or not name.strip():
            raise ValidationError("Name is required")
        try:
            user = self.api.create_user(name)
        except FrameNoteError as e:
            self.notifier.alert(f"Failed to create user. Please make sure the server is running. ({e})")
            return None
        self.user_cache.save(user)
        self.current_user = user
        self.needs_onboarding = False
        logger.info("Signed in as %s", user.name)
        return user

    # =========================================================================
    # Video lifecycle
    # =========================================================================

    def open_video(self, path: Path, duration: Optional[float] = None) -> Optional[str]:
        """Identify a local video by content and load its annotations.

        Returns the video identity, or None when the file could not be read
        (in which case no video is loaded).
        """
        path = Path(path)
        try:
            video_id = hash_file(path)
        except IntegrityError as e:
            self.notifier.alert(f"Could not read video {path.name}: {e}")
            return None

        logger.info("Opened %s as %s", path.name, video_id[:12])
        self.video_path = path
        self.load_video(video_id, duration)
        return video_id

    def load_video(self, video_id: str, duration: Optional[float] = None) -> None:
        """Switch to a video identity: reset all per-video state and reload."""
        self.state = editor.video_loaded(self.state, video_id)
        self.store.reset(video_id)
        self.resolver.invalidate()
        self.timeline.set_duration(0.0)
        self.transcript = None
        self.surface.lock()
        self.surface.clear()

        if duration is not None:
            self.set_duration(duration)
        self.load_annotations()

    def set_duration(self, duration: float) -> None:
        """Media metadata arrived: size the timeline."""
        self.state = editor.duration_changed(self.state, duration)
        self.timeline.set_duration(self.state.duration)

    def load_annotations(self) -> bool:
        """Fetch the working set for the current video.

        Returns False when nothing was applied (no video, failure, or the
        video changed while the request was in flight).
        """
        video_id = self.state.video_id
        if not video_id:
            return False
        try:
            loaded = self.api.list_annotations(video_id)
        except FrameNoteError as e:
            self.notifier.alert(f"Failed to load annotations: {e}")
            return False

        if self.state.video_id != video_id:
            logger.info("Discarding stale annotations for %s", video_id[:12])
            return False

        self.store.load(video_id, loaded)
        logger.info("Loaded %d annotations", len(self.store))
        self._refresh_overlay()
        return True

    def load_subtitles(self, path: Path) -> Optional[TranscriptIndex]:
        try:
            self.transcript = TranscriptIndex.from_file(path)
        except (OSError, UnicodeDecodeError) as e:
            self.notifier.alert(f"Could not read captions {Path(path).name}: {e}")
            return None
        return self.transcript

    # =========================================================================
    # Playback
    # =========================================================================

    def on_time_update(self, t: float) -> Optional[dict]:
        """Media element reported a new playback position."""
        self.state = editor.time_updated(self.state, t)
        self.timeline.follow_playhead(self.state.current_time)
        return self._refresh_overlay()

    def seek(self, t: float) -> Optional[dict]:
        self.state = editor.seeked(self.state, t)
        self.timeline.follow_playhead(self.state.current_time)
        return self._refresh_overlay()

    def toggle_play(self) -> bool:
        self.state = editor.play_toggled(self.state)
        return self.state.playing

    def _refresh_overlay(self) -> Optional[dict]:
        document = self.resolver.resolve(
            self.state.current_time,
            self.state.active_annotation_id,
            self.store.annotations,
            self.state.drawing_mode,
        )
        if not self.state.drawing_mode:
            self.surface.show(document)
        self.active_drawing = document
        return document

    # =========================================================================
    # Tools and drawing
    # =========================================================================

    def select_tool(self, tool: Tool) -> None:
        """Switch between pointer and pen; any drag in progress is dropped."""
        self.timeline.cancel()
        self.state = editor.tool_changed(self.state, tool)
        if tool is Tool.PEN:
            self.surface.enter_editable()
        else:
            self.surface.lock()
        self._refresh_overlay()

    def draw(self, obj: dict) -> None:
        """Add a freehand object to the canvas (pen tool only)."""
        self.surface.add_object(obj)

    def clear_drawing(self) -> None:
        self.surface.clear()

    # =========================================================================
    # Timeline input
    # =========================================================================

    def timeline_pointer_down(self, fraction: float) -> None:
        self.timeline.pointer_down(fraction)

    def timeline_handle_down(self, handle: Handle) -> None:
        self.timeline.pointer_down_handle(handle, self.state.selection)

    def timeline_pointer_move(self, fraction: float) -> Optional[TimeRange]:
        return self.timeline.pointer_move(fraction)

    def timeline_pointer_up(self, fraction: float) -> None:
        commit = self.timeline.pointer_up(fraction)
        if commit is None:
            return
        if commit.selection is not None:
            self.state = editor.range_selected(self.state, commit.selection)
        self.seek(commit.seek_to)

    def timeline_wheel(self, delta_y: float, modifier: bool) -> bool:
        return self.timeline.wheel(delta_y, modifier, self.state.current_time)

    def zoom_in(self) -> None:
        self.timeline.zoom_in(self.state.current_time)

    def zoom_out(self) -> None:
        self.timeline.zoom_out(self.state.current_time)

    def reset_zoom(self) -> None:
        self.timeline.reset_zoom()

    def select_range(self, selection: Optional[TimeRange]) -> None:
        self.state = editor.range_selected(self.state, selection)
        self._refresh_overlay()

    def timeline_markers(self) -> list[tuple[Annotation, float, float, bool]]:
        """Visible annotation markers as (annotation, left, width, is_range)."""
        markers = []
        for ann in self.store.annotations:
            placed = self.timeline.window.marker_span(ann.range)
            if placed is not None:
                markers.append((ann, *placed))
        return markers

    def handle_key(self, key: str) -> bool:
        """Keyboard shortcuts. Returns True when the key was handled.

        A sets the selection start, S sets the end and pauses, Q and W seek
        to the selection start and end, space toggles playback, Escape
        abandons a drag. Backspace/Delete removes the latest stroke while
        the pen is active.
        """
        key = key.lower()
        if key == "escape":
            self.timeline.cancel()
            return True
        if key == " ":
            self.toggle_play()
            return True
        if key in ("backspace", "delete"):
            if not self.surface.can_mutate or not self.surface.objects:
                return False
            self.surface.remove_object(-1)
            return True
        if key == "a":
            self.state = editor.selection_start_marked(self.state)
        elif key == "s":
            self.state = editor.selection_end_marked(self.state)
        elif key == "q" and self.state.selection:
            self.seek(self.state.selection.start)
        elif key == "w" and self.state.selection:
            self.seek(self.state.selection.end)
        else:
            return False
        self._refresh_overlay()
        return True

    # =========================================================================
    # Annotation selection
    # =========================================================================

    def select_annotation(self, annotation_id: str) -> Optional[Annotation]:
        annotation = self.store.get(annotation_id)
        if annotation is None:
            self.notifier.alert("Annotation not found")
            return None
        was_drawing = self.state.drawing_mode
        self.state = editor.annotation_selected(self.state, annotation)
        if was_drawing:
            self.surface.lock()
        self.timeline.follow_playhead(self.state.current_time)
        self._refresh_overlay()
        return annotation

    def deselect_annotation(self) -> None:
        self.state = editor.annotation_deselected(self.state)
        self._refresh_overlay()

    # =========================================================================
    # Mutations (optimistic: local first, then the API)
    # =========================================================================

    def _require_session(self) -> tuple[str, User]:
        if not self.state.video_id:
            raise ValidationError("Open a video first")
        if self.current_user is None:
            raise ValidationError("Sign in first")
        return self.state.video_id, self.current_user

    def _mutation_failed(self, message: str, error: Exception, snapshot: tuple) -> None:
        logger.error("%s: %s", message, error)
        if self.rollback_on_failure and self.store.video_id == snapshot[0]:
            self.store.restore(snapshot)
            self._refresh_overlay()
        if isinstance(error, TransportError):
            self.notifier.alert(f"{message}. Please make sure the server is running. ({error})")
        else:
            self.notifier.alert(f"{message}: {error}")

    def _default_range(self, has_drawing: bool) -> TimeRange:
        if self.state.selection is not None:
            return self.state.selection
        start = self.state.current_time
        if has_drawing:
            return TimeRange(start, min(start + DRAWING_DEFAULT_LENGTH, max(self.state.duration, start)))
        return TimeRange.point(start)

    def submit_comment(self, text: str, attachments: Sequence[Attachment] = ()) -> Optional[Annotation]:
        """Create a comment, or a drawing annotation when the canvas holds one.

        Raises:
            ValidationError: Nothing to submit, or no video/user
        """
        video_id, user = self._require_session()
        drawing = self.surface.to_document()
        validate_submission(text, attachments, drawing)

        provisional = Annotation(
            id=f"local-{uuid.uuid4()}",
            video_id=video_id,
            range=self._default_range(drawing is not None),
            author=user,
            text=text or "",
            kind=AnnotationKind.DRAWING if drawing else AnnotationKind.COMMENT,
            drawing=drawing,
            attachments=tuple(attachments),
        )
        return self._create(provisional, "Failed to save annotation")

    def reply(self, parent_id: str, text: str, attachments: Sequence[Attachment] = ()) -> Optional[Annotation]:
        """Reply to an annotation; replies to replies join the same thread."""
        video_id, user = self._require_session()
        validate_submission(text, attachments, None)
        if parent_id not in self.store:
            raise ValidationError("Cannot reply: annotation is not loaded")
        root = self.store.get(self.store.thread_root_id(parent_id))

        provisional = Annotation(
            id=f"local-{uuid.uuid4()}",
            video_id=video_id,
            range=root.range,
            author=user,
            text=text or "",
            attachments=tuple(attachments),
            parent_id=root.id,
        )
        return self._create(provisional, "Failed to save reply", select=False)

    def _create(self, provisional: Annotation, failure: str, select: bool = True) -> Optional[Annotation]:
        video_id = provisional.video_id
        snapshot = self.store.snapshot()
        self.store.add(provisional)
        self._refresh_overlay()

        try:
            created = self.api.create_annotation(provisional)
        except FrameNoteError as e:
            self._mutation_failed(failure, e, snapshot)
            return None

        if self.state.video_id != video_id:
            logger.info("Video changed while saving; not applying %s", created.id[:8])
            return created

        self.store.replace(provisional.id, created)
        logger.info("Created %s %s at %.2fs", created.kind.value, created.id[:8], created.start)

        if select:
            was_drawing = self.state.drawing_mode
            self.state = editor.annotation_created(self.state, created)
            self.surface.lock()
            self.surface.clear()
            if was_drawing:
                logger.debug("Left pen mode after submitting a drawing")
            self.timeline.follow_playhead(self.state.current_time)
        self._refresh_overlay()
        return created

    def edit_annotation(
        self,
        annotation_id: str,
        text: Optional[str] = None,
        start: Union[str, float, None] = None,
        end: Union[str, float, None] = None,
    ) -> Optional[Annotation]:
        """Edit text and/or range. Manual time input may be strings.

        Raises:
            ValidationError: Non-numeric times or start after end
        """
        current = self.store.get(annotation_id)
        if current is None:
            self.notifier.alert("Annotation not found")
            return None

        new_start = parse_seconds(start, "Start time")
        new_end = parse_seconds(end, "End time")
        time_range = None
        if new_start is not None or new_end is not None:
            s = current.start if new_start is None else new_start
            e = current.end if new_end is None else new_end
            if self.state.duration > 0:
                s = min(max(s, 0.0), self.state.duration)
                e = min(max(e, 0.0), self.state.duration)
            if s > e:
                raise ValidationError("Start time must not be after end time")
            time_range = TimeRange(s, e)

        if text is None and time_range is None:
            return current

        changes = {}
        if text is not None:
            changes["text"] = text
        if time_range is not None:
            changes["range"] = time_range

        video_id = self.state.video_id
        snapshot = self.store.snapshot()
        self.store.update(annotation_id, **changes)
        self._refresh_overlay()

        try:
            updated = self.api.update_annotation(annotation_id, text=text, time_range=time_range)
        except FrameNoteError as e:
            self._mutation_failed("Failed to update annotation", e, snapshot)
            return None

        if self.state.video_id == video_id:
            self.store.replace(annotation_id, updated)
            self._refresh_overlay()
        logger.info("Updated annotation %s", annotation_id[:8])
        return updated

    def delete_annotation(self, annotation_id: str) -> bool:
        """Delete an annotation; its replies go with it."""
        snapshot = self.store.snapshot()
        removed = self.store.remove(annotation_id)
        if not removed:
            self.notifier.alert("Annotation not found")
            return False
        self.state = editor.annotations_removed(self.state, [a.id for a in removed])
        self._refresh_overlay()

        try:
            self.api.delete_annotation(annotation_id)
        except FrameNoteError as e:
            self._mutation_failed("Failed to delete annotation", e, snapshot)
            return False
        logger.info("Deleted annotation %s (%d with replies)", annotation_id[:8], len(removed))
        return True

    def clear_annotations(self) -> int:
        """Remove every annotation of the current video."""
        video_id, _ = self._require_session()
        snapshot = self.store.snapshot()
        self.store.reset(video_id)
        self.state = editor.annotation_deselected(self.state)
        self._refresh_overlay()
        try:
            deleted = self.api.clear_annotations(video_id)
        except FrameNoteError as e:
            self._mutation_failed("Failed to clear annotations", e, snapshot)
            return 0
        logger.info("Cleared %d annotations", deleted)
        return deleted

    # =========================================================================
    # Export / import
    # =========================================================================

    def export_annotations(self, output_path: Optional[Path] = None) -> Optional[Path]:
        """Write the portable export document to a JSON file."""
        video_id, _ = self._require_session()
        try:
            data = self.api.export_annotations(video_id)
        except FrameNoteError as e:
            self.notifier.alert(f"Failed to export annotations. ({e})")
            return None

        if output_path is None:
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            output_path = Path(f"video-annotations-{stamp}.json")
        output_path = Path(output_path)
        output_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info("Exported %d annotations to %s", len(data.get("annotations", [])), output_path)
        return output_path

    def import_annotations(self, source: Union[Path, dict]) -> Optional[int]:
        """Import an export document into the current video.

        A document exported for another video is only imported after the
        user confirms. Returns the number of imported annotations, or None
        when the import failed or was declined.
        """
        video_id, user = self._require_session()

        if isinstance(source, dict):
            data = source
        else:
            try:
                data = json.loads(Path(source).read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                self.notifier.alert(f"Failed to import annotations. Make sure the file is valid JSON. ({e})")
                return None

        if not isinstance(data, dict) or not isinstance(data.get("annotations"), list):
            self.notifier.alert("Failed to import annotations. The file is not an annotation export.")
            return None

        import_hash = data.get("videoHash") or ""
        if import_hash != video_id:
            warning = HashMismatchWarning(import_hash, video_id)
            if not self.notifier.confirm(warning.message):
                logger.info("Import cancelled: video hash mismatch")
                return None

        try:
            imported = self.api.import_annotations(video_id, data["annotations"], user.id)
        except FrameNoteError as e:
            self.notifier.alert(f"Failed to import annotations. ({e})")
            return None

        if self.state.video_id == video_id:
            self.load_annotations()
        self.notifier.inform(f"Successfully imported {imported} annotations!")
        return imported

    # =========================================================================
    # Attachments and suggestions
    # =========================================================================

    def attach_file(self, path: Path) -> Attachment:
        return attachment_from_file(path)

    def request_suggestions(self) -> list[VisualSuggestion]:
        """Visual suggestions for the captions inside the selection.

        Raises:
            ValidationError: No captions loaded, no selection, or no caption text in it
        """
        if self.transcript is None:
            raise ValidationError("Load captions first")
        selection = self.state.selection
        if selection is None:
            raise ValidationError("Select a time range first")
        selection_text = self.transcript.text_for_range(selection.start, selection.end)
        if not selection_text:
            raise ValidationError("No captions in the selected range")

        try:
            return self.api.get_suggestions(self.transcript.full_text(), selection_text, selection)
        except NotFoundError as e:
            self.notifier.alert(f"Suggestions are unavailable: {e}")
        except FrameNoteError as e:
            self.notifier.alert(f"Failed to get visual suggestions. ({e})")
        return []
