"""
SQLite persistence behind the Annotation API server.

Users and annotations live in one local database file. Drawing payloads and
attachments are stored as JSON text. Replies reference their thread's
top-level annotation and are removed with it (``ON DELETE CASCADE``).
"""

import json
import sqlite3
import uuid
from pathlib import Path
from typing import Iterable, Optional

from .config import get_db_path
from .errors import NotFoundError, ValidationError
from .logging import get_logger
from .models import utc_now

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS annotations (
    id TEXT PRIMARY KEY,
    video_id TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    parent_id TEXT REFERENCES annotations(id) ON DELETE CASCADE,
    start_time REAL NOT NULL,
    end_time REAL NOT NULL,
    text TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL CHECK (type IN ('comment', 'drawing')),
    drawing_data TEXT,
    attachments TEXT DEFAULT '[]',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_annotations_video_id ON annotations(video_id);
CREATE INDEX IF NOT EXISTS idx_annotations_user_id ON annotations(user_id);
CREATE INDEX IF NOT EXISTS idx_annotations_start_time ON annotations(video_id, start_time);
CREATE INDEX IF NOT EXISTS idx_annotations_parent_id ON annotations(parent_id);
"""

ANNOTATION_SELECT = """
    SELECT a.*, u.name AS author_name
    FROM annotations a
    JOIN users u ON a.user_id = u.id
"""


class AnnotationDatabase:
    """
    SQLite-backed users and annotations.

    Rows are returned in the API wire shape (snake_case keys, ``author``
    object with id and name).
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Open (and create if needed) the database at ``db_path``."""
        self.db_path = Path(db_path) if db_path else get_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    # =========================================================================
    # Users
    # =========================================================================

    def create_user(self, name: str) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        user = {"id": str(uuid.uuid4()), "name": name, "created_at": utc_now()}
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users (id, name, created_at) VALUES (?, ?, ?)",
                (user["id"], user["name"], user["created_at"]),
            )
        logger.info("Created user %s", user["id"][:8])
        return user

    def get_user(self, user_id: str) -> Optional[dict]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, name, created_at FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return dict(row) if row else None

    def rename_user(self, user_id: str, name: str) -> dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        with self._connect() as conn:
            cursor = conn.execute("UPDATE users SET name = ? WHERE id = ?", (name, user_id))
            if cursor.rowcount == 0:
                raise NotFoundError("User not found")
        return self.get_user(user_id)

    # =========================================================================
    # Annotations
    # =========================================================================

    def list_annotations(self, video_id: str) -> list[dict]:
        """All annotations of a video, ordered by start time."""
        with self._connect() as conn:
            rows = conn.execute(
                ANNOTATION_SELECT + " WHERE a.video_id = ? ORDER BY a.start_time ASC, a.created_at ASC",
                (video_id,),
            ).fetchall()
        return [self._row_to_wire(row) for row in rows]

    def get_annotation(self, annotation_id: str) -> Optional[dict]:
        with self._connect() as conn:
            row = conn.execute(ANNOTATION_SELECT + " WHERE a.id = ?", (annotation_id,)).fetchone()
        return self._row_to_wire(row) if row else None

    def create_annotation(
        self,
        video_id: str,
        user_id: str,
        start_time: float,
        end_time: float,
        type: str = "comment",
        text: str = "",
        drawing_data: Optional[dict] = None,
        attachments: Optional[list] = None,
        parent_id: Optional[str] = None,
    ) -> dict:
        """
        Insert an annotation and return it with its author.

        A reply to a reply is attached to the thread's top-level annotation.

        Raises:
            NotFoundError: If the user or the parent does not exist
            ValidationError: If the range is inverted or the parent belongs to another video
        """
        if start_time > end_time:
            raise ValidationError("start_time must not be after end_time")
        if self.get_user(user_id) is None:
            raise NotFoundError("User not found")

        if parent_id:
            parent_id = self._thread_root(parent_id, video_id)

        annotation_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO annotations
                (id, video_id, user_id, parent_id, start_time, end_time,
                 text, type, drawing_data, attachments, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    annotation_id,
                    video_id,
                    user_id,
                    parent_id,
                    start_time,
                    end_time,
                    text or "",
                    type,
                    json.dumps(drawing_data) if drawing_data is not None else None,
                    json.dumps(attachments or []),
                    utc_now(),
                ),
            )
        logger.info("Created annotation %s at %.2fs", annotation_id[:8], start_time)
        return self.get_annotation(annotation_id)

    def _thread_root(self, parent_id: str, video_id: str) -> str:
        with self._connect() as conn:
            parent = conn.execute(
                "SELECT id, video_id, parent_id FROM annotations WHERE id = ?", (parent_id,)
            ).fetchone()
        if parent is None:
            raise NotFoundError("Parent annotation not found")
        if parent["video_id"] != video_id:
            raise ValidationError("Parent annotation belongs to another video")
        if parent["parent_id"]:
            logger.debug("Flattening reply to %s onto %s", parent_id[:8], parent["parent_id"][:8])
            return parent["parent_id"]
        return parent_id

    def update_annotation(
        self,
        annotation_id: str,
        text: Optional[str] = None,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> dict:
        """
        Partially update text and/or range.

        Raises:
            NotFoundError: If the annotation does not exist
            ValidationError: If the resulting range is inverted
        """
        current = self.get_annotation(annotation_id)
        if current is None:
            raise NotFoundError("Annotation not found")

        start = current["start_time"] if start_time is None else start_time
        end = current["end_time"] if end_time is None else end_time
        if start > end:
            raise ValidationError("start_time must not be after end_time")
        new_text = current["text"] if text is None else text

        with self._connect() as conn:
            conn.execute(
                "UPDATE annotations SET text = ?, start_time = ?, end_time = ? WHERE id = ?",
                (new_text, start, end, annotation_id),
            )
        logger.info("Updated annotation %s", annotation_id[:8])
        return self.get_annotation(annotation_id)

    def delete_annotation(self, annotation_id: str) -> bool:
        """Delete an annotation together with its replies."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM annotations WHERE id = ?", (annotation_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted annotation %s", annotation_id[:8])
        return deleted

    def clear_video(self, video_id: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM annotations WHERE video_id = ?", (video_id,))
            deleted = cursor.rowcount
        logger.info("Cleared %d annotations of %s", deleted, video_id[:12])
        return deleted

    def import_annotations(self, video_id: str, user_id: str, annotations: Iterable[dict]) -> list[str]:
        """
        Insert exported annotations under ``video_id``, authored by ``user_id``.

        Entries use the export document's camelCase keys and are expected to
        be validated already (see ``server.ImportedAnnotation``). Returns new ids.
        """
        if self.get_user(user_id) is None:
            raise NotFoundError("User not found")

        rows = []
        for ann in annotations:
            start = float(ann.get("startTime") or 0.0)
            end = start if ann.get("endTime") is None else float(ann["endTime"])
            if start > end:
                raise ValidationError(f"Imported annotation has start {start} after end {end}")
            drawing = ann.get("drawingData")
            rows.append(
                (
                    str(uuid.uuid4()),
                    video_id,
                    user_id,
                    start,
                    end,
                    ann.get("text") or "",
                    ann.get("type") or "comment",
                    json.dumps(drawing) if drawing is not None else None,
                    json.dumps(ann.get("attachments") or []),
                    utc_now(),
                )
            )

        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO annotations
                (id, video_id, user_id, start_time, end_time, text, type,
                 drawing_data, attachments, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        logger.info("Imported %d annotations into %s", len(rows), video_id[:12])
        return [row[0] for row in rows]

    def _row_to_wire(self, row: sqlite3.Row) -> dict:
        """Convert database row to the API representation."""
        data = {
            "id": row["id"],
            "video_id": row["video_id"],
            "start_time": row["start_time"],
            "end_time": row["end_time"],
            "text": row["text"],
            "type": row["type"],
            "drawing_data": json.loads(row["drawing_data"]) if row["drawing_data"] else None,
            "attachments": json.loads(row["attachments"]) if row["attachments"] else [],
            "created_at": row["created_at"],
            "author": {"id": row["user_id"], "name": row["author_name"]},
        }
        if row["parent_id"]:
            data["parent_id"] = row["parent_id"]
        return data
