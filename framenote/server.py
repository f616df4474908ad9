"""
Annotation API server.

Features:
- Users: create, fetch, rename
- Annotations per video identity: list, create, partial update, delete (with replies)
- Portable JSON export/import of a video's annotations
- Visual suggestions for a transcript selection (Gemini)
- Local SQLite storage
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional

from flask import Flask, jsonify, request
from pydantic import BaseModel, Field
from pydantic import ValidationError as RequestValidationError

from .database import AnnotationDatabase
from .errors import NotFoundError, ValidationError
from .geometry import format_range_label
from .logging import get_logger
from .suggestions import generate_suggestions

logger = get_logger(__name__)

EXPORT_VERSION = "1.0"


# Pydantic models for API requests


class UserRequest(BaseModel):
    """Create or rename a user."""

    name: str = Field(..., description="Display name")


class AnnotationCreateRequest(BaseModel):
    """New annotation, in wire (snake_case) form."""

    video_id: str = Field(..., min_length=1, description="Content hash of the video")
    user_id: str = Field(..., min_length=1, description="Author id")
    start_time: float = Field(..., ge=0, allow_inf_nan=False)
    end_time: float = Field(..., ge=0, allow_inf_nan=False)
    type: Literal["comment", "drawing"]
    text: str = ""
    drawing_data: Optional[dict] = None
    attachments: list[dict] = Field(default_factory=list)
    parent_id: Optional[str] = None


class AnnotationUpdateRequest(BaseModel):
    """Partial update of text and/or range."""

    text: Optional[str] = None
    start_time: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    end_time: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class ImportedAnnotation(BaseModel):
    """One entry of an export document. Display-only keys are ignored."""

    startTime: float = Field(..., ge=0, allow_inf_nan=False)
    endTime: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    type: Literal["comment", "drawing"] = "comment"
    text: Optional[str] = ""
    drawingData: Optional[dict] = None
    attachments: list[dict] = Field(default_factory=list)


class ImportRequest(BaseModel):
    """Export document annotations to attach to a video."""

    videoHash: str = Field(..., min_length=1)
    annotations: list[ImportedAnnotation]
    userId: str = Field(..., min_length=1)


class TimeRangeModel(BaseModel):
    start: float
    end: float


class SuggestionRequest(BaseModel):
    """Transcript selection to find visuals for."""

    fullTranscript: str = Field(..., min_length=1)
    selectionTranscript: str = Field(..., min_length=1)
    selectionTimeRange: TimeRangeModel


def _body(model: type[BaseModel]) -> BaseModel:
    return model.model_validate(request.get_json(silent=True) or {})


def create_app(db_path: Optional[Path] = None, gemini_client=None) -> Flask:
    """Create and configure the Annotation API Flask app."""
    app = Flask(__name__)
    app.config["DB"] = AnnotationDatabase(db_path)
    app.config["GEMINI_CLIENT"] = gemini_client
    app.config["MAX_CONTENT_LENGTH"] = 50 * 1024 * 1024  # drawings and inlined attachments

    def db() -> AnnotationDatabase:
        return app.config["DB"]

    @app.errorhandler(RequestValidationError)
    def invalid_request(e: RequestValidationError):
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        logger.debug("Rejected request: %s", e)
        return jsonify({"error": "Missing or invalid fields", "fields": fields}), 400

    @app.errorhandler(ValidationError)
    def invalid_value(e: ValidationError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(NotFoundError)
    def not_found(e: NotFoundError):
        return jsonify({"error": str(e)}), 404

    # ==========================================================================
    # Health
    # ==========================================================================

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    # ==========================================================================
    # Users API
    # ==========================================================================

    @app.route("/api/users", methods=["POST"])
    def create_user():
        """Create a new user."""
        data = _body(UserRequest)
        return jsonify(db().create_user(data.name)), 201

    @app.route("/api/users/<user_id>", methods=["GET"])
    def get_user(user_id: str):
        user = db().get_user(user_id)
        if not user:
            return jsonify({"error": "User not found"}), 404
        return jsonify(user)

    @app.route("/api/users/<user_id>", methods=["PATCH"])
    def rename_user(user_id: str):
        """Update a user's display name."""
        data = _body(UserRequest)
        return jsonify(db().rename_user(user_id, data.name))

    # ==========================================================================
    # Annotation API
    # ==========================================================================

    @app.route("/api/annotations/video/<video_id>", methods=["GET"])
    def list_annotations(video_id: str):
        """All annotations of a video, ordered by start time."""
        return jsonify(db().list_annotations(video_id))

    @app.route("/api/annotations", methods=["POST"])
    def create_annotation():
        """Create a new annotation."""
        data = _body(AnnotationCreateRequest)
        annotation = db().create_annotation(**data.model_dump())
        return jsonify(annotation), 201

    @app.route("/api/annotations/<annotation_id>", methods=["PATCH"])
    def update_annotation(annotation_id: str):
        """Update text and/or time range of an annotation."""
        data = _body(AnnotationUpdateRequest)
        return jsonify(db().update_annotation(annotation_id, **data.model_dump()))

    @app.route("/api/annotations/<annotation_id>", methods=["DELETE"])
    def delete_annotation(annotation_id: str):
        """Delete an annotation and its replies."""
        if db().delete_annotation(annotation_id):
            return jsonify({"success": True, "id": annotation_id})
        return jsonify({"error": "Annotation not found"}), 404

    @app.route("/api/annotations/video/<video_id>", methods=["DELETE"])
    def clear_annotations(video_id: str):
        """Delete every annotation of a video."""
        return jsonify({"success": True, "deleted": db().clear_video(video_id)})

    # ==========================================================================
    # Export / Import
    # ==========================================================================

    @app.route("/api/annotations/export/<video_id>")
    def export_annotations(video_id: str):
        """Portable JSON document with every annotation of a video."""
        rows = db().list_annotations(video_id)
        return jsonify(
            {
                "exportVersion": EXPORT_VERSION,
                "exportedAt": datetime.now(timezone.utc).isoformat(),
                "videoHash": video_id,
                "annotations": [
                    {
                        "timestamp": format_range_label(row["start_time"], row["end_time"]),
                        "startTime": row["start_time"],
                        "endTime": row["end_time"],
                        "author": row["author"],
                        "text": row["text"],
                        "type": row["type"],
                        "drawingData": row["drawing_data"],
                        "attachments": row["attachments"],
                        "createdAt": row["created_at"],
                    }
                    for row in rows
                ],
            }
        )

    @app.route("/api/annotations/import", methods=["POST"])
    def import_annotations():
        """Import exported annotations, attributed to the importing user."""
        data = _body(ImportRequest)
        ids = db().import_annotations(data.videoHash, data.userId, [a.model_dump() for a in data.annotations])
        return jsonify({"success": True, "imported": len(ids), "ids": ids}), 201

    # ==========================================================================
    # Suggestions
    # ==========================================================================

    @app.route("/api/suggestions", methods=["POST"])
    def suggestions():
        """Visual suggestions for a transcript selection."""
        data = _body(SuggestionRequest)
        try:
            result = generate_suggestions(
                data.fullTranscript,
                data.selectionTranscript,
                data.selectionTimeRange.start,
                data.selectionTimeRange.end,
                client=app.config["GEMINI_CLIENT"],
            )
        except ValueError as e:
            logger.error("Suggestions unavailable: %s", e)
            return jsonify({"error": "GEMINI_API_KEY not configured"}), 500
        except Exception as e:
            logger.exception("Error generating suggestions")
            return jsonify({"error": "Failed to generate suggestions", "details": str(e)}), 500
        return jsonify({"suggestions": [s.to_dict() for s in result]})

    return app


def run_server(
    host: str = "127.0.0.1",
    port: int = 3000,
    db_path: Optional[Path] = None,
):
    """Run the Annotation API server."""
    app = create_app(db_path)

    url = f"http://{host}:{port}/api"
    logger.info("Starting annotation API at %s", url)
    logger.info("Database: %s", app.config["DB"].db_path)

    app.run(host=host, port=port, debug=False, threaded=True)
