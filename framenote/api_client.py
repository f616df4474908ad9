"""HTTP client for the Annotation, User and Suggestions APIs."""

from typing import List, Optional

import requests

from .config import get_api_url, get_http_timeout
from .errors import NotFoundError, TransportError, ValidationError
from .logging import get_logger
from .models import Annotation, TimeRange, User
from .suggestions import VisualSuggestion

logger = get_logger(__name__)


class AnnotationApiClient:
    """
    Thin wrapper over the REST API.

    Every failure surfaces as a FrameNote error: 400 becomes ValidationError,
    404 NotFoundError, anything else (including connection problems)
    TransportError. Nothing is retried.
    """

    def __init__(self, base_url: str = None, timeout: float = None, session: requests.Session = None):
        self.base_url = (base_url or get_api_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_http_timeout()
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.ConnectionError as e:
            raise TransportError(f"Could not connect to {self.base_url}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.ok:
            return response.json() if response.content else {}

        try:
            message = response.json().get("error", response.reason)
        except ValueError:
            message = response.reason or f"HTTP {response.status_code}"

        logger.debug("%s %s -> %d %s", method, path, response.status_code, message)
        if response.status_code == 400:
            raise ValidationError(message)
        if response.status_code == 404:
            raise NotFoundError(message)
        raise TransportError(f"{method} {path} failed: {message}", status_code=response.status_code)

    # -- users ----------------------------------------------------------------

    def create_user(self, name: str) -> User:
        if not name or not name.strip():
            raise ValidationError("Name is required")
        return User.from_dict(self._request("POST", "/users", json={"name": name.strip()}))

    def get_user(self, user_id: str) -> Optional[User]:
        """Fetch a user; None when the server no longer knows it."""
        try:
            return User.from_dict(self._request("GET", f"/users/{user_id}"))
        except NotFoundError:
            return None

    def rename_user(self, user_id: str, name: str) -> User:
        if not name or not name.strip():
            raise ValidationError("Name is required")
        return User.from_dict(self._request("PATCH", f"/users/{user_id}", json={"name": name.strip()}))

    # -- annotations ------------------------------------------------------------

    def list_annotations(self, video_id: str) -> List[Annotation]:
        rows = self._request("GET", f"/annotations/video/{video_id}")
        return [Annotation.from_wire(row) for row in rows]

    def create_annotation(self, annotation: Annotation) -> Annotation:
        """Persist an annotation; id and created_at come back server-assigned."""
        return Annotation.from_wire(self._request("POST", "/annotations", json=annotation.to_wire()))

    def update_annotation(
        self,
        annotation_id: str,
        text: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
    ) -> Annotation:
        body = {}
        if text is not None:
            body["text"] = text
        if time_range is not None:
            body["start_time"] = time_range.start
            body["end_time"] = time_range.end
        return Annotation.from_wire(self._request("PATCH", f"/annotations/{annotation_id}", json=body))

    def delete_annotation(self, annotation_id: str) -> None:
        self._request("DELETE", f"/annotations/{annotation_id}")

    def clear_annotations(self, video_id: str) -> int:
        return self._request("DELETE", f"/annotations/video/{video_id}").get("deleted", 0)

    def export_annotations(self, video_id: str) -> dict:
        return self._request("GET", f"/annotations/export/{video_id}")

    def import_annotations(self, video_hash: str, annotations: list, user_id: str) -> int:
        result = self._request(
            "POST",
            "/annotations/import",
            json={"videoHash": video_hash, "annotations": annotations, "userId": user_id},
        )
        return result.get("imported", 0)

    # -- misc -----------------------------------------------------------------

    def get_suggestions(
        self, full_transcript: str, selection_transcript: str, time_range: TimeRange
    ) -> List[VisualSuggestion]:
        result = self._request(
            "POST",
            "/suggestions",
            json={
                "fullTranscript": full_transcript,
                "selectionTranscript": selection_transcript,
                "selectionTimeRange": {"start": time_range.start, "end": time_range.end},
            },
        )
        return [VisualSuggestion(**s) for s in result.get("suggestions", [])]

    def health(self) -> dict:
        return self._request("GET", "/health")
