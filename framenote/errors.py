"""Error taxonomy shared by the client, the controller and the server."""

from typing import Optional


class FrameNoteError(Exception):
    """Base class for all FrameNote errors."""


class ValidationError(FrameNoteError):
    """Input rejected on the client before any network call."""


class NotFoundError(FrameNoteError):
    """A referenced user or annotation does not exist server-side."""


class TransportError(FrameNoteError):
    """Network failure or unexpected server answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IntegrityError(FrameNoteError, OSError):
    """The video file could not be read while computing its identity."""


class HashMismatchWarning(UserWarning):
    """Imported annotations were exported for a different video."""

    def __init__(self, import_hash: str, current_hash: str):
        self.import_hash = import_hash
        self.current_hash = current_hash
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return (
            "Warning: The imported annotations are for a different video.\n\n"
            f"Import file hash: {self.import_hash[:16]}...\n"
            f"Current video hash: {self.current_hash[:16]}...\n\n"
            "Do you want to import anyway?"
        )
