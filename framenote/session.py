"""Local cache of the current user's identity, for continuity across runs."""

import json
from pathlib import Path
from typing import Optional

from .config import get_home_dir
from .logging import get_logger
from .models import User

logger = get_logger(__name__)

USER_STORAGE_KEY = "frame_note_user"


class UserCache:
    """Stores the current user as JSON under a well-known key."""

    def __init__(self, directory: Optional[Path] = None):
        if directory is None:
            directory = get_home_dir()
        self.path = Path(directory) / f"{USER_STORAGE_KEY}.json"

    def load(self) -> Optional[User]:
        """Cached user, or None when absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            return User.from_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (ValueError, KeyError) as e:
            logger.warning("Ignoring corrupt user cache %s: %s", self.path, e)
            return None

    def save(self, user: User) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(user.to_dict(), indent=2), encoding="utf-8")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
