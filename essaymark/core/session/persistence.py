"""
Handles persistence of grading sessions to/from JSON files.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from essaymark.utils.resource_loader import get_cache_dir, get_sessions_dir
from .models import GradingSession

logger = logging.getLogger(__name__)


@dataclass
class StorageStats:
    session_bytes: int
    cache_bytes: int
    session_count: int

    @property
    def total_bytes(self) -> int:
        return self.session_bytes + self.cache_bytes


def _dir_size(path: Path, pattern: str) -> int:
    return sum(p.stat().st_size for p in path.glob(pattern) if p.is_file())


class SessionPersistence:
    """Manages saving and loading grading sessions to/from disk."""

    def __init__(self, sessions_dir: Optional[str] = None, cache_dir: Optional[str] = None):
        self._sessions_dir = Path(sessions_dir) if sessions_dir else None
        self._cache_dir = Path(cache_dir) if cache_dir else None

    @property
    def sessions_dir(self) -> Path:
        if self._sessions_dir is None:
            self._sessions_dir = get_sessions_dir()
        self._sessions_dir.mkdir(parents=True, exist_ok=True)
        return self._sessions_dir

    @property
    def cache_dir(self) -> Path:
        if self._cache_dir is None:
            self._cache_dir = get_cache_dir()
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        return self._cache_dir

    def get_session_path(self, session_id: str) -> Path:
        """
        Get the JSON file path for a session.

        Args:
            session_id: Session id

        Returns:
            Path to the session file
        """
        return self.sessions_dir / f"{session_id}.json"

    def save_session(self, session: GradingSession) -> bool:
        """
        Save a session to its JSON file.

        Args:
            session: Session to save

        Returns:
            True if save was successful, False otherwise
        """
        file_path = self.get_session_path(session.id)
        temp_path = file_path.with_suffix('.json.tmp')
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(session.to_dict(), f, indent=2)
            os.replace(temp_path, file_path)
            logger.debug("Saved session %s to %s", session.id, file_path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save session %s: %s", session.id, e)
            return False

    def load_session(self, session_id: str) -> Optional[GradingSession]:
        """
        Load a session from its JSON file.

        Args:
            session_id: Session id

        Returns:
            The session, or None if missing or unreadable
        """
        return self._load_file(self.get_session_path(session_id))

    def _load_file(self, file_path: Path) -> Optional[GradingSession]:
        if not file_path.exists():
            return None
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return GradingSession.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load session file %s: %s", file_path, e)
            return None

    def list_sessions(self) -> List[GradingSession]:
        """All readable sessions, newest first."""
        sessions = []
        for file_path in self.sessions_dir.glob('*.json'):
            session = self._load_file(file_path)
            if session is not None:
                sessions.append(session)
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions

    def delete_session(self, session_id: str) -> bool:
        """
        Delete a session file and its cached enhanced images.

        Returns:
            True if deletion was successful or file didn't exist
        """
        self.clear_enhancement_cache(session_id)

        file_path = self.get_session_path(session_id)
        if not file_path.exists():
            return True
        try:
            file_path.unlink()
            return True
        except OSError as e:
            logger.error("Failed to delete session file %s: %s", file_path, e)
            return False

    def has_session(self, session_id: str) -> bool:
        return self.get_session_path(session_id).exists()

    def clear_enhancement_cache(self, session_id: Optional[str] = None) -> int:
        """
        Remove cached enhanced images.

        Args:
            session_id: Only remove images of this session; all when None

        Returns:
            Number of files removed
        """
        pattern = f"{session_id}-*.png" if session_id else "*.png"
        removed = 0
        for path in self.cache_dir.glob(pattern):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not remove cache file %s: %s", path, e)
        return removed

    def storage_stats(self) -> StorageStats:
        return StorageStats(
            session_bytes=_dir_size(self.sessions_dir, '*.json'),
            cache_bytes=_dir_size(self.cache_dir, '*.png'),
            session_count=len(list(self.sessions_dir.glob('*.json')))
        )
