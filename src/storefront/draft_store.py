"""Durable key/value storage for order drafts."""

import fcntl
import json
import logging
import math
import os
import re
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)

DRAFTS_DIR = "drafts"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _valid_expiry(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class DraftStore:
    """
    Stores JSON values with an expiry, one file per key.

    Every failure (unwritable directory, full disk, corrupt file) is logged
    and turned into a miss or a no-op. Callers never see storage errors.
    """

    def __init__(self, data_dir: Path, clock: Callable[[], float] = time.time):
        """
        Initialize DraftStore.

        Args:
            data_dir: Base data directory; drafts live in its drafts/ subdir.
            clock: Returns the current time in epoch seconds (for testing).
        """
        self.drafts_dir = Path(data_dir) / DRAFTS_DIR
        self._clock = clock

    def _path_for(self, key: str) -> Path | None:
        if not _KEY_PATTERN.match(key) or key.startswith("."):
            logger.warning(f"Refusing invalid draft key: {key!r}")
            return None
        return self.drafts_dir / f"{key}.json"

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the drafts directory."""
        self.drafts_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.drafts_dir / ".drafts.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def save(self, key: str, value: dict[str, Any], ttl: float) -> None:
        """
        Write a value under key, expiring after ttl seconds.

        Uses write-to-temp-then-rename so a reader never sees half a file.
        """
        path = self._path_for(key)
        if path is None:
            return

        document = {"expires_at": self._clock() + ttl, "value": value}
        try:
            with self._lock():
                fd, temp_path = tempfile.mkstemp(
                    dir=self.drafts_dir, prefix=f".{key}_", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(document, f, indent=2)
                        f.write("\n")
                    os.replace(temp_path, path)
                except Exception:
                    try:
                        os.unlink(temp_path)
                    except OSError:
                        pass
                    raise
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save draft {key!r}: {e}")

    def load(self, key: str) -> dict[str, Any] | None:
        """
        Load the value saved under key.

        Returns:
            The saved value, or None if it is absent, expired or unreadable.
        """
        path = self._path_for(key)
        if path is None:
            return None

        try:
            with self._lock():
                if not path.exists():
                    return None
                with open(path, "r", encoding="utf-8") as f:
                    document = json.load(f)

                if not isinstance(document, dict):
                    logger.warning(f"Ignoring malformed draft {key!r}")
                    return None

                expires_at = document.get("expires_at")
                value = document.get("value")
                if not _valid_expiry(expires_at) or not isinstance(value, dict):
                    logger.warning(f"Ignoring malformed draft {key!r}")
                    return None

                if expires_at <= self._clock():
                    logger.debug(f"Draft {key!r} expired")
                    path.unlink(missing_ok=True)
                    return None

                return value
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load draft {key!r}: {e}")
            return None

    def clear(self, key: str) -> None:
        """Remove the value saved under key, if any."""
        path = self._path_for(key)
        if path is None:
            return

        try:
            with self._lock():
                path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not clear draft {key!r}: {e}")
