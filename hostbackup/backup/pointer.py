"""
Single-record store for the last backup locator.

The store is one text file holding one trimmed line. Writing replaces the
previous locator outright; there is no history and no locking, since only
one operation runs against the file at a time.
"""

import logging
import os
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


class PointerStoreError(Exception):
    """Raised when the pointer file cannot be read or written."""
    pass


class BackupPointerStore:
    """Read/write handle for the pointer file."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> Optional[str]:
        """
        Return the stored locator.

        Returns:
            The locator, or None when the file is missing, empty or blank

        Raises:
            PointerStoreError: If the file exists but cannot be read as text
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                locator = f.read().strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise PointerStoreError(f"Failed to read {self.path}: {e}")

        return locator or None

    def write(self, locator: str):
        """
        Replace the stored locator.

        The new content goes to a temporary file in the same directory and is
        moved over the old one, so a reader sees either the old or the new
        line, never a partial one.

        Raises:
            ValueError: If locator is empty
            PointerStoreError: If the file cannot be written
        """
        locator = (locator or '').strip()
        if not locator:
            raise ValueError("Cannot store an empty backup locator")

        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, temp_path = tempfile.mkstemp(
                prefix='.pointer_', suffix='.tmp', dir=directory
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(locator + '\n')
                os.chmod(temp_path, 0o644)
                os.replace(temp_path, self.path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except OSError as e:
            raise PointerStoreError(f"Failed to write {self.path}: {e}")

        logger.debug(f"Stored backup locator in {self.path}")

    def __repr__(self):
        return f"BackupPointerStore({self.path!r})"
