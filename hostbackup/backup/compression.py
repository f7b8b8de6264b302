"""
Archive handling for host backups.

Builds the single tar.gz artifact from a resolved path set and extracts it
back onto the filesystem. Building is best-effort: unreadable, vanished or
unsupported files are skipped and reported, and only a missing artifact
counts as a failed build. Extraction is all-or-nothing.
"""

import logging
import os
import stat
import tarfile
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .sources import ResolvedPathSet

logger = logging.getLogger(__name__)


class CompressionError(Exception):
    """Raised when an archive cannot be extracted or measured."""
    pass


class BuildStatus(Enum):
    CLEAN = 'clean'
    BUILT_WITH_WARNINGS = 'built_with_warnings'
    NO_ARTIFACT_PRODUCED = 'no_artifact_produced'


@dataclass
class BuildResult:
    """
    Outcome of an archive build.

    The artifact on disk is the authoritative success signal; status only
    tells callers whether anything was skipped along the way.
    """

    status: BuildStatus
    archive_path: str
    warnings: List[str] = field(default_factory=list)
    members: int = 0

    @property
    def artifact_exists(self) -> bool:
        return os.path.isfile(self.archive_path)


class _PaddedReader:
    """
    File reader that never returns short.

    A file that shrinks or fails to read after its header has been written
    would corrupt the tar stream, so missing bytes are replaced with NULs up
    to the size that was recorded. After a read error the file is not read
    again and the error is kept in ``error``.
    """

    def __init__(self, fileobj, size: int):
        self.fileobj = fileobj
        self.remaining = size
        self.offset = 0
        self.padded = 0
        self.error = None

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0 or size > self.remaining:
            size = self.remaining
        data = b''
        if self.error is None:
            try:
                data = self.fileobj.read(size)
            except OSError as e:
                self.error = e
        self.offset += len(data)
        if len(data) < size:
            self.padded += size - len(data)
            data += b'\0' * (size - len(data))
        self.remaining -= len(data)
        return data


class ArchiveBuilder:
    """
    Best-effort tar.gz builder.

    Member names are the walked paths with any leading ``/`` removed, so
    absolute include roots extract back under the restore root and relative
    roots stay relative to it.
    """

    def __init__(self, output_path: str):
        """
        Args:
            output_path: Fixed artifact path; any existing file is replaced
        """
        self.output_path = output_path
        self._output_abspath = os.path.abspath(output_path)
        self.warnings = []
        self.members = 0

    def build(self, path_set: ResolvedPathSet) -> BuildResult:
        """
        Walk every root, apply exclusions and write the archive.

        Args:
            path_set: Roots and exclusion patterns to archive

        Returns:
            BuildResult with status derived from the artifact on disk
        """
        self.warnings = []
        self.members = 0

        self._remove_stale_artifact()

        try:
            with tarfile.open(self.output_path, 'w:gz') as tar:
                for root in path_set.roots:
                    self._add_root(tar, root, path_set)
        except (OSError, tarfile.TarError) as e:
            self._warn(f"Archive write failed: {e}")

        if not os.path.isfile(self.output_path):
            logger.error(f"No archive produced at {self.output_path}")
            return BuildResult(
                status=BuildStatus.NO_ARTIFACT_PRODUCED,
                archive_path=self.output_path,
                warnings=list(self.warnings),
                members=self.members
            )

        status = BuildStatus.BUILT_WITH_WARNINGS if self.warnings else BuildStatus.CLEAN
        return BuildResult(
            status=status,
            archive_path=self.output_path,
            warnings=list(self.warnings),
            members=self.members
        )

    def _remove_stale_artifact(self):
        if os.path.lexists(self.output_path):
            try:
                os.remove(self.output_path)
            except OSError as e:
                self._warn(f"Could not remove previous archive {self.output_path}: {e}")

    def _add_root(self, tar: tarfile.TarFile, root: str, path_set: ResolvedPathSet):
        if path_set.should_exclude(root):
            logger.debug(f"Excluded include root: {root}")
            return

        if not os.path.lexists(root):
            self._warn(f"{root}: Cannot stat: No such file or directory")
            return

        if not os.path.isdir(root) or os.path.islink(root):
            self._add_entry(tar, root)
            return

        def on_walk_error(error: OSError):
            self._warn(f"{error.filename}: Cannot open directory: {error.strerror}")

        for directory, dirnames, filenames in os.walk(root, onerror=on_walk_error):
            if not self._add_entry(tar, directory):
                dirnames[:] = []
                continue

            # Prune excluded directories before descending, keep order stable
            dirnames.sort()
            kept = []
            for name in dirnames:
                child = os.path.join(directory, name)
                if path_set.should_exclude(child):
                    continue
                if os.path.islink(child):
                    # os.walk does not follow links; archive the link itself
                    self._add_entry(tar, child)
                    continue
                kept.append(name)
            dirnames[:] = kept

            for name in sorted(filenames):
                child = os.path.join(directory, name)
                if not path_set.should_exclude(child):
                    self._add_entry(tar, child)

    def _add_entry(self, tar: tarfile.TarFile, path: str) -> bool:
        """
        Add one filesystem entry (not its children) to the archive.

        Returns:
            True if the entry was archived, False if it was skipped
        """
        if os.path.abspath(path) == self._output_abspath:
            logger.debug(f"Skipping the archive being written: {path}")
            return False

        arcname = path.lstrip('/') or '.'

        try:
            tarinfo = tar.gettarinfo(path, arcname)
        except FileNotFoundError:
            self._warn(f"{path}: File removed before we read it")
            return False
        except OSError as e:
            self._warn(f"{path}: Cannot stat: {e.strerror or e}")
            return False

        if tarinfo is None:
            try:
                mode = os.lstat(path).st_mode
            except OSError:
                mode = 0
            if stat.S_ISSOCK(mode):
                self._warn(f"{path}: socket ignored")
            else:
                self._warn(f"{path}: unsupported file type ignored")
            return False

        if not tarinfo.isreg():
            tar.addfile(tarinfo)
            self.members += 1
            return True

        try:
            fileobj = open(path, 'rb')
        except FileNotFoundError:
            self._warn(f"{path}: File removed before we read it")
            return False
        except OSError as e:
            self._warn(f"{path}: Cannot open: {e.strerror or e}")
            return False

        with fileobj:
            reader = _PaddedReader(fileobj, tarinfo.size)
            tar.addfile(tarinfo, reader)
            if reader.error is not None:
                self._warn(
                    f"{path}: Read error at byte {reader.offset}, while reading "
                    f"{tarinfo.size} bytes: {reader.error.strerror or reader.error}; "
                    f"padding with zeros"
                )
            elif reader.padded:
                self._warn(
                    f"{path}: File shrank by {reader.padded} bytes; padding with zeros"
                )

        self.members += 1
        return True

    def _warn(self, message: str):
        self.warnings.append(message)
        logger.warning(message)


def build_archive(path_set: ResolvedPathSet, output_path: str) -> BuildResult:
    """
    Create the backup archive from a resolved path set.

    Args:
        path_set: Roots and exclusion patterns to archive
        output_path: Artifact path, overwritten if present

    Returns:
        BuildResult; check ``artifact_exists`` rather than ``status`` to decide
        whether there is anything to upload
    """
    result = ArchiveBuilder(output_path).build(path_set)
    if result.status is BuildStatus.CLEAN:
        logger.info(f"Archive created: {output_path} ({result.members} entries)")
    elif result.status is BuildStatus.BUILT_WITH_WARNINGS:
        logger.warning(
            f"Archive created with {len(result.warnings)} warnings: {output_path}"
        )
    return result


def extract_archive(archive_path: str, destination_root: str = '/') -> List[str]:
    """
    Extract the archive, recreating recorded paths under destination_root.

    Args:
        archive_path: Path to the tar.gz artifact
        destination_root: Directory member paths are relative to

    Returns:
        Names of the extracted members

    Raises:
        CompressionError: If the archive is unreadable or any member fails
    """
    if not os.path.isfile(archive_path):
        raise CompressionError(f"Archive not found: {archive_path}")

    try:
        with tarfile.open(archive_path, 'r:*') as tar:
            tar.errorlevel = 1
            members = tar.getmembers()
            tar.extractall(path=destination_root, members=members, filter='tar')
            return [member.name for member in members]
    except (OSError, tarfile.TarError, EOFError) as e:
        raise CompressionError(f"Failed to extract archive {archive_path}: {e}")


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Args:
        archive_path: Path to the archive file

    Returns:
        File size in bytes

    Raises:
        CompressionError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise CompressionError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise CompressionError(f"Failed to get archive size: {e}")


def format_size(size_bytes: Optional[int]) -> str:
    """Render a byte count in whole megabytes, as the size log line does."""
    return f"{(size_bytes or 0) // 1024 // 1024}MB"
