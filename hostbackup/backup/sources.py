"""
Path set resolution for backup operations.

Turns the declarative include/exclude configuration into the walk
parameters used by the archive builder. No filesystem access happens here:
include roots that do not exist are passed through and reported by the
builder.
"""

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import List, Tuple


@dataclass(frozen=True)
class PathSpec:
    """
    Ordered include roots plus ordered exclusion globs.

    Fixed at configuration time and read-only for the rest of an operation.
    """

    include_roots: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedPathSet:
    """Walk parameters for the archive builder."""

    roots: Tuple[str, ...]
    exclude_patterns: Tuple[str, ...] = field(default=())

    def should_exclude(self, path: str) -> bool:
        return should_exclude(path, self.exclude_patterns)


def should_exclude(path: str, patterns) -> bool:
    """
    Check if a path matches any exclusion pattern.

    Patterns are shell globs matched the way tar's default ``--exclude``
    does: against the full path, or against any trailing run of its
    components, with ``*`` free to match across ``/``. So ``/var/log/*``
    only excludes the contents of that directory, while ``*/lost+found``
    and ``cache/*`` match anywhere in the tree.

    Args:
        path: Candidate path as it will be walked
        patterns: Glob patterns; the first match excludes

    Returns:
        True if path matches any exclude pattern, False otherwise
    """
    if not patterns:
        return False

    candidate = path.rstrip('/') or path
    suffixes = [candidate]
    offset = candidate.find('/')
    while offset != -1:
        tail = candidate[offset + 1:]
        if tail:
            suffixes.append(tail)
        offset = candidate.find('/', offset + 1)

    for pattern in patterns:
        pattern = pattern.rstrip('/') or pattern
        for suffix in suffixes:
            if fnmatchcase(suffix, pattern):
                return True

    return False


def resolve_path_set(spec: PathSpec, extra_roots: List[str] = None) -> ResolvedPathSet:
    """
    Expand a PathSpec into the concrete walk parameters.

    Args:
        spec: Include roots and exclusion patterns
        extra_roots: Additional roots appended after the configured ones
            (e.g. the metadata staging directory)

    Returns:
        ResolvedPathSet with roots in configuration order, duplicates dropped
    """
    roots = []
    for root in list(spec.include_roots) + list(extra_roots or []):
        root = os.path.normpath(root) if root else root
        if root and root not in roots:
            roots.append(root)

    return ResolvedPathSet(
        roots=tuple(roots),
        exclude_patterns=tuple(spec.exclude_patterns)
    )
