"""
Backup module for hostbackup.

This module handles the core backup functionality including:
- Path set resolution (include roots, exclude globs)
- Archive building and extraction
- Transfer to and from the file-hosting endpoint
- The last-backup pointer file
- Execution orchestration
"""

from .executor import BackupExecutor, RestoreExecutor, ExitCode, backup_and_upload, restore_backup
from .sources import PathSpec, resolve_path_set
from .compression import build_archive, extract_archive, BuildResult, BuildStatus
from .storage import TransferClient, retry
from .pointer import BackupPointerStore

__all__ = [
    'BackupExecutor',
    'RestoreExecutor',
    'ExitCode',
    'backup_and_upload',
    'restore_backup',
    'PathSpec',
    'resolve_path_set',
    'build_archive',
    'extract_archive',
    'BuildResult',
    'BuildStatus',
    'TransferClient',
    'retry',
    'BackupPointerStore'
]
