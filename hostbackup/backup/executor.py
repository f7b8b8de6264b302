"""
Backup executor - orchestrates the two top-level operations.

backup_and_upload:
1. Save installed package list (best-effort)
2. Resolve include/exclude path set
3. Build archive (abort if no artifact exists afterwards)
4. Warn if the archive is larger than the configured threshold
5. Upload archive (abort when retries are exhausted)
6. Record the returned locator in the pointer file

restore_backup:
1. Read the pointer file (abort if there is no prior backup or it is unreadable)
2. Download archive (abort when retries are exhausted)
3. Extract archive onto the restore root

Each abort path has its own exit code. Nothing is retried across steps and
partial progress (e.g. a built but not uploaded archive) is left on disk.
"""

import logging
import os
from enum import IntEnum
from typing import Optional

from hostbackup.utils.packages import collect_package_manifest
from .sources import resolve_path_set
from .compression import (
    build_archive,
    extract_archive,
    get_archive_size,
    format_size,
    BuildStatus,
    CompressionError
)
from .storage import TransferClient, TransferError
from .pointer import BackupPointerStore, PointerStoreError

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    SUCCESS = 0
    NO_PRIOR_BACKUP = 1
    DOWNLOAD_FAILED = 2
    EXTRACT_FAILED = 3
    ARCHIVE_MISSING = 4
    BUILD_FAILED = 5
    UPLOAD_FAILED = 6
    POINTER_WRITE_FAILED = 7
    POINTER_READ_FAILED = 8
    MISSING_COMMAND = 10
    UNKNOWN_COMMAND = 11


class BackupExecutor:
    """
    Runs the backup pipeline for one configuration.
    """

    def __init__(
        self,
        config,
        transfer_client: Optional[TransferClient] = None,
        pointer_store: Optional[BackupPointerStore] = None
    ):
        """
        Initialize backup executor.

        Args:
            config: Configuration class (see hostbackup.config)
            transfer_client: Client used for the upload (default: from config)
            pointer_store: Pointer file handle (default: LAST_BACKUP_FILE)
        """
        self.config = config
        self.transfer_client = transfer_client or TransferClient.from_config(config)
        self.pointer_store = pointer_store or BackupPointerStore(config.LAST_BACKUP_FILE)
        self.build_result = None
        self.locator = None

    def execute(self) -> ExitCode:
        logger.info("backup_and_upload: starting")

        # Step 1: Package manifest
        manifest = collect_package_manifest(
            self.config.META_DIR,
            self.config.PACKAGE_LIST_FILE,
            self.config.PACKAGE_LIST_COMMAND
        )
        if manifest is None:
            logger.warning("Continuing without installed package list")

        # Step 2: Path set
        extra_roots = [self.config.META_DIR] if os.path.isdir(self.config.META_DIR) else []
        path_set = resolve_path_set(self.config.path_spec(), extra_roots)
        logger.debug(f"Archiving {list(path_set.roots)}")

        # Step 3: Archive
        logger.info(f"Creating archive {self.config.BACKUP_NAME}...")
        self.build_result = build_archive(path_set, self.config.BACKUP_NAME)
        if not self.build_result.artifact_exists:
            logger.error(f"Archive was not created: {self.config.BACKUP_NAME}")
            return ExitCode.BUILD_FAILED
        if self.build_result.status is BuildStatus.BUILT_WITH_WARNINGS:
            logger.warning("Archive had issues, but continuing...")

        # Step 4: Size check
        self._check_size()

        # Step 5: Upload
        logger.info(f"Uploading to {self.transfer_client.base_url} ...")
        try:
            self.locator = self.transfer_client.upload(self.config.BACKUP_NAME)
        except TransferError as e:
            logger.error(str(e))
            return ExitCode.UPLOAD_FAILED
        logger.info(f"Upload succeeded: {self.locator}")

        # Step 6: Pointer
        try:
            self.pointer_store.write(self.locator)
        except PointerStoreError as e:
            logger.error(f"Upload succeeded but the link was not saved: {e}")
            return ExitCode.POINTER_WRITE_FAILED
        logger.info(f"Saved upload link to {self.pointer_store.path}")

        return ExitCode.SUCCESS

    def _check_size(self):
        try:
            size = get_archive_size(self.config.BACKUP_NAME)
        except CompressionError as e:
            logger.warning(str(e))
            return

        logger.info(f"Archive size: {format_size(size)}")
        threshold = self.config.SIZE_WARNING_BYTES
        if threshold and size > threshold:
            logger.warning(
                f"Archive is larger than {format_size(threshold)}; "
                f"the upload may be rejected by the remote endpoint"
            )


class RestoreExecutor:
    """
    Runs the restore pipeline for one configuration.
    """

    def __init__(
        self,
        config,
        transfer_client: Optional[TransferClient] = None,
        pointer_store: Optional[BackupPointerStore] = None
    ):
        self.config = config
        self.transfer_client = transfer_client or TransferClient.from_config(config)
        self.pointer_store = pointer_store or BackupPointerStore(config.LAST_BACKUP_FILE)
        self.extracted = []

    def execute(self) -> ExitCode:
        logger.info("restore_backup: starting")

        # Step 1: Pointer
        try:
            locator = self.pointer_store.read()
        except PointerStoreError as e:
            logger.error(str(e))
            return ExitCode.POINTER_READ_FAILED
        if locator is None:
            logger.warning(f"No backup link in {self.pointer_store.path} - nothing to restore.")
            return ExitCode.NO_PRIOR_BACKUP

        # Step 2: Download
        logger.info(f"Downloading backup from: {locator}")
        try:
            self.transfer_client.download(locator, self.config.BACKUP_NAME)
        except TransferError as e:
            logger.error(str(e))
            return ExitCode.DOWNLOAD_FAILED
        logger.info("Download succeeded.")

        if not os.path.isfile(self.config.BACKUP_NAME):
            logger.error(f"Downloaded archive not found: {self.config.BACKUP_NAME}")
            return ExitCode.ARCHIVE_MISSING

        # Step 3: Extract
        logger.info(f"Extracting {self.config.BACKUP_NAME} to {self.config.RESTORE_ROOT}...")
        try:
            self.extracted = extract_archive(self.config.BACKUP_NAME, self.config.RESTORE_ROOT)
        except CompressionError as e:
            logger.error(str(e))
            return ExitCode.EXTRACT_FAILED
        logger.info(f"Extraction completed ({len(self.extracted)} entries).")

        return ExitCode.SUCCESS


def backup_and_upload(config, **kwargs) -> ExitCode:
    """
    Archive the configured paths, upload the archive and record its locator.

    Args:
        config: Configuration class
        **kwargs: Collaborator overrides passed to BackupExecutor

    Returns:
        ExitCode describing the outcome
    """
    return BackupExecutor(config, **kwargs).execute()


def restore_backup(config, **kwargs) -> ExitCode:
    """
    Download the last uploaded archive and extract it onto the restore root.

    Args:
        config: Configuration class
        **kwargs: Collaborator overrides passed to RestoreExecutor

    Returns:
        ExitCode describing the outcome
    """
    return RestoreExecutor(config, **kwargs).execute()
