"""
Installed-package manifest collection.

Writes the package manager's selection list into the metadata staging
directory so it travels inside the archive. Best-effort: any failure is
logged and the backup carries on without the manifest.
"""

import logging
import os
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)

# Listing packages should never hold up a backup for long
COMMAND_TIMEOUT = 120


def collect_package_manifest(
    meta_dir: str,
    filename: str,
    command: List[str]
) -> Optional[str]:
    """
    Save the installed package list.

    Args:
        meta_dir: Staging directory, created if missing
        filename: Manifest file name inside meta_dir
        command: Package listing command, e.g. ['dpkg', '--get-selections']

    Returns:
        Path to the manifest, or None if it could not be produced
    """
    manifest_path = os.path.join(meta_dir, filename)

    try:
        os.makedirs(meta_dir, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create metadata directory {meta_dir}: {e}")
        return None

    logger.info("Saving installed package list")

    try:
        with open(manifest_path, 'wb') as f:
            subprocess.run(
                command,
                stdout=f,
                stderr=subprocess.DEVNULL,
                check=True,
                timeout=COMMAND_TIMEOUT
            )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"Package list failed ({' '.join(command)}): {e}")
        return None

    return manifest_path
