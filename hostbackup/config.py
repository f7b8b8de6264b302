import os
import shlex

from hostbackup.backup.sources import PathSpec


def _env_list(name, default, separator):
    """Read a separated list from the environment, falling back to default."""
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(separator) if item.strip()]


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value else default


class Config:
    """Base configuration"""

    DEBUG = False

    # Local artifact and pointer file, relative to the working directory
    BACKUP_NAME = os.environ.get('BACKUP_NAME') or 'vps_backup.tar.gz'
    LAST_BACKUP_FILE = os.environ.get('LAST_BACKUP_FILE') or 'last_backup_url.txt'

    # Remote file hosting
    TRANSFER_BASE = os.environ.get('TRANSFER_BASE') or 'https://transfer.sh'
    TRANSFER_RETRIES = _env_int('TRANSFER_RETRIES', 3)
    TRANSFER_RETRY_DELAY = _env_int('TRANSFER_RETRY_DELAY', 5)
    UPLOAD_TIMEOUT = _env_int('UPLOAD_TIMEOUT', 300)
    DOWNLOAD_TIMEOUT = _env_int('DOWNLOAD_TIMEOUT', 1200)

    # Critical directories only
    INCLUDE_DIRS = _env_list(
        'BACKUP_INCLUDE_DIRS',
        ['/etc', '/home', '/usr/local', '/opt', '/var/lib/pufferpanel'],
        os.pathsep
    )

    # Huge, volatile or virtual trees
    EXCLUDE_PATTERNS = _env_list(
        'BACKUP_EXCLUDE_PATTERNS',
        [
            '/var/lib/docker/*',
            '/var/log/*',
            '/var/cache/apt/*',
            '/var/tmp/*',
            '/tmp/*',
            '/proc/*',
            '/sys/*',
            '/dev/*',
            '/run/*',
            '/mnt/*',
            '/media/*',
            '*/lost+found',
        ],
        ','
    )

    # Installed package manifest, archived alongside the include dirs
    META_DIR = os.environ.get('BACKUP_META_DIR') or 'backup_meta'
    PACKAGE_LIST_FILE = 'installed_packages.txt'
    PACKAGE_LIST_COMMAND = shlex.split(
        os.environ.get('PACKAGE_LIST_COMMAND') or 'dpkg --get-selections'
    )

    # Oversized artifacts are flagged, never blocked
    SIZE_WARNING_BYTES = _env_int('SIZE_WARNING_BYTES', 10 * 1024 * 1024 * 1024)

    RESTORE_ROOT = os.environ.get('RESTORE_ROOT') or '/'

    # Console only unless a log file is requested
    LOG_FILE = os.environ.get('HOSTBACKUP_LOG_FILE')

    @classmethod
    def path_spec(cls) -> PathSpec:
        """Build the include/exclude value handed to the path resolver."""
        return PathSpec(
            include_roots=tuple(cls.INCLUDE_DIRS),
            exclude_patterns=tuple(cls.EXCLUDE_PATTERNS)
        )


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


def get_config(config_name=None):
    """Return the configuration class selected by name or HOSTBACKUP_ENV."""
    if config_name is None:
        config_name = os.environ.get('HOSTBACKUP_ENV', 'production')
    try:
        return config[config_name]
    except KeyError:
        raise ValueError(
            f"Invalid configuration: {config_name}. "
            f"Valid options: {list(config.keys())}"
        )
