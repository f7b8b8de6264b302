"""
Shared pytest fixtures for hostbackup tests.

This module provides fixtures for:
- A per-test configuration rooted in a temporary working directory
- Synthetic directory trees to archive
- A recording sleep function for retry timing
- Fake HTTP sessions and responses (no network access)
- A click CLI runner
"""

import io
from unittest.mock import MagicMock

import pytest
import requests
from click.testing import CliRunner

from hostbackup.config import Config


@pytest.fixture(scope='function')
def workdir(tmp_path, monkeypatch):
    """
    Temporary working directory for the artifact and the pointer file.
    """
    work = tmp_path / 'work'
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture(scope='function')
def temp_tree(tmp_path):
    """
    Create a synthetic tree to back up.

    Creates:
    - src/a/file1
    - src/a/file2
    - src/b/file3
    """
    src = tmp_path / 'src'
    (src / 'a').mkdir(parents=True)
    (src / 'b').mkdir()
    (src / 'a' / 'file1').write_text('content one')
    (src / 'a' / 'file2').write_text('content two')
    (src / 'b' / 'file3').write_text('content three')
    return src


@pytest.fixture(scope='function')
def app_config(tmp_path, workdir, temp_tree):
    """
    Configuration class pointing every path into tmp_path.

    Backs up src/a and src/b, excludes src/b contents, restores into
    tmp_path/restore and lists packages with a harmless command.
    """
    restore_root = tmp_path / 'restore'
    restore_root.mkdir()

    class TestingConfig(Config):
        DEBUG = True
        BACKUP_NAME = 'vps_backup.tar.gz'
        LAST_BACKUP_FILE = 'last_backup_url.txt'
        TRANSFER_BASE = 'https://files.example.test'
        TRANSFER_RETRIES = 3
        TRANSFER_RETRY_DELAY = 5
        UPLOAD_TIMEOUT = 300
        DOWNLOAD_TIMEOUT = 1200
        INCLUDE_DIRS = [str(temp_tree / 'a'), str(temp_tree / 'b')]
        EXCLUDE_PATTERNS = ['b/*', '*/lost+found']
        META_DIR = 'backup_meta'
        PACKAGE_LIST_FILE = 'installed_packages.txt'
        PACKAGE_LIST_COMMAND = ['echo', 'bash\tinstall']
        SIZE_WARNING_BYTES = 10 * 1024 * 1024 * 1024
        RESTORE_ROOT = str(restore_root)
        LOG_FILE = None

    return TestingConfig


@pytest.fixture
def fake_sleep():
    """
    Sleep replacement that records each requested delay.
    """
    delays = []

    def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def make_response():
    """
    Factory building real requests.Response objects with a given body.
    """
    def factory(status_code=200, content=b'', url='https://files.example.test/x'):
        response = requests.Response()
        response.status_code = status_code
        response.url = url
        response.reason = 'OK' if status_code < 400 else 'Error'
        response.encoding = 'utf-8'
        response.raw = io.BytesIO(content)
        return response

    return factory


@pytest.fixture
def mock_session():
    """
    Mock requests.Session; configure put/get return values per test.
    """
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture(scope='function')
def runner():
    """click CLI test runner."""
    return CliRunner()


@pytest.fixture
def sample_archive(tmp_path):
    """
    Create a sample archive file for testing.
    """
    import tarfile

    # Create some test files
    test_dir = tmp_path / 'test_data'
    test_dir.mkdir()
    (test_dir / 'file1.txt').write_text('Content 1')
    (test_dir / 'file2.txt').write_text('Content 2')

    # Create archive
    archive_path = tmp_path / 'test_archive.tar.gz'
    with tarfile.open(archive_path, 'w:gz') as tar:
        tar.add(test_dir, arcname='test_data')

    return archive_path
