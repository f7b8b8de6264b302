"""
Network transfer of backup archives.

Uploads the artifact to an anonymous file-hosting endpoint (PUT, plain-text
locator in the response) and downloads it back (GET, following redirects).
Both directions share one fixed retry policy: a set number of attempts, a
fixed pause between them, no backoff growth and no jitter.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)

USER_AGENT = 'hostbackup/1.0'
CHUNK_SIZE = 64 * 1024
CONNECT_TIMEOUT = 30


class TransferError(Exception):
    """Raised when a transfer attempt, or the whole retry loop, fails."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


@dataclass
class TransferOutcome:
    """
    Result of a retried transfer.

    Individual attempt failures are transient; once ``ok`` is False after the
    loop, the failure is terminal for the calling operation.
    """

    ok: bool
    value: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def terminal(self) -> bool:
        return not self.ok


def retry(
    operation: Callable[[], str],
    attempts: int,
    delay: float,
    description: str = 'transfer',
    sleep: Callable[[float], None] = time.sleep
) -> TransferOutcome:
    """
    Run operation until it succeeds or the attempts run out.

    Args:
        operation: Callable returning a value, raising TransferError or
            requests.RequestException on a failed attempt
        attempts: Maximum number of calls
        delay: Seconds slept between consecutive attempts
        description: Label used in log messages
        sleep: Sleep function (replaced in tests)

    Returns:
        TransferOutcome with the operation's value or the last error
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            value = operation()
            return TransferOutcome(ok=True, value=value, attempts=attempt)
        except (TransferError, requests.RequestException) as e:
            last_error = str(e)
            if attempt < attempts:
                logger.warning(
                    f"{description} attempt {attempt} failed: {e}; retrying in {delay}s..."
                )
                sleep(delay)
            else:
                logger.warning(f"{description} attempt {attempt} failed: {e}")

    return TransferOutcome(ok=False, error=last_error, attempts=attempts)


class _DeadlineReader:
    """
    File wrapper for streamed uploads that enforces a whole-request deadline.

    Exposes ``__len__`` so requests sends a Content-Length header.
    """

    def __init__(self, fileobj, size: int, deadline: float):
        self.fileobj = fileobj
        self.size = size
        self.deadline = deadline

    def __len__(self):
        return self.size

    def __iter__(self):
        while True:
            chunk = self.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

    def read(self, size: int = -1) -> bytes:
        if time.monotonic() > self.deadline:
            raise TransferError('Upload exceeded its time limit')
        return self.fileobj.read(size)


class TransferClient:
    """
    HTTP client for the file-hosting endpoint.

    Anonymous access only; the locator returned by an upload is opaque and is
    handed back unchanged to download.
    """

    def __init__(
        self,
        base_url: str,
        retries: int = 3,
        retry_delay: float = 5,
        upload_timeout: float = 300,
        download_timeout: float = 1200,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize transfer client.

        Args:
            base_url: Endpoint the artifact name is appended to for uploads
            retries: Attempts per transfer
            retry_delay: Seconds between attempts
            upload_timeout: Upper bound on one upload request, in seconds
            download_timeout: Upper bound on one download request, in seconds
            session: requests session (default: a new one)
            sleep: Sleep function used between attempts
        """
        self.base_url = base_url.rstrip('/')
        self.retries = retries
        self.retry_delay = retry_delay
        self.upload_timeout = upload_timeout
        self.download_timeout = download_timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', USER_AGENT)
        self.sleep = sleep

    @classmethod
    def from_config(cls, config, **kwargs) -> 'TransferClient':
        return cls(
            base_url=config.TRANSFER_BASE,
            retries=config.TRANSFER_RETRIES,
            retry_delay=config.TRANSFER_RETRY_DELAY,
            upload_timeout=config.UPLOAD_TIMEOUT,
            download_timeout=config.DOWNLOAD_TIMEOUT,
            **kwargs
        )

    def upload_url(self, local_path: str) -> str:
        return f"{self.base_url}/{os.path.basename(local_path)}"

    def upload(self, local_path: str) -> str:
        """
        Upload archive and return its remote locator.

        Args:
            local_path: Path to local archive file

        Returns:
            Non-empty locator string returned by the endpoint

        Raises:
            TransferError: If every attempt failed
        """
        url = self.upload_url(local_path)
        outcome = retry(
            lambda: self._upload_once(local_path, url),
            self.retries,
            self.retry_delay,
            description='Upload',
            sleep=self.sleep
        )
        if outcome.terminal:
            raise TransferError(
                f"Failed to upload backup after {outcome.attempts} attempts: {outcome.error}",
                attempts=outcome.attempts
            )
        return outcome.value

    def _upload_once(self, local_path: str, url: str) -> str:
        try:
            size = os.path.getsize(local_path)
            fileobj = open(local_path, 'rb')
        except OSError as e:
            raise TransferError(f"Cannot read {local_path}: {e}")

        deadline = time.monotonic() + self.upload_timeout
        with fileobj:
            response = self.session.put(
                url,
                data=_DeadlineReader(fileobj, size, deadline),
                timeout=(CONNECT_TIMEOUT, self.upload_timeout)
            )

        with response:
            response.raise_for_status()
            locator = response.text.strip()

        if not locator:
            raise TransferError(f"Empty response from {url}")
        return locator

    def download(self, locator: str, local_path: str) -> str:
        """
        Download archive from a locator.

        Args:
            locator: URL returned by a previous upload
            local_path: Destination file, replaced only once the download completes

        Returns:
            local_path

        Raises:
            TransferError: If every attempt failed
        """
        outcome = retry(
            lambda: self._download_once(locator, local_path),
            self.retries,
            self.retry_delay,
            description='Download',
            sleep=self.sleep
        )
        if outcome.terminal:
            raise TransferError(
                f"Failed to download backup after {outcome.attempts} attempts: {outcome.error}",
                attempts=outcome.attempts
            )
        return outcome.value

    def _download_once(self, locator: str, local_path: str) -> str:
        partial_path = f"{local_path}.part"
        deadline = time.monotonic() + self.download_timeout

        try:
            with self.session.get(
                locator,
                stream=True,
                allow_redirects=True,
                timeout=(CONNECT_TIMEOUT, self.download_timeout)
            ) as response:
                response.raise_for_status()
                with open(partial_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if time.monotonic() > deadline:
                            raise TransferError('Download exceeded its time limit')
                        if chunk:
                            f.write(chunk)
            os.replace(partial_path, local_path)
        except (TransferError, requests.RequestException):
            self._discard(partial_path)
            raise
        except OSError as e:
            # requests exceptions are OSErrors too, so they are handled above
            self._discard(partial_path)
            raise TransferError(f"Cannot write {local_path}: {e}")

        return local_path

    @staticmethod
    def _discard(path: str):
        if os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                logger.debug(f"Could not remove partial download {path}: {e}")
