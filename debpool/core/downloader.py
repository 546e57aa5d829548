"""Parallel HTTP downloader with checksum verification.

Downloads run on a thread pool.  Each attempt streams into
``{destination}.down`` while hashing the bytes; only a file that passed
verification is renamed onto ``destination``.  A failed, mismatching or
interrupted download therefore never leaves anything at ``destination``.

Retry policy
------------
- Transport: ``urllib3`` ``Retry`` mounted on the session (connect/read
  errors, 429 and 5xx), invisible to the caller.
- Checksum mismatch: the whole fetch is repeated up to ``max_tries`` times
  via ``tenacity``; partial or corrupted transfers are the usual cause.
- Anything else (4xx, DNS failure after transport retries ...) fails the
  call immediately with ``DownloadError``.

``download`` and ``download_with_checksum`` take an optional ``timeout``.  When
it expires the task is told to stop; the worker notices between chunks,
removes its partial file and the call raises ``DownloadAbortedError``.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures import wait as wait_futures
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)
from urllib3.util.retry import Retry

from debpool.config import DebpoolSettings
from debpool.core.hasher import CHUNK_SIZE, ChecksumWriter
from debpool.core.interfaces import Progress
from debpool.core.progress import ensure_progress
from debpool.errors import ChecksumMismatchError, DownloadAbortedError, DownloadError
from debpool.models.checksums import ChecksumInfo
from debpool.models.downloads import DownloadTask

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".down"

_RETRY_STATUSES = (429, 500, 502, 503, 504)


def make_session(transport_retries: int, user_agent: str) -> requests.Session:
    """Session with transport-level retries for idempotent GETs."""
    session = requests.Session()
    retry = Retry(
        total=transport_retries,
        connect=transport_retries,
        read=transport_retries,
        status_forcelist=_RETRY_STATUSES,
        backoff_factor=0.3,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers["User-Agent"] = user_agent
    return session


class ParallelDownloader:
    """Fetches remote files concurrently, up to ``workers`` at a time.

    Parameters
    ----------
    progress:
        Sink that receives downloaded bytes and messages.  Defaults to a
        ``NullProgress``.
    workers:
        Maximum number of concurrent downloads.
    timeout:
        Per-request connect/read timeout in seconds.
    retry_wait_seconds:
        Pause between checksum-mismatch retries.
    session:
        Shared ``requests.Session``.  When omitted every worker thread
        builds its own session with transport retries.
    """

    def __init__(
        self,
        progress: Progress | None = None,
        *,
        workers: int = 4,
        timeout: float = 60.0,
        retry_wait_seconds: float = 0.0,
        transport_retries: int = 2,
        user_agent: str = "debpool",
        session: requests.Session | None = None,
    ) -> None:
        self._progress = ensure_progress(progress)
        self.workers = workers
        self.timeout = timeout
        self.retry_wait_seconds = retry_wait_seconds
        self._transport_retries = transport_retries
        self._user_agent = user_agent
        self._shared_session = session
        self._local = threading.local()
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls, settings: DebpoolSettings, progress: Progress | None = None
    ) -> ParallelDownloader:
        return cls(
            progress,
            workers=settings.download_workers,
            timeout=settings.download_timeout_seconds,
            retry_wait_seconds=settings.retry_wait_seconds,
            transport_retries=settings.transport_retries,
            user_agent=settings.user_agent,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_progress(self) -> Progress:
        return self._progress

    def download(
        self,
        url: str,
        destination: str | os.PathLike[str],
        timeout: float | None = None,
    ) -> None:
        """Fetch ``url`` into ``destination``, blocking until done.

        ``timeout`` bounds the whole call; when it expires the download is
        aborted and ``DownloadAbortedError`` is raised.
        """
        self._wait(DownloadTask(url=url, destination=Path(destination)), timeout)

    def download_with_checksum(
        self,
        url: str,
        destination: str | os.PathLike[str],
        expected: ChecksumInfo | None,
        ignore_mismatch: bool = False,
        max_tries: int = 1,
        timeout: float | None = None,
    ) -> None:
        """Fetch ``url`` and verify it against ``expected``.

        On mismatch the fetch is repeated up to ``max_tries`` attempts in
        total.  With ``ignore_mismatch`` the last attempt's file is kept even
        if it still does not match.  ``timeout`` works as for ``download``.
        """
        task = DownloadTask(
            url=url,
            destination=Path(destination),
            expected=expected,
            ignore_mismatch=ignore_mismatch,
            max_tries=max_tries,
        )
        self._wait(task, timeout)

    def submit(
        self, task: DownloadTask, abort: threading.Event | None = None
    ) -> Future[None]:
        """Queue a download and return its future.

        Setting ``abort`` stops the download between chunks; the future then
        fails with ``DownloadAbortedError`` and nothing reaches the destination.
        """
        return self._get_executor().submit(self._run, task, abort or threading.Event())

    def download_many(self, tasks: Iterable[DownloadTask]) -> list[BaseException | None]:
        """Run a batch concurrently; return each task's error (or None), in order."""
        futures = [self.submit(task) for task in tasks]
        return [future.exception() for future in futures]

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None

    def __enter__(self) -> ParallelDownloader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _wait(self, task: DownloadTask, timeout: float | None) -> None:
        """Run ``task`` and block; abort it if the caller stops waiting."""
        abort = threading.Event()
        future = self.submit(task, abort)
        try:
            future.result(timeout)
        except FutureTimeoutError as exc:
            self._abort(future, abort)
            if not future.cancelled() and future.exception() is None:
                # finished while being aborted
                return
            raise DownloadAbortedError(task.url, f"timed out after {timeout}s") from exc
        except KeyboardInterrupt:
            self._abort(future, abort)
            raise

    @staticmethod
    def _abort(future: Future[None], abort: threading.Event) -> None:
        """Signal the worker and wait until it has cleaned up."""
        abort.set()
        future.cancel()
        wait_futures([future])

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.workers, thread_name_prefix="debpool-download"
                )
            return self._executor

    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = make_session(self._transport_retries, self._user_agent)
            self._local.session = session
        return session

    def _run(self, task: DownloadTask, abort: threading.Event) -> None:
        destination = task.destination
        partial = destination.with_name(destination.name + PARTIAL_SUFFIX)
        destination.parent.mkdir(parents=True, exist_ok=True)
        self._progress.printf("Downloading %s...\n", task.url)

        retrying = Retrying(
            stop=stop_after_attempt(task.max_tries),
            wait=wait_fixed(self.retry_wait_seconds),
            retry=retry_if_exception_type(ChecksumMismatchError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=abort.wait,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    last_attempt = attempt.retry_state.attempt_number >= task.max_tries
                    self._fetch(
                        task.url,
                        partial,
                        task.expected,
                        abort,
                        accept_mismatch=task.ignore_mismatch and last_attempt,
                    )
            _check_abort(task.url, abort)
            os.replace(partial, destination)
        finally:
            partial.unlink(missing_ok=True)
        logger.debug("Downloaded %s to %s", task.url, destination)

    def _fetch(
        self,
        url: str,
        partial: Path,
        expected: ChecksumInfo | None,
        abort: threading.Event,
        *,
        accept_mismatch: bool,
    ) -> None:
        """One attempt: stream ``url`` into ``partial`` and verify it."""
        _check_abort(url, abort)
        writer = ChecksumWriter()
        try:
            with self._session().get(url, stream=True, timeout=self.timeout) as response:
                if not response.ok:
                    raise DownloadError(
                        url, f"HTTP code {response.status_code}", response.status_code
                    )
                with open(partial, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        _check_abort(url, abort)
                        if not chunk:
                            continue
                        fh.write(chunk)
                        writer.update(chunk)
                        self._progress.write(chunk)
        except requests.RequestException as exc:
            raise DownloadError(url, str(exc)) from exc

        if expected is None or expected.is_empty:
            return

        actual = writer.sum()
        if not expected.mismatches(actual):
            return

        error = ChecksumMismatchError(url, expected, actual)
        if accept_mismatch:
            logger.warning("%s (ignored)", error)
            return
        raise error


def _check_abort(url: str, abort: threading.Event) -> None:
    if abort.is_set():
        raise DownloadAbortedError(url, "aborted")
