# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.network",
#   "purpose": "HTTPX client factory, Tenacity retry policy and streaming download helpers",
#   "sections": [
#     {"id": "create-http-client", "name": "create_http_client", "anchor": "function-create-http-client", "kind": "function"},
#     {"id": "create-http-retry-policy", "name": "create_http_retry_policy", "anchor": "function-create-http-retry-policy", "kind": "function"},
#     {"id": "fetch-bytes", "name": "fetch_bytes", "anchor": "function-fetch-bytes", "kind": "function"},
#     {"id": "stream-to-file", "name": "stream_to_file", "anchor": "function-stream-to-file", "kind": "function"},
#     {"id": "sha256-file", "name": "sha256_file", "anchor": "function-sha256-file", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""HTTP helpers used by source resolvers.

Each source resolver owns its :class:`httpx.Client` (built by
:func:`create_http_client`) instead of sharing a process-wide one.  Small
metadata requests go through :func:`fetch_bytes`, which retries transient
failures with a Tenacity policy; package transfers use :func:`stream_to_file`,
which streams into a temporary sibling file, reports progress, honours
cooperative cancellation and promotes the file atomically.

The aggregate resolver never retries; retrying is the job of these helpers.
"""

from __future__ import annotations

import email.utils
import hashlib
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    stop_after_delay,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from .cancellation import CancellationToken
from .contracts import ProgressCallback
from .errors import DownloadFailure
from .settings import HttpConfiguration

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_HASH_CHUNK_SIZE = 1024 * 1024


# ============================================================================
# Client
# ============================================================================


def create_http_client(config: Optional[HttpConfiguration] = None) -> httpx.Client:
    """Build an HTTPX client with timeouts, redirects and a polite User-Agent."""

    config = config or HttpConfiguration()
    return httpx.Client(
        timeout=httpx.Timeout(config.timeout_sec),
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
    )


# ============================================================================
# Retry Policy
# ============================================================================


def _parse_retry_after_value(value: Optional[str]) -> Optional[float]:
    """Convert a Retry-After header value into a delay in seconds."""
    if not value:
        return None

    try:
        delay = float(int(value))
    except ValueError:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delay = (dt - datetime.now(timezone.utc)).total_seconds()

    return max(0.0, delay)


def is_retryable_error(exc: BaseException) -> bool:
    """Return ``True`` for transport timeouts and retryable HTTP statuses."""
    if isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout)):
        return True
    return isinstance(exc, DownloadFailure) and exc.retryable


class _RetryAfterOrBackoff(wait_base):
    """Wait strategy that honours Retry-After before falling back to backoff."""

    def __init__(self, fallback_wait: wait_base, max_delay_seconds: int) -> None:
        self._fallback_wait = fallback_wait
        self._max_delay_seconds = max_delay_seconds

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        delay = getattr(exc, "retry_after", None)
        if delay is not None:
            return min(float(delay), float(self._max_delay_seconds))
        return float(self._fallback_wait(retry_state))


def create_http_retry_policy(max_delay_seconds: int = 60, max_attempts: int = 6) -> Retrying:
    """Create a Tenacity policy retrying transient HTTP failures.

    Retries connection errors, timeouts, 429 and 5xx responses with full-jitter
    exponential backoff, honouring ``Retry-After`` when present. The original
    exception is re-raised once the deadline or attempt budget is spent.

    Args:
        max_delay_seconds: Overall deadline measured from the first attempt.
            ``0`` disables retries.
        max_attempts: Maximum number of attempts.
    """
    return Retrying(
        stop=stop_after_delay(max_delay_seconds) | stop_after_attempt(max_attempts),
        wait=_RetryAfterOrBackoff(
            fallback_wait=wait_random_exponential(multiplier=0.5, max=min(60, max_delay_seconds)),
            max_delay_seconds=max_delay_seconds,
        ),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


# ============================================================================
# Requests
# ============================================================================


def _failure_for_status(url: str, response: httpx.Response) -> DownloadFailure:
    status = response.status_code
    return DownloadFailure(
        f"GET {url} returned HTTP {status}",
        status_code=status,
        retryable=status in RETRYABLE_STATUS_CODES,
        retry_after=_parse_retry_after_value(response.headers.get("Retry-After")),
    )


def fetch_bytes(
    client: httpx.Client,
    url: str,
    *,
    params: Optional[dict] = None,
    retry_policy: Optional[Retrying] = None,
) -> bytes:
    """GET ``url`` and return the body, retrying transient failures.

    Raises:
        DownloadFailure: On a non-success status once retries are exhausted.
        httpx.TransportError: On network errors once retries are exhausted.
    """

    def _get() -> bytes:
        response = client.get(url, params=params)
        if response.is_error:
            raise _failure_for_status(url, response)
        return response.content

    if retry_policy is None:
        return _get()
    return retry_policy(_get)


def stream_to_file(
    client: httpx.Client,
    url: str,
    destination: Path,
    *,
    chunk_size: int = 262144,
    progress: Optional[ProgressCallback] = None,
    cancellation: Optional[CancellationToken] = None,
) -> int:
    """Stream ``url`` into ``destination`` and return the number of bytes written.

    Data is written to a temporary file beside ``destination`` and renamed into
    place only after the transfer completes, so ``destination`` never holds a
    partial download. ``progress`` receives fractions in ``[0, 1]`` when the
    server announces a ``Content-Length``.

    Raises:
        DownloadFailure: On a non-success status.
        OperationCancelledError: If ``cancellation`` is triggered mid-transfer.
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=destination.parent, prefix=".tmp-")
    temp_path = Path(temp_name)
    bytes_written = 0
    try:
        with os.fdopen(fd, "wb") as handle, client.stream("GET", url) as response:
            if response.is_error:
                raise _failure_for_status(url, response)
            total = int(response.headers.get("Content-Length", 0) or 0)
            for chunk in response.iter_bytes(chunk_size=chunk_size):
                if cancellation is not None:
                    cancellation.raise_if_cancelled(f"download of {url}")
                if not chunk:
                    continue
                handle.write(chunk)
                bytes_written += len(chunk)
                if progress is not None and total > 0:
                    progress(min(bytes_written / total, 1.0))
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    if progress is not None:
        progress(1.0)
    logger.debug("downloaded %s (%d bytes) to %s", url, bytes_written, destination)
    return bytes_written


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of ``path`` without loading it into memory."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for block in iter(lambda: handle.read(_HASH_CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


__all__ = [
    "create_http_client",
    "create_http_retry_policy",
    "fetch_bytes",
    "is_retryable_error",
    "sha256_file",
    "stream_to_file",
]
