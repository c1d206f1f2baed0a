"""Executor factory used by resolver fan-out."""

from __future__ import annotations

from concurrent import futures
from typing import Optional, Tuple


def create_executor(
    policy: str,
    workers: int,
    *,
    thread_name_prefix: str = "updatekit-io",
) -> Tuple[Optional[futures.Executor], bool]:
    """
    Return an executor for ``workers`` concurrent IO-bound calls.

    Args:
        policy: Execution policy. Only ``"io"`` is supported; resolvers spend
            their time waiting on the network.
        workers: Desired concurrency level.
        thread_name_prefix: Prefix applied to worker thread names.

    Returns:
        Tuple of (executor, needs_shutdown). ``(None, False)`` means the caller
        should run the work inline. Caller is responsible for shutting down the
        returned executor when ``needs_shutdown`` is ``True``.

    Raises:
        ValueError: If ``policy`` is not ``"io"``.
    """
    normalized = (policy or "io").lower()
    if normalized != "io":
        raise ValueError(f"Unsupported execution policy: {policy!r}")
    if workers <= 1:
        return None, False
    return (
        futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix),
        True,
    )
