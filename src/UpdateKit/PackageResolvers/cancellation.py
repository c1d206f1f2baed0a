"""Cooperative cancellation for resolver queries and downloads.

Resolvers run on worker threads that cannot be interrupted safely, so callers
pass a :class:`CancellationToken` into the public operations instead. Resolvers
poll it between units of work (between streamed chunks, before a listing) and
bail out with :class:`~UpdateKit.PackageResolvers.errors.OperationCancelledError`.
"""

from __future__ import annotations

import threading

from .errors import OperationCancelledError


class CancellationToken:
    """One-way flag shared between the caller and the threads doing its work.

    Examples:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.raise_if_cancelled("listing")
        Traceback (most recent call last):
        ...
        UpdateKit.PackageResolvers.errors.OperationCancelledError: listing was cancelled
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(cancelled={self.is_cancelled()})"

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, what: str = "operation") -> None:
        """Raise :class:`OperationCancelledError` once :meth:`cancel` was called."""
        if self._event.is_set():
            raise OperationCancelledError(f"{what} was cancelled")

    def reset(self) -> None:
        """Clear a previous cancellation so the token can be reused."""
        self._event.clear()


__all__ = ["CancellationToken"]

# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.cancellation",
#   "purpose": "Cooperative cancellation token shared by resolvers and downloads",
#   "sections": [
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
