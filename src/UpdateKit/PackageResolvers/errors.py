# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.errors",
#   "purpose": "Define the exception hierarchy shared by package resolvers and the aggregate resolver",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "source", "name": "Per-source Resolver Errors", "anchor": "SRC", "kind": "api"},
#     {"id": "aggregate", "name": "Aggregate & Lookup Errors", "anchor": "AGG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
"""Exception hierarchy shared across package resolvers.

Failures fall into three groups that callers are expected to tell apart:

- errors raised by a single source resolver (:class:`ResolverError` and its
  subclasses, or any other exception a collaborator raises),
- :class:`AggregateResolverError`, raised only when *every* source failed the
  same operation and carrying each of those failures,
- :class:`VersionNotFoundError`, an ordinary outcome when no source offers the
  requested version.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

__all__ = [
    "UpdateError",
    "ConfigError",
    "ResolverError",
    "MetadataError",
    "DownloadFailure",
    "VerificationError",
    "OperationCancelledError",
    "AggregateResolverError",
    "VersionNotFoundError",
]


class UpdateError(RuntimeError):
    """Base exception for package resolution and download failures."""


class ConfigError(UpdateError):
    """Raised when settings files, environment overrides or CLI inputs are invalid."""


class ResolverError(UpdateError):
    """Raised by a single source resolver when it cannot serve a request."""


class MetadataError(ResolverError):
    """Raised when release metadata is missing, malformed or lacks a release."""


class DownloadFailure(ResolverError):
    """Raised when an HTTP transfer for a package or metadata file fails."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retryable: bool = False,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
        self.retry_after = retry_after


class VerificationError(ResolverError):
    """Raised when downloaded bytes do not match the expected digest."""

    def __init__(self, message: str, *, expected: str, actual: str) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class OperationCancelledError(UpdateError):
    """Raised when a cooperative cancellation token stops an operation."""


class AggregateResolverError(UpdateError):
    """Raised when every source resolver failed the same operation.

    Attributes:
        operation: Name of the operation that failed everywhere.
        errors: One exception per source resolver, in slot order.
    """

    def __init__(self, operation: str, errors: Iterable[BaseException]) -> None:
        self.operation = operation
        self.errors: Tuple[BaseException, ...] = tuple(errors)
        details = "; ".join(f"{type(exc).__name__}: {exc}" for exc in self.errors)
        super().__init__(
            f"All {len(self.errors)} package resolver(s) failed to {operation}: {details}"
        )

    def __len__(self) -> int:
        return len(self.errors)


class VersionNotFoundError(UpdateError, LookupError):
    """Raised when no source resolver offers the requested version."""

    def __init__(self, version: object) -> None:
        super().__init__(f"No package resolver offers version {version}")
        self.version = version
