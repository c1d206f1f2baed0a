# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.aggregate",
#   "purpose": "Compose several package resolvers into one logical resolver",
#   "sections": [
#     {"id": "resolverslot", "name": "ResolverSlot", "anchor": "class-resolverslot", "kind": "class"},
#     {"id": "resolvermatch", "name": "ResolverMatch", "anchor": "class-resolvermatch", "kind": "class"},
#     {"id": "aggregatepackageresolver", "name": "AggregatePackageResolver", "anchor": "class-aggregatepackageresolver", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Aggregate package resolver.

:class:`AggregatePackageResolver` lets a package be published to several
independent sources at once.  It presents the union of their versions and routes
each download to the first source (in construction order) that offers the
requested version.

Coordination rules:

- ``initialize`` and the lazy version acquisition query every source
  concurrently, wait for all of them and only fail when *every* source failed;
  a failing source simply contributes no versions.
- Version lists are acquired once and cached for the lifetime of the aggregate.
  There is no refresh path. A cancelled acquisition raises
  ``OperationCancelledError`` and leaves nothing cached.
- Downloads and size queries are delegated to the owning source unchanged; its
  failures propagate to the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from itertools import chain
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from UpdateKit.concurrency import FanOutResult, fan_out

from .cancellation import CancellationToken
from .contracts import (
    UNKNOWN_DOWNLOAD_SIZE,
    PackageResolver,
    ProgressCallback,
    ReleaseVerificationInfo,
    SupportsDownloadSize,
)
from .errors import OperationCancelledError, VersionNotFoundError
from .versions import Version, sorted_unique

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ResolverSlot:
    """One source resolver plus the versions it reported during acquisition."""

    resolver: PackageResolver
    versions: List[Version] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ResolverMatch:
    """Source resolver selected for a version.

    Attributes:
        resolver: Resolver that will serve the version.
        index: Position of ``resolver`` in the sequence given to the aggregate.
    """

    resolver: PackageResolver
    index: int


class AggregatePackageResolver:
    """Package resolver that serves versions from multiple sources.

    Args:
        resolvers: Source resolvers in priority order. The aggregate keeps
            references only; it does not manage their lifecycle.
        max_workers: Upper bound on threads used to query sources concurrently.
    """

    def __init__(
        self,
        resolvers: Iterable[PackageResolver],
        *,
        max_workers: Optional[int] = None,
    ) -> None:
        self._slots: Tuple[ResolverSlot, ...] = tuple(
            ResolverSlot(resolver=resolver) for resolver in resolvers
        )
        self._max_workers = max_workers
        self._initialized = False
        self._versions_acquired = False
        self._initialize_lock = threading.Lock()
        self._acquire_lock = threading.Lock()

    @property
    def count(self) -> int:
        """Number of source resolvers in this aggregate."""
        return len(self._slots)

    @property
    def resolvers(self) -> Tuple[PackageResolver, ...]:
        return tuple(slot.resolver for slot in self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(count={self.count}, initialized={self._initialized}, "
            f"versions_acquired={self._versions_acquired})"
        )

    # --- Capability contract ---

    def initialize(self) -> None:
        """Initialize every source concurrently.

        Runs at most once; later calls return immediately whether the first
        call succeeded or not.

        Raises:
            AggregateResolverError: If every source failed to initialize.
        """
        with self._initialize_lock:
            if self._initialized:
                return
            try:
                result = self._fan_out([slot.resolver.initialize for slot in self._slots])
            finally:
                self._initialized = True
            self._settle(result, "initialize")

    def list_versions(self, cancellation: Optional[CancellationToken] = None) -> List[Version]:
        """Return every version offered by any source, ascending and deduplicated.

        Raises:
            OperationCancelledError: If ``cancellation`` stopped a source while
                versions were being acquired.
            AggregateResolverError: If every source failed to list versions.
        """
        self._acquire_versions(cancellation)
        return sorted_unique(chain.from_iterable(slot.versions for slot in self._slots))

    def download(
        self,
        version: Version,
        destination: Path,
        verification_info: ReleaseVerificationInfo,
        progress: Optional[ProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Download ``version`` through the source that owns it.

        Raises:
            VersionNotFoundError: If no source offers ``version``.
        """
        match = self.resolve_owner(version, cancellation)
        LOGGER.info(
            "downloading version %s from resolver %d (%s)",
            version,
            match.index,
            type(match.resolver).__name__,
        )
        match.resolver.download(version, destination, verification_info, progress, cancellation)

    def download_size(
        self,
        version: Version,
        verification_info: ReleaseVerificationInfo,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        """Return the package size reported by the owning source.

        Returns :data:`UNKNOWN_DOWNLOAD_SIZE` when the owner cannot report sizes.
        """
        match = self.resolve_owner(version, cancellation)
        if isinstance(match.resolver, SupportsDownloadSize):
            return match.resolver.download_size(version, verification_info, cancellation)
        return UNKNOWN_DOWNLOAD_SIZE

    # --- Aggregate-specific queries ---

    def resolve_owner(
        self,
        version: Version,
        cancellation: Optional[CancellationToken] = None,
    ) -> ResolverMatch:
        """Return the resolver that would be used to download ``version``.

        Sources are scanned in construction order, so when several of them
        offer the same version the earliest one wins.

        Args:
            version: Version to look up.
            cancellation: Forwarded to the sources if versions still need to
                be acquired.

        Raises:
            VersionNotFoundError: If no source offers ``version``.
        """
        self._acquire_versions(cancellation)
        for index, slot in enumerate(self._slots):
            if version in slot.versions:
                return ResolverMatch(resolver=slot.resolver, index=index)
        raise VersionNotFoundError(version)

    # --- Internals ---

    def _acquire_versions(self, cancellation: Optional[CancellationToken]) -> None:
        if self._versions_acquired:
            return
        with self._acquire_lock:
            if self._versions_acquired:
                return
            result = self._fan_out(
                [partial(slot.resolver.list_versions, cancellation) for slot in self._slots]
            )
            # A cancelled acquisition caches nothing; the next caller starts over.
            for outcome in result.failed:
                if isinstance(outcome.error, OperationCancelledError):
                    LOGGER.debug("version acquisition cancelled at resolver %d", outcome.index)
                    raise outcome.error
            self._settle(result, "list versions")
            for slot, outcome in zip(self._slots, result.outcomes):
                slot.versions = list(outcome.value or ()) if outcome.ok else []
            self._versions_acquired = True
            LOGGER.debug(
                "acquired versions from %d of %d resolver(s)",
                len(result.succeeded),
                len(result),
            )

    def _fan_out(self, operations: list) -> FanOutResult:
        LOGGER.debug("querying %d package resolver(s)", len(operations))
        return fan_out(
            operations,
            max_workers=self._max_workers,
            thread_name_prefix="updatekit-aggregate",
        )

    def _settle(self, result: FanOutResult, operation: str) -> None:
        if result.all_failed:
            LOGGER.error("all %d package resolver(s) failed to %s", len(result), operation)
        else:
            for outcome in result.failed:
                LOGGER.warning(
                    "package resolver %d (%s) failed to %s: %s",
                    outcome.index,
                    type(self._slots[outcome.index].resolver).__name__,
                    operation,
                    outcome.error,
                )
        result.raise_if_all_failed(operation)


__all__ = ["AggregatePackageResolver", "ResolverMatch", "ResolverSlot"]
