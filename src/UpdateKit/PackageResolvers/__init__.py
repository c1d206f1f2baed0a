# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers",
#   "purpose": "Public API for package resolvers and the aggregate resolver",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for UpdateKit package resolvers.

A package resolver lists the versions of one package available from a single
source and downloads any of them. :class:`AggregatePackageResolver` combines
several resolvers so a package can be served from multiple sources at once.
"""

from __future__ import annotations

from .aggregate import AggregatePackageResolver, ResolverMatch, ResolverSlot
from .cancellation import CancellationToken
from .contracts import (
    UNKNOWN_DOWNLOAD_SIZE,
    PackageResolver,
    ProgressCallback,
    ReleaseVerificationInfo,
    SupportsDownloadSize,
)
from .errors import (
    AggregateResolverError,
    ConfigError,
    DownloadFailure,
    MetadataError,
    OperationCancelledError,
    ResolverError,
    UpdateError,
    VerificationError,
    VersionNotFoundError,
)
from .gamebanana import GameBananaPackageResolver
from .metadata import ReleaseItem, ReleaseMetadata
from .settings import (
    CommonResolverSettings,
    GameBananaConfiguration,
    HttpConfiguration,
    LoggingConfiguration,
    UpdateSettings,
    load_settings,
)
from .versions import Version, coerce_version

__all__ = [
    "AggregatePackageResolver",
    "AggregateResolverError",
    "CancellationToken",
    "CommonResolverSettings",
    "ConfigError",
    "DownloadFailure",
    "GameBananaConfiguration",
    "GameBananaPackageResolver",
    "HttpConfiguration",
    "LoggingConfiguration",
    "MetadataError",
    "OperationCancelledError",
    "PackageResolver",
    "ProgressCallback",
    "ReleaseItem",
    "ReleaseMetadata",
    "ReleaseVerificationInfo",
    "ResolverError",
    "ResolverMatch",
    "ResolverSlot",
    "SupportsDownloadSize",
    "UNKNOWN_DOWNLOAD_SIZE",
    "UpdateError",
    "UpdateSettings",
    "VerificationError",
    "Version",
    "VersionNotFoundError",
    "coerce_version",
    "load_settings",
]
