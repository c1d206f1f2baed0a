# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.contracts",
#   "purpose": "Capability contract every package resolver satisfies",
#   "sections": [
#     {"id": "releaseverificationinfo", "name": "ReleaseVerificationInfo", "anchor": "class-releaseverificationinfo", "kind": "class"},
#     {"id": "packageresolver", "name": "PackageResolver", "anchor": "class-packageresolver", "kind": "class"},
#     {"id": "supportsdownloadsize", "name": "SupportsDownloadSize", "anchor": "class-supportsdownloadsize", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Capability contract shared by every package resolver.

A package resolver serves the versions of one package from one distribution
channel.  The aggregate resolver depends only on the protocols defined here,
never on how a concrete resolver fetches or parses remote data.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, runtime_checkable

from .cancellation import CancellationToken
from .versions import Version

ProgressCallback = Callable[[float], None]
"""Receives transfer progress as a fraction between ``0.0`` and ``1.0``."""

UNKNOWN_DOWNLOAD_SIZE = -1
"""Returned by size queries when the owning resolver cannot estimate a size."""


@dataclass(frozen=True, slots=True)
class ReleaseVerificationInfo:
    """Source-specific data used to pick and verify a release during download.

    Attributes:
        folder_path: Folder of the currently installed package, if any.
        expected_sha256: Hex digest the downloaded file must match.
    """

    folder_path: Optional[Path] = None
    expected_sha256: Optional[str] = None


@runtime_checkable
class PackageResolver(Protocol):
    """Protocol implemented by every package resolver."""

    def initialize(self) -> None:
        """Prepare the resolver; may fail if the source is unreachable or malformed."""

    def list_versions(self, cancellation: Optional[CancellationToken] = None) -> List[Version]:
        """Return the versions this source can deliver."""

    def download(
        self,
        version: Version,
        destination: Path,
        verification_info: ReleaseVerificationInfo,
        progress: Optional[ProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Write exactly the bytes of ``version``'s package to ``destination``."""


@runtime_checkable
class SupportsDownloadSize(Protocol):
    """Optional extension for resolvers that can report a package's size."""

    def download_size(
        self,
        version: Version,
        verification_info: ReleaseVerificationInfo,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        """Return the size in bytes of ``version``'s package."""


__all__ = [
    "PackageResolver",
    "ProgressCallback",
    "ReleaseVerificationInfo",
    "SupportsDownloadSize",
    "UNKNOWN_DOWNLOAD_SIZE",
]
