"""Release metadata published alongside packages.

Each source resolver parses and keeps its own :class:`ReleaseMetadata` value;
nothing here is cached at module level.  The JSON layout uses PascalCase keys
(``Releases``, ``Version``, ``FileName``); snake_case keys are accepted too.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .contracts import ReleaseVerificationInfo
from .errors import MetadataError
from .versions import Version, parse_version, sorted_unique

LOGGER = logging.getLogger(__name__)


class ReleaseItem(BaseModel):
    """One published release: its version and the package file that holds it."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: str = Field(alias="Version", min_length=1)
    file_name: str = Field(alias="FileName", min_length=1)
    sha256: Optional[str] = Field(default=None, alias="Sha256")

    @property
    def parsed_version(self) -> Optional[Version]:
        return parse_version(self.version)


class ReleaseMetadata(BaseModel):
    """Collection of releases described by a metadata file."""

    model_config = ConfigDict(populate_by_name=True)

    releases: List[ReleaseItem] = Field(default_factory=list, alias="Releases")
    extra_data: Optional[Any] = Field(default=None, alias="ExtraData")

    @classmethod
    def from_bytes(cls, data: bytes) -> "ReleaseMetadata":
        """Parse metadata from raw JSON bytes.

        Raises:
            MetadataError: If the payload is not valid metadata JSON.
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as exc:
            raise MetadataError(f"Malformed release metadata: {exc}") from exc

    @classmethod
    def from_zip(cls, data: bytes, entry_name: str) -> "ReleaseMetadata":
        """Parse metadata stored as ``entry_name`` inside a zip archive."""
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                with archive.open(entry_name) as handle:
                    payload = handle.read()
        except KeyError as exc:
            raise MetadataError(f"Metadata archive has no entry named {entry_name!r}") from exc
        except zipfile.BadZipFile as exc:
            raise MetadataError(f"Metadata archive is not a valid zip file: {exc}") from exc
        return cls.from_bytes(payload)

    def versions(self, allow_prereleases: bool = False) -> List[Version]:
        """Return the distinct versions described here, ascending."""
        parsed: List[Version] = []
        for release in self.releases:
            version = release.parsed_version
            if version is None:
                LOGGER.warning("skipping release with invalid version %r", release.version)
                continue
            if version.is_prerelease and not allow_prereleases:
                continue
            parsed.append(version)
        return sorted_unique(parsed)

    def get_release(
        self,
        version: Version,
        verification_info: Optional[ReleaseVerificationInfo] = None,
    ) -> ReleaseItem:
        """Return the release for ``version``.

        When several entries share a version, the one whose ``sha256`` matches
        ``verification_info.expected_sha256`` is preferred; otherwise the first.

        Raises:
            MetadataError: If no release has ``version``.
        """
        matches = [release for release in self.releases if release.parsed_version == version]
        if not matches:
            raise MetadataError(f"Release metadata has no entry for version {version}")
        expected = verification_info.expected_sha256 if verification_info else None
        if expected:
            for release in matches:
                if release.sha256 and release.sha256.lower() == expected.lower():
                    return release
        return matches[0]


__all__ = ["ReleaseItem", "ReleaseMetadata"]
