# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.gamebanana",
#   "purpose": "Package resolver serving releases uploaded to a GameBanana item",
#   "sections": [
#     {"id": "normalize-gamebanana-file-name", "name": "normalize_gamebanana_file_name", "anchor": "function-normalize-gamebanana-file-name", "kind": "function"},
#     {"id": "gamebananafile", "name": "GameBananaFile", "anchor": "class-gamebananafile", "kind": "class"},
#     {"id": "gamebananaitem", "name": "GameBananaItem", "anchor": "class-gamebananaitem", "kind": "class"},
#     {"id": "gamebananapackageresolver", "name": "GameBananaPackageResolver", "anchor": "class-gamebananapackageresolver", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Package resolver backed by a GameBanana item.

Packages are uploaded as files of one GameBanana item, alongside a release
metadata file (plain JSON or zipped). GameBanana rewrites uploaded file names,
so files are matched on a normalised name prefix rather than exactly.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .cancellation import CancellationToken
from .contracts import ProgressCallback, ReleaseVerificationInfo
from .errors import MetadataError, VerificationError
from .metadata import ReleaseMetadata
from .network import (
    create_http_client,
    create_http_retry_policy,
    fetch_bytes,
    sha256_file,
    stream_to_file,
)
from .settings import CommonResolverSettings, GameBananaConfiguration, HttpConfiguration
from .versions import Version

LOGGER = logging.getLogger(__name__)

_ITEM_FIELDS = "name,Files().aFiles()"
_UNSAFE_CHARACTERS = re.compile(r"[^a-z0-9]")


def normalize_gamebanana_file_name(file_name: str) -> str:
    """Return the prefix GameBanana keeps when it renames an uploaded file.

    Examples:
        >>> normalize_gamebanana_file_name("Sewer56.Update.Metadata.json")
        'sewer56_update_metadata'
    """
    stem = Path(file_name).stem
    return _UNSAFE_CHARACTERS.sub("_", stem.lower())


class GameBananaFile(BaseModel):
    """A file attached to a GameBanana item."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_name: str = Field(alias="_sFile")
    download_url: str = Field(alias="_sDownloadUrl")
    file_size: int = Field(default=-1, alias="_nFilesize")

    @property
    def is_zip(self) -> bool:
        return Path(self.file_name).suffix.lower() == ".zip"


class GameBananaItem(BaseModel):
    """Name and files of a GameBanana item."""

    name: str
    files: Dict[str, GameBananaFile] = Field(default_factory=dict)

    @classmethod
    def from_api_payload(cls, payload: Any) -> Optional["GameBananaItem"]:
        """Build an item from a ``Core/Item/Data`` response.

        Returns ``None`` when the API reports that the item does not exist.
        """
        if isinstance(payload, dict) and "error" in payload:
            return None
        if not isinstance(payload, list) or len(payload) < 2:
            raise MetadataError(f"Unexpected GameBanana item payload: {payload!r}")
        name, files = payload[0], payload[1]
        # An item without files is serialised as an empty JSON list.
        if not files:
            files = {}
        try:
            return cls(name=name, files=files)
        except ValidationError as exc:
            raise MetadataError(f"Malformed GameBanana item payload: {exc}") from exc

    def find_file(self, file_name: str) -> Optional[GameBananaFile]:
        """Return the first file whose name starts with ``file_name``'s normalised form."""
        expected = normalize_gamebanana_file_name(file_name)
        for item_file in self.files.values():
            if item_file.file_name.lower().startswith(expected):
                return item_file
        return None


class GameBananaPackageResolver:
    """Resolver that serves package releases uploaded to GameBanana.

    Args:
        configuration: Item type and id hosting the package.
        common_settings: Settings shared between resolvers.
        client: HTTP client to use; one is created (and owned) when omitted.
        http: HTTP settings for the owned client and the retry policy.
    """

    def __init__(
        self,
        configuration: GameBananaConfiguration,
        common_settings: Optional[CommonResolverSettings] = None,
        *,
        client: Optional[httpx.Client] = None,
        http: Optional[HttpConfiguration] = None,
    ) -> None:
        self.configuration = configuration
        self.common_settings = common_settings or CommonResolverSettings()
        self.http = http or HttpConfiguration()
        self._owns_client = client is None
        self._client = client or create_http_client(self.http)
        self._item: Optional[GameBananaItem] = None
        self._releases: Optional[ReleaseMetadata] = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(item_type={self.configuration.item_type!r}, "
            f"item_id={self.configuration.item_id})"
        )

    def __enter__(self) -> "GameBananaPackageResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @property
    def item(self) -> Optional[GameBananaItem]:
        return self._item

    @property
    def releases(self) -> Optional[ReleaseMetadata]:
        return self._releases

    def initialize(self) -> None:
        """Fetch the item's file list and its release metadata.

        An item that does not exist, or has no metadata file, leaves the
        resolver empty rather than failing.
        """
        payload = self._fetch_json(
            f"{self.http.api_base_url}/Core/Item/Data",
            params={
                "itemtype": self.configuration.item_type,
                "itemid": str(self.configuration.item_id),
                "fields": _ITEM_FIELDS,
            },
        )
        self._item = GameBananaItem.from_api_payload(payload)
        if self._item is None:
            LOGGER.warning("GameBanana item %s does not exist", self._describe())
            return

        metadata_name = self.common_settings.metadata_file_name
        metadata_file = self._item.find_file(metadata_name)
        if metadata_file is None:
            LOGGER.warning("GameBanana item %s has no %s file", self._describe(), metadata_name)
            return

        data = fetch_bytes(self._client, metadata_file.download_url, retry_policy=self._retry_policy())
        if metadata_file.is_zip:
            self._releases = ReleaseMetadata.from_zip(data, metadata_name)
        else:
            self._releases = ReleaseMetadata.from_bytes(data)
        LOGGER.debug(
            "GameBanana item %s lists %d release(s)",
            self._describe(),
            len(self._releases.releases),
        )

    def list_versions(self, cancellation: Optional[CancellationToken] = None) -> List[Version]:
        if cancellation is not None:
            cancellation.raise_if_cancelled("listing GameBanana versions")
        if self._releases is None:
            return []
        return self._releases.versions(self.common_settings.allow_prereleases)

    def download(
        self,
        version: Version,
        destination: Path,
        verification_info: ReleaseVerificationInfo,
        progress: Optional[ProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Download the package for ``version`` to ``destination``.

        Raises:
            MetadataError: If the resolver has no metadata, or no file matches
                the release.
            VerificationError: If the file does not match the expected SHA-256.
        """
        release, item_file = self._locate(version, verification_info)
        stream_to_file(
            self._client,
            item_file.download_url,
            Path(destination),
            chunk_size=self.http.chunk_size,
            progress=progress,
            cancellation=cancellation,
        )

        expected = verification_info.expected_sha256 or release.sha256
        if expected:
            actual = sha256_file(destination)
            if actual.lower() != expected.lower():
                Path(destination).unlink(missing_ok=True)
                raise VerificationError(
                    f"Checksum mismatch for {item_file.file_name}",
                    expected=expected.lower(),
                    actual=actual,
                )

    def download_size(
        self,
        version: Version,
        verification_info: ReleaseVerificationInfo,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        """Return the file size GameBanana reports for ``version``'s package."""
        if cancellation is not None:
            cancellation.raise_if_cancelled("querying GameBanana download size")
        _, item_file = self._locate(version, verification_info)
        return item_file.file_size

    def _locate(self, version: Version, verification_info: ReleaseVerificationInfo):
        if self._releases is None or self._item is None:
            raise MetadataError(f"GameBanana item {self._describe()} has no release metadata")
        release = self._releases.get_release(version, verification_info)
        item_file = self._item.find_file(release.file_name)
        if item_file is None:
            raise MetadataError(
                f"GameBanana item {self._describe()} has no file for release {release.file_name}"
            )
        return release, item_file

    def _fetch_json(self, url: str, *, params: Dict[str, str]) -> Any:
        data = fetch_bytes(self._client, url, params=params, retry_policy=self._retry_policy())
        try:
            return json.loads(data)
        except json.JSONDecodeError as exc:
            raise MetadataError(f"GameBanana returned invalid JSON for {url}") from exc

    def _retry_policy(self):
        return create_http_retry_policy(max_delay_seconds=self.http.max_retry_seconds)

    def _describe(self) -> str:
        return f"{self.configuration.item_type}:{self.configuration.item_id}"


__all__ = [
    "GameBananaFile",
    "GameBananaItem",
    "GameBananaPackageResolver",
    "normalize_gamebanana_file_name",
]
