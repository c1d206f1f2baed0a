# === NAVMAP v1 ===
# {
#   "module": "tests.package_resolvers.test_gamebanana_resolver",
#   "purpose": "Hermetic tests for the GameBanana package resolver",
#   "sections": [
#     {"id": "helpers", "name": "Payload Helpers", "anchor": "HLP", "kind": "helpers"},
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Hermetic tests for the GameBanana package resolver."""

from __future__ import annotations

import hashlib
import io
import json
import zipfile
from pathlib import Path

import httpx
import pytest
from packaging.version import Version

from UpdateKit.PackageResolvers import (
    AggregatePackageResolver,
    CancellationToken,
    CommonResolverSettings,
    DownloadFailure,
    GameBananaConfiguration,
    GameBananaPackageResolver,
    HttpConfiguration,
    MetadataError,
    OperationCancelledError,
    ReleaseVerificationInfo,
    SupportsDownloadSize,
    VerificationError,
)
from UpdateKit.PackageResolvers.gamebanana import GameBananaItem, normalize_gamebanana_file_name
from tests.fixtures.http_mocking import MockResponseBuilder
from tests.fixtures.resolvers import FakeResolver

API = "https://api.gamebanana.com/Core/Item/Data"
METADATA_URL = "https://gamebanana.com/dl/100"
PACKAGE_URL = "https://gamebanana.com/dl/200"
PACKAGE_BYTES = b"package-bytes-1.0.0"

RELEASES = {
    "Releases": [
        {"Version": "1.0.0", "FileName": "Mod-1.0.0.zip"},
        {"Version": "1.1.0-rc1", "FileName": "Mod-1.1.0-rc1.zip"},
    ]
}


def _item_payload(metadata_file: str = "sewer56_update_metadata_3f2a.json") -> list:
    return [
        "Test Mod",
        {
            "100": {
                "_sFile": metadata_file,
                "_sDownloadUrl": METADATA_URL,
                "_nFilesize": 120,
            },
            "200": {
                "_sFile": "mod_1_0_0_9b1c.zip",
                "_sDownloadUrl": PACKAGE_URL,
                "_nFilesize": len(PACKAGE_BYTES),
            },
        },
    ]


class SequenceBuilder(MockResponseBuilder):
    """Builder returning queued responses in order, repeating the last one."""

    def __init__(self, *builders: MockResponseBuilder) -> None:
        super().__init__()
        self._builders = list(builders)

    def build(self) -> httpx.Response:
        builder = self._builders.pop(0) if len(self._builders) > 1 else self._builders[0]
        return builder.build()


@pytest.fixture
def gamebanana(mocked_http_client):
    mc = mocked_http_client
    mc["register"]("GET", API, MockResponseBuilder().with_json(_item_payload()))
    mc["register"]("GET", METADATA_URL, MockResponseBuilder().with_json(RELEASES))
    mc["register"]("GET", PACKAGE_URL, MockResponseBuilder().with_content(PACKAGE_BYTES))
    return mc


def _resolver(client: httpx.Client, **common) -> GameBananaPackageResolver:
    return GameBananaPackageResolver(
        GameBananaConfiguration(item_type="Mod", item_id=408376),
        CommonResolverSettings(**common),
        client=client,
        http=HttpConfiguration(max_retry_seconds=0, chunk_size=4096),
    )


def test_normalize_file_name() -> None:
    assert normalize_gamebanana_file_name("Sewer56.Update.Metadata.json") == "sewer56_update_metadata"
    assert normalize_gamebanana_file_name("My Mod-1.0.0.zip") == "my_mod_1_0_0"


def test_item_payload_without_files() -> None:
    item = GameBananaItem.from_api_payload(["Empty", []])

    assert item is not None and item.files == {}
    assert GameBananaItem.from_api_payload({"error": "missing"}) is None
    with pytest.raises(MetadataError):
        GameBananaItem.from_api_payload("garbage")


def test_initialize_and_list_versions(gamebanana) -> None:
    resolver = _resolver(gamebanana["client"])

    assert resolver.list_versions() == []
    resolver.initialize()

    assert resolver.list_versions() == [Version("1.0.0")]
    item_request = gamebanana["requests"][0]
    assert item_request.url.params["itemtype"] == "Mod"
    assert item_request.url.params["itemid"] == "408376"
    assert item_request.url.params["fields"] == "name,Files().aFiles()"


def test_prereleases_are_opt_in(gamebanana) -> None:
    resolver = _resolver(gamebanana["client"], allow_prereleases=True)
    resolver.initialize()

    assert resolver.list_versions() == [Version("1.0.0"), Version("1.1.0rc1")]


def test_zipped_metadata(mocked_http_client) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("Sewer56.Update.Metadata.json", json.dumps(RELEASES))
    mc = mocked_http_client
    mc["register"](
        "GET", API, MockResponseBuilder().with_json(_item_payload("sewer56_update_metadata_77.zip"))
    )
    mc["register"]("GET", METADATA_URL, MockResponseBuilder().with_content(buffer.getvalue()))
    resolver = _resolver(mc["client"])

    resolver.initialize()

    assert resolver.list_versions() == [Version("1.0.0")]


def test_missing_item_leaves_resolver_empty(mocked_http_client, tmp_path: Path) -> None:
    mc = mocked_http_client
    mc["register"]("GET", API, MockResponseBuilder().with_json({"error": "No such item"}))
    resolver = _resolver(mc["client"])

    resolver.initialize()

    assert resolver.item is None
    assert resolver.list_versions() == []
    with pytest.raises(MetadataError):
        resolver.download(Version("1.0.0"), tmp_path / "x.zip", ReleaseVerificationInfo())


def test_item_without_metadata_file(mocked_http_client) -> None:
    mc = mocked_http_client
    mc["register"]("GET", API, MockResponseBuilder().with_json(_item_payload("readme.txt")))
    resolver = _resolver(mc["client"])

    resolver.initialize()

    assert resolver.releases is None
    assert resolver.list_versions() == []


def test_initialize_fails_on_server_error(mocked_http_client) -> None:
    mc = mocked_http_client
    mc["register"]("GET", API, MockResponseBuilder(status_code=500))
    resolver = _resolver(mc["client"])

    with pytest.raises(DownloadFailure) as excinfo:
        resolver.initialize()

    assert excinfo.value.status_code == 500
    assert excinfo.value.retryable


def test_initialize_retries_transient_failures(mocked_http_client) -> None:
    mc = mocked_http_client
    mc["register"](
        "GET",
        API,
        SequenceBuilder(
            MockResponseBuilder(status_code=503).with_header("Retry-After", "0"),
            MockResponseBuilder().with_json(_item_payload()),
        ),
    )
    mc["register"]("GET", METADATA_URL, MockResponseBuilder().with_json(RELEASES))
    resolver = GameBananaPackageResolver(
        GameBananaConfiguration(item_id=408376),
        client=mc["client"],
        http=HttpConfiguration(max_retry_seconds=5),
    )

    resolver.initialize()

    assert resolver.list_versions() == [Version("1.0.0")]
    assert sum(1 for request in mc["requests"] if str(request.url).startswith(API)) == 2


def test_download_streams_with_progress(gamebanana, tmp_path: Path) -> None:
    resolver = _resolver(gamebanana["client"])
    resolver.initialize()
    destination = tmp_path / "out" / "Mod.zip"
    seen: list[float] = []

    resolver.download(Version("1.0.0"), destination, ReleaseVerificationInfo(), seen.append)

    assert destination.read_bytes() == PACKAGE_BYTES
    assert seen and seen[-1] == 1.0
    assert all(0.0 <= value <= 1.0 for value in seen)
    assert not list(destination.parent.glob(".tmp-*"))


def test_download_verifies_checksum(gamebanana, tmp_path: Path) -> None:
    resolver = _resolver(gamebanana["client"])
    resolver.initialize()
    destination = tmp_path / "Mod.zip"
    good = hashlib.sha256(PACKAGE_BYTES).hexdigest()

    resolver.download(Version("1.0.0"), destination, ReleaseVerificationInfo(expected_sha256=good))
    assert destination.exists()

    with pytest.raises(VerificationError) as excinfo:
        resolver.download(
            Version("1.0.0"), destination, ReleaseVerificationInfo(expected_sha256="0" * 64)
        )
    assert excinfo.value.actual == good
    assert not destination.exists()


def test_download_honours_cancellation(gamebanana, tmp_path: Path) -> None:
    resolver = _resolver(gamebanana["client"])
    resolver.initialize()
    token = CancellationToken()
    token.cancel()
    destination = tmp_path / "Mod.zip"

    with pytest.raises(OperationCancelledError):
        resolver.download(Version("1.0.0"), destination, ReleaseVerificationInfo(), None, token)

    assert not destination.exists()
    assert not list(tmp_path.glob(".tmp-*"))


def test_download_size_reports_gamebanana_file_size(gamebanana) -> None:
    resolver = _resolver(gamebanana["client"])
    resolver.initialize()

    assert isinstance(resolver, SupportsDownloadSize)
    assert resolver.download_size(Version("1.0.0"), ReleaseVerificationInfo()) == len(PACKAGE_BYTES)


def test_release_without_uploaded_file(gamebanana) -> None:
    gamebanana["register"](
        "GET",
        METADATA_URL,
        MockResponseBuilder().with_json(
            {"Releases": [{"Version": "2.0.0", "FileName": "Mod-2.0.0.zip"}]}
        ),
    )
    resolver = _resolver(gamebanana["client"])
    resolver.initialize()

    with pytest.raises(MetadataError, match="no file"):
        resolver.download_size(Version("2.0.0"), ReleaseVerificationInfo())


def test_aggregate_over_gamebanana_and_fallback_source(gamebanana, tmp_path: Path) -> None:
    primary = _resolver(gamebanana["client"])
    fallback = FakeResolver(["1.0.0", "2.0.0"], name="mirror")
    aggregate = AggregatePackageResolver([primary, fallback])
    aggregate.initialize()

    assert aggregate.list_versions() == [Version("1.0.0"), Version("2.0.0")]
    assert aggregate.resolve_owner(Version("1.0.0")).resolver is primary
    assert aggregate.resolve_owner(Version("2.0.0")).index == 1
    assert aggregate.download_size(Version("1.0.0"), ReleaseVerificationInfo()) == len(PACKAGE_BYTES)
    assert aggregate.download_size(Version("2.0.0"), ReleaseVerificationInfo()) == -1

    destination = tmp_path / "Mod.zip"
    aggregate.download(Version("1.0.0"), destination, ReleaseVerificationInfo())
    assert destination.read_bytes() == PACKAGE_BYTES
    assert fallback.download_calls == []
