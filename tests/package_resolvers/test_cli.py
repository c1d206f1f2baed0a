"""
UpdateKit CLI Tests

Drives the Typer application through ``CliRunner`` with in-memory resolvers
substituted for the configured GameBanana sources.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from UpdateKit import __version__
from UpdateKit.PackageResolvers import ResolverError
from UpdateKit.PackageResolvers import cli
from tests.fixtures.resolvers import FakeResolver, SizedFakeResolver

runner = CliRunner()


@pytest.fixture
def sources(monkeypatch):
    """Replace configured sources with the resolvers a test assigns."""
    configured: list = []
    monkeypatch.setattr(cli, "build_resolvers", lambda settings: list(configured))
    return configured


def test_version_flag() -> None:
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert f"updatekit {__version__}" in result.output


def test_versions_lists_merged_versions(sources) -> None:
    sources.extend([FakeResolver(["1.0", "2.0"], name="a"), FakeResolver(["2.0", "3.0"], name="b")])

    result = runner.invoke(cli.app, ["versions"])

    assert result.exit_code == 0, result.output
    assert result.stdout.split() == ["1.0", "2.0", "3.0"]


def test_versions_json_output(sources) -> None:
    sources.append(FakeResolver(["1.0", "0.9"]))

    result = runner.invoke(cli.app, ["--format", "json", "versions"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout.strip().splitlines()[-1]) == ["0.9", "1.0"]


def test_owner_reports_first_matching_source(sources) -> None:
    sources.extend([FakeResolver(["1.0"], name="a"), FakeResolver(["2.0"], name="b"), FakeResolver(["2.0"], name="c")])

    result = runner.invoke(cli.app, ["owner", "2.0"])

    assert result.exit_code == 0, result.output
    assert "1\tFakeResolver('b')" in result.stdout


def test_unknown_version_exits_with_not_found(sources) -> None:
    sources.append(FakeResolver(["1.0"]))

    result = runner.invoke(cli.app, ["owner", "9.9"])

    assert result.exit_code == cli.EXIT_NOT_FOUND
    assert "9.9" in result.output


def test_size_prints_unknown_without_capability(sources) -> None:
    sources.extend([FakeResolver(["1.0"]), SizedFakeResolver(["2.0"], size=4096)])

    unknown = runner.invoke(cli.app, ["size", "1.0"])
    known = runner.invoke(cli.app, ["size", "2.0"])

    assert unknown.exit_code == 0 and unknown.stdout.strip() == "unknown"
    assert known.exit_code == 0 and known.stdout.strip() == "4096"


def test_download_writes_package(sources, tmp_path: Path) -> None:
    sources.extend([FakeResolver(["1.0"], name="primary"), FakeResolver(["1.0"], name="mirror")])
    destination = tmp_path / "Package.zip"

    result = runner.invoke(cli.app, ["download", "1.0", str(destination)])

    assert result.exit_code == 0, result.output
    assert destination.read_bytes() == b"primary:1.0"
    assert f"Downloaded 1.0 to {destination}" in result.stdout
    assert sources[1].download_calls == []


def test_all_sources_failing_exits_with_error(sources) -> None:
    sources.extend([FakeResolver(list_error=ResolverError("offline")) for _ in range(2)])

    result = runner.invoke(cli.app, ["versions"])

    assert result.exit_code == cli.EXIT_ERROR
    assert "All 2 package resolver(s) failed" in result.output


def test_missing_sources_is_a_config_error() -> None:
    result = runner.invoke(cli.app, ["versions"])

    assert result.exit_code == cli.EXIT_ERROR
    assert "No package sources configured" in result.output


def test_invalid_source_is_rejected() -> None:
    result = runner.invoke(cli.app, ["--source", "Mod:abc", "versions"])

    assert result.exit_code == cli.EXIT_ERROR
    assert "Invalid GameBanana source" in result.output


def test_invalid_version_argument_is_a_usage_error(sources) -> None:
    sources.append(FakeResolver(["1.0"]))

    result = runner.invoke(cli.app, ["owner", "not-a-version"])

    assert result.exit_code == 2
    assert sources[0].list_calls == 0


def test_build_resolvers_follows_configuration_order() -> None:
    settings = cli.load_settings(overrides={"gamebanana": [{"item_id": 2}, {"item_id": 1}]})

    resolvers = cli.build_resolvers(settings)
    try:
        assert [resolver.configuration.item_id for resolver in resolvers] == [2, 1]
    finally:
        for resolver in resolvers:
            resolver.close()


@pytest.mark.parametrize(
    ("error", "message"),
    [
        (httpx.ConnectError("connection refused"), "connection refused"),
        (IsADirectoryError(21, "Is a directory"), "Is a directory"),
    ],
    ids=["transport", "filesystem"],
)
def test_download_errors_from_owner_exit_with_error(sources, tmp_path: Path, error, message) -> None:
    sources.append(FakeResolver(["1.0"], download_error=error))

    result = runner.invoke(cli.app, ["download", "1.0", str(tmp_path / "Package.zip")])

    assert result.exit_code == cli.EXIT_ERROR
    assert isinstance(result.exception, SystemExit)
    assert "Error:" in result.output
    assert message in result.output


def test_verbose_flag_enables_debug_logging(sources) -> None:
    sources.append(FakeResolver(["1.0"]))

    quiet = runner.invoke(cli.app, ["versions"])
    assert quiet.exit_code == 0
    assert logging.getLogger("UpdateKit").level == logging.INFO

    verbose = runner.invoke(cli.app, ["-v", "versions"])
    assert verbose.exit_code == 0
    assert logging.getLogger("UpdateKit").level == logging.DEBUG
