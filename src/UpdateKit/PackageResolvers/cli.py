# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.cli",
#   "purpose": "Typer CLI listing, locating and downloading package versions across sources",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "build-resolvers", "name": "build_resolvers", "anchor": "function-build-resolvers", "kind": "function"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "commands", "name": "versions / owner / download / size", "anchor": "CMD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Typer CLI over an aggregate of configured package sources.

Example:
    $ updatekit --source Mod:408376 --source Mod:411234 versions
    $ updatekit -c sources.yaml owner 1.2.0
    $ updatekit -c sources.yaml download 1.2.0 ./Package.zip --sha256 <digest>

Exit codes: ``0`` on success, ``1`` on resolver, configuration, network or
file system errors and ``2`` when the requested version is not offered by any
source.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

import httpx
import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from UpdateKit import __version__

from .aggregate import AggregatePackageResolver
from .contracts import UNKNOWN_DOWNLOAD_SIZE, PackageResolver, ReleaseVerificationInfo
from .errors import ConfigError, UpdateError, VersionNotFoundError
from .gamebanana import GameBananaPackageResolver
from .logging_config import setup_logging
from .settings import GameBananaConfiguration, UpdateSettings, load_settings
from .versions import Version, coerce_version

T = TypeVar("T")

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_NOT_FOUND = 2

_console = Console()
_err_console = Console(stderr=True)


class CliContext:
    """Settings and lazily-built aggregate shared by every command."""

    def __init__(self, settings: UpdateSettings, output_format: str = "text") -> None:
        self.settings = settings
        self.output_format = output_format
        self._resolvers: Optional[List[PackageResolver]] = None
        self._aggregate: Optional[AggregatePackageResolver] = None

    @property
    def aggregate(self) -> AggregatePackageResolver:
        if self._aggregate is None:
            self._resolvers = build_resolvers(self.settings)
            if not self._resolvers:
                raise ConfigError("No package sources configured; use --source or --config")
            self._aggregate = AggregatePackageResolver(self._resolvers)
            self._aggregate.initialize()
        return self._aggregate

    def close(self) -> None:
        for resolver in self._resolvers or ():
            close = getattr(resolver, "close", None)
            if callable(close):
                close()


def build_resolvers(settings: UpdateSettings) -> List[PackageResolver]:
    """Create one resolver per configured source, in configuration order."""
    return [
        GameBananaPackageResolver(source, settings.common, http=settings.http)
        for source in settings.gamebanana
    ]


app = typer.Typer(
    name="updatekit",
    help="Resolve and download package versions published to multiple sources",
    no_args_is_help=True,
)


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise RuntimeError("CLI context not initialized")
    return ctx.obj


def _parse_version(value: str) -> Version:
    try:
        return coerce_version(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _run(ctx: typer.Context, action: Callable[[CliContext], T]) -> T:
    """Run ``action`` and translate package errors into exit codes."""
    context = _get_context(ctx)
    try:
        return action(context)
    except VersionNotFoundError as exc:
        _err_console.print(f"[yellow]{escape(str(exc))}[/yellow]")
        raise typer.Exit(EXIT_NOT_FOUND) from exc
    except (UpdateError, httpx.HTTPError, OSError) as exc:
        logger.debug("command failed", exc_info=True)
        _err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(EXIT_ERROR) from exc
    finally:
        context.close()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"updatekit {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="UPDATEKIT_CONFIG",
        help="Path to a YAML settings file",
    ),
    source: List[str] = typer.Option(
        [],
        "--source",
        "-s",
        help="GameBanana source as TYPE:ID (repeatable, order sets priority)",
    ),
    allow_prereleases: Optional[bool] = typer.Option(
        None,
        "--allow-prereleases/--no-prereleases",
        help="Include prerelease versions",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for JSONL logs"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format: text, json"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Resolve package versions across every configured source."""
    try:
        settings = load_settings(config)
        if source:
            settings.gamebanana = [GameBananaConfiguration.parse(item) for item in source]
        if allow_prereleases is not None:
            settings.common.allow_prereleases = allow_prereleases
        if verbose:
            settings.logging.level = "DEBUG"
    except ConfigError as exc:
        _err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(EXIT_ERROR) from exc

    if output_format not in {"text", "json"}:
        raise typer.BadParameter("format must be 'text' or 'json'", param_hint="--format")

    setup_logging(settings.logging, log_dir)
    ctx.obj = CliContext(settings, output_format=output_format)


@app.command()
def versions(ctx: typer.Context) -> None:
    """List every version available from any source, oldest first."""

    def _action(context: CliContext) -> None:
        found = context.aggregate.list_versions()
        if context.output_format == "json":
            typer.echo(json.dumps([str(item) for item in found]))
            return
        if not found:
            _err_console.print("No versions available")
        for item in found:
            typer.echo(str(item))

    _run(ctx, _action)


@app.command()
def owner(
    ctx: typer.Context,
    version: str = typer.Argument(..., help="Exact version to locate"),
) -> None:
    """Show which source would serve VERSION."""
    target = _parse_version(version)

    def _action(context: CliContext) -> None:
        match = context.aggregate.resolve_owner(target)
        if context.output_format == "json":
            typer.echo(json.dumps({"index": match.index, "resolver": repr(match.resolver)}))
        else:
            typer.echo(f"{match.index}\t{match.resolver!r}")

    _run(ctx, _action)


@app.command()
def size(
    ctx: typer.Context,
    version: str = typer.Argument(..., help="Exact version to size"),
) -> None:
    """Print the download size of VERSION in bytes, or 'unknown'."""
    target = _parse_version(version)

    def _action(context: CliContext) -> None:
        value = context.aggregate.download_size(target, ReleaseVerificationInfo())
        if context.output_format == "json":
            typer.echo(json.dumps({"version": str(target), "size": value}))
        else:
            typer.echo("unknown" if value == UNKNOWN_DOWNLOAD_SIZE else str(value))

    _run(ctx, _action)


@app.command()
def download(
    ctx: typer.Context,
    version: str = typer.Argument(..., help="Exact version to download"),
    destination: Path = typer.Argument(..., help="File to write the package to"),
    sha256: Optional[str] = typer.Option(None, "--sha256", help="Expected SHA-256 digest"),
) -> None:
    """Download VERSION to DESTINATION from the source that owns it."""
    target = _parse_version(version)
    info = ReleaseVerificationInfo(folder_path=destination.parent, expected_sha256=sha256)

    def _action(context: CliContext) -> None:
        with Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=_err_console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"Downloading {target}", total=1.0)
            context.aggregate.download(
                target,
                destination,
                info,
                lambda fraction: progress.update(task, completed=fraction),
            )
        typer.echo(f"Downloaded {target} to {destination}")

    _run(ctx, _action)


def run() -> None:
    """Console-script entry point."""
    app()


__all__ = ["app", "build_resolvers", "CliContext", "main", "run"]
