"""CLI entry point for confgetter."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
import httpx

from confgetter import __version__
from confgetter.client import Client
from confgetter.config import Config, ConfigError, load_config
from confgetter.exceptions import GetterError
from confgetter.getters import ClientMode


def _configure_logging(config: Config, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(
        logging, config.logging.level.upper(), logging.INFO,
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version=__version__, prog_name="confgetter")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to confgetter.toml configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """confgetter: fetch artifacts and extract YAML fragments.

    Append ``xpath``, ``newkey``, ``type`` or ``format`` to an HTTP
    source URL to keep only part of a downloaded YAML document.
    """
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    _configure_logging(config, verbose)
    ctx.obj["config"] = config


@cli.command()
@click.argument("src")
@click.argument("dst", type=click.Path(path_type=Path))
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ClientMode]),
    default=None,
    help="Fetch a single file, a directory, or detect from the source.",
)
@click.option("--umask", type=int, default=None, help="Umask applied to created files.")
@click.option("--max-bytes", type=int, default=None, help="Cap on downloaded bytes.")
@click.pass_context
def get(
    ctx: click.Context,
    src: str,
    dst: Path,
    mode: str | None,
    umask: int | None,
    max_bytes: int | None,
) -> None:
    """Fetch SRC into DST."""
    config: Config = ctx.obj["config"]
    client = Client.from_config(config, src=src, dst=dst)
    if mode is not None:
        client.mode = ClientMode(mode)
    if umask is not None:
        client.umask = umask
    if max_bytes is not None:
        for getter in (client.getters or {}).values():
            http_getter = getattr(getter, "http_getter", None)
            if http_getter is not None:
                http_getter.max_bytes = max_bytes

    try:
        asyncio.run(client.get())
    except (GetterError, httpx.HTTPError, OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(str(dst))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
