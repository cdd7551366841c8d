"""CLI entry point for ww."""

from pathlib import Path

import click

from ww import __version__
from ww.config import load_config
from ww.logging import setup_logging


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.option(
    "--signal",
    "signal_server",
    default=None,
    help="Signalling server to use.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Verbose logging.")
@click.pass_context
def main(ctx: click.Context, config: Path | None, signal_server: str | None, verbose: bool) -> None:
    """ww creates ephemeral pipes between computers."""
    ctx.ensure_object(dict)
    cfg = load_config(config)
    if signal_server:
        cfg.signal_server = signal_server
    if verbose:
        cfg.verbose = True
    ctx.obj["config"] = cfg
    ctx.obj["logger"] = setup_logging(cfg)


@main.command()
@click.argument("code", required=False, default="")
@click.option(
    "--length",
    "-l",
    type=click.IntRange(min=1),
    default=None,
    help="Length of generated secret in bytes (new pairings only).",
)
@click.pass_context
def connect(ctx: click.Context, code: str, length: int | None) -> None:
    """Create a pairing (no CODE) or join one, and open a data channel."""
    import asyncio

    from ww.errors import WwError
    from ww.pairing.establisher import Establisher
    from ww.wormhole.signaling import SignalClient

    config = ctx.obj["config"]
    secret_length = length or config.secret_length

    async def _connect():
        async with SignalClient(
            config.signal_server,
            stun_servers=config.stun_servers,
            timeout=config.dial_timeout,
        ) as client:
            establisher = Establisher(config, client)
            channel = await establisher.establish(code, secret_length)
            await channel.close()

    try:
        asyncio.run(_connect())
    except WwError as e:
        click.echo(str(e).rstrip("\n"), err=True)
        raise SystemExit(1)
    except KeyboardInterrupt:
        raise SystemExit(130)


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"ww version {__version__}")
