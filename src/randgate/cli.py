"""randgate CLI - serve, sign and fetch random bytes."""

import asyncio
import sys
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from randgate.client import RandomBytesClient, RandomBytesClientError, sign_request
from randgate.common.errors import invalid_fields
from randgate.common.settings import Settings, get_settings
from randgate.service.main import main as run_service

console = Console()

P = ParamSpec("P")
R = TypeVar("R")


def async_command(f: Callable[P, Coroutine[Any, Any, R]]) -> Callable[P, R]:
    """Decorator to run async commands."""

    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as exc:
        fields = ", ".join(invalid_fields(exc))
        console.print(f"[red]Invalid configuration: {fields}[/red]")
        sys.exit(1)


@click.group()
def cli() -> None:
    """randgate - authenticated random bytes over HTTP."""


@cli.command("serve")
@click.option("--host", default=None, help="Bind host (overrides RANDGATE_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (overrides RANDGATE_PORT)")
def serve(host: str | None, port: int | None) -> None:
    """Run the random bytes service."""
    run_service(host=host, port=port)


@cli.command("sign")
@click.argument("byte_length", type=click.IntRange(min=1))
@click.option("--path", default=None, help="Route path (defaults to RANDGATE_ROUTE_PATH)")
def sign(byte_length: int, path: str | None) -> None:
    """Print the MAC header value for a request of BYTE_LENGTH bytes."""
    settings = _load_settings()
    config = settings.auth_config()
    path = path or settings.route_path

    mac = sign_request(config, path, byte_length)
    click.echo(f"{settings.mac_header}: {mac}")


@cli.command("fetch")
@click.argument("base_url")
@click.argument("byte_length", type=click.IntRange(min=1))
@click.option("--hex", "as_hex", is_flag=True, help="Print bytes as hex instead of a table")
@async_command
async def fetch(base_url: str, byte_length: int, as_hex: bool) -> None:
    """Fetch BYTE_LENGTH random bytes from the service at BASE_URL."""
    settings = _load_settings()

    async with RandomBytesClient(
        base_url,
        settings.auth_config(),
        path=settings.route_path,
        mac_header=settings.mac_header,
        timeout=settings.http_timeout,
    ) as client:
        try:
            payload = await client.fetch(byte_length)
        except RandomBytesClientError as exc:
            console.print(f"[red]Error ({exc.status_code}): {exc}[/red]")
            sys.exit(1)

    if as_hex:
        click.echo(payload.hex())
        return

    table = Table(title=f"{byte_length} random bytes")
    table.add_column("Offset", style="cyan", justify="right")
    table.add_column("Values", style="green")
    for offset in range(0, len(payload), 16):
        chunk = payload[offset : offset + 16]
        table.add_row(str(offset), " ".join(f"{b:3d}" for b in chunk))

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
