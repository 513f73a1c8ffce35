"""Main CLI application using Typer."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sealstore import __version__
from sealstore.config.loader import load_config
from sealstore.errors import NotFoundError, SealStoreError
from sealstore.factory import create_service, validate_config
from sealstore.kv.base import Service

app = typer.Typer(
    name="sealstore",
    help="sealstore - redundant encrypted storage for Vault unseal keys",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.sealstore/sealstore.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log backend activity"),
):
    """Store and retrieve unseal keys across storage backends."""
    _setup_logging(verbose)
    ctx.obj = config_path


def _open(ctx: typer.Context) -> Service:
    try:
        return create_service(load_config(ctx.obj))
    except SealStoreError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _fail(e: SealStoreError) -> None:
    err_console.print(f"[red]Error:[/red] {e}")
    raise typer.Exit(1) from e


@app.command()
def version():
    """Show sealstore version."""
    console.print(f"sealstore version {__version__}")


@app.command()
def validate(ctx: typer.Context):
    """Validate the configuration without contacting any backend."""
    try:
        config = load_config(ctx.obj)
        validate_config(config)
    except SealStoreError as e:
        _fail(e)

    table = Table(title="sealstore configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="white")
    table.add_column("Value", style="dim")
    table.add_row("Mode", config.mode)
    if config.mode == "aws-kms-s3":
        for i, (region, bucket) in enumerate(zip(config.aws.s3_regions, config.aws.s3_buckets)):
            table.add_row(f"Replica {i}", f"s3://{bucket} ({region}) + {config.aws.kms_key_ids[i]}")
    console.print(table)
    console.print("[green]Configuration is valid[/green]")


@app.command()
def get(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to read"),
):
    """Print the value stored under KEY."""
    with _open(ctx) as store:
        try:
            value = store.get(key)
        except NotFoundError as e:
            err_console.print(f"[yellow]{e}[/yellow]")
            raise typer.Exit(2) from e
        except SealStoreError as e:
            _fail(e)
    typer.echo(value, nl=False)


@app.command("set")
def set_(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to write"),
    value: Optional[str] = typer.Argument(None, help="Value (omit when using --file)"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Read the value from a file", exists=True, dir_okay=False
    ),
):
    """Store a value under KEY."""
    if (value is None) == (file is None):
        err_console.print("[red]Error:[/red] pass either VALUE or --file")
        raise typer.Exit(1)
    data = file.read_bytes() if file else value.encode("utf-8")

    with _open(ctx) as store:
        try:
            store.set(key, data)
        except SealStoreError as e:
            _fail(e)
    console.print(f"Stored {key}")


@app.command()
def delete(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to delete"),
):
    """Delete KEY (succeeds if it does not exist)."""
    with _open(ctx) as store:
        try:
            store.delete(key)
        except SealStoreError as e:
            _fail(e)
    console.print(f"Deleted {key}")


@app.command("list")
def list_(
    ctx: typer.Context,
    prefix: str = typer.Argument("", help="Only list keys with this prefix"),
):
    """List stored keys."""
    with _open(ctx) as store:
        try:
            keys = store.list(prefix)
        except SealStoreError as e:
            _fail(e)
    for key in keys:
        console.print(key, markup=False, highlight=False)


if __name__ == "__main__":
    app()
