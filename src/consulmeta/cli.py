"""
consulmeta command-line interface

Operator commands for checking an adapter URI against a live Consul agent.
"""

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from .errors import ConsulMetaError
from .factory import create_adapter

console = Console()
logger = logging.getLogger("consulmeta-cli")


async def _run(adapter, operation):
    try:
        return await operation()
    finally:
        await adapter.close()


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level",
)
def cli(log_level: str):
    """Register local services in Consul with metadata and health checks."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
@click.argument("uri")
def ping(uri: str):
    """Check that the Consul cluster behind URI has a leader."""
    try:
        adapter = create_adapter(uri)
        leader = asyncio.run(_run(adapter, adapter.ping))
    except ConsulMetaError as e:
        console.print(f"[red]Ping failed:[/red] {e}")
        sys.exit(1)

    console.print(f"[green]Consul leader:[/green] {leader}")


@cli.command()
@click.argument("uri")
def services(uri: str):
    """List the registry entries owned by URI's namespace prefix."""
    try:
        adapter = create_adapter(uri)
        entries = asyncio.run(_run(adapter, adapter.backend.list_services))
    except ConsulMetaError as e:
        console.print(f"[red]Listing failed:[/red] {e}")
        sys.exit(1)

    table = Table(title=f"Services under {adapter.prefix!r}")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Address")
    table.add_column("Tags")

    owned = 0
    for entry_id, entry in sorted(entries.items()):
        if not adapter.namespace.owns(entry_id):
            continue
        owned += 1
        table.add_row(
            adapter.namespace.strip_prefix(entry_id),
            entry.get("Service", ""),
            f"{entry.get('Address', '')}:{entry.get('Port', '')}",
            ", ".join(entry.get("Tags") or []),
        )

    console.print(table)
    logger.info("Listed %d owned entries out of %d", owned, len(entries))


def main():
    """Entry point for the consulmeta CLI."""
    cli()


if __name__ == "__main__":
    main()
