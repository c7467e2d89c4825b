"""CLI commands for ankiserver."""

import asyncio
import json
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__, paths
from .config import Config, format_config_display, load_config, save_config
from .errors import ToolError
from .log import configure_logging
from .resources import list_resources
from .sanitize import preview
from .server import AnkiServer
from .tools import TOOLS

console = Console()


def _run(fn):
    """Run `fn(server)` against a server built from the current config."""
    config = load_config()
    configure_logging(config.log_level)

    async def runner():
        server = AnkiServer.from_config(config)
        try:
            return await fn(server)
        finally:
            await server.aclose()

    try:
        return asyncio.run(runner())
    except ToolError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)


def _print_text(text: str) -> None:
    try:
        json.loads(text)
    except ValueError:
        console.print(text, markup=False, highlight=False)
    else:
        console.print_json(text)


def _parse_pair(pair: str) -> tuple[str, object]:
    """'deckName=Default' -> ("deckName", "Default"); JSON values are decoded."""
    if "=" not in pair:
        raise click.BadParameter(f"Expected key=value, got '{pair}'")
    key, raw = pair.split("=", 1)
    try:
        value = json.loads(raw)
    except ValueError:
        value = raw
    return key.strip(), value


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """ankiserver - Anki tools and card views over AnkiConnect.

    Requires Anki desktop running with AnkiConnect plugin installed.
    """
    pass


@cli.command()
def status() -> None:
    """Check connection to Anki."""
    if _run(lambda server: server.anki.ping()):
        console.print("[green]✓ Connected to Anki[/green]")
    else:
        console.print(
            "[red]✗ Cannot connect to Anki[/red]\n"
            "[dim]Make sure Anki is running with AnkiConnect installed.[/dim]"
        )
        sys.exit(1)


@cli.command()
def tools() -> None:
    """List available tools."""
    table = Table(title="Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Required", style="yellow")
    table.add_column("Description", style="dim", max_width=70)

    for tool in TOOLS:
        required = ", ".join(tool["inputSchema"].get("required", []))
        table.add_row(tool["name"], required, tool["description"])

    console.print(table)
    console.print(f"\n[dim]{len(TOOLS)} tool(s)[/dim]")


@cli.command()
@click.argument("name")
@click.option("--args", "args_json", default=None, help="Arguments as a JSON object")
@click.option("-a", "--arg", "pairs", multiple=True, help="Single argument as key=value (repeatable)")
def call(name: str, args_json: str | None, pairs: tuple[str, ...]) -> None:
    """Call a tool by name.

    Examples:

        ankiserver call list_decks -a includeStats=true

        ankiserver call find_notes --args '{"query": "deck:Japanese", "limit": 5}'
    """
    arguments: dict = {}
    if args_json:
        try:
            arguments = json.loads(args_json)
        except ValueError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--args")
        if not isinstance(arguments, dict):
            raise click.BadParameter("Must be a JSON object", param_hint="--args")
    for pair in pairs:
        key, value = _parse_pair(pair)
        arguments[key] = value

    result = _run(lambda server: server.call_tool(name, arguments))
    for block in result.get("content", []):
        _print_text(block.get("text", ""))


@cli.command()
def resources() -> None:
    """List card views available through `read`."""
    table = Table(title="Resources")
    table.add_column("URI", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Description", style="dim")

    for resource in list_resources()["resources"]:
        table.add_row(resource["uri"], resource["name"], resource["description"])

    console.print(table)


@cli.command()
@click.argument("uri")
@click.option("-l", "--limit", default=20, help="Maximum cards to show")
def read(uri: str, limit: int) -> None:
    """Read a card view, e.g. anki://search/isdue."""
    result = _run(lambda server: server.read_resource(uri))
    cards = json.loads(result["contents"][0]["text"])

    if not cards:
        console.print("[yellow]No cards found[/yellow]")
        return

    table = Table(title=uri)
    table.add_column("Card", style="dim", justify="right")
    table.add_column("Question", style="cyan", max_width=40)
    table.add_column("Answer", style="green", max_width=40)
    table.add_column("Due", justify="right")

    for card in cards[:limit]:
        table.add_row(
            str(card["cardId"]),
            preview(card["question"], 40),
            preview(card["answer"], 40),
            str(card["due"]),
        )

    console.print(table)
    console.print(f"\n[dim]Showing {min(limit, len(cards))} of {len(cards)} card(s)[/dim]")


@cli.group("config", invoke_without_command=True)
@click.pass_context
def config_group(ctx: click.Context) -> None:
    """Show or initialize configuration."""
    if ctx.invoked_subcommand is None:
        console.print(format_config_display(load_config()), markup=False, highlight=False)


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def config_init(force: bool) -> None:
    """Write a config file with default values."""
    if paths.CONFIG_FILE.exists() and not force:
        console.print(f"[yellow]Config already exists at {paths.CONFIG_FILE}[/yellow]")
        console.print("[dim]Use --force to overwrite.[/dim]")
        return
    save_config(Config())
    console.print(f"[green]✓ Wrote {paths.CONFIG_FILE}[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
