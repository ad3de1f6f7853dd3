"""CLI commands for shiftdesk.

Provides subcommands for the employee chat and its supporting services.

Commands:
    shiftdesk classify TEXT     - Show how a chat line is interpreted
    shiftdesk chat              - Interactive chat against the API
    shiftdesk geocode LAT LNG   - Reverse-geocode a position
    shiftdesk export KIND       - Download the shifts/tickets CSV export
    shiftdesk config            - Show (or save) the effective configuration
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import AppConfig
from .core.api import ApiError, ShiftDeskClient
from .core.geocode import GeocodeCache, GeocodeError, ReverseGeocoder
from .core.intent import IntentMatcher, create_matcher
from .core.session import ChatSession, LocationError

logger = logging.getLogger(__name__)

console = Console()

EXIT_WORDS = {"quit", "exit", "bye"}


def load_config(args: argparse.Namespace) -> AppConfig:
    """Load configuration for the selected project directory."""
    return AppConfig.load(Path(args.project_path).resolve())


def build_matcher(config: AppConfig, locales: list[str] | None = None) -> IntentMatcher:
    """Create the intent matcher described by the configuration."""
    return create_matcher(
        locales=locales or config.locales,
        phrases_file=config.phrases_file,
        thresholds=config.matcher.to_thresholds(),
    )


def build_geocoder(config: AppConfig) -> ReverseGeocoder:
    cache = GeocodeCache(
        ttl_seconds=config.geocode_cache_ttl,
        max_entries=config.geocode_cache_size,
        precision=config.geocode_precision,
    )
    return ReverseGeocoder(
        endpoint=config.geocoder_endpoint,
        user_agent=config.geocoder_user_agent,
        cache=cache,
        timeout=config.request_timeout,
    )


def classify_text(args: argparse.Namespace) -> int:
    """Classify a chat line and print the tagged result.

    Args:
        args: Parsed arguments (text, locale)

    Returns:
        Exit code (0 for success, 1 for configuration errors)
    """
    config = load_config(args)
    try:
        matcher = build_matcher(config, args.locale)
    except (ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    result = matcher.classify(" ".join(args.text))
    console.print_json(json.dumps(result.to_dict(), ensure_ascii=False))
    if result.matched:
        console.print(f"[dim]decided by: {result.source}[/dim]")
    return 0


async def _chat(args: argparse.Namespace, config: AppConfig) -> int:
    matcher = build_matcher(config, args.locale)

    async def locate() -> tuple[float, float]:
        if args.lat is None or args.lng is None:
            raise LocationError("Location unknown: pass --lat and --lng")
        return args.lat, args.lng

    async with (
        ShiftDeskClient(config.api_endpoint, config.access_token, config.request_timeout) as api,
        build_geocoder(config) as geocoder,
    ):
        try:
            services = await api.list_services()
        except ApiError as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1

        session = ChatSession(
            matcher=matcher,
            backend=api,
            locator=locate,
            services=services,
            service_id=args.service,
            geocoder=geocoder if not args.no_geocode else None,
        )

        if not services:
            console.print("[yellow]No services available.[/yellow]")
        else:
            names = ", ".join(s.name for s in services)
            console.print(f"[dim]Services: {names}[/dim]")
        labels = " · ".join(label for _, label in session.menu())
        console.print(f"[bold]shiftdesk[/bold]  {labels}  [dim](quit to exit)[/dim]")

        while True:
            try:
                text = console.input("[cyan]>[/cyan] ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            if text.strip().lower() in EXIT_WORDS:
                break
            if not text.strip():
                continue

            for reply in await session.handle(text):
                # Ticket text is user input, not markup
                console.print(reply.content, markup=False)

    return 0


def run_chat(args: argparse.Namespace) -> int:
    """Run an interactive chat session.

    Args:
        args: Parsed arguments (lat, lng, service, locale, no_geocode)

    Returns:
        Exit code (0 for success)
    """
    config = load_config(args)
    try:
        return asyncio.run(_chat(args, config))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1


async def _geocode(config: AppConfig, lat: float, lng: float):
    async with build_geocoder(config) as geocoder:
        return await geocoder.reverse(lat, lng)


def geocode(args: argparse.Namespace) -> int:
    """Reverse-geocode a position.

    Args:
        args: Parsed arguments (lat, lng)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    config = load_config(args)
    try:
        address = asyncio.run(_geocode(config, args.lat, args.lng))
    except GeocodeError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if args.json:
        console.print_json(json.dumps(address.to_dict(), ensure_ascii=False))
    else:
        console.print(address.label or "[dim]No address found.[/dim]")
    return 0


async def _export(config: AppConfig, kind: str) -> str:
    async with ShiftDeskClient(
        config.api_endpoint, config.access_token, config.request_timeout
    ) as api:
        return await api.export_csv(kind)


def export_csv(args: argparse.Namespace) -> int:
    """Download a CSV export.

    Args:
        args: Parsed arguments (kind, output)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    config = load_config(args)
    try:
        csv_text = asyncio.run(_export(config, args.kind))
    except ApiError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    output = Path(args.output or f"{args.kind}.csv")
    output.write_text(csv_text, encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {args.kind} export to {output}")
    return 0


def show_config(args: argparse.Namespace) -> int:
    """Show the effective configuration, optionally saving it.

    Args:
        args: Parsed arguments (save)

    Returns:
        Exit code (0 for success)
    """
    config = load_config(args)

    table = Table(title="shiftdesk configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for name, value in config.model_dump(mode="json").items():
        if name == "access_token":
            value = "(set)" if value else "(unset)"
        table.add_row(name, str(value))

    console.print(table)

    if args.save:
        config.save()
        console.print(f"[green]✓[/green] Saved to {config.config_file}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="shiftdesk",
        description="shiftdesk: shift tracking and ticketing from the command line",
    )
    parser.add_argument(
        "--project",
        "-p",
        dest="project_path",
        default=".",
        help="Directory holding .shiftdesk/config.yaml (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_locale_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--locale",
            "-l",
            action="append",
            help="Phrase locale to load (repeatable; default from config)",
        )

    # =========================================================================
    # classify command
    # =========================================================================
    classify_parser = subparsers.add_parser("classify", help="Classify a chat line")
    classify_parser.add_argument("text", nargs="+", help="Chat input")
    add_locale_arg(classify_parser)
    classify_parser.set_defaults(func=classify_text)

    # =========================================================================
    # chat command
    # =========================================================================
    chat_parser = subparsers.add_parser("chat", help="Interactive employee chat")
    chat_parser.add_argument("--lat", type=float, help="Current latitude")
    chat_parser.add_argument("--lng", type=float, help="Current longitude")
    chat_parser.add_argument("--service", "-s", help="Service id for new tickets")
    chat_parser.add_argument(
        "--no-geocode",
        action="store_true",
        help="Do not look up the address when a shift starts",
    )
    add_locale_arg(chat_parser)
    chat_parser.set_defaults(func=run_chat)

    # =========================================================================
    # geocode command
    # =========================================================================
    geocode_parser = subparsers.add_parser("geocode", help="Reverse-geocode a position")
    geocode_parser.add_argument("lat", type=float, help="Latitude")
    geocode_parser.add_argument("lng", type=float, help="Longitude")
    geocode_parser.add_argument("--json", action="store_true", help="Print all address parts")
    geocode_parser.set_defaults(func=geocode)

    # =========================================================================
    # export command
    # =========================================================================
    export_parser = subparsers.add_parser("export", help="Download a CSV export")
    export_parser.add_argument("kind", choices=["shifts", "tickets"], help="What to export")
    export_parser.add_argument("--output", "-o", help="Output file (default: <kind>.csv)")
    export_parser.set_defaults(func=export_csv)

    # =========================================================================
    # config command
    # =========================================================================
    config_parser = subparsers.add_parser("config", help="Show effective configuration")
    config_parser.add_argument(
        "--save",
        action="store_true",
        help="Write the configuration to .shiftdesk/config.yaml",
    )
    config_parser.set_defaults(func=show_config)

    return parser


def run_cli(args: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not hasattr(parsed, "func"):
        parser.print_help()
        return 0

    try:
        return parsed.func(parsed)
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled.[/dim]")
        return 130
    except Exception as e:
        logger.exception("Command failed")
        console.print(f"[red]Error:[/red] {e}")
        return 1


__all__ = [
    "create_parser",
    "run_cli",
    "classify_text",
    "run_chat",
    "geocode",
    "export_csv",
    "show_config",
]
