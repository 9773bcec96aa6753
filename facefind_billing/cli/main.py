"""
CLI interface for FaceFind billing.

Quotes events and manages the stored billing settings.
"""

import json
import logging
import sqlite3
import sys
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from facefind_billing.config.loader import (
    BillingConfig,
    ConfigurationError,
    billing_config_to_dict,
    event_defaults_to_dict,
    load_billing_config,
)
from facefind_billing.config.provider import SettingsProvider
from facefind_billing.core.estimator import EventBillingEstimate, estimate
from facefind_billing.core.formatting import cost_summary, format_inr
from facefind_billing.core.usage import EventBillingInput, ValidationError
from facefind_billing.storage.db import DEFAULT_DB_PATH
from facefind_billing.storage.repository import SettingsRepository, initialize_schema

app = typer.Typer()
config_app = typer.Typer(help="Show and edit stored billing settings.")
app.add_typer(config_app, name="config")
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_ERROR = 1

# Errors caused by user input or settings, reported without a traceback
USER_ERRORS = (ValidationError, ConfigurationError, FileNotFoundError, yaml.YAMLError)


def _db_path(ctx: typer.Context) -> str:
    return ctx.ensure_object(dict).get("db_path", DEFAULT_DB_PATH)


def _get_provider(ctx: typer.Context) -> SettingsProvider:
    db_path = _db_path(ctx)
    initialize_schema(db_path)
    return SettingsProvider(SettingsRepository(db_path))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    db_path: str = typer.Option(
        DEFAULT_DB_PATH,
        "--db",
        envvar="FACEFIND_DB",
        help="Path to the settings database"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """FaceFind billing CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    ctx.ensure_object(dict)["db_path"] = db_path
    if ctx.invoked_subcommand is None:
        console.print("FaceFind billing - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the settings database."""
    try:
        initialize_schema(_db_path(ctx))
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_OK)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_ERROR)


@app.command()
def quote(
    ctx: typer.Context,
    attendees: Optional[int] = typer.Option(
        None,
        "--attendees",
        "-a",
        help="Estimated number of attendees"
    ),
    max_photos: Optional[int] = typer.Option(
        None,
        "--max-photos",
        "-p",
        help="Maximum number of photos for the event"
    ),
    retention_days: Optional[int] = typer.Option(
        None,
        "--retention-days",
        "-r",
        help="Days photos stay available"
    ),
    confidence: Optional[float] = typer.Option(
        None,
        "--confidence",
        "-c",
        help="Face match confidence threshold (0-100)"
    ),
    width: Optional[int] = typer.Option(None, "--width", help="Photo resize width"),
    height: Optional[int] = typer.Option(None, "--height", help="Photo resize height"),
    config_file: Optional[str] = typer.Option(
        None,
        "--config-file",
        help="Price against a YAML billing config instead of stored settings"
    ),
    detailed: bool = typer.Option(
        False,
        "--detailed",
        "-d",
        help="Show every AWS line item"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the estimate as JSON")
):
    """
    Quote an event.

    Options that are not given fall back to the stored event defaults.
    """
    try:
        provider = _get_provider(ctx)
        defaults = provider.get_event_defaults()
        config = load_billing_config(config_file) if config_file else provider.get_billing_config()

        event = EventBillingInput(
            estimated_attendees=attendees if attendees is not None else defaults.estimated_attendees,
            max_photos=max_photos if max_photos is not None else defaults.max_photos,
            retention_period_days=(
                retention_days if retention_days is not None else defaults.retention_period_days
            ),
            confidence_threshold=(
                confidence if confidence is not None else defaults.confidence_threshold
            ),
            photo_resize_width=width if width is not None else defaults.photo_resize_width,
            photo_resize_height=height if height is not None else defaults.photo_resize_height,
        )
        result = estimate(event, config)
    except USER_ERRORS as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_ERROR)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _display_estimate(result, detailed)
    sys.exit(EXIT_CODE_OK)


def _format_amount(amount: float) -> str:
    """Line items are often fractions of a rupee, so keep paise."""
    return f"₹{amount:,.2f}"


def _display_estimate(result: EventBillingEstimate, detailed: bool):
    """Display a quote in a clean, financial format."""
    event = result.event
    console.print("\n[bold]Event Billing Estimate[/bold]")
    console.print("-" * 40)
    console.print(
        f"Attendees: {event.estimated_attendees:,}  "
        f"Photos: {event.max_photos:,}  "
        f"Retention: {event.retention_period_days} days"
    )
    if event.photo_resize_width and event.photo_resize_height:
        console.print(f"Resize: {event.photo_resize_width}x{event.photo_resize_height}")
    console.print(f"Total storage: {result.total_storage_gb:,.2f} GB\n")

    if detailed:
        table = Table(title="AWS line items")
        table.add_column("Line item")
        table.add_column("Cost", justify="right")
        for name, amount in result.breakdown.items():
            table.add_row(name, _format_amount(amount))
        console.print(table)
    else:
        for line in cost_summary(result):
            console.print(line)

    console.print(f"\nTotal AWS cost: {_format_amount(result.total_aws_cost)}")
    console.print(f"Retention multiplier: {result.retention_multiplier:g}x")
    console.print(f"Adjusted cost: {_format_amount(result.adjusted_cost)}")
    console.print(f"Profit margin: {_format_amount(result.profit_margin)}")
    console.print(f"[bold]Estimated price: {format_inr(result.estimated_price)}[/bold]")


@config_app.command("show")
def show_config(
    ctx: typer.Context,
    as_yaml: bool = typer.Option(False, "--yaml", help="Print as YAML for editing")
):
    """Show the billing configuration currently in effect."""
    provider = _get_provider(ctx)
    config = provider.get_billing_config()

    if as_yaml:
        typer.echo(yaml.safe_dump(billing_config_to_dict(config), sort_keys=False))
        sys.exit(EXIT_CODE_OK)

    _display_config(config)

    defaults_table = Table(title="Event defaults")
    defaults_table.add_column("Setting")
    defaults_table.add_column("Value", justify="right")
    for name, value in event_defaults_to_dict(provider.get_event_defaults()).items():
        defaults_table.add_row(name, f"{value:g}")
    console.print(defaults_table)
    sys.exit(EXIT_CODE_OK)


def _display_config(config: BillingConfig):
    table = Table(title="Billing configuration")
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    for name, value in billing_config_to_dict(config).items():
        if name == "retention_tiers":
            continue
        table.add_row(name, f"{value:g}")
    console.print(table)

    tiers = Table(title="Retention tiers")
    tiers.add_column("Up to (days)", justify="right")
    tiers.add_column("Multiplier", justify="right")
    for tier in config.retention_tiers:
        bound = str(tier.up_to_days) if tier.up_to_days is not None else "longer"
        tiers.add_row(bound, f"{tier.multiplier:g}x")
    console.print(tiers)


@config_app.command("import")
def import_config(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="YAML file with a complete billing config")
):
    """Replace the stored billing configuration with a YAML file."""
    try:
        config = load_billing_config(path)
        _get_provider(ctx).replace_billing_config(config)
    except USER_ERRORS as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_ERROR)

    console.print(f"[green]✓[/] Billing configuration imported from {path}")
    sys.exit(EXIT_CODE_OK)


@config_app.command("set")
def set_config(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Billing setting name"),
    value: float = typer.Argument(..., help="New numeric value")
):
    """Change a single numeric billing setting."""
    if key == "retention_tiers":
        console.print("[red]Error:[/] retention tiers can only be changed with 'config import'")
        sys.exit(EXIT_CODE_ERROR)

    new_value = int(value) if value.is_integer() else value
    try:
        _get_provider(ctx).update_billing_config(**{key: new_value})
    except (ConfigurationError, sqlite3.Error) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_ERROR)

    console.print(f"[green]✓[/] {key} set to {new_value}")
    sys.exit(EXIT_CODE_OK)


@config_app.command("reset")
def reset_config(ctx: typer.Context):
    """Discard stored billing settings and go back to the defaults."""
    if _get_provider(ctx).reset_billing_config():
        console.print("[green]✓[/] Billing configuration reset to defaults")
    else:
        console.print("Billing configuration already uses the defaults")
    sys.exit(EXIT_CODE_OK)


if __name__ == "__main__":
    app()
