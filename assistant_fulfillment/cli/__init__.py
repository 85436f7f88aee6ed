"""CLI commands for assistant-fulfillment."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from assistant_fulfillment.adapters.http import BufferedResponse, RequestAdapter
from assistant_fulfillment.services.actions_sdk import ActionsSdkApp
from assistant_fulfillment.services.conversation import AssistantApp
from assistant_fulfillment.services.dialogflow import DialogflowApp
from assistant_fulfillment.services.normalizer import (
    ACTIONS_API_VERSION_HEADER,
    to_camel_case_keys,
    to_snake_case_keys,
)

main_app = typer.Typer(
    name="assistant-fulfillment",
    help="Inspect and convert Assistant webhook payloads",
    no_args_is_help=True,
)
console = Console()


class Protocol(str, Enum):
    ACTIONS_SDK = "actions-sdk"
    DIALOGFLOW = "dialogflow"


class KeyCase(str, Enum):
    CAMEL = "camel"
    SNAKE = "snake"


def _load_payload(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] could not read {path}: {e}")
        raise typer.Exit(1) from e


def _format(value: Any) -> str:
    if value is None:
        return "[dim]-[/dim]"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


@main_app.command("inspect")
def inspect_payload(
    payload: Path = typer.Argument(..., help="Captured webhook request body (JSON)"),
    protocol: Protocol = typer.Option(Protocol.ACTIONS_SDK, "--protocol", "-p", help="Webhook protocol"),
    api_version: Optional[str] = typer.Option(
        None, "--api-version", "-v", help="Value of the Google-Actions-API-Version header"
    ),
) -> None:
    """Print the turn fields a handler would see for PAYLOAD."""
    body = _load_payload(payload)
    headers = {ACTIONS_API_VERSION_HEADER: api_version} if api_version else {}
    response = BufferedResponse()
    app_cls = ActionsSdkApp if protocol is Protocol.ACTIONS_SDK else DialogflowApp
    assistant: AssistantApp = app_cls(RequestAdapter(body, headers), response)

    table = Table(title=f"{protocol.value} turn")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("API version", _format(assistant.actions_api_version))
    table.add_row("Legacy (v1)", str(not assistant.is_not_api_version_one()))
    table.add_row("Intent", _format(assistant.get_intent()))
    table.add_row("Raw input", _format(assistant.get_raw_input()))
    table.add_row("State", _format(assistant.state))
    table.add_row("Data", _format(assistant.data))
    table.add_row("User", _format(assistant.get_user()))
    table.add_row("Locale", _format(assistant.get_user_locale()))
    table.add_row("Input type", _format(assistant.get_input_type()))
    table.add_row("Surface capabilities", _format(assistant.get_surface_capabilities()))
    if isinstance(assistant, DialogflowApp):
        table.add_row("Contexts", _format(assistant.get_contexts()))
    console.print(table)

    if response.sent:
        console.print(f"[yellow]Validation:[/yellow] {response.body}")


@main_app.command("convert")
def convert_payload(
    payload: Path = typer.Argument(..., help="JSON document to re-key"),
    to: KeyCase = typer.Option(KeyCase.CAMEL, "--to", "-t", help="Target key case"),
) -> None:
    """Print PAYLOAD with every identifier key converted to camelCase or snake_case."""
    body = _load_payload(payload)
    converted = to_camel_case_keys(body) if to is KeyCase.CAMEL else to_snake_case_keys(body)
    typer.echo(json.dumps(converted, indent=2))


def main() -> None:
    """Entry point for the CLI."""
    main_app()


__all__ = ["main", "main_app"]
