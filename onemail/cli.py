"""Command-line interface for One Mail - import subscribers into automations."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from onemail import __version__
from onemail.config import settings
from onemail.logger import setup_global_logger
from onemail.workflows.engine.expressions.resolver import ExpressionResolver
from onemail.workflows.engine.nodes.registry import NodeRegistry

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_NODE = "onemail.automation"


def _credentials(api_key: Optional[str]) -> Dict[str, Any]:
    # Without --api-key the credential service falls back to ONEMAIL_API_KEY
    return {"oneMailApi": {"api_key": api_key}} if api_key else {}


def _parse_fields(fields: Tuple[str, ...]) -> List[Dict[str, str]]:
    entries = []
    for field in fields:
        key, sep, value = field.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{field}'", param_hint="--field")
        entries.append({"key": key.strip(), "value": value})
    return entries


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
@click.pass_context
def main(ctx: click.Context, log_level: Optional[str]):
    """
    One Mail - push subscribers to One Mail automations.

    Runs the One Mail workflow node outside a workflow: list its dropdown
    options or import a subscriber directly.
    """
    ctx.ensure_object(dict)
    setup_global_logger(log_level or settings.LOG_LEVEL)


@main.command()
def nodes():
    """List the node packages that were discovered."""
    table = Table(title="Node packages")
    table.add_column("ID", style="bold blue")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Credentials")
    table.add_column("Option loaders")

    for node_id, node in NodeRegistry.list_nodes().items():
        table.add_row(
            node_id,
            node["displayName"],
            node["version"],
            ", ".join(node["credentials"]),
            ", ".join(node["loadOptionsMethods"]),
        )
    console.print(table)


@main.command()
@click.argument("method")
@click.option("--node", "node_id", default=DEFAULT_NODE, show_default=True, help="Node package ID.")
@click.option("--api-key", envvar="ONEMAIL_API_KEY", default=None, help="One Mail API key.")
@click.pass_context
def options(ctx: click.Context, method: str, node_id: str, api_key: Optional[str]):
    """Run a node's option loader METHOD (e.g. get_automations) and print the result."""
    try:
        result = asyncio.run(
            NodeRegistry.load_options(node_id, method, credentials=_credentials(api_key))
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)

    table = Table(title=f"{node_id}: {method}")
    table.add_column("Name")
    table.add_column("Value", style="cyan")
    table.add_column("Description", style="dim")
    for option in result:
        table.add_row(str(option["name"]), str(option["value"]), str(option.get("description") or ""))
    console.print(table)


@main.command("import-subscriber")
@click.option("--automation", "automation_uuid", required=True, help="Automation UUID.")
@click.option("--email", required=True, help="Subscriber email.")
@click.option("--field", "fields", multiple=True, metavar="KEY=VALUE", help="Custom field, repeatable.")
@click.option("--api-key", envvar="ONEMAIL_API_KEY", default=None, help="One Mail API key.")
@click.pass_context
def import_subscriber(
    ctx: click.Context,
    automation_uuid: str,
    email: str,
    fields: Tuple[str, ...],
    api_key: Optional[str],
):
    """Import one subscriber into an automation."""
    config = {
        "resource": "automation",
        "operation": "import_subscriber",
        "uuid": automation_uuid,
        "email": email,
        "contactFieldsUi": {"contactFields": _parse_fields(fields)},
    }

    try:
        items = asyncio.run(
            NodeRegistry.execute_node(DEFAULT_NODE, config, credentials=_credentials(api_key))
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)

    node = NodeRegistry.get_node(DEFAULT_NODE)
    subtitle = ExpressionResolver({"parameter": config}).resolve(node.schema.subtitle or "")
    for item in items:
        console.print(Panel(json.dumps(item.json_data, indent=2, ensure_ascii=False), title=subtitle))


if __name__ == "__main__":
    main()
