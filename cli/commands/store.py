# cli/commands/store.py
"""Commands for saved automations in the configured store."""

import asyncio
import sys
from pathlib import Path

import click

from automation_flows.config import get_settings
from automation_flows.errors import AutomationError
from automation_flows.flow.trigger import match_keyword_triggers
from automation_flows.storage import create_store
from cli.commands.flow import load_session, write_session


async def _with_store(operation):
    """Open the configured store, run ``operation(store)`` and close it."""
    store = create_store(get_settings())
    await store.initialize()
    try:
        return await operation(store)
    finally:
        await store.close()


def _run(operation):
    try:
        return asyncio.run(_with_store(operation))
    except AutomationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


@click.group()
def store():
    """Manage saved automations - save, list, activate and delete."""
    pass


@store.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
def save(flow_file: Path):
    """Save a flow file as an automation (create or update)."""
    try:
        session = load_session(flow_file)
    except AutomationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    result = _run(session.save)
    if not result.success:
        click.echo(f"❌ Could not save automation: {result.error}", err=True)
        sys.exit(1)

    # Remember the record id so the next save updates it
    write_session(session, flow_file)
    automation = result.automation
    click.echo(f"💾 Saved '{automation.name}' ({automation.id}) trigger={automation.trigger_type}")


@store.command(name='list')
@click.option('--active', is_flag=True, help='Only active automations')
def list_automations(active: bool):
    """List saved automations."""
    automations = _run(lambda s: s.list_automations(active_only=active))

    if not automations:
        click.echo("📭 No automations found")
        return

    for automation in automations:
        status = "🟢 active" if automation.is_active else "⏸️  paused"
        click.echo(f"  {status}  {automation.name}  ({automation.id})")
        click.echo(
            f"     Trigger: {automation.trigger_type}  "
            f"Nodes: {len(automation.flow_data)}  "
            f"Executions: {automation.executions_count}"
        )


@store.command()
@click.argument('automation_id')
@click.option('--on/--off', 'is_active', default=True, help='Activate or pause')
def toggle(automation_id: str, is_active: bool):
    """Activate or pause an automation."""
    automation = _run(lambda s: s.set_active(automation_id, is_active))
    click.echo("Automation activated" if automation.is_active else "Automation paused")


@store.command()
@click.argument('automation_id')
@click.confirmation_option(prompt='Delete this automation?')
def delete(automation_id: str):
    """Delete an automation."""
    _run(lambda s: s.delete_automation(automation_id))
    click.echo("Automation deleted")


@store.command()
@click.argument('message')
def match(message: str):
    """Show active keyword automations that MESSAGE would trigger."""
    automations = _run(lambda s: s.list_automations(active_only=True))
    matched = match_keyword_triggers(automations, message)

    if not matched:
        click.echo("No keyword automations matched")
        return

    for automation_id in matched:
        click.echo(automation_id)
