# cli/main.py
"""Main CLI entry point for the automation flow builder."""

import click

from automation_flows import __version__
from automation_flows.config import get_settings
from automation_flows.logging_config import configure_logging


@click.group()
@click.version_option(version=__version__)
def cli():
    """Automation Flow Builder CLI - edit automation flows and manage saved automations."""
    configure_logging(get_settings())


# Import and register command groups
def register_commands():
    """Register all CLI command groups."""
    from cli.commands.flow import flow
    cli.add_command(flow)

    from cli.commands.store import store
    cli.add_command(store)


# Register all commands
register_commands()


if __name__ == '__main__':
    cli()
