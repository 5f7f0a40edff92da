# cli/commands/flow.py
"""Flow file editing commands."""

import sys
from pathlib import Path
from typing import Any, Tuple

import click
import yaml

from automation_flows.config import get_settings
from automation_flows.errors import AutomationError
from automation_flows.flow.editor import FlowEditor
from automation_flows.flow.graph import validate_graph
from automation_flows.flow.nodes import NodeKind, get_node_library
from automation_flows.flow.session import FlowSession
from automation_flows.flow.trigger import resolve

KIND_CHOICES = [kind.value for kind in NodeKind]


def load_session(flow_file: Path) -> FlowSession:
    """Read a YAML flow file into a strict editing session."""
    settings = get_settings()
    with open(flow_file, 'r') as f:
        data = yaml.safe_load(f) or {}

    return FlowSession.from_document(
        data,
        editor=FlowEditor.from_features(strict=True),
        reject_multiple_triggers=settings.reject_multiple_triggers,
    )


def write_session(session: FlowSession, flow_file: Path) -> None:
    with open(flow_file, 'w') as f:
        yaml.safe_dump(session.to_document(), f, sort_keys=False, allow_unicode=True)


def _fail(message: str):
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _load(flow_file: Path) -> FlowSession:
    try:
        return load_session(flow_file)
    except AutomationError as e:
        _fail(str(e))


def _parse_value(raw: str) -> Any:
    """Type a value as bool, int or float only when it reads back unchanged.

    Anything else stays the literal text, so message content such as
    ``Order #123`` or ``Hi: welcome`` is stored as typed.
    """
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw

    if isinstance(value, bool):
        return value if raw.strip().lower() in ("true", "false") else raw
    if isinstance(value, (int, float)) and str(value) == raw.strip():
        return value
    return raw


def _parse_assignments(assignments: Tuple[str, ...]) -> dict:
    """Turn ``key=value`` pairs into a dict."""
    values = {}
    for item in assignments:
        if '=' not in item:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--set")
        key, raw = item.split('=', 1)
        values[key.strip()] = _parse_value(raw)
    return values


@click.group()
def flow():
    """Edit automation flow files - add, remove, reorder and inspect nodes."""
    pass


# ============================================================================
# File commands
# ============================================================================

@flow.command()
@click.argument('flow_file', type=click.Path(path_type=Path))
@click.option('--name', '-n', required=True, help='Automation name')
@click.option('--description', '-d', default=None, help='Automation description')
@click.option('--force', is_flag=True, help='Overwrite an existing file')
def init(flow_file: Path, name: str, description: str, force: bool):
    """Create an empty flow file."""
    if flow_file.exists() and not force:
        _fail(f"{flow_file} already exists (use --force to overwrite)")

    session = FlowSession(name=name, description=description)
    write_session(session, flow_file)
    click.echo(f"✅ Created flow '{name}' in {flow_file}")


@flow.command()
@click.option('--search', '-s', default=None, help='Filter by label or description')
def nodes(search: str):
    """List the available node types."""
    library = get_node_library()
    node_types = (
        library.search_node_types(search) if search
        else list(library.get_all_node_types().values())
    )

    for node_type in node_types:
        branches = " (branches)" if node_type.has_branches else ""
        click.echo(f"  {node_type.icon} {node_type.kind.value:<10} {node_type.label}{branches}")
        click.echo(f"     {node_type.description}")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
def show(flow_file: Path):
    """Print the nodes of a flow in order."""
    session = _load(flow_file)

    click.echo(f"📋 {session.name or 'Unnamed flow'}")
    if session.automation_id:
        click.echo(f"   Automation: {session.automation_id}")
    click.echo("=" * 60)

    if not len(session.graph):
        click.echo("   (no nodes)")
        return

    for node in session.graph:
        click.echo(f"  [{node.position}] {node.title} <{node.kind.value}> {node.id}")
        for key, value in node.config.items():
            click.echo(f"        {key}: {value}")
        for branch in node.branches or []:
            click.echo(f"      ↳ {branch.label} [{branch.condition}] {branch.id}")


# ============================================================================
# Edit commands
# ============================================================================

@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
@click.argument('kind', type=click.Choice(KIND_CHOICES))
@click.option('--at', 'at_index', type=int, default=None, help='Insert position (default: end)')
def add(flow_file: Path, kind: str, at_index: int):
    """Insert a node of KIND."""
    session = _load(flow_file)
    node = session.insert(kind, at_index)
    write_session(session, flow_file)
    click.echo(f"➕ Added {node.title} ({node.id}) at position {node.position}")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
@click.argument('node_id')
@click.option('--title', '-t', default=None, help='New node title')
@click.option('--set', 'assignments', multiple=True, help='Config value as key=value')
def update(flow_file: Path, node_id: str, title: str, assignments: Tuple[str, ...]):
    """Change a node's title or config values."""
    session = _load(flow_file)
    node = session.graph.find(node_id)
    if node is None:
        _fail(f"Node not found: {node_id}")

    patch = {}
    if title is not None:
        patch['title'] = title
    if assignments:
        patch['config'] = {**node.config, **_parse_assignments(assignments)}

    if not patch:
        _fail("Nothing to update (use --title or --set)")

    session.update(node_id, patch)
    write_session(session, flow_file)
    click.echo(f"✏️  Updated {node_id}")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
@click.argument('node_id')
def remove(flow_file: Path, node_id: str):
    """Delete a node."""
    session = _load(flow_file)
    try:
        session.delete(node_id)
    except AutomationError as e:
        _fail(str(e))
    write_session(session, flow_file)
    click.echo(f"🗑️  Removed {node_id}")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
@click.argument('node_id')
def duplicate(flow_file: Path, node_id: str):
    """Copy a node directly after itself."""
    session = _load(flow_file)
    try:
        clone = session.duplicate(node_id)
    except AutomationError as e:
        _fail(str(e))
    write_session(session, flow_file)
    click.echo(f"📄 Duplicated {node_id} as {clone.id} at position {clone.position}")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
@click.argument('node_id')
@click.argument('to_index', type=int)
def move(flow_file: Path, node_id: str, to_index: int):
    """Move a node to TO_INDEX."""
    session = _load(flow_file)
    try:
        node = session.move(node_id, to_index)
    except AutomationError as e:
        _fail(str(e))
    if node is None:
        _fail(f"Node not found: {node_id}")
    write_session(session, flow_file)
    click.echo(f"↕️  Moved {node_id} to position {node.position}")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
@click.argument('node_id')
@click.argument('ratio', type=int)
def split(flow_file: Path, node_id: str, ratio: int):
    """Set the A/B split ratio of a split node (1-99)."""
    session = _load(flow_file)
    try:
        session.set_split_ratio(node_id, ratio)
    except AutomationError as e:
        _fail(str(e))
    write_session(session, flow_file)

    node = session.graph.find(node_id)
    labels = " / ".join(branch.label for branch in node.branches)
    click.echo(f"🧪 {node.title}: {labels}")


# ============================================================================
# Inspection commands
# ============================================================================

@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
def validate(flow_file: Path):
    """Check a flow's structure and trigger."""
    session = _load(flow_file)

    errors = validate_graph(session.graph)
    warnings = []

    triggers = session.graph.trigger_nodes()
    if not triggers:
        warnings.append("Flow has no trigger node; it will be saved as a manual trigger")
    elif len(triggers) > 1:
        message = f"Flow has {len(triggers)} trigger nodes; only the first is used"
        if session.reject_multiple_triggers:
            errors.append(message)
        else:
            warnings.append(message)

    for warning in warnings:
        click.echo(f"⚠️  {warning}")

    if errors:
        for error in errors:
            click.echo(f"❌ {error}", err=True)
        sys.exit(1)

    click.echo(f"✅ {flow_file.name} is valid ({len(session.graph)} nodes)")


@flow.command()
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
def trigger(flow_file: Path):
    """Show the trigger the flow would be saved with."""
    session = _load(flow_file)
    try:
        definition = resolve(session.graph, reject_multiple=session.reject_multiple_triggers)
    except AutomationError as e:
        _fail(str(e))

    click.echo(f"trigger_type: {definition.trigger_type}")
    click.echo("trigger_config:")
    click.echo(yaml.safe_dump(definition.trigger_config, sort_keys=False).rstrip())


@flow.command(name='test')
@click.argument('flow_file', type=click.Path(exists=True, path_type=Path))
def test_flow(flow_file: Path):
    """Dry-run a flow without sending anything."""
    session = _load(flow_file)
    result = session.dry_run()

    if not result.success:
        _fail(f"Test failed: {result.error}")

    click.echo(
        f"✅ Flow validated successfully. "
        f"{result.nodes_processed} nodes would be processed ({result.execution_id})"
    )
