"""Map flow graphs to and from stored automation records."""

from typing import Optional, Union

from automation_flows.flow.graph import FlowGraph, deserialize_graph, serialize_graph
from automation_flows.flow.trigger import resolve
from automation_flows.storage.records import Automation, AutomationDraft, AutomationUpdate


def to_record(
    name: str,
    graph: FlowGraph,
    automation_id: Optional[str] = None,
    description: Optional[str] = None,
    reject_multiple_triggers: bool = False,
) -> Union[AutomationDraft, AutomationUpdate]:
    """Build the record to persist for a flow.

    Without ``automation_id`` this is a new, inactive draft. With one it is
    an update that leaves ``is_active`` untouched.
    """
    trigger = resolve(graph, reject_multiple=reject_multiple_triggers)
    flow_data = serialize_graph(graph)

    if automation_id is None:
        return AutomationDraft(
            name=name,
            description=description,
            trigger_type=trigger.trigger_type,
            trigger_config=trigger.trigger_config,
            flow_data=flow_data,
            is_active=False,
        )

    return AutomationUpdate(
        id=automation_id,
        name=name,
        description=description,
        trigger_type=trigger.trigger_type,
        trigger_config=trigger.trigger_config,
        flow_data=flow_data,
    )


def from_record(automation: Automation) -> FlowGraph:
    return deserialize_graph(automation.flow_data)
