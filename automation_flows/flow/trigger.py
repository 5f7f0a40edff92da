# automation_flows/flow/trigger.py
"""Derive an automation's trigger definition from its flow."""

import copy
from typing import Any, Dict, Iterable, List, NamedTuple

import structlog

from automation_flows.errors import FlowValidationError
from automation_flows.flow.graph import FlowGraph

logger = structlog.get_logger(__name__)

DEFAULT_TRIGGER_TYPE = "manual"
KEYWORD_TRIGGER_TYPE = "keyword"


class TriggerDefinition(NamedTuple):
    trigger_type: str
    trigger_config: Dict[str, Any]


def resolve(graph: FlowGraph, reject_multiple: bool = False) -> TriggerDefinition:
    """Use the first trigger node (by position) as the automation's trigger.

    Flows without a trigger node resolve to a manual trigger with an empty
    config, as does a trigger node with no ``triggerType`` set. A set but
    empty ``triggerType`` is kept as is. Additional trigger nodes are
    ignored unless ``reject_multiple`` is set, in which case they are a
    validation error.
    """
    triggers = graph.trigger_nodes()

    if len(triggers) > 1:
        if reject_multiple:
            raise FlowValidationError(
                f"Flow has {len(triggers)} trigger nodes; only one is allowed",
                errors=[f"Extra trigger node: {node.id}" for node in triggers[1:]],
            )
        logger.warning(
            "multiple_trigger_nodes",
            used=triggers[0].id,
            ignored=[node.id for node in triggers[1:]],
        )

    if not triggers:
        return TriggerDefinition(DEFAULT_TRIGGER_TYPE, {})

    config = copy.deepcopy(triggers[0].config)
    trigger_type = config.get("triggerType")
    if trigger_type is None:
        trigger_type = DEFAULT_TRIGGER_TYPE
    return TriggerDefinition(trigger_type, config)


def parse_keywords(value: Any) -> List[str]:
    """Normalise keywords stored as a comma-separated string or a list."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(item) for item in value]
    return [item.strip() for item in items if item and item.strip()]


def match_keyword_triggers(automations: Iterable[Any], message_content: str) -> List[str]:
    """Ids of active keyword automations whose keywords occur in a message.

    Matching is a case-insensitive substring test. This only selects
    candidates; running them is not handled here.
    """
    text = str(message_content or "").lower()
    matched = []

    for automation in automations:
        if not automation.is_active or automation.trigger_type != KEYWORD_TRIGGER_TYPE:
            continue

        keywords = parse_keywords((automation.trigger_config or {}).get("keywords"))
        if any(keyword.lower() in text for keyword in keywords):
            matched.append(automation.id)

    return matched
