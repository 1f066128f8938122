"""
Drop routing: turns "item dropped onto node slot" events into rule-checked edits.

Only these combinations do anything:

    drop zone   item        action kind   edit
    parameter   parameter   -             assign_parameter
    process     action      process       add_action(process)
    result      action      result        add_action(result)
    children    parameter   -             add_condition(parameter=value)

Anything else, and any value not offered by the catalog, is ignored.
"""

import logging
from typing import Optional, Sequence

from backend.models.builder import ActionVocabulary, DropEvent, DropZone, ItemKind, NodeIdFactory
from backend.services import rules_service
from backend.services.tree_store import Forest
from backend.utils.logging import log_mutation
from shared.schemas.catalog import ActionKind

logger = logging.getLogger(__name__)

COMPATIBILITY: dict[DropZone, tuple[ItemKind, Optional[ActionKind]]] = {
    DropZone.PARAMETER: (ItemKind.PARAMETER, None),
    DropZone.PROCESS: (ItemKind.ACTION, ActionKind.PROCESS),
    DropZone.RESULT: (ItemKind.ACTION, ActionKind.RESULT),
    DropZone.CHILDREN: (ItemKind.PARAMETER, None),
}


def accepts(event: DropEvent) -> bool:
    """True if the drop zone takes this kind of item."""
    item_kind, action_kind = COMPATIBILITY[event.drop_zone]
    if event.item_kind != item_kind:
        return False
    return action_kind is None or event.action_kind == action_kind


def _in_catalog(
    event: DropEvent,
    parameters: Optional[Sequence[str]],
    actions: Optional[ActionVocabulary],
) -> bool:
    if event.item_kind == ItemKind.PARAMETER:
        return parameters is None or event.value in parameters
    return actions is None or event.value in actions.for_kind(event.action_kind)


def apply_drop(
    forest: Forest,
    event: DropEvent,
    ids: NodeIdFactory,
    parameters: Optional[Sequence[str]] = None,
    actions: Optional[ActionVocabulary] = None,
) -> Forest:
    """
    Route a drop to exactly one rule-checked edit.

    `parameters` / `actions` restrict accepted values to the current catalog
    when given. Raises ValidationRejection only for a compatible drop that
    breaks a tree rule (e.g. a child dropped onto a terminal node).
    """
    if not accepts(event) or not _in_catalog(event, parameters, actions):
        log_mutation(
            logger,
            f"drop:{event.drop_zone.value}",
            event.target_id,
            applied=False,
            extra={"item_kind": event.item_kind.value, "value": event.value},
        )
        return forest

    if event.drop_zone == DropZone.PARAMETER:
        return rules_service.assign_parameter(forest, event.target_id, event.value)
    if event.drop_zone == DropZone.CHILDREN:
        return rules_service.add_condition(forest, event.target_id, ids, parameter=event.value)
    return rules_service.add_action(forest, event.target_id, event.action_kind, event.value)
