"""
Mutation rules for the condition forest.

Every edit the builder makes goes through this module. Each operation takes a
forest and returns the resulting forest; a rejected edit raises
ValidationRejection and the input forest is left as it was. Edits aimed at an
unknown node id, and duplicate action assignments, are silent no-ops.

Also provides forest-wide validation (terminal closure, duplicates, value
shapes) for documents assembled outside the builder.
"""

import logging
from typing import Any, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError

from backend.exceptions import ValidationRejection
from backend.models.builder import NodeIdFactory
from backend.services import tree_store
from backend.services.tree_store import Forest
from backend.utils.logging import log_mutation
from shared.schemas.catalog import ActionKind
from shared.schemas.decision_tree import ConditionNode, NodeState, NodeValue, Operator, RangeValue

logger = logging.getLogger(__name__)

TERMINAL_RESULT_MESSAGE = (
    "Cannot add result actions to a node that has child conditions. Remove its children first."
)
STATE_VALUES = tuple(state.value for state in NodeState)


# -----------------------------------------------------------------------------
# Value shape (tagged by operator)
# -----------------------------------------------------------------------------


def coerce_value(operator: Operator, raw: Any, node_id: Optional[str] = None) -> NodeValue:
    """
    Return the value variant legal for `operator`.

    range -> RangeValue (missing half is "", keys other than min/max and
    non-scalar bounds are rejected), state -> a NodeState value or "",
    default -> "", everything else -> free-form text.
    """
    operator = Operator(operator)
    if operator == Operator.RANGE:
        if isinstance(raw, RangeValue):
            return raw
        if isinstance(raw, dict):
            try:
                return RangeValue.model_validate(raw)
            except ValidationError as e:
                raise ValidationRejection(
                    "Range bounds must be text or numbers under 'min' and 'max'.",
                    node_id=node_id,
                    details={"value": {str(k): repr(v) for k, v in raw.items()}},
                ) from e
        if raw is None or raw == "":
            return RangeValue()
        raise ValidationRejection("Range conditions need a {min, max} value.", node_id=node_id)
    if operator == Operator.DEFAULT:
        return ""
    if isinstance(raw, (RangeValue, dict)):
        raise ValidationRejection(f"Operator '{operator.value}' takes a single value, not a range.", node_id=node_id)
    text = "" if raw is None else str(raw.value if isinstance(raw, NodeState) else raw)
    if operator == Operator.STATE and text and text not in STATE_VALUES:
        raise ValidationRejection(
            f"State must be one of: {', '.join(STATE_VALUES)}.",
            node_id=node_id,
            details={"value": text},
        )
    return text


def carry_value(operator: Operator, current: NodeValue) -> NodeValue:
    """Re-shape an existing value for a new operator, dropping what does not fit."""
    if operator == Operator.RANGE:
        return current if isinstance(current, RangeValue) else RangeValue()
    if operator == Operator.DEFAULT or isinstance(current, RangeValue):
        return ""
    if operator == Operator.STATE and current not in STATE_VALUES:
        return ""
    return current


# -----------------------------------------------------------------------------
# Field edits
# -----------------------------------------------------------------------------


def assign_parameter(forest: Forest, node_id: str, parameter: str) -> Forest:
    """Set the node's parameter. Always permitted."""
    result = tree_store.find_and_transform(
        forest, node_id, lambda node: tree_store.replace(node, parameter=parameter)
    )
    log_mutation(logger, "assign_parameter", node_id, applied=result is not forest, extra={"parameter": parameter})
    return result


def set_operator(forest: Forest, node_id: str, operator: Union[Operator, str]) -> Forest:
    """Change the operator and re-shape the value to the new operator's variant."""
    try:
        operator = Operator(operator)
    except ValueError as e:
        raise ValidationRejection(f"Unknown operator '{operator}'.", node_id=node_id) from e

    def change(node: ConditionNode) -> ConditionNode:
        return tree_store.replace(node, operator=operator, value=carry_value(operator, node.value))

    result = tree_store.find_and_transform(forest, node_id, change)
    log_mutation(logger, "set_operator", node_id, applied=result is not forest, extra={"operator": operator.value})
    return result


def set_value(forest: Forest, node_id: str, value: Any) -> Forest:
    """Set the value, validated against the node's current operator."""

    def change(node: ConditionNode) -> ConditionNode:
        return tree_store.replace(node, value=coerce_value(node.operator, value, node_id=node.id))

    try:
        result = tree_store.find_and_transform(forest, node_id, change)
    except ValidationRejection as e:
        log_mutation(logger, "set_value", node_id, applied=False, reason=e.message)
        raise
    log_mutation(logger, "set_value", node_id, applied=result is not forest)
    return result


def set_range_bound(forest: Forest, node_id: str, bound: str, text: str) -> Forest:
    """Edit one half of a range value, keeping the other half."""
    if bound not in ("min", "max"):
        raise ValueError(f"bound must be 'min' or 'max', got {bound!r}")

    def change(node: ConditionNode) -> ConditionNode:
        if node.operator != Operator.RANGE:
            raise ValidationRejection("Only range conditions have min/max bounds.", node_id=node.id)
        current = node.value if isinstance(node.value, RangeValue) else RangeValue()
        return tree_store.replace(node, value=current.model_copy(update={bound: "" if text is None else str(text)}))

    try:
        result = tree_store.find_and_transform(forest, node_id, change)
    except ValidationRejection as e:
        log_mutation(logger, "set_range_bound", node_id, applied=False, reason=e.message)
        raise
    log_mutation(logger, "set_range_bound", node_id, applied=result is not forest, extra={"bound": bound})
    return result


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------


def add_action(
    forest: Forest,
    node_id: str,
    kind: Union[ActionKind, str],
    name: str,
    vocabulary: Optional[Sequence[str]] = None,
) -> Forest:
    """
    Add an action to the node's process or result actions.

    Duplicates are ignored. A result action on a node with children is
    rejected (terminal closure). When `vocabulary` is given the name must be in it.
    """
    kind = ActionKind(kind)
    if vocabulary is not None and name not in vocabulary:
        raise ValidationRejection(
            f"'{name}' is not an available {kind.value} action.",
            node_id=node_id,
            details={"action": name},
        )

    def change(node: ConditionNode) -> ConditionNode:
        if kind == ActionKind.PROCESS:
            if name in node.process_actions:
                return node
            return tree_store.replace(node, process_actions=[*node.process_actions, name])
        if name in node.result_actions:
            return node
        if node.children:
            raise ValidationRejection(TERMINAL_RESULT_MESSAGE, node_id=node.id)
        return tree_store.replace(node, result_actions=[*node.result_actions, name])

    try:
        result = tree_store.find_and_transform(forest, node_id, change)
    except ValidationRejection as e:
        log_mutation(logger, "add_action", node_id, applied=False, reason=e.message, extra={"action": name})
        raise
    log_mutation(logger, "add_action", node_id, applied=result is not forest, extra={"kind": kind.value, "action": name})
    return result


def remove_action(forest: Forest, node_id: str, kind: Union[ActionKind, str], name: str) -> Forest:
    """Remove an action if present. Always permitted."""
    kind = ActionKind(kind)
    attr = "process_actions" if kind == ActionKind.PROCESS else "result_actions"

    def change(node: ConditionNode) -> ConditionNode:
        actions = getattr(node, attr)
        if name not in actions:
            return node
        kept = list(actions)
        kept.remove(name)
        return tree_store.replace(node, **{attr: kept})

    result = tree_store.find_and_transform(forest, node_id, change)
    log_mutation(logger, "remove_action", node_id, applied=result is not forest, extra={"kind": kind.value, "action": name})
    return result


# -----------------------------------------------------------------------------
# Structure
# -----------------------------------------------------------------------------


def add_condition(forest: Forest, parent_id: str, ids: NodeIdFactory, parameter: str = "") -> Forest:
    """Append a child condition; rejected when the parent is terminal."""
    try:
        result = tree_store.append_child(forest, parent_id, ids, parameter=parameter)
    except ValidationRejection as e:
        log_mutation(logger, "add_condition", parent_id, applied=False, reason=e.message)
        raise
    log_mutation(logger, "add_condition", parent_id, applied=result is not forest, extra={"parameter": parameter})
    return result


def add_root(forest: Forest, ids: NodeIdFactory) -> Forest:
    result = tree_store.append_root(forest, ids)
    log_mutation(logger, "add_root", result[-1].id)
    return result


def remove_node(forest: Forest, node_id: str) -> Forest:
    """Remove a node and its subtree. Always permitted."""
    result = tree_store.remove_by_id(forest, node_id)
    log_mutation(logger, "remove_node", node_id, applied=result is not forest)
    return result


# -----------------------------------------------------------------------------
# Forest validation
# -----------------------------------------------------------------------------


class RuleViolation(BaseModel):
    """A single rule violation found in a forest."""

    code: str = Field(..., description="Violation code (e.g. terminal_has_children)")
    message: str = Field(..., description="Human-readable message")
    node_id: Optional[str] = Field(None, description="Relevant node ID if applicable")
    path: Optional[list[str]] = Field(None, description="Path of node IDs from the root")


def validate_forest(forest: Sequence[ConditionNode], parameters: Optional[Sequence[str]] = None) -> list[RuleViolation]:
    """
    Check: unique ids, terminal closure, duplicate actions, value shape per
    operator and (when `parameters` is given) unknown or unset parameters.
    """
    errors: list[RuleViolation] = []
    seen: set[str] = set()
    known = set(parameters) if parameters is not None else None
    stack: list[tuple[ConditionNode, list[str]]] = [(root, [root.id]) for root in reversed(forest)]

    while stack:
        node, path = stack.pop()
        if node.id in seen:
            errors.append(RuleViolation(code="duplicate_id", message=f"Node id '{node.id}' is used more than once", node_id=node.id, path=path))
        seen.add(node.id)
        if node.result_actions and node.children:
            errors.append(
                RuleViolation(
                    code="terminal_has_children",
                    message=f"Node '{node.id}' has result actions and {len(node.children)} child condition(s)",
                    node_id=node.id,
                    path=path,
                )
            )
        for label, actions in (("process", node.process_actions), ("result", node.result_actions)):
            if len(set(actions)) != len(actions):
                errors.append(
                    RuleViolation(code="duplicate_action", message=f"Node '{node.id}' repeats a {label} action", node_id=node.id, path=path)
                )
        try:
            if coerce_value(node.operator, node.value, node_id=node.id) != node.value:
                raise ValidationRejection(f"Stale value for operator '{node.operator.value}'", node_id=node.id)
        except ValidationRejection as e:
            errors.append(RuleViolation(code="value_shape", message=e.message, node_id=node.id, path=path))
        if known is not None:
            if not node.parameter:
                errors.append(RuleViolation(code="unset_parameter", message=f"Node '{node.id}' has no parameter", node_id=node.id, path=path))
            elif node.parameter not in known:
                errors.append(
                    RuleViolation(
                        code="unknown_parameter",
                        message=f"Node '{node.id}' references unknown parameter '{node.parameter}'",
                        node_id=node.id,
                        path=path,
                    )
                )
        for child in reversed(node.children):
            stack.append((child, path + [child.id]))
    return errors
