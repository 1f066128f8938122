"""
Identifier-addressed operations over the condition forest.

The forest is a list of root ConditionNodes. Nodes are immutable: every edit
returns a new forest in which the nodes on the path from the root to the edited
node are new objects and every other subtree is shared with the input. When the
target id is absent the input forest object itself is returned.
"""

import logging
from typing import Any, Callable, Iterator, Optional, Sequence

from backend.exceptions import LookupMiss, ValidationRejection
from backend.models.builder import NodeIdFactory
from shared.schemas.decision_tree import ConditionNode

logger = logging.getLogger(__name__)

Forest = list[ConditionNode]
Transform = Callable[[ConditionNode], ConditionNode]

TERMINAL_CHILD_MESSAGE = "Cannot add child nodes to nodes with result actions. Result actions are terminal."


def new_node(node_id: str, parameter: str = "") -> ConditionNode:
    """An empty condition: unset parameter (unless given), equals, no value, no actions."""
    return ConditionNode(id=node_id, parameter=parameter)


def replace(node: ConditionNode, **changes: Any) -> ConditionNode:
    """Copy of `node` with the given fields replaced (field names, not aliases)."""
    return node.model_copy(update=changes)


# -----------------------------------------------------------------------------
# Lookup
# -----------------------------------------------------------------------------


def iter_nodes(forest: Sequence[ConditionNode]) -> Iterator[ConditionNode]:
    """Depth-first, pre-order walk over every node of the forest."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(forest: Sequence[ConditionNode], node_id: str) -> Optional[ConditionNode]:
    for node in iter_nodes(forest):
        if node.id == node_id:
            return node
    return None


def get_node(forest: Sequence[ConditionNode], node_id: str) -> ConditionNode:
    """Strict lookup; raises LookupMiss."""
    node = find_node(forest, node_id)
    if node is None:
        raise LookupMiss(node_id)
    return node


def node_ids(forest: Sequence[ConditionNode]) -> set[str]:
    return {node.id for node in iter_nodes(forest)}


def find_path(forest: Sequence[ConditionNode], node_id: str) -> Optional[list[str]]:
    """Ids from the root down to `node_id` (inclusive), or None."""
    stack: list[tuple[ConditionNode, list[str]]] = [(root, [root.id]) for root in reversed(forest)]
    while stack:
        node, path = stack.pop()
        if node.id == node_id:
            return path
        for child in reversed(node.children):
            stack.append((child, path + [child.id]))
    return None


# -----------------------------------------------------------------------------
# Mutation
# -----------------------------------------------------------------------------


def _transform_subtree(node: ConditionNode, target_id: str, transform: Transform) -> Optional[ConditionNode]:
    """New subtree with the target transformed, or None if the target is not below `node`."""
    if node.id == target_id:
        return transform(node)
    for index, child in enumerate(node.children):
        replaced = _transform_subtree(child, target_id, transform)
        if replaced is not None:
            if replaced is child:
                return node
            children = list(node.children)
            children[index] = replaced
            return replace(node, children=children)
    return None


def find_and_transform(forest: Forest, target_id: str, transform: Transform) -> Forest:
    """
    Apply `transform` to the node with `target_id` and return the new forest.

    Returns `forest` unchanged (same object) if the id is absent or the
    transform returns its input. Exceptions raised by `transform` propagate
    and leave `forest` untouched.
    """
    for index, root in enumerate(forest):
        replaced = _transform_subtree(root, target_id, transform)
        if replaced is None:
            continue
        if replaced is root:
            return forest
        new_forest = list(forest)
        new_forest[index] = replaced
        return new_forest
    logger.debug("find_and_transform: node %s not found", target_id)
    return forest


def _prune(node: ConditionNode, target_id: str) -> ConditionNode:
    kept = []
    changed = False
    for child in node.children:
        if child.id == target_id:
            changed = True
            continue
        pruned = _prune(child, target_id)
        changed = changed or pruned is not child
        kept.append(pruned)
    return replace(node, children=kept) if changed else node


def remove_by_id(forest: Forest, target_id: str) -> Forest:
    """Remove the node with `target_id` and its whole subtree. Roots are removable."""
    if any(root.id == target_id for root in forest):
        return [root for root in forest if root.id != target_id]
    pruned = [_prune(root, target_id) for root in forest]
    if all(new is old for new, old in zip(pruned, forest)):
        logger.debug("remove_by_id: node %s not found", target_id)
        return forest
    return pruned


def _free_child_id(forest: Forest, ids: NodeIdFactory, parent: ConditionNode) -> str:
    taken = node_ids(forest)
    index = len(parent.children)
    candidate = ids.child_id(parent.id, index)
    while candidate in taken:
        index += 1
        candidate = ids.child_id(parent.id, index)
    return candidate


def append_child(forest: Forest, parent_id: str, ids: NodeIdFactory, parameter: str = "") -> Forest:
    """
    Append a fresh child condition to `parent_id`.

    Raises ValidationRejection if the parent is terminal (has result actions).
    Returns `forest` unchanged if the parent does not exist.
    """
    parent = find_node(forest, parent_id)
    if parent is None:
        return forest
    if parent.is_terminal():
        raise ValidationRejection(TERMINAL_CHILD_MESSAGE, node_id=parent_id)
    child = new_node(_free_child_id(forest, ids, parent), parameter=parameter)
    return find_and_transform(
        forest,
        parent_id,
        lambda node: replace(node, children=[*node.children, child]),
    )


def append_root(forest: Forest, ids: NodeIdFactory, parameter: str = "") -> Forest:
    taken = node_ids(forest)
    root_id = ids.root_id()
    while root_id in taken:
        root_id = ids.root_id()
    return [*forest, new_node(root_id, parameter=parameter)]
