"""
Engine-side types for the decision-tree builder.

Catalog options, drag-and-drop events, editable node fields and the node id
factories injected into node construction.
"""

import itertools
import uuid
from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from shared.schemas.catalog import ActionKind


# -----------------------------------------------------------------------------
# Catalog options
# -----------------------------------------------------------------------------


class ParameterOption(BaseModel):
    """An addressable parameter value offered to the builder."""

    value: str = Field(..., description="Raw global name or '<parameter>.<facet>'")
    label: str = Field(..., description="Display label")


class ActionVocabulary(BaseModel):
    """Process and result action names available for a template."""

    process: list[str] = Field(default_factory=list)
    result: list[str] = Field(default_factory=list)
    process_is_placeholder: bool = Field(
        False, description="True when `process` is the static fallback, not the template's own actions"
    )
    result_is_placeholder: bool = Field(
        False, description="True when `result` is the static fallback, not the template's own actions"
    )

    def for_kind(self, kind: ActionKind) -> list[str]:
        return self.process if kind == ActionKind.PROCESS else self.result


# -----------------------------------------------------------------------------
# Assignment (drag-and-drop) events
# -----------------------------------------------------------------------------


class ItemKind(str, Enum):
    """Kind of item being dragged."""

    PARAMETER = "parameter"
    ACTION = "action"


class DropZone(str, Enum):
    """Slot of a node an item was dropped onto."""

    PARAMETER = "parameter"
    PROCESS = "process"
    RESULT = "result"
    CHILDREN = "children"


class DropEvent(BaseModel):
    """An item dropped onto a node slot, as captured by the UI."""

    item_kind: ItemKind
    value: str = Field(..., min_length=1)
    action_kind: Optional[ActionKind] = None
    target_id: str = Field(..., min_length=1)
    drop_zone: DropZone


# -----------------------------------------------------------------------------
# Editable node fields
# -----------------------------------------------------------------------------


class NodeField(str, Enum):
    PARAMETER = "parameter"
    OPERATOR = "operator"
    VALUE = "value"
    MIN = "min"
    MAX = "max"


# -----------------------------------------------------------------------------
# Node id factories
# -----------------------------------------------------------------------------


class NodeIdFactory(Protocol):
    """Produces ids for new nodes; ids must never repeat within a session."""

    def root_id(self) -> str: ...

    def child_id(self, parent_id: str, index: int) -> str: ...


class UuidNodeIds:
    """Random ids (default)."""

    def root_id(self) -> str:
        return f"node-{uuid.uuid4().hex[:12]}"

    def child_id(self, parent_id: str, index: int) -> str:
        return f"node-{uuid.uuid4().hex[:12]}"


class CounterNodeIds:
    """Monotonic ids: node-1, node-2, ... Deterministic for tests and fixtures."""

    def __init__(self, start: int = 1, prefix: str = "node"):
        self._counter = itertools.count(start)
        self.prefix = prefix

    def root_id(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"

    def child_id(self, parent_id: str, index: int) -> str:
        return f"{self.prefix}-{next(self._counter)}"


class PositionalNodeIds:
    """
    Legacy scheme: root-<n> for roots, <parent>-child-<index> for children.

    Compatible with documents produced by the legacy web builder. Child ids
    depend on sibling position, so an id can come back after its node is deleted.
    """

    def __init__(self) -> None:
        self._roots = itertools.count(1)

    def root_id(self) -> str:
        return f"root-{next(self._roots)}"

    def child_id(self, parent_id: str, index: int) -> str:
        return f"{parent_id}-child-{index}"


def node_id_factory(kind: str = "uuid") -> NodeIdFactory:
    """Build a factory by name: 'uuid', 'counter' or 'positional'."""
    kind = (kind or "uuid").strip().lower()
    if kind == "counter":
        return CounterNodeIds()
    if kind == "positional":
        return PositionalNodeIds()
    if kind == "uuid":
        return UuidNodeIds()
    raise ValueError(f"Unknown node id scheme '{kind}'")
