"""
Algorithm document and condition-node wire schemas (pydantic v2).

Used by the backend (builder engine, storage, API) and by the authoring UI.
Field aliases keep the camelCase JSON shape of exported algorithm files.
"""

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

DOCUMENT_VERSION = "1.0"


class Operator(str, Enum):
    """Comparison applied to a node's parameter."""

    EQUALS = "equals"
    RANGE = "range"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    DEFAULT = "default"
    STATE = "state"


class NodeState(str, Enum):
    """Enumerated values accepted by the `state` operator."""

    SUPRA = "supra"
    NORMAL = "normal"
    EXTRA = "extra"


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class RangeValue(BaseModel):
    """Inclusive bounds for the `range` operator. An empty half means unset."""

    min: str = Field("", description="Lower bound as entered by the operator")
    max: str = Field("", description="Upper bound as entered by the operator")

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("min", "max", mode="before")
    @classmethod
    def bound_text(cls, value: Any) -> Any:
        return _as_text(value)


NodeValue = Union[RangeValue, str]


class ConditionNode(BaseModel):
    """
    One condition in the decision tree.

    Nodes are immutable; edits produce new nodes (see backend.services.tree_store).
    A node carrying result actions is terminal and never has children.
    """

    id: str = Field(..., min_length=1, description="Unique node ID within the forest")
    type: Literal["condition"] = Field("condition", description="Node type (always 'condition')")
    parameter: str = Field("", description="Addressable parameter value; empty means unset")
    operator: Operator = Field(Operator.EQUALS, description="Comparison operator")
    value: NodeValue = Field("", description="Scalar text, {min, max} for range, or a state name")
    process_actions: list[str] = Field(
        default_factory=list,
        alias="processActions",
        description="Non-terminal actions, insertion ordered, no duplicates",
    )
    result_actions: list[str] = Field(
        default_factory=list,
        alias="resultActions",
        description="Terminal actions, insertion ordered, no duplicates",
    )
    children: list["ConditionNode"] = Field(default_factory=list, description="Ordered child conditions")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("value", mode="before")
    @classmethod
    def value_text(cls, value: Any) -> Any:
        return _as_text(value)

    @model_validator(mode="after")
    def check_invariants(self) -> "ConditionNode":
        if self.result_actions and self.children:
            raise ValueError(f"Node '{self.id}' has result actions and children; result actions are terminal")
        for label, actions in (("process", self.process_actions), ("result", self.result_actions)):
            if len(set(actions)) != len(actions):
                raise ValueError(f"Node '{self.id}' lists a duplicate {label} action")
        return self

    def is_terminal(self) -> bool:
        return bool(self.result_actions)


ConditionNode.model_rebuild()


def normalize_tree(tree: Any) -> Any:
    """Upgrade a legacy single-root `tree` to a one-element list of roots."""
    if isinstance(tree, (dict, ConditionNode)):
        return [tree]
    return tree


class Algorithm(BaseModel):
    """Persisted / exported algorithm: a named forest built against a template."""

    name: str = Field(..., description="Human-readable algorithm name")
    template: str = Field(..., description="Code of the template the tree was built against")
    tree: list[ConditionNode] = Field(default_factory=list, description="Root conditions (forest)")
    description: str = Field("", description="Free-form description")
    version: str = Field(DOCUMENT_VERSION, description="Document version")

    model_config = {"populate_by_name": True}

    @field_validator("tree", mode="before")
    @classmethod
    def upgrade_legacy_tree(cls, value: Any) -> Any:
        return normalize_tree(value)

    @field_validator("description", mode="before")
    @classmethod
    def description_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def check_unique_ids(self) -> "Algorithm":
        seen: set[str] = set()
        stack = list(self.tree)
        while stack:
            node = stack.pop()
            if node.id in seen:
                raise ValueError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
            stack.extend(node.children)
        return self
