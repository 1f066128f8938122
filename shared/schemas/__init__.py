"""Shared schemas for the lab algorithm builder (backend and frontend contract)."""

from shared.schemas.catalog import (
    Action,
    ActionKind,
    AlgorithmRecord,
    GlobalParameter,
    ParameterType,
    SubParameter,
    Template,
    TemplateAction,
    TemplateParameter,
)
from shared.schemas.decision_tree import (
    DOCUMENT_VERSION,
    Algorithm,
    ConditionNode,
    NodeState,
    NodeValue,
    Operator,
    RangeValue,
    normalize_tree,
)

__all__ = [
    "DOCUMENT_VERSION",
    "Action",
    "ActionKind",
    "Algorithm",
    "AlgorithmRecord",
    "ConditionNode",
    "GlobalParameter",
    "NodeState",
    "NodeValue",
    "Operator",
    "ParameterType",
    "RangeValue",
    "SubParameter",
    "Template",
    "TemplateAction",
    "TemplateParameter",
    "normalize_tree",
]
