"""
Builder engine types.

Wire-level node and algorithm models live in shared.schemas; these are the
engine's own inputs and outputs (catalog options, drop events, id factories).
"""

from backend.models.builder import (
    ActionVocabulary,
    CounterNodeIds,
    DropEvent,
    DropZone,
    ItemKind,
    NodeField,
    NodeIdFactory,
    ParameterOption,
    PositionalNodeIds,
    UuidNodeIds,
    node_id_factory,
)

__all__ = [
    "ActionVocabulary",
    "CounterNodeIds",
    "DropEvent",
    "DropZone",
    "ItemKind",
    "NodeField",
    "NodeIdFactory",
    "ParameterOption",
    "PositionalNodeIds",
    "UuidNodeIds",
    "node_id_factory",
]
