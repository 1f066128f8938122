"""Backend services: catalog, tree store, mutation rules, drops, serialization, storage, sessions."""

from backend.services.assignment_service import accepts, apply_drop
from backend.services.builder_service import BuilderSession, SessionRegistry
from backend.services.catalog_service import (
    PLACEHOLDER_ACTIONS,
    SUB_FACETS,
    find_template,
    list_actions,
    list_parameters,
)
from backend.services.rules_service import (
    RuleViolation,
    add_action,
    add_condition,
    add_root,
    assign_parameter,
    coerce_value,
    remove_action,
    remove_node,
    set_operator,
    set_range_bound,
    set_value,
    validate_forest,
)
from backend.services.serialization_service import (
    export_algorithm,
    export_filename,
    import_algorithm,
    to_document,
)
from backend.services.storage_service import (
    ResourceKind,
    SqlStorage,
    Storage,
    StorageResponse,
    load_catalogs,
)
from backend.services.tree_store import (
    append_child,
    find_and_transform,
    find_node,
    get_node,
    iter_nodes,
    remove_by_id,
)

__all__ = [
    "accepts",
    "apply_drop",
    "BuilderSession",
    "SessionRegistry",
    "PLACEHOLDER_ACTIONS",
    "SUB_FACETS",
    "find_template",
    "list_actions",
    "list_parameters",
    "RuleViolation",
    "add_action",
    "add_condition",
    "add_root",
    "assign_parameter",
    "coerce_value",
    "remove_action",
    "remove_node",
    "set_operator",
    "set_range_bound",
    "set_value",
    "validate_forest",
    "export_algorithm",
    "export_filename",
    "import_algorithm",
    "to_document",
    "ResourceKind",
    "SqlStorage",
    "Storage",
    "StorageResponse",
    "load_catalogs",
    "append_child",
    "find_and_transform",
    "find_node",
    "get_node",
    "iter_nodes",
    "remove_by_id",
]
