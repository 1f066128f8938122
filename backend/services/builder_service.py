"""
Algorithm builder session: one operator's in-progress algorithm.

Holds the selected template, name, description and condition forest, plus the
catalogs the tree is built against. Every edit goes through rules_service or
assignment_service; imports and loads replace the whole state or nothing.
"""

import logging
import os
import uuid
from typing import Any, Optional, Sequence

from backend.exceptions import LookupMiss, ParseError, StorageError, ValidationRejection
from backend.models.builder import (
    ActionVocabulary,
    DropEvent,
    NodeField,
    NodeIdFactory,
    ParameterOption,
    UuidNodeIds,
    node_id_factory,
)
from backend.services import assignment_service, catalog_service, rules_service, tree_store
from backend.services.serialization_service import export_algorithm, export_filename, import_algorithm, to_document
from backend.services.storage_service import ResourceKind, Storage
from backend.services.tree_store import Forest
from backend.utils.logging import log_transfer
from shared.schemas.catalog import ActionKind, GlobalParameter, Template
from shared.schemas.decision_tree import DOCUMENT_VERSION, Algorithm, ConditionNode

logger = logging.getLogger(__name__)

NODE_ID_SCHEME = os.getenv("LABTREE_NODE_IDS", "uuid")

SELECT_TEMPLATE_MESSAGE = "Please select a template first."
INCOMPLETE_MESSAGE = "Please fill in all required fields and create at least one condition."


class BuilderSession:
    """Editing state for one algorithm."""

    def __init__(
        self,
        templates: Sequence[Template] = (),
        global_parameters: Sequence[GlobalParameter] = (),
        ids: Optional[NodeIdFactory] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.ids: NodeIdFactory = ids or UuidNodeIds()
        self.templates: list[Template] = list(templates)
        self.global_parameters: list[GlobalParameter] = list(global_parameters)
        self.template_code = ""
        self.name = ""
        self.description = ""
        self.roots: Forest = []
        self.algorithm_id: Optional[str] = None

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def set_catalogs(self, templates: Sequence[Template], global_parameters: Sequence[GlobalParameter]) -> None:
        self.templates = list(templates)
        self.global_parameters = list(global_parameters)

    @property
    def template(self) -> Optional[Template]:
        return catalog_service.find_template(self.templates, self.template_code)

    def available_parameters(self) -> list[ParameterOption]:
        return catalog_service.list_parameters(self.template, self.global_parameters)

    def available_actions(self) -> ActionVocabulary:
        return catalog_service.list_actions(self.template)

    # -------------------------------------------------------------------------
    # Session-level edits
    # -------------------------------------------------------------------------

    def select_template(self, code: str) -> None:
        """Bind a template and start over with one empty root; '' unbinds and clears the tree."""
        self.template_code = code or ""
        self.roots = rules_service.add_root([], self.ids) if self.template_code else []
        logger.info("Session %s: template set to %r", self.id, self.template_code)

    def set_meta(self, name: Optional[str] = None, description: Optional[str] = None) -> None:
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description

    def add_root(self) -> ConditionNode:
        if not self.template_code:
            raise ValidationRejection(SELECT_TEMPLATE_MESSAGE)
        self.roots = rules_service.add_root(self.roots, self.ids)
        return self.roots[-1]

    def clear(self) -> None:
        self.template_code = ""
        self.name = ""
        self.description = ""
        self.roots = []
        self.algorithm_id = None

    # -------------------------------------------------------------------------
    # Node edits
    # -------------------------------------------------------------------------

    def node(self, node_id: str) -> ConditionNode:
        return tree_store.get_node(self.roots, node_id)

    def update_field(self, node_id: str, field: NodeField, value: Any) -> None:
        """Edit one node field: parameter, operator, value, or a range bound."""
        field = NodeField(field)
        if field == NodeField.PARAMETER:
            self.roots = rules_service.assign_parameter(self.roots, node_id, "" if value is None else str(value))
        elif field == NodeField.OPERATOR:
            self.roots = rules_service.set_operator(self.roots, node_id, value)
        elif field == NodeField.VALUE:
            self.roots = rules_service.set_value(self.roots, node_id, value)
        else:
            self.roots = rules_service.set_range_bound(self.roots, node_id, field.value, value)

    def add_condition(self, parent_id: str) -> None:
        self.roots = rules_service.add_condition(self.roots, parent_id, self.ids)

    def remove_node(self, node_id: str) -> None:
        self.roots = rules_service.remove_node(self.roots, node_id)

    def add_action(self, node_id: str, kind: ActionKind, name: str) -> None:
        vocabulary = self.available_actions().for_kind(ActionKind(kind))
        self.roots = rules_service.add_action(self.roots, node_id, kind, name, vocabulary=vocabulary)

    def remove_action(self, node_id: str, kind: ActionKind, name: str) -> None:
        self.roots = rules_service.remove_action(self.roots, node_id, kind, name)

    def drop(self, event: DropEvent) -> None:
        """Apply a drag-and-drop assignment restricted to the current catalog."""
        parameters = catalog_service.parameter_values(self.available_parameters())
        self.roots = assignment_service.apply_drop(
            self.roots,
            event,
            self.ids,
            parameters=parameters,
            actions=self.available_actions(),
        )

    def violations(self) -> list[rules_service.RuleViolation]:
        params = [option.value for option in self.available_parameters()]
        return rules_service.validate_forest(self.roots, parameters=params)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def is_complete(self) -> bool:
        return bool(self.name.strip() and self.template_code and self.roots)

    def to_algorithm(self) -> Algorithm:
        return Algorithm(
            name=self.name,
            template=self.template_code,
            tree=self.roots,
            description=self.description,
            version=DOCUMENT_VERSION,
        )

    def _require_complete(self) -> None:
        if not self.is_complete():
            raise ValidationRejection(INCOMPLETE_MESSAGE)

    def export(self) -> tuple[str, str]:
        """Return (filename, JSON text) for download."""
        self._require_complete()
        algorithm = self.to_algorithm()
        text = export_algorithm(algorithm)
        log_transfer(logger, "export", algorithm.name, extra={"roots": len(algorithm.tree)})
        return export_filename(algorithm.name), text

    def replace_with(self, algorithm: Algorithm, algorithm_id: Optional[str] = None) -> None:
        self.name = algorithm.name
        self.description = algorithm.description or ""
        self.template_code = algorithm.template
        self.roots = list(algorithm.tree)
        self.algorithm_id = algorithm_id

    def import_text(self, text: Any) -> Algorithm:
        """Replace the session with an imported document; on ParseError nothing changes."""
        try:
            algorithm = import_algorithm(text)
        except ParseError as e:
            log_transfer(logger, "import", None, success=False, error=e.message)
            raise
        self.replace_with(algorithm)
        log_transfer(logger, "import", algorithm.name, extra={"roots": len(algorithm.tree)})
        return algorithm

    def save(self, storage: Storage) -> dict[str, Any]:
        """Create the stored algorithm on first save, update it afterwards."""
        self._require_complete()
        body = to_document(self.to_algorithm())
        if self.algorithm_id:
            response = storage.update(ResourceKind.ALGORITHMS, self.algorithm_id, body)
        else:
            response = storage.create(ResourceKind.ALGORITHMS, body)
        if not response.success:
            log_transfer(logger, "save", self.name, success=False, error=response.error)
            raise StorageError(f"Error saving algorithm: {response.error}", resource_kind=ResourceKind.ALGORITHMS.value)
        self.algorithm_id = response.data["id"]
        log_transfer(logger, "save", self.name, extra={"algorithm_id": self.algorithm_id})
        return response.data

    def load(self, storage: Storage, algorithm_id: str) -> Algorithm:
        """Replace the session with a stored algorithm; on failure nothing changes."""
        response = storage.get(ResourceKind.ALGORITHMS, algorithm_id)
        if not response.success:
            log_transfer(logger, "load", None, success=False, error=response.error)
            raise StorageError(f"Error loading algorithm: {response.error}", resource_kind=ResourceKind.ALGORITHMS.value)
        algorithm = import_algorithm(response.data)
        self.replace_with(algorithm, algorithm_id=algorithm_id)
        log_transfer(logger, "load", algorithm.name, extra={"algorithm_id": algorithm_id})
        return algorithm

    def snapshot(self) -> dict[str, Any]:
        """Session state for the API: document fields plus ids and catalog flags."""
        actions = self.available_actions()
        return {
            "session_id": self.id,
            "algorithm_id": self.algorithm_id,
            "name": self.name,
            "template": self.template_code,
            "description": self.description,
            "version": DOCUMENT_VERSION,
            "tree": [node.model_dump(mode="json", by_alias=True) for node in self.roots],
            "complete": self.is_complete(),
            "placeholder_actions": {
                "process": actions.process_is_placeholder,
                "result": actions.result_is_placeholder,
            },
        }


class SessionRegistry:
    """In-memory builder sessions (single-user editing; no locking)."""

    def __init__(self, id_scheme: str = NODE_ID_SCHEME):
        self.id_scheme = id_scheme
        self._sessions: dict[str, BuilderSession] = {}

    def create(
        self,
        templates: Sequence[Template] = (),
        global_parameters: Sequence[GlobalParameter] = (),
    ) -> BuilderSession:
        session = BuilderSession(templates, global_parameters, ids=node_id_factory(self.id_scheme))
        self._sessions[session.id] = session
        logger.info("Opened builder session %s", session.id)
        return session

    def get(self, session_id: str) -> BuilderSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise LookupMiss(session_id, kind="Session")
        return session

    def close(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise LookupMiss(session_id, kind="Session")

    def __len__(self) -> int:
        return len(self._sessions)
