"""
Storage collaborator: list/get/create/update/delete for catalog and algorithm resources.

Every call returns a StorageResponse envelope ({success, data | error}); failures
(validation, missing rows, integrity errors) never raise. Deletes are soft.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.exceptions import ParseError, StorageError
from backend.models_db import ActionModel, AlgorithmModel, GlobalParameterModel, TemplateModel
from backend.services.serialization_service import import_algorithm, to_document
from shared.schemas.catalog import Action, AlgorithmRecord, GlobalParameter, Template

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    TEMPLATES = "templates"
    GLOBAL_PARAMETERS = "global-parameters"
    ACTIONS = "actions"
    ALGORITHMS = "algorithms"


class StorageResponse(BaseModel):
    """Result envelope returned by every storage call."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    not_found: bool = Field(False, exclude=True)

    @classmethod
    def ok(cls, data: Any) -> "StorageResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "StorageResponse":
        return cls(success=False, error=error)


class Storage(Protocol):
    """Generic resource store consumed by the builder."""

    def list(self, kind: ResourceKind) -> StorageResponse: ...

    def get(self, kind: ResourceKind, resource_id: str) -> StorageResponse: ...

    def create(self, kind: ResourceKind, body: dict[str, Any]) -> StorageResponse: ...

    def update(self, kind: ResourceKind, resource_id: str, body: dict[str, Any]) -> StorageResponse: ...

    def delete(self, kind: ResourceKind, resource_id: str) -> StorageResponse: ...


# kind -> (ORM model, display name)
_MODELS = {
    ResourceKind.TEMPLATES: (TemplateModel, "Template"),
    ResourceKind.GLOBAL_PARAMETERS: (GlobalParameterModel, "Global parameter"),
    ResourceKind.ACTIONS: (ActionModel, "Action"),
    ResourceKind.ALGORITHMS: (AlgorithmModel, "Algorithm"),
}

_SCHEMAS = {
    ResourceKind.TEMPLATES: Template,
    ResourceKind.GLOBAL_PARAMETERS: GlobalParameter,
    ResourceKind.ACTIONS: Action,
}


def generate_template_code() -> str:
    """Random unique template code."""
    return uuid.uuid4().hex[:12]


def validate_body(kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a resource body and return it in canonical camelCase form.
    Raises pydantic ValidationError or ParseError.
    """
    if kind == ResourceKind.ALGORITHMS:
        document = to_document(import_algorithm(body))
        record = AlgorithmRecord.model_validate(body).model_dump(mode="json", by_alias=True)
        return {**document, **record}
    return _SCHEMAS[kind].model_validate(body).model_dump(mode="json", by_alias=True)


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    where = ".".join(str(p) for p in err.get("loc", ())) or "body"
    return f"{where}: {err.get('msg', 'invalid value')}"


class SqlStorage:
    """Storage backed by the SQLAlchemy session of the current request."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, kind: ResourceKind, resource_id: str):
        model, _ = _MODELS[kind]
        return self.db.query(model).filter(model.id == resource_id).first()

    def _not_found(self, kind: ResourceKind) -> StorageResponse:
        return StorageResponse(success=False, error=f"{_MODELS[kind][1]} not found", not_found=True)

    def list(self, kind: ResourceKind) -> StorageResponse:
        """Active resources, newest first."""
        model, _ = _MODELS[ResourceKind(kind)]
        try:
            rows = (
                self.db.query(model)
                .filter(model.is_active.is_(True))
                .order_by(model.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.exception("list %s failed", kind)
            return StorageResponse.fail(str(e))
        return StorageResponse.ok([row.to_resource() for row in rows])

    def get(self, kind: ResourceKind, resource_id: str) -> StorageResponse:
        kind = ResourceKind(kind)
        row = self._row(kind, resource_id)
        if row is None:
            return self._not_found(kind)
        return StorageResponse.ok(row.to_resource())

    def create(self, kind: ResourceKind, body: dict[str, Any]) -> StorageResponse:
        kind = ResourceKind(kind)
        model, _ = _MODELS[kind]
        body = dict(body)
        if kind == ResourceKind.TEMPLATES:
            body["code"] = generate_template_code()
        try:
            canonical = validate_body(kind, body)
        except ValidationError as e:
            return StorageResponse.fail(_first_error(e))
        except ParseError as e:
            return StorageResponse.fail(e.message)
        row = model(id=uuid.uuid4().hex, **model.columns(canonical))
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("create %s failed: %s", kind.value, e)
            return StorageResponse.fail(str(getattr(e, "orig", e)))
        logger.info("Created %s %s", kind.value, row.id)
        return StorageResponse.ok(row.to_resource())

    def update(self, kind: ResourceKind, resource_id: str, body: dict[str, Any]) -> StorageResponse:
        """Merge `body` over the stored resource, validate, and save."""
        kind = ResourceKind(kind)
        row = self._row(kind, resource_id)
        if row is None:
            return self._not_found(kind)
        merged = {**row.to_resource(), **body}
        try:
            canonical = validate_body(kind, merged)
        except ValidationError as e:
            return StorageResponse.fail(_first_error(e))
        except ParseError as e:
            return StorageResponse.fail(e.message)
        for attr, value in row.columns(canonical).items():
            setattr(row, attr, value)
        try:
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("update %s %s failed: %s", kind.value, resource_id, e)
            return StorageResponse.fail(str(getattr(e, "orig", e)))
        return StorageResponse.ok(row.to_resource())

    def delete(self, kind: ResourceKind, resource_id: str) -> StorageResponse:
        """Soft delete: mark inactive and return the resource."""
        kind = ResourceKind(kind)
        row = self._row(kind, resource_id)
        if row is None:
            return self._not_found(kind)
        row.is_active = False
        try:
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            return StorageResponse.fail(str(getattr(e, "orig", e)))
        logger.info("Deactivated %s %s", kind.value, resource_id)
        return StorageResponse.ok(row.to_resource())


def load_catalogs(storage: Storage) -> tuple[list[Template], list[GlobalParameter]]:
    """Fetch active templates and global parameters as schema objects."""
    templates = storage.list(ResourceKind.TEMPLATES)
    params = storage.list(ResourceKind.GLOBAL_PARAMETERS)
    if not templates.success or not params.success:
        raise StorageError(
            "Could not load catalogs",
            resource_kind="catalogs",
            details={"templates": templates.error, "global_parameters": params.error},
        )
    return (
        [Template.model_validate(t) for t in templates.data],
        [GlobalParameter.model_validate(p) for p in params.data],
    )
