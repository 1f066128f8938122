"""
SQLAlchemy ORM models for the lab algorithm builder (persisted in SQLite).

Catalog entries (templates, global parameters, actions) and saved algorithms.
Nested structures are stored as JSON columns. Rows are soft-deleted via is_active.
Each model maps to and from its camelCase resource dict.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.database import Base


class ResourceMixin:
    """Columns and timestamps shared by every stored resource."""

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def _stamps(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class TemplateModel(ResourceMixin, Base):
    """Template: parameters and actions available to the builder."""

    __tablename__ = "templates"

    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # list of {name, subParameters, states, defaultRange}
    parameters: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # list of {name, type, parameters}
    actions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def to_resource(self) -> dict[str, Any]:
        return {
            **self._stamps(),
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "parameters": self.parameters or [],
            "actions": self.actions or [],
        }

    @staticmethod
    def columns(body: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": body["name"],
            "code": body["code"],
            "description": body.get("description", ""),
            "parameters": body.get("parameters", []),
            "actions": body.get("actions", []),
            "is_active": body.get("isActive", True),
        }


class GlobalParameterModel(ResourceMixin, Base):
    """Parameter shared by all templates."""

    __tablename__ = "global_parameters"

    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(256), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="text")  # text, number, boolean, date
    default_value: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_resource(self) -> dict[str, Any]:
        return {
            **self._stamps(),
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "defaultValue": self.default_value,
            "isRequired": self.is_required,
        }

    @staticmethod
    def columns(body: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": body["name"],
            "label": body["label"],
            "type": body.get("type", "text"),
            "default_value": body.get("defaultValue", ""),
            "is_required": body.get("isRequired", False),
            "is_active": body.get("isActive", True),
        }


class ActionModel(ResourceMixin, Base):
    """Standalone action catalog entry."""

    __tablename__ = "actions"

    name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="process")  # process, result
    parameters: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def to_resource(self) -> dict[str, Any]:
        return {
            **self._stamps(),
            "name": self.name,
            "type": self.type,
            "parameters": self.parameters or [],
        }

    @staticmethod
    def columns(body: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": body["name"],
            "type": body.get("type", "process"),
            "parameters": body.get("parameters", []),
            "is_active": body.get("isActive", True),
        }


class AlgorithmModel(ResourceMixin, Base):
    """Saved algorithm: document fields plus the condition forest as JSON."""

    __tablename__ = "algorithms"

    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    template: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    version: Mapped[str] = mapped_column(String(32), nullable=False, default="1.0")
    created_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, default="system")
    # list of root ConditionNode dicts (camelCase wire shape)
    tree_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def to_resource(self) -> dict[str, Any]:
        return {
            **self._stamps(),
            "name": self.name,
            "template": self.template,
            "tree": self.tree_json or [],
            "description": self.description,
            "version": self.version,
            "createdBy": self.created_by,
        }

    @staticmethod
    def columns(body: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": body["name"],
            "template": body["template"],
            "tree_json": body.get("tree", []),
            "description": body.get("description", ""),
            "version": body.get("version", "1.0"),
            "created_by": body.get("createdBy", "system"),
            "is_active": body.get("isActive", True),
        }
