"""
Catalog schemas: templates, global parameters and actions.

These are read-only vocabularies for the builder; they are edited through the
CRUD endpoints and consumed by backend.services.catalog_service.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ActionKind(str, Enum):
    """Whether an action continues the branch (process) or closes it (result)."""

    PROCESS = "process"
    RESULT = "result"


class ParameterType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


class SubParameter(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field("text")
    default_value: str = Field("", alias="defaultValue")

    model_config = {"populate_by_name": True}


class DefaultRange(BaseModel):
    min: str = ""
    max: str = ""


class TemplateParameter(BaseModel):
    """A laboratory parameter declared by a template."""

    name: str = Field(..., min_length=1, description="Parameter name (e.g. 'glucose')")
    sub_parameters: list[SubParameter] = Field(default_factory=list, alias="subParameters")
    states: list[str] = Field(default_factory=list)
    default_range: DefaultRange = Field(default_factory=DefaultRange, alias="defaultRange")

    model_config = {"populate_by_name": True}


class TemplateAction(BaseModel):
    """An action a template offers to the builder."""

    name: str = Field(..., min_length=1)
    type: ActionKind = Field(ActionKind.PROCESS)
    parameters: list[str] = Field(default_factory=list)


class Template(BaseModel):
    """Named parameter/action vocabulary a tree is built against."""

    name: str = Field(..., min_length=1)
    code: str = Field("", description="Stable code referenced by algorithms (generated on create)")
    parameters: list[TemplateParameter] = Field(default_factory=list)
    actions: list[TemplateAction] = Field(default_factory=list)
    description: str = Field("")
    is_active: bool = Field(True, alias="isActive")

    model_config = {"populate_by_name": True}


class GlobalParameter(BaseModel):
    """Parameter usable by every template."""

    name: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    type: ParameterType = Field(ParameterType.TEXT)
    default_value: str = Field("", alias="defaultValue")
    is_required: bool = Field(False, alias="isRequired")
    is_active: bool = Field(True, alias="isActive")

    model_config = {"populate_by_name": True}


class Action(BaseModel):
    """Standalone action catalog entry."""

    name: str = Field(..., min_length=1)
    type: ActionKind = Field(ActionKind.PROCESS)
    parameters: list[str] = Field(default_factory=list)
    is_active: bool = Field(True, alias="isActive")

    model_config = {"populate_by_name": True}


class AlgorithmRecord(BaseModel):
    """Storage-side algorithm fields not carried in the exported document."""

    is_active: bool = Field(True, alias="isActive")
    created_by: Optional[str] = Field("system", alias="createdBy")

    model_config = {"populate_by_name": True}
