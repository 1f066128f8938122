"""
Builder session routes: edit an algorithm's condition tree node by node.

Sessions live in memory; each request applies one edit and returns the
session snapshot. Rule rejections answer 422, unknown sessions 404, bad
import documents 400, storage failures 502 (see backend.main handlers).
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.models.builder import DropEvent, NodeField
from backend.services.builder_service import BuilderSession, SessionRegistry
from backend.services.storage_service import SqlStorage, load_catalogs
from shared.schemas.catalog import ActionKind

router = APIRouter()

registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    """Dependency: the process-wide session registry."""
    return registry


def _session(session_id: str, sessions: SessionRegistry) -> BuilderSession:
    return sessions.get(session_id)


class TemplateSelection(BaseModel):
    code: str = Field("", description="Template code; empty unbinds the template and clears the tree")


class MetaUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class FieldUpdate(BaseModel):
    field: NodeField
    value: Any = None


class ActionBody(BaseModel):
    kind: ActionKind
    name: str = Field(..., min_length=1)


@router.post("/sessions", status_code=201)
def open_session(db: Session = Depends(get_db), sessions: SessionRegistry = Depends(get_registry)):
    """Open a session with the current template and global-parameter catalogs."""
    templates, global_parameters = load_catalogs(SqlStorage(db))
    return sessions.create(templates, global_parameters).snapshot()


@router.get("/sessions/{session_id}")
def get_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    return _session(session_id, sessions).snapshot()


@router.delete("/sessions/{session_id}", status_code=204)
def close_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    sessions.close(session_id)
    return None


@router.post("/sessions/{session_id}/catalogs/refresh")
def refresh_catalogs(
    session_id: str,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry),
):
    session = _session(session_id, sessions)
    session.set_catalogs(*load_catalogs(SqlStorage(db)))
    return session.snapshot()


@router.get("/sessions/{session_id}/parameters")
def list_session_parameters(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Addressable parameters for the bound template plus global parameters."""
    return [p.model_dump() for p in _session(session_id, sessions).available_parameters()]


@router.get("/sessions/{session_id}/actions")
def list_session_actions(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Process/result vocabularies; *_is_placeholder marks fallback names."""
    return _session(session_id, sessions).available_actions().model_dump()


@router.put("/sessions/{session_id}/template")
def select_template(session_id: str, body: TemplateSelection, sessions: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, sessions)
    session.select_template(body.code)
    return session.snapshot()


@router.put("/sessions/{session_id}/meta")
def update_meta(session_id: str, body: MetaUpdate, sessions: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, sessions)
    session.set_meta(name=body.name, description=body.description)
    return session.snapshot()


@router.post("/sessions/{session_id}/roots", status_code=201)
def add_root(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, sessions)
    session.add_root()
    return session.snapshot()


@router.post("/sessions/{session_id}/nodes/{node_id}/children", status_code=201)
def add_condition(session_id: str, node_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Append an empty child condition. 422 if the node has result actions."""
    session = _session(session_id, sessions)
    session.add_condition(node_id)
    return session.snapshot()


@router.patch("/sessions/{session_id}/nodes/{node_id}")
def update_node_field(
    session_id: str,
    node_id: str,
    body: FieldUpdate,
    sessions: SessionRegistry = Depends(get_registry),
):
    session = _session(session_id, sessions)
    session.update_field(node_id, body.field, body.value)
    return session.snapshot()


@router.delete("/sessions/{session_id}/nodes/{node_id}")
def remove_node(session_id: str, node_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Remove a node and its subtree (roots included)."""
    session = _session(session_id, sessions)
    session.remove_node(node_id)
    return session.snapshot()


@router.post("/sessions/{session_id}/nodes/{node_id}/actions")
def add_node_action(
    session_id: str,
    node_id: str,
    body: ActionBody,
    sessions: SessionRegistry = Depends(get_registry),
):
    session = _session(session_id, sessions)
    session.add_action(node_id, body.kind, body.name)
    return session.snapshot()


@router.delete("/sessions/{session_id}/nodes/{node_id}/actions/{kind}/{name}")
def remove_node_action(
    session_id: str,
    node_id: str,
    kind: ActionKind,
    name: str,
    sessions: SessionRegistry = Depends(get_registry),
):
    session = _session(session_id, sessions)
    session.remove_action(node_id, kind, name)
    return session.snapshot()


@router.post("/sessions/{session_id}/drop")
def drop_item(session_id: str, event: DropEvent, sessions: SessionRegistry = Depends(get_registry)):
    """Apply a drag-and-drop assignment; incompatible drops are ignored."""
    session = _session(session_id, sessions)
    session.drop(event)
    return session.snapshot()


@router.get("/sessions/{session_id}/violations")
def list_violations(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    errors = _session(session_id, sessions).violations()
    return {"errors": [e.model_dump() for e in errors], "valid": len(errors) == 0}


@router.get("/sessions/{session_id}/export")
def export_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Download the algorithm as an indented JSON file."""
    filename, text = _session(session_id, sessions).export()
    return Response(
        content=text,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/sessions/{session_id}/import")
async def import_file(session_id: str, file: UploadFile, sessions: SessionRegistry = Depends(get_registry)):
    """Replace the session with an uploaded algorithm file (all or nothing)."""
    session = _session(session_id, sessions)
    session.import_text(await file.read())
    return session.snapshot()


@router.post("/sessions/{session_id}/import-json")
def import_document(
    session_id: str,
    document: Any = Body(...),
    sessions: SessionRegistry = Depends(get_registry),
):
    """Replace the session with an algorithm document sent as the JSON body."""
    session = _session(session_id, sessions)
    session.import_text(document)
    return session.snapshot()


@router.post("/sessions/{session_id}/save")
def save_session(
    session_id: str,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry),
):
    session = _session(session_id, sessions)
    saved = session.save(SqlStorage(db))
    return {"success": True, "data": saved}


@router.post("/sessions/{session_id}/load/{algorithm_id}")
def load_algorithm(
    session_id: str,
    algorithm_id: str,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry),
):
    session = _session(session_id, sessions)
    session.load(SqlStorage(db), algorithm_id)
    return session.snapshot()


@router.post("/sessions/{session_id}/clear")
def clear_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    session = _session(session_id, sessions)
    session.clear()
    return session.snapshot()
