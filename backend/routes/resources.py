"""
CRUD routes for catalog resources and saved algorithms.

All endpoints answer with the storage envelope {success, data | error}:
201 on create, 404 when the id is unknown, 400 for invalid bodies.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.services.storage_service import ResourceKind, SqlStorage, StorageResponse


def respond(response: StorageResponse, status_code: int = 200) -> JSONResponse:
    """Render an envelope; failures become 404 (missing) or 400."""
    if not response.success:
        status_code = 404 if response.not_found else 400
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


def resource_router(kind: ResourceKind) -> APIRouter:
    """List/create plus get/update/delete-by-id for one resource kind."""
    router = APIRouter()

    @router.get("/", summary=f"List active {kind.value}")
    def list_resources(db: Session = Depends(get_db)):
        return respond(SqlStorage(db).list(kind))

    @router.post("/", status_code=201, summary=f"Create one of {kind.value}")
    def create_resource(body: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
        return respond(SqlStorage(db).create(kind, body), status_code=201)

    @router.get("/{resource_id}", summary=f"Get one of {kind.value}")
    def get_resource(resource_id: str, db: Session = Depends(get_db)):
        return respond(SqlStorage(db).get(kind, resource_id))

    @router.put("/{resource_id}", summary=f"Update one of {kind.value}")
    def update_resource(resource_id: str, body: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
        return respond(SqlStorage(db).update(kind, resource_id, body))

    @router.delete("/{resource_id}", summary=f"Deactivate one of {kind.value}")
    def delete_resource(resource_id: str, db: Session = Depends(get_db)):
        return respond(SqlStorage(db).delete(kind, resource_id))

    return router
