"""API routes for the lab algorithm builder backend."""

from fastapi import APIRouter

from backend.routes import builder, monitoring
from backend.routes.resources import resource_router
from backend.services.storage_service import ResourceKind

api_router = APIRouter(prefix="/api", tags=["api"])

api_router.include_router(monitoring.router)
api_router.include_router(resource_router(ResourceKind.TEMPLATES), prefix="/templates", tags=["templates"])
api_router.include_router(
    resource_router(ResourceKind.GLOBAL_PARAMETERS), prefix="/global-parameters", tags=["global-parameters"]
)
api_router.include_router(resource_router(ResourceKind.ACTIONS), prefix="/actions", tags=["actions"])
api_router.include_router(resource_router(ResourceKind.ALGORITHMS), prefix="/algorithms", tags=["algorithms"])
api_router.include_router(builder.router, prefix="/builder", tags=["builder"])
