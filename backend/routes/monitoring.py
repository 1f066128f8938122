"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.routes.builder import get_registry
from backend.services.builder_service import SessionRegistry
from backend.services.monitoring_service import get_health, get_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/health", summary="Health check")
def health():
    """Health check for load balancers. Returns database status."""
    return get_health()


@router.get("/metrics", summary="Resource counts")
def metrics(db: Session = Depends(get_db), sessions: SessionRegistry = Depends(get_registry)):
    """Active templates, global parameters, actions, algorithms and open builder sessions."""
    return get_metrics(db, open_sessions=len(sessions))
