"""
Health and basic metrics for the lab algorithm builder.

- Health check: DB connectivity
- Metrics: active resource counts and open builder sessions
"""

import logging
from typing import Any

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from backend.database import engine
from backend.models_db import ActionModel, AlgorithmModel, GlobalParameterModel, TemplateModel

logger = logging.getLogger(__name__)


def check_db() -> tuple[bool, str]:
    """Check database connectivity. Returns (ok, message)."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, "ok"
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        return False, str(e)


def get_health() -> dict[str, Any]:
    """Return health status for /api/health."""
    db_ok, db_msg = check_db()
    return {
        "status": "healthy" if db_ok else "unhealthy",
        "checks": {
            "database": {"status": "up" if db_ok else "down", "message": db_msg},
        },
    }


def get_metrics(db: Session, open_sessions: int = 0) -> dict[str, Any]:
    """Active resource counts for /api/metrics."""

    def active(model) -> int:
        return db.query(func.count(model.id)).filter(model.is_active.is_(True)).scalar() or 0

    return {
        "templates": active(TemplateModel),
        "global_parameters": active(GlobalParameterModel),
        "actions": active(ActionModel),
        "algorithms": active(AlgorithmModel),
        "open_sessions": open_sessions,
    }
