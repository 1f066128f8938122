"""
Structured logging for the lab algorithm builder.

- Configurable level (DEBUG, INFO, WARN, ERROR)
- Writes to /logs/ directory
- Console handler for development
- Helpers for tree mutations and algorithm import/export/save/load
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

# Default: project root / logs
LOG_DIR = Path(__file__).resolve().parent.parent.parent / "logs"
LOG_LEVEL = os.getenv("LABTREE_LOG_LEVEL", "INFO").upper()


def _ensure_log_dir(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def configure_logging(
    level: str = LOG_LEVEL,
    log_dir: Optional[Path] = None,
    log_to_console: bool = True,
) -> None:
    """Configure root and backend loggers. Call once at app startup."""
    log_dir = _ensure_log_dir(log_dir or LOG_DIR)
    level_value = getattr(logging, level, logging.INFO)

    log_file = log_dir / "labtree.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level_value)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root = logging.getLogger()
    root.setLevel(level_value)
    # Avoid duplicate handlers when reloading
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(file_handler)
    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level_value)
        console.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
        root.addHandler(console)

    backend = logging.getLogger("backend")
    backend.setLevel(level_value)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module (e.g. backend.services.rules_service)."""
    return logging.getLogger(name)


def log_mutation(
    logger: logging.Logger,
    operation: str,
    node_id: Optional[str],
    applied: bool = True,
    reason: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Log a tree mutation. Rejections are warnings, applied edits are debug."""
    payload = {
        "event": "tree_mutation",
        "operation": operation,
        "node_id": node_id,
        "applied": applied,
        "reason": reason,
    }
    if extra:
        payload.update(extra)
    if applied:
        logger.debug("Mutation: %s", json.dumps(payload, default=str))
    elif reason:
        logger.warning("Mutation: %s", json.dumps(payload, default=str))
    else:
        logger.debug("Mutation skipped: %s", json.dumps(payload, default=str))


def log_transfer(
    logger: logging.Logger,
    direction: str,
    algorithm_name: Optional[str],
    success: bool = True,
    error: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Log an algorithm import, export, save or load."""
    payload = {
        "event": "algorithm_transfer",
        "direction": direction,
        "algorithm": algorithm_name,
        "success": success,
        "error": error,
        "ts": datetime.utcnow().isoformat() + "Z",
    }
    if extra:
        payload.update(extra)
    if success:
        logger.info("Transfer: %s", json.dumps(payload, default=str))
    else:
        logger.warning("Transfer: %s", json.dumps(payload, default=str))
