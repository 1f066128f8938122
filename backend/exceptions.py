"""
Builder error hierarchy.

- ValidationRejection: a mutation would break a tree invariant; the tree is left unchanged.
- LookupMiss: a strict lookup found no node with the requested id.
- ParseError: an import document (or a stored algorithm) could not be read.
- StorageError: the storage collaborator failed; reported like a ParseError.
"""

from typing import Any, Optional


class BuilderError(Exception):
    """Base exception for all algorithm builder errors."""

    def __init__(
        self,
        message: str,
        code: str = "BUILDER_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationRejection(BuilderError):
    """A requested mutation violates a tree invariant."""

    def __init__(self, message: str, node_id: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="VALIDATION_REJECTED",
            details={"node_id": node_id, **(details or {})},
        )
        self.node_id = node_id


class LookupMiss(BuilderError):
    """No node (or other addressed object) with the given id exists."""

    def __init__(self, node_id: str, kind: str = "Node"):
        super().__init__(
            message=f"{kind} '{node_id}' not found",
            code="LOOKUP_MISS",
            details={"id": node_id, "kind": kind},
        )
        self.node_id = node_id


class ParseError(BuilderError):
    """Malformed algorithm document."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None, code: str = "PARSE_ERROR"):
        super().__init__(message=message, code=code, details=details)


class StorageError(ParseError):
    """Storage collaborator failure on save, load or delete."""

    def __init__(self, message: str, resource_kind: str = "unknown", details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            details={"resource_kind": resource_kind, **(details or {})},
        )
        self.resource_kind = resource_kind
