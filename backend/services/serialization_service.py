"""
Algorithm document (de)serialization for persistence and file export/import.

The document is a JSON object {name, template, tree, description, version}.
`tree` is a list of root conditions; legacy documents carry a single root
object and are upgraded to a one-element list on import.
"""

import json
import logging
import re
from typing import Any, Union

from pydantic import ValidationError

from backend.exceptions import ParseError
from shared.schemas.decision_tree import Algorithm, normalize_tree

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "template", "tree")
EXPORT_INDENT = 2


def to_document(algorithm: Algorithm) -> dict[str, Any]:
    """Plain JSON-compatible dict with camelCase node fields."""
    return algorithm.model_dump(mode="json", by_alias=True)


def export_algorithm(algorithm: Algorithm) -> str:
    """Render the algorithm as indented JSON text."""
    return json.dumps(to_document(algorithm), indent=EXPORT_INDENT, ensure_ascii=False)


def export_filename(name: str) -> str:
    """File name for an exported algorithm: non-alphanumerics become '_', lowercased."""
    return re.sub(r"[^A-Za-z0-9]", "_", name).lower() + "_algorithm.json"


def import_algorithm(document: Union[str, bytes, dict[str, Any]]) -> Algorithm:
    """
    Parse an algorithm document (JSON text or an already-decoded dict).

    Raises ParseError for malformed JSON, a non-object document, missing
    required fields or a tree that breaks the node rules.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError("Algorithm file is not valid JSON", details={"reason": str(e)}) from e
    if not isinstance(document, dict):
        raise ParseError("Algorithm document must be a JSON object")
    missing = [field for field in REQUIRED_FIELDS if field not in document]
    if missing:
        raise ParseError(f"Algorithm document is missing: {', '.join(missing)}", details={"missing": missing})
    data = {**document, "tree": normalize_tree(document["tree"])}
    try:
        algorithm = Algorithm.model_validate(data)
    except ValidationError as e:
        raise ParseError(
            "Algorithm document is invalid",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e
    logger.debug("Parsed algorithm %r with %d root(s)", algorithm.name, len(algorithm.tree))
    return algorithm
