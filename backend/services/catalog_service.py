"""
Catalog resolution: addressable parameters and action vocabularies for a template.

Pure functions over the template and global-parameter catalogs.
"""

import logging
from typing import Optional, Sequence

from backend.models.builder import ActionVocabulary, ParameterOption
from shared.schemas.catalog import ActionKind, GlobalParameter, Template

logger = logging.getLogger(__name__)

# Facets expanded for every template parameter, in display order
SUB_FACETS = ("result", "qc", "unit", "last_value", "last_test")

# Fallback vocabulary for templates that define no actions of a kind
PLACEHOLDER_ACTIONS: dict[ActionKind, tuple[str, ...]] = {
    ActionKind.PROCESS: ("CHANGE_RESULT_STATUS", "RERUN_TEST"),
    ActionKind.RESULT: ("VALIDATE", "CALL_EXPERT", "CONDITIONAL_VALIDATION"),
}


def find_template(templates: Sequence[Template], code: Optional[str]) -> Optional[Template]:
    """Return the template with the given code, or None."""
    if not code:
        return None
    for template in templates:
        if template.code == code:
            return template
    return None


def list_parameters(
    template: Optional[Template],
    global_parameters: Sequence[GlobalParameter],
) -> list[ParameterOption]:
    """
    Addressable parameters: template facets ('<parameter>.<facet>') first,
    then global parameters by raw name.
    """
    options = [
        ParameterOption(value=param.name, label=param.name)
        for param in global_parameters
        if param.is_active
    ]
    if template is None:
        return options
    facets = [
        ParameterOption(value=f"{param.name}.{facet}", label=f"{param.name} - {facet}")
        for param in template.parameters
        for facet in SUB_FACETS
    ]
    return facets + options


def list_actions(template: Optional[Template]) -> ActionVocabulary:
    """Process/result action names of a template, falling back to placeholders per kind."""
    process: list[str] = []
    result: list[str] = []
    if template is not None:
        process = [a.name for a in template.actions if a.type == ActionKind.PROCESS]
        result = [a.name for a in template.actions if a.type == ActionKind.RESULT]
    vocabulary = ActionVocabulary(
        process=process or list(PLACEHOLDER_ACTIONS[ActionKind.PROCESS]),
        result=result or list(PLACEHOLDER_ACTIONS[ActionKind.RESULT]),
        process_is_placeholder=not process,
        result_is_placeholder=not result,
    )
    if template is not None and (vocabulary.process_is_placeholder or vocabulary.result_is_placeholder):
        logger.debug(
            "Template %s has no %s actions; using placeholder vocabulary",
            template.code,
            "process" if vocabulary.process_is_placeholder else "result",
        )
    return vocabulary


def parameter_values(options: Sequence[ParameterOption]) -> set[str]:
    return {option.value for option in options}
