"""Unit tests for catalog resolution."""

from backend.services import catalog_service
from shared.schemas import GlobalParameter, Template


def test_parameters_without_template_are_global_only(global_parameters):
    options = catalog_service.list_parameters(None, global_parameters)
    assert [o.value for o in options] == ["glucose", "age"]


def test_template_facets_come_first(cbc_template, global_parameters):
    values = [o.value for o in catalog_service.list_parameters(cbc_template, global_parameters)]
    facets = [f"hemoglobin.{f}" for f in catalog_service.SUB_FACETS] + [
        f"platelets.{f}" for f in catalog_service.SUB_FACETS
    ]
    assert values == facets + ["glucose", "age"]


def test_facet_labels(cbc_template):
    options = catalog_service.list_parameters(cbc_template, [])
    assert options[0].value == "hemoglobin.result"
    assert options[0].label == "hemoglobin - result"


def test_empty_catalogs():
    assert catalog_service.list_parameters(None, []) == []
    assert catalog_service.list_parameters(Template(name="Empty", code="e"), []) == []


def test_inactive_global_parameters_are_skipped():
    params = [GlobalParameter(name="old", label="Old", isActive=False)]
    assert catalog_service.list_parameters(None, params) == []


def test_actions_split_by_kind(cbc_template):
    vocab = catalog_service.list_actions(cbc_template)
    assert vocab.process == ["RERUN_TEST"]
    assert vocab.result == ["VALIDATE"]
    assert not vocab.process_is_placeholder and not vocab.result_is_placeholder


def test_actions_fall_back_per_kind():
    template = Template(name="Draft", code="d", actions=[{"name": "FLAG", "type": "result"}])
    vocab = catalog_service.list_actions(template)
    assert vocab.process == ["CHANGE_RESULT_STATUS", "RERUN_TEST"]
    assert vocab.process_is_placeholder
    assert vocab.result == ["FLAG"]
    assert not vocab.result_is_placeholder


def test_actions_without_template_are_placeholders():
    vocab = catalog_service.list_actions(None)
    assert vocab.result == ["VALIDATE", "CALL_EXPERT", "CONDITIONAL_VALIDATION"]
    assert vocab.process_is_placeholder and vocab.result_is_placeholder


def test_find_template(cbc_template):
    assert catalog_service.find_template([cbc_template], "cbc") is cbc_template
    assert catalog_service.find_template([cbc_template], "other") is None
    assert catalog_service.find_template([cbc_template], "") is None
