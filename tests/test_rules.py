"""Unit tests for the mutation rules (terminal closure, dedup, value shapes)."""

import pytest

from backend.exceptions import ValidationRejection
from backend.models.builder import CounterNodeIds
from backend.services import rules_service, tree_store
from shared.schemas import ActionKind, ConditionNode, Operator, RangeValue


@pytest.fixture
def forest():
    return [ConditionNode(id="r", parameter="glucose", value="120")]


def _get(forest, node_id="r"):
    return tree_store.get_node(forest, node_id)


def _all_terminals_are_leaves(forest):
    return all(not (n.result_actions and n.children) for n in tree_store.iter_nodes(forest))


def test_assign_parameter_overwrites(forest):
    result = rules_service.assign_parameter(forest, "r", "age")
    assert _get(result).parameter == "age"


def test_edit_on_unknown_node_is_silent_noop(forest):
    assert rules_service.assign_parameter(forest, "ghost", "age") is forest
    assert rules_service.set_value(forest, "ghost", "1") is forest
    assert rules_service.add_action(forest, "ghost", ActionKind.RESULT, "VALIDATE") is forest


def test_duplicate_actions_are_ignored(forest):
    once = rules_service.add_action(forest, "r", ActionKind.PROCESS, "RERUN_TEST")
    twice = rules_service.add_action(once, "r", ActionKind.PROCESS, "RERUN_TEST")
    assert twice is once
    assert _get(twice).process_actions == ["RERUN_TEST"]

    once = rules_service.add_action(forest, "r", "result", "VALIDATE")
    twice = rules_service.add_action(once, "r", "result", "VALIDATE")
    assert _get(twice).result_actions == ["VALIDATE"]


def test_actions_keep_insertion_order(forest):
    result = rules_service.add_action(forest, "r", ActionKind.PROCESS, "B")
    result = rules_service.add_action(result, "r", ActionKind.PROCESS, "A")
    assert _get(result).process_actions == ["B", "A"]


def test_action_outside_vocabulary_is_rejected(forest):
    with pytest.raises(ValidationRejection):
        rules_service.add_action(forest, "r", ActionKind.PROCESS, "DELETE_ALL", vocabulary=["RERUN_TEST"])


def test_remove_action(forest):
    result = rules_service.add_action(forest, "r", ActionKind.RESULT, "VALIDATE")
    result = rules_service.remove_action(result, "r", ActionKind.RESULT, "VALIDATE")
    assert _get(result).result_actions == []
    # removing an absent action changes nothing
    assert rules_service.remove_action(result, "r", ActionKind.RESULT, "VALIDATE") is result


def test_process_actions_do_not_close_the_branch(forest):
    ids = CounterNodeIds()
    result = rules_service.add_action(forest, "r", ActionKind.PROCESS, "RERUN_TEST")
    result = rules_service.add_condition(result, "r", ids)
    assert len(_get(result).children) == 1


def test_terminal_node_cannot_gain_children(forest):
    ids = CounterNodeIds()
    terminal = rules_service.add_action(forest, "r", ActionKind.RESULT, "VALIDATE")
    with pytest.raises(ValidationRejection) as excinfo:
        rules_service.add_condition(terminal, "r", ids)
    assert "terminal" in excinfo.value.message
    assert _get(terminal).children == []
    assert _all_terminals_are_leaves(terminal)


def test_result_action_on_node_with_children_is_rejected(forest):
    ids = CounterNodeIds()
    parent = rules_service.add_condition(forest, "r", ids)
    with pytest.raises(ValidationRejection):
        rules_service.add_action(parent, "r", ActionKind.RESULT, "VALIDATE")
    assert _get(parent).result_actions == []
    assert _all_terminals_are_leaves(parent)


def test_range_bounds_are_edited_independently(forest):
    result = rules_service.set_operator(forest, "r", Operator.RANGE)
    assert _get(result).value == RangeValue(min="", max="")
    result = rules_service.set_range_bound(result, "r", "min", "70")
    result = rules_service.set_range_bound(result, "r", "max", "110")
    assert _get(result).value == RangeValue(min="70", max="110")
    result = rules_service.set_range_bound(result, "r", "min", "65")
    assert _get(result).value == RangeValue(min="65", max="110")


def test_range_bound_on_scalar_operator_is_rejected(forest):
    with pytest.raises(ValidationRejection):
        rules_service.set_range_bound(forest, "r", "max", "10")


def test_set_value_follows_operator(forest):
    result = rules_service.set_operator(forest, "r", "range")
    result = rules_service.set_value(result, "r", {"min": "1"})
    assert _get(result).value == RangeValue(min="1", max="")
    with pytest.raises(ValidationRejection):
        rules_service.set_value(result, "r", "5")

    result = rules_service.set_operator(forest, "r", Operator.STATE)
    result = rules_service.set_value(result, "r", "supra")
    assert _get(result).value == "supra"
    with pytest.raises(ValidationRejection):
        rules_service.set_value(result, "r", "very high")


def test_operator_change_reshapes_value(forest):
    ranged = rules_service.set_operator(forest, "r", Operator.RANGE)
    ranged = rules_service.set_range_bound(ranged, "r", "min", "3")
    # range -> default clears, no stale {min, max}
    assert _get(rules_service.set_operator(ranged, "r", Operator.DEFAULT)).value == ""
    # range -> scalar drops the pair
    assert _get(rules_service.set_operator(ranged, "r", Operator.GREATER_THAN)).value == ""
    # range -> range keeps it
    assert _get(rules_service.set_operator(ranged, "r", Operator.RANGE)).value == RangeValue(min="3")
    # scalar -> scalar keeps the text
    assert _get(rules_service.set_operator(forest, "r", Operator.LESS_THAN)).value == "120"
    # invalid state text is dropped
    assert _get(rules_service.set_operator(forest, "r", Operator.STATE)).value == ""


def test_unknown_operator_is_rejected(forest):
    with pytest.raises(ValidationRejection):
        rules_service.set_operator(forest, "r", "between")


def test_coerce_value_default_is_empty():
    assert rules_service.coerce_value(Operator.DEFAULT, "anything") == ""
    assert rules_service.coerce_value(Operator.CONTAINS, 12) == "12"


def test_remove_node_cascades():
    ids = CounterNodeIds()
    forest = [ConditionNode(id="r")]
    forest = rules_service.add_condition(forest, "r", ids)
    forest = rules_service.add_condition(forest, "node-1", ids)
    forest = rules_service.remove_node(forest, "node-1")
    assert tree_store.node_ids(forest) == {"r"}


def test_validate_forest_reports_problems():
    # terminal closure cannot be broken through the schema, so build around it
    bad_child = ConditionNode(id="c", operator="range", value="oops")
    root = ConditionNode(id="r", parameter="mystery", children=[bad_child])
    errors = rules_service.validate_forest([root], parameters=["glucose"])
    codes = {(e.code, e.node_id) for e in errors}
    assert ("unknown_parameter", "r") in codes
    assert ("unset_parameter", "c") in codes
    assert ("value_shape", "c") in codes
    assert next(e for e in errors if e.node_id == "c").path == ["r", "c"]


def test_validate_forest_clean():
    root = ConditionNode(id="r", parameter="glucose", value="120")
    assert rules_service.validate_forest([root], parameters=["glucose"]) == []


@pytest.mark.parametrize(
    "raw",
    [
        {"min": [1], "max": "2"},
        {"min": "1", "max": True},
        {"min": {"nested": "1"}},
        {"min": "1", "lo": "2"},
    ],
)
def test_malformed_range_value_is_rejected(forest, raw):
    ranged = rules_service.set_operator(forest, "r", Operator.RANGE)
    with pytest.raises(ValidationRejection) as excinfo:
        rules_service.set_value(ranged, "r", raw)
    assert excinfo.value.node_id == "r"
    assert _get(ranged).value == RangeValue()


def test_range_value_accepts_numbers_and_missing_halves(forest):
    ranged = rules_service.set_operator(forest, "r", Operator.RANGE)
    result = rules_service.set_value(ranged, "r", {"min": 70, "max": None})
    assert _get(result).value == RangeValue(min="70", max="")
