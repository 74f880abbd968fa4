import pytest

from models import Condition, ConditionGroup, TableMetadata
from preview import evaluate_condition, evaluate_conditions, resolve_field

RECORD = {
    "status": "new",
    "amount": "250",
    "email": "jane@acme.io",
    "tags": ["vip", "inbound"],
    "created_at": "2024-03-01T10:00:00Z",
    "owner": {"name": "Sam"},
    "closed_at": None,
    "is_hot": True,
}

METADATA = [
    TableMetadata(key="amount", type="numeric"),
    TableMetadata(key="created_at", type="timestamp with time zone"),
    TableMetadata(key="is_hot", type="boolean"),
]


def _passes(operator, field, value=""):
    return evaluate_condition(Condition(field=field, operator=operator, value=value), RECORD, METADATA).passed


@pytest.mark.parametrize(
    "operator, field, value, expected",
    [
        ("equals", "status", "new", True),
        ("equals", "amount", "250.0", True),
        ("not_equals", "status", "open", True),
        ("contains", "email", "@acme", True),
        ("contains", "tags", "vip", True),
        ("not_contains", "tags", "outbound", True),
        ("greater_than", "amount", "100", True),
        ("greater_than", "amount", "1000", False),
        ("less_than", "created_at", "2024-04-01", True),
        ("is_null", "closed_at", "", True),
        ("is_null", "missing", "", True),
        ("is_not_null", "status", "", True),
        ("starts_with", "email", "jane", True),
        ("ends_with", "email", ".io", True),
        ("in", "status", "open, new", True),
        ("not_in", "status", "open,won", True),
        ("equals", "is_hot", "true", True),
        ("equals", "owner.name", "Sam", True),
    ],
)
def test_operator_semantics(operator, field, value, expected):
    assert _passes(operator, field, value) is expected


def test_ordering_against_missing_value_fails():
    assert _passes("greater_than", "missing", "1") is False
    assert _passes("greater_than", "amount", "") is False


def test_resolve_field_walks_nested_records():
    assert resolve_field(RECORD, "owner.name") == "Sam"
    assert resolve_field(RECORD, "owner.age") is None
    assert resolve_field(None, "status") is None


def test_unknown_operator_raises():
    with pytest.raises(ValueError):
        evaluate_condition(Condition(field="status", operator="matches"), RECORD)


def test_tree_evaluates_every_leaf():
    tree = ConditionGroup.from_flat(
        [
            {"field": "status", "value": "open"},
            {"field": "amount", "operator": "greater_than", "value": "100", "logicalOperator": "AND"},
            {"field": "email", "operator": "contains", "value": "acme", "logicalOperator": "OR"},
        ]
    )

    trace = evaluate_conditions(tree, RECORD, METADATA)

    assert trace.passed is True
    assert [result.passed for result in trace.results] == [False, True, True]
    assert [result.field for result in trace.failed()] == ["status"]


def test_empty_tree_passes():
    trace = evaluate_conditions(ConditionGroup.empty(), RECORD)

    assert trace.passed is True
    assert trace.results == []


def test_equals_without_metadata_compares_text():
    record = {"code": "007", "budget": "1e3", "score": "nan", "count": 7}

    assert evaluate_condition(Condition(field="code", value="7"), record).passed is False
    assert evaluate_condition(Condition(field="budget", value="1000"), record).passed is False
    assert evaluate_condition(Condition(field="score", value="nan"), record).passed is True
    assert evaluate_condition(Condition(field="count", value="7.0"), record).passed is True


def test_ordering_without_metadata_still_compares_numbers():
    condition = Condition(field="amount", operator="greater_than", value="9")

    assert evaluate_condition(condition, {"amount": "10"}).passed is True
