"""
Dry-run evaluation of a condition tree against sample records.

This mirrors what the external runner is expected to do with jsonb conditions
so a rule can be checked before it is saved. It never touches the backend.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from models import Condition, ConditionGroup, ConditionOperator, LogicalOperator, TableMetadata

_datetime_adapter = TypeAdapter(datetime)
_bool_adapter = TypeAdapter(bool)


@dataclass
class ConditionResult:
    condition_id: str
    field: str
    operator: str
    expected: Any
    actual: Any
    passed: bool


@dataclass
class ConditionTrace:
    passed: bool
    results: List[ConditionResult] = field(default_factory=list)

    def failed(self) -> List[ConditionResult]:
        return [result for result in self.results if not result.passed]


def resolve_field(record: Optional[Dict[str, Any]], path: str) -> Any:
    current: Any = record or {}
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _as_datetime(value: Any) -> Optional[datetime]:
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _comparable(actual: Any, expected: Any, column: Optional[TableMetadata], numeric_text: bool = False):
    """
    Coerce both sides to a common type, guided by the column type when known.
    Without a column type, numeric-looking text is only compared as a number
    when `numeric_text` is set (ordering operators).
    """
    if (column is not None and column.is_temporal) or isinstance(actual, datetime):
        left, right = _as_datetime(actual), _as_datetime(expected)
        if left is not None and right is not None:
            if (left.tzinfo is None) != (right.tzinfo is None):
                left, right = left.replace(tzinfo=None), right.replace(tzinfo=None)
            return left, right
    numeric_sample = isinstance(actual, (int, float)) and not isinstance(actual, bool)
    if (column is None and numeric_text) or (column is not None and column.is_numeric) or numeric_sample:
        left, right = _as_float(actual), _as_float(expected)
        if left is not None and right is not None:
            return left, right
    if (column is not None and column.type == "boolean") or isinstance(actual, bool):
        try:
            return _bool_adapter.validate_python(actual), _bool_adapter.validate_python(expected)
        except ValidationError:
            pass
    return str(actual), str(expected)


def _equals(actual: Any, expected: Any, column: Optional[TableMetadata]) -> bool:
    if actual is None:
        return expected is None
    left, right = _comparable(actual, expected, column)
    return left == right


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, (list, tuple, set)):
        return any(str(item) == str(expected) for item in actual)
    return str(expected) in str(actual)


def _ordered(actual: Any, expected: Any, column: Optional[TableMetadata], compare: Callable[[Any, Any], bool]) -> bool:
    if actual is None or expected in (None, ""):
        return False
    left, right = _comparable(actual, expected, column, numeric_text=True)
    try:
        return compare(left, right)
    except TypeError:
        return compare(str(left), str(right))


def _member(actual: Any, condition: Condition) -> bool:
    if actual is None:
        return False
    candidates = condition.values()
    if isinstance(actual, (list, tuple, set)):
        return any(str(item) in candidates for item in actual)
    return str(actual) in candidates


def evaluate_condition(
    condition: Condition,
    new: Optional[Dict[str, Any]],
    metadata: Optional[List[TableMetadata]] = None,
) -> ConditionResult:
    actual = resolve_field(new, condition.field)
    column = next((item for item in metadata or [] if item.key == condition.field), None)
    expected = condition.value
    operator = condition.operator

    if operator == ConditionOperator.EQUALS.value:
        passed = _equals(actual, expected, column)
    elif operator == ConditionOperator.NOT_EQUALS.value:
        passed = not _equals(actual, expected, column)
    elif operator == ConditionOperator.CONTAINS.value:
        passed = _contains(actual, expected)
    elif operator == ConditionOperator.NOT_CONTAINS.value:
        passed = not _contains(actual, expected)
    elif operator == ConditionOperator.GREATER_THAN.value:
        passed = _ordered(actual, expected, column, lambda left, right: left > right)
    elif operator == ConditionOperator.LESS_THAN.value:
        passed = _ordered(actual, expected, column, lambda left, right: left < right)
    elif operator == ConditionOperator.IS_NULL.value:
        passed = actual is None
    elif operator == ConditionOperator.IS_NOT_NULL.value:
        passed = actual is not None
    elif operator == ConditionOperator.STARTS_WITH.value:
        passed = actual is not None and str(actual).startswith(str(expected))
    elif operator == ConditionOperator.ENDS_WITH.value:
        passed = actual is not None and str(actual).endswith(str(expected))
    elif operator == ConditionOperator.IN.value:
        passed = _member(actual, condition)
    elif operator == ConditionOperator.NOT_IN.value:
        passed = not _member(actual, condition)
    else:
        raise ValueError(f"Unsupported condition operator: {operator}")

    return ConditionResult(
        condition_id=condition.id,
        field=condition.field,
        operator=operator,
        expected=None if not condition.requires_value else expected,
        actual=actual,
        passed=passed,
    )


def evaluate_conditions(
    tree: ConditionGroup,
    new: Optional[Dict[str, Any]],
    metadata: Optional[List[TableMetadata]] = None,
) -> ConditionTrace:
    """
    Evaluate every leaf (no short-circuit, so the trace is complete) and fold
    the results through the tree's AND/OR nodes.
    """
    results: List[ConditionResult] = []

    def visit(group: ConditionGroup) -> bool:
        outcomes = []
        for child in group.conditions:
            if isinstance(child, Condition):
                result = evaluate_condition(child, new, metadata)
                results.append(result)
                outcomes.append(result.passed)
            else:
                outcomes.append(visit(child))
        if not outcomes:
            return True
        return any(outcomes) if group.operator == LogicalOperator.OR else all(outcomes)

    passed = visit(tree)
    return ConditionTrace(passed=passed, results=results)
