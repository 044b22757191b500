"""
Condition Evaluator — decides whether a rule's condition chain holds for an
event payload.

Behavioral Contract:
- Pure function of (conditions, payload). No side effects.
- Never raises: a missing field or a type mismatch makes that single
  condition False.
- An empty chain is True (trigger-only rule).
- Conditions are folded strictly left to right; condition i's ``logic`` joins
  it to condition i+1. There is no AND-over-OR precedence, so
  ``A AND B OR C`` means ``(A AND B) OR C`` and ``A OR B AND C`` means
  ``(A OR B) AND C``. Rule validation warns on mixed chains of three or more.
"""

from typing import Any, Callable, Dict, Sequence

from automation_kernel.conditions.values import (
    ValueKind,
    as_text,
    compare_ordered,
    kind_of,
    values_equal,
)
from automation_kernel.log import get_logger
from automation_kernel.models.event import MISSING, Event, resolve_path
from automation_kernel.models.rule import Condition, Logic, Operator

logger = get_logger(__name__)


def _op_equals(actual: Any, expected: Any) -> bool:
    return values_equal(actual, expected)


def _op_not_equals(actual: Any, expected: Any) -> bool:
    return not values_equal(actual, expected)


def _op_contains(actual: Any, expected: Any) -> bool:
    # Only a scalar can be looked for; null, maps and lists never match
    if kind_of(expected) in (ValueKind.NULL, ValueKind.MAP, ValueKind.LIST):
        return False
    kind = kind_of(actual)
    if kind == ValueKind.STRING:
        return as_text(expected) in actual
    if kind == ValueKind.LIST:
        return any(values_equal(item, expected) for item in actual)
    return False


def _op_greater_than(actual: Any, expected: Any) -> bool:
    return compare_ordered(actual, expected) == 1


def _op_less_than(actual: Any, expected: Any) -> bool:
    return compare_ordered(actual, expected) == -1


def _op_in(actual: Any, expected: Any) -> bool:
    if kind_of(expected) != ValueKind.LIST:
        return False
    return any(values_equal(actual, option) for option in expected)


def _op_not_in(actual: Any, expected: Any) -> bool:
    if kind_of(expected) != ValueKind.LIST:
        return False
    return not any(values_equal(actual, option) for option in expected)


OPERATORS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUALS: _op_equals,
    Operator.NOT_EQUALS: _op_not_equals,
    Operator.CONTAINS: _op_contains,
    Operator.GREATER_THAN: _op_greater_than,
    Operator.LESS_THAN: _op_less_than,
    Operator.IN: _op_in,
    Operator.NOT_IN: _op_not_in,
}


def evaluate_condition(condition: Condition, payload: Dict[str, Any]) -> bool:
    """Evaluate one condition. Missing fields and mismatched types are False."""
    actual = resolve_path(payload, condition.field)
    if actual is MISSING:
        return False

    operator_fn = OPERATORS.get(condition.operator)
    if operator_fn is None:
        return False

    try:
        return operator_fn(actual, condition.value)
    except (TypeError, ValueError, ArithmeticError) as exc:
        logger.debug(
            "Condition comparison failed",
            field=condition.field,
            operator=condition.operator.value,
            error=str(exc),
        )
        return False


def evaluate(conditions: Sequence[Condition], payload: Dict[str, Any]) -> bool:
    """Fold a condition chain left to right."""
    if not conditions:
        return True

    result = evaluate_condition(conditions[0], payload)
    for previous, condition in zip(conditions, conditions[1:]):
        current = evaluate_condition(condition, payload)
        if previous.logic == Logic.OR:
            result = result or current
        else:
            result = result and current
    return result


def evaluate_event(conditions: Sequence[Condition], event: Event) -> bool:
    """Convenience wrapper evaluating against an event's payload."""
    return evaluate(conditions, event.payload)
