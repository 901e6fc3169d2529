"""Condition evaluation for workflow rules.

Leaf conditions are dispatched on their operator; groups combine their
members with AND/OR after evaluating every member, so the audit trail always
holds the full set of results. Evaluation never raises: problems come back
as a failed result carrying an ``error``.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from .accessor import get_nested_value
from .coercion import is_number, to_date, to_number, to_string
from .functions import business_days_since, days_since
from .models import (
    ConditionEvaluationResult,
    LogicalOperator,
    RuleCondition,
    RuleConditionGroup,
    RuleExecutionContext,
    RuleOperator,
)

logger = logging.getLogger(__name__)

OperatorCallable = Callable[[Any, Any, RuleCondition, RuleExecutionContext], bool]


def _fold(value: Any, case_insensitive: bool) -> Any:
    if case_insensitive and isinstance(value, str):
        return value.casefold()
    return value


def _strict_equals(actual: Any, expected: Any) -> bool:
    if is_number(actual) and is_number(expected):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def compare_equals(actual: Any, expected: Any, case_insensitive: bool = False) -> bool:
    if _strict_equals(actual, expected):
        return True

    # Two plain numbers are the same instant only when numerically equal
    if not (is_number(actual) and is_number(expected)):
        actual_date = to_date(actual)
        expected_date = to_date(expected)
        if actual_date is not None and expected_date is not None:
            return actual_date == expected_date

    if is_number(actual) or is_number(expected):
        return to_number(actual) == to_number(expected)

    if case_insensitive and isinstance(actual, str) and isinstance(expected, str):
        return actual.casefold() == expected.casefold()
    return False


def _text_pair(actual: Any, expected: Any, case_insensitive: bool) -> tuple[str, str]:
    actual_str = to_string(actual)
    expected_str = to_string(expected)
    if case_insensitive:
        return actual_str.casefold(), expected_str.casefold()
    return actual_str, expected_str


def contains_value(actual: Any, expected: Any, case_insensitive: bool = False) -> bool:
    actual_str, expected_str = _text_pair(actual, expected, case_insensitive)
    return expected_str in actual_str


def starts_with_value(actual: Any, expected: Any, case_insensitive: bool = False) -> bool:
    actual_str, expected_str = _text_pair(actual, expected, case_insensitive)
    return actual_str.startswith(expected_str)


def ends_with_value(actual: Any, expected: Any, case_insensitive: bool = False) -> bool:
    actual_str, expected_str = _text_pair(actual, expected, case_insensitive)
    return actual_str.endswith(expected_str)


def is_in_list(actual: Any, expected: Any, case_insensitive: bool = False) -> bool:
    if not isinstance(expected, (list, tuple, set, frozenset)):
        return False
    needle = _fold(actual, case_insensitive)
    return any(_strict_equals(needle, _fold(item, case_insensitive)) for item in expected)


def is_between(actual: Any, expected: Any) -> bool:
    """Inclusive range check; a malformed range is simply false."""
    if not isinstance(expected, dict) or "min" not in expected or "max" not in expected:
        return False
    return to_number(expected["min"]) <= to_number(actual) <= to_number(expected["max"])


def matches_regex(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, str):
        return False
    try:
        pattern = re.compile(expected)
    except re.error:
        return False
    return pattern.search(to_string(actual)) is not None


def _days_since_compare(counter: Callable[..., int], greater: bool) -> OperatorCallable:
    def check(actual: Any, expected: Any, condition: RuleCondition, context: RuleExecutionContext) -> bool:
        actual_date = to_date(actual)
        if actual_date is None:
            return False
        elapsed = counter(actual_date, reference=context.timestamp)
        threshold = to_number(expected)
        return elapsed > threshold if greater else elapsed < threshold

    return check


OPERATORS: dict[RuleOperator, OperatorCallable] = {
    RuleOperator.EQUALS: lambda a, e, c, ctx: compare_equals(a, e, c.case_insensitive),
    RuleOperator.NOT_EQUALS: lambda a, e, c, ctx: not compare_equals(a, e, c.case_insensitive),
    RuleOperator.GREATER_THAN: lambda a, e, c, ctx: to_number(a) > to_number(e),
    RuleOperator.LESS_THAN: lambda a, e, c, ctx: to_number(a) < to_number(e),
    RuleOperator.GREATER_THAN_OR_EQUALS: lambda a, e, c, ctx: to_number(a) >= to_number(e),
    RuleOperator.LESS_THAN_OR_EQUALS: lambda a, e, c, ctx: to_number(a) <= to_number(e),
    RuleOperator.CONTAINS: lambda a, e, c, ctx: contains_value(a, e, c.case_insensitive),
    RuleOperator.NOT_CONTAINS: lambda a, e, c, ctx: not contains_value(a, e, c.case_insensitive),
    RuleOperator.STARTS_WITH: lambda a, e, c, ctx: starts_with_value(a, e, c.case_insensitive),
    RuleOperator.ENDS_WITH: lambda a, e, c, ctx: ends_with_value(a, e, c.case_insensitive),
    RuleOperator.IN_LIST: lambda a, e, c, ctx: is_in_list(a, e, c.case_insensitive),
    RuleOperator.NOT_IN_LIST: lambda a, e, c, ctx: not is_in_list(a, e, c.case_insensitive),
    RuleOperator.BETWEEN: lambda a, e, c, ctx: is_between(a, e),
    RuleOperator.IS_NULL: lambda a, e, c, ctx: a is None,
    RuleOperator.IS_NOT_NULL: lambda a, e, c, ctx: a is not None,
    RuleOperator.REGEX: lambda a, e, c, ctx: matches_regex(a, e),
    RuleOperator.DAYS_SINCE_GREATER_THAN: _days_since_compare(days_since, greater=True),
    RuleOperator.DAYS_SINCE_LESS_THAN: _days_since_compare(days_since, greater=False),
    RuleOperator.BUSINESS_DAYS_SINCE_GREATER_THAN: _days_since_compare(
        business_days_since, greater=True
    ),
    RuleOperator.BUSINESS_DAYS_SINCE_LESS_THAN: _days_since_compare(
        business_days_since, greater=False
    ),
}


def evaluate_condition(
    condition: RuleCondition, context: RuleExecutionContext
) -> ConditionEvaluationResult:
    """Evaluate a single leaf condition against the context entity."""
    actual_value = None
    expected_value = condition.value
    try:
        actual_value = get_nested_value(context.entity, condition.field)

        try:
            check = OPERATORS[RuleOperator(condition.operator)]
        except ValueError:
            return ConditionEvaluationResult(
                condition=condition,
                passed=False,
                actual_value=actual_value,
                expected_value=expected_value,
                error=f"Unknown operator: {condition.operator}",
            )

        passed = bool(check(actual_value, expected_value, condition, context))
        if condition.negate:
            passed = not passed
        logger.debug(f"Condition {condition.field} {condition.operator} -> {passed}")

        return ConditionEvaluationResult(
            condition=condition,
            passed=passed,
            actual_value=actual_value,
            expected_value=expected_value,
        )
    except Exception as e:
        logger.warning(
            f"Condition on '{condition.field}' ({condition.operator}) failed to evaluate: {e}",
            exc_info=True,
        )
        return ConditionEvaluationResult(
            condition=condition,
            passed=False,
            actual_value=actual_value,
            expected_value=expected_value,
            error=str(e) or type(e).__name__,
        )


def evaluate(
    condition: RuleCondition | RuleConditionGroup, context: RuleExecutionContext
) -> ConditionEvaluationResult:
    if isinstance(condition, RuleConditionGroup):
        return evaluate_condition_group(condition, context)
    return evaluate_condition(condition, context)


def _combine(results: Sequence[ConditionEvaluationResult], operator: LogicalOperator | str) -> bool:
    if operator == LogicalOperator.OR:
        return any(r.passed for r in results)
    return all(r.passed for r in results)


def evaluate_condition_group(
    group: RuleConditionGroup, context: RuleExecutionContext
) -> ConditionEvaluationResult:
    """Evaluate every member of a group, then combine with AND/OR."""
    results = [evaluate(member, context) for member in group.conditions]
    return ConditionEvaluationResult(
        condition=group,
        passed=_combine(results, group.logical_operator),
        results=results,
    )


def evaluate_conditions(
    conditions: Sequence[RuleCondition | RuleConditionGroup],
    context: RuleExecutionContext,
    logical_operator: LogicalOperator | str = LogicalOperator.AND,
) -> tuple[bool, list[ConditionEvaluationResult]]:
    """Evaluate a rule's top-level conditions.

    Returns:
        (passed, results) where results holds one entry per top-level item
    """
    results = [evaluate(condition, context) for condition in conditions]
    return _combine(results, logical_operator), results
