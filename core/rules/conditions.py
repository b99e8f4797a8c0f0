"""
Condition evaluation shared by strategy conditions, trigger conditions and
segment criteria.

An operator this module does not know evaluates to False instead of raising.
Callers rely on that safe default, so new operators must be added here
explicitly rather than changing the fallback.
"""

from typing import Any
from core.domain.enums import Operator


def _as_operator(operator: Any) -> Operator | None:
    try:
        return Operator(operator)
    except ValueError:
        return None


def compare(actual: Any, operator: Any, expected: Any) -> bool:
    """Return True when ``actual <operator> expected`` holds"""
    op = _as_operator(operator)
    if op is None:
        return False

    try:
        if op is Operator.EQUALS:
            return actual == expected
        if op is Operator.NOT_EQUALS:
            return actual != expected
        if op is Operator.GREATER_THAN:
            return actual > expected
        if op is Operator.LESS_THAN:
            return actual < expected
        if op is Operator.IN:
            return isinstance(expected, (list, tuple, set, frozenset)) and actual in expected
        if op is Operator.BETWEEN:
            if not isinstance(expected, (list, tuple)) or len(expected) != 2:
                return False
            low, high = expected
            return low <= actual <= high
        if op is Operator.CONTAINS:
            return str(expected) in str(actual)
    except TypeError:
        # None > 5, "gold" < 3 ...
        return False
    return False
