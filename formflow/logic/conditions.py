"""Condition evaluation for conditional visibility.

`evaluate()` maps (value, operator, comparand) to a boolean. It never raises:
missing values behave as the empty string, non-numeric operands make every
numeric comparison False and unknown operators evaluate to False.
"""

from __future__ import annotations

from typing import Any, Iterable
import json
import math
import re

from formflow.models.conditions import Combinator, Operator

_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_PREFIXED_INT_RE = re.compile(r"^0([xX][0-9a-fA-F]+|[bB][01]+|[oO][0-7]+)$")
_INFINITY = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


def to_text(value: Any) -> str:
    """Render a value the way form inputs present it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def to_number(value: Any) -> float:
    """Coerce to a float; NaN when the value is not numeric.

    Blank strings count as zero, booleans as 1/0.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = to_text(value).strip()
    if not text:
        return 0.0
    if text in _INFINITY:
        return _INFINITY[text]
    if _DECIMAL_RE.match(text):
        return float(text)
    if _PREFIXED_INT_RE.match(text):
        return float(int(text, 0))
    return math.nan


def evaluate(value: Any, operator: str, comparand: Any = None) -> bool:
    """Evaluate a single predicate.

    String operators compare case-insensitively. `is_empty`/`is_not_empty`
    ignore the comparand.
    """
    if value is None:
        value = ""

    if operator in Operator.EMPTINESS:
        empty = value == ""
        return empty if operator == Operator.IS_EMPTY else not empty

    if operator in Operator.STRING:
        left = to_text(value).lower()
        right = to_text(comparand).lower()
        if operator == Operator.EQUALS:
            return left == right
        if operator == Operator.NOT_EQUALS:
            return left != right
        if operator == Operator.CONTAINS:
            return right in left
        if operator == Operator.NOT_CONTAINS:
            return right not in left
        if operator == Operator.STARTS_WITH:
            return left.startswith(right)
        return left.endswith(right)

    if operator in Operator.NUMERIC:
        # Comparisons involving NaN are False for every operator
        left_n = to_number(value)
        right_n = to_number(comparand)
        if operator == Operator.GREATER_THAN:
            return left_n > right_n
        if operator == Operator.LESS_THAN:
            return left_n < right_n
        if operator == Operator.GREATER_EQUAL:
            return left_n >= right_n
        return left_n <= right_n

    return False


def combine(results: Iterable[bool], combinator: str) -> bool:
    """Combine predicate results; an empty group is always True.

    An unrecognised combinator yields the first result.
    """
    values = list(results)
    if not values:
        return True
    if combinator == Combinator.AND:
        return all(values)
    if combinator == Combinator.OR:
        return any(values)
    return values[0]


def needs_comparand(operator: str) -> bool:
    return operator not in Operator.EMPTINESS


__all__ = ["to_text", "to_number", "evaluate", "combine", "needs_comparand"]
