import json
import math
from collections import defaultdict
from typing import Any, Callable, List, Optional


def stringify(value: Any) -> str:
    """
    Converts a context or rule value to the string form that operators compare. The conversion
    matches the other Kitbase SDKs, so the same rule gives the same answer everywhere.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


def parse_number(value: str) -> Optional[float]:
    try:
        number = float(value)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _list_values(rule_value: str) -> List[str]:
    return [item.strip() for item in rule_value.split(',')]


def _numeric_operator(context_value: str, rule_value: str, fn: Callable[[float, float], bool]) -> bool:
    a = parse_number(context_value)
    b = parse_number(rule_value)
    return a is not None and b is not None and fn(a, b)


def _eq(context_value: str, rule_value: str) -> bool:
    return context_value == rule_value


def _neq(context_value: str, rule_value: str) -> bool:
    return context_value != rule_value


def _contains(context_value: str, rule_value: str) -> bool:
    return rule_value in context_value


def _not_contains(context_value: str, rule_value: str) -> bool:
    return rule_value not in context_value


def _starts_with(context_value: str, rule_value: str) -> bool:
    return context_value.startswith(rule_value)


def _ends_with(context_value: str, rule_value: str) -> bool:
    return context_value.endswith(rule_value)


def _greater_than(context_value: str, rule_value: str) -> bool:
    return _numeric_operator(context_value, rule_value, lambda a, b: a > b)


def _greater_than_or_equal(context_value: str, rule_value: str) -> bool:
    return _numeric_operator(context_value, rule_value, lambda a, b: a >= b)


def _less_than(context_value: str, rule_value: str) -> bool:
    return _numeric_operator(context_value, rule_value, lambda a, b: a < b)


def _less_than_or_equal(context_value: str, rule_value: str) -> bool:
    return _numeric_operator(context_value, rule_value, lambda a, b: a <= b)


def _in(context_value: str, rule_value: str) -> bool:
    return context_value in _list_values(rule_value)


def _not_in(context_value: str, rule_value: str) -> bool:
    return context_value not in _list_values(rule_value)


ops = {
    "eq": _eq,
    "neq": _neq,
    "contains": _contains,
    "not_contains": _not_contains,
    "starts_with": _starts_with,
    "ends_with": _ends_with,
    "gt": _greater_than,
    "gte": _greater_than_or_equal,
    "lt": _less_than,
    "lte": _less_than_or_equal,
    "in": _in,
    "not_in": _not_in,
}


def __default_factory():
    return lambda _l, _r: False


ops = defaultdict(__default_factory, ops)


def match(operator: str, context_value: Any, rule_value: Any) -> bool:
    """
    Applies a segment operator. ``exists`` and ``not_exists`` look at whether the attribute is
    present at all; every other operator compares string forms. Unknown operators never match.
    """
    if operator == 'exists':
        return context_value is not None
    if operator == 'not_exists':
        return context_value is None
    return ops[operator](stringify(context_value), stringify(rule_value))
