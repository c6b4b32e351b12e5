"""
Filter dialect shared by all collection adapters.

A filter is a mapping of field names to either a literal (equality) or an
operator mapping such as ``{"$regex": "foo", "$options": "i"}``. Top-level
``$and`` / ``$or`` take a list of sub-filters. This module holds the
in-process evaluator used by the memory adapter and the value coercion rules
the SQL adapter shares with it.
"""
from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping

LOGICAL_OPERATORS = ("$and", "$or")
COMPARISON_OPERATORS = ("$gt", "$gte", "$lt", "$lte")
FIELD_OPERATORS = (
    "$eq",
    "$ne",
    "$in",
    "$nin",
    "$exists",
    "$regex",
    "$options",
) + COMPARISON_OPERATORS

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


class UnsupportedFilter(ValueError):
    """Raised when a filter uses an operator outside the dialect."""


def is_operator_mapping(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


def check_operator(op: str) -> None:
    if op not in FIELD_OPERATORS:
        raise UnsupportedFilter(f"Unsupported filter operator: {op}")


def sub_filters(condition: Any, op: str) -> List[Mapping[str, Any]]:
    """Return the clause list of a ``$and`` / ``$or`` entry."""
    if not isinstance(condition, (list, tuple)) or not all(isinstance(c, Mapping) for c in condition):
        raise UnsupportedFilter(f"{op} expects a list of filters")
    return list(condition)


def regex_flags(options: str | None) -> int:
    flags = 0
    for char in options or "":
        if char not in _REGEX_FLAGS:
            raise UnsupportedFilter(f"Unsupported $regex option: {char}")
        flags |= _REGEX_FLAGS[char]
    return flags


def operand_list(op: str, operand: Any) -> List[Any]:
    if isinstance(operand, (str, bytes)) or not isinstance(operand, Iterable):
        raise UnsupportedFilter(f"{op} expects a list of values")
    return list(operand)


def coerce_to(value: Any, python_type: type) -> Any:
    """Coerce a string filter value (query/path input) to ``python_type``.

    Non-string values are returned untouched. Raises ValueError or TypeError
    when the string cannot represent the target type.
    """
    if not isinstance(value, str) or python_type is str:
        return value
    if python_type is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if python_type is datetime:
        return datetime.fromisoformat(value)
    if python_type is date:
        return date.fromisoformat(value)
    if python_type in (int, float, uuid.UUID):
        return python_type(value)
    return value


def coerce_like(value: Any, sample: Any) -> Any:
    """Coerce ``value`` to the type of a stored ``sample`` value."""
    if sample is None:
        return value
    return coerce_to(value, type(sample))


def _equals(stored: Any, wanted: Any) -> bool:
    if wanted is None:
        return stored is None
    try:
        wanted = coerce_like(wanted, stored)
    except (TypeError, ValueError):
        return False
    return stored == wanted


def _compare(op: str, stored: Any, operand: Any) -> bool:
    if stored is None:
        return False
    try:
        operand = coerce_like(operand, stored)
        if op == "$gt":
            return stored > operand
        if op == "$gte":
            return stored >= operand
        if op == "$lt":
            return stored < operand
        return stored <= operand
    except (TypeError, ValueError):
        return False


def _apply(op: str, operand: Any, condition: Mapping[str, Any], present: bool, stored: Any) -> bool:
    check_operator(op)
    if op == "$eq":
        return _equals(stored, operand)
    if op == "$ne":
        return not _equals(stored, operand)
    if op == "$in":
        return any(_equals(stored, v) for v in operand_list(op, operand))
    if op == "$nin":
        return not any(_equals(stored, v) for v in operand_list(op, operand))
    if op == "$exists":
        return present == bool(operand)
    if op == "$regex":
        flags = regex_flags(condition.get("$options"))
        if not present or stored is None:
            return False
        return re.search(str(operand), str(stored), flags) is not None
    return _compare(op, stored, operand)


def _match_field(document: Mapping[str, Any], field: str, condition: Any) -> bool:
    present = field in document
    stored = document.get(field)
    if is_operator_mapping(condition):
        return all(
            _apply(op, operand, condition, present, stored)
            for op, operand in condition.items()
            if op != "$options"
        )
    return _equals(stored, condition)


def matches(document: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """Return True when ``document`` satisfies ``filter``."""
    for key, condition in (filter or {}).items():
        if key == "$and":
            if not all(matches(document, sub) for sub in sub_filters(condition, key)):
                return False
        elif key == "$or":
            clauses = sub_filters(condition, key)
            if clauses and not any(matches(document, sub) for sub in clauses):
                return False
        elif key.startswith("$"):
            raise UnsupportedFilter(f"Unsupported filter operator: {key}")
        elif not _match_field(document, key, condition):
            return False
    return True
