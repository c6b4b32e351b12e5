"""
Filter/query builder for LIST requests.

Turns raw query-string input into a store filter plus pagination. Malformed
numbers never raise: they degrade to the defaults.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from resourcekit.hooks import FilterRewriter, OperationContext, PassthroughFilterRewriter

RESERVED_KEYS = ("page", "limit", "search")
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
# Keeps (page - 1) * limit inside a signed 64-bit offset.
MAX_PAGE_VALUE = 2**31 - 1

_LEADING_INT = re.compile(r"^\s*([+-]?\d{1,18})")


@dataclass(frozen=True)
class PaginationState:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def parse_page_value(raw: Any, default: int) -> int:
    """Parse a leading integer (``"12abc"`` -> 12, ``"2.5"`` -> 2).

    Missing, unparseable or zero input yields ``default``; the result is
    clamped to ``1..MAX_PAGE_VALUE``.
    """
    if isinstance(raw, bool):
        raw = None
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(str(raw)) if raw is not None else None
        value = int(match.group(1)) if match else 0
    return min(max(1, value or default), MAX_PAGE_VALUE)


def paginate(query: Mapping[str, Any], max_limit: Optional[int] = None) -> PaginationState:
    page = parse_page_value(query.get("page"), DEFAULT_PAGE)
    limit = parse_page_value(query.get("limit"), DEFAULT_LIMIT)
    if max_limit is not None:
        limit = min(limit, max(1, max_limit))
    return PaginationState(page=page, limit=limit)


def build_search_filter(search: Any, fields: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Case-insensitive substring match of ``search`` over any of ``fields``."""
    fields = tuple(fields)
    term = "" if search is None else str(search)
    if not term or not fields:
        return None
    pattern = re.escape(term)
    return {"$or": [{name: {"$regex": pattern, "$options": "i"}} for name in fields]}


def combine_filters(base: Mapping[str, Any], search: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not search:
        return dict(base)
    if "$or" in base:
        return {"$and": [dict(base), dict(search)]}
    combined = dict(base)
    combined.update(search)
    return combined


def split_reserved(query: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split query input into (reserved keys, remaining equality filter)."""
    reserved = {k: v for k, v in query.items() if k in RESERVED_KEYS}
    base = {k: v for k, v in query.items() if k not in RESERVED_KEYS}
    return reserved, base


async def build_list_query(
    query: Mapping[str, Any],
    *,
    search_fields: Iterable[str] = (),
    rewriter: Optional[FilterRewriter] = None,
    context: Optional[OperationContext] = None,
    max_limit: Optional[int] = None,
) -> Tuple[Dict[str, Any], PaginationState]:
    """Return the store filter and pagination for a LIST request."""
    reserved, base = split_reserved(query)
    rewriter = rewriter or PassthroughFilterRewriter()
    base = await rewriter.apply(base, context)
    search = build_search_filter(reserved.get("search"), search_fields)
    return combine_filters(base, search), paginate(reserved, max_limit)
