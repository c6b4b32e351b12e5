"""
SQLAlchemy-backed collection adapter.

Maps a declarative model onto the Collection interface: documents are dicts
of the model's column attributes and filters are compiled into SQL
expressions. Every call runs on the Starlette threadpool with its own
short-lived Session, so concurrent calls from one request never share a
session.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import String, and_, cast, false, func, inspect as sa_inspect, not_, or_, select, true
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from resourcekit.db.collection import Collection, Document, Filter, set_fields
from resourcekit.db.filters import (
    UnsupportedFilter,
    check_operator,
    coerce_to,
    is_operator_mapping,
    operand_list,
    sub_filters,
)

logger = logging.getLogger(__name__)

_UNCOERCIBLE = object()


class SqlCollection(Collection):
    def __init__(self, model, session_factory: sessionmaker, *, order_by: Optional[Sequence[str]] = None):
        self.model = model
        self._session_factory = session_factory
        mapper = sa_inspect(model)
        self._columns = {attr.key: attr.columns[0] for attr in mapper.column_attrs}
        pk = mapper.primary_key
        if len(pk) != 1:
            raise ValueError(f"{model.__name__} must have exactly one primary key column")
        self.primary_key = mapper.get_property_by_column(pk[0]).key
        if order_by is None:
            order_by = [k for k in ("created_at", self.primary_key) if k in self._columns]
        self._order_by = [getattr(model, key) for key in order_by]

    # -- helpers -----------------------------------------------------------

    def _to_document(self, obj) -> Document:
        return {key: getattr(obj, key) for key in self._columns}

    def _coerce(self, column, value: Any) -> Any:
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return value
        try:
            return coerce_to(value, python_type)
        except (TypeError, ValueError):
            return _UNCOERCIBLE

    def _values(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in document.items():
            column = self._columns.get(key)
            if column is None:
                logger.debug("%s: dropping unknown field %r", self.model.__name__, key)
                continue
            coerced = self._coerce(column, value)
            values[key] = value if coerced is _UNCOERCIBLE else coerced
        return values

    # -- filter compilation ------------------------------------------------

    def compile(self, filter: Filter | None):
        """Compile a filter into a SQLAlchemy boolean expression."""
        clauses = []
        for key, condition in (filter or {}).items():
            if key == "$and":
                clauses.append(and_(true(), *[self.compile(sub) for sub in sub_filters(condition, key)]))
            elif key == "$or":
                subs = sub_filters(condition, key)
                if subs:
                    clauses.append(or_(*[self.compile(sub) for sub in subs]))
            elif key.startswith("$"):
                raise UnsupportedFilter(f"Unsupported filter operator: {key}")
            else:
                clauses.append(self._field_clause(key, condition))
        return and_(true(), *clauses)

    def _field_clause(self, field: str, condition: Any):
        column = self._columns.get(field)
        if column is None:
            # Unknown fields are always absent.
            if condition is None or condition == {"$exists": False}:
                return true()
            return false()
        if is_operator_mapping(condition):
            return and_(
                true(),
                *[
                    self._operator_clause(column, op, operand, condition)
                    for op, operand in condition.items()
                    if op != "$options"
                ],
            )
        return self._equals(column, condition)

    def _equals(self, column, value: Any):
        if value is None:
            return column.is_(None)
        coerced = self._coerce(column, value)
        if coerced is _UNCOERCIBLE:
            return false()
        return column == coerced

    def _operator_clause(self, column, op: str, operand: Any, condition: Mapping[str, Any]):
        check_operator(op)
        if op == "$eq":
            return self._equals(column, operand)
        if op == "$ne":
            return not_(self._equals(column, operand)) if operand is None else or_(
                not_(self._equals(column, operand)), column.is_(None)
            )
        if op in ("$in", "$nin"):
            values = [self._coerce(column, v) for v in operand_list(op, operand) if v is not None]
            values = [v for v in values if v is not _UNCOERCIBLE]
            wants_null = any(v is None for v in operand_list(op, operand))
            hit = or_(column.in_(values) if values else false(), column.is_(None) if wants_null else false())
            if op == "$in":
                return hit
            return not_(hit) if wants_null else or_(not_(hit), column.is_(None))
        if op == "$exists":
            return column.is_not(None) if operand else column.is_(None)
        if op == "$regex":
            options = condition.get("$options") or ""
            if set(options) - {"i"}:
                raise UnsupportedFilter(f"Unsupported $regex options for SQL: {options}")
            pattern = ("(?i)" if "i" in options else "") + str(operand)
            target = column
            try:
                if column.type.python_type is not str:
                    target = cast(column, String)
            except NotImplementedError:
                target = cast(column, String)
            return target.regexp_match(pattern)
        coerced = self._coerce(column, operand)
        if coerced is _UNCOERCIBLE or coerced is None:
            return false()
        if op == "$gt":
            return column > coerced
        if op == "$gte":
            return column >= coerced
        if op == "$lt":
            return column < coerced
        return column <= coerced

    def _select(self, filter: Filter):
        return select(self.model).where(self.compile(filter)).order_by(*self._order_by)

    # -- Collection interface ----------------------------------------------

    async def find(self, filter: Filter, *, skip: int = 0, limit: Optional[int] = None) -> List[Document]:
        stmt = self._select(filter).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        def _run() -> List[Document]:
            with self._session_factory() as session:
                return [self._to_document(obj) for obj in session.scalars(stmt).all()]

        return await run_in_threadpool(_run)

    async def find_one(self, filter: Filter) -> Optional[Document]:
        stmt = self._select(filter).limit(1)

        def _run() -> Optional[Document]:
            with self._session_factory() as session:
                obj = session.scalars(stmt).first()
                return None if obj is None else self._to_document(obj)

        return await run_in_threadpool(_run)

    async def create(self, document: Mapping[str, Any]) -> Document:
        values = self._values(document)

        def _run() -> Document:
            with self._session_factory() as session:
                obj = self.model(**values)
                session.add(obj)
                session.commit()
                session.refresh(obj)
                return self._to_document(obj)

        return await run_in_threadpool(_run)

    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any]) -> Optional[Document]:
        changes = self._values(set_fields(update))
        stmt = self._select(filter).limit(1)

        def _run() -> Optional[Document]:
            with self._session_factory() as session:
                obj = session.scalars(stmt).first()
                if obj is None:
                    return None
                for key, value in changes.items():
                    setattr(obj, key, value)
                session.commit()
                session.refresh(obj)
                return self._to_document(obj)

        return await run_in_threadpool(_run)

    async def find_one_and_delete(self, filter: Filter) -> Optional[Document]:
        stmt = self._select(filter).limit(1)

        def _run() -> Optional[Document]:
            with self._session_factory() as session:
                obj = session.scalars(stmt).first()
                if obj is None:
                    return None
                doc = self._to_document(obj)
                session.delete(obj)
                session.commit()
                return doc

        return await run_in_threadpool(_run)

    async def count(self, filter: Filter) -> int:
        stmt = select(func.count()).select_from(self.model).where(self.compile(filter))

        def _run() -> int:
            with self._session_factory() as session:
                return int(session.scalar(stmt) or 0)

        return await run_in_threadpool(_run)
