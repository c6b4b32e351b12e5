"""
Static resource configuration.

A ``ResourceConfig`` is built once at startup and frozen: every per-operation
mapping is wrapped in a read-only proxy and plain callables are adapted into
hook objects. Controllers read it; nothing writes to it after construction.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from resourcekit.db.collection import Collection
from resourcekit.hooks import (
    BODY_OPERATIONS,
    QUERY_OPERATIONS,
    BodyTransformer,
    FieldUniquenessPolicy,
    FilterRewriter,
    Operation,
    PassthroughBodyTransformer,
    PassthroughFilterRewriter,
    PassthroughQueryTransformer,
    QueryTransformer,
    UniquenessPolicy,
    as_body_transformer,
    as_filter_rewriter,
    as_query_transformer,
)

DEFAULT_ID_FIELD = "id"

Middleware = Callable[..., Any]


@dataclass(frozen=True)
class OperationChecks:
    """Validation policy for one operation.

    ``id_field`` overrides the resource-wide identifier field;
    ``unique_fields`` applies to CREATE/UPDATE; ``search_fields`` and
    ``filter_rewriter`` apply to LIST.
    """

    id_field: Optional[str] = None
    unique_fields: Tuple[str, ...] = ()
    search_fields: Tuple[str, ...] = ()
    filter_rewriter: Optional[Any] = None
    uniqueness: Optional[UniquenessPolicy] = None

    def __post_init__(self):
        object.__setattr__(self, "unique_fields", tuple(self.unique_fields))
        object.__setattr__(self, "search_fields", tuple(self.search_fields))
        object.__setattr__(self, "filter_rewriter", as_filter_rewriter(self.filter_rewriter))
        if self.uniqueness is None:
            object.__setattr__(self, "uniqueness", FieldUniquenessPolicy(self.unique_fields))

    @property
    def rewrites_filter(self) -> bool:
        return not isinstance(self.filter_rewriter, PassthroughFilterRewriter)


_DEFAULT_CHECKS = OperationChecks()
_PASSTHROUGH_QUERY = PassthroughQueryTransformer()
_PASSTHROUGH_BODY = PassthroughBodyTransformer()


def _operation_map(raw: Mapping[Any, Any] | None, kind: str) -> dict:
    result = {}
    for key, value in (raw or {}).items():
        try:
            op = Operation.parse(key)
        except ValueError as exc:
            raise ValueError(f"{kind}: {exc}") from None
        result[op] = value
    return result


@dataclass(frozen=True)
class ResourceConfig:
    name: str
    route_prefix: str
    collection: Collection
    logging: bool = False
    id_field: str = DEFAULT_ID_FIELD
    max_limit: Optional[int] = None
    middlewares: Mapping[Any, Sequence[Middleware]] = field(default_factory=dict)
    query_transformers: Mapping[Any, Any] = field(default_factory=dict)
    body_transformers: Mapping[Any, Any] = field(default_factory=dict)
    checks: Mapping[Any, Any] = field(default_factory=dict)

    def __post_init__(self):
        prefix = (self.route_prefix or "").strip().strip("/")
        if not prefix:
            raise ValueError(f"{self.name}: route_prefix must not be empty")
        object.__setattr__(self, "route_prefix", "/" + prefix)
        if not self.id_field:
            raise ValueError(f"{self.name}: id_field must not be empty")

        middlewares = {}
        for op, chain in _operation_map(self.middlewares, "middlewares").items():
            chain = tuple(chain or ())
            for fn in chain:
                if not callable(fn):
                    raise TypeError(f"{self.name}: middleware for {op.value} is not callable: {fn!r}")
            middlewares[op] = chain

        query_transformers = {}
        for op, hook in _operation_map(self.query_transformers, "query_transformers").items():
            if op not in QUERY_OPERATIONS:
                raise ValueError(f"{self.name}: query transformers are not supported for {op.value}")
            query_transformers[op] = as_query_transformer(hook)

        body_transformers = {}
        for op, hook in _operation_map(self.body_transformers, "body_transformers").items():
            if op not in BODY_OPERATIONS:
                raise ValueError(f"{self.name}: body transformers are not supported for {op.value}")
            body_transformers[op] = as_body_transformer(hook)

        checks = {}
        for op, value in _operation_map(self.checks, "checks").items():
            if isinstance(value, Mapping):
                value = OperationChecks(**value)
            elif not isinstance(value, OperationChecks):
                raise TypeError(f"{self.name}: checks for {op.value} must be OperationChecks or a mapping")
            if value.unique_fields and op not in BODY_OPERATIONS:
                raise ValueError(f"{self.name}: unique_fields are only checked on CREATE and UPDATE, not {op.value}")
            if (value.search_fields or value.rewrites_filter) and op is not Operation.LIST:
                raise ValueError(f"{self.name}: search_fields and filter_rewriter only apply to LIST, not {op.value}")
            checks[op] = value

        object.__setattr__(self, "middlewares", MappingProxyType(middlewares))
        object.__setattr__(self, "query_transformers", MappingProxyType(query_transformers))
        object.__setattr__(self, "body_transformers", MappingProxyType(body_transformers))
        object.__setattr__(self, "checks", MappingProxyType(checks))

    def identifier_field(self, operation: Operation) -> str:
        override = self.checks_for(operation).id_field
        return override or self.id_field or DEFAULT_ID_FIELD

    def middlewares_for(self, operation: Operation) -> Tuple[Middleware, ...]:
        return self.middlewares.get(operation, ())

    def query_transformer(self, operation: Operation) -> QueryTransformer:
        return self.query_transformers.get(operation, _PASSTHROUGH_QUERY)

    def body_transformer(self, operation: Operation) -> BodyTransformer:
        return self.body_transformers.get(operation, _PASSTHROUGH_BODY)

    def checks_for(self, operation: Operation) -> OperationChecks:
        return self.checks.get(operation, _DEFAULT_CHECKS)

    def filter_rewriter(self) -> FilterRewriter:
        return self.checks_for(Operation.LIST).filter_rewriter
