"""
Hook pipeline: the extension points a resource may plug into.

Each hook kind has a small interface and a pass-through default, so the
controller never has to check whether a hook was supplied:

- ``QueryTransformer`` rewrites or rejects query/path input (LIST, GET_BY_ID, GET_ONE).
- ``BodyTransformer`` rewrites or rejects request bodies (CREATE, UPDATE).
- ``FilterRewriter`` rewrites the base LIST filter before search is merged in.
- ``UniquenessPolicy`` looks for existing documents that would clash with a body.

Plain callables are accepted wherever a hook is expected and are wrapped in
the matching adapter. A transformer callable receives ``(value, context)`` and
returns a ``TransformResult`` or a ``(value, accepted)`` tuple, optionally
from a coroutine.
"""
from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from resourcekit.db.collection import Collection
from resourcekit.errors import UniquenessConflict

_OPERATION_ALIASES = {"GET_ALL": "LIST"}


class Operation(str, Enum):
    LIST = "LIST"
    GET_BY_ID = "GET_BY_ID"
    GET_ONE = "GET_ONE"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: Union["Operation", str]) -> "Operation":
        if isinstance(value, Operation):
            return value
        key = str(value).strip().upper()
        key = _OPERATION_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown operation: {value!r}") from None


QUERY_OPERATIONS = frozenset({Operation.LIST, Operation.GET_BY_ID, Operation.GET_ONE})
BODY_OPERATIONS = frozenset({Operation.CREATE, Operation.UPDATE})


@dataclass
class OperationContext:
    """Per-request state handed to every hook. Never shared across requests."""

    operation: Operation
    request: Any = None
    response: Any = None
    identity: Any = None
    raw: Any = None


@dataclass(frozen=True)
class TransformResult:
    value: Any
    accepted: bool = True

    @classmethod
    def reject(cls, value: Any = None) -> "TransformResult":
        return cls(value=value, accepted=False)


TransformOutcome = Union[TransformResult, Tuple[Any, bool]]


async def _resolve(outcome: Any) -> Any:
    if inspect.isawaitable(outcome):
        return await outcome
    return outcome


def _as_result(outcome: Any) -> TransformResult:
    if isinstance(outcome, TransformResult):
        return outcome
    if isinstance(outcome, tuple) and len(outcome) == 2:
        value, accepted = outcome
        return TransformResult(value=value, accepted=bool(accepted))
    raise TypeError("Transformers must return a TransformResult or a (value, accepted) tuple")


# -- transformers ------------------------------------------------------------

class QueryTransformer(ABC):
    @abstractmethod
    def transform(self, query: Dict[str, Any], context: OperationContext) -> TransformOutcome | Awaitable[TransformOutcome]:
        """Return the (possibly rewritten) query and whether it is accepted."""

    async def apply(self, query: Dict[str, Any], context: OperationContext) -> TransformResult:
        return _as_result(await _resolve(self.transform(query, context)))


class BodyTransformer(ABC):
    @abstractmethod
    def transform(self, body: Dict[str, Any], context: OperationContext) -> TransformOutcome | Awaitable[TransformOutcome]:
        """Return the (possibly rewritten) body and whether it is accepted."""

    async def apply(self, body: Dict[str, Any], context: OperationContext) -> TransformResult:
        return _as_result(await _resolve(self.transform(body, context)))


class PassthroughQueryTransformer(QueryTransformer):
    def transform(self, query, context):
        return TransformResult(query)


class PassthroughBodyTransformer(BodyTransformer):
    def transform(self, body, context):
        return TransformResult(body)


class CallableQueryTransformer(QueryTransformer):
    def __init__(self, func: Callable[[Dict[str, Any], OperationContext], Any]):
        self.func = func

    def transform(self, query, context):
        return self.func(query, context)


class CallableBodyTransformer(BodyTransformer):
    def __init__(self, func: Callable[[Dict[str, Any], OperationContext], Any]):
        self.func = func

    def transform(self, body, context):
        return self.func(body, context)


# -- filter rewriting ----------------------------------------------------------

class FilterRewriter(ABC):
    @abstractmethod
    def rewrite(self, filter: Dict[str, Any], context: OperationContext) -> Dict[str, Any] | Awaitable[Dict[str, Any]]:
        """Return the filter LIST should use in place of ``filter``."""

    async def apply(self, filter: Dict[str, Any], context: OperationContext) -> Dict[str, Any]:
        rewritten = await _resolve(self.rewrite(filter, context))
        if not isinstance(rewritten, Mapping):
            raise TypeError("Filter rewriters must return a mapping")
        return dict(rewritten)


class PassthroughFilterRewriter(FilterRewriter):
    def rewrite(self, filter, context):
        return filter


class CallableFilterRewriter(FilterRewriter):
    def __init__(self, func: Callable[[Dict[str, Any], OperationContext], Any]):
        self.func = func

    def rewrite(self, filter, context):
        return self.func(filter, context)


# -- fan-out ---------------------------------------------------------------------

async def gather_settled(*calls: Awaitable[Any]) -> List[Any]:
    """Await every call, then re-raise the first failure in argument order."""
    results = await asyncio.gather(*calls, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


# -- uniqueness ------------------------------------------------------------------

class UniquenessPolicy(ABC):
    fields: Tuple[str, ...] = ()

    @abstractmethod
    async def find_conflicts(self, collection: Collection, body: Mapping[str, Any]) -> List[str]:
        """Return the names of fields whose value already exists in ``collection``."""


class FieldUniquenessPolicy(UniquenessPolicy):
    """One ``find_one`` per declared field, issued concurrently.

    Conflicts are decided once every lookup has settled. Fields whose body
    value is empty are not checked.
    """

    def __init__(self, fields: Iterable[str] = ()):
        self.fields = tuple(fields)

    async def find_conflicts(self, collection, body):
        checked = [name for name in self.fields if body.get(name)]
        if not checked:
            return []
        found = await gather_settled(*(collection.find_one({name: body[name]}) for name in checked))
        return [name for name, doc in zip(checked, found) if doc is not None]


async def ensure_unique(policy: UniquenessPolicy, collection: Collection, body: Mapping[str, Any]) -> None:
    conflicts = await policy.find_conflicts(collection, body)
    if conflicts:
        raise UniquenessConflict(conflicts)


# -- coercion from configuration values ------------------------------------------

def _adapt(hook: Any, interface: type, default: type, adapter: type, kind: str):
    if hook is None:
        return default()
    if isinstance(hook, interface):
        return hook
    if callable(hook):
        return adapter(hook)
    raise TypeError(f"{kind} must be a {interface.__name__} or a callable, got {type(hook).__name__}")


def as_query_transformer(hook: Optional[Any]) -> QueryTransformer:
    return _adapt(hook, QueryTransformer, PassthroughQueryTransformer, CallableQueryTransformer, "Query transformer")


def as_body_transformer(hook: Optional[Any]) -> BodyTransformer:
    return _adapt(hook, BodyTransformer, PassthroughBodyTransformer, CallableBodyTransformer, "Body transformer")


def as_filter_rewriter(hook: Optional[Any]) -> FilterRewriter:
    return _adapt(hook, FilterRewriter, PassthroughFilterRewriter, CallableFilterRewriter, "Filter rewriter")
