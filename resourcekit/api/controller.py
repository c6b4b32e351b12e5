"""
Resource controller.

One controller per resource: derives the six standard routes from a frozen
``ResourceConfig`` and implements their handlers on top of the Collection
interface and the hook pipeline. Each handler runs the same short pipeline
(transform, validate, uniqueness check, persistence call) and always answers
with exactly one envelope; errors never escape the handler.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Tuple

from fastapi import Request, Response, status

from resourcekit.api.responses import Pagination, ResponseEnvelope, failure, ok
from resourcekit.config import Middleware, ResourceConfig
from resourcekit.errors import (
    MissingIdentifier,
    NotFound,
    PersistenceFailure,
    ResourceError,
    ValidationRejected,
)
from resourcekit.hooks import Operation, OperationContext, ensure_unique, gather_settled
from resourcekit.query import build_list_query

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("resourcekit.access")

GET_ONE_SUFFIX = "/find/one"

ROUTE_METHODS: Dict[Operation, str] = {
    Operation.LIST: "GET",
    Operation.GET_ONE: "GET",
    Operation.GET_BY_ID: "GET",
    Operation.CREATE: "POST",
    Operation.UPDATE: "PUT",
    Operation.DELETE: "DELETE",
}

# The literal /find/one route is registered ahead of the /{id} pattern.
ROUTE_ORDER: Tuple[Operation, ...] = (
    Operation.LIST,
    Operation.GET_ONE,
    Operation.GET_BY_ID,
    Operation.CREATE,
    Operation.UPDATE,
    Operation.DELETE,
)

PipelineResult = Tuple[int, ResponseEnvelope]


@dataclass(frozen=True)
class RouteSpec:
    operation: Operation
    method: str
    path: str
    endpoint: Callable[..., Awaitable[Any]]
    middlewares: Tuple[Middleware, ...] = ()


def derive_paths(config: ResourceConfig) -> Dict[Operation, str]:
    prefix = config.route_prefix

    def by_id(op: Operation) -> str:
        return f"{prefix}/{{{config.identifier_field(op)}}}"

    return {
        Operation.LIST: prefix,
        Operation.GET_ONE: prefix + GET_ONE_SUFFIX,
        Operation.GET_BY_ID: by_id(Operation.GET_BY_ID),
        Operation.CREATE: prefix,
        Operation.UPDATE: by_id(Operation.UPDATE),
        Operation.DELETE: by_id(Operation.DELETE),
    }


def _as_mapping(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{what} must be a mapping, got {type(value).__name__}")
    return dict(value)


class ResourceController:
    def __init__(self, config: ResourceConfig):
        self.config = config
        logger.info("Init resource controller - %s", config.name)
        self.routes: List[RouteSpec] = self._derive_routes()
        for route in self.routes:
            logger.info("%s %s", route.method, route.path)

    def _derive_routes(self) -> List[RouteSpec]:
        endpoints = {
            Operation.LIST: self.list_items,
            Operation.GET_ONE: self.get_one,
            Operation.GET_BY_ID: self.get_by_id,
            Operation.CREATE: self.create,
            Operation.UPDATE: self.update,
            Operation.DELETE: self.delete,
        }
        paths = derive_paths(self.config)
        return [
            RouteSpec(
                operation=op,
                method=ROUTE_METHODS[op],
                path=paths[op],
                endpoint=endpoints[op],
                middlewares=self.config.middlewares_for(op),
            )
            for op in ROUTE_ORDER
        ]

    # -- endpoints -----------------------------------------------------------

    async def list_items(self, request: Request, response: Response):
        return await self._handle(Operation.LIST, request, response, self._list)

    async def get_by_id(self, request: Request, response: Response):
        return await self._handle(Operation.GET_BY_ID, request, response, self._get_by_id)

    async def get_one(self, request: Request, response: Response):
        return await self._handle(Operation.GET_ONE, request, response, self._get_one)

    async def create(self, request: Request, response: Response):
        return await self._handle(Operation.CREATE, request, response, self._create)

    async def update(self, request: Request, response: Response):
        return await self._handle(Operation.UPDATE, request, response, self._update)

    async def delete(self, request: Request, response: Response):
        return await self._handle(Operation.DELETE, request, response, self._delete)

    # -- boundary ------------------------------------------------------------

    async def _handle(
        self,
        operation: Operation,
        request: Request,
        response: Response,
        pipeline: Callable[[OperationContext], Awaitable[PipelineResult]],
    ) -> Dict[str, Any]:
        context = OperationContext(
            operation=operation,
            request=request,
            response=response,
            identity=getattr(request.state, "identity", None),
        )
        self._log_request(request)
        try:
            status_code, envelope = await pipeline(context)
        except ResourceError as exc:
            status_code, envelope = exc.status_code, failure(exc.message)
        except Exception as exc:
            logger.exception("%s %s failed", self.config.name, operation.value)
            error = PersistenceFailure(str(exc))
            status_code, envelope = error.status_code, failure(error.message)
        response.status_code = status_code
        return envelope.as_content()

    def _log_request(self, request: Request) -> None:
        if not self.config.logging:
            return
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        access_logger.info(
            '%s - "%s %s" "%s"',
            request.client.host if request.client else "-",
            request.method,
            target,
            request.headers.get("user-agent", "-"),
        )

    async def _read_body(self, context: OperationContext) -> Dict[str, Any]:
        try:
            body = await context.request.json()
        except ValueError:
            raise ValidationRejected("Invalid Body") from None
        if not isinstance(body, dict):
            raise ValidationRejected("Invalid Body")
        return body

    def _identifier(self, context: OperationContext, params: Mapping[str, Any]) -> Tuple[str, Any]:
        field = self.config.identifier_field(context.operation)
        value = params.get(field)
        if value is None or value == "":
            raise MissingIdentifier()
        return field, value

    # -- pipelines -----------------------------------------------------------

    async def _list(self, context: OperationContext) -> PipelineResult:
        context.raw = dict(context.request.query_params)
        result = await self.config.query_transformer(Operation.LIST).apply(context.raw, context)
        if not result.accepted:
            raise ValidationRejected("Invalid Queries")
        query = _as_mapping(result.value, "LIST query")

        checks = self.config.checks_for(Operation.LIST)
        filter, page = await build_list_query(
            query,
            search_fields=checks.search_fields,
            rewriter=checks.filter_rewriter,
            context=context,
            max_limit=self.config.max_limit,
        )
        collection = self.config.collection
        items, total = await gather_settled(
            collection.find(filter, skip=page.skip, limit=page.limit),
            collection.count(filter),
        )
        return status.HTTP_200_OK, ok(items, Pagination(total=total, page=page.page, limit=page.limit))

    async def _get_by_id(self, context: OperationContext) -> PipelineResult:
        context.raw = dict(context.request.path_params)
        result = await self.config.query_transformer(Operation.GET_BY_ID).apply(context.raw, context)
        if not result.accepted:
            raise ValidationRejected("Invalid Params")
        field, value = self._identifier(context, _as_mapping(result.value, "GET_BY_ID params"))
        item = await self.config.collection.find_one({field: value})
        if item is None:
            raise NotFound()
        return status.HTTP_200_OK, ok(item)

    async def _get_one(self, context: OperationContext) -> PipelineResult:
        context.raw = dict(context.request.query_params)
        result = await self.config.query_transformer(Operation.GET_ONE).apply(context.raw, context)
        if not result.accepted:
            raise ValidationRejected("Invalid Queries")
        item = await self.config.collection.find_one(_as_mapping(result.value, "GET_ONE query"))
        if item is None:
            raise NotFound()
        return status.HTTP_200_OK, ok(item)

    async def _create(self, context: OperationContext) -> PipelineResult:
        context.raw = await self._read_body(context)
        result = await self.config.body_transformer(Operation.CREATE).apply(context.raw, context)
        if not result.accepted:
            raise ValidationRejected("Invalid Body")
        body = _as_mapping(result.value, "CREATE body")
        collection = self.config.collection
        await ensure_unique(self.config.checks_for(Operation.CREATE).uniqueness, collection, body)
        item = await collection.create(body)
        return status.HTTP_201_CREATED, ok(item)

    async def _update(self, context: OperationContext) -> PipelineResult:
        field, value = self._identifier(context, context.request.path_params)
        context.raw = await self._read_body(context)
        result = await self.config.body_transformer(Operation.UPDATE).apply(context.raw, context)
        if not result.accepted:
            raise ValidationRejected("Invalid Body")
        body = _as_mapping(result.value, "UPDATE body")
        collection = self.config.collection
        await ensure_unique(self.config.checks_for(Operation.UPDATE).uniqueness, collection, body)
        item = await collection.find_one_and_update({field: value}, {"$set": body})
        if item is None:
            raise NotFound()
        return status.HTTP_200_OK, ok(item)

    async def _delete(self, context: OperationContext) -> PipelineResult:
        field, value = self._identifier(context, context.request.path_params)
        item = await self.config.collection.find_one_and_delete({field: value})
        if item is None:
            raise NotFound()
        return status.HTTP_200_OK, ok(item)
