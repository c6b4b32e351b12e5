"""
Bundled example resources: posts, categories and widgets.

Posts and categories require an authenticated identity for writes; posts
stamp the caller as ``author`` on create. Widgets are open.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from resourcekit.api.auth import require_identity
from resourcekit.config import OperationChecks, ResourceConfig
from resourcekit.db import models
from resourcekit.db.sql import SqlCollection
from resourcekit.hooks import Operation, OperationContext, TransformResult

WRITE_OPERATIONS = (Operation.CREATE, Operation.UPDATE, Operation.DELETE)


def stamp_author(body: Dict[str, Any], context: OperationContext) -> TransformResult:
    identity = context.identity
    if identity is None:
        return TransformResult.reject(body)
    return TransformResult({**body, "author": identity.id})


def build_resources(
    session_factory: sessionmaker,
    *,
    logging: bool = True,
    max_limit: Optional[int] = None,
) -> List[ResourceConfig]:
    auth_on_writes = {op: [require_identity] for op in WRITE_OPERATIONS}
    return [
        ResourceConfig(
            name="Posts",
            route_prefix="/posts",
            collection=SqlCollection(models.Post, session_factory),
            logging=logging,
            max_limit=max_limit,
            middlewares=auth_on_writes,
            checks={
                Operation.LIST: OperationChecks(search_fields=("title", "description")),
                Operation.CREATE: OperationChecks(unique_fields=("title",)),
                Operation.UPDATE: OperationChecks(unique_fields=("title",)),
            },
            body_transformers={Operation.CREATE: stamp_author},
        ),
        ResourceConfig(
            name="Categories",
            route_prefix="/categories",
            collection=SqlCollection(models.Category, session_factory),
            logging=logging,
            max_limit=max_limit,
            middlewares=auth_on_writes,
            checks={
                Operation.LIST: OperationChecks(search_fields=("name", "description")),
                Operation.CREATE: OperationChecks(unique_fields=("name",)),
                Operation.UPDATE: OperationChecks(unique_fields=("name",)),
            },
        ),
        ResourceConfig(
            name="Widgets",
            route_prefix="/widgets",
            collection=SqlCollection(models.Widget, session_factory),
            logging=logging,
            max_limit=max_limit,
            checks={
                Operation.LIST: OperationChecks(search_fields=("name",)),
                Operation.CREATE: OperationChecks(unique_fields=("name",)),
                Operation.UPDATE: OperationChecks(unique_fields=("name",)),
            },
        ),
    ]
