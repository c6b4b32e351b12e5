"""
resourcekit: declarative CRUD resources for FastAPI.

Describe a resource once with ``ResourceConfig`` and mount it with
``mount_resource`` to get list/get/get-one/create/update/delete endpoints.
"""
from resourcekit.api.controller import ResourceController
from resourcekit.api.registrar import mount_resource, register_routes
from resourcekit.config import OperationChecks, ResourceConfig
from resourcekit.db.collection import Collection
from resourcekit.db.memory import MemoryCollection
from resourcekit.hooks import (
    BodyTransformer,
    FilterRewriter,
    Operation,
    OperationContext,
    QueryTransformer,
    TransformResult,
    UniquenessPolicy,
)

__version__ = "0.1.0"

__all__ = [
    "Collection",
    "MemoryCollection",
    "Operation",
    "OperationChecks",
    "OperationContext",
    "ResourceConfig",
    "ResourceController",
    "TransformResult",
    "QueryTransformer",
    "BodyTransformer",
    "FilterRewriter",
    "UniquenessPolicy",
    "mount_resource",
    "register_routes",
]
