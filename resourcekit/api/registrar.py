"""
Route registration.

Binds a controller's derived routes, with their middleware chains, onto a
FastAPI router. Runs once at startup.
"""
import logging

from fastapi import APIRouter, Depends

from resourcekit.api.controller import ResourceController
from resourcekit.config import ResourceConfig

logger = logging.getLogger(__name__)


def register_routes(router: APIRouter, controller: ResourceController) -> ResourceController:
    name = controller.config.name
    for route in controller.routes:
        router.add_api_route(
            route.path,
            route.endpoint,
            methods=[route.method],
            dependencies=[Depends(m) for m in route.middlewares],
            name=f"{name}:{route.operation.value}",
            response_model=None,
            tags=[name],
        )
    logger.debug("registered %d routes for %s", len(controller.routes), name)
    return controller


def mount_resource(router: APIRouter, config: ResourceConfig) -> ResourceController:
    """Build a controller for ``config`` and register its routes on ``router``.

    Errors raised by middlewares (such as the 401 from ``require_identity``)
    are rendered as envelopes only when the app has the handlers from
    ``resourcekit.api.main.install_error_handlers``; ``include_resources``
    mounts and installs them together.
    """
    return register_routes(router, ResourceController(config))
