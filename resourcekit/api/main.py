"""
FastAPI app assembly: logging, middleware, error envelopes and resource wiring.
"""
import logging
from typing import Iterable, Optional

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from resourcekit import __version__
from resourcekit.api.registrar import mount_resource
from resourcekit.api.resources import build_resources
from resourcekit.api.responses import ResponseEnvelope, failure
from resourcekit.config import ResourceConfig
from resourcekit.db import database
from resourcekit.utils.settings import get_settings

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level)
    logging.getLogger("resourcekit").setLevel(level)


def install_error_handlers(app: FastAPI) -> None:
    """Render framework-level errors (routing, middleware) as envelopes."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = str(exc.detail)
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = "No Resource Found"
        return JSONResponse(
            failure(message).as_content(),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.debug("request validation failed: %s", exc.errors())
        return JSONResponse(failure("Invalid Request").as_content(), status_code=status.HTTP_400_BAD_REQUEST)


def include_resources(app: FastAPI, resources: Iterable[ResourceConfig], prefix: str = "") -> APIRouter:
    """Mount ``resources`` on ``app`` under ``prefix`` with envelope error handling installed."""
    install_error_handlers(app)
    router = APIRouter(prefix=prefix)
    for config in resources:
        mount_resource(router, config)
    app.include_router(router)
    return router


def create_app(
    engine: Optional[Engine] = None,
    resources: Optional[Iterable[ResourceConfig]] = None,
) -> FastAPI:
    """Build the application.

    Without ``resources`` the bundled posts/categories/widgets resources are
    mounted on ``engine`` (default: the engine from ``DATABASE_URL``) and their
    tables are created if missing.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("app_startup: log_level=%s api_prefix=%s", settings.log_level, settings.api_prefix or "/")

    app = FastAPI(
        title="resourcekit",
        description="Declarative CRUD resources over pluggable collections.",
        version=__version__,
    )
    # Avoid implicit trailing-slash redirects for predictable URLs
    app.router.redirect_slashes = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    @app.get("/")
    def welcome():
        return ResponseEnvelope(success=True, message="welcome to api").as_content()

    if resources is None:
        engine = engine or database.engine
        database.init_db(engine)
        session_factory = database.SessionLocal if engine is database.engine else database.build_session_factory(engine)
        resources = build_resources(
            session_factory,
            logging=settings.request_logging,
            max_limit=settings.max_page_limit,
        )

    include_resources(app, resources, prefix=settings.api_prefix)
    return app
