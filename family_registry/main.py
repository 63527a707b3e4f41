"""
Application entrypoint.

``create_app`` configures logging, builds the stores and services once,
registers the error handlers that turn ``ServiceError`` into the JSON
envelope, and mounts the routers under ``settings.API_PREFIX``.  The
module-level ``app`` is what an ASGI server loads::

    uvicorn family_registry.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from family_registry.config import settings
from family_registry.core.errors import ErrorKind, ServiceError
from family_registry.core.services import build_services
from family_registry.database import Base, engine
from family_registry.logging_config import setup_logging
from family_registry.schemas.common_schema import error_response

# Import models so SQLAlchemy registers tables
from family_registry.models import person, relationship  # noqa: F401

# Routers
from family_registry.routers import marriage_router, person_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
    yield


def _validation_messages(exc: RequestValidationError) -> list[dict]:
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        messages.append({
            "field": ".".join(loc),
            "message": err.get("msg", "Invalid value"),
        })
    return messages


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(
            status_code=exc.kind.status_code,
            content=error_response(exc.kind.value, exc.message),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=ErrorKind.VALIDATION.status_code,
            content=error_response(ErrorKind.VALIDATION.value, _validation_messages(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=ErrorKind.INTERNAL.status_code,
            content=error_response(
                ErrorKind.INTERNAL.value,
                str(exc) or "Unknown error occurred",
            ),
        )


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Backend API for tracking persons and their marriages.",
        version=settings.API_VERSION,
        lifespan=lifespan,
    )

    # -----------------------
    # CORS
    # -----------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------
    # STORES / SERVICES (built once, injected per request)
    # -----------------------
    app.state.services = build_services()

    register_error_handlers(app)

    # -----------------------
    # ROUTES
    # -----------------------
    app.include_router(person_router.router, prefix=settings.API_PREFIX)
    app.include_router(marriage_router.router, prefix=settings.API_PREFIX)

    # -----------------------
    # HEALTH CHECK
    # -----------------------
    @app.get("/")
    def root():
        return {"message": "Family Registry API is running!"}

    return app


app = create_app()
