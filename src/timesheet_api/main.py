from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import TokenRegistry
from .errors import PersistenceError, TimesheetError
from .reconciliation import Clock
from .repositories import TimesheetRepository, get_repository
from .routers import auth as auth_router
from .routers import timesheets as timesheets_router
from .settings import Settings, get_settings
from .users import UserDirectory, load_users
from .utils import error_body

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Login and current-user profile."},
    {
        "name": "timesheets",
        "description": "CRUD operations for weekly timesheets scoped to the authenticated user.",
    },
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _register_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "success": false,
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": [... pydantic/fastapi error details ...]
            }
        """
        return JSONResponse(
            status_code=400,
            content=error_body(
                "Request validation failed",
                error="ValidationError",
                detail=jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(TimesheetError)
    async def timesheet_error_handler(request: Request, exc: TimesheetError) -> JSONResponse:
        headers = {"Retry-After": "1"} if isinstance(exc, PersistenceError) else None
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message), headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(message)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error handling %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("Something went wrong!"))


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[TimesheetRepository] = None,
    users: Optional[UserDirectory] = None,
    clock: Clock = date.today,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators default to what `settings` describes; tests pass their own
    repository, user directory or clock instead.
    """
    settings = settings or get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title="Timesheet Backend",
        description="Backend API for tracking weekly timesheets, stored in a JSON document.",
        version=API_VERSION,
        openapi_tags=openapi_tags,
    )

    app.state.settings = settings
    app.state.repository = repository or get_repository(settings, clock=clock)
    app.state.users = users or UserDirectory(load_users(settings.users_file))
    app.state.tokens = TokenRegistry(timedelta(minutes=settings.token_ttl_minutes))

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    _register_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    @app.get("/api", summary="API index", tags=["health"])
    def index():
        return {
            "message": "Welcome to the Timesheet Backend API",
            "version": API_VERSION,
            "status": "Server is running successfully!",
        }

    app.include_router(auth_router.router)
    app.include_router(timesheets_router.router)
    return app


app = create_app()
