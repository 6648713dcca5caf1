# runroute/main.py

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from runroute.api.v1 import routes_geocoding, routes_health, routes_polyline, routes_routes
from runroute.core.config import settings
from runroute.core.errors import (
    CollaboratorError,
    InvalidPreferencesError,
    LocationNotFoundError,
    RouteGenerationError,
)
from runroute.core.logger import logger
from runroute.core.logging_config import setup_logging


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidPreferencesError)
    async def invalid_preferences(request: Request, exc: InvalidPreferencesError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(LocationNotFoundError)
    async def location_not_found(request: Request, exc: LocationNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RouteGenerationError)
    async def generation_failed(request: Request, exc: RouteGenerationError) -> JSONResponse:
        logger.warning("Route generation failed for {}: {}", request.url.path, exc)
        status_code = 502 if exc.transient else 404
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(CollaboratorError)
    async def collaborator_failed(request: Request, exc: CollaboratorError) -> JSONResponse:
        logger.error("Upstream failure on {}: {}", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Running route generation, scoring and elevation analysis.",
    )

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_routes.router, prefix="", tags=["routes"])
    app.include_router(routes_geocoding.router, prefix="", tags=["geocoding"])
    app.include_router(routes_polyline.router, prefix="", tags=["polyline"])

    _register_error_handlers(app)

    logger.info("{} {} ready ({})", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    return app


app = create_app()
