"""FastAPI application exposing the check cycle to external cron triggers."""

import asyncio
from collections.abc import Callable
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .. import __version__
from ..config import AppSettings, ConfigError, get_settings
from ..monitor import AvailabilityMonitor
from ..scraper.types import utc_now
from ..storage import StorageError
from ..utils.logging import get_structured_logger, setup_logging

logger = get_structured_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

MonitorFactory = Callable[[AppSettings], AvailabilityMonitor]


def create_app(
    settings: Optional[AppSettings] = None,
    monitor_factory: Optional[MonitorFactory] = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Aki Watcher",
        description="Cron trigger for availability checks",
        version=__version__,
    )
    app.state.settings = settings
    app.state.monitor_factory = monitor_factory or (
        lambda s: AvailabilityMonitor(settings=s)
    )
    # Runs share one state file, so they must never overlap
    app.state.run_lock = asyncio.Lock()

    setup_exception_handlers(app)
    setup_routes(app)

    return app


def require_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Check the bearer token when one is configured."""
    expected = request.app.state.settings.api.token.get_secret_value()
    if not expected:
        return
    if credentials is None or credentials.credentials != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing token")


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers."""

    @app.exception_handler(ConfigError)
    async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
        logger.error("Configuration error", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Configuration error: {exc}"},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        logger.error("Storage error", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Storage error: {exc}"},
        )


def setup_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health_check() -> dict:
        """Simple health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": utc_now().isoformat(),
            "version": __version__,
        }

    @app.api_route(
        "/api/cron", methods=["GET", "POST"], dependencies=[Depends(require_token)]
    )
    async def cron(request: Request) -> dict:
        """Run one check cycle and report per-site results."""
        monitor = request.app.state.monitor_factory(request.app.state.settings)

        async with request.app.state.run_lock:
            summary = await monitor.run()

        return {
            "success": True,
            "timestamp": utc_now().isoformat(),
            "results": [
                {
                    key: value
                    for key, value in outcome.to_dict().items()
                    if key in ("site", "conditionMet", "notified", "error")
                }
                for outcome in summary.outcomes
            ],
        }


def main() -> None:
    """Run the FastAPI application."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.json_logs)

    logger.info(
        "Starting Aki Watcher API server",
        host=settings.api.host,
        port=settings.api.port,
    )
    uvicorn.run(
        "akiwatch.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )
