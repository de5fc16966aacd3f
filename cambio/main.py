"""Main FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cambio.accounts import routes as account_routes
from cambio.auth import routes as auth_routes
from cambio.config import settings
from cambio.errors import CambioError
from cambio.logging_config import setup_logging
from cambio.middleware import setup_rate_limiting
from cambio.notifications import routes as notification_routes
from cambio.rates import routes as rate_routes
from cambio.stats import routes as stats_routes
from cambio.transfers import routes as transfer_routes

logger = logging.getLogger(__name__)


async def cambio_error_handler(request: Request, exc: CambioError) -> JSONResponse:
    """Render any core error with its status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({type(exc).__name__}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Cambio API",
        description="Cross-currency transfers with a USDT hub",
        version="0.1.0",
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_rate_limiting(app)
    app.add_exception_handler(CambioError, cambio_error_handler)

    # Include routers
    prefix = settings.API_V1_PREFIX
    app.include_router(auth_routes.router, prefix=f"{prefix}/auth", tags=["Auth"])
    app.include_router(rate_routes.router, prefix=prefix, tags=["Rates"])
    app.include_router(transfer_routes.router, prefix=prefix, tags=["Transfers"])
    app.include_router(account_routes.router, prefix=prefix, tags=["Accounts"])
    app.include_router(notification_routes.router, prefix=prefix, tags=["Notifications"])
    app.include_router(stats_routes.router, prefix=prefix, tags=["Stats"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cambio.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.APP_ENV == "development",
    )
