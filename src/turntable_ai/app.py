import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from turntable_ai.config import ALLOWED_ORIGINS, RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS
from turntable_ai.routes import (
    alert_routes,
    auth_routes,
    billing_routes,
    cron_routes,
    generate_routes,
    gmail_routes,
    google_routes,
    health_routes,
    review_routes,
    sales_routes,
    voice_routes,
)
from turntable_ai.services.utils.logger_config import setup_logging
from turntable_ai.services.utils.rate_limiter import FixedWindowRateLimiter, RateLimitMiddleware, RateLimiter

_logger = logging.getLogger(__name__)


async def http_exception_handler(request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app(rate_limiter: RateLimiter = None) -> FastAPI:
    """Build the API; pass a limiter to control /api/ throttling (tests use a fresh one)"""
    app = FastAPI(title="TurnTable AI")

    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(
            limit=RATE_LIMIT_MAX_REQUESTS,
            window_seconds=RATE_LIMIT_WINDOW_SECONDS,
        )
    app.state.rate_limiter = rate_limiter

    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.include_router(health_routes.router)
    app.include_router(auth_routes.router)
    app.include_router(review_routes.router)
    app.include_router(voice_routes.router)
    app.include_router(generate_routes.router)
    app.include_router(sales_routes.router)
    app.include_router(alert_routes.router)
    app.include_router(google_routes.router)
    app.include_router(gmail_routes.router)
    app.include_router(cron_routes.router)
    app.include_router(billing_routes.router)
    return app


setup_logging(logging.INFO)
app = create_app()


def main():
    """Start the FastAPI application using uvicorn"""
    import uvicorn
    _logger.info("Starting TurnTable AI application...")

    uvicorn.run(
        "turntable_ai.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )


def run():
    """Calls :func:`main` passing the CLI arguments extracted from :obj:`sys.argv`

    This function can be used as entry point to create console scripts with setuptools.
    """
    main()


if __name__ == "__main__":
    run()
