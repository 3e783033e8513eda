"""
FastAPI main application.

Serves the order form endpoints under the v1 prefix.
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from src.api.v1.endpoints.order_forms import close_pdf_fetcher
from src.api.v1.router import api_router
from src.api.config import get_api_settings
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)

settings = get_api_settings()

# Response headers readable by browser clients
EXPOSED_HEADERS = [
    "Content-Disposition",
    "X-Filled-Fields",
    "X-Missing-Fields",
    "X-Unsupported-Fields",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    yield
    await close_pdf_fetcher()
    logger.info("PDF fetcher closed")


def create_application() -> FastAPI:
    """Build the app: middleware, v1 routes, health check and error handler."""
    docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        docs_url="/docs" if docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    if settings.ENABLE_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_methods=settings.CORS_METHODS,
            allow_headers=settings.CORS_HEADERS,
            expose_headers=EXPOSED_HEADERS,
        )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def timing(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
        return response

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health", tags=["health"])
    async def health_check():
        return {"status": "healthy", "version": settings.API_VERSION}

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc) if settings.DEBUG else "Internal server error"},
        )

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
