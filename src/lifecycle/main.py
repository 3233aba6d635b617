"""FastAPI application for the LivOS lifecycle service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from lifecycle.api.models import ErrorResponse
from lifecycle.api.routes import router
from lifecycle.config import load_settings
from lifecycle.errors import LifecycleError
from lifecycle.services.container import build_services
from lifecycle.utils.logging import setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Load settings from the environment
    - Initialize logger
    - Build the service graph (status starts at "running")

    Shutdown:
    - Log shutdown message
    """
    settings = load_settings()
    logger = setup_logger(settings.paths.logs, level=settings.log_level)
    logger.info(f"LivOS lifecycle service {settings.version} starting up...")

    app.state.services = build_services(settings)
    logger.info(f"Ready on {settings.server.host}:{settings.server.port}")

    yield

    logger.info("LivOS lifecycle service shutting down...")


app = FastAPI(
    title="LivOS Lifecycle",
    description="Update, migration, factory reset and power control for LivOS",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    """Map domain errors to the envelope; HTTP status is always 200."""
    logging.getLogger("lifecycle.api").warning(
        f"{request.method} {request.url.path} rejected: {exc.error_code}: {exc.message}"
    )
    return JSONResponse(
        status_code=200,
        content=ErrorResponse(**exc.to_dict()).model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed payloads with code=422 in the envelope."""
    return JSONResponse(
        status_code=200,
        content=ErrorResponse(
            code=422,
            msg="INVALID_REQUEST: request validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
        ).model_dump(exclude_none=True),
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "livos-lifecycle", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    settings = load_settings()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
