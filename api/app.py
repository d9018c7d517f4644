"""
FastAPI Application Entry Point

This module creates and configures the relay API of the Face ID capture
client.

The application provides:
- POST /api/enroll: forwards enrollments to the verification backend
- POST /api/authenticate: forwards authentications to the verification backend
- Health check endpoint

Usage:
    # From project root:
    uvicorn api.app:app --host 0.0.0.0 --port 8000 --reload

    # Or run directly:
    python -m api.app
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import authentication_router, enrollment_router
from api.schemas import HealthResponse, InfoResponse
from core.config import get_config, get_server_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_NAME = "Face ID Capture Relay"
API_VERSION = "0.1.0"


def create_app(
    config: Optional[Dict[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Full configuration dict. If None, loads config.yaml.
        transport: Optional httpx transport for the upstream client.

    Returns:
        Configured FastAPI app.
    """
    if config is None:
        config = get_config()

    api_config = config.get("api", {})
    verification_config = config.get("verification", {})
    backend_url = api_config.get("backend_url", "http://localhost:5000")
    upstream_timeout = float(api_config.get("upstream_timeout_sec", 10.0))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Opens one pooled upstream client on startup and closes it on shutdown.
        """
        logger.info("=" * 60)
        logger.info(f"Starting {API_NAME}")
        logger.info(f"Forwarding to {backend_url} (timeout {upstream_timeout:.0f}s)")
        logger.info("=" * 60)

        app.state.upstream = httpx.AsyncClient(
            base_url=backend_url,
            timeout=httpx.Timeout(upstream_timeout),
            transport=transport,
        )

        yield

        logger.info("Shutting down relay...")
        await app.state.upstream.aclose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=f"{API_NAME} API",
        description="""
Relay between the Face ID capture client and the verification backend.

## Routes
- **POST /api/enroll**: multipart `image` or `images` plus identity fields
- **POST /api/authenticate**: multipart `image`

Backend answers below HTTP 500 are returned unchanged with status 200.
Failures return `{message, details: {errorCode, errorMessage, timestamp}}`.
        """,
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.state.backend_url = backend_url
    app.state.enroll_path = verification_config.get("enroll_path", "/api/v1/enroll")
    app.state.authenticate_path = verification_config.get("authenticate_path", "/api/v1/authenticate")

    # Configure CORS for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(enrollment_router)
    app.include_router(authentication_router)

    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health_check():
        """
        Check the relay and whether the verification backend answers.
        """
        backend_status = None
        try:
            response = await app.state.upstream.get("/health", timeout=2.0)
            backend_status = response.status_code
        except httpx.HTTPError as e:
            logger.warning(f"Backend health check failed: {e!r}")

        reachable = backend_status == 200
        return HealthResponse(
            status="healthy" if reachable else "degraded",
            backend_url=backend_url,
            backend_reachable=reachable,
            backend_status=backend_status,
        )

    @app.get("/", response_model=InfoResponse, tags=["system"])
    async def root():
        """Root endpoint with API information."""
        return InfoResponse(name=f"{API_NAME} API", version=API_VERSION)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    server = get_server_config()
    logger.info(f"Starting server on {server['host']}:{server['port']}")
    uvicorn.run(
        "api.app:app",
        host=server["host"],
        port=server["port"],
        reload=True,
        log_level="info",
    )
