# dualflow/app.py
"""
Main FastAPI application for the Dual Flow diagram service.
Serves the diagram document store API with health checks and request logging.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from . import __version__
from .config import DualFlowConfig
from .flow_logging import LogContext, get_logger, setup_logging
from .persistence.base import DiagramGateway
from .persistence.factory import make_diagram_gateway


# Initialize logging
setup_logging()
logger = get_logger(__name__)


class FlowApp:
    """Main application class for the diagram service."""

    def __init__(self, gateway: Optional[DiagramGateway] = None, config: Optional[DualFlowConfig] = None):
        self.config = config or DualFlowConfig.from_env()
        self.gateway = gateway or make_diagram_gateway(self.config)

        self.app = FastAPI(
            title="Dual Flow Diagrams",
            description="Document store for linked process/task flow diagrams",
            version=__version__,
            lifespan=self._lifespan,
        )
        self.app.state.gateway = self.gateway
        self.setup_middleware()
        self.setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.gateway.ensure_schema()
        logger.info(f"Diagram service started with {self.gateway.backend_name} backend")
        try:
            yield
        finally:
            await self.gateway.close()
            logger.info("Diagram service stopped")

    def setup_middleware(self):
        """Configure middleware for the application."""
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Logging middleware
        @self.app.middleware("http")
        async def log_requests(request, call_next):
            start_time = time.time()

            with LogContext(
                path=str(request.url.path),
                method=request.method,
                client_ip=request.client.host if request.client else None
            ):
                logger.info(f"Request started: {request.method} {request.url.path}")

                response = await call_next(request)

                duration_ms = (time.time() - start_time) * 1000
                logger.info(
                    f"Request completed: {request.method} {request.url.path}",
                    extra={
                        'status_code': response.status_code,
                        'duration_ms': duration_ms
                    }
                )

            return response

    def setup_routes(self):
        """Configure application routes."""
        from app_diagrams import diagram_router

        self.app.include_router(diagram_router, prefix="/api")

        @self.app.get("/healthz")
        async def health_check():
            """Health check endpoint."""
            health_data = {
                "status": "ok",
                "environment": self.config.env,
                "backend": self.gateway.backend_name,
                "timestamp": time.time(),
                "version": __version__
            }

            logger.info("Health check requested", extra={'component': 'health'})
            return JSONResponse(content=health_data)


# Create the application instance
flow_app = FlowApp()
app = flow_app.app


if __name__ == "__main__":
    # Direct run configuration
    config = DualFlowConfig.from_env()

    logger.info(f"Starting Dual Flow diagram service in {config.env} environment on port {config.port}")

    uvicorn.run(
        "dualflow.app:app",
        host="0.0.0.0",
        port=config.port,
        reload=(config.env == 'dev'),
        log_config=None  # We handle logging ourselves
    )
