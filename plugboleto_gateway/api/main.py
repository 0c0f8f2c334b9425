"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from plugboleto_gateway.api.middleware import RequestContextMiddleware
from plugboleto_gateway.api.v1 import boletos, ocorrencias, retornos
from plugboleto_gateway.config import settings
from plugboleto_gateway.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="PlugBoleto Gateway",
        description="Boleto issuance, return file normalization and printing",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(RequestContextMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(boletos.router, prefix="/v1", tags=["boletos"])
    app.include_router(retornos.router, prefix="/v1", tags=["retornos"])
    app.include_router(ocorrencias.router, prefix="/v1", tags=["ocorrencias"])

    return app


app = create_app()
