import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .agents.registry import AgentRegistry
from .core.config import settings
from .core.logging import configure_logging
from .llm_providers import create_model_client, list_available_providers, validate_provider_config
from .middleware.correlation import CorrelationIDMiddleware
from .middleware.error_handler import (
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .middleware.metrics import MetricsMiddleware, OrchestrationMetrics
from .orchestrator import AgentOrchestrator
from .routers import github, orchestration

logger = logging.getLogger(__name__)


def build_orchestrator(metrics: Optional[OrchestrationMetrics] = None) -> AgentOrchestrator:
    """Wire the configured model client, agent registry and metrics together."""
    registry = AgentRegistry.from_model_client(create_model_client())
    return AgentOrchestrator(
        registry,
        metrics=metrics or OrchestrationMetrics(),
        timeout_seconds=settings.ORCHESTRATION_TIMEOUT_SECONDS,
    )


def create_app(orchestrator: Optional[AgentOrchestrator] = None) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    orchestrator = orchestrator or build_orchestrator()
    metrics = orchestrator.metrics

    app = FastAPI(
        title="Agent Orchestrator API",
        description="Runs prompts through spec, code, review, test and debug agents",
        version="0.4.0",
        default_response_class=ORJSONResponse,
    )
    app.state.orchestrator = orchestrator
    app.state.metrics = metrics

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(MetricsMiddleware(metrics))
    # Added last so it wraps everything and the ID is set for all logs
    app.add_middleware(CorrelationIDMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(orchestration.router)
    app.include_router(github.router)

    @app.on_event("startup")
    async def startup_event():
        """Validate configuration on startup."""
        logger.info("Starting Agent Orchestrator API...")
        settings.validate_production_config()

        validation = validate_provider_config(settings.MODEL_PROVIDER)
        if not validation["valid"]:
            logger.warning(
                f"Model provider '{settings.MODEL_PROVIDER}' is missing configuration: {validation['missing']}"
            )

    @app.get("/health", response_class=ORJSONResponse)
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "env": settings.APP_ENV,
            "agents": len(orchestrator.registry),
        }

    @app.get("/ready", response_class=ORJSONResponse)
    async def ready():
        """Readiness: the configured model provider has its credentials."""
        validation = validate_provider_config(settings.MODEL_PROVIDER)
        if not validation["valid"]:
            raise HTTPException(
                status_code=503,
                detail={"error": "Not Ready", "message": f"Missing configuration: {', '.join(validation['missing'])}"},
            )
        return {"status": "ready", "provider": validation["provider"]}

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics endpoint."""
        return metrics.render()

    @app.get("/admin/providers", response_class=ORJSONResponse)
    async def get_providers():
        """Get status of configured LLM providers."""
        current_validation = validate_provider_config(settings.MODEL_PROVIDER)
        return {
            "current_provider": settings.MODEL_PROVIDER,
            "current_model": settings.MODEL_NAME,
            "current_valid": current_validation["valid"],
            "current_missing": current_validation["missing"],
            "providers": list_available_providers(),
        }

    return app


app = create_app()
