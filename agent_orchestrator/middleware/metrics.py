"""Prometheus metrics middleware and orchestration metrics collector."""

import asyncio
import time
from typing import Callable, Dict, Optional, Protocol

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class MetricsCollector(Protocol):
    async def run_started(self) -> None:
        ...

    async def run_finished(self, status: str, duration_seconds: float) -> None:
        ...

    def observe_step(self, agent_type: str, success: bool, duration_seconds: float) -> None:
        ...


class OrchestrationMetrics:
    """
    Metrics owned by one service instance.

    Each instance has its own CollectorRegistry, so several apps (or tests)
    can live in one process. The active session and total request counters
    are guarded by a single lock.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._lock = asyncio.Lock()
        self._active_sessions = 0
        self._total_requests = 0

        self.http_requests_total = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['method', 'endpoint'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )
        self.http_requests_in_progress = Gauge(
            'http_requests_in_progress',
            'HTTP requests currently in progress',
            ['method', 'endpoint'],
            registry=self.registry,
        )
        self.orchestration_runs_total = Counter(
            'orchestration_runs_total',
            'Total orchestration runs',
            ['status'],  # started/completed/failed
            registry=self.registry,
        )
        self.orchestration_run_duration_seconds = Histogram(
            'orchestration_run_duration_seconds',
            'Orchestration run duration in seconds',
            buckets=[0.5, 1, 2.5, 5, 10, 20, 30, 60],
            registry=self.registry,
        )
        self.orchestration_active_sessions = Gauge(
            'orchestration_active_sessions',
            'Orchestration runs currently in progress',
            registry=self.registry,
        )
        self.agent_steps_total = Counter(
            'agent_steps_total',
            'Total agent steps executed',
            ['agent_type', 'outcome'],  # outcome: success/failure
            registry=self.registry,
        )
        self.agent_step_duration_seconds = Histogram(
            'agent_step_duration_seconds',
            'Agent step duration in seconds',
            ['agent_type'],
            buckets=[0.1, 0.5, 1, 2.5, 5, 10, 30],
            registry=self.registry,
        )

    async def run_started(self) -> None:
        async with self._lock:
            self._active_sessions += 1
            self._total_requests += 1
            self.orchestration_active_sessions.set(self._active_sessions)
        self.orchestration_runs_total.labels(status="started").inc()

    async def run_finished(self, status: str, duration_seconds: float) -> None:
        async with self._lock:
            self._active_sessions = max(self._active_sessions - 1, 0)
            self.orchestration_active_sessions.set(self._active_sessions)
        self.orchestration_runs_total.labels(status=status).inc()
        self.orchestration_run_duration_seconds.observe(duration_seconds)

    def observe_step(self, agent_type: str, success: bool, duration_seconds: float) -> None:
        outcome = "success" if success else "failure"
        self.agent_steps_total.labels(agent_type=agent_type, outcome=outcome).inc()
        self.agent_step_duration_seconds.labels(agent_type=agent_type).observe(duration_seconds)

    async def snapshot(self) -> Dict[str, int]:
        async with self._lock:
            return {
                "active_sessions": self._active_sessions,
                "total_requests": self._total_requests,
            }

    def render(self) -> Response:
        """
        Get Prometheus metrics.

        Returns:
            Response with metrics in Prometheus format
        """
        return Response(
            content=generate_latest(self.registry),
            media_type=CONTENT_TYPE_LATEST
        )


class MetricsMiddleware:
    """Middleware to collect Prometheus metrics."""

    def __init__(self, metrics: OrchestrationMetrics):
        self.metrics = metrics

    async def __call__(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        """
        Process request and collect metrics.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response from handler
        """
        # Skip metrics for /metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = request.url.path
        in_progress = self.metrics.http_requests_in_progress.labels(method=method, endpoint=endpoint)
        in_progress.inc()

        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.time() - start_time

            self.metrics.http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status_code
            ).inc()

            self.metrics.http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            in_progress.dec()

        return response
