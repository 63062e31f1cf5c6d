"""
Orchestration service boundary.

Turns an API request into a pipeline run: resolves agent names, applies the
run deadline, keeps the session counters and shapes the response.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .agents.base import DEFAULT_SEQUENCE, AgentType, resolve_agent_names
from .agents.registry import AgentRegistry
from .middleware.metrics import OrchestrationMetrics
from .models import OrchestrateRequest, OrchestrateResponse, RunMetadata, RunStatus
from .workflows.models import OrchestrationRequest
from .workflows.pipeline import WorkflowPipeline

logger = logging.getLogger(__name__)

NO_RECOGNIZED_AGENTS_WARNING = "No recognized agents in requested sequence"


def stringify_values(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Convert context/option values to strings; structured values become JSON text."""
    if values is None:
        return None
    converted = {}
    for key, value in values.items():
        if value is None:
            continue
        converted[key] = value if isinstance(value, str) else json.dumps(value)
    return converted


def resolve_sequence(names: Optional[List[str]]) -> tuple[List[AgentType], List[str]]:
    """
    Resolve caller-supplied agent names.

    Returns:
        (sequence, warnings). An absent or empty list gives the default
        sequence; a list with no recognized names gives an empty sequence.
    """
    if not names:
        return list(DEFAULT_SEQUENCE), []

    sequence = resolve_agent_names(names)
    if not sequence:
        return [], [NO_RECOGNIZED_AGENTS_WARNING]
    return sequence, []


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AgentOrchestrator:
    """Runs orchestration requests against a shared agent registry."""

    def __init__(
        self,
        registry: AgentRegistry,
        metrics: Optional[OrchestrationMetrics] = None,
        timeout_seconds: float = 30.0,
    ):
        self.registry = registry
        self.metrics = metrics or OrchestrationMetrics()
        self.timeout_seconds = timeout_seconds
        self.pipeline = WorkflowPipeline(registry, self.metrics)

    async def process_request(self, request: OrchestrateRequest) -> OrchestrateResponse:
        """
        Execute one orchestration request end to end.

        Step failures are reported inside a completed response. Only a
        timeout or an unexpected pipeline error yields a failed response,
        and a failed response never carries step records.
        """
        request_id = str(uuid4())
        start_time = _utc_now()
        started = time.perf_counter()
        await self.metrics.run_started()

        sequence, warnings = resolve_sequence(request.agent_sequence)
        sequence_names = [t.value for t in sequence]
        logger.info(f"Processing orchestration request {request_id} with agents {sequence_names}")

        pipeline_request = OrchestrationRequest(
            prompt=request.prompt,
            context=stringify_values(request.context),
            agent_sequence=sequence,
            options=stringify_values(request.options),
        )

        status = RunStatus.failed
        try:
            result = await asyncio.wait_for(
                self.pipeline.run(pipeline_request, request_id=request_id),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            error = f"Orchestration timed out after {self.timeout_seconds:g}s"
            logger.error(f"Request {request_id}: {error}")
            return self._failed(request_id, start_time, started, sequence_names, warnings, error)
        except Exception as e:
            logger.error(f"Request {request_id}: orchestration failed: {e}", exc_info=True)
            return self._failed(request_id, start_time, started, sequence_names, warnings, str(e))
        else:
            status = RunStatus.completed
            duration_ms = (time.perf_counter() - started) * 1000
            metadata = RunMetadata(
                start_time=start_time,
                end_time=_utc_now(),
                duration_ms=duration_ms,
                agent_sequence=sequence_names,
                success=True,
                agents_executed=result.metadata.agents_executed,
                success_rate=result.metadata.success_rate,
                warnings=warnings + result.metadata.warnings,
            )
            logger.info(f"Request {request_id} completed in {duration_ms:.1f}ms")
            return OrchestrateResponse(
                request_id=request_id,
                status=status,
                result=result.final_result,
                steps=result.execution_order,
                metadata=metadata,
            )
        finally:
            await self.metrics.run_finished(status.value, time.perf_counter() - started)

    def _failed(
        self,
        request_id: str,
        start_time: str,
        started: float,
        sequence_names: List[str],
        warnings: List[str],
        error: str,
    ) -> OrchestrateResponse:
        return OrchestrateResponse(
            request_id=request_id,
            status=RunStatus.failed,
            result=None,
            steps=[],
            metadata=RunMetadata(
                start_time=start_time,
                end_time=_utc_now(),
                duration_ms=(time.perf_counter() - started) * 1000,
                agent_sequence=sequence_names,
                success=False,
                error=error,
                warnings=warnings,
            ),
        )

    async def stats(self) -> Dict[str, int]:
        return await self.metrics.snapshot()

    def list_agents(self) -> List[Dict[str, str]]:
        return self.registry.describe()
