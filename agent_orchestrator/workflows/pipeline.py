"""
Multi-agent workflow pipeline.

Flow for one run:
1. Resolve the agent sequence (explicit, or the default Spec -> Code -> Reviewer -> TestGenerator)
2. For each agent: map the request and prior output into the agent's input
3. Execute the agent with timing and failure isolation
4. Thread the output forward if the step succeeded; otherwise keep the prior output
5. Aggregate step records into run metadata
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..agents.base import DEFAULT_SEQUENCE, Agent, AgentType
from ..agents.registry import AgentRegistry
from ..agents.schemas import AgentInput, dump_payload
from ..middleware.metrics import MetricsCollector
from .mapping import map_agent_input
from .models import AgentExecution, OrchestrationMetadata, OrchestrationRequest, PipelineResult

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """Result of one agent invocation."""
    output: Optional[BaseModel]
    error_output: Optional[Dict[str, Any]]
    elapsed_ms: float
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def output_payload(self) -> Dict[str, Any]:
        if self.success:
            return dump_payload(self.output)
        return dict(self.error_output or {})


def error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class StepExecutor:
    """
    Runs a single agent invocation.

    Failures are converted into a sentinel output; cancellation is not
    caught so a deadline at the service boundary aborts the whole run.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics

    async def execute(self, agent: Agent, agent_input: AgentInput) -> StepOutcome:
        agent_type = agent.agent_type
        started = time.perf_counter()

        try:
            output = await agent.invoke(agent_input)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            message = error_message(e)
            logger.warning(f"Agent {agent_type.value} failed after {elapsed_ms:.1f}ms: {message}", exc_info=True)
            if self.metrics:
                self.metrics.observe_step(agent_type.value, False, elapsed_ms / 1000)
            return StepOutcome(
                output=None,
                error_output={"error": message, "agent": agent_type.value},
                elapsed_ms=elapsed_ms,
                error=message,
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Agent {agent_type.value} completed in {elapsed_ms:.1f}ms")
        if self.metrics:
            self.metrics.observe_step(agent_type.value, True, elapsed_ms / 1000)
        return StepOutcome(output=output, error_output=None, elapsed_ms=elapsed_ms)


def aggregate_results(
    executions: List[AgentExecution],
    warnings: List[str],
    total_execution_time_ms: float,
) -> OrchestrationMetadata:
    """
    Fold step records into run metadata.

    Args:
        executions: Step records in execution order
        warnings: Warnings collected by the driver
        total_execution_time_ms: Wall clock time of the whole run

    Returns:
        Metadata with success rate as a 0-100 percentage (0 for an empty run)
    """
    total = len(executions)
    successes = sum(1 for e in executions if e.success)
    success_rate = (successes / total) * 100.0 if total else 0.0

    return OrchestrationMetadata(
        total_execution_time_ms=total_execution_time_ms,
        agents_executed=total,
        success_rate=success_rate,
        warnings=list(warnings),
    )


class WorkflowPipeline:
    """
    Sequential agent pipeline.

    A failed step never stops the run: it is recorded, a warning is added,
    and the next agent receives the last successful output instead.
    """

    def __init__(self, registry: AgentRegistry, metrics: Optional[MetricsCollector] = None):
        self.registry = registry
        self.executor = StepExecutor(metrics)

    async def run(self, request: OrchestrationRequest, request_id: Optional[str] = None) -> PipelineResult:
        """
        Execute the request's agent sequence.

        Args:
            request: Normalized orchestration request
            request_id: Identifier used in log messages

        Returns:
            Step records, the last successful output and run metadata
        """
        sequence: List[AgentType] = (
            list(request.agent_sequence) if request.agent_sequence is not None else list(DEFAULT_SEQUENCE)
        )
        run_label = request_id or "-"
        logger.info(f"Run {run_label}: executing {[t.value for t in sequence]}")

        started = time.perf_counter()
        executions: List[AgentExecution] = []
        warnings: List[str] = []
        prior_output: Optional[BaseModel] = None

        for index, agent_type in enumerate(sequence):
            logger.debug(f"Run {run_label}: step {index + 1}/{len(sequence)} ({agent_type.value})")

            agent_input = map_agent_input(agent_type, request, prior_output)
            outcome = await self.executor.execute(self.registry.resolve(agent_type), agent_input)

            executions.append(AgentExecution(
                agent_type=agent_type,
                input=dump_payload(agent_input),
                output=outcome.output_payload(),
                success=outcome.success,
                execution_time_ms=outcome.elapsed_ms,
                error_message=outcome.error,
            ))

            if outcome.success:
                prior_output = outcome.output
            else:
                warnings.append(f"Agent {agent_type.value} failed: {outcome.error}")

        total_ms = (time.perf_counter() - started) * 1000
        metadata = aggregate_results(executions, warnings, total_ms)
        final_result = dump_payload(prior_output) if prior_output is not None else None

        logger.info(
            f"Run {run_label}: {metadata.agents_executed} agents executed, "
            f"{metadata.success_rate:.1f}% succeeded in {total_ms:.1f}ms"
        )
        return PipelineResult(
            execution_order=executions,
            final_result=final_result,
            metadata=metadata,
        )
