"""
Model client used by every agent.

Agents only see the ModelClient protocol: one system/user prompt pair in,
completion text out. The production client wraps crewai's LLM class (litellm
underneath) and retries transient failures with tenacity.
"""

import asyncio
import json
import logging
from functools import partial
from typing import Any, Dict, List, Optional, Protocol

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


class ModelClientError(Exception):
    """Transport, auth or empty-completion failure from the model backend."""


class ModelClient(Protocol):
    async def generate_with_context(self, system_prompt: str, user_prompt: str) -> str:
        ...


class CrewAIModelClient:
    """
    Model client backed by crewai.LLM.

    LLM.call is blocking, so each attempt runs in the default executor.
    """

    def __init__(
        self,
        model_name: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        extra_params: Optional[Dict[str, Any]] = None,
        temperature: float = 0.2,
        max_retries: int = 3,
        retry_wait_seconds: float = 2.0,
    ):
        self.model_name = model_name
        self.api_key = api_key
        self.base_url = base_url
        self.extra_params = {k: v for k, v in (extra_params or {}).items() if v is not None}
        self.temperature = temperature
        self.max_retries = max(1, max_retries)
        self.retry_wait_seconds = retry_wait_seconds
        self._llm = None

    def _get_llm(self):
        if self._llm is None:
            from crewai import LLM

            self._llm = LLM(
                model=self.model_name,
                api_key=self.api_key,
                base_url=self.base_url,
                temperature=self.temperature,
                **self.extra_params,
            )
        return self._llm

    def _call(self, messages: List[Dict[str, str]]) -> str:
        result = self._get_llm().call(messages)
        text = result if isinstance(result, str) else str(result or "")
        if not text.strip():
            raise ModelClientError(f"Empty completion from {self.model_name}")
        return text

    async def generate_with_context(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send one system/user prompt pair and return the completion text.

        Raises:
            ModelClientError: If every attempt fails
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        loop = asyncio.get_running_loop()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=self.retry_wait_seconds, max=10),
                retry=retry_if_exception_type(Exception),
                reraise=True,
            ):
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if number > 1:
                        logger.warning(f"Retrying model call to {self.model_name} (attempt {number})")
                    return await loop.run_in_executor(None, partial(self._call, messages))
        except ModelClientError:
            raise
        except Exception as e:
            raise ModelClientError(f"Model call to {self.model_name} failed: {e}") from e


class SimulatedModelClient:
    """Offline client returning a fixed JSON object for every prompt."""

    def __init__(self, payload: Optional[Dict[str, Any]] = None):
        self.payload = payload
        self.calls: List[Dict[str, str]] = []

    async def generate_with_context(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt})
        payload = self.payload if self.payload is not None else {
            "simulation": True,
            "summary": user_prompt[:200],
        }
        return json.dumps(payload)
