"""
Model provider selection.

MODEL_PROVIDER picks one of the providers below; each maps the settings to
a litellm model string plus credentials, which is what crewai's LLM class
takes. "simulation" needs no credentials and never touches the network.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .core.config import settings
from .llm_client import CrewAIModelClient, ModelClient, SimulatedModelClient

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    VERTEX = "vertex"
    BEDROCK = "bedrock"
    AZURE = "azure"
    SIMULATION = "simulation"


@dataclass
class ProviderConfig:
    """Everything a model client needs to reach one provider."""
    provider: LLMProvider
    model_name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    extra_params: Optional[Dict[str, Any]] = None


DEFAULT_MODELS = {
    LLMProvider.OPENROUTER: "openrouter/openai/gpt-4o-mini",
    LLMProvider.OPENAI: "gpt-4o-mini",
    LLMProvider.VERTEX: "gemini-1.5-pro",
    LLMProvider.BEDROCK: "anthropic.claude-3-sonnet-20240229-v1:0",
    LLMProvider.AZURE: "gpt-4o",
    LLMProvider.SIMULATION: "simulation",
}

# Settings that must be non-empty before a provider can serve requests.
# Bedrock can authenticate through an IAM role, so nothing is required.
REQUIRED_SETTINGS: Dict[LLMProvider, List[str]] = {
    LLMProvider.OPENROUTER: ["OPENROUTER_API_KEY"],
    LLMProvider.OPENAI: ["OPENAI_API_KEY"],
    LLMProvider.VERTEX: ["GOOGLE_PROJECT_ID"],
    LLMProvider.BEDROCK: [],
    LLMProvider.AZURE: ["AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT"],
    LLMProvider.SIMULATION: [],
}


def parse_provider(provider: Optional[str]) -> LLMProvider:
    """Parse a provider name, falling back to OpenRouter for unknown names."""
    name = (provider or LLMProvider.OPENROUTER.value).strip().lower()
    try:
        return LLMProvider(name)
    except ValueError:
        logger.warning(f"Unknown provider '{name}', falling back to openrouter")
        return LLMProvider.OPENROUTER


def _openrouter(model: str) -> ProviderConfig:
    if not model.startswith("openrouter/"):
        model = f"openrouter/{model}"
    return ProviderConfig(
        provider=LLMProvider.OPENROUTER,
        model_name=model,
        api_key=settings.OPENROUTER_API_KEY,
        base_url=settings.OPENROUTER_BASE_URL,
    )


def _openai(model: str) -> ProviderConfig:
    return ProviderConfig(provider=LLMProvider.OPENAI, model_name=model, api_key=settings.OPENAI_API_KEY)


def _vertex(model: str) -> ProviderConfig:
    return ProviderConfig(
        provider=LLMProvider.VERTEX,
        model_name=f"vertex_ai/{model}",
        extra_params={"vertex_project": settings.GOOGLE_PROJECT_ID, "vertex_location": settings.GOOGLE_LOCATION},
    )


def _bedrock(model: str) -> ProviderConfig:
    return ProviderConfig(
        provider=LLMProvider.BEDROCK,
        model_name=f"bedrock/{model}",
        extra_params={"aws_region_name": settings.AWS_REGION},
    )


def _azure(model: str) -> ProviderConfig:
    # Azure addresses models by deployment name
    deployment = settings.AZURE_OPENAI_DEPLOYMENT or model
    return ProviderConfig(
        provider=LLMProvider.AZURE,
        model_name=f"azure/{deployment}",
        api_key=settings.AZURE_OPENAI_API_KEY,
        base_url=settings.AZURE_OPENAI_ENDPOINT,
        extra_params={"api_version": settings.AZURE_OPENAI_API_VERSION},
    )


def _simulation(model: str) -> ProviderConfig:
    return ProviderConfig(provider=LLMProvider.SIMULATION, model_name=DEFAULT_MODELS[LLMProvider.SIMULATION])


_BUILDERS: Dict[LLMProvider, Callable[[str], ProviderConfig]] = {
    LLMProvider.OPENROUTER: _openrouter,
    LLMProvider.OPENAI: _openai,
    LLMProvider.VERTEX: _vertex,
    LLMProvider.BEDROCK: _bedrock,
    LLMProvider.AZURE: _azure,
    LLMProvider.SIMULATION: _simulation,
}


def get_provider_config(provider: Optional[str] = None, model_name: Optional[str] = None) -> ProviderConfig:
    """
    Resolve a provider and model into a ProviderConfig.

    Args:
        provider: Provider name (defaults to MODEL_PROVIDER)
        model_name: Model name (defaults to MODEL_NAME, then the provider default)
    """
    llm_provider = parse_provider(provider or settings.MODEL_PROVIDER)
    model = model_name or settings.MODEL_NAME or DEFAULT_MODELS[llm_provider]
    return _BUILDERS[llm_provider](model)


def validate_provider_config(provider: str) -> Dict[str, Any]:
    """
    Report which required settings are missing for a provider.

    Returns:
        {"valid": bool, "missing": [setting names], "provider": name}
    """
    name = provider.strip().lower()
    try:
        required = REQUIRED_SETTINGS[LLMProvider(name)]
    except ValueError:
        required = []
    missing = [key for key in required if not getattr(settings, key, None)]
    return {"valid": not missing, "missing": missing, "provider": name}


def list_available_providers() -> Dict[str, Dict[str, Any]]:
    providers = {}
    for llm_provider in LLMProvider:
        validation = validate_provider_config(llm_provider.value)
        providers[llm_provider.value] = {
            "configured": validation["valid"],
            "missing_config": validation["missing"],
            "default_model": DEFAULT_MODELS[llm_provider],
        }
    return providers


def create_model_client(config: Optional[ProviderConfig] = None) -> ModelClient:
    """
    Build the model client shared by every agent in the registry.

    Args:
        config: Provider configuration (defaults to the configured provider)
    """
    config = config or get_provider_config()

    if config.provider == LLMProvider.SIMULATION:
        logger.warning("Model provider is 'simulation'; agents will receive canned responses")
        return SimulatedModelClient()

    logger.info(f"Using model provider: {config.provider.value}, model: {config.model_name}")
    return CrewAIModelClient(
        model_name=config.model_name,
        api_key=config.api_key,
        base_url=config.base_url,
        extra_params=config.extra_params,
        temperature=settings.MODEL_TEMPERATURE,
        max_retries=settings.MODEL_MAX_RETRIES,
        retry_wait_seconds=settings.MODEL_RETRY_WAIT_SECONDS,
    )
