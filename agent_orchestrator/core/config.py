import logging
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    # Model provider
    MODEL_PROVIDER: str = Field(default="openrouter", description="openrouter, openai, vertex, bedrock, azure or simulation")
    MODEL_NAME: str = Field(default="gpt-4o-mini")
    MODEL_TEMPERATURE: float = Field(default=0.2)
    MODEL_MAX_RETRIES: int = Field(default=3, description="Attempts per model call before the step fails")
    MODEL_RETRY_WAIT_SECONDS: float = Field(default=2.0)

    OPENAI_API_KEY: str | None = None
    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_BASE_URL: str = Field(default="https://openrouter.ai/api/v1")

    # Google Vertex AI
    GOOGLE_PROJECT_ID: str | None = Field(default=None, description="Google Cloud project ID for Vertex AI")
    GOOGLE_LOCATION: str = Field(default="us-central1", description="Google Cloud region for Vertex AI")

    # Amazon Bedrock
    AWS_REGION: str = Field(default="us-east-1", description="AWS region for Bedrock")

    # Microsoft Azure OpenAI
    AZURE_OPENAI_API_KEY: str | None = Field(default=None, description="Azure OpenAI API key")
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None, description="Azure OpenAI endpoint URL")
    AZURE_OPENAI_API_VERSION: str = Field(default="2024-02-15-preview", description="Azure OpenAI API version")
    AZURE_OPENAI_DEPLOYMENT: str | None = Field(default=None, description="Azure OpenAI deployment name")

    # Orchestration
    ORCHESTRATION_TIMEOUT_SECONDS: float = Field(default=30.0, description="Deadline for a whole pipeline run")

    # GitHub integration
    GITHUB_API_URL: str = Field(default="https://api.github.com")
    GITHUB_TOKEN: str | None = None
    GITHUB_WEBHOOK_SECRET: str | None = None

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Runtime
    APP_ENV: str = Field(default="dev")
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    def validate_production_config(self) -> None:
        """Validate configuration for production environments.

        Raises:
            RuntimeError: If the configuration is unsafe for production
        """
        if self.APP_ENV != "production":
            return

        if "*" in self.CORS_ALLOW_ORIGINS:
            raise RuntimeError(
                "CRITICAL: CORS_ALLOW_ORIGINS cannot be '*' in production. "
                "Specify exact origins."
            )

        if self.MODEL_PROVIDER.lower() == "simulation":
            raise RuntimeError("CRITICAL: MODEL_PROVIDER=simulation is not allowed in production")

        if "http://localhost:3000" in self.CORS_ALLOW_ORIGINS:
            logging.getLogger(__name__).warning(
                "WARNING: CORS_ALLOW_ORIGINS contains localhost - update for production"
            )

        if self.DEBUG:
            logging.getLogger(__name__).warning("WARNING: DEBUG mode is enabled in production")


settings = Settings()
