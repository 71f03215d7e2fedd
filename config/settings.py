"""
Centralized configuration for the Opportunity Update Assistant.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1")
    bedrock_llm_model_id: str = Field(default="us.anthropic.claude-sonnet-4-20250514-v1:0")

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None)
    openai_llm_model: str = Field(default="gpt-4o-mini")

    # LLM provider selection
    llm_provider: str = Field(default="bedrock")  # bedrock | openai
    max_tokens: int = Field(default=4096)
    temperature: float = Field(default=0.3)  # low for consistent extractions

    # CRM page automation service
    crm_base_url: Optional[str] = Field(default=None)
    crm_api_key: Optional[str] = Field(default=None)
    crm_timeout_seconds: float = Field(default=30.0)

    # Update pipeline
    min_intent_confidence: str = Field(default="medium")
    apply_fields_on_blocked_stage: bool = Field(default=True)

    # Prospect scoring
    prospect_threshold_hot: int = Field(default=70)
    prospect_threshold_warm: int = Field(default=50)

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_title: str = Field(default="Opportunity Update Assistant API")
    api_version: str = Field(default="1.0.0")
    cors_origins: str = Field(default="*")  # comma-separated

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    @property
    def is_bedrock(self) -> bool:
        return self.llm_provider.lower() == "bedrock"

    @property
    def is_openai(self) -> bool:
        return self.llm_provider.lower() == "openai"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def llm_model_id(self) -> str:
        if self.is_openai:
            return self.openai_llm_model
        return self.bedrock_llm_model_id


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
