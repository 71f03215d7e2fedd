"""
LLM Provider implementations.
"""

from .bedrock import BedrockProvider
from .openai_provider import OpenAIProvider

__all__ = ["BedrockProvider", "OpenAIProvider", "create_provider"]


def create_provider(settings):
    """Build the provider selected by ``settings.llm_provider``."""
    if settings.is_openai:
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model_id=settings.openai_llm_model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
        )
    return BedrockProvider(
        model_id=settings.bedrock_llm_model_id,
        region=settings.aws_region,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
    )
