"""
OpenAI LLM Provider.
"""

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from opportunity.errors import LLMCallError

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI LLM provider.

    Uses the chat completions API.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        client=None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Generation temperature
            client: Optional pre-built OpenAI client
        """
        if client is not None:
            self._client = client
        else:
            self._client = OpenAI(api_key=api_key) if api_key else OpenAI()

        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized: {model_id}")

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Generate a completion for a prompt.

        Args:
            prompt: User prompt
            system: System prompt
            max_tokens: Override max tokens
            temperature: Override temperature

        Returns:
            Generated text (may be empty)

        Raises:
            LLMCallError: If the OpenAI call fails
        """
        messages = []

        if system:
            messages.append({"role": "system", "content": system})

        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client.chat.completions.create(
                model=self.model_id,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature if temperature is not None else self.temperature
            )
        except OpenAIError as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise LLMCallError(f"OpenAI call failed: {e}", {"model_id": self.model_id}) from e

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()
