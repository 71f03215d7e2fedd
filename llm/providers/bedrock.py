"""
AWS Bedrock LLM Provider.
"""

import json
import logging
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from opportunity.errors import LLMCallError

logger = logging.getLogger(__name__)


class BedrockProvider:
    """
    AWS Bedrock LLM provider.

    Runs Claude models through the bedrock-runtime API.
    """

    DEFAULT_MODEL = "us.anthropic.claude-sonnet-4-20250514-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 4096,
        temperature: float = 0.3,
        client=None,
    ):
        """
        Initialize Bedrock provider.

        Args:
            model_id: Bedrock model ID
            region: AWS region
            max_tokens: Maximum tokens for response
            temperature: Generation temperature
            client: Optional pre-built bedrock-runtime client
        """
        self.model_id = model_id
        self.region = region
        self.max_tokens = max_tokens
        self.temperature = temperature

        self._client = client or boto3.client("bedrock-runtime", region_name=region)
        logger.info(f"Bedrock provider initialized: {model_id} in {region}")

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        stop_sequences: Optional[List[str]] = None
    ) -> str:
        """
        Generate a completion for a prompt.

        Args:
            prompt: User prompt
            system: System prompt
            max_tokens: Override max tokens
            temperature: Override temperature
            stop_sequences: Stop sequences

        Returns:
            Generated text (may be empty)

        Raises:
            LLMCallError: If the Bedrock call fails
        """
        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": prompt}]
                }
            ]
        }

        if system:
            body["system"] = system

        if stop_sequences:
            body["stop_sequences"] = stop_sequences

        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            response_body = json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Bedrock API error: {e}")
            raise LLMCallError(f"Bedrock call failed: {e}", {"model_id": self.model_id}) from e
        except ValueError as e:
            logger.error(f"Bedrock returned a non-JSON body: {e}")
            raise LLMCallError("Bedrock returned a non-JSON body", {"model_id": self.model_id}) from e

        for block in response_body.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "").strip()

        logger.warning("Empty response from Bedrock")
        return ""
