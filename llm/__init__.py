"""
LLM Module.

This module handles:
- LLM provider abstraction (Bedrock, OpenAI)
- Prompt template management
- JSON extraction from model responses
"""

from .prompt_templates import PromptTemplates, PromptType
from .response_parser import extract_json, extract_json_object, strip_code_fences

__all__ = [
    "PromptTemplates",
    "PromptType",
    "extract_json",
    "extract_json_object",
    "strip_code_fences",
]
