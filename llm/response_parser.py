"""
Helpers for pulling JSON out of best-effort LLM responses.
"""

import json
import logging
import re
from typing import Any

from opportunity.errors import UpstreamMalformedError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove leading ```json / ``` and trailing ``` markers."""
    return _FENCE.sub("", (text or "").strip()).strip()


def extract_json(text: str) -> Any:
    """
    Parse the JSON payload of an LLM response.

    Tries the whole (fence-stripped) text first, then the first decodable
    JSON object embedded in surrounding prose.

    Raises:
        UpstreamMalformedError: If no JSON value can be decoded
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise UpstreamMalformedError("LLM response was empty")

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", cleaned):
        try:
            value, _ = decoder.raw_decode(cleaned, match.start())
            return value
        except json.JSONDecodeError:
            continue

    logger.error(f"Failed to parse LLM response as JSON: {cleaned[:200]}")
    raise UpstreamMalformedError(
        "LLM response was not valid JSON",
        {"preview": cleaned[:200]},
    )


def extract_json_object(text: str) -> dict:
    """Like ``extract_json`` but requires a JSON object."""
    value = extract_json(text)
    if not isinstance(value, dict):
        raise UpstreamMalformedError(
            f"Expected a JSON object, got {type(value).__name__}",
            {"preview": str(value)[:200]},
        )
    return value
