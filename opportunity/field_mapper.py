"""
Field name mapping and per-field value validation for extracted updates.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .stage_gates import is_empty_value

logger = logging.getLogger(__name__)


class FieldMapper:
    """Maps natural-language field names ("deal size") to API names ("Amount")."""

    def __init__(self, mappings: Optional[Mapping[str, str]] = None):
        if mappings is None:
            from config.stages import FIELD_MAPPINGS
            mappings = FIELD_MAPPINGS
        self._mappings = {k.lower().strip(): v for k, v in mappings.items()}
        self._api_names = set(self._mappings.values())

    def map_field_name(self, name: str) -> str:
        """Return the API name for ``name``; unknown names pass through unchanged."""
        candidate = (name or "").strip()
        if candidate in self._api_names or candidate.endswith("__c"):
            return candidate
        mapped = self._mappings.get(candidate.lower())
        if mapped:
            return mapped
        logger.debug(f"No mapping found for field: {candidate}")
        return candidate


class FieldValidator:
    """Type checks for well-known field families (amounts, dates, URLs, emails)."""

    EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    AMOUNT_PATTERN = re.compile(r"^\$?\s*([\d,]*\.?\d+)\s*([kKmM])?$")

    def normalize(self, field_name: str, value: Any) -> Any:
        """Coerce obvious representations before validating (e.g. "$75k" -> 75000.0)."""
        if field_name == "Amount" and isinstance(value, str):
            match = self.AMOUNT_PATTERN.match(value.strip())
            if match:
                number = float(match.group(1).replace(",", ""))
                suffix = (match.group(2) or "").lower()
                if suffix == "k":
                    number *= 1_000
                elif suffix == "m":
                    number *= 1_000_000
                return number
        if isinstance(value, str):
            return value.strip()
        return value

    def validate(self, field_name: str, value: Any) -> Tuple[bool, Optional[str]]:
        """
        Validate a value for a field.

        Returns:
            Tuple of (valid, error message)
        """
        if is_empty_value(value):
            return False, "Field cannot be empty"

        if field_name == "Amount":
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                return False, "Amount must be a positive number"

        if field_name == "CloseDate" or field_name.endswith("Date__c"):
            parsed = self._parse_date(value)
            if parsed is None:
                return False, "Invalid date format"
            if field_name == "CloseDate" and parsed < date.today():
                return False, "Close date must be in the future"

        if "URL" in field_name:
            parsed_url = urlparse(str(value))
            if not (parsed_url.scheme and parsed_url.netloc):
                return False, "Invalid URL format"

        if "Email" in field_name:
            if not self.EMAIL_PATTERN.match(str(value)):
                return False, "Invalid email format"

        return True, None

    def validate_multiple(self, fields: Mapping[str, Any]) -> Dict[str, str]:
        """Validate several fields, returning errors keyed by field name."""
        errors: Dict[str, str] = {}
        for field_name, value in fields.items():
            valid, error = self.validate(field_name, value)
            if not valid and error:
                errors[field_name] = error
        return errors

    @staticmethod
    def _parse_date(value: Any) -> Optional[date]:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip()).date()
            except ValueError:
                return None
        return None
