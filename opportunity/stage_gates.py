"""
Stage-gate policy.

Decides whether an opportunity may move between pipeline stages given the
required-field rules configured for the target stage.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import OpportunityState, RequiredField, StageGateRule, ValidationResult

logger = logging.getLogger(__name__)

_STAGE_PREFIX = re.compile(r"^\d+\s*-\s*")


def normalize_stage(stage: Optional[str]) -> str:
    """Strip numeric prefixes like "2 - " and surrounding whitespace."""
    return _STAGE_PREFIX.sub("", (stage or "").strip()).strip()


def stage_key(stage: Optional[str]) -> str:
    """Case-insensitive lookup key for a stage name."""
    return normalize_stage(stage).casefold()


def is_empty_value(value: Any) -> bool:
    """True for None, blank strings and empty collections (False and 0 are values)."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


class StageGatePolicy:
    """
    Rule table + evaluator for stage transitions.

    Rules are resolved once per evaluation from two explicit maps: exact
    ``(from_stage, to_stage)`` rules and wildcard rules keyed by ``to_stage``.
    Exact rules win. Transitions without any rule are unconditionally valid.
    """

    def __init__(
        self,
        rules: Iterable[StageGateRule],
        stage_order: Optional[Sequence[str]] = None,
    ):
        """
        Build the policy.

        Args:
            rules: Stage-gate rules; at most one per exact pair and one wildcard per target
            stage_order: Ordered pipeline stages, used to resolve "next stage"

        Raises:
            ValueError: If two rules claim the same transition
        """
        self._exact: Dict[Tuple[str, str], StageGateRule] = {}
        self._wildcard: Dict[str, StageGateRule] = {}
        self._rules: List[StageGateRule] = []

        for rule in rules:
            to_stage = stage_key(rule.to_stage)
            if rule.is_wildcard:
                if to_stage in self._wildcard:
                    raise ValueError(f"Duplicate wildcard stage-gate rule for '{rule.to_stage}'")
                self._wildcard[to_stage] = rule
            else:
                key = (stage_key(rule.from_stage), to_stage)
                if key in self._exact:
                    raise ValueError(f"Duplicate stage-gate rule for {rule.from_stage} -> {rule.to_stage}")
                self._exact[key] = rule
            self._rules.append(rule)

        self._stage_order = [normalize_stage(s) for s in (stage_order or [])]

    @property
    def rules(self) -> List[StageGateRule]:
        return list(self._rules)

    @property
    def stage_order(self) -> List[str]:
        return list(self._stage_order)

    def get_rule(self, from_stage: str, to_stage: str) -> Optional[StageGateRule]:
        """Resolve the authoritative rule for a transition, if any."""
        target = stage_key(to_stage)
        rule = self._exact.get((stage_key(from_stage), target))
        if rule is not None:
            return rule
        return self._wildcard.get(target)

    def required_fields(self, from_stage: str, to_stage: str) -> List[RequiredField]:
        rule = self.get_rule(from_stage, to_stage)
        return list(rule.required_fields) if rule else []

    def next_stage(self, stage: str) -> Optional[str]:
        """Stage following ``stage`` in the pipeline order, or None at the end."""
        keys = [stage_key(s) for s in self._stage_order]
        current = stage_key(stage)
        if current not in keys:
            return None
        index = keys.index(current)
        if index + 1 >= len(keys):
            return None
        return self._stage_order[index + 1]

    def canonical_stage(self, stage: Optional[str]) -> Optional[str]:
        """
        Resolve a stage name to its configured spelling.

        Known stages are the pipeline order plus every rule's target stage.
        Without a configured order any non-blank name is accepted as-is.

        Returns:
            Configured stage name, or None when blank or unknown
        """
        wanted = stage_key(stage)
        if not wanted:
            return None
        known = list(self._stage_order) + [normalize_stage(r.to_stage) for r in self._rules]
        for name in known:
            if stage_key(name) == wanted:
                return name
        if self._stage_order:
            return None
        return normalize_stage(stage)

    def evaluate_transition(
        self,
        from_stage: str,
        to_stage: str,
        record: OpportunityState,
    ) -> ValidationResult:
        """
        Check whether ``record`` satisfies the gate for ``from_stage`` -> ``to_stage``.

        Args:
            from_stage: Current stage
            to_stage: Proposed stage
            record: Opportunity snapshot (usually the projected record)

        Returns:
            ValidationResult listing the API names of unmet required fields
        """
        if stage_key(from_stage) == stage_key(to_stage):
            return ValidationResult(is_valid=True)

        rule = self.get_rule(from_stage, to_stage)
        if rule is None:
            return ValidationResult(is_valid=True)

        missing: List[str] = []
        warnings: List[str] = []

        for required in rule.required_fields:
            value = record.fields.get(required.api_name)
            if is_empty_value(value):
                missing.append(required.api_name)
                warnings.append(self._missing_message(required))
            elif required.validation is not None and not self._passes(required, value):
                missing.append(required.api_name)
                warnings.append(
                    f"Invalid value for {required.display_name}: {value!r}"
                    + (f" - {required.description}" if required.description else "")
                )

        if missing and rule.warning_message:
            warnings.append(rule.warning_message)

        return ValidationResult(
            is_valid=not missing,
            missing_fields=missing,
            warnings=warnings,
        )

    @staticmethod
    def _missing_message(required: RequiredField) -> str:
        if required.description:
            return f"Missing required field: {required.display_name} - {required.description}"
        return f"Missing required field: {required.display_name}"

    @staticmethod
    def _passes(required: RequiredField, value: Any) -> bool:
        try:
            return bool(required.validation(value))
        except Exception as e:
            logger.warning(f"Validation for {required.api_name} raised: {e}")
            return False

    @classmethod
    def from_config(cls) -> "StageGatePolicy":
        """Build the policy from the configured pipeline."""
        from config.stages import SALESFORCE_STAGES, STAGE_GATES
        return cls(STAGE_GATES, stage_order=SALESFORCE_STAGES)
