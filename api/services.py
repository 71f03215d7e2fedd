"""
Service initialization and dependency injection for the API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Any, Optional

from config.settings import get_settings, Settings
from config.stages import DEFAULT_FIELD_SCHEMA, FIELD_MAPPINGS, STAGE_GATES
from crm.page_client import WebhookCRMPageClient
from llm.providers import create_provider
from opportunity.extraction_merger import ExtractionMerger
from opportunity.intent_classifier import IntentClassifier
from opportunity.models import Confidence
from opportunity.notes_parser import NotesParser
from opportunity.orchestrator import UpdateOrchestrator
from opportunity.stage_gates import StageGatePolicy

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.policy: Optional[StageGatePolicy] = None
        self.merger: Optional[ExtractionMerger] = None
        self.llm_provider: Optional[Any] = None
        self.intent_classifier: Optional[IntentClassifier] = None
        self.notes_parser: Optional[NotesParser] = None
        self.crm_client: Optional[WebhookCRMPageClient] = None
        self.orchestrator: Optional[UpdateOrchestrator] = None
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        logger.info(f"Initializing services with provider: {self.settings.llm_provider}")

        try:
            self._init_stage_gates()
            self._init_llm()
            self._init_crm()
            self._init_orchestrator()
            self._initialized = True
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            # Allow API to start even if some services fail
            self._initialized = True
            logger.warning("API starting in degraded mode")

    def _init_stage_gates(self):
        """Initialize the stage-gate policy and merger."""
        self.policy = StageGatePolicy.from_config()
        self.merger = ExtractionMerger(self.policy, field_schema=DEFAULT_FIELD_SCHEMA)
        logger.info(f"Stage-gate policy ready: {len(self.policy.rules)} rules")

    def _init_llm(self):
        """Initialize the LLM provider and the components that use it."""
        self.llm_provider = create_provider(self.settings)
        self.intent_classifier = IntentClassifier(llm_client=self.llm_provider)
        self.notes_parser = NotesParser(
            self.llm_provider,
            field_mappings=FIELD_MAPPINGS,
            stage_gates=STAGE_GATES,
        )
        logger.info(f"LLM services ready: {self.settings.llm_model_id}")

    def _init_crm(self):
        """Initialize the CRM-page client."""
        s = self.settings

        if not s.crm_base_url:
            logger.warning("CRM_BASE_URL not set, opportunity updates disabled")
            return

        self.crm_client = WebhookCRMPageClient(
            base_url=s.crm_base_url,
            api_key=s.crm_api_key,
            timeout=s.crm_timeout_seconds,
        )
        logger.info(f"CRM client ready: {s.crm_base_url}")

    def _init_orchestrator(self):
        """Initialize the update orchestrator."""
        if self.crm_client is None:
            return

        s = self.settings
        self.orchestrator = UpdateOrchestrator(
            intent_classifier=self.intent_classifier,
            notes_parser=self.notes_parser,
            merger=self.merger,
            crm_client=self.crm_client,
            min_confidence=Confidence.parse(s.min_intent_confidence, Confidence.MEDIUM),
            apply_fields_on_blocked_stage=s.apply_fields_on_blocked_stage,
        )
        logger.info("Update orchestrator ready")

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "stage_gates": self.policy is not None,
            "llm": self.llm_provider is not None,
            "crm": self.crm_client is not None,
            "orchestrator": self.orchestrator is not None,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()
