"""
CRM-page clients.

The browser-automation service exposes the opportunity page over a small
JSON HTTP API; ``WebhookCRMPageClient`` talks to it with httpx.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from opportunity.errors import CRMClientError, UpstreamMalformedError
from opportunity.models import FieldUpdate, OpportunityState

logger = logging.getLogger(__name__)

SUCCESS_CODES = (200, 201, 202, 204)


class CRMPageClient(ABC):
    """Reads and writes opportunities on the CRM page."""

    @abstractmethod
    async def read_opportunity(self, identifier: str) -> Optional[OpportunityState]:
        """Return the opportunity matching ``identifier`` (id or name), or None."""

    @abstractmethod
    async def write_fields(self, opportunity_id: str, updates: List[FieldUpdate]) -> bool:
        """Write a batch of field updates; all of them or none."""

    @abstractmethod
    async def advance_stage(self, opportunity_id: str, to_stage: str) -> bool:
        """Move the opportunity to ``to_stage``."""


class WebhookCRMPageClient(CRMPageClient):
    """
    httpx client for the CRM-page automation service.

    Endpoints:
    - GET  {base}/opportunities/{identifier}
    - POST {base}/opportunities/{id}/fields   {"updates": [...]}
    - POST {base}/opportunities/{id}/stage    {"stage": "..."}
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the automation service
            api_key: Optional key sent as X-API-Key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self.transport,
        )

    async def read_opportunity(self, identifier: str) -> Optional[OpportunityState]:
        path = f"/opportunities/{quote(identifier, safe='')}"
        try:
            async with self._client() as client:
                response = await client.get(path)
        except httpx.HTTPError as e:
            logger.error(f"CRM read failed for '{identifier}': {e}")
            raise CRMClientError(f"CRM read failed: {e}", {"identifier": identifier}) from e

        if response.status_code == 404:
            logger.info(f"Opportunity '{identifier}' not found")
            return None
        if response.status_code not in SUCCESS_CODES:
            logger.error(f"CRM read returned {response.status_code}: {response.text[:500]}")
            raise CRMClientError(
                f"CRM read returned HTTP {response.status_code}",
                {"identifier": identifier, "status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamMalformedError(
                "CRM read returned invalid JSON",
                {"identifier": identifier, "preview": response.text[:200]},
            ) from e

        return self.parse_opportunity(payload)

    async def write_fields(self, opportunity_id: str, updates: List[FieldUpdate]) -> bool:
        payload = {"updates": [{"field": u.field, "value": u.value} for u in updates]}
        return await self._post(f"/opportunities/{quote(opportunity_id, safe='')}/fields", payload)

    async def advance_stage(self, opportunity_id: str, to_stage: str) -> bool:
        payload = {"stage": to_stage}
        return await self._post(f"/opportunities/{quote(opportunity_id, safe='')}/stage", payload)

    async def _post(self, path: str, payload: Dict[str, Any]) -> bool:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"CRM write to {path} failed: {e}")
            raise CRMClientError(f"CRM write failed: {e}", {"path": path}) from e

        if response.status_code in SUCCESS_CODES:
            logger.info(f"CRM write to {path} succeeded")
            return True

        logger.error(f"CRM write to {path} returned {response.status_code}: {response.text[:500]}")
        return False

    @staticmethod
    def parse_opportunity(payload: Any) -> OpportunityState:
        """
        Build an OpportunityState from the service payload.

        Accepts the record at the top level or under an "opportunity" key.

        Raises:
            UpstreamMalformedError: If id, name or stage is missing
        """
        if isinstance(payload, Mapping) and isinstance(payload.get("opportunity"), Mapping):
            payload = payload["opportunity"]
        if not isinstance(payload, Mapping):
            raise UpstreamMalformedError(f"Opportunity payload must be an object, got {type(payload).__name__}")

        missing = [key for key in ("id", "name", "stage") if not payload.get(key)]
        if missing:
            raise UpstreamMalformedError(
                f"Opportunity payload missing {', '.join(missing)}",
                {"keys": sorted(payload.keys())},
            )

        fields = payload.get("fields") or {}
        if not isinstance(fields, Mapping):
            raise UpstreamMalformedError(f"Opportunity fields must be an object, got {type(fields).__name__}")

        return OpportunityState(
            id=str(payload["id"]),
            name=str(payload["name"]),
            stage=str(payload["stage"]),
            fields=dict(fields),
        )
