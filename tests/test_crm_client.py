"""Tests for the CRM-page HTTP client."""

import asyncio
import json

import httpx
import pytest

from crm.page_client import WebhookCRMPageClient
from opportunity.errors import CRMClientError, UpstreamMalformedError
from opportunity.models import Confidence, FieldUpdate

OPPORTUNITY = {
    "id": "006A000001",
    "name": "Acme",
    "stage": "Discovery",
    "fields": {"Amount": 50000},
}


def _client(handler, api_key=None):
    return WebhookCRMPageClient(
        base_url="http://crm.test/api/",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


class TestReadOpportunity:
    def test_read(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("X-API-Key")
            return httpx.Response(200, json=OPPORTUNITY)

        state = asyncio.run(_client(handler, api_key="secret").read_opportunity("Acme Corp"))

        assert state.id == "006A000001"
        assert state.fields == {"Amount": 50000}
        assert seen["url"] == "http://crm.test/api/opportunities/Acme%20Corp"
        assert seen["key"] == "secret"

    def test_wrapped_payload(self):
        client = _client(lambda request: httpx.Response(200, json={"opportunity": OPPORTUNITY}))
        state = asyncio.run(client.read_opportunity("Acme"))
        assert state.name == "Acme"

    def test_not_found(self):
        client = _client(lambda request: httpx.Response(404, json={"error": "not found"}))
        assert asyncio.run(client.read_opportunity("Nobody")) is None

    def test_missing_keys_malformed(self):
        client = _client(lambda request: httpx.Response(200, json={"id": "1", "name": "Acme"}))
        with pytest.raises(UpstreamMalformedError):
            asyncio.run(client.read_opportunity("Acme"))

    def test_invalid_json_malformed(self):
        client = _client(lambda request: httpx.Response(200, text="<html>login</html>"))
        with pytest.raises(UpstreamMalformedError):
            asyncio.run(client.read_opportunity("Acme"))

    def test_server_error(self):
        client = _client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(CRMClientError):
            asyncio.run(client.read_opportunity("Acme"))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CRMClientError):
            asyncio.run(_client(handler).read_opportunity("Acme"))


class TestWrites:
    def test_write_fields_sends_batch(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        updates = [
            FieldUpdate("Amount", 50000.0, Confidence.HIGH, "notes"),
            FieldUpdate("Champion__c", "Jane", Confidence.MEDIUM, "notes"),
        ]
        assert asyncio.run(_client(handler).write_fields("006A000001", updates)) is True
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/opportunities/006A000001/fields"
        assert seen["body"] == {
            "updates": [
                {"field": "Amount", "value": 50000.0},
                {"field": "Champion__c", "value": "Jane"},
            ]
        }

    def test_write_rejected(self):
        client = _client(lambda request: httpx.Response(422, json={"error": "validation rule"}))
        assert asyncio.run(client.write_fields("006A000001", [FieldUpdate("Amount", 1)])) is False

    def test_advance_stage(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(204)

        assert asyncio.run(_client(handler).advance_stage("006A000001", "Proposal")) is True
        assert seen["path"] == "/api/opportunities/006A000001/stage"
        assert seen["body"] == {"stage": "Proposal"}

    def test_write_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(CRMClientError):
            asyncio.run(_client(handler).advance_stage("006A000001", "Proposal"))
