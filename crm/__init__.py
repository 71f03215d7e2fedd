"""
CRM-page collaborator.

Reads and writes opportunities through the browser-automation service that
drives the CRM page.
"""

from .page_client import CRMPageClient, WebhookCRMPageClient

__all__ = [
    "CRMPageClient",
    "WebhookCRMPageClient",
]
