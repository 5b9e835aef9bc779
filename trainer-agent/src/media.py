"""Inbound media download and storage."""

import logging

import httpx

from src.config import settings
from src.models import MediaRef
from src.store import Store

logger = logging.getLogger(__name__)


class MediaIngestor:
    """Fetches carrier-hosted media and stores it durably."""

    def __init__(self, store: Store, transport: httpx.AsyncBaseTransport | None = None):
        self.store = store
        self.transport = transport

    async def ingest(self, phone_number: str, media_url: str, content_type: str) -> MediaRef:
        # Twilio media URLs require account basic auth and redirect to the CDN.
        auth = None
        if settings.twilio_account_sid:
            auth = (settings.twilio_account_sid, settings.twilio_auth_token)
        async with httpx.AsyncClient(
            timeout=60.0, follow_redirects=True, transport=self.transport
        ) as client:
            response = await client.get(media_url, auth=auth)
        response.raise_for_status()

        ref = await self.store.save_media(phone_number, response.content, content_type)
        logger.info(f"Stored {content_type} media {ref.id} ({len(response.content)} bytes)")
        return ref

    async def fetch(self, ref: MediaRef) -> bytes:
        return await self.store.load_media(ref.id)
