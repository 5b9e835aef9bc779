"""Outbound WhatsApp delivery through Twilio."""

import asyncio
import logging
import re

from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client

from src.config import settings

logger = logging.getLogger(__name__)

DIVIDER = "────────────────"


def markdown_to_whatsapp(text: str) -> str:
    """Convert the Markdown the models produce into WhatsApp formatting."""
    converted = re.sub(r"^#{1,4} (.+)$", r"\n*\1*\n", text, flags=re.MULTILINE)
    converted = re.sub(r"\*\*(.+?)\*\*", r"*\1*", converted)
    converted = re.sub(r"^[ \t⁠]*[-*] (.+)$", r"• \1", converted, flags=re.MULTILINE)
    converted = re.sub(
        r"```[\s\S]*?```",
        lambda m: "`" + m.group(0).replace("```", "").strip() + "`",
        converted,
    )

    def _link(match: re.Match) -> str:
        label, url = match.group(1), match.group(2)
        return url if label.strip() == url.strip() else f"{label} ({url})"

    converted = re.sub(r"\[(.+?)\]\((.+?)\)", _link, converted)
    converted = re.sub(r"^---+$", DIVIDER, converted, flags=re.MULTILINE)
    converted = re.sub(r"\n{3,}", "\n\n", converted)
    return converted.replace("⁠", "").strip()


def split_message(body: str, max_length: int) -> list[str]:
    """Split on line boundaries into chunks of at most ``max_length`` chars.

    A single line longer than the limit becomes its own chunk.
    """
    if len(body) <= max_length:
        return [body]

    chunks: list[str] = []
    current = ""
    for line in body.split("\n"):
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > max_length and current:
            chunks.append(current.strip())
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current.strip())
    return chunks


class TwilioMessenger:
    """Sends a body to a WhatsApp number, chunking long messages."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
                http_client=AsyncTwilioHttpClient(),
            )
        return self._client

    async def send(self, to: str, from_: str, body: str) -> None:
        formatted = markdown_to_whatsapp(body)
        chunks = [formatted]
        if len(formatted) > settings.message_max_length:
            # Reserve room for the "(i/n) " prefix.
            chunks = split_message(formatted, settings.message_max_length - 10)
            logger.info(f"Message too long ({len(formatted)} chars), sending {len(chunks)} parts")

        for i, chunk in enumerate(chunks, start=1):
            prefix = f"({i}/{len(chunks)}) " if len(chunks) > 1 else ""
            message = await self.client.messages.create_async(
                from_=f"whatsapp:{from_}",
                to=f"whatsapp:{to}",
                body=prefix + chunk,
            )
            logger.info(f"WhatsApp message sent to {to} - SID: {message.sid}")
            if i < len(chunks):
                await asyncio.sleep(settings.message_chunk_delay)
