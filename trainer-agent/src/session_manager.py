"""Store-backed conversation history for each phone number."""

import logging

from src.store import Store

logger = logging.getLogger(__name__)


class SessionManager:
    """Persists the conversation thread the agent replays on each turn."""

    def __init__(self, store: Store):
        self.store = store

    async def load_history(self, phone_number: str) -> list[dict]:
        """Load the thread in Anthropic message shape, skipping empty turns."""
        history = []
        for msg in await self.store.load_messages(phone_number):
            content = msg.get("content")
            if not content:
                continue
            if isinstance(content, str) and not content.strip():
                continue
            history.append({"role": msg["role"], "content": content})
        return history

    async def save_messages(self, phone_number: str, messages: list[dict]) -> None:
        if not messages:
            return
        payload = [
            {"role": msg["role"], "content": serialize_content(msg["content"])}
            for msg in messages
        ]
        await self.store.append_messages(phone_number, payload)

    async def record_turn(self, phone_number: str, role: str, content: str) -> None:
        """Append a single turn that did not go through the agent (media, location)."""
        await self.save_messages(phone_number, [{"role": role, "content": content}])

    async def replace_history(self, phone_number: str, messages: list[dict]) -> None:
        await self.store.replace_messages(
            phone_number,
            [{"role": m["role"], "content": serialize_content(m["content"])} for m in messages],
        )


def serialize_content(content) -> list | str:
    """Convert anthropic SDK content blocks to JSON-serializable dicts."""
    if isinstance(content, str):
        return content

    serialized = []
    for block in content:
        if isinstance(block, dict):
            serialized.append(block)
        elif hasattr(block, "model_dump"):
            serialized.append(block.model_dump(exclude_none=True))
        elif hasattr(block, "text"):
            serialized.append({"type": "text", "text": block.text})
        else:
            serialized.append({"type": "text", "text": str(block)})
    return serialized
