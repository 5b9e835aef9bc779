"""Inbound WhatsApp event classification and routing.

Exactly one branch handles each event, checked in priority order:
audio, video, image, location, text. Every branch that can fail catches
downstream errors and replies with a fixed Spanish apology.
"""

import logging
import uuid
from enum import Enum

from pydantic import BaseModel

from src.errors import MissingPrerequisiteError, ProfileNotFoundError
from src.formatting import format_body_scan
from src.models import BodyScan
from src.profiles import get_or_create_profile, update_last_image, update_last_video

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Lo siento, algo salió mal. ¿Podrías intentar de nuevo?"
VIDEO_PROGRESS_MESSAGE = "🎥 Procesando tu video..."
VIDEO_ERROR_MESSAGE = (
    "Lo siento, tuve un problema al procesar tu video. ¿Podrías intentar enviar el video "
    "de nuevo? Asegúrate de que el video muestre claramente tu ejercicio y tenga buena iluminación."
)
IMAGE_PROGRESS_MESSAGE = "🔍 Analizando tu foto, dame un momento..."
IMAGE_ERROR_MESSAGE = (
    "Lo siento, tuve un problema al analizar tu foto. ¿Podrías intentar enviarla de nuevo? "
    "Asegúrate de que la foto esté bien iluminada y muestre claramente tu físico."
)
AUDIO_ERROR_MESSAGE = (
    "Lo siento, tuve un problema al procesar tu mensaje de voz. ¿Podrías intentar enviar "
    "el mensaje de nuevo o escribirlo como texto?"
)

AUDIO_TURN = "[User sent a voice message]"
VIDEO_TURN = "[User sent a video]"
IMAGE_TURN = "[User sent a photo]"


class Branch(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"
    IMAGE = "image"
    LOCATION = "location"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


class InboundMessage(BaseModel):
    from_number: str
    to_number: str
    body: str = ""
    media_url: str | None = None
    media_content_type: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None
    message_sid: str | None = None

    @classmethod
    def from_twilio_form(cls, form: dict) -> "InboundMessage":
        """Build from Twilio's webhook form fields (first media item only)."""
        has_media = int(form.get("NumMedia") or 0) > 0
        return cls(
            from_number=(form.get("From") or "").replace("whatsapp:", ""),
            to_number=(form.get("To") or "").replace("whatsapp:", ""),
            body=form.get("Body") or "",
            media_url=form.get("MediaUrl0") if has_media else None,
            media_content_type=form.get("MediaContentType0") if has_media else None,
            latitude=form.get("Latitude") or None,
            longitude=form.get("Longitude") or None,
            address=form.get("Address") or None,
            message_sid=form.get("MessageSid"),
        )


def classify(msg: InboundMessage) -> Branch:
    if msg.media_url:
        content_type = (msg.media_content_type or "").lower()
        if content_type.startswith("audio/"):
            return Branch.AUDIO
        if content_type.startswith("video/"):
            return Branch.VIDEO
        return Branch.IMAGE
    if msg.latitude is not None and msg.longitude is not None:
        return Branch.LOCATION
    if msg.body.strip():
        return Branch.TEXT
    return Branch.UNSUPPORTED


class InboundRouter:
    def __init__(self, store, sessions, media, messenger, vision, body_analyzer, transcriber, agent, dialogue):
        self.store = store
        self.sessions = sessions
        self.media = media
        self.messenger = messenger
        self.vision = vision
        self.body_analyzer = body_analyzer
        self.transcriber = transcriber
        self.agent = agent
        self.dialogue = dialogue

    async def handle(self, msg: InboundMessage) -> Branch:
        request_id = uuid.uuid4().hex[:8]
        branch = classify(msg)
        logger.info(f"[{request_id}] {branch.value} message from {msg.from_number}")

        handlers = {
            Branch.AUDIO: (self._handle_audio, AUDIO_ERROR_MESSAGE),
            Branch.VIDEO: (self._handle_video, VIDEO_ERROR_MESSAGE),
            Branch.IMAGE: (self._handle_image, IMAGE_ERROR_MESSAGE),
            Branch.LOCATION: (self._handle_location, None),
            Branch.TEXT: (self._handle_text, GENERIC_ERROR_MESSAGE),
        }
        if branch == Branch.UNSUPPORTED:
            logger.warning(f"[{request_id}] Unprocessable event from {msg.from_number}: {msg.message_sid}")
            return branch

        handler, apology = handlers[branch]
        try:
            await get_or_create_profile(self.store, msg.from_number)
            await handler(msg)
        except (ProfileNotFoundError, MissingPrerequisiteError) as e:
            logger.info(f"[{request_id}] {e}")
            await self._reply(msg, e.user_message)
        except Exception:
            logger.exception(f"[{request_id}] {branch.value} branch failed")
            if apology:
                await self._reply(msg, apology)
        return branch

    async def _reply(self, msg: InboundMessage, body: str) -> None:
        await self.messenger.send(msg.from_number, msg.to_number, body)
        await self.sessions.record_turn(msg.from_number, "assistant", body)

    async def _reply_from_agent(self, msg: InboundMessage, text: str) -> None:
        result = await self.agent.chat(msg.from_number, text)
        if not result.get("success") or not result.get("message"):
            await self.messenger.send(msg.from_number, msg.to_number, GENERIC_ERROR_MESSAGE)
            return
        # The agent already persisted its own turns.
        await self.messenger.send(msg.from_number, msg.to_number, result["message"])

    async def _handle_audio(self, msg: InboundMessage) -> None:
        ref = await self.media.ingest(msg.from_number, msg.media_url, msg.media_content_type)
        await self.sessions.record_turn(msg.from_number, "user", AUDIO_TURN)
        audio = await self.media.fetch(ref)
        transcript = await self.transcriber.transcribe(audio, ref.content_type)
        logger.info(f"Transcribed voice note from {msg.from_number} ({len(transcript)} chars)")
        await self._reply_from_agent(msg, transcript)

    async def _handle_video(self, msg: InboundMessage) -> None:
        ref = await self.media.ingest(msg.from_number, msg.media_url, msg.media_content_type)
        await update_last_video(self.store, msg.from_number, ref)
        await self.sessions.record_turn(msg.from_number, "user", VIDEO_TURN)
        await self.messenger.send(msg.from_number, msg.to_number, VIDEO_PROGRESS_MESSAGE)

        video = await self.media.fetch(ref)
        detection = await self.vision.detect_exercise(video, ref.content_type)
        await self.dialogue.start(msg.from_number, msg.to_number, detection.exercise, ref)

    async def _handle_image(self, msg: InboundMessage) -> None:
        ref = await self.media.ingest(msg.from_number, msg.media_url, msg.media_content_type)
        profile = await update_last_image(self.store, msg.from_number, ref)
        await self.sessions.record_turn(msg.from_number, "user", IMAGE_TURN)
        await self.messenger.send(msg.from_number, msg.to_number, IMAGE_PROGRESS_MESSAGE)

        image = await self.media.fetch(ref)
        analysis = await self.body_analyzer.analyze_body_scan(image, ref.content_type, profile)
        await self.store.insert_body_scan(
            BodyScan(user_id=profile.id, phone_number=msg.from_number, image=ref, analysis=analysis)
        )
        await self._reply(msg, format_body_scan(analysis))

    async def _handle_location(self, msg: InboundMessage) -> None:
        content = msg.address or f"Location: {msg.latitude}, {msg.longitude}"
        await self.sessions.record_turn(msg.from_number, "user", content)

    async def _handle_text(self, msg: InboundMessage) -> None:
        pending = await self.store.get_pending_confirmation(msg.from_number)
        if pending is not None:
            if await self.dialogue.answer(pending, msg.body, msg.to_number):
                return
            # Unmatched reply: the confirmation stays open and the agent answers.
        await self._reply_from_agent(msg, msg.body)
