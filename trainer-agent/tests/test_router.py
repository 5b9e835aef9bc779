"""Tests for inbound classification and routing."""

import pytest
from conftest import (
    BOT,
    PHONE,
    FakeAgent,
    FakeBodyAnalyzer,
    FakeMedia,
    FakeMessenger,
    FakeTranscriber,
    FakeVision,
    build_router,
    run,
)

from src.models import ConfirmationState
from src.router import (
    AUDIO_ERROR_MESSAGE,
    AUDIO_TURN,
    IMAGE_ERROR_MESSAGE,
    VIDEO_ERROR_MESSAGE,
    VIDEO_PROGRESS_MESSAGE,
    Branch,
    InboundMessage,
    classify,
)


def _msg(body="", content_type=None, **kwargs):
    return InboundMessage(
        from_number=PHONE,
        to_number=BOT,
        body=body,
        media_url="https://api.twilio.com/media/ME1" if content_type else None,
        media_content_type=content_type,
        **kwargs,
    )


class TestClassify:

    def test_audio_wins_over_body(self):
        assert classify(_msg("sí", "audio/ogg")) == Branch.AUDIO

    def test_video(self):
        assert classify(_msg("mira", "video/mp4")) == Branch.VIDEO

    @pytest.mark.parametrize("content_type", ["image/jpeg", "application/pdf"])
    def test_other_media_is_image(self, content_type):
        assert classify(_msg(content_type=content_type)) == Branch.IMAGE

    def test_location(self):
        assert classify(_msg(latitude=19.43, longitude=-99.13)) == Branch.LOCATION

    def test_text(self):
        assert classify(_msg("hola")) == Branch.TEXT

    def test_empty_event_is_unsupported(self):
        assert classify(_msg("   ")) == Branch.UNSUPPORTED


class TestFromTwilioForm:

    def test_strips_whatsapp_prefix_and_reads_first_media(self):
        msg = InboundMessage.from_twilio_form({
            "From": f"whatsapp:{PHONE}",
            "To": f"whatsapp:{BOT}",
            "Body": "",
            "NumMedia": "1",
            "MediaUrl0": "https://api.twilio.com/media/ME1",
            "MediaContentType0": "video/mp4",
            "MessageSid": "SM1",
        })
        assert msg.from_number == PHONE
        assert msg.to_number == BOT
        assert msg.media_content_type == "video/mp4"

    def test_location_fields(self):
        msg = InboundMessage.from_twilio_form({
            "From": f"whatsapp:{PHONE}",
            "To": f"whatsapp:{BOT}",
            "NumMedia": "0",
            "Latitude": "19.43",
            "Longitude": "-99.13",
        })
        assert msg.latitude == 19.43
        assert msg.media_url is None


class TestRouter:

    def test_text_goes_to_agent_and_creates_profile(self, store):
        messenger, agent = FakeMessenger(), FakeAgent()
        router = build_router(store, messenger, agent=agent)
        assert run(router.handle(_msg("hola"))) == Branch.TEXT
        assert agent.received == ["hola"]
        assert messenger.sent == [(PHONE, BOT, agent.reply)]
        assert run(store.get_user_profile(PHONE)) is not None

    def test_audio_with_pending_confirmation_still_transcribes(self, store, user):
        messenger, agent = FakeMessenger(), FakeAgent()
        router = build_router(store, messenger, agent=agent, transcriber=FakeTranscriber("sí"))
        run(router.handle(_msg(content_type="video/mp4")))
        assert run(router.handle(_msg("sí", "audio/ogg"))) == Branch.AUDIO
        assert agent.received == ["sí"]
        pending = run(store.get_pending_confirmation(PHONE))
        assert pending is not None
        assert pending.state == ConfirmationState.DETECTED
        assert any(m["content"] == AUDIO_TURN for m in run(store.load_messages(PHONE)))

    def test_video_happy_path(self, store, user):
        messenger, vision = FakeMessenger(), FakeVision(detected="Sentadilla")
        router = build_router(store, messenger, vision=vision)
        run(router.handle(_msg(content_type="video/mp4")))
        assert messenger.bodies[0] == VIDEO_PROGRESS_MESSAGE
        assert "*Sentadilla*" in messenger.bodies[1]
        assert run(store.get_user_profile(PHONE)).last_video is not None

        run(router.handle(_msg("Sí")))
        assert vision.technique_calls == ["Sentadilla"]
        assert run(store.get_pending_confirmation(PHONE)) is None

    def test_video_correction_path(self, store, user):
        messenger, vision = FakeMessenger(), FakeVision(detected="Sentadilla")
        router = build_router(store, messenger, vision=vision)
        run(router.handle(_msg(content_type="video/mp4")))
        run(router.handle(_msg("no")))
        assert run(store.get_pending_confirmation(PHONE)).waiting_for_correction
        run(router.handle(_msg("Peso Muerto")))
        assert vision.technique_calls == ["Peso Muerto"]
        assert run(store.get_pending_confirmation(PHONE)) is None

    def test_unmatched_reply_while_detected_goes_to_agent(self, store, user):
        messenger, agent = FakeMessenger(), FakeAgent()
        router = build_router(store, messenger, agent=agent)
        run(router.handle(_msg(content_type="video/mp4")))
        run(router.handle(_msg("¿y mi dieta?")))
        assert agent.received == ["¿y mi dieta?"]
        assert run(store.get_pending_confirmation(PHONE)) is not None

    def test_image_runs_body_scan(self, store, user):
        messenger = FakeMessenger()
        router = build_router(store, messenger)
        assert run(router.handle(_msg(content_type="image/jpeg"))) == Branch.IMAGE
        scans = run(store.list_body_scans(user.id))
        assert len(scans) == 1
        assert "14-17%" in messenger.bodies[-1]
        assert run(store.get_user_profile(PHONE)).last_image is not None

    def test_location_recorded_without_reply(self, store, user):
        messenger = FakeMessenger()
        router = build_router(store, messenger)
        run(router.handle(_msg(latitude=19.43, longitude=-99.13, address="Gimnasio Centro")))
        assert messenger.sent == []
        assert run(store.load_messages(PHONE))[-1] == {"role": "user", "content": "Gimnasio Centro"}

    def test_location_without_address(self, store, user):
        router = build_router(store, FakeMessenger())
        run(router.handle(_msg(latitude=19.43, longitude=-99.13)))
        assert run(store.load_messages(PHONE))[-1]["content"] == "Location: 19.43, -99.13"

    def test_unsupported_event_is_ignored(self, store, user):
        messenger = FakeMessenger()
        router = build_router(store, messenger)
        assert run(router.handle(_msg(""))) == Branch.UNSUPPORTED
        assert messenger.sent == []


class TestRouterFailures:

    def test_body_scan_failure_apologizes(self, store, user):
        messenger = FakeMessenger()
        router = build_router(store, messenger, body_analyzer=FakeBodyAnalyzer(fail=True))
        run(router.handle(_msg(content_type="image/jpeg")))
        assert messenger.bodies[-1] == IMAGE_ERROR_MESSAGE

    def test_transcription_failure_apologizes(self, store, user):
        messenger = FakeMessenger()
        router = build_router(store, messenger, transcriber=FakeTranscriber(fail=True))
        run(router.handle(_msg(content_type="audio/ogg")))
        assert messenger.bodies == [AUDIO_ERROR_MESSAGE]

    def test_media_download_failure_apologizes(self, store, user):
        messenger = FakeMessenger()
        router = build_router(store, messenger, media=FakeMedia(store, fail=True))
        run(router.handle(_msg(content_type="video/mp4")))
        assert messenger.bodies == [VIDEO_ERROR_MESSAGE]
        assert run(store.get_pending_confirmation(PHONE)) is None
