"""FastAPI server for the WhatsApp coaching agent."""

import logging
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from src.agent import TrainerAgent
from src.analysis import BodyAnalyzer, Transcriber, VisionAnalyzer
from src.backend import ApiStore, BackendClient
from src.config import settings
from src.confirmation import ExerciseConfirmationDialogue
from src.errors import ProfileNotFoundError
from src.exercise_history import get_exercise_history, get_progress_summary
from src.media import MediaIngestor
from src.messenger import TwilioMessenger
from src.normalizer import normalize_exercise_name
from src.personal_records import current_records_by_exercise, recent_records
from src.profiles import require_profile
from src.router import InboundMessage, InboundRouter
from src.session_manager import SessionManager
from src.store import MemoryStore, Store

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Trainer Agent Service", version="0.1.0")


# --- Wiring ---

@lru_cache
def get_store() -> Store:
    if settings.store_backend == "api":
        return ApiStore(BackendClient(settings.backend_api_url, settings.backend_api_token))
    return MemoryStore()


@lru_cache
def get_agent() -> TrainerAgent:
    return TrainerAgent(get_store(), body_analyzer=BodyAnalyzer())


@lru_cache
def get_router() -> InboundRouter:
    store = get_store()
    sessions = SessionManager(store)
    media = MediaIngestor(store)
    messenger = TwilioMessenger()
    vision = VisionAnalyzer()
    return InboundRouter(
        store=store,
        sessions=sessions,
        media=media,
        messenger=messenger,
        vision=vision,
        body_analyzer=BodyAnalyzer(),
        transcriber=Transcriber(),
        agent=get_agent(),
        dialogue=ExerciseConfirmationDialogue(store, vision, media, messenger, sessions),
    )


# --- Auth ---

async def verify_token(request: Request):
    auth = request.headers.get("Authorization", "")
    if not settings.agent_api_token or auth != f"Bearer {settings.agent_api_token}":
        raise HTTPException(status_code=401, detail="Unauthorized")


async def verify_twilio_signature(request: Request) -> dict:
    form = dict(await request.form())
    if settings.twilio_validate_signature:
        url = settings.twilio_webhook_url or str(request.url)
        signature = request.headers.get("X-Twilio-Signature", "")
        if not RequestValidator(settings.twilio_auth_token).validate(url, form, signature):
            logger.warning(f"Rejected webhook with bad signature from {form.get('From')}")
            raise HTTPException(status_code=403, detail="Invalid signature")
    return form


@app.exception_handler(ProfileNotFoundError)
async def profile_not_found_handler(request: Request, exc: ProfileNotFoundError):
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


# --- Endpoints ---

@app.post("/v1/twilio/webhook")
async def twilio_webhook(
    background_tasks: BackgroundTasks,
    form: dict = Depends(verify_twilio_signature),
    router: InboundRouter = Depends(get_router),
):
    """Acknowledge immediately with empty TwiML and route the event in the background."""
    msg = InboundMessage.from_twilio_form(form)
    background_tasks.add_task(router.handle, msg)
    return Response(content=str(MessagingResponse()), media_type="application/xml")


@app.get("/users/{phone_number}/records", dependencies=[Depends(verify_token)])
async def user_records(phone_number: str, store: Store = Depends(get_store)):
    profile = await require_profile(store, phone_number)
    return {
        "all_prs": await current_records_by_exercise(store, profile.id),
        "recent_prs": await recent_records(store, profile.id),
    }


@app.get("/users/{phone_number}/exercises/{exercise_name}/history", dependencies=[Depends(verify_token)])
async def user_exercise_history(phone_number: str, exercise_name: str, store: Store = Depends(get_store)):
    profile = await require_profile(store, phone_number)
    key = normalize_exercise_name(exercise_name)
    return {
        "normalized_name": key,
        "history": await get_exercise_history(store, profile.id, key),
        "progress_summary": await get_progress_summary(store, profile.id, key),
    }


@app.delete("/users/{phone_number}", dependencies=[Depends(verify_token)])
async def delete_user(phone_number: str, store: Store = Depends(get_store)):
    """Erase a user and everything stored for them."""
    if not await store.delete_user(phone_number):
        raise ProfileNotFoundError(phone_number)
    logger.info(f"Deleted user {phone_number}")
    return {"success": True}


@app.post("/sessions/{phone_number}/reset", dependencies=[Depends(verify_token)])
async def reset_session(phone_number: str, agent: TrainerAgent = Depends(get_agent)):
    """Reset conversation session for a user."""
    await agent.reset_session(phone_number)
    return {"success": True, "message": "Session reset"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "trainer-agent"}
