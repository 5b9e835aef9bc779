"""Shared fixtures: an in-memory store and fakes for every outside collaborator."""

import asyncio

import pytest

from src.confirmation import ExerciseConfirmationDialogue
from src.errors import AnalysisError
from src.models import (
    BodyScanAnalysis,
    ExerciseDetection,
    Macros,
    NutritionPlan,
    PlanDay,
    PlannedExercise,
    PlanWeek,
    Prediction,
    Range,
    TechniqueAnalysis,
    TrainingPlan,
)
from src.router import InboundRouter
from src.session_manager import SessionManager
from src.store import MemoryStore

PHONE = "+5215512345678"
BOT = "+14155238886"


class FakeMessenger:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to, from_, body):
        self.sent.append((to, from_, body))

    @property
    def bodies(self):
        return [body for _, _, body in self.sent]


class FakeMedia:
    def __init__(self, store, fail=False):
        self.store = store
        self.fail = fail
        self.ingested: list[str] = []

    async def ingest(self, phone_number, media_url, content_type):
        if self.fail:
            raise AnalysisError("download failed")
        self.ingested.append(media_url)
        return await self.store.save_media(phone_number, b"media-bytes", content_type)

    async def fetch(self, ref):
        return await self.store.load_media(ref.id)


class FakeVision:
    def __init__(self, detected="Sentadilla", fail_technique=False):
        self.detected = detected
        self.fail_technique = fail_technique
        self.technique_calls: list[str] = []

    async def detect_exercise(self, video, content_type):
        return ExerciseDetection(exercise=self.detected)

    async def analyze_technique(self, video, content_type, exercise, profile=None):
        self.technique_calls.append(exercise)
        if self.fail_technique:
            raise AnalysisError("gemini down")
        return TechniqueAnalysis(
            exercise=exercise,
            strengths=["Buena profundidad"],
            corrections=["Mantén el pecho arriba"],
        )


class FakeBodyAnalyzer:
    def __init__(self, fail=False):
        self.fail = fail
        self.training_calls: list[dict] = []

    async def analyze_body_scan(self, image, content_type, profile=None):
        if self.fail:
            raise AnalysisError("claude down")
        return BodyScanAnalysis(
            bodyfat_percentage=Range(min=14, max=17),
            physique_type="Atlético",
            strengths=["Hombros"],
            opportunities=["Piernas"],
        )

    async def generate_training_plan(self, profile, scan, days_per_week, goal, equipment,
                                     experience, focus_areas=None):
        self.training_calls.append({
            "scan": scan.id if scan else None,
            "days_per_week": days_per_week,
            "goal": goal,
            "equipment": equipment,
            "experience": experience,
            "focus_areas": focus_areas,
        })
        day = PlanDay(
            day_number=1,
            focus="Pierna",
            exercises=[PlannedExercise(name="Sentadilla", sets=4, reps="6-8", rest="120s")],
        )
        return TrainingPlan(
            user_id=profile.id,
            phone_number=profile.phone_number,
            duration=4,
            days_per_week=days_per_week,
            goal=goal,
            weeks=[PlanWeek(week_number=1, days=[day])],
        )

    async def generate_nutrition_plan(self, profile, scan, training_plan=None):
        return NutritionPlan(
            user_id=profile.id,
            phone_number=profile.phone_number,
            based_on_scan=scan.id,
            based_on_training_plan=training_plan.id if training_plan else None,
            macros_training_days=Macros(calories=2600, protein=180, carbs=300, fats=70),
            macros_rest_days=Macros(calories=2200, protein=180, carbs=200, fats=70),
        )

    async def predict_progress(self, profile, scans, weeks=8):
        return Prediction(
            user_id=profile.id,
            phone_number=profile.phone_number,
            based_on_scans=[s.id for s in scans],
            timeframe_weeks=weeks,
            bodyfat_change=Range(min=-3, max=-1),
        )


class FakeTranscriber:
    def __init__(self, text="hice sentadilla 100kg por 5", fail=False):
        self.text = text
        self.fail = fail

    async def transcribe(self, audio, content_type):
        if self.fail:
            raise AnalysisError("groq down")
        return self.text


class FakeAgent:
    def __init__(self, reply="¡Hola! ¿Entrenamos hoy?"):
        self.reply = reply
        self.received: list[str] = []

    async def chat(self, phone_number, message):
        self.received.append(message)
        return {"success": True, "message": self.reply, "tool_calls": []}


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def user(store):
    return run(store.upsert_user_profile(PHONE, age=30, sex="male", weight=80, height=178))


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def vision():
    return FakeVision()


@pytest.fixture
def agent():
    return FakeAgent()


def build_router(store, messenger, vision=None, agent=None, body_analyzer=None,
                 transcriber=None, media=None):
    vision = vision or FakeVision()
    media = media or FakeMedia(store)
    sessions = SessionManager(store)
    return InboundRouter(
        store=store,
        sessions=sessions,
        media=media,
        messenger=messenger,
        vision=vision,
        body_analyzer=body_analyzer or FakeBodyAnalyzer(),
        transcriber=transcriber or FakeTranscriber(),
        agent=agent or FakeAgent(),
        dialogue=ExerciseConfirmationDialogue(store, vision, media, messenger, sessions),
    )
