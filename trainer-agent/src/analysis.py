"""Vision / LLM / transcription collaborators.

Each call sends a payload and returns a validated result model. Network,
SDK and JSON parse failures surface as ``AnalysisError``.
"""

import base64
import json
import logging
import mimetypes

import anthropic
import httpx
from google import genai
from google.genai.types import GenerateContentConfig, Part
from pydantic import ValidationError

from src.config import settings
from src.errors import AnalysisError
from src.models import (
    BodyScan,
    BodyScanAnalysis,
    ExerciseDetection,
    NutritionPlan,
    Prediction,
    TechniqueAnalysis,
    TrainingPlan,
    UserProfile,
)

logger = logging.getLogger(__name__)


def parse_json_reply(text: str) -> dict:
    """Parse a model reply that should be a bare JSON object (fences tolerated)."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Unparseable analysis reply: {text[:200]}") from e
    if not isinstance(data, dict):
        raise AnalysisError(f"Analysis reply is not an object: {text[:200]}")
    return data


def _profile_context(profile: UserProfile | None) -> str:
    if profile is None:
        return ""
    lines = []
    if profile.sex:
        lines.append(f"Sexo del usuario: {profile.sex}")
    if profile.experience:
        lines.append(f"Nivel de experiencia: {profile.experience}")
    if profile.weight and profile.height:
        lines.append(f"Stats del usuario: {profile.weight}kg, {profile.height}cm")
    if profile.goal:
        lines.append(f"Objetivo: {profile.goal}")
    return "\n".join(lines)


DETECTION_PROMPT = """Eres un coach biomecánico. Identifica el ejercicio principal que se realiza en este video.
Responde SOLO con JSON válido, sin markdown: {"exercise": "<nombre del ejercicio en ESPAÑOL>"}"""

TECHNIQUE_PROMPT = """Eres un coach biomecánico experto analizando un video de ejercicio.
El usuario confirmó que el ejercicio es: {exercise}.

Responde SOLO con JSON válido en ESPAÑOL con exactamente estas claves:
{{"exercise": "...", "strengths": [...], "corrections": [...], "regressions": [...],
"progressions": [...], "risk_factors": [...]}}

- strengths: 2-3 observaciones positivas
- corrections: MÁXIMO 3 cues simples y accionables
- regressions / progressions: 1-2 variaciones más fáciles / más difíciles
- risk_factors: p. ej. rodillas en valgo, espalda redondeada, rango limitado

Enfócate en alineación articular, rango de movimiento, control espinal, tempo,
simetría y compensaciones.
{profile}"""


class VisionAnalyzer:
    """Exercise detection and technique analysis on video (Gemini)."""

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or settings.gemini_model
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=settings.google_api_key)
        return self._client

    async def _generate(self, video: bytes, content_type: str, prompt: str) -> dict:
        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.model_name,
                contents=[Part.from_bytes(data=video, mime_type=content_type), prompt],
                config=GenerateContentConfig(
                    temperature=0.2,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            raise AnalysisError(f"Gemini call failed: {e}") from e
        return parse_json_reply(response.text or "")

    async def detect_exercise(self, video: bytes, content_type: str) -> ExerciseDetection:
        data = await self._generate(video, content_type, DETECTION_PROMPT)
        try:
            return ExerciseDetection.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(f"Invalid detection result: {e}") from e

    async def analyze_technique(
        self, video: bytes, content_type: str, exercise: str, profile: UserProfile | None = None
    ) -> TechniqueAnalysis:
        prompt = TECHNIQUE_PROMPT.format(exercise=exercise, profile=_profile_context(profile))
        data = await self._generate(video, content_type, prompt)
        data.setdefault("exercise", exercise)
        try:
            return TechniqueAnalysis.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(f"Invalid technique result: {e}") from e


BODY_SCAN_PROMPT = """Analiza esta foto de físico. Responde SOLO con JSON válido:
{"bodyfat_percentage": {"min": <num>, "max": <num>}, "physique_type": "<texto>",
"strengths": ["..."], "opportunities": ["..."]}
Todo el texto en ESPAÑOL."""

NUTRITION_PROMPT = """Eres nutricionista deportivo. Con el perfil y el último body scan,
diseña un plan. Responde SOLO con JSON válido:
{"goal": "...",
"macros_training_days": {"calories": <num>, "protein": <g>, "carbs": <g>, "fats": <g>},
"macros_rest_days": {"calories": <num>, "protein": <g>, "carbs": <g>, "fats": <g>},
"meal_examples": ["..."], "rationale": "..."}
Todo el texto en ESPAÑOL."""

PREDICTION_PROMPT = """Eres coach de recomposición corporal. Con el perfil y el historial de
body scans, predice el progreso en {weeks} semanas. Responde SOLO con JSON válido:
{{"bodyfat_change": {{"min": <num>, "max": <num>}}, "muscular_changes": "...",
"strength_progress": "...", "assumptions": ["..."]}}"""

TRAINING_PLAN_PROMPT = """Eres un coach de fuerza. Diseña un programa de 4-6 semanas
de {days_per_week} días por semana para el objetivo: {goal}.
Equipamiento disponible: {equipment}. Nivel: {experience}.
{focus}
Responde SOLO con JSON válido, todo el texto en ESPAÑOL:
{{"duration": <4-6>, "days_per_week": {days_per_week}, "goal": "...",
"weeks": [{{"week_number": 1, "days": [{{"day_number": 1, "focus": "...",
"exercises": [{{"name": "...", "sets": <int>, "reps": "8-10", "rest": "90s",
"rpe": "7-8", "notes": "..."}}]}}]}}],
"rationale": "..."}}"""


def _profile_payload(profile: UserProfile) -> dict:
    return profile.model_dump(mode="json", exclude={"last_image", "last_video"})


class BodyAnalyzer:
    """Body scans, training and nutrition plans, progress predictions (Claude)."""

    def __init__(self, client: anthropic.AsyncAnthropic | None = None):
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        return self._client

    async def _ask(self, system: str, content: list[dict], max_tokens: int = 2048) -> dict:
        try:
            response = await self.client.messages.create(
                model=settings.anthropic_model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise AnalysisError(f"Anthropic API error: {e}") from e
        text = "".join(b.text for b in response.content if getattr(b, "type", "") == "text")
        return parse_json_reply(text)

    async def analyze_body_scan(
        self, image: bytes, content_type: str, profile: UserProfile | None = None
    ) -> BodyScanAnalysis:
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": content_type,
                    "data": base64.b64encode(image).decode("ascii"),
                },
            },
            {"type": "text", "text": _profile_context(profile) or "Sin datos de perfil."},
        ]
        data = await self._ask(BODY_SCAN_PROMPT, content)
        try:
            return BodyScanAnalysis.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(f"Invalid body scan result: {e}") from e

    async def generate_training_plan(
        self,
        profile: UserProfile,
        scan: BodyScan | None,
        days_per_week: int,
        goal: str,
        equipment: list[str],
        experience: str,
        focus_areas: list[str] | None = None,
    ) -> TrainingPlan:
        """Build a multi-week program. The latest body scan is used when there is one."""
        prompt = TRAINING_PLAN_PROMPT.format(
            days_per_week=days_per_week,
            goal=goal,
            equipment=", ".join(equipment) or "peso corporal",
            experience=experience,
            focus=f"Áreas de enfoque: {', '.join(focus_areas)}" if focus_areas else "",
        )
        payload = {"profile": _profile_payload(profile)}
        if scan is not None:
            payload["body_scan"] = scan.analysis.model_dump(mode="json")
        data = await self._ask(prompt, [{"type": "text", "text": json.dumps(payload)}], max_tokens=8192)
        data.setdefault("days_per_week", days_per_week)
        data.setdefault("goal", goal)
        try:
            return TrainingPlan.model_validate(
                {**data, "user_id": profile.id, "phone_number": profile.phone_number}
            )
        except ValidationError as e:
            raise AnalysisError(f"Invalid training plan: {e}") from e

    async def generate_nutrition_plan(
        self, profile: UserProfile, scan: BodyScan, training_plan: TrainingPlan | None = None
    ) -> NutritionPlan:
        payload = {
            "profile": _profile_payload(profile),
            "body_scan": scan.analysis.model_dump(mode="json"),
        }
        if training_plan is not None:
            payload["training_plan"] = {
                "goal": training_plan.goal,
                "days_per_week": training_plan.days_per_week,
            }
        data = await self._ask(NUTRITION_PROMPT, [{"type": "text", "text": json.dumps(payload)}])
        try:
            return NutritionPlan.model_validate({
                **data,
                "user_id": profile.id,
                "phone_number": profile.phone_number,
                "based_on_scan": scan.id,
                "based_on_training_plan": training_plan.id if training_plan else None,
            })
        except ValidationError as e:
            raise AnalysisError(f"Invalid nutrition plan: {e}") from e

    async def predict_progress(
        self, profile: UserProfile, scans: list[BodyScan], weeks: int = 8
    ) -> Prediction:
        payload = {
            "profile": _profile_payload(profile),
            "body_scans": [s.analysis.model_dump(mode="json") for s in scans],
        }
        data = await self._ask(
            PREDICTION_PROMPT.format(weeks=weeks), [{"type": "text", "text": json.dumps(payload)}]
        )
        try:
            return Prediction.model_validate({
                **data,
                "user_id": profile.id,
                "phone_number": profile.phone_number,
                "based_on_scans": [s.id for s in scans],
                "timeframe_weeks": weeks,
            })
        except ValidationError as e:
            raise AnalysisError(f"Invalid prediction: {e}") from e


# Formats Groq's Whisper endpoint accepts, keyed by base content type.
AUDIO_EXTENSIONS = {
    "audio/ogg": ".ogg",
    "audio/opus": ".ogg",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/mp4": ".m4a",
    "audio/m4a": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/aac": ".m4a",
    "audio/amr": ".amr",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/webm": ".webm",
    "audio/flac": ".flac",
}


def audio_filename(content_type: str) -> str:
    """Upload name whose extension tells the endpoint how to decode the audio."""
    base = content_type.split(";")[0].strip().lower()
    ext = AUDIO_EXTENSIONS.get(base) or mimetypes.guess_extension(base) or ".ogg"
    return f"audio{ext}"


class Transcriber:
    """Voice-note transcription through Groq's Whisper endpoint."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.transport = transport

    async def transcribe(self, audio: bytes, content_type: str) -> str:
        files = {"file": (audio_filename(content_type), audio, content_type)}
        data = {
            "model": settings.transcription_model,
            "language": settings.transcription_language,
            "response_format": "json",
            "temperature": "0.2",
        }
        try:
            async with httpx.AsyncClient(timeout=60.0, transport=self.transport) as client:
                response = await client.post(
                    settings.groq_api_url,
                    headers={"Authorization": f"Bearer {settings.groq_api_key}"},
                    files=files,
                    data=data,
                )
            response.raise_for_status()
            text = response.json().get("text", "")
        except (httpx.HTTPError, ValueError) as e:
            raise AnalysisError(f"Transcription failed: {e}") from e
        if not text.strip():
            raise AnalysisError("Transcription returned no text")
        return text.strip()
