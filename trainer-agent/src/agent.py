"""Claude coaching agent with tool use and store-backed conversation history."""

import json
import logging

import anthropic

from src.analysis import BodyAnalyzer
from src.config import settings
from src.errors import CoachError
from src.models import UserProfile
from src.session_manager import SessionManager, serialize_content
from src.store import Store
from src.tools import ALL_TOOLS, TOOL_HANDLERS
from src.tools._base import ToolContext

logger = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 10


def build_system_prompt(profile: UserProfile | None) -> str:
    """Build the coaching prompt around what we know of the user."""
    if profile is None:
        profile = UserProfile(phone_number="")

    equipment = ", ".join(profile.equipment) if profile.equipment else "?"
    onboarding = (
        "Completo."
        if profile.onboarding_completed
        else "Incompleto: pide con naturalidad los datos que falten y guárdalos con update_user_profile."
    )

    return f"""Eres un coach de fuerza y acondicionamiento físico que acompaña a este usuario por WhatsApp.

## Usuario
- Edad: {profile.age or '?'}
- Sexo: {profile.sex or '?'}
- Peso/altura: {profile.weight or '?'}kg / {profile.height or '?'}cm
- Objetivo: {profile.goal or '?'}
- Experiencia: {profile.experience or '?'}
- Equipo disponible: {equipment}
- Días de entrenamiento por semana: {profile.training_days_per_week or '?'}
- Registro: {onboarding}

## Cómo trabajas
1. Hablas en español, cercano y directo.
2. Cuando el usuario cuente un entrenamiento, confirma ejercicios, series, repeticiones y peso, y regístralo con log_workout.
3. Si log_workout devuelve récords nuevos, celébralos usando el resumen que trae; si no, reconoce el trabajo igualmente.
4. Para preguntas de progreso usa get_exercise_history, get_personal_records, get_progress_overview o get_workout_summary antes de responder.
5. Si el usuario quiere corregir o borrar un entrenamiento, búscalo con get_workouts y usa update_workout o delete_workout. Confirma antes de borrar.
6. Puedes armar un programa con generate_training_plan. Los planes de nutrición y las predicciones necesitan al menos un body scan; si falta, pide una foto.
7. Respuestas breves, pensadas para leerse en el móvil.
8. Solo hablas de entrenamiento, nutrición y salud. Si te preguntan otra cosa, redirige la conversación con amabilidad."""


class TrainerAgent:
    """AI coach backed by Claude with tool use."""

    def __init__(
        self,
        store: Store,
        body_analyzer: BodyAnalyzer | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self.store = store
        self.body_analyzer = body_analyzer
        self.session_manager = SessionManager(store)
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        return self._client

    async def chat(self, phone_number: str, message: str) -> dict:
        """Run one user turn through the tool loop and return the reply."""
        profile = await self.store.get_user_profile(phone_number)
        history = await self.session_manager.load_history(phone_number)
        system_prompt = build_system_prompt(profile)
        ctx = ToolContext(phone_number=phone_number, store=self.store, body_analyzer=self.body_analyzer)

        new_messages: list[dict] = [{"role": "user", "content": message}]
        messages = trim_history(history, settings.max_history_messages) + new_messages
        collected_tool_calls: list[dict] = []

        response = None
        for _ in range(MAX_TOOL_ITERATIONS):
            try:
                response = await self.client.messages.create(
                    model=settings.anthropic_model,
                    max_tokens=2048,
                    system=system_prompt,
                    tools=ALL_TOOLS,
                    messages=messages,
                )
            except anthropic.APIError as e:
                logger.error(f"Anthropic API error for {phone_number}: {e}")
                return {"success": False, "error": str(e)}

            assistant_msg = {"role": "assistant", "content": serialize_content(response.content)}
            messages.append(assistant_msg)
            new_messages.append(assistant_msg)

            if response.stop_reason != "tool_use":
                break

            tool_results = []
            for block in response.content:
                if block.type != "tool_use":
                    continue
                result, is_error = await self._run_tool(block.name, block.input, ctx)
                collected_tool_calls.append({"name": block.name, "input": block.input, "result": result})
                tool_result = {
                    "type": "tool_result",
                    "tool_use_id": block.id,
                    "content": result if isinstance(result, str) else json.dumps(result, ensure_ascii=False),
                }
                if is_error:
                    tool_result["is_error"] = True
                tool_results.append(tool_result)

            tool_msg = {"role": "user", "content": tool_results}
            messages.append(tool_msg)
            new_messages.append(tool_msg)

        await self.session_manager.save_messages(phone_number, new_messages)

        text = "\n".join(b.text for b in response.content if getattr(b, "type", "") == "text")
        return {"success": True, "message": text, "tool_calls": collected_tool_calls}

    async def _run_tool(self, name: str, tool_input: dict, ctx: ToolContext) -> tuple[dict | str, bool]:
        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            return f"Unknown tool: {name}", True
        try:
            return await handler(name, tool_input, ctx), False
        except CoachError as e:
            logger.warning(f"Tool {name} for {ctx.phone_number}: {e}")
            return e.user_message, True
        except Exception as e:
            logger.exception(f"Tool error ({name})")
            return f"Tool error: {e}", True

    async def reset_session(self, phone_number: str) -> None:
        """Clear the stored conversation for a user."""
        await self.session_manager.replace_history(phone_number, [])


def _tool_use_ids(msg: dict) -> set[str]:
    content = msg.get("content")
    if msg.get("role") != "assistant" or not isinstance(content, list):
        return set()
    return {b.get("id") for b in content if isinstance(b, dict) and b.get("type") == "tool_use"}


def _is_tool_result(msg: dict) -> bool:
    content = msg.get("content")
    return isinstance(content, list) and any(
        isinstance(b, dict) and b.get("type") == "tool_result" for b in content
    )


def trim_history(history: list[dict], max_messages: int) -> list[dict]:
    """Keep at most ``max_messages`` trailing turns without orphaning tool results.

    The kept window starts at a plain user message, and tool_result blocks
    whose tool_use was cut away are dropped.
    """
    window = history[-max_messages:] if max_messages else list(history)

    start = 0
    while start < len(window) and (window[start].get("role") != "user" or _is_tool_result(window[start])):
        start += 1
    window = window[start:]

    known_ids: set[str] = set()
    cleaned = []
    for msg in window:
        known_ids |= _tool_use_ids(msg)
        if msg.get("role") == "user" and isinstance(msg.get("content"), list):
            blocks = [
                b for b in msg["content"]
                if not (isinstance(b, dict) and b.get("type") == "tool_result")
                or b.get("tool_use_id") in known_ids
            ]
            if blocks:
                cleaned.append({"role": "user", "content": blocks})
        else:
            cleaned.append(msg)
    return cleaned
