"""User-facing (Spanish) renderings of analysis results and new PRs."""

from src.messenger import DIVIDER
from src.models import BodyScanAnalysis, NewRecord, RecordType, TechniqueAnalysis

RECORD_LABELS = {
    RecordType.ONE_REP_MAX: "1RM estimado",
    RecordType.MAX_REPS: "Máximo de repeticiones",
    RecordType.MAX_VOLUME: "Volumen total",
    RecordType.BEST_SET: "Mejor serie",
}


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _fmt_number(value: float) -> str:
    return f"{value:g}" if value == int(value) else f"{value:.1f}"


def format_body_scan(analysis: BodyScanAnalysis) -> str:
    bf = analysis.bodyfat_percentage
    return f"""¡He analizado tu foto! Aquí está mi evaluación:

**1. Lo que veo**
Grasa corporal: {_fmt_number(bf.min)}-{_fmt_number(bf.max)}%
Tipo de físico: {analysis.physique_type}

**2. Tus fortalezas**
{_bullets(analysis.strengths)}

**3. Oportunidades de mejora**
{_bullets(analysis.opportunities)}

*Estas estimaciones visuales son útiles para entrenar, pero no sustituyen evaluaciones médicas.*

{DIVIDER}

¿Te armo un programa de entrenamiento personalizado? También puedo analizar otra foto o responder cualquier duda."""


def format_technique(analysis: TechniqueAnalysis) -> str:
    sections = [
        "¡He analizado tu técnica! Aquí está mi evaluación:",
        f"**Ejercicio:** {analysis.exercise}",
        f"**Lo que haces bien:**\n{_bullets(analysis.strengths)}",
        "**Cosas para mejorar:**\n"
        + "\n".join(f"{i}. {c}" for i, c in enumerate(analysis.corrections, start=1)),
    ]
    if analysis.regressions:
        sections.append(f"**Variación más fácil:**\n{_bullets(analysis.regressions)}")
    if analysis.progressions:
        sections.append(f"**Variación más difícil:**\n{_bullets(analysis.progressions)}")
    if analysis.risk_factors:
        sections.append(f"**⚠️ Factores de riesgo:**\n{_bullets(analysis.risk_factors)}")
    sections.append(DIVIDER)
    sections.append("¿Quieres que diseñemos un programa completo o revisamos otro ejercicio?")
    return "\n\n".join(sections)


def format_record(record: NewRecord) -> str:
    label = RECORD_LABELS[record.record_type]
    if record.record_type == RecordType.MAX_REPS:
        value = f"{record.reps} reps con {_fmt_number(record.weight or 0)}kg"
    elif record.record_type == RecordType.BEST_SET:
        value = f"{record.reps} x {_fmt_number(record.weight or 0)}kg"
    else:
        value = f"{_fmt_number(record.value)}kg"
    line = f"{label}: {value}"
    if record.improvement:
        line += f" (+{record.improvement:.1f}%)"
    return line


def format_new_records(new_prs: list[dict]) -> str:
    """Celebratory summary of ``log_workout``'s ``new_prs``; empty when none."""
    if not new_prs:
        return ""
    blocks = ["🏆 ¡Nuevos récords personales!"]
    for entry in new_prs:
        lines = "\n".join(f"- {format_record(r)}" for r in entry["records"])
        blocks.append(f"**{entry['exercise_name']}**\n{lines}")
    return "\n\n".join(blocks)
