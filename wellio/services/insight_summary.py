"""
Client insight summary.

Two tiers: a short LLM-written summary when an OpenAI key is configured,
and a deterministic template otherwise. Any failure of the LLM tier
(timeout, auth, rate limit, empty answer) is logged and replaced by the
template, so callers always get text back.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from openai import OpenAI

from wellio.core.config import settings
from wellio.services.trend_analyzer import DECLINING, IMPROVING, TrendVerdict

if TYPE_CHECKING:
    from wellio.services.insights import GoalPrediction

logger = logging.getLogger(__name__)

SOURCE_LLM = "llm"
SOURCE_FALLBACK = "fallback"

SYSTEM_PROMPT = (
    "You are a supportive fitness coach AI. Provide a brief, encouraging summary "
    "(under 80 words) that highlights progress and gives one actionable next step. "
    "Be specific about data when available. Focus on positives while gently "
    "addressing areas for improvement."
)


@dataclass
class SummaryResult:
    text: str
    source: str
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Deterministic tier
# ---------------------------------------------------------------------------

def fallback_summary(
    client_name: str,
    trends: Sequence[TrendVerdict],
    predictions: Sequence["GoalPrediction"],
) -> str:
    improving = [t for t in trends if t.trend == IMPROVING]
    declining = [t for t in trends if t.trend == DECLINING]
    on_track = [p for p in predictions if p.on_track]

    summary = f"{client_name}'s recent progress: "
    if improving:
        summary += f"Strong performance in {', '.join(t.category for t in improving)}. "
    if declining:
        summary += f"Focus areas: {', '.join(t.category for t in declining)}. "
    if predictions:
        summary += f"{len(on_track)} of {len(predictions)} goals on track. "

    if declining and declining[0].recommendation:
        summary += declining[0].recommendation
    elif improving and improving[0].recommendation:
        summary += improving[0].recommendation
    else:
        summary += "Keep up the consistent effort!"
    return summary


# ---------------------------------------------------------------------------
# LLM tier
# ---------------------------------------------------------------------------

def build_prompt_context(
    client_name: str,
    trends: Sequence[TrendVerdict],
    predictions: Sequence["GoalPrediction"],
    data_points: int,
) -> str:
    lines = [f"Client: {client_name}", f"Data Points: {data_points} entries logged", "", "Trends:"]
    lines += [f"- {t.category}: {t.trend} - {t.description}" for t in trends]
    if predictions:
        lines += ["", "Goal Progress:"]
        lines += [
            f"- {p.goal_title}: {p.progress_percent}% complete, {p.trend} "
            f"({round(p.success_probability * 100)}% success probability)"
            for p in predictions
        ]
    recommendations = [t.recommendation for t in trends if t.recommendation][:3]
    if recommendations:
        lines += ["", "Key Recommendations:"]
        lines += [f"- {r}" for r in recommendations]
    return "\n".join(lines)


def _llm_summary(context: str) -> str:
    client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT_SECONDS)
    response = client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Summarize this client's progress and give one key recommendation:\n\n{context}",
            },
        ],
        temperature=0.7,
        max_tokens=150,
    )
    content = (response.choices[0].message.content or "").strip()
    if not content:
        raise ValueError("LLM returned an empty summary")
    return content


def generate_summary(
    client_name: str,
    trends: Sequence[TrendVerdict],
    predictions: Sequence["GoalPrediction"],
    data_points: int,
) -> SummaryResult:
    """LLM summary when configured, otherwise (or on any LLM failure) the template."""
    fallback = fallback_summary(client_name, trends, predictions)
    if not settings.OPENAI_API_KEY:
        return SummaryResult(text=fallback, source=SOURCE_FALLBACK)

    context = build_prompt_context(client_name, trends, predictions, data_points)
    try:
        return SummaryResult(text=_llm_summary(context), source=SOURCE_LLM)
    except Exception as e:
        logger.warning(f"LLM insight summary failed, using fallback: {e}")
        return SummaryResult(text=fallback, source=SOURCE_FALLBACK, error=str(e))
