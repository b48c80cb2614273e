"""
Trend analyzer.

Pure functions over time-ordered EventRecord lists. Each analyzer returns a
TrendVerdict, or None when there are fewer than MIN_RECORDS records of its
category. Nothing here touches the database or raises on bad data: a missing
metric counts as 0 and a zero earlier-window average skips that metric's
change instead of dividing by it.

Core analyzers
--------------
analyze_nutrition_trend(records)              protein / calories, recent 7 vs prior 7
analyze_workout_trend(records, today)         workouts in the trailing 7 days
analyze_body_composition_trend(records)       two most recent weight check-ins

Supplementary analyzers
-----------------------
analyze_weight_trend, analyze_sleep_trend, analyze_mood_trend,
analyze_steps_trend, analyze_tracking_consistency
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Optional

from wellio.services.event_store import EventRecord

MIN_RECORDS = 2
WINDOW = 7

IMPROVING = "improving"
DECLINING = "declining"
STABLE = "stable"
PLATEAU = "plateau"


@dataclass
class TrendVerdict:
    category: str
    trend: str
    confidence: float
    description: str
    recommendation: str = ""
    data_points: int = 0
    recent_value: Optional[float] = None
    previous_value: Optional[float] = None
    change_percent: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sorted(records: Sequence[EventRecord]) -> list[EventRecord]:
    return sorted(records, key=lambda r: r.day)


def _field(record: EventRecord, name: str) -> float:
    value = getattr(record.payload, name, None)
    return float(value) if value is not None else 0.0


def _avg(records: Sequence[EventRecord], metric: Callable[[EventRecord], float]) -> float:
    if not records:
        return 0.0
    return sum(metric(r) for r in records) / len(records)


def _change_percent(recent: float, earlier: float) -> float:
    """Percentage change; 0 when there is no usable earlier baseline."""
    if earlier <= 0:
        return 0.0
    return (recent - earlier) / earlier * 100


def _weight_kg(record: EventRecord) -> float:
    payload = record.payload
    value = getattr(payload, "value_kg", None) or getattr(payload, "value", None)
    return float(value) if value else 0.0


def _scaled_confidence(base: float, n: int, cap: float) -> float:
    return round(min(cap, base + n * 0.05), 2)


# ---------------------------------------------------------------------------
# Core analyzers
# ---------------------------------------------------------------------------

def analyze_nutrition_trend(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    if len(records) < MIN_RECORDS:
        return None

    ordered = _sorted(records)
    recent = ordered[-WINDOW:]
    earlier = ordered[:-WINDOW][-WINDOW:]
    n = len(ordered)

    if not earlier:
        return TrendVerdict(
            category="nutrition",
            trend=STABLE,
            confidence=0.5,
            description="Not enough data to determine nutrition trends yet",
            data_points=n,
        )

    protein = lambda r: _field(r, "protein_g")  # noqa: E731
    calories = lambda r: _field(r, "calories")  # noqa: E731

    recent_protein, earlier_protein = _avg(recent, protein), _avg(earlier, protein)
    recent_calories, earlier_calories = _avg(recent, calories), _avg(earlier, calories)

    if earlier_protein <= 0 and earlier_calories <= 0:
        return TrendVerdict(
            category="nutrition",
            trend=STABLE,
            confidence=0.3,
            description="Insufficient historical nutrition data to detect trends",
            data_points=n,
        )

    protein_change = _change_percent(recent_protein, earlier_protein)
    calorie_change = _change_percent(recent_calories, earlier_calories)

    trend = STABLE
    recommendation = ""
    if earlier_protein > 0 and abs(protein_change) > 10:
        trend = IMPROVING if protein_change > 0 else DECLINING
        direction = "increased" if protein_change > 0 else "decreased"
        description = f"Protein intake {direction} by {abs(protein_change):.1f}% over recent period"
        if protein_change < -10:
            recommendation = "Consider increasing protein intake to support muscle recovery and growth"
        change = protein_change
    elif earlier_calories > 0 and abs(calorie_change) > 15:
        direction = "increased" if calorie_change > 0 else "decreased"
        description = f"Calorie intake {direction} by {abs(calorie_change):.1f}%"
        recommendation = "Monitor energy levels and adjust calories based on training intensity"
        change = calorie_change
    else:
        description = "Nutrition intake is consistent and stable"
        change = calorie_change

    return TrendVerdict(
        category="nutrition",
        trend=trend,
        confidence=0.8,
        description=description,
        recommendation=recommendation,
        data_points=n,
        recent_value=round(recent_calories, 1),
        previous_value=round(earlier_calories, 1),
        change_percent=round(change, 1),
    )


def analyze_workout_trend(
    records: Sequence[EventRecord],
    today: date,
) -> Optional[TrendVerdict]:
    """Workouts whose day falls in [today-6, today]: >=4 improving, 2-3 stable, <2 declining."""
    if len(records) < MIN_RECORDS:
        return None

    window_start = today - timedelta(days=WINDOW - 1)
    recent = [r for r in records if window_start <= r.day <= today]
    count = len(recent)
    avg_duration = _avg(recent, lambda r: _field(r, "duration_min"))

    if count >= 4:
        trend = IMPROVING
        description = (
            f"Excellent consistency: {count} workouts in the past week "
            f"(avg {avg_duration:.0f} min)"
        )
        recommendation = ""
    elif count >= 2:
        trend = STABLE
        description = f"Good consistency: {count} workouts in the past week"
        recommendation = "Try to add one more session per week to accelerate progress"
    else:
        trend = DECLINING
        description = f"Low activity: only {count} workout(s) in the past week"
        recommendation = "Aim for at least 3 workouts per week to maintain momentum"

    return TrendVerdict(
        category="activity",
        trend=trend,
        confidence=0.9,
        description=description,
        recommendation=recommendation,
        data_points=len(records),
        recent_value=float(count),
    )


def analyze_body_composition_trend(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    """Compare only the two most recent weight check-ins."""
    if len(records) < MIN_RECORDS:
        return None

    ordered = _sorted(records)
    previous, latest = ordered[-2], ordered[-1]
    weight_change = _weight_kg(latest) - _weight_kg(previous)
    body_fat_change = _field(latest, "body_fat_pct") - _field(previous, "body_fat_pct")

    recommendation = ""
    if abs(weight_change) < 1 and abs(body_fat_change) < 1:
        trend = PLATEAU
        description = "Body metrics have plateaued with minimal change"
        recommendation = "Consider adjusting training intensity or nutrition to break through the plateau"
    elif body_fat_change < -1:
        trend = IMPROVING
        description = f"Body fat decreased by {abs(body_fat_change):.1f}% - excellent progress!"
    elif weight_change > 2 and body_fat_change < 0.5:
        trend = IMPROVING
        description = "Gaining lean mass while maintaining body composition"
    else:
        trend = STABLE
        direction = "increased" if weight_change > 0 else "decreased"
        description = f"Weight {direction} by {abs(weight_change):.1f} kg"

    return TrendVerdict(
        category="progress",
        trend=trend,
        confidence=0.85,
        description=description,
        recommendation=recommendation,
        data_points=len(ordered),
        recent_value=_weight_kg(latest),
        previous_value=_weight_kg(previous),
    )


# ---------------------------------------------------------------------------
# Supplementary analyzers
# ---------------------------------------------------------------------------

def analyze_weight_trend(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    if len(records) < MIN_RECORDS:
        return None

    ordered = _sorted(records)
    recent = ordered[-3:]
    earlier = ordered[: max(1, len(ordered) - 3)]
    recent_avg = _avg(recent, _weight_kg)
    earlier_avg = _avg(earlier, _weight_kg)
    if earlier_avg <= 0:
        return None

    change_percent = _change_percent(recent_avg, earlier_avg)
    change_kg = recent_avg - earlier_avg

    recommendation = ""
    if abs(change_percent) < 1:
        trend = STABLE
        description = f"Weight holding steady at {recent_avg:.1f} kg"
    elif change_kg < -0.5:
        trend = IMPROVING
        description = f"Weight decreased by {abs(change_kg):.1f} kg ({abs(change_percent):.1f}%)"
        recommendation = "Great progress! Maintain current nutrition plan and activity level."
    elif change_kg > 0.5:
        trend = DECLINING
        description = f"Weight increased by {change_kg:.1f} kg ({change_percent:.1f}%)"
        recommendation = "Review caloric intake and consider increasing activity."
    else:
        trend = PLATEAU
        description = f"Weight fluctuating slightly around {recent_avg:.1f} kg"
        recommendation = "Consider adjusting workout intensity or nutrition timing."

    return TrendVerdict(
        category="weight",
        trend=trend,
        confidence=_scaled_confidence(0.5, len(ordered), 0.9),
        description=description,
        recommendation=recommendation,
        data_points=len(ordered),
        recent_value=round(recent_avg, 2),
        previous_value=round(earlier_avg, 2),
        change_percent=round(change_percent, 1),
    )


def analyze_sleep_trend(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    if len(records) < MIN_RECORDS:
        return None

    ordered = _sorted(records)
    avg_sleep = _avg(ordered[-5:], lambda r: _field(r, "hours"))

    if avg_sleep >= 7.5:
        trend = IMPROVING
        description = f"Excellent sleep: averaging {avg_sleep:.1f} hours"
        recommendation = "Great sleep habits! This supports recovery and performance."
    elif avg_sleep >= 6.5:
        trend = STABLE
        description = f"Adequate sleep: averaging {avg_sleep:.1f} hours"
        recommendation = "Try to add 30-60 min more sleep for optimal recovery."
    else:
        trend = DECLINING
        description = f"Low sleep: averaging only {avg_sleep:.1f} hours"
        recommendation = "Prioritize sleep - it's crucial for progress and recovery."

    return TrendVerdict(
        category="sleep",
        trend=trend,
        confidence=_scaled_confidence(0.5, len(ordered), 0.85),
        description=description,
        recommendation=recommendation,
        data_points=len(ordered),
        recent_value=round(avg_sleep, 2),
    )


def analyze_mood_trend(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    if len(records) < MIN_RECORDS:
        return None

    ordered = _sorted(records)
    rating = lambda r: _field(r, "rating") or 5.0  # noqa: E731
    recent_avg = _avg(ordered[-5:], rating)
    earlier_avg = _avg(ordered[: max(1, len(ordered) - 5)], rating)
    change = recent_avg - earlier_avg

    if recent_avg >= 7:
        trend = IMPROVING if change > 0.5 else STABLE
        description = f"Positive mood: averaging {recent_avg:.1f}/10"
        recommendation = "Keep up activities that boost your wellbeing!"
    elif recent_avg >= 5:
        trend = DECLINING if change < -0.5 else STABLE
        description = f"Moderate mood: averaging {recent_avg:.1f}/10"
        recommendation = "Consider what activities or habits improve your energy."
    else:
        trend = DECLINING
        description = f"Low mood: averaging {recent_avg:.1f}/10"
        recommendation = "Focus on rest, social connection, and enjoyable activities."

    return TrendVerdict(
        category="mood",
        trend=trend,
        confidence=_scaled_confidence(0.4, len(ordered), 0.8),
        description=description,
        recommendation=recommendation,
        data_points=len(ordered),
        recent_value=round(recent_avg, 2),
        previous_value=round(earlier_avg, 2),
    )


def analyze_steps_trend(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    if len(records) < MIN_RECORDS:
        return None

    ordered = _sorted(records)
    avg_steps = _avg(ordered[-WINDOW:], lambda r: _field(r, "steps"))
    shown = f"{round(avg_steps):,}"

    if avg_steps >= 10000:
        trend = IMPROVING
        description = f"Excellent activity: {shown} steps/day average"
        recommendation = "Great movement! Consider adding structured workouts."
    elif avg_steps >= 7000:
        trend = STABLE
        description = f"Good activity: {shown} steps/day average"
        recommendation = "Try to reach 10,000 steps on most days."
    elif avg_steps >= 4000:
        trend = DECLINING
        description = f"Low activity: {shown} steps/day average"
        recommendation = "Add short walks after meals to boost daily movement."
    else:
        trend = DECLINING
        description = f"Very low activity: {shown} steps/day"
        recommendation = "Start with small goals - even 5,000 steps is a good target."

    return TrendVerdict(
        category="steps",
        trend=trend,
        confidence=_scaled_confidence(0.5, len(ordered), 0.9),
        description=description,
        recommendation=recommendation,
        data_points=len(ordered),
        recent_value=round(avg_steps, 1),
    )


def analyze_tracking_consistency(records: Sequence[EventRecord]) -> Optional[TrendVerdict]:
    """Share of days between the first and last logged day that have any entry."""
    if len(records) < 3:
        return None

    days = sorted({r.day for r in records})
    tracked = len(days)
    day_range = max(1, (days[-1] - days[0]).days + 1)
    consistency = tracked / day_range * 100

    if consistency >= 70:
        trend = IMPROVING
        description = f"Great tracking: {tracked} of {day_range} days ({consistency:.0f}%)"
        recommendation = "Excellent consistency - this data helps optimize your plan!"
    elif consistency >= 40:
        trend = STABLE
        description = f"Moderate tracking: {tracked} of {day_range} days ({consistency:.0f}%)"
        recommendation = "Try to log daily for more accurate insights."
    else:
        trend = DECLINING
        description = f"Low tracking: only {tracked} of {day_range} days ({consistency:.0f}%)"
        recommendation = "More frequent logging will help us track your progress better."

    return TrendVerdict(
        category="consistency",
        trend=trend,
        confidence=0.95,
        description=description,
        recommendation=recommendation,
        data_points=len(records),
        recent_value=round(consistency, 1),
    )
