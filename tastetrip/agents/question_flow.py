"""Budget-aware four-question preference interview.

The interview always runs ``duration -> budget -> contentFormat -> climate``.
Option sets are rebuilt from the context on every turn, and answers go
through :func:`update_context`, which never mutates the context it is given.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
import logging
import os

from tastetrip.currency import (
    budget_options,
    detect_currency,
    format_amount,
    from_usd,
    parse_budget,
    parse_duration_days,
    to_usd,
)
from tastetrip.schemas import AnswerOutcome, Question, QuestionContext

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

QUESTION_ORDER: Tuple[str, ...] = ("duration", "budget", "contentFormat", "climate")
TOTAL_QUESTIONS = len(QUESTION_ORDER)

MIN_BUDGET = 50
MIN_DAILY_BUDGET = 30
ADVISORY_DAILY_BUDGET = 50
LUXURY_MIN_BUDGET_USD = 1000
BACKPACKER_MAX_BUDGET_USD = 5000

DEFAULT_DURATION_OPTIONS = ["1-2 days", "3-5 days", "1 week", "2 weeks", "1 month"]

CLIMATE_OPTIONS = [
    "Tropical/Sunny",
    "Mild/Temperate",
    "Cold/Snowy",
    "Desert/Arid",
    "No preference",
    "Avoid hot weather",
    "Avoid cold weather",
    "Avoid rainy season",
]

_BASE_FORMATS = ["Photography", "Food", "Lifestyle", "Adventure"]
_THEME_FORMATS: Dict[str, List[str]] = {
    "photography": ["Photography", "Visual Arts", "Street Photography", "Landscape Photography"],
    "food": ["Food & Culinary", "Restaurant Reviews", "Cooking", "Local Cuisine"],
    "travel": ["Travel Blogging", "Adventure Travel", "Cultural Exploration", "Budget Travel"],
    "lifestyle": ["Lifestyle", "Fashion", "Wellness", "Personal Development"],
    "business": ["Business Travel", "Entrepreneurship", "Networking", "Professional Development"],
    "technology": ["Tech Reviews", "Digital Nomad", "Innovation", "Startup Culture"],
    "culture": ["Cultural Exploration", "History", "Art & Museums", "Local Traditions"],
    "adventure": ["Adventure Sports", "Outdoor Activities", "Extreme Sports", "Nature Exploration"],
}
MAX_FORMAT_OPTIONS = 6

# USD per day floors used to derive realistic duration options.
_DURATION_TIERS = {"ultra_budget": 25, "budget": 50, "mid_range": 100, "premium": 200}


def start_context(
    *,
    themes: Optional[List[str]] = None,
    content_type: str = "",
    hints: Optional[List[str]] = None,
    social_links: Optional[List[Any]] = None,
    audience_location: Optional[str] = None,
) -> QuestionContext:
    return QuestionContext(
        themes=list(themes or []),
        content_type=content_type,
        hints=list(hints or []),
        social_links=list(social_links or []),
        audience_location=audience_location,
    )


def next_question(context: QuestionContext, question_number: int) -> Optional[Question]:
    """Return question ``question_number`` (1-based) or ``None`` once the interview is over."""
    if question_number < 1 or question_number > TOTAL_QUESTIONS:
        return None
    question_id = QUESTION_ORDER[question_number - 1]
    if question_id == "duration":
        question = Question(
            id="duration",
            number=question_number,
            text=_duration_text(context),
            options=duration_options(context),
            budget_sensitive=True,
        )
    elif question_id == "budget":
        question = Question(
            id="budget",
            number=question_number,
            text=_budget_text(context),
            options=budget_options_for(context),
        )
    elif question_id == "contentFormat":
        question = Question(
            id="contentFormat",
            number=question_number,
            text="What type of content will you focus on creating during this trip?",
            options=content_format_options(context),
        )
    else:
        question = Question(
            id="climate",
            number=question_number,
            text="Select climate preferences (choose all that apply):",
            options=list(CLIMATE_OPTIONS),
            multi_select=True,
        )
    logger.debug("Question %d (%s) with %d options", question_number, question.id, len(question.options))
    return question


def update_context(context: QuestionContext, question_id: str, answer: Any) -> AnswerOutcome:
    """Validate ``answer`` and return the outcome with a new context.

    Rejected answers leave the context untouched. Accepted answers are appended
    to ``previous_answers`` and refresh the derived budget fields.
    """
    updates: Dict[str, Any] = {}

    if question_id == "budget":
        parsed = parse_budget(answer)
        if parsed is None:
            return _reject(context, "Please enter a budget amount, for example $1500.")
        amount, symbol = parsed
        currency = symbol or context.currency or detect_currency(context.audience_location)
        if amount < MIN_BUDGET:
            return _reject(context, "Budget too low for travel recommendations.")
        updates.update(budget=amount, currency=currency)
    elif question_id == "duration":
        updates["duration"] = parse_duration_days(answer)

    budget = updates.get("budget", context.budget)
    duration = updates.get("duration", context.duration)
    currency = updates.get("currency", context.currency) or detect_currency(context.audience_location)

    advisory: Optional[str] = None
    if question_id in ("budget", "duration") and budget is not None and duration:
        daily = budget // duration
        if daily < MIN_DAILY_BUDGET:
            return _reject(
                context,
                f"With your budget, {duration} days would mean only {format_amount(daily, currency)}/day. "
                "Consider a shorter trip or a higher budget.",
            )
        if daily < ADVISORY_DAILY_BUDGET:
            advisory = (
                f"Budget travel: {format_amount(daily, currency)}/day works best with hostels, "
                "street food and public transport."
            )

    answers = dict(context.previous_answers)
    answers[question_id] = answer
    updates["previous_answers"] = answers
    if budget is not None and duration:
        updates["daily_budget"] = budget // duration

    new_context = context.model_copy(update=updates)
    warnings = validate_constraints(new_context)
    logger.info(
        "Applied answer for %s (budget=%s duration=%s daily=%s)",
        question_id,
        new_context.budget,
        new_context.duration,
        new_context.daily_budget,
    )
    return AnswerOutcome(
        status="accepted_with_advisory" if advisory else "accepted",
        context=new_context,
        advisory=advisory,
        warnings=warnings,
    )


def validate_constraints(context: QuestionContext) -> List[str]:
    """Soft cross-answer checks; these never block an answer."""
    if context.budget is None:
        return []
    warnings: List[str] = []
    budget_usd = to_usd(context.budget, context.currency)
    styled = " ".join(
        str(value).lower()
        for key, value in context.previous_answers.items()
        if key not in ("budget", "duration")
    )
    if "luxury" in styled and budget_usd < LUXURY_MIN_BUDGET_USD:
        warnings.append("Luxury travel typically requires a budget above $1000.")
    if ("backpack" in styled or "budget travel" in styled) and budget_usd > BACKPACKER_MAX_BUDGET_USD:
        warnings.append("Your budget allows for more comfortable travel options.")
    return warnings


def duration_options(context: QuestionContext) -> List[str]:
    if not context.budget:
        return list(DEFAULT_DURATION_OPTIONS)

    currency = context.currency or detect_currency(context.audience_location)
    max_days = {
        tier: int(context.budget // from_usd(floor, currency))
        for tier, floor in _DURATION_TIERS.items()
    }
    options: List[str] = []
    if max_days["premium"] >= 1:
        options.append("1 day")
    if max_days["premium"] >= 2:
        options.append("2 days")
    if max_days["mid_range"] >= 3:
        options.append("3-4 days")
    if max_days["mid_range"] >= 5:
        options.append("5-7 days")
    if max_days["budget"] >= 7:
        options.append("1 week")
    if max_days["budget"] >= 10:
        options.append("10 days")
    if max_days["budget"] >= 14:
        options.append("2 weeks")
    if max_days["ultra_budget"] >= 21:
        options.append("3 weeks")
    if max_days["ultra_budget"] >= 30:
        options.append("1 month")

    if len(options) < 3:
        days = int(context.budget // (from_usd(_DURATION_TIERS["budget"], currency) * 0.7))
        options += [
            f"{max(1, int(days * 0.5))} days",
            f"{max(2, int(days * 0.7))} days",
            f"{max(3, days)} days",
        ]
    return list(dict.fromkeys(options))[:6]


def budget_options_for(context: QuestionContext) -> List[str]:
    currency = context.currency or detect_currency(context.audience_location)
    options = budget_options(currency)
    if context.duration:
        options = filter_options_by_duration(options, context.duration)
    return options


def filter_options_by_duration(options: List[str], days: int) -> List[str]:
    """Drop budget ranges that :func:`update_context` would reject for a ``days``-long trip.

    A chosen range resolves to its lower bound, so that is the amount checked
    against the daily floor.
    """
    kept: List[str] = []
    for option in options:
        parsed = parse_budget(option)
        if parsed is None or parsed[0] // max(days, 1) >= MIN_DAILY_BUDGET:
            kept.append(option)
    return kept


def content_format_options(context: QuestionContext) -> List[str]:
    """Theme-driven formats, with those matching the current content type first."""
    collected: List[str] = []
    for theme in context.themes:
        lowered = (theme or "").lower()
        if not lowered:
            continue
        for key, formats in _THEME_FORMATS.items():
            if key in lowered or lowered in key:
                collected.extend(formats)
    if not collected:
        collected = list(_BASE_FORMATS)
    content_type = (context.content_type or "").strip()
    if content_type:
        collected.append(content_type)
    unique = list(dict.fromkeys(collected))

    words = {word for word in content_type.lower().replace("&", " ").split() if len(word) > 2}
    if content_type:
        unique.remove(content_type)
        matching = [opt for opt in unique if words & set(opt.lower().split())]
        rest = [opt for opt in unique if opt not in matching]
        unique = [content_type, *matching, *rest]
    return unique[:MAX_FORMAT_OPTIONS]


def is_complete(context: QuestionContext) -> bool:
    return all(question_id in context.previous_answers for question_id in QUESTION_ORDER)


def _duration_text(context: QuestionContext) -> str:
    if context.budget:
        return f"With your {format_amount(context.budget, context.currency)} budget, how long would you like to travel?"
    return "How long would you like to travel?"


def _budget_text(context: QuestionContext) -> str:
    if context.duration:
        return f"For your {context.duration}-day trip, what's your total travel budget?"
    return "What's your total travel budget?"


def _reject(context: QuestionContext, message: str) -> AnswerOutcome:
    logger.info("Rejected answer: %s", message)
    return AnswerOutcome(status="rejected", context=context, message=message)

