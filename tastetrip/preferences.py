"""Post-hoc preference edits and when they force a full regeneration."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from tastetrip.currency import parse_budget, parse_duration_days, to_usd
from tastetrip.schemas import PreferenceDelta, ValueChange

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

REGENERATION_KEYS = ("budget", "duration")
FULL_REGENERATION_THRESHOLD = 3
LUXURY_DAILY_BUDGET = 500


@dataclass
class PreferenceEvent:
    session_id: str
    question_id: str
    old: Any
    new: Any
    delta: PreferenceDelta = field(default_factory=PreferenceDelta)


Listener = Callable[[PreferenceEvent], None]


def calculate_delta(current: Dict[str, Any], baseline: Dict[str, Any]) -> PreferenceDelta:
    changed: Dict[str, ValueChange] = {}
    added: Dict[str, Any] = {}
    removed: Dict[str, Any] = {}
    for key, value in current.items():
        if key not in baseline:
            added[key] = value
        elif baseline[key] != value:
            changed[key] = ValueChange(old=baseline[key], new=value)
    for key, value in baseline.items():
        if key not in current:
            removed[key] = value
    return PreferenceDelta(changed=changed, added=added, removed=removed)


def should_do_full_regeneration(delta: PreferenceDelta) -> bool:
    """Budget or duration edits reshape everything; so do three or more edits of any kind."""
    keys = delta.keys()
    if any(key in REGENERATION_KEYS for key in keys):
        return True
    return len(keys) >= FULL_REGENERATION_THRESHOLD


def validate_preference(question_id: str, value: Any, answers: Dict[str, Any]) -> Optional[str]:
    """Return an advisory when a budget/duration edit implies luxury-level daily spend."""
    budget_answer = value if question_id == "budget" else answers.get("budget")
    duration_answer = value if question_id == "duration" else answers.get("duration")
    if question_id not in REGENERATION_KEYS or budget_answer is None:
        return None
    parsed = parse_budget(budget_answer)
    if parsed is None:
        return None
    amount, symbol = parsed
    days = parse_duration_days(duration_answer) if duration_answer is not None else 1
    daily = to_usd(amount / days, symbol)
    if daily > LUXURY_DAILY_BUDGET:
        return (
            f"Your daily budget of about ${daily:.0f} opens up luxury options; "
            "recommendations will favour premium destinations."
        )
    return None


class PreferenceTracker:
    """
    Per-session record of the interview answers.

    ``baseline`` holds the answers the last recommendations were generated from.
    Listeners are called synchronously after every accepted change.
    """

    def __init__(self, session_id: str = "default"):
        self.session_id = session_id
        self._current: Dict[str, Any] = {}
        self._baseline: Dict[str, Any] = {}
        self._listeners: List[Listener] = []
        self._has_recommendations = False

    @property
    def current(self) -> Dict[str, Any]:
        return dict(self._current)

    @property
    def baseline(self) -> Dict[str, Any]:
        return dict(self._baseline)

    def initialize(self, answers: Dict[str, Any], baseline: Optional[Dict[str, Any]] = None) -> None:
        self._current = dict(answers)
        if baseline is not None:
            self._baseline = dict(baseline)
            self._has_recommendations = True
        logger.debug("Session %s initialised with %d answers", self.session_id, len(self._current))

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def update(self, question_id: str, value: Any) -> PreferenceDelta:
        old = self._current.get(question_id)
        self._current[question_id] = value
        delta = self.calculate_delta()
        if old != value:
            self._notify(PreferenceEvent(self.session_id, question_id, old, value, delta))
        return delta

    def calculate_delta(self) -> PreferenceDelta:
        return calculate_delta(self._current, self._baseline)

    def should_do_full_regeneration(self) -> bool:
        if not self._has_recommendations:
            return True
        return should_do_full_regeneration(self.calculate_delta())

    def mark_as_used_for_recommendations(self) -> None:
        self._baseline = dict(self._current)
        self._has_recommendations = True
        logger.info("Session %s baseline refreshed (%d answers)", self.session_id, len(self._baseline))

    def get_api_payload(self) -> Dict[str, Any]:
        """Full answers when regeneration is needed, otherwise only the delta."""
        delta = self.calculate_delta()
        if self.should_do_full_regeneration():
            return {"type": "full", "preferences": dict(self._current)}
        return {
            "type": "delta",
            "delta": delta.model_dump(by_alias=True),
            "baseline": dict(self._baseline),
        }

    def reset(self) -> None:
        self._current = {}
        self._baseline = {}
        self._has_recommendations = False

    def _notify(self, event: PreferenceEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning("Preference listener failed for %s", event.question_id, exc_info=True)
