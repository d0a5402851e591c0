"""Timeout-bounded primary/fallback execution for recommendation requests.

``with_fallback`` never raises: the primary runs under a deadline, the
fallback takes over on timeout or error, and a static single-destination
result is returned if the fallback fails too.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from tastetrip.agents.trip_details import best_months, engagement_for, estimate_budget
from tastetrip.schemas import CreatorDetails, Recommendation, RecommendationResult, ResultMetadata

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

DEFAULT_TIMEOUT_MS = 25000
FAILURE_THRESHOLD = 5
RESET_SECONDS = 300.0
HEALTH_WINDOW_SECONDS = 300.0

STATIC_DESTINATION = ("Lisbon", "Portugal")
STATIC_MATCH_SCORE = 75.0
STATIC_CONFIDENCE = 0.6

ResultFactory = Callable[[], Awaitable[RecommendationResult]]


def request_timeout_ms() -> int:
    raw = os.getenv("TASTETRIP_REQUEST_TIMEOUT_MS")
    try:
        return int(raw) if raw else DEFAULT_TIMEOUT_MS
    except ValueError:
        logger.warning("Invalid TASTETRIP_REQUEST_TIMEOUT_MS=%r; using %d", raw, DEFAULT_TIMEOUT_MS)
        return DEFAULT_TIMEOUT_MS


class ServiceHealth:
    """Rolling error counts per operation."""

    def __init__(self, window_seconds: float = HEALTH_WINDOW_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self._clock = clock
        self._errors: Dict[str, List[float]] = {}
        self._last_error: Dict[str, str] = {}
        self._successes: Dict[str, int] = {}

    def record_success(self, operation: str) -> None:
        self._successes[operation] = self._successes.get(operation, 0) + 1

    def record_failure(self, operation: str, error: str) -> None:
        self._errors.setdefault(operation, []).append(self._clock())
        self._last_error[operation] = error

    def recent_errors(self, operation: str) -> int:
        cutoff = self._clock() - self.window_seconds
        recent = [ts for ts in self._errors.get(operation, []) if ts >= cutoff]
        self._errors[operation] = recent
        return len(recent)

    def status(self, operation: str) -> str:
        errors = self.recent_errors(operation)
        if errors == 0:
            return "healthy"
        if errors < FAILURE_THRESHOLD:
            return "degraded"
        return "failing"

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        operations = sorted(set(self._errors) | set(self._successes))
        return {
            op: {
                "status": self.status(op),
                "recentErrors": self.recent_errors(op),
                "successes": self._successes.get(op, 0),
                "lastError": self._last_error.get(op),
            }
            for op in operations
        }


class CircuitBreaker:
    """Opens after ``failure_threshold`` consecutive failures for ``reset_seconds``."""

    def __init__(
        self,
        failure_threshold: int = FAILURE_THRESHOLD,
        reset_seconds: float = RESET_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_seconds = reset_seconds
        self._clock = clock
        self._failures: Dict[str, int] = {}
        self._opened_at: Dict[str, float] = {}

    def is_open(self, operation: str) -> bool:
        opened = self._opened_at.get(operation)
        if opened is None:
            return False
        if self._clock() - opened >= self.reset_seconds:
            # half-open: let the next call through
            del self._opened_at[operation]
            self._failures[operation] = self.failure_threshold - 1
            return False
        return True

    def record_success(self, operation: str) -> None:
        self._failures.pop(operation, None)
        self._opened_at.pop(operation, None)

    def record_failure(self, operation: str) -> None:
        count = self._failures.get(operation, 0) + 1
        self._failures[operation] = count
        if count >= self.failure_threshold and operation not in self._opened_at:
            self._opened_at[operation] = self._clock()
            logger.warning("Circuit opened for %s after %d failures", operation, count)


async def with_fallback(
    primary: ResultFactory,
    fallback: ResultFactory,
    operation_name: str,
    timeout_ms: Optional[int] = None,
    *,
    health: ServiceHealth,
    breaker: CircuitBreaker,
) -> RecommendationResult:
    """Run ``primary`` under the deadline, else ``fallback``, else the static result.

    ``health`` and ``breaker`` belong to the caller (the API keeps one pair on
    ``app.state``), so nothing here is shared between unrelated callers.
    """
    timeout_ms = timeout_ms or request_timeout_ms()
    timeout = timeout_ms / 1000

    if breaker.is_open(operation_name):
        error = f"{operation_name} circuit open"
        logger.warning("Circuit open for %s; going straight to fallback", operation_name)
    else:
        try:
            result = await asyncio.wait_for(primary(), timeout)
        except asyncio.TimeoutError:
            error = f"{operation_name} timed out after {timeout_ms}ms"
            logger.warning("Primary %s timed out after %dms", operation_name, timeout_ms)
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
            logger.warning("Primary %s failed", operation_name, exc_info=True)
        else:
            breaker.record_success(operation_name)
            health.record_success(operation_name)
            return result
        breaker.record_failure(operation_name)
        health.record_failure(operation_name, error)

    try:
        result = await asyncio.wait_for(fallback(), timeout)
        metadata = result.metadata.model_copy(
            update={"fallback": True, "operation": operation_name, "error": error}
        )
    except Exception:
        logger.error("Fallback for %s failed; serving static result", operation_name, exc_info=True)
        return static_result(operation_name, error)

    logger.info("Served %s from fallback (%s)", operation_name, metadata.source)
    return result.model_copy(update={"metadata": metadata})


def generate_fallback_recommendation(
    destination: str = STATIC_DESTINATION[0],
    country: str = STATIC_DESTINATION[1],
) -> Recommendation:
    return Recommendation(
        destination=destination,
        country=country,
        match_score=STATIC_MATCH_SCORE,
        budget=estimate_budget(destination, country),
        creator_details=CreatorDetails(
            total_active_creators=0,
            data_source="static",
            insights="Creator data unavailable right now. Verify the local community before travelling.",
        ),
        tags=["Culture", "Food", "Urban"],
        best_months=best_months(destination),
        highlights=["Historic neighbourhoods", "Local food scene", "Golden-hour viewpoints"],
        engagement=engagement_for(STATIC_MATCH_SCORE, 0),
        confidence=STATIC_CONFIDENCE,
    )


def static_result(operation_name: str = "recommendations", error: Optional[str] = None) -> RecommendationResult:
    return RecommendationResult(
        recommendations=[generate_fallback_recommendation()],
        metadata=ResultMetadata(
            fallback=True,
            source="static",
            operation=operation_name,
            generated_at=datetime.now(timezone.utc).isoformat(),
            total_destinations=1,
            confidence=STATIC_CONFIDENCE,
            error=error,
        ),
    )
