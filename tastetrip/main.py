from __future__ import annotations

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from tastetrip.agents.question_flow import next_question, update_context
from tastetrip.agents.taste_vector import build_taste_profile
from tastetrip.fallback import CircuitBreaker, ServiceHealth
from tastetrip.orchestrator import recommend
from tastetrip.preferences import PreferenceTracker, validate_preference
from tastetrip.schemas import QuestionContext, RecommendationRequest, WebsiteProfile

load_dotenv()

app = FastAPI(title="TasteTrip Creator Destination API")
# Failure tracking lives with the app instance, one pair per process.
app.state.service_health = ServiceHealth()
app.state.circuit_breaker = CircuitBreaker()

# Creator dashboards and notebooks call the API from other origins. Operators can
# scope this via TASTETRIP_ALLOWED_ORIGINS if they prefer something narrower.
raw_origins = os.getenv("TASTETRIP_ALLOWED_ORIGINS") or "*"
allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validate(model: type[BaseModel], payload: Any) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors()) from exc


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


@app.post("/api/profile-taste")
async def api_profile_taste(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Taste vector, confidence and profile metadata for a website profile."""
    profile = _validate(WebsiteProfile, payload.get("profile", payload))
    return _dump(build_taste_profile(profile))


@app.post("/api/recommendations")
async def api_recommendations(http_request: Request, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    request = _validate(RecommendationRequest, payload)
    state = http_request.app.state
    result = await recommend(request, health=state.service_health, breaker=state.circuit_breaker)
    return _dump(result)


@app.post("/api/questions/next")
async def api_next_question(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    context = _validate(QuestionContext, payload.get("context") or {})
    number = payload.get("questionNumber", 1)
    if not isinstance(number, int):
        raise HTTPException(status_code=422, detail="questionNumber must be an integer")
    question = next_question(context, number)
    if question is None:
        return {"complete": True}
    return {"complete": False, "question": _dump(question)}


@app.post("/api/questions/answer")
async def api_answer(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Rejected answers still return 200; the outcome carries the reason."""
    context = _validate(QuestionContext, payload.get("context") or {})
    question_id: Optional[str] = payload.get("questionId")
    if not question_id:
        raise HTTPException(status_code=422, detail="questionId is required")
    outcome = update_context(context, question_id, payload.get("answer"))
    return _dump(outcome)


@app.post("/api/preferences/delta")
async def api_preferences_delta(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    current = payload.get("current")
    baseline = payload.get("baseline")
    if not isinstance(current, dict) or (baseline is not None and not isinstance(baseline, dict)):
        raise HTTPException(status_code=422, detail="current and baseline must be objects")

    tracker = PreferenceTracker(session_id=str(payload.get("sessionId") or "default"))
    tracker.initialize(current, baseline)
    delta = tracker.calculate_delta()
    advisories = []
    for key in delta.keys():
        advisory = validate_preference(key, current.get(key), current)
        if advisory and advisory not in advisories:
            advisories.append(advisory)
    return {
        "delta": _dump(delta),
        "fullRegeneration": tracker.should_do_full_regeneration(),
        "payload": tracker.get_api_payload(),
        "advisories": advisories,
    }


@app.get("/api/health")
async def api_health(http_request: Request) -> Dict[str, Any]:
    return {"status": "ok", "services": http_request.app.state.service_health.snapshot()}
