# tastetrip/llm.py
import os
import re
import json
import logging
from typing import List, Dict, Any, Optional
from dotenv import load_dotenv
from openai import OpenAI

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Load .env file if present
load_dotenv()

DEFAULT_MODEL = os.getenv("TASTETRIP_LLM_MODEL") or "gpt-4o-mini"
# Seconds; keeps a stuck completion from holding a worker thread past the request.
LLM_TIMEOUT = float(os.getenv("TASTETRIP_LLM_TIMEOUT") or 20)

api_key = os.getenv("OPENAI_API_KEY")
if api_key:
    _client = OpenAI(api_key=api_key, timeout=LLM_TIMEOUT, max_retries=1)
else:  # pragma: no cover - exercised indirectly in tests without API key
    _client = None
    logger.warning("OPENAI_API_KEY not set; destination enrichment will use heuristics only")

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class LLMExtractionError(ValueError):
    """The model answered, but no JSON could be recovered from the text."""


ENRICH_SYSTEM = """You are a travel research assistant for content creators.
Respond ONLY in JSON with the schema:
  {"destinations": {"NAME": {"bestMonths": [], "highlights": []}}}
- bestMonths: month names or ranges when the destination is at its best.
- highlights: 2-4 short, creator-friendly experiences or shooting locations.
Leave arrays empty when uncertain. Do not invent events or prices.
"""

ENRICH_TEMPLATE = """Destinations: {destinations}
Creator profile:
- themes: {themes}
- content type: {content_type}
- audience: {audience}
- travel style: {style}

Keep every string under 100 characters.
"""


def extract_json(text: Optional[str]) -> Any:
    """Return the first JSON object (or array) embedded in ``text``.

    Models often wrap JSON in prose or code fences, so the outermost ``{...}``
    block is tried first, then ``[...]``.
    """
    if not text:
        raise LLMExtractionError("Empty response from model")
    for pattern in (_OBJECT_RE, _ARRAY_RE):
        match = pattern.search(text)
        if not match:
            continue
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
    raise LLMExtractionError("No JSON block found in model response")


def generate_json(prompt: str, *, system: str = ENRICH_SYSTEM, model: Optional[str] = None) -> Any:
    """Send ``prompt`` to the hosted model and parse the JSON it returns."""
    if _client is None:
        raise RuntimeError("OPENAI_API_KEY environment variable not configured")

    model = model or DEFAULT_MODEL
    logger.info("Invoking LLM model %s", model)
    resp = _client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        temperature=0.2,
        response_format={"type": "json_object"},
    )
    return extract_json(resp.choices[0].message.content)


def llm_enrich_destinations(
    destinations: List[str],
    profile: Dict[str, Any],
    *,
    model: Optional[str] = None,
) -> Dict[str, Dict[str, List[str]]]:
    """Ask the hosted model for best months and highlights per destination.

    Returns ``{}`` when the client is missing or the answer is unusable; the
    caller keeps its heuristic values in that case.
    """
    names = [d for d in (destinations or []) if d]
    if not names:
        return {}
    if _client is None:
        logger.info("Skipping LLM enrichment for %s (missing client or API key)", ", ".join(names))
        return {}

    prompt = ENRICH_TEMPLATE.format(
        destinations=", ".join(names),
        themes=", ".join(profile.get("themes") or []) or "none stated",
        content_type=profile.get("content_type") or "unspecified",
        audience=profile.get("audience_location") or "global",
        style=profile.get("travel_style") or "mid-range",
    )
    try:
        payload = generate_json(prompt, model=model)
    except LLMExtractionError:
        logger.warning("LLM enrichment returned non-JSON payload; ignoring", exc_info=True)
        return {}

    block = payload.get("destinations") if isinstance(payload, dict) else None
    if not isinstance(block, dict):
        return {}

    normalised: Dict[str, Dict[str, List[str]]] = {}
    for name in names:
        data = block.get(name) or block.get(name.lower()) or {}
        if not isinstance(data, dict):
            continue
        months = [item for item in data.get("bestMonths", []) if isinstance(item, str)]
        highlights = [item for item in data.get("highlights", []) if isinstance(item, str)]
        if months or highlights:
            normalised[name] = {"bestMonths": months[:4], "highlights": highlights[:4]}
    logger.info("LLM enrichment covered %d of %d destinations", len(normalised), len(names))
    return normalised
