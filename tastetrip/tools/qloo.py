from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging
import os

import httpx

from tastetrip.schemas import QlooEntity, WebsiteProfile

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


class QlooClient:
    """
    Thin taste-graph adapter. Both ``QLOO_API_KEY`` and ``QLOO_API_URL`` must be
    present; otherwise callers should treat the service as not configured and use
    local scoring.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 8.0,
    ):
        self.api_key = api_key or os.getenv("QLOO_API_KEY")
        self.base_url = (base_url or os.getenv("QLOO_API_URL") or "").rstrip("/")
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key and self.base_url)

    async def fetch_entities(self, profile: WebsiteProfile, *, limit: int = 10) -> List[QlooEntity]:
        """Return destination entities matching the creator's interests."""
        if not self.is_configured():
            raise RuntimeError("QLOO_API_KEY/QLOO_API_URL not configured")

        params: Dict[str, Any] = {
            "filter.type": "urn:entity:destination",
            "take": limit,
        }
        tags = _interest_tags(profile.themes, profile.hints)
        if tags:
            params["signal.interests.tags"] = ",".join(tags)
        if profile.audience_location:
            params["signal.demographics.location"] = profile.audience_location

        data = await self._get("/v2/insights", params)
        entities = _parse_entities(data)
        logger.info("Taste-graph returned %d destination entities", len(entities))
        return entities

    async def fetch_creators(self, destination: str, country: str, themes: Sequence[str]) -> List[QlooEntity]:
        """Try the person/influencer endpoints in turn and return the first hit."""
        if not self.is_configured():
            raise RuntimeError("QLOO_API_KEY/QLOO_API_URL not configured")

        attempts = [
            ("/v2/insights", {
                "filter.type": "urn:entity:person",
                "filter.location": destination,
                "signal.interests.tags": ",".join(themes),
            }),
            ("/search", {"term": f"{destination} creators", "types": "urn:entity:person"}),
            ("/v2/insights", {"filter.type": "urn:entity:influencer", "filter.location": country}),
        ]
        for path, params in attempts:
            try:
                entities = _parse_entities(await self._get(path, params))
            except (httpx.HTTPError, ValueError):
                logger.warning("Taste-graph creator lookup failed for %s%s", self.base_url, path, exc_info=True)
                continue
            if entities:
                logger.info("Taste-graph creator lookup %s found %d entities for %s", path, len(entities), destination)
                return entities
        return []

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"X-Api-Key": self.api_key or "", "Accept": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}{path}", params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Unexpected taste-graph payload")
        return data


def _interest_tags(themes: Iterable[str], hints: Iterable[str]) -> List[str]:
    tags: List[str] = []
    for value in [*themes, *hints]:
        cleaned = (value or "").strip().lower()
        if cleaned and cleaned not in tags:
            tags.append(cleaned)
    return tags[:5]


def _parse_entities(data: Dict[str, Any]) -> List[QlooEntity]:
    results = data.get("results")
    if isinstance(results, dict):
        raw = results.get("entities")
    elif isinstance(results, list):
        raw = results
    else:
        raw = data.get("entities")
    if not isinstance(raw, list):
        return []

    entities: List[QlooEntity] = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        try:
            entities.append(QlooEntity.model_validate(item))
        except ValueError:
            logger.debug("Skipping malformed taste-graph entity %r", item.get("name"))
    return entities
