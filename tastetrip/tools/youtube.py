from dataclasses import dataclass
from typing import Dict, List, Optional
import logging
import os

import httpx

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TASTETRIP_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


@dataclass
class Channel:
    channel_id: str
    title: str
    description: str = ""
    subscribers: Optional[int] = None


class YouTubeSearcher:
    """Channel search plus subscriber statistics from the YouTube Data API."""

    SEARCH_ENDPOINT = "https://www.googleapis.com/youtube/v3/search"
    CHANNELS_ENDPOINT = "https://www.googleapis.com/youtube/v3/channels"

    def __init__(self, *, api_key: Optional[str] = None, timeout: float = 8.0):
        self.api_key = api_key or os.getenv("YOUTUBE_API_KEY")
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search_channels(self, query: str, *, max_results: int = 10) -> List[Channel]:
        """Search channels for ``query`` and attach subscriber counts.

        Channels whose statistics are hidden come back with ``subscribers=None``
        so callers can tell "unknown" apart from "zero".
        """
        if not self.api_key:
            raise RuntimeError("YOUTUBE_API_KEY environment variable not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                self.SEARCH_ENDPOINT,
                params={
                    "part": "snippet",
                    "q": query,
                    "type": "channel",
                    "maxResults": max_results,
                    "key": self.api_key,
                },
            )
            response.raise_for_status()
            items = response.json().get("items") or []

            channels: Dict[str, Channel] = {}
            for item in items:
                snippet = item.get("snippet") or {}
                channel_id = snippet.get("channelId") or (item.get("id") or {}).get("channelId")
                if not channel_id or channel_id in channels:
                    continue
                channels[channel_id] = Channel(
                    channel_id=channel_id,
                    title=snippet.get("channelTitle") or snippet.get("title") or channel_id,
                    description=snippet.get("description") or "",
                )
            if not channels:
                return []

            stats = await client.get(
                self.CHANNELS_ENDPOINT,
                params={"part": "statistics", "id": ",".join(channels), "key": self.api_key},
            )
            stats.raise_for_status()
            for item in stats.json().get("items") or []:
                channel = channels.get(item.get("id"))
                raw = (item.get("statistics") or {}).get("subscriberCount")
                if channel is not None and raw is not None:
                    try:
                        channel.subscribers = int(raw)
                    except (TypeError, ValueError):
                        channel.subscribers = None

        logger.info("Channel search '%s' returned %d channels", query, len(channels))
        return list(channels.values())
