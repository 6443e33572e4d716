import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import isodate
from motor.motor_asyncio import AsyncIOMotorClient

from ..errors import UpstreamError

logger = logging.getLogger("openlearnhub.services.youtube_service")

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
CACHE_TTL = timedelta(hours=1)
MEMORY_CACHE_SIZE = 256


def _thumbnail_url(snippet: Dict[str, Any]) -> Optional[str]:
    thumbnails = snippet.get("thumbnails", {})
    best = thumbnails.get("high") or thumbnails.get("default") or {}
    return best.get("url")


def _duration_seconds(item: Dict[str, Any]) -> int:
    try:
        return int(isodate.parse_duration(item["contentDetails"]["duration"]).total_seconds())
    except Exception:
        return 0


class VideoSearchService:
    """
    Course video lookup against the YouTube Data API.
    Results are cached for an hour in MongoDB when configured,
    otherwise in process memory.
    """

    def __init__(
        self,
        api_key: Optional[str],
        mongo_uri: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        memory_cache_size: int = MEMORY_CACHE_SIZE,
    ):
        self._api_key = api_key
        self._transport = transport
        # Insertion-ordered, so the first key is always the oldest entry.
        self._memory_cache: Dict[str, Dict[str, Any]] = {}
        self._memory_cache_size = memory_cache_size
        self._db_client = None
        if mongo_uri:
            try:
                self._db_client = AsyncIOMotorClient(mongo_uri)
            except Exception as e:
                logger.warning(f"Could not connect to MongoDB, using memory cache: {e}")
                self._db_client = None

    def _cache_collection(self):
        return self._db_client.get_database("openlearnhub").get_collection("video_search_cache")

    async def _get_cached(self, query: str, max_results: int) -> Optional[List[Dict[str, Any]]]:
        cutoff = datetime.now(timezone.utc) - CACHE_TTL
        if self._db_client:
            entry = await self._cache_collection().find_one({
                "query": query,
                "max_results": {"$gte": max_results},
                "created_at": {"$gte": cutoff},
            })
        else:
            entry = self._memory_cache.get(query)
            if entry and (entry["max_results"] < max_results or entry["created_at"] < cutoff):
                entry = None

        if entry:
            logger.info(f"Cache hit for video search: {query}")
            return entry["results"][:max_results]
        return None

    async def _save_cached(self, query: str, max_results: int, results: List[Dict[str, Any]]) -> None:
        entry = {
            "query": query,
            "max_results": max_results,
            "results": results,
            "created_at": datetime.now(timezone.utc),
        }
        if self._db_client:
            await self._cache_collection().update_one({"query": query}, {"$set": entry}, upsert=True)
        else:
            self._store_in_memory(query, entry)

    def _store_in_memory(self, query: str, entry: Dict[str, Any]) -> None:
        """Drop expired entries, then evict the oldest until there is room."""
        cutoff = entry["created_at"] - CACHE_TTL
        for key in [k for k, v in self._memory_cache.items() if v["created_at"] < cutoff]:
            del self._memory_cache[key]

        self._memory_cache.pop(query, None)
        while self._memory_cache and len(self._memory_cache) >= self._memory_cache_size:
            del self._memory_cache[next(iter(self._memory_cache))]
        self._memory_cache[query] = entry

    def close(self) -> None:
        if self._db_client is not None:
            self._db_client.close()
            self._db_client = None

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: Dict[str, Any], label: str) -> Dict[str, Any]:
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"YouTube {label} API error: {e.response.text}", e.response.status_code)
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(f"YouTube {label} request failed: {e}")

    async def search_course_videos(self, sub_course: str, max_results: int = 10) -> List[Dict[str, Any]]:
        """
        Search course videos for a sub-course name.
        """
        if not self._api_key:
            raise UpstreamError("YouTube search is not configured.", 503)

        query = f"{sub_course} course"
        cached = await self._get_cached(query, max_results)
        if cached is not None:
            return cached

        async with httpx.AsyncClient(transport=self._transport) as client:
            search_data = await self._get_json(client, YOUTUBE_SEARCH_URL, {
                "part": "snippet",
                "q": query,
                "type": "video",
                "maxResults": max_results,
                "key": self._api_key,
            }, "Search")

            items = [item for item in search_data.get("items", []) if item.get("id", {}).get("videoId")]
            if not items:
                return []

            videos_data = await self._get_json(client, YOUTUBE_VIDEOS_URL, {
                "part": "contentDetails",
                "id": ",".join(item["id"]["videoId"] for item in items),
                "key": self._api_key,
            }, "Videos")

        durations = {item["id"]: _duration_seconds(item) for item in videos_data.get("items", [])}

        results = []
        for item in items:
            snippet = item.get("snippet", {})
            video_id = item["id"]["videoId"]
            results.append({
                "videoId": video_id,
                "title": snippet.get("title"),
                "description": snippet.get("description"),
                "channelTitle": snippet.get("channelTitle"),
                "thumbnail": _thumbnail_url(snippet),
                "publishedAt": snippet.get("publishedAt"),
                "durationSeconds": durations.get(video_id, 0),
            })

        await self._save_cached(query, max_results, results)
        return results
