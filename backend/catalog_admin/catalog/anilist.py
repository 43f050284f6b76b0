"""AniList GraphQL client for trending and genre-scoped media lists."""

import asyncio
import time
from typing import List, Optional

import httpx
from pydantic import ValidationError

from ..config import AniListSettings, settings
from ..logger import logger
from ..models import ContentType
from .errors import CatalogError, CatalogRateLimitedError
from .types import CatalogMedia

MEDIA_PAGE_QUERY = """
query ($page: Int, $perPage: Int, $type: MediaType, $sort: [MediaSort], $genre: String) {
  Page(page: $page, perPage: $perPage) {
    media(type: $type, sort: $sort, genre: $genre, isAdult: false) {
      id
      title { romaji english }
      description
      coverImage { large }
      genres
      averageScore
      popularity
      startDate { year }
    }
  }
}
"""


class AniListClient:
    """
    Read-only client for the AniList catalog.

    Requests are serialized and spaced at least ``min_request_interval``
    seconds apart to stay under the public rate limit. A 429 response is
    reported as ``CatalogRateLimitedError`` rather than retried.
    """

    def __init__(
        self,
        endpoint: str,
        page_size: int = 20,
        timeout: float = 10.0,
        min_request_interval: float = 0.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.page_size = page_size
        self.timeout = timeout
        self.min_request_interval = min_request_interval
        self._transport = transport
        self._lock = asyncio.Lock()
        self._last_request_at: Optional[float] = None

    @classmethod
    def from_settings(cls, anilist: AniListSettings = settings.anilist) -> "AniListClient":
        return cls(
            endpoint=anilist.endpoint,
            page_size=anilist.page_size,
            timeout=anilist.timeout_seconds,
            min_request_interval=anilist.min_request_interval,
        )

    async def get_trending_anime(self) -> List[CatalogMedia]:
        return await self._fetch_media(ContentType.ANIME, sort="TRENDING_DESC")

    async def get_trending_manga(self) -> List[CatalogMedia]:
        return await self._fetch_media(ContentType.MANGA, sort="TRENDING_DESC")

    async def get_by_genre(
        self, genre: str, content_type: ContentType
    ) -> List[CatalogMedia]:
        return await self._fetch_media(
            content_type, sort="POPULARITY_DESC", genre=genre
        )

    async def _fetch_media(
        self, content_type: ContentType, sort: str, genre: Optional[str] = None
    ) -> List[CatalogMedia]:
        variables: dict = {
            "page": 1,
            "perPage": self.page_size,
            "type": content_type.value.upper(),
            "sort": [sort],
        }
        if genre is not None:
            variables["genre"] = genre

        data = await self._post({"query": MEDIA_PAGE_QUERY, "variables": variables})

        try:
            media = data["Page"]["media"]
            return [CatalogMedia.model_validate(item) for item in media]
        except (KeyError, TypeError, ValidationError) as e:
            raise CatalogError(f"Unexpected AniList response shape: {e}") from e

    async def _throttle(self) -> None:
        if self._last_request_at is not None:
            wait = self._last_request_at + self.min_request_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
        self._last_request_at = time.monotonic()

    async def _post(self, body: dict) -> dict:
        async with self._lock:
            await self._throttle()
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(
                        self.endpoint,
                        json=body,
                        headers={"Accept": "application/json"},
                    )
            except httpx.HTTPError as e:
                raise CatalogError(f"AniList request failed: {e}") from e

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            logger.warning(f"AniList rate limited the request, retry after {retry_after}")
            raise CatalogRateLimitedError(retry_after)

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if response.status_code != 200 or errors:
            message = errors[0].get("message") if errors else response.text[:200]
            raise CatalogError(
                f"AniList responded with HTTP {response.status_code}: {message}"
            )

        return payload.get("data") or {}


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
