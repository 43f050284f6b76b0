"""Read/write access to catalog content items."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..config import TrendSettings, settings
from ..db.database import get_async_session
from ..models import ContentItem, ContentType
from .errors import DuplicateContentError
from .scoring import compute_trend_score


class ContentCreate(BaseModel):
    """Fields required to create a content item."""

    external_id: str
    source: str
    type: ContentType
    title: str
    synopsis: Optional[str] = None
    poster_url: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    rating: float = Field(default=0.0, ge=0, le=10)
    popularity: int = 0
    release_year: int
    trend_score: float = 0.0
    raw: Optional[dict] = None


class ContentStore:
    """
    Content persistence used by the ingestion and trend jobs.

    Items are keyed by ``(external_id, source)``; the database enforces the
    uniqueness so concurrent ingestion of the same item cannot create two rows.
    """

    def __init__(self, trend_weights: TrendSettings = settings.trend):
        self.trend_weights = trend_weights

    async def find_by_external_id(
        self, external_id: str, source: str
    ) -> Optional[ContentItem]:
        async with get_async_session() as session:
            result = await session.execute(
                select(ContentItem).where(
                    ContentItem.external_id == external_id,
                    ContentItem.source == source,
                )
            )
            return result.scalar_one_or_none()

    async def create(self, item: ContentCreate) -> ContentItem:
        """
        Insert a new content item.

        Raises:
            DuplicateContentError: If an item with the same key already exists
        """
        content = ContentItem(**item.model_dump())
        async with get_async_session() as session:
            session.add(content)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateContentError(item.external_id, item.source) from e
            await session.refresh(content)
            return content

    async def recompute_trend_scores(self) -> int:
        """Recalculate ``trend_score`` for every item. Returns the number of items."""
        now = datetime.now(timezone.utc)
        async with get_async_session() as session:
            result = await session.execute(select(ContentItem))
            items = result.scalars().all()

            for item in items:
                item.trend_score = compute_trend_score(
                    rating=item.rating,
                    popularity=item.popularity,
                    release_year=item.release_year,
                    current_year=now.year,
                    weights=self.trend_weights,
                )
                item.updated_at = now

            await session.commit()
            return len(items)

    async def list_trending(
        self, limit: int = 20, content_type: Optional[ContentType] = None
    ) -> List[ContentItem]:
        query = select(ContentItem)
        if content_type is not None:
            query = query.where(ContentItem.type == content_type)
        query = query.order_by(ContentItem.trend_score.desc()).limit(limit)

        async with get_async_session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
