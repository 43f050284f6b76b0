"""
Jobs that ingest trending and genre-scoped media from the external catalog.

Ingestion is create-if-absent keyed on (external_id, source), so running the
same job twice, or two overlapping runs, never produces duplicate items.
"""

from datetime import datetime, timezone
from typing import List, Optional

from ...catalog.types import CatalogMedia, CoverImage, FuzzyDate, MediaTitle
from ...config import settings
from ...content.errors import DuplicateContentError
from ...content.store import ContentCreate
from ...logger import logger
from ...models import ContentType
from ..registry import JobName, cron_registry
from ..types import ExecutionContext


def map_media_to_content(
    media: CatalogMedia,
    content_type: ContentType,
    source: str,
    current_year: Optional[int] = None,
) -> ContentCreate:
    """Convert a catalog record into a new content item with a zero trend score."""
    if current_year is None:
        current_year = datetime.now(timezone.utc).year

    title = media.title or MediaTitle()
    cover_image = media.cover_image or CoverImage()
    start_date = media.start_date or FuzzyDate()
    # AniList scores are 0-100, content ratings 0-10
    rating = media.average_score / 10 if media.average_score else 0.0

    return ContentCreate(
        external_id=str(media.id),
        source=source,
        type=content_type,
        title=title.romaji or title.english or "Untitled",
        synopsis=media.description,
        poster_url=cover_image.large,
        genres=media.genres or [],
        rating=rating,
        popularity=media.popularity or 0,
        release_year=start_date.year or current_year,
        trend_score=0.0,
        raw=media.model_dump(by_alias=True),
    )


async def ingest_media(
    context: ExecutionContext, items: List[CatalogMedia], content_type: ContentType
) -> int:
    """Create content items for every record not stored yet. Returns the number created."""
    source = settings.anilist.source_name
    created = 0

    for media in items:
        external_id = str(media.id)
        if await context.content.find_by_external_id(external_id, source):
            continue
        try:
            await context.content.create(
                map_media_to_content(media, content_type, source)
            )
        except DuplicateContentError:
            # Another run stored it between the lookup and the insert
            continue
        created += 1

    context.log(
        f"Ingested {created} new {content_type.value} items, "
        f"{len(items) - created} already present"
    )
    logger.info(
        f"[{context.job_name}] ingested {created}/{len(items)} {content_type.value} items"
    )
    return created


@cron_registry.register(
    JobName.TRENDING_ANIME, description="Fetch trending anime from external sources"
)
async def fetch_trending_anime(context: ExecutionContext):
    items = await context.catalog.get_trending_anime()
    context.log(f"Fetched {len(items)} trending anime")
    await ingest_media(context, items, ContentType.ANIME)


@cron_registry.register(
    JobName.TRENDING_MANGA, description="Fetch trending manga from external sources"
)
async def fetch_trending_manga(context: ExecutionContext):
    items = await context.catalog.get_trending_manga()
    context.log(f"Fetched {len(items)} trending manga")
    await ingest_media(context, items, ContentType.MANGA)


async def fetch_top_by_genre(
    context: ExecutionContext, genre: str, content_type: ContentType
) -> int:
    items = await context.catalog.get_by_genre(genre, content_type)
    context.log(f"Fetched {len(items)} top {content_type.value} for genre {genre}")
    return await ingest_media(context, items, content_type)


@cron_registry.register(JobName.GENRES, description="Fetch top content by genres")
async def fetch_genres(context: ExecutionContext):
    for genre in settings.cron.genres:
        for content_type in (ContentType.ANIME, ContentType.MANGA):
            await fetch_top_by_genre(context, genre, content_type)
