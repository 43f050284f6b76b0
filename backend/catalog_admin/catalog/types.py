"""Models for media records returned by the external catalog."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CatalogModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MediaTitle(_CatalogModel):
    romaji: Optional[str] = None
    english: Optional[str] = None


class CoverImage(_CatalogModel):
    large: Optional[str] = None


class FuzzyDate(_CatalogModel):
    year: Optional[int] = None


class CatalogMedia(_CatalogModel):
    """One anime or manga entry as delivered by AniList."""

    id: int
    title: Optional[MediaTitle] = None
    description: Optional[str] = None
    # AniList returns null for any of these on sparse records
    cover_image: Optional[CoverImage] = Field(default=None, alias="coverImage")
    genres: Optional[List[str]] = None
    average_score: Optional[int] = Field(default=None, alias="averageScore")
    popularity: Optional[int] = None
    start_date: Optional[FuzzyDate] = Field(default=None, alias="startDate")
