"""
External anime/manga catalog access.
"""

from .anilist import AniListClient
from .errors import CatalogError, CatalogRateLimitedError
from .types import CatalogMedia

__all__ = [
    "AniListClient",
    "CatalogError",
    "CatalogRateLimitedError",
    "CatalogMedia",
]
