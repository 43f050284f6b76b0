from typing import Optional


class CatalogError(Exception):
    """The external catalog could not be queried or returned an error."""


class CatalogRateLimitedError(CatalogError):
    def __init__(self, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        detail = f", retry after {retry_after:g}s" if retry_after is not None else ""
        super().__init__(f"Catalog API rate limit exceeded{detail}")
