"""
Content catalog persistence and trend scoring.
"""

from .errors import DuplicateContentError
from .store import ContentCreate, ContentStore

__all__ = ["ContentCreate", "ContentStore", "DuplicateContentError"]
