"""Request-scoped dependencies shared by the route modules."""

from functools import lru_cache

from services.content_service import ContentService
from utils.settings import get_settings


@lru_cache(maxsize=1)
def get_content_service() -> ContentService:
    """Process-wide ContentService built from settings on first use."""
    return ContentService.from_settings(get_settings())
