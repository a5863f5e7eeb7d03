"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from classrag.configs.base import BaseSettings
from classrag.configs.content_store import ContentStoreSettings
from classrag.configs.database import DatabaseSettings
from classrag.configs.pipeline import DocumentPipelineSettings
from classrag.configs.retrieval import RetrievalSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    database: DatabaseSettings = DatabaseSettings()
    content_store: ContentStoreSettings = ContentStoreSettings()
    pipeline: DocumentPipelineSettings = DocumentPipelineSettings()
    retrieval: RetrievalSettings = RetrievalSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from classrag.configs import get_settings
        settings = get_settings()
    """
    return Settings()
