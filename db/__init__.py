"""
Database module for the SEO metadata pipeline.

This module handles:
- Database connection management
- SQLAlchemy models
- Page record upserts
"""

from db.models import (
    Base,
    Site,
    CrawlJob,
    SeoPage,
    TrackedKeyword,
    GscQuery,
    RankingHistory,
    domain_from_url,
)
from db.database_manager import DatabaseManager, create_db_manager
from db.page_store import PageStore, path_from_url

__version__ = "0.1.0"

__all__ = [
    "Base",
    "Site",
    "CrawlJob",
    "SeoPage",
    "TrackedKeyword",
    "GscQuery",
    "RankingHistory",
    "domain_from_url",
    "DatabaseManager",
    "create_db_manager",
    "PageStore",
    "path_from_url",
]
