"""
Database save operations for extracted page metadata.

This module provides:
- Upserting one seo_pages row per (site_id, path)
- Path derivation from page URLs

first_seen_at is written only when the row is created.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from sqlalchemy import select

from db.database_manager import DatabaseManager
from db.models import SeoPage
from runner.logging_setup import get_logger

logger = get_logger("page_store")


def path_from_url(url: str) -> str:
    """
    Page path used as the record identity within a site.

    Examples:
        >>> path_from_url("https://example.com/about?x=1")
        '/about'
        >>> path_from_url("https://example.com")
        '/'
    """
    return urlparse(url).path or "/"


class PageStore:
    """Reconciles extracted metadata against existing page records."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def upsert_page(self, site_id: int, metadata, entry=None) -> str:
        """
        Create or update the page record for metadata.url.

        Args:
            site_id: Owning site
            metadata: PageMetadata (anything with .url and .to_record_fields())
            entry: Optional SitemapEntry supplying lastmod/priority hints

        Returns:
            'created' or 'updated'
        """
        path = path_from_url(metadata.url)
        now = datetime.utcnow()

        fields: Dict[str, Any] = metadata.to_record_fields()
        if entry is not None:
            fields['sitemap_lastmod'] = entry.lastmod
            fields['sitemap_priority'] = entry.priority

        with self.db.get_session() as session:
            stmt = select(SeoPage).where(
                SeoPage.site_id == site_id,
                SeoPage.path == path,
            )
            existing = session.execute(stmt).scalar_one_or_none()

            if existing:
                for key, value in fields.items():
                    setattr(existing, key, value)
                existing.last_crawled_at = now
                existing.updated_at = now
                action = 'updated'
            else:
                session.add(SeoPage(
                    site_id=site_id,
                    path=path,
                    first_seen_at=now,
                    last_crawled_at=now,
                    updated_at=now,
                    **fields,
                ))
                action = 'created'

        logger.debug(f"Page {action}: site={site_id} path={path}")
        return action

    def get_page(self, site_id: int, path: str) -> Optional[SeoPage]:
        """Fetch one page record by identity."""
        with self.db.get_session() as session:
            stmt = select(SeoPage).where(
                SeoPage.site_id == site_id,
                SeoPage.path == path,
            )
            return session.execute(stmt).scalar_one_or_none()
