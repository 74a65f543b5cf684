"""
Database models for the SEO metadata pipeline using SQLAlchemy 2.0 style.

Models:
- Site: A client website registered for SEO tracking
- CrawlJob: Background job record polled by callers for progress
- SeoPage: Extracted on-page SEO metadata, one row per (site, path)
- TrackedKeyword: Keyword a site owner monitors ranking position for
- GscQuery: Query-performance row imported from Google Search Console
- RankingHistory: Immutable daily ranking snapshot per (site, keyword, date)
"""

import uuid
from datetime import date as date_type, datetime
from typing import Optional

import tldextract
from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


JOB_STATUSES = ("queued", "processing", "completed", "failed")
TERMINAL_JOB_STATUSES = ("completed", "failed")


# Bundled public suffix snapshot only, no network fetch
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def new_job_id() -> str:
    """Generate an opaque job id."""
    return uuid.uuid4().hex


def domain_from_url(url: str) -> str:
    """
    Extract the registered domain from a URL or bare host using tldextract.

    Examples:
        >>> domain_from_url("https://www.example.com/path")
        'example.com'
        >>> domain_from_url("http://subdomain.example.co.uk")
        'example.co.uk'
        >>> domain_from_url("http://localhost:8000/")
        'localhost'
    """
    extracted = _tld_extract(url)

    if not extracted.suffix:
        return extracted.domain.lower()

    return f"{extracted.domain}.{extracted.suffix}".lower()


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Site(Base):
    """
    Client website registered for SEO tracking.

    Attributes:
        id: Primary key
        domain: Bare domain (e.g., 'example.com')
        sitemap_url: Explicit sitemap location (defaults to https://{domain}/sitemap.xml)
        created_at: Record creation timestamp
    """

    __tablename__ = "seo_sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    sitemap_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    @property
    def resolved_sitemap_url(self) -> str:
        """Sitemap URL to crawl for this site."""
        return self.sitemap_url or f"https://{self.domain}/sitemap.xml"

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, domain='{self.domain}')>"


class CrawlJob(Base):
    """
    Background job record driving a simple status state machine.

    Status flow: queued -> processing -> completed | failed.
    Terminal states are absorbing. `version` is bumped on every update and
    used for compare-and-swap writes.
    """

    __tablename__ = "seo_background_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_job_id)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("seo_sites.id"), index=True, nullable=False
    )
    job_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="metadata_extract"
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="queued",
        comment="queued, processing, completed, failed"
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    result: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "site_id": self.site_id,
            "job_type": self.job_type,
            "status": self.status,
            "progress": self.progress,
            "result": self.result,
            "error": self.error,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self) -> str:
        return f"<CrawlJob(id='{self.id}', status='{self.status}', progress={self.progress})>"


class SeoPage(Base):
    """
    On-page SEO metadata for one page of a site.

    At most one row per (site_id, path). first_seen_at is written once on
    creation; last_crawled_at is refreshed on every successful crawl.
    """

    __tablename__ = "seo_pages"
    __table_args__ = (
        UniqueConstraint("site_id", "path", name="uq_seo_pages_site_path"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("seo_sites.id"), index=True, nullable=False
    )
    path: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)

    # Meta tags
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title_length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    meta_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta_description_length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    canonical_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    robots_meta: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Headings
    h1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    h1_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # OpenGraph
    og_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    og_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    og_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Content and links
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    internal_links_out: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    external_links: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    images_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    images_without_alt: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Structured data
    has_schema: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    schema_types: Mapped[Optional[list]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )

    seo_health_score: Mapped[int] = mapped_column(Integer, nullable=False, default=50)

    # Sitemap hints
    sitemap_lastmod: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    sitemap_priority: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Timestamps
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_crawled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<SeoPage(site_id={self.site_id}, path='{self.path}', score={self.seo_health_score})>"


class TrackedKeyword(Base):
    """Keyword a site owner has opted to monitor."""

    __tablename__ = "seo_tracked_keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("seo_sites.id"), index=True, nullable=False
    )
    keyword: Mapped[str] = mapped_column(Text, nullable=False)
    current_position: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    best_ranking_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<TrackedKeyword(site_id={self.site_id}, keyword='{self.keyword}')>"


class GscQuery(Base):
    """Query-performance row from Google Search Console."""

    __tablename__ = "seo_gsc_queries"
    __table_args__ = (
        Index("ix_seo_gsc_queries_site_date", "site_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("seo_sites.id"), nullable=False
    )
    query: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ctr: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    position: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    page_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<GscQuery(site_id={self.site_id}, query='{self.query}', date={self.date})>"


class RankingHistory(Base):
    """
    Daily ranking snapshot for one keyword.

    Exactly one row per (site_id, keyword, date). Source tags:
    'gsc' (daily snapshot), 'gsc-backfill', 'import'.
    """

    __tablename__ = "seo_ranking_history"
    __table_args__ = (
        UniqueConstraint("site_id", "keyword", "date", name="uq_ranking_history_site_keyword_date"),
        Index("ix_ranking_history_site_date", "site_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("seo_sites.id"), nullable=False
    )
    keyword_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("seo_tracked_keywords.id"), nullable=True
    )
    keyword: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ctr: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="gsc")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "site_id": self.site_id,
            "keyword_id": self.keyword_id,
            "keyword": self.keyword,
            "date": self.date.isoformat(),
            "url": self.url,
            "position": self.position,
            "clicks": self.clicks,
            "impressions": self.impressions,
            "ctr": self.ctr,
            "source": self.source,
        }

    def __repr__(self) -> str:
        return f"<RankingHistory(site_id={self.site_id}, keyword='{self.keyword}', date={self.date})>"
