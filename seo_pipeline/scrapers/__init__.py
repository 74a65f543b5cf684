"""
Scrapers: sitemap resolution and page metadata extraction.
"""

from .sitemap_resolver import SitemapEntry, SitemapResolver, resolve_sitemap
from .page_metadata import (
    PageFetchError,
    PageMetadata,
    PageMetadataExtractor,
    compute_health_score,
)

__all__ = [
    'SitemapEntry',
    'SitemapResolver',
    'resolve_sitemap',
    'PageFetchError',
    'PageMetadata',
    'PageMetadataExtractor',
    'compute_health_score',
]
