"""
SEO Metadata Pipeline

Site metadata crawl/extraction and keyword ranking history archiving.

This package provides:
- Sitemap resolution (with sitemap index recursion)
- Per-page SEO metadata extraction and health scoring
- Page record upserts per (site, path)
- Background job tracking with progress polling
- Daily, deduplicated keyword ranking snapshots
- Ranking trend summaries
"""

__version__ = "1.0.0"

__all__ = []
