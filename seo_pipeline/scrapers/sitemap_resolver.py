"""
Sitemap Resolver Module

Turns a site's sitemap URL into a flat, order-preserving list of page
entries, recursing depth-first through sitemap indexes.

Handles:
- <urlset> sitemaps with <loc>, <lastmod>, <priority>
- <sitemapindex> documents (children resolved recursively)
- Namespaced and un-namespaced documents
- Gzip-compressed bodies (sitemap.xml.gz)

Duplicate URLs across child sitemaps are kept; de-duplication is the
consumer's decision.
"""

import gzip
import xml.etree.ElementTree as ET
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import requests

from runner.logging_setup import get_logger
from seo_pipeline.config import Config
from seo_pipeline.exceptions import SitemapError, SitemapFetchError, SitemapParseError
from seo_pipeline.infrastructure.http_client import SEOHTTPClient, is_success

logger = get_logger("sitemap_resolver")

GZIP_MAGIC = b"\x1f\x8b"


@dataclass
class SitemapEntry:
    """One page listed in a sitemap."""
    url: str
    lastmod: Optional[str] = None
    priority: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def _local_name(tag: str) -> str:
    """Strip the '{namespace}' prefix ElementTree puts on tags."""
    return tag.rsplit('}', 1)[-1] if '}' in tag else tag


def _child_text(elem: ET.Element, name: str) -> Optional[str]:
    for child in elem:
        if _local_name(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def _parse_priority(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class SitemapResolver:
    """
    Resolves sitemap URLs into SitemapEntry lists.

    Usage:
        resolver = SitemapResolver(SEOHTTPClient())
        entries = resolver.resolve("https://example.com/sitemap.xml")
    """

    def __init__(
        self,
        http_client: Optional[SEOHTTPClient] = None,
        max_depth: Optional[int] = None,
        skip_failed_children: Optional[bool] = None,
    ):
        """
        Initialize resolver.

        Args:
            http_client: Client used for all fetches
            max_depth: Maximum sitemap-index nesting to follow
            skip_failed_children: If True, a failing child sitemap inside an
                index is logged and skipped instead of aborting the resolve
        """
        self.http_client = http_client or SEOHTTPClient()
        self.max_depth = Config.SITEMAP_MAX_DEPTH if max_depth is None else max_depth
        self.skip_failed_children = (
            Config.SITEMAP_SKIP_FAILED_CHILDREN
            if skip_failed_children is None else skip_failed_children
        )

    def _fetch(self, sitemap_url: str) -> bytes:
        try:
            response = self.http_client.get(sitemap_url)
        except requests.RequestException as e:
            raise SitemapFetchError(f"Failed to fetch sitemap: {e}", sitemap_url) from e

        if not is_success(response):
            raise SitemapFetchError(
                f"Failed to fetch sitemap: {response.status_code}", sitemap_url
            )

        body = response.content
        if body[:2] == GZIP_MAGIC:
            try:
                body = gzip.decompress(body)
            except OSError as e:
                raise SitemapParseError(f"Invalid gzip sitemap: {e}", sitemap_url) from e

        return body

    def _parse(self, body: bytes, sitemap_url: str) -> ET.Element:
        try:
            return ET.fromstring(body)
        except ET.ParseError as e:
            raise SitemapParseError(f"Invalid XML in sitemap: {e}", sitemap_url) from e

    def resolve(self, sitemap_url: str, depth: int = 0) -> List[SitemapEntry]:
        """
        Resolve a sitemap (or sitemap index) into a flat entry list.

        Args:
            sitemap_url: Sitemap location
            depth: Current index nesting (internal)

        Returns:
            List of SitemapEntry in document order, children depth-first

        Raises:
            SitemapFetchError: Non-2xx response or unreachable host
            SitemapParseError: Malformed XML
        """
        logger.info(f"Fetching sitemap: {sitemap_url}")
        root = self._parse(self._fetch(sitemap_url), sitemap_url)

        if _local_name(root.tag) == 'sitemapindex':
            return self._resolve_index(root, sitemap_url, depth)

        entries = []
        for url_elem in root.iter():
            if _local_name(url_elem.tag) != 'url':
                continue

            loc = _child_text(url_elem, 'loc')
            if not loc:
                continue

            entries.append(SitemapEntry(
                url=loc,
                lastmod=_child_text(url_elem, 'lastmod'),
                priority=_parse_priority(_child_text(url_elem, 'priority')),
            ))

        logger.info(f"Found {len(entries)} URLs in {sitemap_url}")
        return entries

    def _resolve_index(self, root: ET.Element, sitemap_url: str, depth: int) -> List[SitemapEntry]:
        child_urls = [
            loc for loc in (
                _child_text(elem, 'loc')
                for elem in root.iter()
                if _local_name(elem.tag) == 'sitemap'
            )
            if loc
        ]
        logger.info(f"Found sitemap index with {len(child_urls)} sitemaps: {sitemap_url}")

        if depth >= self.max_depth:
            logger.warning(
                f"Sitemap index nesting exceeds max depth {self.max_depth}, "
                f"skipping children of {sitemap_url}"
            )
            return []

        entries = []
        for child_url in child_urls:
            try:
                entries.extend(self.resolve(child_url, depth + 1))
            except SitemapError as e:
                if not self.skip_failed_children:
                    raise
                logger.warning(f"Skipping child sitemap {child_url}: {e}")

        return entries


def resolve_sitemap(sitemap_url: str, http_client: Optional[SEOHTTPClient] = None) -> List[SitemapEntry]:
    """Convenience wrapper around SitemapResolver.resolve()."""
    return SitemapResolver(http_client).resolve(sitemap_url)
