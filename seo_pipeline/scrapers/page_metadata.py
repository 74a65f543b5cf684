"""
Page Metadata Extractor Module

Fetches one page and derives on-page SEO metadata:
- Title, meta description, canonical, robots directives
- First H1 and H1 count
- OpenGraph title/description/image
- Schema.org JSON-LD @type values
- Internal/external link counts
- Image count and images missing alt text
- Word count
- Heuristic health score (0-100)

Fetch problems never raise: the caller receives a PageFetchError value and
decides how to tally it.
"""

import json
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from db.models import domain_from_url
from runner.logging_setup import get_logger
from seo_pipeline.infrastructure.http_client import SEOHTTPClient, is_success

logger = get_logger("page_metadata")

BASE_HEALTH_SCORE = 50
MAX_HEALTH_SCORE = 100

IGNORED_HREF_PREFIXES = ('#', 'mailto:', 'tel:', 'javascript:', 'data:')
JSON_LD_TYPE = re.compile(r'^\s*application/ld\+json\s*(;|$)', re.IGNORECASE)


@dataclass
class PageFetchError:
    """Per-URL extraction failure."""
    url: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'url': self.url, 'error': self.error}


@dataclass
class PageMetadata:
    """SEO metadata extracted from one page."""
    url: str
    title: Optional[str] = None
    meta_description: Optional[str] = None
    canonical_url: Optional[str] = None
    robots_meta: Optional[str] = None

    h1: Optional[str] = None
    h1_count: int = 0

    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None

    schema_types: List[str] = field(default_factory=list)

    word_count: int = 0
    internal_links_out: int = 0
    external_links: int = 0
    images_count: int = 0
    images_without_alt: int = 0

    seo_health_score: int = BASE_HEALTH_SCORE

    @property
    def title_length(self) -> int:
        return len(self.title) if self.title else 0

    @property
    def meta_description_length(self) -> int:
        return len(self.meta_description) if self.meta_description else 0

    @property
    def has_schema(self) -> bool:
        return len(self.schema_types) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, including derived fields."""
        data = asdict(self)
        data.update({
            'title_length': self.title_length,
            'meta_description_length': self.meta_description_length,
            'has_schema': self.has_schema,
        })
        return data

    def to_record_fields(self) -> Dict[str, Any]:
        """Column values for the seo_pages table."""
        return {
            'url': self.url,
            'title': self.title,
            'title_length': self.title_length,
            'meta_description': self.meta_description,
            'meta_description_length': self.meta_description_length,
            'canonical_url': self.canonical_url,
            'robots_meta': self.robots_meta,
            'h1': self.h1,
            'h1_count': self.h1_count,
            'og_title': self.og_title,
            'og_description': self.og_description,
            'og_image': self.og_image,
            'word_count': self.word_count,
            'internal_links_out': self.internal_links_out,
            'external_links': self.external_links,
            'images_count': self.images_count,
            'images_without_alt': self.images_without_alt,
            'has_schema': self.has_schema,
            'schema_types': list(self.schema_types),
            'seo_health_score': self.seo_health_score,
        }


def compute_health_score(metadata: PageMetadata) -> int:
    """
    Heuristic on-page SEO score.

    Base 50, then:
        +10 title length in [30, 60]
        +10 meta description length in [120, 160]
        +10 exactly one H1
        +5  canonical URL present
        +10 any schema.org type found
        +5  at least one image and none missing alt text
    Capped at 100.
    """
    score = BASE_HEALTH_SCORE

    if 30 <= metadata.title_length <= 60:
        score += 10
    if 120 <= metadata.meta_description_length <= 160:
        score += 10
    if metadata.h1_count == 1:
        score += 10
    if metadata.canonical_url:
        score += 5
    if metadata.has_schema:
        score += 10
    if metadata.images_count > 0 and metadata.images_without_alt == 0:
        score += 5

    return min(MAX_HEALTH_SCORE, score)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class PageMetadataExtractor:
    """
    Fetches pages and extracts SEO metadata.

    Usage:
        extractor = PageMetadataExtractor()
        result = extractor.extract("https://example.com/about", site_domain="example.com")
        if isinstance(result, PageFetchError):
            ...
    """

    def __init__(self, http_client: Optional[SEOHTTPClient] = None):
        self.http_client = http_client or SEOHTTPClient()

    def _extract_meta(self, soup: BeautifulSoup, name: str) -> Optional[str]:
        """Extract meta tag content by name (case-insensitive)."""
        meta = soup.find('meta', attrs={'name': re.compile(rf'^{re.escape(name)}$', re.I)})
        if meta:
            return _clean(meta.get('content'))
        return None

    def _extract_property(self, soup: BeautifulSoup, prop: str) -> Optional[str]:
        """Extract meta tag content by property (og: tags)."""
        meta = soup.find('meta', attrs={'property': prop})
        if meta:
            return _clean(meta.get('content'))
        return None

    def _extract_canonical(self, soup: BeautifulSoup) -> Optional[str]:
        link = soup.find('link', rel=re.compile(r'^canonical$', re.I))
        if link:
            return _clean(link.get('href'))
        return None

    def _extract_h1(self, soup: BeautifulSoup) -> Optional[str]:
        h1 = soup.find('h1')
        if h1 is None:
            return None
        return _clean(' '.join(h1.get_text(' ').split()))

    def _extract_schema_types(self, soup: BeautifulSoup) -> List[str]:
        """Collect @type values of every parseable JSON-LD block."""
        types = []

        for script in soup.find_all('script', type=JSON_LD_TYPE):
            try:
                data = json.loads(script.get_text())
            except ValueError:
                logger.debug("Failed to parse JSON-LD schema")
                continue

            blocks = data if isinstance(data, list) else [data]
            for block in blocks:
                if not isinstance(block, dict) or '@type' not in block:
                    continue
                schema_type = block['@type']
                if isinstance(schema_type, list):
                    types.extend(str(t) for t in schema_type)
                elif schema_type:
                    types.append(str(schema_type))

        return types

    def _analyze_links(self, soup: BeautifulSoup, page_url: str, site_domain: str) -> Dict[str, int]:
        """Count internal and external anchor links."""
        internal = 0
        external = 0

        for link in soup.find_all('a', href=True):
            href = link.get('href', '').strip()

            if not href or href.lower().startswith(IGNORED_HREF_PREFIXES):
                continue

            parsed = urlparse(urljoin(page_url, href))
            if parsed.scheme not in ('http', 'https') or not parsed.netloc:
                continue

            if domain_from_url(parsed.netloc) == site_domain:
                internal += 1
            else:
                external += 1

        return {'internal': internal, 'external': external}

    def _analyze_images(self, soup: BeautifulSoup) -> Dict[str, int]:
        images = soup.find_all('img')
        without_alt = sum(1 for img in images if not (img.get('alt') or '').strip())

        return {'total': len(images), 'without_alt': without_alt}

    def _count_words(self, soup: BeautifulSoup) -> int:
        """Count whitespace-delimited tokens outside script/style. Mutates soup."""
        for elem in soup(['script', 'style']):
            elem.decompose()

        return len(soup.get_text(' ').split())

    def parse(self, html: Union[str, bytes], url: str, site_domain: Optional[str] = None) -> PageMetadata:
        """
        Parse a page and extract metadata.

        Args:
            html: Raw document (bytes are decoded by BeautifulSoup)
            url: Page URL
            site_domain: Site's own domain for link classification
                (default: the page's registered domain)

        Returns:
            PageMetadata with health score populated
        """
        soup = BeautifulSoup(html, 'lxml')
        site_domain = domain_from_url(site_domain or url)

        title_elem = soup.find('title')
        links = self._analyze_links(soup, url, site_domain)
        images = self._analyze_images(soup)

        metadata = PageMetadata(
            url=url,
            title=_clean(title_elem.get_text()) if title_elem else None,
            meta_description=self._extract_meta(soup, 'description'),
            canonical_url=self._extract_canonical(soup),
            robots_meta=self._extract_meta(soup, 'robots'),
            h1=self._extract_h1(soup),
            h1_count=len(soup.find_all('h1')),
            og_title=self._extract_property(soup, 'og:title'),
            og_description=self._extract_property(soup, 'og:description'),
            og_image=self._extract_property(soup, 'og:image'),
            schema_types=self._extract_schema_types(soup),
            internal_links_out=links['internal'],
            external_links=links['external'],
            images_count=images['total'],
            images_without_alt=images['without_alt'],
        )
        # Word count last: it strips script blocks from the tree
        metadata.word_count = self._count_words(soup)
        metadata.seo_health_score = compute_health_score(metadata)

        logger.debug(
            f"Parsed {url}: {metadata.word_count} words, "
            f"{metadata.h1_count} H1s, {len(metadata.schema_types)} schema types, "
            f"score {metadata.seo_health_score}"
        )

        return metadata

    def extract(self, url: str, site_domain: Optional[str] = None) -> Union[PageMetadata, PageFetchError]:
        """
        Fetch a page and extract its metadata.

        Returns:
            PageMetadata on success, PageFetchError on any fetch or parse failure
        """
        try:
            response = self.http_client.get(url)
        except requests.RequestException as e:
            return PageFetchError(url=url, error=str(e))

        if not is_success(response):
            return PageFetchError(url=url, error=f"HTTP {response.status_code}")

        try:
            return self.parse(response.content, url, site_domain)
        except Exception as e:
            logger.warning(f"Failed to parse {url}: {e}")
            return PageFetchError(url=url, error=str(e))
