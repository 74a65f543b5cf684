"""
Page metadata extractor tests.

Exercises parsing of meta tags, headings, OpenGraph, JSON-LD, links,
images, word counts and the health score, plus fetch failure values.
"""

import pytest
import requests

from conftest import FakeHTTPClient
from seo_pipeline.scrapers.page_metadata import (
    PageFetchError,
    PageMetadata,
    PageMetadataExtractor,
    compute_health_score,
)

PAGE_URL = "https://example.com/services/roof-cleaning"

TITLE = "Roof Cleaning Services in Example City | Example"  # 48 chars
DESCRIPTION = (
    "Professional soft-wash roof cleaning that removes moss, algae and "
    "black streaks safely. Free quotes, insured crews, same-week booking."
)  # 134 chars

FULL_PAGE = f"""<!DOCTYPE html>
<html>
<head>
  <title>{TITLE}</title>
  <meta name="description" content="{DESCRIPTION}">
  <meta name="robots" content="index, follow">
  <link rel="canonical" href="https://example.com/services/roof-cleaning">
  <meta property="og:title" content="Roof Cleaning">
  <meta property="og:description" content="Soft-wash roof cleaning">
  <meta property="og:image" content="https://example.com/og.png">
  <script type="application/ld+json">{{"@context": "https://schema.org", "@type": "LocalBusiness"}}</script>
</head>
<body>
  <h1>Roof   Cleaning</h1>
  <img src="/a.jpg" alt="Clean roof">
  <p>We clean roofs.</p>
</body>
</html>
"""


@pytest.fixture
def extractor():
    return PageMetadataExtractor(FakeHTTPClient())


class TestParse:

    @pytest.mark.unit
    def test_full_page(self, extractor):
        metadata = extractor.parse(FULL_PAGE, PAGE_URL, "example.com")

        assert metadata.title == TITLE
        assert metadata.meta_description == DESCRIPTION
        assert metadata.robots_meta == "index, follow"
        assert metadata.canonical_url == "https://example.com/services/roof-cleaning"
        assert metadata.og_title == "Roof Cleaning"
        assert metadata.og_description == "Soft-wash roof cleaning"
        assert metadata.og_image == "https://example.com/og.png"
        assert metadata.h1 == "Roof Cleaning"
        assert metadata.h1_count == 1
        assert metadata.schema_types == ["LocalBusiness"]
        assert metadata.images_count == 1
        assert metadata.images_without_alt == 0
        assert metadata.seo_health_score == 100

    @pytest.mark.unit
    def test_attribute_order_and_case(self, extractor):
        html = (
            '<html><head>'
            '<meta content="Reversed attributes" NAME="Description">'
            '<link href="https://example.com/c" rel="canonical">'
            '</head><body></body></html>'
        )

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.meta_description == "Reversed attributes"
        assert metadata.canonical_url == "https://example.com/c"

    @pytest.mark.unit
    def test_garbage_document_scores_base(self, extractor):
        metadata = extractor.parse("this is not html at all", PAGE_URL, "example.com")

        assert metadata.title is None
        assert metadata.meta_description is None
        assert metadata.h1 is None
        assert metadata.h1_count == 0
        assert metadata.schema_types == []
        assert metadata.word_count == 6
        assert metadata.seo_health_score == 50

    @pytest.mark.unit
    def test_multiple_h1(self, extractor):
        html = "<html><body><h1>First</h1><h1>Second</h1></body></html>"

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.h1 == "First"
        assert metadata.h1_count == 2

    @pytest.mark.unit
    def test_invalid_json_ld_block_is_skipped(self, extractor):
        html = """<html><head>
        <script type="application/ld+json">{not valid json</script>
        <script type="application/ld+json">{"@type": ["Organization", "LocalBusiness"]}</script>
        <script type="application/ld+json">[{"@type": "WebSite"}, {"name": "no type"}]</script>
        </head><body></body></html>"""

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.schema_types == ["Organization", "LocalBusiness", "WebSite"]
        assert metadata.has_schema is True

    @pytest.mark.unit
    def test_json_ld_type_attribute_is_case_insensitive(self, extractor):
        html = """<html><head>
        <script type="Application/LD+JSON; charset=utf-8">{"@type": "Organization"}</script>
        <script type=" APPLICATION/ld+json ">{"@type": "WebSite"}</script>
        <script type="application/ld+jsonp">{"@type": "Ignored"}</script>
        <script type="text/javascript">{"@type": "AlsoIgnored"}</script>
        </head><body></body></html>"""

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.schema_types == ["Organization", "WebSite"]

    @pytest.mark.unit
    def test_link_classification(self, extractor):
        html = """<html><body>
        <a href="/about">About</a>
        <a href="contact">Contact</a>
        <a href="https://www.example.com/x">Www</a>
        <a href="https://blog.example.com/post">Blog</a>
        <a href="https://other.org/">Other</a>
        <a href="http://partner.co.uk/page">Partner</a>
        <a href="#top">Top</a>
        <a href="mailto:hi@example.com">Mail</a>
        <a href="tel:+15550100">Call</a>
        <a href="javascript:void(0)">Js</a>
        <a>No href</a>
        </body></html>"""

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.internal_links_out == 4
        assert metadata.external_links == 2

    @pytest.mark.unit
    def test_images_without_alt(self, extractor):
        html = '<html><body><img src="a" alt="A"><img src="b" alt=""><img src="c"></body></html>'

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.images_count == 3
        assert metadata.images_without_alt == 2

    @pytest.mark.unit
    def test_word_count_ignores_script_and_style(self, extractor):
        html = """<html><body>
        <p>one two three</p>
        <script>var ignored = "four five";</script>
        <style>.ignored { color: red; }</style>
        </body></html>"""

        metadata = extractor.parse(html, PAGE_URL, "example.com")

        assert metadata.word_count == 3


class TestHealthScore:

    @pytest.mark.unit
    def test_base_score(self):
        assert compute_health_score(PageMetadata(url=PAGE_URL)) == 50

    @pytest.mark.unit
    def test_title_bounds(self):
        assert compute_health_score(PageMetadata(url=PAGE_URL, title="x" * 30)) == 60
        assert compute_health_score(PageMetadata(url=PAGE_URL, title="x" * 60)) == 60
        assert compute_health_score(PageMetadata(url=PAGE_URL, title="x" * 61)) == 50
        assert compute_health_score(PageMetadata(url=PAGE_URL, title="x" * 29)) == 50

    @pytest.mark.unit
    def test_images_need_all_alts(self):
        with_missing = PageMetadata(url=PAGE_URL, images_count=2, images_without_alt=1)
        no_images = PageMetadata(url=PAGE_URL, images_count=0)

        assert compute_health_score(with_missing) == 50
        assert compute_health_score(no_images) == 50

    @pytest.mark.unit
    def test_capped_at_100(self):
        metadata = PageMetadata(
            url=PAGE_URL,
            title="x" * 45,
            meta_description="y" * 140,
            h1_count=1,
            canonical_url=PAGE_URL,
            schema_types=["Organization", "WebSite"],
            images_count=4,
        )

        assert compute_health_score(metadata) == 100


class TestExtract:

    @pytest.mark.unit
    def test_success(self):
        client = FakeHTTPClient({PAGE_URL: (200, FULL_PAGE)})

        result = PageMetadataExtractor(client).extract(PAGE_URL, "example.com")

        assert isinstance(result, PageMetadata)
        assert result.url == PAGE_URL

    @pytest.mark.unit
    def test_http_error_status(self):
        client = FakeHTTPClient({PAGE_URL: (503, "unavailable")})

        result = PageMetadataExtractor(client).extract(PAGE_URL, "example.com")

        assert result == PageFetchError(url=PAGE_URL, error="HTTP 503")

    @pytest.mark.unit
    def test_network_error(self):
        client = FakeHTTPClient({PAGE_URL: requests.Timeout("read timed out")})

        result = PageMetadataExtractor(client).extract(PAGE_URL, "example.com")

        assert isinstance(result, PageFetchError)
        assert result.error == "read timed out"

    @pytest.mark.unit
    def test_parse_failure(self, monkeypatch):
        client = FakeHTTPClient({PAGE_URL: (200, "<html></html>")})
        extractor = PageMetadataExtractor(client)

        def boom(*args, **kwargs):
            raise ValueError("parser exploded")

        monkeypatch.setattr(extractor, "parse", boom)

        result = extractor.extract(PAGE_URL, "example.com")

        assert result.to_dict() == {"url": PAGE_URL, "error": "parser exploded"}
