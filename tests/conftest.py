"""
Pytest configuration and shared fixtures for pipeline tests.

Provides an in-memory database, seeded sites and a canned HTTP client so
no test touches the network.
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
import requests

from db import DatabaseManager, Site


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that run a full job against the database"
    )
    config.addinivalue_line(
        "markers", "api: marks tests that go through the Flask test client"
    )


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int, content):
        self.status_code = status_code
        self.content = content.encode("utf-8") if isinstance(content, str) else content


class FakeHTTPClient:
    """
    Serves canned responses keyed by URL.

    Values are (status, body) tuples or an exception instance to raise.
    Unknown URLs raise requests.ConnectionError.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requested = []

    def get(self, url, headers=None, **kwargs):
        self.requested.append(url)
        route = self.routes.get(url)

        if route is None:
            raise requests.ConnectionError(f"Connection refused: {url}")
        if isinstance(route, Exception):
            raise route

        status, body = route
        return FakeResponse(status, body)

    def close(self):
        pass


def urlset(*urls, lastmod=None, priority=None):
    """Build a namespaced <urlset> document."""
    items = []
    for url in urls:
        extra = ""
        if lastmod:
            extra += f"<lastmod>{lastmod}</lastmod>"
        if priority is not None:
            extra += f"<priority>{priority}</priority>"
        items.append(f"<url><loc>{url}</loc>{extra}</url>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        + "".join(items)
        + "</urlset>"
    )


def sitemapindex(*urls):
    """Build a namespaced <sitemapindex> document."""
    items = "".join(f"<sitemap><loc>{url}</loc></sitemap>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        + items
        + "</sitemapindex>"
    )


# Database fixtures
@pytest.fixture(scope="function")
def db():
    """Provide a fresh in-memory database with all tables."""
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture(scope="function")
def site(db):
    """Seed one site with the default sitemap location."""
    with db.get_session() as session:
        record = Site(domain="example.com")
        session.add(record)
        session.flush()
        site_id = record.id
    return site_id


# HTTP fixtures
@pytest.fixture(scope="function")
def http_client():
    """Provide an empty canned HTTP client; tests add routes."""
    return FakeHTTPClient()
