"""
Job tracker and page store tests.
"""

import pytest

from db import PageStore, path_from_url
from seo_pipeline.exceptions import InvalidJobTransition, JobConflictError, JobNotFoundError
from seo_pipeline.jobs import JobTracker
from seo_pipeline.scrapers.page_metadata import PageMetadata
from seo_pipeline.scrapers.sitemap_resolver import SitemapEntry


@pytest.fixture
def tracker(db):
    return JobTracker(db)


class TestJobTracker:

    @pytest.mark.unit
    def test_create_and_get(self, tracker, site):
        job_id = tracker.create(site)

        job = tracker.get(job_id)

        assert job["status"] == "queued"
        assert job["progress"] == 0
        assert job["site_id"] == site
        assert job["job_type"] == "metadata_extract"
        assert job["completed_at"] is None

    @pytest.mark.unit
    def test_get_unknown_job(self, tracker):
        assert tracker.get("does-not-exist") is None

    @pytest.mark.unit
    def test_happy_path(self, tracker, site):
        job_id = tracker.create(site)

        tracker.mark(job_id, "processing", progress=5)
        tracker.mark(job_id, "processing", progress=40)
        job = tracker.mark(job_id, "completed", result={"extracted": 3})

        assert job["status"] == "completed"
        assert job["progress"] == 100
        assert job["result"] == {"extracted": 3}
        assert job["completed_at"] is not None
        assert job["version"] == 3

    @pytest.mark.unit
    def test_progress_never_decreases(self, tracker, site):
        job_id = tracker.create(site)

        tracker.mark(job_id, "processing", progress=60)
        job = tracker.mark(job_id, "processing", progress=20)

        assert job["progress"] == 60

    @pytest.mark.unit
    def test_progress_is_clamped(self, tracker, site):
        job_id = tracker.create(site)

        job = tracker.mark(job_id, "processing", progress=250)

        assert job["progress"] == 100

    @pytest.mark.unit
    def test_queued_can_fail(self, tracker, site):
        job_id = tracker.create(site)

        job = tracker.mark(job_id, "failed", error="Site not found")

        assert job["status"] == "failed"
        assert job["error"] == "Site not found"
        assert job["completed_at"] is not None

    @pytest.mark.unit
    def test_queued_cannot_complete(self, tracker, site):
        job_id = tracker.create(site)

        with pytest.raises(InvalidJobTransition):
            tracker.mark(job_id, "completed", result={})

    @pytest.mark.unit
    def test_terminal_states_are_absorbing(self, tracker, site):
        job_id = tracker.create(site)
        tracker.mark(job_id, "processing", progress=5)
        tracker.mark(job_id, "failed", error="boom")

        for status in ("processing", "completed", "failed", "queued"):
            with pytest.raises(InvalidJobTransition):
                tracker.mark(job_id, status)

        assert tracker.get(job_id)["error"] == "boom"

    @pytest.mark.unit
    def test_unknown_status(self, tracker, site):
        job_id = tracker.create(site)

        with pytest.raises(InvalidJobTransition):
            tracker.mark(job_id, "paused")

    @pytest.mark.unit
    def test_unknown_job(self, tracker):
        with pytest.raises(JobNotFoundError):
            tracker.mark("missing", "processing", progress=5)

    @pytest.mark.unit
    def test_version_conflict_exhausts_retries(self, tracker, site, monkeypatch):
        job_id = tracker.create(site)
        attempts = []

        def always_conflict(*args):
            attempts.append(args)
            return None

        monkeypatch.setattr(tracker, "_try_mark", always_conflict)

        with pytest.raises(JobConflictError):
            tracker.mark(job_id, "processing", progress=5)

        assert len(attempts) == tracker.max_retries + 1


class TestPageStore:

    @pytest.mark.unit
    def test_path_from_url(self):
        assert path_from_url("https://example.com/about?x=1#top") == "/about"
        assert path_from_url("https://example.com") == "/"

    @pytest.mark.unit
    def test_upsert_creates_then_updates(self, db, site):
        store = PageStore(db)
        url = "https://example.com/about"

        first = store.upsert_page(site, PageMetadata(url=url, title="Old"), SitemapEntry(url, "2024-01-01", 0.5))
        created = store.get_page(site, "/about")

        second = store.upsert_page(site, PageMetadata(url=url, title="New", h1_count=1))
        updated = store.get_page(site, "/about")

        assert first == "created"
        assert second == "updated"
        assert updated.id == created.id
        assert updated.title == "New"
        assert updated.title_length == 3
        assert updated.first_seen_at == created.first_seen_at
        assert updated.last_crawled_at >= created.last_crawled_at
        assert updated.sitemap_lastmod == "2024-01-01"
        assert updated.sitemap_priority == 0.5

    @pytest.mark.unit
    def test_get_missing_page(self, db, site):
        assert PageStore(db).get_page(site, "/nope") is None
