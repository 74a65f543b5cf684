"""
Metadata Extract Job

Crawls a site's sitemap and extracts on-page metadata into seo_pages.

Flow:
1. Mark job processing (5%)
2. Load site; missing site fails the job
3. Resolve sitemap (10% -> 20%); unreachable/unparseable sitemap fails the job
4. Sequentially extract and upsert every URL, tolerating per-page failures
   (progress interpolated 20% -> 90%)
5. Mark job completed with a result summary

Any unexpected exception is persisted as a failed job; a job never stays
'processing' because of an unhandled error.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from db.database_manager import DatabaseManager
from db.models import Site
from db.page_store import PageStore, path_from_url
from runner.logging_setup import get_logger
from seo_pipeline.config import Config
from seo_pipeline.exceptions import SitemapError
from seo_pipeline.infrastructure.http_client import SEOHTTPClient
from seo_pipeline.jobs.job_tracker import JobTracker
from seo_pipeline.scrapers.page_metadata import PageFetchError, PageMetadataExtractor
from seo_pipeline.scrapers.sitemap_resolver import SitemapEntry, SitemapResolver

logger = get_logger("metadata_extract_job")


class MetadataExtractJob:
    """
    Drives sitemap resolution, page extraction and page upserts for one job.

    Usage:
        job = MetadataExtractJob(db)
        summary = job.run(job_id, site_id)
    """

    def __init__(
        self,
        db: DatabaseManager,
        http_client: Optional[SEOHTTPClient] = None,
        config=Config,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.config = config
        self.sleep = sleep

        http_client = http_client or SEOHTTPClient()
        self.tracker = JobTracker(db)
        self.page_store = PageStore(db)
        self.resolver = SitemapResolver(
            http_client,
            max_depth=config.SITEMAP_MAX_DEPTH,
            skip_failed_children=config.SITEMAP_SKIP_FAILED_CHILDREN,
        )
        self.extractor = PageMetadataExtractor(http_client)

    def _load_site(self, site_id: int) -> Optional[Dict[str, str]]:
        with self.db.get_session() as session:
            site = session.get(Site, site_id)
            if site is None:
                return None
            return {'domain': site.domain, 'sitemap_url': site.resolved_sitemap_url}

    def run(self, job_id: str, site_id: int) -> Dict[str, Any]:
        """
        Run the job end to end.

        Returns:
            dict: {'job_id', 'status', and 'result' or 'error'}
        """
        logger.info(f"[Metadata Extract] Starting job {job_id} for site {site_id}")

        try:
            return self._run(job_id, site_id)
        except Exception as e:
            logger.error(f"[Metadata Extract] Job {job_id} failed: {e}", exc_info=True)
            self._fail(job_id, str(e))
            return {'job_id': job_id, 'status': 'failed', 'error': str(e)}

    def _fail(self, job_id: str, message: str):
        try:
            self.tracker.mark(job_id, 'failed', error=message)
        except Exception as e:
            logger.error(f"[Metadata Extract] Failed to update job status for {job_id}: {e}")

    def _run(self, job_id: str, site_id: int) -> Dict[str, Any]:
        self.tracker.mark(job_id, 'processing', progress=5)

        site = self._load_site(site_id)
        if site is None:
            self._fail(job_id, "Site not found")
            return {'job_id': job_id, 'status': 'failed', 'error': "Site not found"}

        sitemap_url = site['sitemap_url']
        self.tracker.mark(job_id, 'processing', progress=10)

        try:
            entries = self.resolver.resolve(sitemap_url)
        except SitemapError as e:
            logger.error(f"[Metadata Extract] Sitemap failed for {sitemap_url}: {e}")
            self._fail(job_id, str(e))
            return {'job_id': job_id, 'status': 'failed', 'error': str(e)}

        logger.info(f"[Metadata Extract] Found {len(entries)} URLs in {sitemap_url}")
        self.tracker.mark(job_id, 'processing', progress=20)

        results = self._process_entries(job_id, site_id, site['domain'], entries)
        result = {'domain': site['domain'], 'sitemap_url': sitemap_url, **results}

        self.tracker.mark(job_id, 'completed', result=result)
        logger.info(
            f"[Metadata Extract] Completed: {results['created']} created, "
            f"{results['updated']} updated, {results['errors']} errors"
        )
        return {'job_id': job_id, 'status': 'completed', 'result': result}

    def _process_entries(
        self,
        job_id: str,
        site_id: int,
        domain: str,
        entries: List[SitemapEntry],
    ) -> Dict[str, Any]:
        results = {
            'total': len(entries),
            'extracted': 0,
            'created': 0,
            'updated': 0,
            'errors': 0,
            'duplicates': 0,
            'pages': [],
        }
        seen = set()

        for i, entry in enumerate(entries):
            if i % self.config.PROGRESS_EVERY == 0:
                progress = 20 + (i * 70) // len(entries)
                self.tracker.mark(job_id, 'processing', progress=progress)

            if i > 0 and i % self.config.PAUSE_EVERY == 0:
                self.sleep(self.config.CRAWL_DELAY_SECONDS)

            if entry.url in seen:
                results['duplicates'] += 1
                continue
            seen.add(entry.url)

            try:
                metadata = self.extractor.extract(entry.url, site_domain=domain)

                if isinstance(metadata, PageFetchError):
                    logger.warning(f"[Metadata Extract] {entry.url}: {metadata.error}")
                    results['errors'] += 1
                    results['pages'].append({**metadata.to_dict(), 'status': 'error'})
                    continue

                results['extracted'] += 1
                action = self.page_store.upsert_page(site_id, metadata, entry)
                results[action] += 1

                results['pages'].append({
                    'url': entry.url,
                    'path': path_from_url(entry.url),
                    'title': metadata.title,
                    'health_score': metadata.seo_health_score,
                    'status': action,
                })

            except Exception as e:
                logger.error(f"[Metadata Extract] Error processing {entry.url}: {e}")
                results['errors'] += 1
                results['pages'].append({'url': entry.url, 'status': 'error', 'error': str(e)})

        return results
