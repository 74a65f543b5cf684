"""
Exception hierarchy for the SEO metadata pipeline.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class SitemapError(PipelineError):
    """Sitemap could not be resolved."""

    def __init__(self, message: str, sitemap_url: str = None):
        super().__init__(message)
        self.sitemap_url = sitemap_url


class SitemapFetchError(SitemapError):
    """Sitemap host unreachable or returned a non-success status."""


class SitemapParseError(SitemapError):
    """Sitemap body is not well-formed XML."""


class JobError(PipelineError):
    """Base class for job tracker errors."""


class JobNotFoundError(JobError):
    """No job exists with the given id."""


class InvalidJobTransition(JobError):
    """Requested status change is not allowed by the job state machine."""


class JobConflictError(JobError):
    """Job record was modified concurrently and the update could not be applied."""


class ValidationError(PipelineError):
    """Request payload failed validation."""
