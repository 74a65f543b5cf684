"""
Background jobs: job tracking and the metadata extract crawl.
"""

from .job_tracker import JobTracker
from .metadata_extract_job import MetadataExtractJob

__all__ = [
    'JobTracker',
    'MetadataExtractJob',
]
