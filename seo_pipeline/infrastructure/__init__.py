"""
Infrastructure layer: shared HTTP client.
"""

from .http_client import SEOHTTPClient, is_success

__all__ = [
    'SEOHTTPClient',
    'is_success',
]
