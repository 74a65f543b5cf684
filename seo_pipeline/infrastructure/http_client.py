"""
Shared HTTP client for sitemap and page fetches.

Provides a unified HTTP client that:
- Sends a descriptive user agent and browser-like Accept headers
- Applies a per-request timeout
- Logs structured metadata for all requests

Retries are intentionally disabled: a failed fetch is reported to the
caller, which decides whether it is fatal (sitemap) or recoverable (page).
"""
import logging
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from seo_pipeline.config import Config

logger = logging.getLogger(__name__)


class SEOHTTPClient:
    """
    Thin wrapper around a requests.Session.

    Usage:
        client = SEOHTTPClient()
        response = client.get("https://example.com/sitemap.xml")
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            user_agent: User agent string (default: Config.USER_AGENT)
            timeout: Request timeout in seconds (default: Config.REQUEST_TIMEOUT)
            session: Pre-built session whose adapters are used as-is;
                without one, a session with no-retry adapters is created
        """
        self.user_agent = user_agent or Config.USER_AGENT
        self.timeout = timeout if timeout is not None else Config.REQUEST_TIMEOUT

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=0)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

        self.session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        })

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """
        Make an HTTP GET request.

        Args:
            url: URL to fetch
            headers: Extra headers merged over the session defaults
            **kwargs: Additional arguments passed to Session.get()

        Returns:
            Response object (any status code)

        Raises:
            requests.RequestException: On connection errors and timeouts
        """
        kwargs.setdefault("timeout", self.timeout)

        try:
            response = self.session.get(url, headers=headers, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"GET {url} failed: {e}")
            raise

        logger.debug(
            f"GET {url} -> {response.status_code} "
            f"({len(response.content)} bytes)"
        )
        return response

    def close(self):
        """Close the underlying session."""
        self.session.close()


def is_success(response: requests.Response) -> bool:
    """True for 2xx responses."""
    return 200 <= response.status_code < 300
