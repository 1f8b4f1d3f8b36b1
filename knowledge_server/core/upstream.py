"""
HTTP client for the upstream sources polled by the update scheduler:
the GitHub releases API and the package index.
"""

from typing import Any, Dict, Optional

import requests

from .config import (
    PACKAGE_INDEX_URL,
    RELEASES_URL,
    UPSTREAM_TIMEOUT_SEC,
    get_github_token,
)

GITHUB_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"


class UpstreamError(Exception):
    """A transport failure, non-2xx status, or unusable payload from upstream."""
    pass


class UpstreamClient:
    """Thin wrapper around a requests.Session with the upstream's fixed headers."""

    def __init__(self, releases_url: str = None, package_index_url: str = None,
                 token: Optional[str] = None, timeout: float = None,
                 session: requests.Session = None):
        self.releases_url = releases_url or RELEASES_URL
        self.package_index_url = package_index_url or PACKAGE_INDEX_URL
        self.token = token
        self.timeout = timeout or UPSTREAM_TIMEOUT_SEC
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> 'UpstreamClient':
        return cls(token=get_github_token())

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def release_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": GITHUB_ACCEPT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch_latest_release(self) -> Dict[str, Any]:
        """
        Fetch the latest release and return its JSON object.

        Raises UpstreamError on transport errors, non-2xx responses, or a body
        that is not a JSON object. Field validation is left to the caller.
        """
        try:
            response = self.session.get(self.releases_url, headers=self.release_headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Release fetch failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UpstreamError(f"Releases API returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(f"Releases API returned malformed JSON: {e}") from e

        if not isinstance(payload, dict):
            raise UpstreamError("Releases API returned a non-object JSON payload")

        return payload

    def probe_package_index(self) -> bool:
        """Check the package index is reachable. Raises UpstreamError when it is not."""
        try:
            response = self.session.get(self.package_index_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Package index probe failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UpstreamError(f"Package index returned HTTP {response.status_code}")

        return True

    def close(self):
        self.session.close()
