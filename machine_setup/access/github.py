"""GitHub HTTPS endpoints used while probing access.

Both calls are best-effort: transport failures surface as
``NetworkUnreachable`` and non-2xx responses as ``AuthenticationRejected``
so the resolver can fall through to the next method.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from .errors import AuthenticationRejected, NetworkUnreachable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 5.0

USER_AGENT: str = "machine-setup/0.1"

GITHUB_WEB = "https://github.com"
GITHUB_API = "https://api.github.com"


class GitHubClient:
    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        web_base: str = GITHUB_WEB,
        api_base: str = GITHUB_API,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = timeout
        self.web_base = web_base.rstrip("/")
        self.api_base = api_base.rstrip("/")

    def _get(self, url: str, *, headers: Optional[dict] = None) -> requests.Response:
        try:
            return self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise NetworkUnreachable(f"{url}: {e}") from e
        except ValueError as e:
            # http.client refuses header values it cannot encode (e.g. a non-latin-1 token).
            logger.warning("Request to %s not sent: %s", url, e)
            raise AuthenticationRejected(f"{url}: unusable credential ({type(e).__name__})") from e

    def published_keys(self, owner: str) -> List[str]:
        """Return the key bodies (base64 field) listed at github.com/<owner>.keys."""
        url = f"{self.web_base}/{owner}.keys"
        resp = self._get(url)
        if not resp.ok:
            raise AuthenticationRejected(f"{url} returned HTTP {resp.status_code}")

        bodies: List[str] = []
        for line in resp.text.splitlines():
            parts = line.split()
            if len(parts) >= 2:
                bodies.append(parts[1])
        logger.debug("Owner %s publishes %d key(s)", owner, len(bodies))
        return bodies

    def validate_token(self, token: str, *, owner: str, repo: str) -> bool:
        url = f"{self.api_base}/repos/{owner}/{repo}"
        resp = self._get(
            url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
            },
        )
        if 200 <= resp.status_code < 300:
            return True
        raise AuthenticationRejected(f"{url} returned HTTP {resp.status_code}")
