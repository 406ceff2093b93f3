"""
GitHub API client.

Wraps a requests.Session with a per-request timeout, unbounded wait-and-retry
on rate-limit exhaustion, and helpers for the endpoints the miner uses.
"""

import base64
import requests
from urllib.parse import quote
from typing import Any, Dict, List, Optional

from github_miner.rate_limiter import RateLimiter
from github_miner.cancellation import CancellationToken


class NotFound:
    """Sentinel for a 404 response. Falsy, so `if result:` reads naturally."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()


class GitHubAPIError(requests.HTTPError):
    """Non-2xx response other than rate limiting or 404."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        body: str = "",
        response: Optional[requests.Response] = None,
    ):
        super().__init__(message, response=response)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class GraphQLError(GitHubAPIError):
    """GraphQL response with an `errors` payload."""


class GitHubClient:
    """
    Rate-limited GitHub REST/GraphQL client.

    Handles:
    - Bearer authentication and API version headers
    - Timeouts (raised to the caller as requests.Timeout)
    - 403/429 quota exhaustion (sleep until reset, then retry the same request)
    - 404 as the NOT_FOUND sentinel
    """

    BASE_URL = "https://api.github.com"
    GRAPHQL_URL = f"{BASE_URL}/graphql"
    DEFAULT_TIMEOUT = 30
    BODY_PREVIEW_CHARS = 500

    def __init__(
        self,
        token: str,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = DEFAULT_TIMEOUT,
        cancel_token: Optional[CancellationToken] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub personal access token
            rate_limiter: RateLimiter instance (shared across threads)
            timeout: Per-request timeout in seconds
            cancel_token: Aborts rate-limit retries once a stop is requested
            session: requests.Session to use (tests pass a fake)
        """
        self.token = token
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout = timeout
        self.cancel_token = cancel_token
        self.session = session or requests.Session()

        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "github-stack-miner",
        })

    def request(self, method: str, url: str, **kwargs) -> Any:
        """
        Issue a request, retrying indefinitely while the quota is exhausted.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Passed to requests (params, json, headers, ...)

        Returns:
            requests.Response for 2xx, NOT_FOUND for 404

        Raises:
            requests.Timeout: The request exceeded the timeout
            GitHubAPIError: Any other non-2xx response
            OperationCancelled: A stop was requested during a rate-limit wait
        """
        while True:
            self.rate_limiter.wait_if_needed()

            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            self.rate_limiter.check_rate_limit(response)

            if self.rate_limiter.is_exhausted(response):
                if self.rate_limiter.wait_for_reset(response):
                    if self.cancel_token:
                        self.cancel_token.raise_if_cancelled()
                    continue

            if response.status_code == 404:
                return NOT_FOUND

            if not 200 <= response.status_code < 300:
                raise self._error_for(method, url, response)

            return response

    def _error_for(
        self, method: str, url: str, response: requests.Response
    ) -> GitHubAPIError:
        body = (response.text or "")[: self.BODY_PREVIEW_CHARS]
        message = (
            f"{method} {url} failed: {response.status_code} - "
            f"{response.reason} - {body}"
        )
        return GitHubAPIError(
            message,
            status_code=response.status_code,
            reason=response.reason,
            body=body,
            response=response,
        )

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a JSON resource.

        Returns:
            Parsed JSON, None if the body is not JSON, NOT_FOUND for 404
        """
        response = self.request("GET", url, params=params)
        if response is NOT_FOUND:
            return NOT_FOUND
        try:
            return response.json()
        except ValueError:
            return None

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a GraphQL query.

        Returns:
            The `data` member of the response

        Raises:
            GraphQLError: The response carried an `errors` member
        """
        response = self.request(
            "POST",
            self.GRAPHQL_URL,
            json={"query": query, "variables": variables},
            headers={"Content-Type": "application/json"},
        )
        if response is NOT_FOUND:
            raise GitHubAPIError("GraphQL endpoint returned 404", status_code=404)

        payload = response.json()
        if payload.get("errors"):
            raise GraphQLError(f"GraphQL errors: {payload['errors']}")
        return payload.get("data") or {}

    def search_repositories_page(
        self, query: str, page: int, per_page: int
    ) -> Dict[str, Any]:
        """
        Fetch one page of REST repository search results.

        Returns:
            Dict with total_count and items
        """
        data = self.get_json(
            f"{self.BASE_URL}/search/repositories",
            params={"q": query, "page": page, "per_page": per_page},
        )
        if not data:
            return {"total_count": 0, "items": []}
        return data

    def get_languages(self, owner: str, repo: str) -> Dict[str, int]:
        """Language -> byte count breakdown."""
        data = self.get_json(f"{self.BASE_URL}/repos/{owner}/{repo}/languages")
        if not isinstance(data, dict):
            return {}
        return data

    def get_topics(self, owner: str, repo: str) -> List[str]:
        data = self.get_json(f"{self.BASE_URL}/repos/{owner}/{repo}/topics")
        if not isinstance(data, dict):
            return []
        names = data.get("names")
        return list(names) if isinstance(names, list) else []

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        return f"{self.BASE_URL}/repos/{owner}/{repo}/contents/{quote(path)}"

    def get_file_content(self, owner: str, repo: str, path: str) -> Optional[str]:
        """
        Fetch and decode a file from the default branch.

        Returns:
            File text, or None if missing, a directory, or undecodable
        """
        data = self.get_json(self._contents_url(owner, repo, path))
        return self._decode_content(data, path)

    def file_exists(self, owner: str, repo: str, path: str) -> bool:
        """Presence check only; the body is not decoded."""
        return self.request("GET", self._contents_url(owner, repo, path)) is not NOT_FOUND

    def list_directory(self, owner: str, repo: str, path: str = "") -> List[Dict[str, Any]]:
        """
        List a directory.

        Returns:
            Content entries (name, path, type, ...), empty if missing or a file
        """
        data = self.get_json(self._contents_url(owner, repo, path))
        if not isinstance(data, list):
            return []
        return data

    def get_readme(self, owner: str, repo: str) -> Optional[str]:
        data = self.get_json(f"{self.BASE_URL}/repos/{owner}/{repo}/readme")
        return self._decode_content(data, "README")

    def _decode_content(self, data: Any, path: str) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        if data.get("encoding") != "base64" or not data.get("content"):
            return None
        try:
            return base64.b64decode(data["content"]).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            print(f"[WARN] Error decoding file content for {path}: {e}")
            return None
