"""
GitHub repository search module.

Walks search result pages (GraphQL cursor or REST offset) and turns them into
RepositoryCandidate objects.
"""

import math
import time
import requests
from typing import Callable, Iterator, List, Optional

from models import RepositoryCandidate
from github_miner.client import GitHubClient
from github_miner.cancellation import CancellationToken, OperationCancelled


SEARCH_REPOS_QUERY = """
query($queryString: String!, $first: Int!, $after: String) {
  search(query: $queryString, type: REPOSITORY, first: $first, after: $after) {
    repositoryCount
    edges {
      node {
        ... on Repository {
          name
          description
          owner { login }
          stargazerCount
          repositoryTopics(first: 20) {
            nodes { topic { name } }
          }
        }
      }
    }
    pageInfo {
      endCursor
      hasNextPage
    }
  }
}
"""


class GitHubSearch:
    """
    Search GitHub repositories page by page.

    Supports:
    - GraphQL cursor pagination (page size 1..100)
    - REST offset pagination, stopping at the 1000-result search cap
    - A delay between pages
    - Cooperative cancellation between pages
    """

    MAX_PAGE_SIZE = 100  # GitHub API max
    SEARCH_RESULT_CAP = 1000

    MODE_GRAPHQL = "graphql"
    MODE_REST = "rest"

    def __init__(
        self,
        client: GitHubClient,
        page_delay: float = 1.0,
        cancel_token: Optional[CancellationToken] = None,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        """
        Initialize search driver.

        Args:
            client: GitHubClient used for every page request
            page_delay: Seconds to pause between pages
            cancel_token: Stops pagination between pages
            sleep: Sleep function (defaults to the token's, else time.sleep)
        """
        self.client = client
        self.page_delay = page_delay
        self.cancel_token = cancel_token
        if sleep is not None:
            self.sleep = sleep
        elif cancel_token is not None:
            self.sleep = cancel_token.sleep
        else:
            self.sleep = time.sleep

    def _cancelled(self) -> bool:
        return bool(self.cancel_token and self.cancel_token.cancelled)

    def iter_pages(
        self, query: str, mode: str = MODE_GRAPHQL, page_size: int = 50
    ) -> Iterator[List[RepositoryCandidate]]:
        """
        Yield pages of candidates for one query.

        A failing page ends this query only; the error is printed.

        Args:
            query: Search query string
            mode: "graphql" (cursor) or "rest" (offset)
            page_size: Results per page, clamped to 1..100

        Yields:
            Lists of RepositoryCandidate, one per fetched page
        """
        page_size = max(1, min(self.MAX_PAGE_SIZE, page_size))
        if mode == self.MODE_REST:
            pages = self._iter_rest_pages(query, page_size)
        elif mode == self.MODE_GRAPHQL:
            pages = self._iter_graphql_pages(query, page_size)
        else:
            raise ValueError(f"Unknown search mode: {mode}")

        try:
            yield from pages
        except OperationCancelled:
            print("[WARN] Search cancelled while waiting for the rate limit.")
        except (requests.RequestException, ValueError) as e:
            print(f"[ERROR] Search page failed, skipping rest of query: {e}")

    def search_repositories(
        self, query: str, mode: str = MODE_GRAPHQL, page_size: int = 50
    ) -> Iterator[RepositoryCandidate]:
        """Flattened iter_pages()."""
        for page in self.iter_pages(query, mode=mode, page_size=page_size):
            yield from page

    def _iter_graphql_pages(
        self, query: str, batch_size: int
    ) -> Iterator[List[RepositoryCandidate]]:
        after = None

        while not self._cancelled():
            data = self.client.graphql(
                SEARCH_REPOS_QUERY,
                {"queryString": query, "first": batch_size, "after": after},
            )
            search = data.get("search") or {}
            edges = search.get("edges") or []
            if not edges:
                print("  [INFO] No more results on this page.")
                return

            print(
                f"  [INFO] Available (approx.): {search.get('repositoryCount', 0)} | "
                f"page with {len(edges)} items"
            )
            yield self._parse_nodes(edge.get("node") for edge in edges)

            page_info = search.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                print("  [INFO] End of pagination for this query.")
                return
            after = page_info.get("endCursor")

            if self._cancelled():
                return
            self.sleep(self.page_delay)

    def _iter_rest_pages(
        self, query: str, per_page: int
    ) -> Iterator[List[RepositoryCandidate]]:
        page = 1
        last_page = None

        while not self._cancelled():
            data = self.client.search_repositories_page(query, page=page, per_page=per_page)
            if last_page is None:
                last_page = self.last_reachable_page(data.get("total_count", 0), per_page)
                print(
                    f"  [INFO] total_count={data.get('total_count', 0)} | "
                    f"reachable pages: {last_page}"
                )

            items = data.get("items") or []
            if not items:
                print("  [INFO] No more results on this page.")
                return

            yield self._parse_nodes(items, rest=True)

            if page >= last_page or len(items) < per_page:
                print("  [INFO] End of pagination for this query.")
                return
            page += 1

            if self._cancelled():
                return
            self.sleep(self.page_delay)

    @classmethod
    def last_reachable_page(cls, total_count: int, per_page: int) -> int:
        """
        Highest page the search API will serve.

        GitHub refuses to return results past the first 1000 matches,
        whatever total_count says.
        """
        reachable = min(max(0, total_count), cls.SEARCH_RESULT_CAP)
        return math.ceil(reachable / per_page)

    def _parse_nodes(self, nodes, rest: bool = False) -> List[RepositoryCandidate]:
        candidates = []
        for node in nodes:
            if not node:
                continue  # non-repository search hits come back empty
            try:
                if rest:
                    candidates.append(RepositoryCandidate.from_rest_item(node))
                else:
                    candidates.append(RepositoryCandidate.from_graphql_node(node))
            except (KeyError, TypeError) as e:
                print(f"[WARN] Error parsing search result: {e}")
        return candidates
