"""
GitHub repository miner for TypeScript + React + Jest projects.

This package provides:
- A rate-limited GitHub REST/GraphQL client
- Search query construction and pagination
- Layered technology detection and noise filtering
- An append-only CSV sink and a bounded concurrency helper
"""

from github_miner.client import GitHubClient, GitHubAPIError, NOT_FOUND
from github_miner.rate_limiter import RateLimiter
from github_miner.search import GitHubSearch
from github_miner.detector import TechnologyDetector
from github_miner.noise_filter import NoiseFilter

__all__ = [
    "GitHubClient",
    "GitHubAPIError",
    "NOT_FOUND",
    "RateLimiter",
    "GitHubSearch",
    "TechnologyDetector",
    "NoiseFilter",
]
