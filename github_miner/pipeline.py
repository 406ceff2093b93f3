"""
Miner pipeline orchestrator.

Runs every search query, analyzes each new candidate (bounded concurrency),
and appends qualifying repositories to the CSV output.
"""

import os
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Set

import requests

from models import OutputRow, QualificationDecision, RepositoryCandidate, TechnologySignals
from repository_qualifier import RepositoryQualifier
from github_miner.cancellation import CancellationToken, OperationCancelled
from github_miner.client import GitHubClient
from github_miner.concurrency import TaskResult, run_bounded
from github_miner.detector import TechnologyDetector
from github_miner.noise_filter import NoiseFilter, NoiseVerdict
from github_miner.query_builder import DEFAULT_EXCLUDED_TOPICS, QueryBuilder
from github_miner.rate_limiter import RateLimiter
from github_miner.search import GitHubSearch
from github_miner.storage import CsvOutputStorage


TOKEN_ENV_VARS = ("GITHUB_TOKEN", "PAT", "GH_TOKEN")


class ConfigurationError(Exception):
    """Invalid or missing configuration; fatal at startup."""


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() == "true"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _env_list(environ: Mapping[str, str], name: str) -> Optional[List[str]]:
    value = environ.get(name)
    if value is None:
        return None
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@dataclass
class MinerConfig:
    """Configuration for the miner."""
    github_token: Optional[str] = None
    output_file: str = "output/repos_ts_react_jest.csv"
    batch_size: int = 50  # 1..100 per page
    page_delay_ms: int = 1000
    query_delay_ms: int = 1500
    max_qualified: int = 1000  # 0 = unlimited
    max_analyzed: int = 0  # 0 = unlimited
    require_frontend_tests: bool = True
    exclude_noise: bool = True
    readme_check: bool = False
    course_keywords: list = None
    boilerplate_keywords: list = None
    excluded_topics: list = None
    query_windows: int = 0
    concurrency: int = 5
    search_mode: str = "graphql"
    request_timeout: int = 30
    proactive_throttle: bool = True

    def __post_init__(self):
        if self.course_keywords is None:
            self.course_keywords = []
        if self.boilerplate_keywords is None:
            self.boilerplate_keywords = []
        if self.excluded_topics is None:
            self.excluded_topics = list(DEFAULT_EXCLUDED_TOPICS)
        self.batch_size = max(1, min(100, self.batch_size))
        self.concurrency = max(1, self.concurrency)
        if self.search_mode not in (GitHubSearch.MODE_GRAPHQL, GitHubSearch.MODE_REST):
            raise ConfigurationError(
                f"SEARCH_MODE must be 'graphql' or 'rest', got {self.search_mode!r}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MinerConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read (defaults to os.environ)

        Returns:
            MinerConfig; the token may still be missing (see require_token)
        """
        env = os.environ if environ is None else environ

        token = None
        for name in TOKEN_ENV_VARS:
            if env.get(name):
                token = env[name]
                break

        return cls(
            github_token=token,
            output_file=env.get("OUTPUT_FILE") or cls.output_file,
            batch_size=_env_int(env, "BATCH_SIZE", cls.batch_size),
            page_delay_ms=_env_int(env, "SLEEP_BETWEEN_PAGES_MS", cls.page_delay_ms),
            max_qualified=_env_int(env, "MAX_QUALIFIED", cls.max_qualified),
            max_analyzed=_env_int(env, "MAX_ANALYZED", cls.max_analyzed),
            require_frontend_tests=_env_bool(env, "REQUIRE_FRONTEND_TESTS", True),
            exclude_noise=_env_bool(env, "EXCLUDE_COURSE_BOILERPLATE", True),
            readme_check=_env_bool(env, "README_COURSE_CHECK", False),
            course_keywords=_env_list(env, "COURSE_KEYWORDS"),
            boilerplate_keywords=_env_list(env, "BOILERPLATE_KEYWORDS"),
            excluded_topics=_env_list(env, "EXCLUDE_TOPICS"),
            query_windows=_env_int(env, "QUERY_WINDOWS", cls.query_windows),
            concurrency=_env_int(env, "CONCURRENCY", cls.concurrency),
            search_mode=(env.get("SEARCH_MODE") or cls.search_mode).strip().lower(),
            request_timeout=_env_int(env, "REQUEST_TIMEOUT", cls.request_timeout),
            proactive_throttle=_env_bool(env, "PROACTIVE_THROTTLE", True),
        )

    def require_token(self) -> str:
        """
        Raises:
            ConfigurationError: No token in any recognized variable
        """
        if not self.github_token:
            raise ConfigurationError(
                "GITHUB_TOKEN not found. Export GITHUB_TOKEN (or PAT / GH_TOKEN); "
                "in GitHub Actions use secrets.GITHUB_TOKEN."
            )
        return self.github_token


@dataclass
class MiningStats:
    """Counters for the final summary."""
    analyzed: int = 0
    qualified: int = 0
    rejected: int = 0
    noise: int = 0
    failed: int = 0
    queries_run: int = 0
    stop_reason: Optional[str] = None


@dataclass
class AnalysisOutcome:
    """Everything learned about one candidate."""
    candidate: RepositoryCandidate
    decision: QualificationDecision
    signals: Optional[TechnologySignals] = None
    noise: Optional[NoiseVerdict] = None


class MinerPipeline:
    """
    Main pipeline orchestrator.

    QueryBuilder -> GitHubSearch pages -> (NoiseFilter, TechnologyDetector,
    RepositoryQualifier) per candidate -> CsvOutputStorage

    The processed set and the storage are only touched from the calling
    thread; worker threads run analyze_candidate() only.
    """

    def __init__(
        self,
        config: MinerConfig,
        cancel_token: Optional[CancellationToken] = None,
        client: Optional[GitHubClient] = None,
        storage: Optional[CsvOutputStorage] = None,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        """
        Initialize miner pipeline.

        Args:
            config: MinerConfig with settings
            cancel_token: Stop flag (a fresh one if None)
            client: GitHubClient to use (built from config if None)
            storage: Output sink (built from config if None)
            sleep: Sleep function for delays (defaults to the token's)
        """
        self.config = config
        self.cancel_token = cancel_token or CancellationToken()
        self.sleep = sleep or self.cancel_token.sleep

        if client is None:
            rate_limiter = RateLimiter(proactive=config.proactive_throttle, sleep=self.sleep)
            client = GitHubClient(
                token=config.require_token(),
                rate_limiter=rate_limiter,
                timeout=config.request_timeout,
                cancel_token=self.cancel_token,
            )
        self.client = client

        self.query_builder = QueryBuilder(
            excluded_topics=config.excluded_topics,
            window_count=config.query_windows,
        )
        self.search = GitHubSearch(
            self.client,
            page_delay=config.page_delay_ms / 1000.0,
            cancel_token=self.cancel_token,
            sleep=self.sleep,
        )
        self.detector = TechnologyDetector(self.client)
        self.noise_filter = NoiseFilter(
            extra_course_keywords=config.course_keywords,
            extra_boilerplate_keywords=config.boilerplate_keywords,
            readme_check=config.readme_check,
        )
        self.qualifier = RepositoryQualifier(
            require_frontend_tests=config.require_frontend_tests,
            exclude_noise=config.exclude_noise,
        )
        self.storage = storage or CsvOutputStorage(config.output_file)

        self.processed: Set[str] = set()
        self.stats = MiningStats()

    def should_stop(self) -> bool:
        return self.cancel_token.cancelled or self.stats.stop_reason is not None

    def run(self) -> MiningStats:
        """
        Run every query until exhaustion, a limit, or cancellation.

        Returns:
            MiningStats
        """
        self.storage.ensure_header()
        queries = self.query_builder.build()
        print(f"[INFO] {len(queries)} search queries prepared")

        for query in queries:
            if self.should_stop():
                break
            self.run_query(query)
            if not self.should_stop():
                self.sleep(self.config.query_delay_ms / 1000.0)

        if self.cancel_token.cancelled and self.stats.stop_reason is None:
            self.stats.stop_reason = "cancelled"
        return self.stats

    def run_query(self, query: str) -> None:
        """Paginate one query and analyze each page's new candidates."""
        print(f"\n{'='*80}")
        print(f"Query: {query}")
        print(f"{'='*80}")
        self.stats.queries_run += 1
        qualified_before = self.stats.qualified

        pages = self.search.iter_pages(
            query, mode=self.config.search_mode, page_size=self.config.batch_size
        )
        try:
            for page in pages:
                batch = self.select_batch(page)
                if batch:
                    self.process_batch(batch)
                if self.should_stop():
                    break
        finally:
            pages.close()

        print(
            f"[INFO] Query finished | qualified in this query: "
            f"{self.stats.qualified - qualified_before}"
        )

    def select_batch(self, page: List[RepositoryCandidate]) -> List[RepositoryCandidate]:
        """
        Pick the candidates of a page that still need analysis.

        Marks them processed, so each repository is analyzed once per run.
        """
        batch = []
        for candidate in page:
            if self.should_stop():
                break
            key = candidate.full_name
            if key in self.processed:
                continue
            if self.config.max_analyzed > 0 and len(self.processed) >= self.config.max_analyzed:
                print(f"[INFO] Reached MAX_ANALYZED={self.config.max_analyzed}. Finishing...")
                self.stats.stop_reason = f"MAX_ANALYZED={self.config.max_analyzed}"
                break
            self.processed.add(key)
            batch.append(candidate)
        return batch

    def process_batch(self, batch: List[RepositoryCandidate]) -> None:
        """Analyze a batch concurrently, then record results in dispatch order."""
        for candidate in batch:
            print(f"  [INFO] Analyzing: {candidate.full_name} ({candidate.stars} stars)")

        tasks = [lambda c=candidate: self.analyze_candidate(c) for candidate in batch]
        results = run_bounded(tasks, self.config.concurrency, cancel_token=self.cancel_token)

        for candidate, result in zip(batch, results):
            self.record_result(candidate, result)

    def analyze_candidate(self, candidate: RepositoryCandidate) -> AnalysisOutcome:
        """
        Noise check, detection and decision for one candidate.

        Runs on a worker thread; must not touch shared pipeline state.
        """
        noise = None
        if self.config.exclude_noise:
            noise = self.noise_filter.check(
                candidate.name, candidate.description, candidate.topics
            )
            if noise:
                return AnalysisOutcome(
                    candidate=candidate,
                    decision=self.qualifier.decide(TechnologySignals(), noise),
                    noise=noise,
                )

        signals = self.detector.detect(
            candidate.owner, candidate.name, topics=candidate.topics
        )

        if self.config.exclude_noise and self.config.readme_check:
            noise = self.noise_filter.check_with_readme(
                candidate.name,
                candidate.description,
                signals.topics,
                lambda: self._fetch_readme(candidate),
            )

        decision = self.qualifier.decide(signals, noise)
        return AnalysisOutcome(candidate=candidate, decision=decision, signals=signals, noise=noise)

    def _fetch_readme(self, candidate: RepositoryCandidate) -> Optional[str]:
        try:
            return self.client.get_readme(candidate.owner, candidate.name)
        except requests.RequestException as e:
            print(f"  [WARN] {candidate.full_name}: could not fetch README: {e}")
            return None

    def record_result(self, candidate: RepositoryCandidate, result: TaskResult) -> None:
        """Update counters and append qualifying rows. Calling thread only."""
        key = candidate.full_name

        if result.cancelled or isinstance(result.error, OperationCancelled):
            print(f"  [SKIP] Cancelled before analysis finished: {key}")
            return

        self.stats.analyzed += 1

        if result.error is not None:
            self.stats.failed += 1
            print(f"  [WARN] Failed to analyze {key}: {result.error}")
            return

        outcome: AnalysisOutcome = result.value
        decision = outcome.decision

        if not decision.qualified:
            if decision.is_noise and self.config.exclude_noise:
                self.stats.noise += 1
                print(f"  [FILTERED] {key}: {decision.reason}")
            else:
                self.stats.rejected += 1
                print(f"  [REJECTED] {key}: {decision.reason}")
            return

        if self._qualified_limit_reached():
            print(f"  [SKIP] {key} qualifies but MAX_QUALIFIED was already reached")
            return

        row = OutputRow.from_signals(candidate, outcome.signals)
        if self.storage.append_if_new(key, row):
            self.stats.qualified += 1
            print(f"  [QUALIFIED] {key} | total qualified: {self.stats.qualified}")

        if self._qualified_limit_reached() and self.stats.stop_reason is None:
            print(f"[INFO] Reached MAX_QUALIFIED={self.config.max_qualified}. Finishing...")
            self.stats.stop_reason = f"MAX_QUALIFIED={self.config.max_qualified}"

    def _qualified_limit_reached(self) -> bool:
        return 0 < self.config.max_qualified <= self.stats.qualified

    def print_summary(self) -> None:
        """Print the run summary; safe to call after an early stop."""
        print()
        print("=" * 80)
        print("Summary")
        print("=" * 80)
        print(f"  Unique repositories analyzed: {self.stats.analyzed}")
        print(f"  Qualified (after filters): {self.stats.qualified}")
        print(f"  Rejected: {self.stats.rejected}")
        print(f"  Course/boilerplate/template: {self.stats.noise}")
        print(f"  Failed: {self.stats.failed}")
        print(f"  Queries run: {self.stats.queries_run}")
        if self.stats.stop_reason:
            print(f"  Stopped early: {self.stats.stop_reason}")
        print(f"  CSV: {self.storage.output_file}")
