"""
Search query construction.

GitHub search returns at most 1000 matches per query, so the builder widens
recall with several phrasings and can split each phrasing into calendar
quarters, each of which stays under the cap on its own.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple


DEFAULT_EXCLUDED_TOPICS = [
    "boilerplate",
    "starter",
    "seed",
    "tutorial",
    "course",
    "template",
    "templates",
]

DEFAULT_EXCLUDED_KEYWORDS = [
    "boilerplate",
    "starter",
    "seed",
    "tutorial",
    "course",
    "bootcamp",
    "template",
    "templates",
]


def quarter_start(day: date) -> date:
    """First day of the calendar quarter containing `day`."""
    month = 3 * ((day.month - 1) // 3) + 1
    return date(day.year, month, 1)


def quarter_windows(count: int, today: Optional[date] = None) -> List[Tuple[date, date]]:
    """
    Successive calendar quarters reaching back from today, newest first.

    The current quarter ends at `today`; earlier ones end on their last day.

    Args:
        count: Number of windows
        today: Reference date (defaults to date.today())

    Returns:
        List of (start, end) date pairs
    """
    today = today or date.today()
    windows = []
    end = today
    start = quarter_start(today)
    for _ in range(count):
        windows.append((start, end))
        end = start - timedelta(days=1)
        start = quarter_start(end)
    return windows


class QueryBuilder:
    """
    Builds the ordered list of search queries.

    Every query is restricted to non-fork, non-archived repositories, sorted
    by stars, and carries the configured noise exclusions.
    """

    def __init__(
        self,
        language: str = "TypeScript",
        framework: str = "react",
        test_runner: str = "jest",
        excluded_topics: Optional[Iterable[str]] = None,
        excluded_keywords: Optional[Iterable[str]] = None,
        window_count: int = 0,
        today: Optional[date] = None,
    ):
        """
        Initialize query builder.

        Args:
            language: Value for the language: qualifier
            framework: UI framework keyword / topic
            test_runner: Test framework keyword
            excluded_topics: Topics appended as -topic:<t>
            excluded_keywords: Keywords appended as -<k>
            window_count: Number of quarterly `created:` windows (0 = none)
            today: Reference date for the windows
        """
        self.language = language
        self.framework = framework
        self.test_runner = test_runner
        self.excluded_topics = list(
            DEFAULT_EXCLUDED_TOPICS if excluded_topics is None else excluded_topics
        )
        self.excluded_keywords = list(
            DEFAULT_EXCLUDED_KEYWORDS if excluded_keywords is None else excluded_keywords
        )
        self.window_count = max(0, window_count)
        self.today = today

    def base_fragments(self) -> List[str]:
        """Phrasings of the technology profile, most specific first."""
        lang = f"language:{self.language}"
        fw, runner = self.framework, self.test_runner
        return [
            f"{lang} {fw} {runner}",
            f'{lang} "{fw}" "{runner}" in:name,description,readme',
            f"{lang} topic:{fw} {runner}",
            f"{lang} {fw} in:name,description,readme",
            f"{lang} {runner} in:name,description,readme",
        ]

    def exclusion_terms(self) -> List[str]:
        terms = [f"-topic:{topic}" for topic in self.excluded_topics]
        terms.extend(f"-{keyword}" for keyword in self.excluded_keywords)
        return terms

    def build(self) -> List[str]:
        """
        Build every query, fragment-major, windows newest first.

        Returns:
            Ordered, de-duplicated list of query strings
        """
        suffix = ["fork:false", "archived:false", "sort:stars-desc"]
        suffix.extend(self.exclusion_terms())

        windows = quarter_windows(self.window_count, self.today) if self.window_count else []

        queries = []
        for fragment in self.base_fragments():
            if not windows:
                queries.append(" ".join([fragment] + suffix))
                continue
            for start, end in windows:
                created = f"created:{start.isoformat()}..{end.isoformat()}"
                queries.append(" ".join([fragment, created] + suffix))

        # dict preserves insertion order
        return list(dict.fromkeys(queries))
