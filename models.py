"""
Data models for the TypeScript/React/Jest repository miner.

Candidates are immutable once produced by the search driver; signals and
decisions are derived from them and never written back.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Any


YES = "Yes"
NO = "No"


def _flag(value: bool) -> str:
    return YES if value else NO


@dataclass(frozen=True)
class RepositoryCandidate:
    """Repository returned by a search query, not yet evaluated."""
    owner: str
    name: str
    stars: int = 0
    description: Optional[str] = None
    topics: Tuple[str, ...] = ()

    @property
    def full_name(self) -> str:
        """Owner/name key, e.g. "facebook/react"."""
        return f"{self.owner}/{self.name}"

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.full_name}"

    @classmethod
    def from_graphql_node(cls, node: Dict[str, Any]) -> "RepositoryCandidate":
        """
        Build a candidate from a GraphQL search node.

        Args:
            node: Repository node with name, owner, stargazerCount, etc.

        Returns:
            RepositoryCandidate
        """
        topic_nodes = (node.get("repositoryTopics") or {}).get("nodes") or []
        topics = tuple(
            item["topic"]["name"]
            for item in topic_nodes
            if item and item.get("topic") and item["topic"].get("name")
        )
        return cls(
            owner=node["owner"]["login"],
            name=node["name"],
            stars=node.get("stargazerCount") or 0,
            description=node.get("description"),
            topics=topics,
        )

    @classmethod
    def from_rest_item(cls, item: Dict[str, Any]) -> "RepositoryCandidate":
        """Build a candidate from a REST /search/repositories item."""
        return cls(
            owner=item["owner"]["login"],
            name=item["name"],
            stars=item.get("stargazers_count") or 0,
            description=item.get("description"),
            topics=tuple(item.get("topics") or ()),
        )


@dataclass
class TechnologySignals:
    """Technology facts derived for one candidate."""
    has_language: bool = False
    has_framework: bool = False
    has_test_runner: bool = False
    has_frontend_test_library: bool = False
    test_libraries: List[str] = field(default_factory=list)
    framework_dependency: bool = False  # framework declared in the manifest
    manifest_found: bool = False
    topics: List[str] = field(default_factory=list)
    evidence: List[str] = field(default_factory=list)

    def add_library(self, library: str) -> None:
        """Record a detected test library once, keeping detection order."""
        if library not in self.test_libraries:
            self.test_libraries.append(library)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for comparison and debugging."""
        return {
            "has_language": self.has_language,
            "has_framework": self.has_framework,
            "has_test_runner": self.has_test_runner,
            "has_frontend_test_library": self.has_frontend_test_library,
            "test_libraries": list(self.test_libraries),
            "framework_dependency": self.framework_dependency,
            "manifest_found": self.manifest_found,
            "topics": list(self.topics),
            "evidence": list(self.evidence),
        }


@dataclass(frozen=True)
class QualificationDecision:
    """Whether a candidate passes every filter."""
    qualified: bool
    reason: Optional[str] = None
    is_noise: bool = False


@dataclass(frozen=True)
class OutputRow:
    """One CSV line for a qualifying repository."""
    full_name: str
    link: str
    stars: int
    has_language: bool
    has_framework: bool
    has_test_runner: bool
    test_libraries: Tuple[str, ...]
    framework_dependency: bool
    has_frontend_test_library: bool

    HEADER = (
        "Repository",
        "Link",
        "Stars",
        "TypeScript",
        "React",
        "Jest",
        "FrontendTestLibs",
        "ReactDependency",
        "TestingLibraryDetected",
    )

    @classmethod
    def from_signals(
        cls, candidate: RepositoryCandidate, signals: TechnologySignals
    ) -> "OutputRow":
        """Create a row from a candidate and its detected signals."""
        return cls(
            full_name=candidate.full_name,
            link=candidate.html_url,
            stars=candidate.stars,
            has_language=signals.has_language,
            has_framework=signals.has_framework,
            has_test_runner=signals.has_test_runner,
            test_libraries=tuple(signals.test_libraries),
            framework_dependency=signals.framework_dependency,
            has_frontend_test_library=signals.has_frontend_test_library,
        )

    def to_csv_row(self) -> List[str]:
        """Serialize to CSV cell values, in HEADER order."""
        return [
            self.full_name,
            self.link,
            str(self.stars),
            _flag(self.has_language),
            _flag(self.has_framework),
            _flag(self.has_test_runner),
            "|".join(self.test_libraries),
            _flag(self.framework_dependency),
            _flag(self.has_frontend_test_library),
        ]
