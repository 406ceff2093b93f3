"""
Course / tutorial / boilerplate / template detection.

Coarse, case-insensitive keyword matching. False positives ("learning" in a
machine-learning app) and false negatives are expected.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence


COURSE_KEYWORDS_DEFAULT = [
    "curso",
    "course",
    "udemy",
    "alura",
    "rocketseat",
    "bootcamp",
    "treinamento",
    "tutorial",
    "aula",
    "aulas",
    "exercicio",
    "exercício",
    "exercicios",
    "exercícios",
    "learn",
    "learning",
    "education",
    "formacao",
    "formação",
    "nanodegree",
    "codecademy",
    "freecodecamp",
]

BOILERPLATE_KEYWORDS_DEFAULT = [
    "boilerplate",
    "starter",
    "starter-kit",
    "seed",
    "scaffold",
    "skeleton",
    "quickstart",
    "template",
    "templates",
]

README_CHECK_CHARS = 4000


def text_includes_any(haystack: Optional[str], keywords: Iterable[str]) -> Optional[str]:
    """First keyword found in `haystack` (case-insensitive), else None."""
    lowered = (haystack or "").lower()
    for keyword in keywords:
        if keyword in lowered:
            return keyword
    return None


@dataclass(frozen=True)
class NoiseVerdict:
    """Result of a noise check."""
    is_noise: bool
    category: Optional[str] = None  # "course" or "boilerplate"
    keyword: Optional[str] = None
    source: Optional[str] = None  # "name", "description", "topics", "readme"

    def __bool__(self) -> bool:
        return self.is_noise

    def describe(self) -> str:
        if not self.is_noise:
            return "not noise"
        return f"{self.category} keyword '{self.keyword}' in {self.source}"


class NoiseFilter:
    """
    Classifies repositories as course/tutorial or boilerplate/template material.
    """

    def __init__(
        self,
        extra_course_keywords: Sequence[str] = (),
        extra_boilerplate_keywords: Sequence[str] = (),
        readme_check: bool = False,
        readme_chars: int = README_CHECK_CHARS,
    ):
        """
        Initialize noise filter.

        Args:
            extra_course_keywords: Added to the default course keywords
            extra_boilerplate_keywords: Added to the default boilerplate keywords
            readme_check: Also scan the README when metadata has no match
            readme_chars: How much of the README to scan
        """
        self.course_keywords = self._merge(COURSE_KEYWORDS_DEFAULT, extra_course_keywords)
        self.boilerplate_keywords = self._merge(
            BOILERPLATE_KEYWORDS_DEFAULT, extra_boilerplate_keywords
        )
        self.readme_check = readme_check
        self.readme_chars = readme_chars

    @staticmethod
    def _merge(defaults: List[str], extra: Iterable[str]) -> List[str]:
        merged = list(defaults)
        for keyword in extra:
            keyword = keyword.strip().lower()
            if keyword and keyword not in merged:
                merged.append(keyword)
        return merged

    def _match(self, text: Optional[str], source: str) -> NoiseVerdict:
        keyword = text_includes_any(text, self.course_keywords)
        if keyword:
            return NoiseVerdict(True, "course", keyword, source)
        keyword = text_includes_any(text, self.boilerplate_keywords)
        if keyword:
            return NoiseVerdict(True, "boilerplate", keyword, source)
        return NoiseVerdict(False)

    def check(
        self, name: str, description: Optional[str], topics: Iterable[str]
    ) -> NoiseVerdict:
        """Match name, description and the joined topic string."""
        fields = [
            ("name", name),
            ("description", description),
            ("topics", " ".join(topic.lower() for topic in topics or [])),
        ]
        for source, text in fields:
            verdict = self._match(text, source)
            if verdict:
                return verdict
        return NoiseVerdict(False)

    def classify(
        self, name: str, description: Optional[str], topics: Iterable[str]
    ) -> bool:
        """
        True if the repository looks like course or boilerplate material.

        Args:
            name: Repository name
            description: Repository description (may be None)
            topics: Topic tags
        """
        return self.check(name, description, topics).is_noise

    def check_with_readme(
        self,
        name: str,
        description: Optional[str],
        topics: Iterable[str],
        fetch_readme: Callable[[], Optional[str]],
    ) -> NoiseVerdict:
        """
        check(), then the start of the README if enabled and still clean.

        Args:
            fetch_readme: Returns README text; only called when needed
        """
        verdict = self.check(name, description, topics)
        if verdict or not self.readme_check:
            return verdict

        readme = fetch_readme() or ""
        return self._match(readme[: self.readme_chars], "readme")
