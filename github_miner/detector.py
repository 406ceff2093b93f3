"""
Technology detector.

Decides whether a repository uses TypeScript, React and Jest (plus a
React-specific test library) from layered evidence, fetched lazily:

1. Declared languages
2. package.json dependencies and scripts
3. Topics
4. Root config files (tsconfig / jest.config)
5. Test file scan (only when a runner is found but no rendering library)

Each signal has an ordered list of probes. A probe answers True, False or
None (could not tell); the first True wins and nothing later can undo it.
"""

import re
import requests
from collections import deque
from typing import Any, Callable, Dict, List, Optional, Sequence

from models import TechnologySignals
from github_miner.client import GitHubClient
from github_miner.cancellation import OperationCancelled
from github_miner import manifest as pkg


LANGUAGE_NAME = "TypeScript"
FRAMEWORK_TOPIC = "react"

TSCONFIG_FILES = ["tsconfig.json", "tsconfig.base.json"]
JEST_CONFIG_FILES = [
    "jest.config.js",
    "jest.config.cjs",
    "jest.config.mjs",
    "jest.config.ts",
    "jest.config.json",
]

SCAN_ROOTS = ["src", "test", "tests", "__tests__", "app", "components"]
SCAN_MAX_DEPTH = 3
SCAN_MAX_FILES = 30
TEST_FILE_PATTERN = re.compile(r"\.(test|spec)\.(ts|tsx|js|jsx)$")

RTL_IMPORT_PATTERN = re.compile(r"""from\s+['"]@testing-library/react['"]|require\(\s*['"]@testing-library/react['"]\s*\)""")
RTL_COMPANION_MARKERS = ["@testing-library/jest-dom", "expect("]
ENZYME_MARKERS = ["enzyme", "shallow(", "mount("]

Probe = Callable[["RepositoryEvidence"], Optional[bool]]


class RepositoryEvidence:
    """
    Lazily fetched evidence for one repository.

    Every fetch happens at most once; a failed fetch is remembered as absent
    so later probes don't retry it.
    """

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repo: str,
        topics: Optional[Sequence[str]] = None,
    ):
        self.client = client
        self.owner = owner
        self.repo = repo
        self._topics = list(topics) if topics is not None else None
        self._cache: Dict[str, Any] = {}
        self.signals = TechnologySignals()

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _fetch(self, key: str, loader: Callable[[], Any], default: Any) -> Any:
        if key not in self._cache:
            try:
                self._cache[key] = loader()
            except OperationCancelled:
                raise
            except (requests.RequestException, ValueError) as e:
                print(f"  [WARN] {self.full_name}: could not fetch {key}: {e}")
                self._cache[key] = default
        return self._cache[key]

    def languages(self) -> Dict[str, int]:
        return self._fetch(
            "languages", lambda: self.client.get_languages(self.owner, self.repo), {}
        )

    def topics(self) -> List[str]:
        if self._topics is not None:
            return self._topics
        return self._fetch(
            "topics", lambda: self.client.get_topics(self.owner, self.repo), []
        )

    def manifest(self) -> Optional[Dict[str, Any]]:
        """Parsed package.json, or None if missing or malformed."""
        if "manifest" in self._cache:
            return self._cache["manifest"]

        text = self._fetch(
            "package.json",
            lambda: self.client.get_file_content(self.owner, self.repo, "package.json"),
            None,
        )
        parsed = None
        if text:
            try:
                parsed = pkg.parse_manifest(text)
            except pkg.ManifestError as e:
                print(f"  [WARN] {self.full_name}: {e}")
        self._cache["manifest"] = parsed
        return parsed

    def file_exists(self, path: str) -> bool:
        return self._fetch(
            f"exists:{path}",
            lambda: self.client.file_exists(self.owner, self.repo, path),
            False,
        )

    def list_directory(self, path: str) -> List[Dict[str, Any]]:
        return self._fetch(
            f"dir:{path}",
            lambda: self.client.list_directory(self.owner, self.repo, path),
            [],
        )

    def file_content(self, path: str) -> Optional[str]:
        return self._fetch(
            f"file:{path}",
            lambda: self.client.get_file_content(self.owner, self.repo, path),
            None,
        )


# Language probes

def probe_declared_language(ev: RepositoryEvidence) -> Optional[bool]:
    languages = ev.languages()
    if not languages:
        return None
    size = languages.get(LANGUAGE_NAME)
    if isinstance(size, int) and size > 0:
        ev.signals.evidence.append(f"languages: {LANGUAGE_NAME}={size} bytes")
        return True
    return False


def probe_manifest_language(ev: RepositoryEvidence) -> Optional[bool]:
    manifest = ev.manifest()
    if manifest is None:
        return None
    if pkg.has_any_dependency(manifest, pkg.LANGUAGE_PACKAGES):
        ev.signals.evidence.append("package.json: typescript dependency")
        return True
    return False


def probe_tsconfig(ev: RepositoryEvidence) -> Optional[bool]:
    for name in TSCONFIG_FILES:
        if ev.file_exists(name):
            ev.signals.evidence.append(f"config file: {name}")
            return True
    return False


# Framework probes

def probe_manifest_framework(ev: RepositoryEvidence) -> Optional[bool]:
    manifest = ev.manifest()
    if manifest is None:
        return None
    found = pkg.found_dependencies(manifest, pkg.FRAMEWORK_PACKAGES)
    if found:
        ev.signals.framework_dependency = True
        ev.signals.evidence.append(f"package.json: {', '.join(found)}")
        return True
    return False


def probe_framework_topic(ev: RepositoryEvidence) -> Optional[bool]:
    topics = [topic.lower() for topic in ev.topics()]
    if FRAMEWORK_TOPIC in topics:
        ev.signals.evidence.append(f"topic: {FRAMEWORK_TOPIC}")
        return True
    return False


# Test runner probes

def probe_manifest_test_runner(ev: RepositoryEvidence) -> Optional[bool]:
    manifest = ev.manifest()
    if manifest is None:
        return None
    runners = pkg.found_dependencies(manifest, pkg.TEST_RUNNER_PACKAGES)
    script = pkg.matching_script(manifest, pkg.TEST_RUNNER_SCRIPT_TERMS)
    if runners:
        ev.signals.evidence.append(f"package.json: {', '.join(runners)}")
    if script:
        ev.signals.evidence.append(f"package.json script '{script}' runs jest")
    if runners or script:
        ev.signals.add_library("jest")
        return True
    return False


def probe_jest_config(ev: RepositoryEvidence) -> Optional[bool]:
    for name in JEST_CONFIG_FILES:
        if ev.file_exists(name):
            ev.signals.evidence.append(f"config file: {name}")
            ev.signals.add_library("jest")
            return True
    return False


# Frontend test library probes

def probe_manifest_frontend_libraries(ev: RepositoryEvidence) -> Optional[bool]:
    manifest = ev.manifest()
    if manifest is None:
        return None
    found = pkg.found_dependencies(manifest, pkg.FRONTEND_TEST_PACKAGES)
    for name in found:
        ev.signals.add_library(name)
    if found:
        ev.signals.evidence.append(f"package.json: {', '.join(found)}")
        return True
    return False


def frontend_library_in_test_file(text: str) -> Optional[str]:
    """
    Check one test file for React rendering-library usage.

    Returns:
        "@testing-library/react" or "enzyme" when detected, else None
    """
    if RTL_IMPORT_PATTERN.search(text) and any(m in text for m in RTL_COMPANION_MARKERS):
        return "@testing-library/react"
    lowered = text.lower()
    if any(marker in lowered for marker in ENZYME_MARKERS):
        return "enzyme"
    return None


def probe_source_scan(ev: RepositoryEvidence) -> Optional[bool]:
    """
    Breadth-first walk of conventional source/test directories (depth < 3).

    Only runs when framework and runner are already confirmed.
    """
    signals = ev.signals
    if not (signals.has_framework and signals.has_test_runner):
        return None

    queue = deque((root, 0) for root in SCAN_ROOTS)
    opened = 0

    while queue and opened < SCAN_MAX_FILES:
        path, depth = queue.popleft()
        for entry in ev.list_directory(path):
            entry_type = entry.get("type")
            entry_path = entry.get("path") or ""
            entry_name = entry.get("name") or entry_path.rsplit("/", 1)[-1]

            if entry_type == "dir" and depth + 1 < SCAN_MAX_DEPTH:
                queue.append((entry_path, depth + 1))
            elif entry_type == "file" and TEST_FILE_PATTERN.search(entry_name):
                if opened >= SCAN_MAX_FILES:
                    break
                opened += 1
                text = ev.file_content(entry_path)
                library = frontend_library_in_test_file(text or "")
                if library:
                    signals.add_library(library)
                    signals.evidence.append(f"test file: {entry_path} uses {library}")
                    return True
    return False


LANGUAGE_PROBES: List[Probe] = [
    probe_declared_language,
    probe_manifest_language,
    probe_tsconfig,
]
FRAMEWORK_PROBES: List[Probe] = [probe_manifest_framework, probe_framework_topic]
TEST_RUNNER_PROBES: List[Probe] = [probe_manifest_test_runner, probe_jest_config]
FRONTEND_TEST_PROBES: List[Probe] = [
    probe_manifest_frontend_libraries,
    probe_source_scan,
]


def resolve(probes: Sequence[Probe], ev: RepositoryEvidence) -> bool:
    """First True wins; False and None fall through to the next probe."""
    for probe in probes:
        if probe(ev):
            return True
    return False


class TechnologyDetector:
    """
    Detects the TypeScript / React / Jest stack of a repository.

    Never raises for API failures: a probe that cannot fetch its evidence
    leaves the signal unset and prints a warning.
    """

    def __init__(self, client: GitHubClient):
        """
        Initialize detector.

        Args:
            client: GitHubClient used to fetch evidence
        """
        self.client = client

    def detect(
        self, owner: str, repo: str, topics: Optional[Sequence[str]] = None
    ) -> TechnologySignals:
        """
        Detect technology signals for one repository.

        Args:
            owner: Repository owner login
            repo: Repository name
            topics: Topics already known from search (skips the topics call)

        Returns:
            TechnologySignals
        """
        ev = RepositoryEvidence(self.client, owner, repo, topics=topics)
        signals = ev.signals

        signals.has_language = resolve(LANGUAGE_PROBES, ev)
        signals.has_framework = resolve(FRAMEWORK_PROBES, ev)
        signals.has_test_runner = resolve(TEST_RUNNER_PROBES, ev)
        signals.has_frontend_test_library = resolve(FRONTEND_TEST_PROBES, ev)

        signals.manifest_found = ev.manifest() is not None
        signals.topics = list(ev.topics())
        return signals
