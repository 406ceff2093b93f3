"""
package.json analysis.

Pure functions over a parsed manifest: no network, no side effects.
"""

import json
from typing import Any, Dict, Iterable, List, Optional


FRAMEWORK_PACKAGES = ["react", "react-dom"]
LANGUAGE_PACKAGES = ["typescript"]
TEST_RUNNER_PACKAGES = ["jest", "@jest/globals", "ts-jest", "babel-jest"]
TEST_RUNNER_SCRIPT_TERMS = ["jest"]

# Framework-specific rendering/testing libraries (stricter than a bare runner)
FRONTEND_TEST_PACKAGES = [
    "@testing-library/react",
    "@testing-library/jest-dom",
    "@testing-library/user-event",
    "enzyme",
    "react-test-renderer",
]

TEST_UTILITY_PACKAGES = TEST_RUNNER_PACKAGES + FRONTEND_TEST_PACKAGES

DEPENDENCY_SECTIONS = ["dependencies", "devDependencies"]


class ManifestError(ValueError):
    """package.json could not be parsed into an object."""


def parse_manifest(text: str) -> Dict[str, Any]:
    """
    Parse package.json text.

    Raises:
        ManifestError: Not JSON, or not a JSON object
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ManifestError(f"Invalid package.json: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError("package.json is not a JSON object")
    return data


def has_dependency(manifest: Dict[str, Any], name: str) -> bool:
    """True if `name` is a direct or development dependency."""
    for section in DEPENDENCY_SECTIONS:
        deps = manifest.get(section)
        if isinstance(deps, dict) and deps.get(name):
            return True
    return False


def has_any_dependency(manifest: Dict[str, Any], names: Iterable[str]) -> bool:
    return any(has_dependency(manifest, name) for name in names)


def found_dependencies(manifest: Dict[str, Any], names: Iterable[str]) -> List[str]:
    """Subset of `names` present in the manifest, in `names` order."""
    return [name for name in names if has_dependency(manifest, name)]


def scripts_contain(manifest: Dict[str, Any], terms: Iterable[str]) -> bool:
    """True if any npm script mentions any term (case-insensitive)."""
    scripts = manifest.get("scripts")
    if not isinstance(scripts, dict):
        return False
    values = [value.lower() for value in scripts.values() if isinstance(value, str)]
    return any(term in value for term in terms for value in values)


def matching_script(manifest: Dict[str, Any], terms: Iterable[str]) -> Optional[str]:
    """Name of the first script mentioning a term, for evidence output."""
    scripts = manifest.get("scripts")
    if not isinstance(scripts, dict):
        return None
    for name, value in scripts.items():
        if isinstance(value, str) and any(term in value.lower() for term in terms):
            return name
    return None
