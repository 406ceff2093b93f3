import requests

from github_miner.detector import (
    TechnologyDetector,
    frontend_library_in_test_file,
)
from tests.fakes import package_json


REACT_JEST_RTL = package_json(
    dependencies={"react": "^18.0.0"},
    devDependencies={"jest": "^29.0.0", "@testing-library/react": "^14.0.0"},
)

REACT_JEST_ONLY = package_json(
    dependencies={"react": "^18.2.0", "react-dom": "^18.2.0"},
    devDependencies={"jest": "^29.0.0", "typescript": "^5.0.0"},
)

RTL_TEST_FILE = """
import { render, screen } from '@testing-library/react';
import { App } from './App';

it('renders title', () => {
  render(<App />);
  expect(screen.getByText('Dashboard')).toBeTruthy();
});
"""


def detect(github, full_name, topics=None):
    owner, name = full_name.split("/")
    return TechnologyDetector(github).detect(owner, name, topics=topics)


def test_manifest_detection(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 5000, "CSS": 100},
        files={"package.json": REACT_JEST_RTL},
    )

    signals = detect(github, "acme/app")

    assert signals.has_language
    assert signals.has_framework
    assert signals.framework_dependency
    assert signals.has_test_runner
    assert signals.has_frontend_test_library
    assert signals.test_libraries == ["jest", "@testing-library/react"]
    assert signals.manifest_found


def test_language_comes_from_language_breakdown(github):
    github.add_repo(
        "acme/js-app",
        languages={"JavaScript": 5000},
        files={"package.json": REACT_JEST_RTL},
    )

    signals = detect(github, "acme/js-app")

    assert not signals.has_language
    assert signals.has_framework


def test_detection_is_idempotent(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 10},
        files={"package.json": REACT_JEST_ONLY, "src/App.test.tsx": RTL_TEST_FILE},
        topics=["react"],
    )

    first = detect(github, "acme/app")
    second = detect(github, "acme/app")

    assert first.to_dict() == second.to_dict()


def test_typescript_dependency_is_language_fallback(github):
    github.add_repo("acme/app", files={"package.json": REACT_JEST_ONLY})

    signals = detect(github, "acme/app")

    assert signals.has_language
    # language and runner both settled by the manifest: no config-file probes
    assert github.calls_for("file_exists") == []


def test_tsconfig_presence_is_language_fallback(github):
    github.add_repo(
        "acme/app",
        files={
            "package.json": package_json(dependencies={"react": "18"}),
            "tsconfig.base.json": "{}",
        },
    )

    signals = detect(github, "acme/app")

    assert signals.has_language
    assert any("tsconfig.base.json" in e for e in signals.evidence)


def test_topic_fallback_for_framework(github):
    github.add_repo("acme/app", languages={"TypeScript": 1}, topics=["React", "ui"])

    signals = detect(github, "acme/app")

    assert signals.has_framework
    assert not signals.framework_dependency


def test_search_topics_skip_topics_request(github):
    github.add_repo("acme/app", languages={"TypeScript": 1}, topics=["vue"])

    signals = detect(github, "acme/app", topics=["react"])

    assert signals.has_framework
    assert github.calls_for("get_topics") == []


def test_jest_script_counts_as_runner(github):
    github.add_repo(
        "acme/app",
        files={"package.json": package_json(scripts={"test": "JEST --coverage"})},
    )

    signals = detect(github, "acme/app")

    assert signals.has_test_runner
    assert "jest" in signals.test_libraries


def test_jest_config_file_fallback(github):
    github.add_repo(
        "acme/app",
        files={
            "package.json": package_json(dependencies={"react": "18"}),
            "jest.config.ts": "export default {}",
        },
    )

    signals = detect(github, "acme/app")

    assert signals.has_test_runner
    assert signals.test_libraries[0] == "jest"


def test_source_scan_finds_testing_library(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 100},
        files={
            "package.json": REACT_JEST_ONLY,
            "src/components/Header.tsx": "export const Header = () => null;",
            "src/components/App.test.tsx": RTL_TEST_FILE,
        },
    )

    signals = detect(github, "acme/app")

    assert signals.has_frontend_test_library
    assert "@testing-library/react" in signals.test_libraries
    assert any("src/components/App.test.tsx" in e for e in signals.evidence)
    opened = [call[2] for call in github.calls_for("get_file_content")]
    assert "src/components/Header.tsx" not in opened


def test_source_scan_finds_enzyme(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 100},
        files={
            "package.json": REACT_JEST_ONLY,
            "__tests__/Button.spec.jsx": "const wrapper = shallow(<Button />);",
        },
    )

    signals = detect(github, "acme/app")

    assert signals.has_frontend_test_library
    assert "enzyme" in signals.test_libraries


def test_source_scan_respects_depth_limit(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 100},
        files={
            "package.json": REACT_JEST_ONLY,
            "src/a/b/c/Deep.test.tsx": RTL_TEST_FILE,
        },
    )

    signals = detect(github, "acme/app")

    assert not signals.has_frontend_test_library
    listed = [call[2] for call in github.calls_for("list_directory")]
    assert "src/a/b" in listed
    assert "src/a/b/c" not in listed


def test_source_scan_skipped_when_manifest_has_library(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 100},
        files={"package.json": REACT_JEST_RTL},
    )

    detect(github, "acme/app")

    assert github.calls_for("list_directory") == []


def test_source_scan_skipped_without_runner(github):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 100},
        files={
            "package.json": package_json(dependencies={"react": "18"}),
            "src/App.test.tsx": RTL_TEST_FILE,
        },
    )

    signals = detect(github, "acme/app")

    assert not signals.has_frontend_test_library
    assert github.calls_for("list_directory") == []


def test_malformed_manifest_is_treated_as_absent(github, capsys):
    github.add_repo(
        "acme/app",
        languages={"TypeScript": 100},
        files={"package.json": "{ not json"},
    )

    signals = detect(github, "acme/app")

    assert signals.has_language
    assert not signals.has_framework
    assert not signals.manifest_found
    assert "[WARN]" in capsys.readouterr().out


def test_api_failures_degrade_to_absent_signals(github, capsys):
    github.add_repo("acme/app", files={"package.json": REACT_JEST_RTL})
    github.fail("get_languages", "acme/app", requests.Timeout("timed out"))
    github.fail("get_file_content", "acme/app", requests.ConnectionError("reset"))

    signals = detect(github, "acme/app")

    assert not signals.has_framework
    assert not signals.has_test_runner
    assert "could not fetch" in capsys.readouterr().out


def test_frontend_library_in_test_file():
    assert frontend_library_in_test_file(RTL_TEST_FILE) == "@testing-library/react"
    assert frontend_library_in_test_file(
        "import '@testing-library/jest-dom';\n"
        "const { render } = require('@testing-library/react');"
    ) == "@testing-library/react"
    assert frontend_library_in_test_file("import { mount } from 'enzyme';") == "enzyme"
    assert frontend_library_in_test_file("it('adds', () => expect(1 + 1).toBe(2));") is None
