import pytest

import mine_repositories
from github_miner.cancellation import CancellationToken
from github_miner.pipeline import ConfigurationError, MinerConfig, MinerPipeline
from github_miner.storage import CsvOutputStorage
from tests.fakes import package_json


REACT_JEST_RTL = package_json(
    dependencies={"react": "^18.0.0"},
    devDependencies={"jest": "^29.0.0", "@testing-library/react": "^14.0.0"},
)
REACT_JEST_TS = package_json(
    dependencies={"react": "^18.0.0"},
    devDependencies={"jest": "^29.0.0", "typescript": "^5.0.0"},
)
RTL_TEST = (
    "import { render } from '@testing-library/react';\n"
    "test('renders', () => { render(<App />); expect(document.body).toBeTruthy(); });\n"
)


def make_pipeline(github, tmp_path, cancel_token=None, **overrides):
    settings = dict(
        github_token="token",
        output_file=str(tmp_path / "repos.csv"),
        page_delay_ms=0,
        query_delay_ms=0,
        concurrency=2,
    )
    settings.update(overrides)
    config = MinerConfig(**settings)
    return MinerPipeline(
        config,
        cancel_token=cancel_token,
        client=github,
        storage=CsvOutputStorage(config.output_file),
        sleep=lambda seconds: None,
    )


def seed_mixed(github):
    github.add_repo(
        "acme/dashboard",
        languages={"TypeScript": 9000},
        files={"package.json": REACT_JEST_RTL},
        stars=500,
    )
    github.add_repo(
        "edu/react-bootcamp-2023",
        languages={"TypeScript": 9000},
        files={"package.json": REACT_JEST_RTL},
        stars=400,
    )
    github.add_repo(
        "acme/legacy-js",
        languages={"JavaScript": 9000},
        files={"package.json": REACT_JEST_RTL},
        stars=300,
    )
    github.add_repo(
        "acme/scanned",
        languages={"TypeScript": 100},
        files={"package.json": REACT_JEST_TS, "src/App.test.tsx": RTL_TEST},
        stars=200,
    )


def written_names(pipeline):
    return [row[0] for row in pipeline.storage.read_rows()]


def test_end_to_end_filters_and_writes_qualifying_rows(github, tmp_path):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path)

    stats = pipeline.run()

    assert written_names(pipeline) == ["acme/dashboard", "acme/scanned"]
    assert stats.analyzed == 4
    assert stats.qualified == 2
    assert stats.noise == 1
    assert stats.rejected == 1
    assert stats.queries_run == 5


def test_each_repository_analyzed_once_across_queries(github, tmp_path):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path)

    pipeline.run()

    languages_calls = [call[1] for call in github.calls_for("get_languages")]
    assert sorted(languages_calls) == ["acme/dashboard", "acme/legacy-js", "acme/scanned"]
    assert len(github.calls_for("graphql")) == 5


def test_noise_is_skipped_before_detection(github, tmp_path):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path)

    pipeline.run()

    touched = {call[1] for call in github.calls if call[0] != "graphql"}
    assert "edu/react-bootcamp-2023" not in touched


def test_noise_kept_when_exclusion_disabled(github, tmp_path):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path, exclude_noise=False)

    pipeline.run()

    assert "edu/react-bootcamp-2023" in written_names(pipeline)


def test_readme_check_filters_course_material(github, tmp_path):
    github.add_repo(
        "acme/portal",
        languages={"TypeScript": 10},
        files={"package.json": REACT_JEST_RTL},
        readme="# Portal\nProjeto final do curso da Alura.",
    )
    pipeline = make_pipeline(github, tmp_path, readme_check=True)

    stats = pipeline.run()

    assert written_names(pipeline) == []
    assert stats.noise == 1


def test_max_analyzed_stops_the_run(github, tmp_path):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path, max_analyzed=2, exclude_noise=False)

    stats = pipeline.run()

    assert stats.analyzed == 2
    assert stats.stop_reason == "MAX_ANALYZED=2"
    assert len(github.calls_for("graphql")) == 1


def test_max_qualified_stops_the_run(github, tmp_path):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path, max_qualified=1)

    stats = pipeline.run()

    assert written_names(pipeline) == ["acme/dashboard"]
    assert stats.qualified == 1
    assert stats.stop_reason == "MAX_QUALIFIED=1"


def test_analysis_failure_skips_only_that_repository(github, tmp_path, monkeypatch):
    seed_mixed(github)
    pipeline = make_pipeline(github, tmp_path)
    original = pipeline.detector.detect

    def flaky(owner, name, topics=None):
        if name == "dashboard":
            raise RuntimeError("boom")
        return original(owner, name, topics=topics)

    monkeypatch.setattr(pipeline.detector, "detect", flaky)

    stats = pipeline.run()

    assert stats.failed == 1
    assert written_names(pipeline) == ["acme/scanned"]


def test_cancelled_run_does_no_work_but_keeps_header(github, tmp_path, capsys):
    seed_mixed(github)
    token = CancellationToken()
    token.cancel()
    pipeline = make_pipeline(github, tmp_path, cancel_token=token)

    stats = pipeline.run()
    pipeline.print_summary()

    assert stats.analyzed == 0
    assert stats.stop_reason == "cancelled"
    assert github.calls == []
    assert (tmp_path / "repos.csv").exists()
    assert "Unique repositories analyzed: 0" in capsys.readouterr().out


def test_rest_mode_uses_offset_search(tmp_path):
    class RestGitHub:
        def __init__(self):
            self.pages = []

        def search_repositories_page(self, query, page, per_page):
            self.pages.append(page)
            return {"total_count": 0, "items": []}

    client = RestGitHub()
    pipeline = make_pipeline(client, tmp_path, search_mode="rest")

    stats = pipeline.run()

    assert client.pages == [1] * 5
    assert stats.analyzed == 0


def test_config_from_env():
    config = MinerConfig.from_env({
        "PAT": "pat-token",
        "GH_TOKEN": "gh-token",
        "BATCH_SIZE": "500",
        "MAX_QUALIFIED": "10",
        "MAX_ANALYZED": "20",
        "REQUIRE_FRONTEND_TESTS": "false",
        "EXCLUDE_COURSE_BOILERPLATE": "TRUE",
        "README_COURSE_CHECK": "true",
        "COURSE_KEYWORDS": "Workshop, , dojo",
        "EXCLUDE_TOPICS": "demo,example",
        "QUERY_WINDOWS": "4",
        "CONCURRENCY": "0",
        "SEARCH_MODE": "REST",
    })

    assert config.github_token == "pat-token"
    assert config.batch_size == 100
    assert config.max_qualified == 10
    assert config.max_analyzed == 20
    assert config.require_frontend_tests is False
    assert config.exclude_noise is True
    assert config.readme_check is True
    assert config.course_keywords == ["workshop", "dojo"]
    assert config.boilerplate_keywords == []
    assert config.excluded_topics == ["demo", "example"]
    assert config.query_windows == 4
    assert config.concurrency == 1
    assert config.search_mode == "rest"


def test_config_defaults():
    config = MinerConfig.from_env({"GITHUB_TOKEN": "t"})

    assert config.batch_size == 50
    assert config.page_delay_ms == 1000
    assert config.max_qualified == 1000
    assert config.max_analyzed == 0
    assert config.require_frontend_tests is True
    assert config.readme_check is False
    assert config.concurrency == 5
    assert "boilerplate" in config.excluded_topics


def test_invalid_numbers_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        MinerConfig.from_env({"GITHUB_TOKEN": "t", "MAX_QUALIFIED": "lots"})


def test_missing_token_is_fatal():
    with pytest.raises(ConfigurationError):
        MinerConfig.from_env({}).require_token()


def test_main_exits_nonzero_without_token(monkeypatch, capsys):
    for name in ("GITHUB_TOKEN", "PAT", "GH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(mine_repositories, "load_dotenv", lambda: None)

    assert mine_repositories.main() == 1
    assert "GITHUB_TOKEN not found" in capsys.readouterr().err
