from github_miner.noise_filter import NoiseFilter, text_includes_any


def test_bootcamp_repository_is_noise():
    noise_filter = NoiseFilter()

    assert noise_filter.classify("react-bootcamp-2023", None, [])


def test_plain_product_repository_is_not_noise():
    noise_filter = NoiseFilter()

    assert not noise_filter.classify("acme-dashboard", None, [])


def test_matches_description_and_topics_case_insensitively():
    noise_filter = NoiseFilter()

    verdict = noise_filter.check("ui-kit", "A React STARTER for admins", [])
    assert verdict.is_noise
    assert verdict.category == "boilerplate"
    assert verdict.source == "description"

    verdict = noise_filter.check("ui-kit", "Component library", ["react", "Udemy"])
    assert verdict.category == "course"
    assert verdict.source == "topics"


def test_extra_keywords_extend_defaults():
    noise_filter = NoiseFilter(extra_course_keywords=[" Workshop "], extra_boilerplate_keywords=["kit"])

    assert noise_filter.classify("react-workshop", None, [])
    assert noise_filter.classify("ui-kit", None, [])
    assert noise_filter.classify("my-tutorial", None, [])


def test_readme_not_fetched_when_disabled():
    noise_filter = NoiseFilter(readme_check=False)
    fetched = []

    verdict = noise_filter.check_with_readme(
        "acme-dashboard", None, [], lambda: fetched.append(1) or "course material"
    )

    assert not verdict
    assert fetched == []


def test_readme_checked_only_when_metadata_is_clean():
    noise_filter = NoiseFilter(readme_check=True)
    fetched = []

    def fetch():
        fetched.append(1)
        return "# Acme\nBuilt during the Rocketseat program."

    assert noise_filter.check_with_readme("acme-dashboard", None, [], fetch).source == "readme"
    assert noise_filter.check_with_readme("react-boilerplate", None, [], fetch).source == "name"
    assert fetched == [1]


def test_readme_check_is_limited_to_leading_characters():
    noise_filter = NoiseFilter(readme_check=True, readme_chars=20)
    readme = "Production app. " + "x" * 100 + " tutorial"

    assert not noise_filter.check_with_readme("acme", None, [], lambda: readme)


def test_text_includes_any_handles_none():
    assert text_includes_any(None, ["seed"]) is None
    assert text_includes_any("Seeded data", ["seed"]) == "seed"
