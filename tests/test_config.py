"""Tests for configuration loading and the trusted list editor."""

import json

import pytest

from cpts.config import CptsConfig, load_config, update_trusted_packages
from cpts.errors import CptsError


def write_composer(tmp_path, data) -> None:
    (tmp_path / "composer.json").write_text(json.dumps(data) if not isinstance(data, str) else data)


def read_composer(tmp_path) -> dict:
    return json.loads((tmp_path / "composer.json").read_text())


def test_defaults_without_composer_json(tmp_path):
    config = load_config(tmp_path)

    assert config == CptsConfig()
    assert config.min_cpts == 20
    assert config.trusted_packages == []
    assert config.concurrency == 4
    assert config.github_token is None
    assert not config.disabled


def test_reads_extra_cpts(tmp_path):
    write_composer(
        tmp_path,
        {
            "name": "acme/app",
            "extra": {
                "cpts": {
                    "min_cpts": 45,
                    "trusted_packages": ["acme/*"],
                    "weights": {"stars": 0, "activity": 6.5},
                    "concurrency": 8,
                    "unknown_key": True,
                }
            },
        },
    )

    config = load_config(tmp_path)

    assert config.min_cpts == 45
    assert config.trusted_packages == ["acme/*"]
    assert config.weights == {"stars": 0, "activity": 6.5}
    assert config.concurrency == 8


@pytest.mark.parametrize("extra", [[], {}, {"other": 1}, {"cpts": []}, {"cpts": None}])
def test_empty_or_missing_section_uses_defaults(tmp_path, extra):
    write_composer(tmp_path, {"name": "acme/app", "extra": extra})

    assert load_config(tmp_path).min_cpts == 20


def test_non_object_section_is_rejected(tmp_path):
    write_composer(tmp_path, {"extra": {"cpts": "strict"}})

    with pytest.raises(CptsError, match="extra.cpts"):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "settings",
    [
        {"min_cpts": -1},
        {"min_cpts": "high"},
        {"weights": {"stars": -2}},
        {"concurrency": 0},
        {"trusted_packages": "acme/*"},
    ],
)
def test_invalid_values_are_rejected(tmp_path, settings):
    write_composer(tmp_path, {"extra": {"cpts": settings}})

    with pytest.raises(CptsError, match="Invalid cpts configuration"):
        load_config(tmp_path)


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_malformed_composer_json(tmp_path, content):
    write_composer(tmp_path, content)

    with pytest.raises(CptsError):
        load_config(tmp_path)


def test_environment_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    monkeypatch.setenv("CPTS_DISABLE", "1")

    config = load_config(tmp_path)

    assert config.github_token == "ghp_test"
    assert config.disabled


@pytest.mark.parametrize("value, disabled", [("0", False), ("", False), ("true", True), ("yes", True)])
def test_disable_flag_values(tmp_path, monkeypatch, value, disabled):
    monkeypatch.setenv("CPTS_DISABLE", value)

    assert load_config(tmp_path).disabled is disabled


def test_dotenv_file_is_loaded(tmp_path):
    (tmp_path / ".env").write_text("GITHUB_TOKEN=from_dotenv\n")

    assert load_config(tmp_path).github_token == "from_dotenv"


def test_exported_variable_beats_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("GITHUB_TOKEN=from_dotenv\n")
    monkeypatch.setenv("GITHUB_TOKEN", "exported")

    assert load_config(tmp_path).github_token == "exported"


# --- Trusted list editing ---


def test_add_trusted_packages_creates_section(tmp_path):
    write_composer(tmp_path, {"name": "acme/app", "require": {"php": ">=8.1"}, "extra": []})

    outcomes = update_trusted_packages(tmp_path, ["acme/*", "psr/log"])

    assert outcomes == [("acme/*", "Added"), ("psr/log", "Added")]
    data = read_composer(tmp_path)
    assert data["extra"]["cpts"]["trusted_packages"] == ["acme/*", "psr/log"]
    assert data["require"] == {"php": ">=8.1"}
    assert (tmp_path / "composer.json").read_text().endswith("}\n")


def test_add_existing_pattern_is_reported(tmp_path):
    write_composer(tmp_path, {"extra": {"cpts": {"min_cpts": 30, "trusted_packages": ["acme/*"]}}})

    outcomes = update_trusted_packages(tmp_path, ["acme/*", "psr/log"])

    assert outcomes == [("acme/*", "Already trusted"), ("psr/log", "Added")]
    settings = read_composer(tmp_path)["extra"]["cpts"]
    assert settings == {"min_cpts": 30, "trusted_packages": ["acme/*", "psr/log"]}


def test_remove_trusted_packages(tmp_path):
    write_composer(tmp_path, {"extra": {"cpts": {"trusted_packages": ["acme/*", "psr/log"]}}})

    outcomes = update_trusted_packages(tmp_path, ["psr/log", "nope/nope"], remove=True)

    assert outcomes == [("psr/log", "Removed"), ("nope/nope", "Not found")]
    assert read_composer(tmp_path)["extra"]["cpts"]["trusted_packages"] == ["acme/*"]


def test_trusted_list_round_trips_through_config(tmp_path):
    write_composer(tmp_path, {"name": "acme/app"})

    update_trusted_packages(tmp_path, ["vendor/*"])

    assert load_config(tmp_path).trusted_packages == ["vendor/*"]


def test_update_requires_composer_json(tmp_path):
    with pytest.raises(CptsError, match="composer.json not found"):
        update_trusted_packages(tmp_path, ["acme/*"])


@pytest.mark.parametrize("trusted", ["acme/*", {"acme/*": True}, ["acme/*", 3]])
def test_update_rejects_malformed_trusted_list(tmp_path, trusted):
    write_composer(tmp_path, {"extra": {"cpts": {"trusted_packages": trusted}}})
    before = (tmp_path / "composer.json").read_text()

    with pytest.raises(CptsError, match="Invalid cpts configuration"):
        update_trusted_packages(tmp_path, ["psr/log"])

    assert (tmp_path / "composer.json").read_text() == before
