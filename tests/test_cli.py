"""Tests for the cpts command line."""

import json
import re
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

from cpts import __version__
from cpts import cli
from cpts.cli import app
from cpts.errors import RateLimitError

from conftest import FakeGitHub, FakeRegistry, make_commit, make_registry_package

runner = CliRunner()


@pytest.fixture
def fakes(monkeypatch):
    github = FakeGitHub(commits=[make_commit(days=d, author=f"dev{d % 3}") for d in range(1, 30, 2)])
    registry = FakeRegistry(
        packages={
            "acme/widgets": make_registry_package(),
            "psr/log": make_registry_package("psr/log", repository="https://github.com/php-fig/log"),
        }
    )
    monkeypatch.setattr(cli, "_build_clients", lambda config: (github, registry))
    return github, registry


def write_project(tmp_path, settings=None, packages=None, dev_packages=None) -> str:
    composer = {"name": "acme/app"}
    if settings is not None:
        composer["extra"] = {"cpts": settings}
    (tmp_path / "composer.json").write_text(json.dumps(composer))
    if packages is not None:
        lock = {
            "packages": [{"name": name} for name in packages],
            "packages-dev": [{"name": name} for name in dev_packages or []],
        }
        (tmp_path / "composer.lock").write_text(json.dumps(lock))
    return str(tmp_path)


# --- score ---


def test_score_json(tmp_path, fakes):
    result = runner.invoke(app, ["score", "acme/widgets", "--format", "json", "-d", write_project(tmp_path)])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["package"] == "acme/widgets"
    assert 0 <= data["score"] <= 100
    assert set(data) >= {"grade", "trust_bonus", "raw_trust_bonus", "calculated_at", "metrics"}
    assert "activity" in data["metrics"]


def test_score_minimal(tmp_path, fakes):
    result = runner.invoke(app, ["score", "acme/widgets", "-f", "minimal", "-d", write_project(tmp_path)])

    assert result.exit_code == 0
    assert re.fullmatch(r"\d+\.\d\n", result.stdout)


def test_score_detailed_passes_threshold(tmp_path, fakes):
    result = runner.invoke(app, ["score", "acme/widgets", "-d", write_project(tmp_path, {"min_cpts": 0})])

    assert result.exit_code == 0
    assert "Metric Breakdown" in result.stdout
    assert "PASS" in result.stdout


def test_score_detailed_below_threshold_exits_1(tmp_path, fakes):
    result = runner.invoke(app, ["score", "acme/widgets", "-d", write_project(tmp_path, {"min_cpts": 100})])

    assert result.exit_code == 1
    assert "FAIL" in result.stdout


def test_score_json_ignores_threshold(tmp_path, fakes):
    result = runner.invoke(
        app, ["score", "acme/widgets", "-f", "json", "-d", write_project(tmp_path, {"min_cpts": 100})]
    )

    assert result.exit_code == 0


def test_score_applies_configured_weights(tmp_path, fakes):
    project = write_project(tmp_path, {"weights": {"stars": 0}})

    result = runner.invoke(app, ["score", "acme/widgets", "-f", "json", "-d", project])

    assert json.loads(result.stdout)["metrics"]["stars"]["weight"] == 0


def test_score_rate_limited(tmp_path, fakes):
    github, _ = fakes
    github.failures["get_repository"] = RateLimitError(0, datetime.now(timezone.utc) + timedelta(minutes=20))

    result = runner.invoke(app, ["score", "acme/widgets", "-d", write_project(tmp_path)])

    assert result.exit_code == 1


def test_score_invalid_name(tmp_path, fakes):
    result = runner.invoke(app, ["score", "widgets", "-d", write_project(tmp_path)])

    assert result.exit_code == 1


def test_score_invalid_config(tmp_path, fakes):
    result = runner.invoke(app, ["score", "acme/widgets", "-d", write_project(tmp_path, {"min_cpts": -5})])

    assert result.exit_code == 1


def test_disabled_by_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CPTS_DISABLE", "1")
    monkeypatch.setattr(cli, "_build_clients", lambda config: pytest.fail("clients should not be built"))

    score = runner.invoke(app, ["score", "acme/widgets", "-d", write_project(tmp_path)])
    check = runner.invoke(app, ["check", "-d", write_project(tmp_path, packages=["acme/widgets"])])

    assert score.exit_code == 0
    assert check.exit_code == 0


# --- check ---


def test_check_json(tmp_path, fakes):
    project = write_project(tmp_path, {"trusted_packages": ["psr/*"]}, packages=["acme/widgets", "psr/log"])

    result = runner.invoke(app, ["check", "--format", "json", "-d", project])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [p["name"] for p in data["packages"]] == ["acme/widgets", "psr/log"]
    assert data["packages"][1]["status"] == "TRUSTED"
    assert data["summary"]["total"] == 2
    assert data["summary"]["trusted"] == 1


def test_check_fail_under(tmp_path, fakes):
    project = write_project(tmp_path, packages=["acme/widgets"])

    failing = runner.invoke(app, ["check", "-f", "json", "--fail-under", "100.5", "-d", project])
    passing = runner.invoke(app, ["check", "-f", "json", "--fail-under", "0", "-d", project])

    assert failing.exit_code == 1
    assert json.loads(failing.stdout)["packages"][0]["status"] == "FAIL"
    assert passing.exit_code == 0


def test_check_failures_without_fail_under_exit_0(tmp_path, fakes):
    project = write_project(tmp_path, {"min_cpts": 100}, packages=["acme/widgets"])

    result = runner.invoke(app, ["check", "-f", "json", "-d", project])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["summary"]["failed"] == 1


def test_check_dev_and_only(tmp_path, fakes):
    project = write_project(tmp_path, packages=["acme/widgets"], dev_packages=["psr/log"])

    without_dev = json.loads(runner.invoke(app, ["check", "-f", "json", "-d", project]).stdout)
    with_dev = json.loads(runner.invoke(app, ["check", "-f", "json", "--dev", "-d", project]).stdout)
    only = json.loads(runner.invoke(app, ["check", "-f", "json", "--dev", "--only", "psr/log", "-d", project]).stdout)

    assert without_dev["summary"]["total"] == 1
    assert with_dev["summary"]["total"] == 2
    assert [p["name"] for p in only["packages"]] == ["psr/log"]


def test_check_table_output(tmp_path, fakes):
    project = write_project(tmp_path, {"trusted_packages": ["psr/log"]}, packages=["acme/widgets", "psr/log"])

    result = runner.invoke(app, ["check", "-d", project])

    assert result.exit_code == 0
    assert "CPTS Check" in result.stdout
    assert "TRUSTED" in result.stdout
    assert "Checked 2 packages" in result.stdout


def test_check_without_lock_file(tmp_path, fakes):
    result = runner.invoke(app, ["check", "-f", "json", "-d", write_project(tmp_path)])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["summary"]["total"] == 0


def test_check_rate_limited_package(tmp_path, fakes):
    github, _ = fakes
    github.failures["get_commits"] = RateLimitError(0, datetime.now(timezone.utc) + timedelta(minutes=20))
    project = write_project(tmp_path, packages=["acme/widgets"])

    result = runner.invoke(app, ["check", "-f", "json", "--fail-under", "10", "-d", project])

    data = json.loads(result.stdout)
    assert data["packages"][0]["status"] == "RATE_LIMITED"
    assert data["summary"]["errors"] == 1
    assert result.exit_code == 0


# --- trust ---


def test_trust_add_and_remove(tmp_path):
    project = write_project(tmp_path)

    added = runner.invoke(app, ["trust", "acme/*", "psr/log", "-d", project])
    removed = runner.invoke(app, ["trust", "psr/log", "--remove", "-d", project])

    assert added.exit_code == 0
    assert "Added: acme/*" in added.stdout
    assert "Updated composer.json" in added.stdout
    assert removed.exit_code == 0
    assert "Removed: psr/log" in removed.stdout
    composer = json.loads((tmp_path / "composer.json").read_text())
    assert composer["extra"]["cpts"]["trusted_packages"] == ["acme/*"]


def test_trust_without_composer_json(tmp_path):
    result = runner.invoke(app, ["trust", "acme/*", "-d", str(tmp_path)])

    assert result.exit_code == 1


# --- version ---


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert result.stdout.strip() == f"cpts {__version__}"
