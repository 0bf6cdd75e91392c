"""Project configuration from composer.json and the environment."""

import json
import os
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cpts.errors import CptsError

COMPOSER_FILE = "composer.json"
CONFIG_KEY = "cpts"


class CptsConfig(BaseModel):
    """Settings for one project.

    ``min_cpts``, ``trusted_packages``, ``weights`` and ``concurrency`` come
    from ``extra.cpts`` in composer.json; ``github_token`` and ``disabled``
    come from the environment.
    """

    model_config = ConfigDict(extra="ignore")

    min_cpts: int = Field(default=20, ge=0)
    trusted_packages: list[str] = Field(default_factory=list)
    weights: dict[str, Annotated[float, Field(ge=0)]] = Field(default_factory=dict)
    concurrency: int = Field(default=4, ge=1)
    github_token: str | None = None
    disabled: bool = False


def _read_composer_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise CptsError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise CptsError(f"Could not read {path}: expected a JSON object")
    return data


def load_config(project_dir: Path | None = None) -> CptsConfig:
    """Load configuration for a project directory.

    Args:
        project_dir: Directory holding composer.json and an optional .env.
            Defaults to the current directory.

    Returns:
        CptsConfig with defaults for everything not configured.

    Raises:
        CptsError: If composer.json is malformed or holds invalid values.
    """
    project_dir = project_dir or Path.cwd()
    composer_path = project_dir / COMPOSER_FILE

    settings: Any = {}
    if composer_path.exists():
        data = _read_composer_json(composer_path)
        extra = data.get("extra")
        settings = (extra.get(CONFIG_KEY) if isinstance(extra, dict) else None) or {}
        if not isinstance(settings, dict):
            raise CptsError(f"Invalid cpts configuration in {composer_path}: extra.cpts must be an object")

    # Already-exported variables win over the .env file
    load_dotenv(project_dir / ".env", override=False)

    try:
        return CptsConfig(
            **{
                **settings,
                "github_token": os.environ.get("GITHUB_TOKEN") or None,
                "disabled": os.environ.get("CPTS_DISABLE", "") not in ("", "0"),
            }
        )
    except ValidationError as e:
        raise CptsError(f"Invalid cpts configuration in {composer_path}: {e}") from e


def update_trusted_packages(
    project_dir: Path,
    patterns: list[str],
    remove: bool = False,
) -> list[tuple[str, str]]:
    """Add or remove trusted package patterns in composer.json.

    Creates ``extra.cpts`` when missing and keeps every other key as is.

    Args:
        project_dir: Directory holding composer.json.
        patterns: Package names or vendor/* patterns.
        remove: Remove the patterns instead of adding them.

    Returns:
        (pattern, outcome) pairs where outcome is "Added", "Already trusted",
        "Removed" or "Not found".

    Raises:
        CptsError: If composer.json is missing or unreadable, or trusted_packages
            is not a list of strings.
    """
    composer_path = project_dir / COMPOSER_FILE
    if not composer_path.exists():
        raise CptsError(f"{COMPOSER_FILE} not found in {project_dir}")

    data = _read_composer_json(composer_path)
    # Composer serializes empty objects as []
    if not isinstance(data.get("extra"), dict):
        data["extra"] = {}
    if not isinstance(data["extra"].get(CONFIG_KEY), dict):
        data["extra"][CONFIG_KEY] = {}
    settings = data["extra"][CONFIG_KEY]
    current = settings.get("trusted_packages")
    if current is not None and not (isinstance(current, list) and all(isinstance(p, str) for p in current)):
        raise CptsError(
            f"Invalid cpts configuration in {composer_path}: trusted_packages must be a list of package names"
        )
    trusted: list[str] = list(current or [])

    outcomes: list[tuple[str, str]] = []
    for pattern in patterns:
        if remove:
            if pattern in trusted:
                trusted.remove(pattern)
                outcomes.append((pattern, "Removed"))
            else:
                outcomes.append((pattern, "Not found"))
        elif pattern in trusted:
            outcomes.append((pattern, "Already trusted"))
        else:
            trusted.append(pattern)
            outcomes.append((pattern, "Added"))

    settings["trusted_packages"] = trusted
    composer_path.write_text(json.dumps(data, indent=4, ensure_ascii=False) + "\n")
    return outcomes
