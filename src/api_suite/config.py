"""Runtime settings.

Layered as defaults < YAML settings file < environment < explicit overrides.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel

DEFAULT_BASE_URL = "http://localhost:8080"

_ENV_VARS = {
    "base_url": "API_BASE_URL",
    "token": "API_TOKEN",
    "strict_merge": "API_SUITE_STRICT_MERGE",
    "timeout": "API_TIMEOUT",
}


class Settings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    token: str = ""
    strict_merge: bool = False
    timeout: float = 30.0


def _from_file(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    return {key: value for key, value in data.items() if key in Settings.model_fields}


def _from_env() -> dict:
    values = {}
    for field, var in _ENV_VARS.items():
        raw = os.getenv(var)
        if raw is not None and raw != "":
            values[field] = raw
    return values


def load_settings(path: Path | None = None, **overrides) -> Settings:
    """Build Settings from an optional YAML file, the environment and overrides.

    The file defaults to $API_SUITE_CONFIG when path is not given. Overrides
    that are None are ignored so CLI options can be passed straight through.
    """
    if path is None and os.getenv("API_SUITE_CONFIG"):
        path = Path(os.environ["API_SUITE_CONFIG"])

    values: dict = {}
    if path is not None:
        values.update(_from_file(Path(path)))
    values.update(_from_env())
    values.update({key: value for key, value in overrides.items() if value is not None})
    return Settings.model_validate(values)
