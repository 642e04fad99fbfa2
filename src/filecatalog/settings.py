"""filecatalog.yaml management."""

import os
from pathlib import Path

import yaml

from filecatalog.intake.hasher import is_supported

SETTINGS_PATH = Path(os.environ.get("FILECATALOG_CONFIG", "filecatalog.yaml"))

DEFAULTS = {
    "catalogue_path": "catalogue.json",
    "report_path": "duplicates.csv",
    "hash_algorithm": "md5",
    "skip_names": [],
}


class SettingsError(ValueError):
    """The settings file is unreadable as configuration."""


def _validate(data: dict) -> dict:
    unknown = set(data) - set(DEFAULTS)
    if unknown:
        raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")

    for key in ("catalogue_path", "report_path", "hash_algorithm"):
        if key in data and not (isinstance(data[key], str) and data[key]):
            raise SettingsError(f"'{key}' must be a non-empty string")

    skip = data.get("skip_names", [])
    if not isinstance(skip, list) or not all(isinstance(s, str) for s in skip):
        raise SettingsError("'skip_names' must be a list of names")

    if "hash_algorithm" in data and not is_supported(data["hash_algorithm"]):
        raise SettingsError(f"Unsupported hash algorithm: {data['hash_algorithm']}")
    return data


def load_settings(path: Path | None = None) -> dict:
    """Load settings, falling back to DEFAULTS for anything not set.

    A missing file is not an error; an unparseable or invalid one is.
    """
    path = Path(path or SETTINGS_PATH).expanduser()
    settings = {k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULTS.items()}
    if not path.exists():
        return settings

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SettingsError(f"Cannot parse {path}: {e}") from e

    if data is None:
        return settings
    if not isinstance(data, dict):
        raise SettingsError(f"{path} must contain a mapping of settings")

    settings.update(_validate(data))
    return settings


def save_settings(data: dict, path: Path | None = None) -> None:
    """Write a settings file."""
    path = Path(path or SETTINGS_PATH).expanduser()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(_validate(dict(data)), f, default_flow_style=False, sort_keys=False)
