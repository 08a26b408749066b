"""Generator settings, optionally overridden from a TOML file."""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import toml

from .errors import ConfigError

DEFAULT_CONFIG_FILE = "flake-gen.toml"

# 43 base64 characters plus padding: a well-formed sha256 that matches nothing.
FAKE_NAR_HASH = "A" * 43 + "="

GENERATED_FILE_WARNING = "/* WARNING: This file is generated by dolt-nix-flake. */"


@dataclass(frozen=True)
class Settings:
    download_url: str = "https://github.com/dolthub/dolt/archive/"
    archive_pattern: str = "{}.zip"
    extracted_dir_pattern: str = "dolt-{}"
    module_subdir: str = "go"
    input_name: str = "dolt"
    lock_file: str = "flake.lock"
    template_file: str = "flake.nix.template"
    output_file: str = "flake.nix"
    warning: str = GENERATED_FILE_WARNING
    placeholder_hash: str = FAKE_NAR_HASH
    http_timeout: float = 60.0
    nix: str = "nix"
    go: str = "go"
    unzip: str = "unzip"

    def archive_name(self, revision: str) -> str:
        return self.archive_pattern.format(revision)

    def extracted_dir_name(self, revision: str) -> str:
        return self.extracted_dir_pattern.format(revision)

    def archive_url(self, revision: str) -> str:
        return self.download_url + self.archive_name(revision)


def _check_types(values: dict) -> dict:
    known = {f.name: f for f in fields(Settings)}
    checked = {}
    for key, value in values.items():
        if key not in known:
            raise ConfigError(f"unknown setting {key!r}")
        expected = type(getattr(Settings, key))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected):
            raise ConfigError(
                f"setting {key!r} must be {expected.__name__}, got {type(value).__name__}"
            )
        checked[key] = value
    return checked


def load_settings(path: Optional[Path] = None, **overrides) -> Settings:
    """Build settings from defaults, the [generator] table of a TOML file, then overrides.

    Without an explicit path, flake-gen.toml in the working directory is read
    when it exists. Overrides whose value is None are ignored.
    """
    if path is None and Path(DEFAULT_CONFIG_FILE).is_file():
        path = Path(DEFAULT_CONFIG_FILE)

    values = {}
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                data = toml.load(f)
        except OSError as e:
            raise ConfigError(f"could not read {path}: {e}") from e
        except toml.TomlDecodeError as e:
            raise ConfigError(f"could not parse {path}: {e}") from e
        table = data.get("generator", {})
        if not isinstance(table, dict):
            raise ConfigError(f"[generator] in {path} must be a table")
        values.update(table)

    values.update({k: v for k, v in overrides.items() if v is not None})
    return replace(Settings(), **_check_types(values))
