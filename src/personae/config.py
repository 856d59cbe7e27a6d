"""personae configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site — not in this module)
  2. Environment variables  (PERSONAE_PEOPLE_DIR, PERSONAE_DB, PERSONAE_MEDIA_PREFIX)
  3. Per-project personae.yaml
  4. Hardcoded defaults

Relative paths in personae.yaml resolve against the directory holding it.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from personae.health import (
    DEFAULT_MAX_INSUFFICIENT_CONTENT_RATIO,
    DEFAULT_MAX_MISSING_IMAGES_RATIO,
)
from personae.ingest.images import DEFAULT_URL_PREFIX

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_PROJECT_CONFIG_NAME: str = "personae.yaml"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["paths", "media", "scan", "health", "migration"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class PathsCfg:
    """Filesystem locations (personae.yaml: paths:)."""

    people_dir: Path = field(default_factory=lambda: Path("public/media/people"))
    db: Path = field(default_factory=lambda: Path(".personae.db"))


@dataclass
class MediaCfg:
    """Public URL layout for images (personae.yaml: media:)."""

    url_prefix: str = DEFAULT_URL_PREFIX


@dataclass
class ScanCfg:
    """Directory scanner settings (personae.yaml: scan:)."""

    max_workers: int = 8


@dataclass
class HealthCfg:
    """Degradation thresholds (personae.yaml: health:)."""

    max_missing_images_ratio: float = DEFAULT_MAX_MISSING_IMAGES_RATIO
    max_insufficient_content_ratio: float = DEFAULT_MAX_INSUFFICIENT_CONTENT_RATIO


@dataclass
class MigrationCfg:
    """File → store migration (personae.yaml: migration:).

    Attributes:
        auto_migrate: Migrate automatically the first time listing finds an
            empty override store.
        updated_by: Author recorded on migrated rows.
    """

    auto_migrate: bool = True
    updated_by: str = "system"


@dataclass
class PersonaeConfig:
    """Root configuration object, built by load_config()."""

    paths: PathsCfg = field(default_factory=PathsCfg)
    media: MediaCfg = field(default_factory=MediaCfg)
    scan: ScanCfg = field(default_factory=ScanCfg)
    health: HealthCfg = field(default_factory=HealthCfg)
    migration: MigrationCfg = field(default_factory=MigrationCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: PersonaeConfig) -> None:
    for name in ("max_missing_images_ratio", "max_insufficient_content_ratio"):
        value = getattr(cfg.health, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"health.{name} must be between 0 and 1, got {value}")
    if cfg.scan.max_workers < 1:
        raise ConfigError(f"scan.max_workers must be >= 1, got {cfg.scan.max_workers}")
    if not cfg.media.url_prefix.startswith("/"):
        raise ConfigError(
            f"media.url_prefix must be an absolute URL path starting with '/': "
            f"'{cfg.media.url_prefix}'"
        )
    if not cfg.migration.updated_by.strip():
        raise ConfigError("migration.updated_by must not be empty")


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return value


def _resolve(path: str | Path, base: Path) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else base / p


def _cfg_from_dict(data: dict[str, Any], base: Path) -> PersonaeConfig:
    """Build a *PersonaeConfig* from a raw YAML dict."""
    cfg = PersonaeConfig()
    try:
        if "paths" in data:
            p = _section(data, "paths")
            cfg.paths = PathsCfg(
                people_dir=_resolve(p.get("people_dir", cfg.paths.people_dir), base),
                db=_resolve(p.get("db", cfg.paths.db), base),
            )

        if "media" in data:
            m = _section(data, "media")
            cfg.media = MediaCfg(url_prefix=str(m.get("url_prefix", cfg.media.url_prefix)))

        if "scan" in data:
            s = _section(data, "scan")
            cfg.scan = ScanCfg(max_workers=int(s.get("max_workers", cfg.scan.max_workers)))

        if "health" in data:
            h = _section(data, "health")
            cfg.health = HealthCfg(
                max_missing_images_ratio=float(
                    h.get("max_missing_images_ratio", cfg.health.max_missing_images_ratio)
                ),
                max_insufficient_content_ratio=float(
                    h.get(
                        "max_insufficient_content_ratio",
                        cfg.health.max_insufficient_content_ratio,
                    )
                ),
            )

        if "migration" in data:
            mg = _section(data, "migration")
            cfg.migration = MigrationCfg(
                auto_migrate=bool(mg.get("auto_migrate", cfg.migration.auto_migrate)),
                updated_by=str(mg.get("updated_by", cfg.migration.updated_by)),
            )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: PersonaeConfig) -> PersonaeConfig:
    """Apply PERSONAE_* environment variable overrides."""
    if people_dir := os.environ.get("PERSONAE_PEOPLE_DIR"):
        cfg.paths.people_dir = Path(people_dir).expanduser()
    if db := os.environ.get("PERSONAE_DB"):
        cfg.paths.db = Path(db).expanduser()
    if prefix := os.environ.get("PERSONAE_MEDIA_PREFIX"):
        cfg.media.url_prefix = prefix
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(project_dir: Path | None = None) -> PersonaeConfig:
    """Load and return a merged *PersonaeConfig*.

    Args:
        project_dir: Directory to search for *personae.yaml*. Defaults to CWD.

    Returns:
        *PersonaeConfig* with env var overrides applied.

    Raises:
        ConfigError: If a value is malformed or out of range.
    """
    search_dir = project_dir if project_dir is not None else Path.cwd()
    cfg_path = search_dir / _PROJECT_CONFIG_NAME

    raw: dict[str, Any] = {}
    if cfg_path.exists():
        loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"'{cfg_path}' must contain a YAML mapping")
        _warn_unknown_keys(loaded, cfg_path)
        raw = loaded

    cfg = _cfg_from_dict(raw, search_dir)
    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg
