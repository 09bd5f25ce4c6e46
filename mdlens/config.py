"""Viewer settings from defaults, ~/.mdlens.cfg and MDLENS_* environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping

from .codehl import DEFAULT_STYLE

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".mdlens.cfg"
VIEW_MODES = ("rendered", "literal")
DEFAULT_WATCH_INTERVAL_MS = 700
MIN_WATCH_INTERVAL_MS = 100
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ENV_KEYS = {
    "MDLENS_CODE_STYLE": "code_style",
    "MDLENS_VIEW_MODE": "view_mode",
    "MDLENS_TOC": "toc_visible",
    "MDLENS_WATCH_MS": "watch_interval_ms",
    "MDLENS_LOG_LEVEL": "log_level",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    code_style: str = DEFAULT_STYLE
    view_mode: str = "rendered"
    toc_visible: bool = False
    watch_interval_ms: int = DEFAULT_WATCH_INTERVAL_MS
    log_level: str = "WARNING"


def config_file_path() -> Path:
    return Path.home() / CONFIG_FILE_NAME


def _read_config_file(path: Path) -> dict[str, str]:
    """Parse `key = value` lines; any read problem yields no values."""
    values: dict[str, str] = {}
    try:
        if not path.is_file():
            return values
        raw = path.read_text(encoding="utf-8")
    except Exception as exc:
        logger.debug("Ignoring unreadable config %s: %s", path, exc)
        return values
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        values[key.strip().lower().replace("-", "_")] = value.strip()
    return values


def _apply(settings: Settings, key: str, value: str) -> Settings:
    """Return settings with one raw value applied, or unchanged if invalid."""
    text = value.strip()
    if key == "code_style":
        return replace(settings, code_style=text) if text else settings
    if key == "view_mode":
        mode = text.lower()
        if mode in VIEW_MODES:
            return replace(settings, view_mode=mode)
    elif key == "toc_visible":
        lowered = text.lower()
        if lowered in _TRUE_VALUES:
            return replace(settings, toc_visible=True)
        if lowered in _FALSE_VALUES:
            return replace(settings, toc_visible=False)
    elif key == "watch_interval_ms":
        try:
            interval = int(text)
        except ValueError:
            interval = -1
        if interval >= MIN_WATCH_INTERVAL_MS:
            return replace(settings, watch_interval_ms=interval)
    elif key == "log_level":
        level = text.upper()
        if level in LOG_LEVELS:
            return replace(settings, log_level=level)
    else:
        logger.debug("Ignoring unknown setting %r", key)
        return settings
    logger.warning("Ignoring invalid value %r for setting %s", value, key)
    return settings


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings: defaults, then the config file, then the environment."""
    settings = Settings()
    for key, value in _read_config_file(config_path or config_file_path()).items():
        settings = _apply(settings, key, value)
    env = os.environ if environ is None else environ
    for env_key, key in _ENV_KEYS.items():
        raw = env.get(env_key)
        if raw is not None and raw.strip():
            settings = _apply(settings, key, raw)
    return settings


def with_overrides(settings: Settings, **overrides: str | None) -> Settings:
    """Apply command-line overrides; None values are skipped."""
    for key, value in overrides.items():
        if value is not None:
            settings = _apply(settings, key, str(value))
    return settings
