import logging
from pathlib import Path

from mdlens.config import Settings, load_settings, with_overrides


def _write_config(tmp_path: Path) -> Path:
    path = tmp_path / ".mdlens.cfg"
    path.write_text(
        "# viewer settings\n"
        "code-style = friendly\n"
        "view_mode = literal\n"
        "toc_visible = yes\n"
        "watch_interval_ms = 50\n"
        "unknown = 1\n",
        encoding="utf-8",
    )
    return path


def test_config_file_values(tmp_path: Path):
    settings = load_settings(_write_config(tmp_path), environ={})

    assert settings.code_style == "friendly"
    assert settings.view_mode == "literal"
    assert settings.toc_visible is True
    assert settings.watch_interval_ms == 700
    assert settings.log_level == "WARNING"


def test_environment_overrides_file(tmp_path: Path):
    environ = {"MDLENS_VIEW_MODE": "Rendered", "MDLENS_WATCH_MS": "250", "MDLENS_TOC": "off"}

    settings = load_settings(_write_config(tmp_path), environ=environ)

    assert settings.view_mode == "rendered"
    assert settings.watch_interval_ms == 250
    assert settings.toc_visible is False


def test_missing_file_gives_defaults(tmp_path: Path):
    assert load_settings(tmp_path / "missing.cfg", environ={}) == Settings()


def test_invalid_values_are_logged_and_ignored(tmp_path: Path, caplog):
    with caplog.at_level(logging.WARNING, logger="mdlens.config"):
        settings = load_settings(tmp_path / "missing.cfg", environ={"MDLENS_LOG_LEVEL": "loud"})

    assert settings.log_level == "WARNING"
    assert "log_level" in caplog.text


def test_overrides_skip_none():
    settings = with_overrides(Settings(), view_mode="literal", toc_visible=None)

    assert settings.view_mode == "literal"
    assert settings.toc_visible is False
