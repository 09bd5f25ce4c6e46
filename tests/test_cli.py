from pathlib import Path

import pytest
from pytest import MonkeyPatch

from mdlens.cli import main


@pytest.fixture
def markdown_file(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in ("MDLENS_CODE_STYLE", "MDLENS_VIEW_MODE", "MDLENS_TOC", "MDLENS_WATCH_MS", "MDLENS_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "notes.md"
    path.write_text("- **Step 1:** Do the thing\n\n# Next\n", encoding="utf-8")
    return path


def test_lines_prints_extracted_markdown(markdown_file: Path, capsys):
    exit_code = main([str(markdown_file), "--lines", "1-1", "--selection", "Step 1"])

    assert exit_code == 0
    assert capsys.readouterr().out == "- **Step 1:** Do the thing\n"


def test_export_writes_page(markdown_file: Path, tmp_path: Path):
    output = tmp_path / "out.html"

    exit_code = main([str(markdown_file), "--export", str(output), "--view", "literal", "--toc"])

    assert exit_code == 0
    page = output.read_text(encoding="utf-8")
    assert 'id="literal-view" style="display:block"' in page
    assert 'href="#next"' in page


def test_missing_file_returns_2(tmp_path: Path, capsys):
    exit_code = main([str(tmp_path / "nope.md"), "--export", str(tmp_path / "out.html")])

    assert exit_code == 2
    assert "does not exist" in capsys.readouterr().err


def test_bad_line_range_returns_2(markdown_file: Path, capsys):
    assert main([str(markdown_file), "--lines", "x-y"]) == 2
    assert "Bad --lines value" in capsys.readouterr().err


def test_lines_outside_document_return_1(markdown_file: Path):
    assert main([str(markdown_file), "--lines", "20-30", "--selection", "x"]) == 1
