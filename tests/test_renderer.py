import re
from pathlib import Path

from mdlens.model import Heading, LineRange
from mdlens.renderer import MarkdownRenderer, resolve_image_url


def _render(source, **kwargs):
    return MarkdownRenderer().render(source, **kwargs)


def test_blocks_carry_line_ranges():
    output = _render("# Title\n\nParagraph text\n")

    assert '<p data-md-line-start="3" data-md-line-end="3">' in output.html
    assert re.search(r'<h1 [^>]*data-md-line-start="1" data-md-line-end="1"', output.html)
    assert [(block.kind, block.lines) for block in output.blocks] == [
        ("heading", LineRange(1, 1)),
        ("paragraph", LineRange(3, 3)),
    ]


def test_heading_ids_and_toc_entries():
    output = _render("# Title\n\nSetext Head\n-----------\n\n## Use `render()` now\n")

    assert output.headings == [
        Heading(1, "Title", "title", LineRange(1, 1)),
        Heading(2, "Setext Head", "setext-head", LineRange(3, 4)),
        Heading(2, "Use render() now", "use-render-now", LineRange(6, 6)),
    ]
    assert 'id="use-render-now"' in output.html
    assert output.heading_anchors() == {1: "title", 3: "setext-head", 6: "use-render-now"}


def test_fenced_code_spans_all_lines():
    output = _render("```python\nprint(1)\n```\n")

    assert '<pre data-md-line-start="1" data-md-line-end="3"><code class="language-python">' in output.html
    assert "print(1)" in output.html


def test_fence_uses_code_highlighter():
    def shout(code, language):
        return f"<b>{language}</b>"

    output = MarkdownRenderer(shout).render("```rust\nfn main() {}\n```")

    assert "<b>rust</b>" in output.html


def test_list_items_are_annotated_individually():
    output = _render("- one\n- two\n\nafter\n")

    assert '<li data-md-line-start="1" data-md-line-end="1">' in output.html
    assert '<li data-md-line-start="2" data-md-line-end="2">' in output.html
    assert '<ul data-md-line-start="1" data-md-line-end="2">' in output.html


def test_horizontal_rule_is_annotated():
    output = _render("above\n\n---\n\nbelow\n")

    assert '<hr data-md-line-start="3" data-md-line-end="3"' in output.html


def test_tasklists_and_footnotes_are_enabled():
    output = _render("- [ ] todo\n\nText[^1]\n\n[^1]: Note\n")

    assert 'type="checkbox"' in output.html
    assert "footnote-ref" in output.html


def test_local_images_are_embedded(tmp_path: Path):
    (tmp_path / "pic.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")

    output = _render("![alt](pic.png)\n", base_dir=tmp_path)

    assert 'src="data:image/png;base64,' in output.html


def test_resolve_image_url_leaves_other_urls(tmp_path: Path):
    assert resolve_image_url("https://example.com/a.png", tmp_path) == "https://example.com/a.png"
    assert resolve_image_url("missing.png", tmp_path) == "missing.png"
    assert resolve_image_url("pic.png", None) == "pic.png"
