from mdlens.highlight import LiteralHighlighter, inline_tokens
from mdlens.model import TokenKind

SAMPLE = """# Title
Some **bold** and *italic* with `code` and [link](http://x).
  - item one
1. numbered
> quote
---
<!-- comment -->

```python
x = 1
```
Plain text"""


def _kinds(tokens):
    return [token.kind for token in tokens]


def test_token_lines_reconstruct_source():
    source_lines = SAMPLE.split("\n")
    lines = LiteralHighlighter().tokenize(SAMPLE)

    covered = []
    for item in lines:
        expected = "\n".join(source_lines[item.lines.start - 1 : item.lines.end])
        assert item.text == expected
        covered.extend(range(item.lines.start, item.lines.end + 1))
    assert covered == list(range(1, len(source_lines) + 1))


def test_inline_code_spans_do_not_merge():
    tokens = inline_tokens("`a` `b`")

    assert _kinds(tokens) == [TokenKind.INLINE_CODE, TokenKind.PLAIN, TokenKind.INLINE_CODE]
    assert [token.text for token in tokens] == ["`a`", " ", "`b`"]


def test_double_backtick_span_needs_matching_closer():
    tokens = inline_tokens("``a ` b`` rest")

    assert tokens[0].kind is TokenKind.INLINE_CODE
    assert tokens[0].text == "``a ` b``"


def test_bold_runs_before_italic():
    tokens = inline_tokens("**bold** and *italic*")

    assert _kinds(tokens) == [TokenKind.BOLD, TokenKind.PLAIN, TokenKind.ITALIC]
    assert tokens[0].children[0].text == "bold"
    assert tokens[2].text == "*italic*"


def test_intraword_underscores_are_plain():
    tokens = inline_tokens("snake_case_name and __strong__")

    assert _kinds(tokens) == [TokenKind.PLAIN, TokenKind.BOLD]
    assert tokens[0].text == "snake_case_name and "


def test_code_is_opaque_to_emphasis():
    tokens = inline_tokens("`**not bold**`")

    assert _kinds(tokens) == [TokenKind.INLINE_CODE]


def test_line_classification():
    lines = LiteralHighlighter().tokenize(SAMPLE)
    first_kinds = [item.tokens[0].kind if item.tokens else None for item in lines]

    assert first_kinds[0] is TokenKind.HEADING
    assert first_kinds[2] is TokenKind.LIST_MARKER
    assert lines[2].indent == "  "
    assert first_kinds[3] is TokenKind.LIST_MARKER
    assert first_kinds[4] is TokenKind.BLOCKQUOTE
    assert first_kinds[5] is TokenKind.HORIZONTAL_RULE
    assert first_kinds[6] is TokenKind.COMMENT
    assert first_kinds[8] is TokenKind.CODE_FENCE
    assert first_kinds[9] is TokenKind.CODE_BLOCK_BODY
    assert lines[9].tokens[0].language == "python"
    assert first_kinds[10] is TokenKind.CODE_FENCE
    assert TokenKind.LINK in _kinds(lines[1].tokens)


def test_multiline_comment_state():
    source = "<!-- start\n```python\nstill comment -->\nafter"
    lines = LiteralHighlighter().tokenize(source)

    assert [item.tokens[0].kind for item in lines[:3]] == [TokenKind.COMMENT] * 3
    assert lines[3].tokens[0].kind is TokenKind.PLAIN


def test_comment_marker_inside_fence_is_code():
    source = "```\n<!-- not a comment\n```\nafter"
    lines = LiteralHighlighter().tokenize(source)

    assert lines[1].tokens[0].kind is TokenKind.CODE_BLOCK_BODY
    assert lines[-1].tokens[0].kind is TokenKind.PLAIN
    assert lines[-1].text == "after"


def test_unterminated_fence_keeps_body():
    source = "```js\nlet a = 1;\nlet b = 2;"
    lines = LiteralHighlighter().tokenize(source)

    assert len(lines) == 2
    body = lines[1]
    assert body.tokens[0].kind is TokenKind.CODE_BLOCK_BODY
    assert body.text == "let a = 1;\nlet b = 2;"
    assert (body.lines.start, body.lines.end) == (2, 3)


def test_heading_lines_carry_slug_ids():
    html = LiteralHighlighter().render("# Hello World\ntext")

    assert 'id="hello-world"' in html
    assert 'data-md-line-start="1"' in html


def test_heading_anchor_map_wins():
    lines = LiteralHighlighter().tokenize("Setext\n======", {1: "setext"})

    assert lines[0].anchor_id == "setext"
    assert lines[1].anchor_id is None


def test_tables_are_reflowed_outside_fences():
    lines = LiteralHighlighter().tokenize("| a | b |\n|---|---|\n| ccc | d |")

    assert lines[0].tokens[0].kind is TokenKind.TABLE_ROW
    assert lines[0].text == "| a   | b   |"
    assert lines[1].tokens[0].kind is TokenKind.TABLE_SEPARATOR


def test_render_escapes_and_neutralises_script_links():
    html = LiteralHighlighter().render("a < b [x](javascript:alert(1))")

    assert "a &lt; b" in html
    assert 'href="#"' in html
    assert "javascript:" not in html.split('href="')[1].split('"')[0]


def test_unknown_language_falls_back_to_escaped_text():
    def never(code, language):
        return None

    html = LiteralHighlighter(never).render("```nosuchlang\n<tag>\n```")

    assert "&lt;tag&gt;" in html


def test_unterminated_comment_runs_to_end_of_document():
    source = "text\n<!-- open\nline a\n\nline b"
    lines = LiteralHighlighter().tokenize(source)

    assert [item.text for item in lines] == source.split("\n")
    assert lines[0].tokens[0].kind is TokenKind.PLAIN
    for item in lines[1:]:
        assert all(token.kind is TokenKind.COMMENT for token in item.tokens)


def test_two_links_on_one_line_stay_separate():
    tokens = inline_tokens("[a](x) and [b](y)")

    assert _kinds(tokens) == [TokenKind.LINK, TokenKind.PLAIN, TokenKind.LINK]
    assert [token.href for token in tokens if token.kind is TokenKind.LINK] == ["x", "y"]
    assert tokens[1].text == " and "


def test_inline_comment_and_code_span_reconstruct():
    source = "Text <!-- note --> and `code <!-- x -->` end"
    lines = LiteralHighlighter().tokenize(source + "\nnext")

    assert lines[0].text == source
    assert TokenKind.COMMENT in _kinds(lines[0].tokens)
    assert TokenKind.INLINE_CODE in _kinds(lines[0].tokens)
    assert lines[1].tokens[0].kind is TokenKind.PLAIN
