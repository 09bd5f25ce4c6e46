"""Literal ("terminal") view: a line scanner that decorates raw markdown.

Highlighting never changes content. Apart from the pipe-table reflow, the
tokens of every line concatenate back to the source line they came from.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Sequence

from .codehl import CodeHighlighter
from .model import HighlightToken, LineRange, LiteralLine, SourceDocument, TokenKind
from .slug import slugify
from .tables import reflow_tables

logger = logging.getLogger(__name__)

COMMENT_OPEN = "<!--"
COMMENT_CLOSE = "-->"

_FENCE_OPEN_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_FENCE_CLOSE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*$")
_HEADING_RE = re.compile(r"^#{1,6}(?:[ \t]|$)")
_HEADING_PREFIX_RE = re.compile(r"^#{1,6}[ \t]*")
_HEADING_CLOSING_RE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_HR_RE = re.compile(r"^(?:(?:-[ \t]*){3,}|(?:\*[ \t]*){3,}|(?:_[ \t]*){3,})$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|[\s\-:|]*-[\s\-:|]*\|$")
_LIST_MARKER_RE = re.compile(r"^([-*+]|\d{1,9}[.)])(?=[ \t])")

_CSS_CLASSES = {
    TokenKind.COMMENT: "md-comment",
    TokenKind.CODE_FENCE: "md-code-fence",
    TokenKind.HEADING: "md-heading",
    TokenKind.HORIZONTAL_RULE: "md-hr",
    TokenKind.BLOCKQUOTE: "md-blockquote",
    TokenKind.TABLE_ROW: "md-table",
    TokenKind.TABLE_SEPARATOR: "md-table-sep",
    TokenKind.LIST_MARKER: "md-list-marker",
    TokenKind.BOLD: "md-bold",
    TokenKind.ITALIC: "md-italic",
    TokenKind.INLINE_CODE: "md-code",
    TokenKind.LINK: "md-link",
}


# ---------------------------------------------------------------------------
# Fences and comments
# ---------------------------------------------------------------------------


def match_fence_open(line: str) -> tuple[str, str] | None:
    """Return (fence, language) when the line opens a fenced code block."""
    match = _FENCE_OPEN_RE.match(line)
    if match is None:
        return None
    fence, info = match.group(1), match.group(2)
    if fence[0] == "`" and "`" in info:
        return None
    words = info.strip().split(maxsplit=1)
    return fence, (words[0] if words else "")


def is_fence_close(line: str, fence: str) -> bool:
    match = _FENCE_CLOSE_RE.match(line)
    if match is None:
        return False
    closer = match.group(1)
    return closer[0] == fence[0] and len(closer) >= len(fence)


def fenced_line_indices(lines: Sequence[str]) -> set[int]:
    """0-based indices of fence and body lines, used to shield code from reflow."""
    indices: set[int] = set()
    fence: str | None = None
    for index, line in enumerate(lines):
        if fence is None:
            opened = match_fence_open(line)
            if opened is not None:
                fence = opened[0]
                indices.add(index)
            continue
        indices.add(index)
        if is_fence_close(line, fence):
            fence = None
    return indices


def _code_span_ranges(text: str) -> list[tuple[int, int]]:
    """Backtick spans: an opening run closed by the next run of the same length."""
    ranges: list[tuple[int, int]] = []
    i = 0
    length = len(text)
    while i < length:
        if text[i] != "`":
            i += 1
            continue
        start = i
        while i < length and text[i] == "`":
            i += 1
        closer = "`" * (i - start)
        close_at = text.find(closer, i)
        if close_at == -1:
            continue
        ranges.append((start, close_at + len(closer)))
        i = close_at + len(closer)
    return ranges


def _find_comment_open(text: str, start: int = 0) -> int:
    """Index of the next `<!--` that is not inside a backtick code span."""
    spans = _code_span_ranges(text)
    position = text.find(COMMENT_OPEN, start)
    while position != -1:
        if not any(span_start <= position < span_end for span_start, span_end in spans):
            return position
        position = text.find(COMMENT_OPEN, position + 1)
    return -1


def opens_unclosed_comment(text: str) -> bool:
    """True when the text leaves an HTML comment open at its end."""
    position = 0
    while True:
        open_at = _find_comment_open(text, position)
        if open_at == -1:
            return False
        close_at = text.find(COMMENT_CLOSE, open_at + len(COMMENT_OPEN))
        if close_at == -1:
            return True
        position = close_at + len(COMMENT_CLOSE)


# ---------------------------------------------------------------------------
# Inline pass
# ---------------------------------------------------------------------------


class _Span(NamedTuple):
    start: int
    end: int
    kind: TokenKind
    inner_start: int = 0
    inner_end: int = 0
    href: str | None = None
    nested: bool = False


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _scan_comments(text: str) -> list[_Span]:
    spans: list[_Span] = []
    position = 0
    while True:
        open_at = text.find(COMMENT_OPEN, position)
        if open_at == -1:
            break
        close_at = text.find(COMMENT_CLOSE, open_at + len(COMMENT_OPEN))
        if close_at == -1:
            break
        end = close_at + len(COMMENT_CLOSE)
        spans.append(_Span(open_at, end, TokenKind.COMMENT))
        position = end
    return spans


def _scan_code(text: str) -> list[_Span]:
    return [_Span(start, end, TokenKind.INLINE_CODE) for start, end in _code_span_ranges(text)]


def _scan_links(text: str) -> list[_Span]:
    spans: list[_Span] = []
    i = 0
    length = len(text)
    while i < length:
        if text[i] != "[":
            i += 1
            continue
        close_bracket = text.find("]", i + 1)
        if close_bracket == -1:
            break
        if close_bracket == i + 1 or close_bracket + 1 >= length or text[close_bracket + 1] != "(":
            i += 1
            continue
        close_paren = text.find(")", close_bracket + 2)
        if close_paren == -1 or close_paren == close_bracket + 2:
            i += 1
            continue
        href = text[close_bracket + 2 : close_paren]
        spans.append(_Span(i, close_paren + 1, TokenKind.LINK, i + 1, close_bracket, href, True))
        i = close_paren + 1
    return spans


def _delimited_scanner(delimiter: str, kind: TokenKind, word_bounded: bool) -> Callable[[str], list[_Span]]:
    """Scanner for `<d>content<d>` with at least one content character.

    With `word_bounded`, an opener preceded by a word character or a closer
    followed by one is skipped; the characters are inspected directly.
    """
    size = len(delimiter)

    def scan(text: str) -> list[_Span]:
        spans: list[_Span] = []
        position = 0
        while True:
            open_at = text.find(delimiter, position)
            if open_at == -1:
                break
            if word_bounded and open_at > 0 and _is_word_char(text[open_at - 1]):
                position = open_at + 1
                continue
            close_at = text.find(delimiter, open_at + size + 1)
            if word_bounded:
                while close_at != -1:
                    after = close_at + size
                    if after >= len(text) or not _is_word_char(text[after]):
                        break
                    close_at = text.find(delimiter, close_at + 1)
            if close_at == -1:
                if word_bounded:
                    position = open_at + 1
                    continue
                break
            end = close_at + size
            spans.append(_Span(open_at, end, kind, open_at + size, close_at, None, True))
            position = end
        return spans

    return scan


# Code spans are opaque to everything after them. Bold runs before italic so
# a single `*` never eats half of a `**` pair.
_INLINE_RULES: tuple[Callable[[str], list[_Span]], ...] = (
    _scan_code,
    _scan_comments,
    _scan_links,
    _delimited_scanner("**", TokenKind.BOLD, word_bounded=False),
    _delimited_scanner("__", TokenKind.BOLD, word_bounded=True),
    _delimited_scanner("*", TokenKind.ITALIC, word_bounded=False),
    _delimited_scanner("_", TokenKind.ITALIC, word_bounded=True),
)


def _merge_plain(tokens: list[HighlightToken]) -> list[HighlightToken]:
    merged: list[HighlightToken] = []
    for token in tokens:
        if merged and token.kind is TokenKind.PLAIN and merged[-1].kind is TokenKind.PLAIN:
            merged[-1] = HighlightToken(TokenKind.PLAIN, merged[-1].text + token.text)
        else:
            merged.append(token)
    return merged


def inline_tokens(text: str, rules: Sequence[Callable[[str], list[_Span]]] = _INLINE_RULES) -> list[HighlightToken]:
    """Split text into inline tokens.

    Each rule only sees the plain text left between matches of the rules
    before it. Text inside links, bold and italic is passed on to the rules
    that follow, so `**a *b***` nests; code and comments are opaque.
    """
    if not text:
        return []
    if not rules:
        return [HighlightToken(TokenKind.PLAIN, text)]
    scanner, remaining = rules[0], rules[1:]
    tokens: list[HighlightToken] = []
    position = 0
    for span in scanner(text):
        tokens.extend(inline_tokens(text[position : span.start], remaining))
        children: tuple[HighlightToken, ...] = ()
        if span.nested:
            children = tuple(inline_tokens(text[span.inner_start : span.inner_end], remaining))
        tokens.append(HighlightToken(span.kind, text[span.start : span.end], children, span.href))
        position = span.end
    tokens.extend(inline_tokens(text[position:], remaining))
    return _merge_plain(tokens)


# ---------------------------------------------------------------------------
# Line scanner
# ---------------------------------------------------------------------------


class _Mode(Enum):
    NORMAL = "normal"
    IN_COMMENT = "in-comment"
    IN_CODE_BLOCK = "in-code-block"


@dataclass
class _ScanState:
    mode: _Mode = _Mode.NORMAL
    fence: str = ""
    language: str = ""
    body_start: int = 0
    body: list[str] = field(default_factory=list)

    def enter_code_block(self, fence: str, language: str, body_start: int) -> None:
        self.mode = _Mode.IN_CODE_BLOCK
        self.fence = fence
        self.language = language
        self.body_start = body_start
        self.body = []

    def reset(self) -> None:
        self.mode = _Mode.NORMAL
        self.fence = ""
        self.language = ""
        self.body = []


def atx_heading_text(content: str) -> str:
    """Heading text without the opening and closing `#` sequences."""
    text = _HEADING_PREFIX_RE.sub("", content, count=1)
    return _HEADING_CLOSING_RE.sub("", text, count=1).strip()


def _single(number: int, kind: TokenKind, text: str) -> LiteralLine:
    return LiteralLine(LineRange(number, number), (HighlightToken(kind, text),) if text else ())


def classify_line(number: int, line: str) -> LiteralLine:
    """Tokenize one line outside comments and fenced code."""
    content = line.lstrip()
    indent = line[: len(line) - len(content)]
    line_range = LineRange(number, number)

    if _HEADING_RE.match(content):
        return LiteralLine(line_range, (HighlightToken(TokenKind.HEADING, content),), indent)
    if _HR_RE.match(content):
        return LiteralLine(line_range, (HighlightToken(TokenKind.HORIZONTAL_RULE, content),), indent)
    if content.startswith(">"):
        return LiteralLine(line_range, (HighlightToken(TokenKind.BLOCKQUOTE, content),), indent)
    if len(content.rstrip()) >= 2 and content.startswith("|") and content.rstrip().endswith("|"):
        if _TABLE_SEPARATOR_RE.match(content.rstrip()):
            return LiteralLine(line_range, (HighlightToken(TokenKind.TABLE_SEPARATOR, content),), indent)
        row = HighlightToken(TokenKind.TABLE_ROW, content, tuple(inline_tokens(content)))
        return LiteralLine(line_range, (row,), indent)

    tokens: list[HighlightToken] = []
    rest = content
    marker = _LIST_MARKER_RE.match(content)
    if marker is not None:
        tokens.append(HighlightToken(TokenKind.LIST_MARKER, marker.group(1)))
        rest = content[marker.end() :]
    tokens.extend(inline_tokens(rest))
    return LiteralLine(line_range, tuple(tokens), indent)


class LiteralHighlighter:
    """Tokenize raw markdown line by line and emit the literal view HTML."""

    def __init__(self, code_highlighter: CodeHighlighter | None = None) -> None:
        self._code_highlighter = code_highlighter

    def tokenize(
        self,
        source: SourceDocument | str | Sequence[str],
        heading_anchors: Mapping[int, str] | None = None,
    ) -> list[LiteralLine]:
        """Return one LiteralLine per source line, fenced bodies grouped.

        `heading_anchors` maps source line numbers to heading slugs computed
        by the block renderer; without it ATX heading lines are slugged here.
        """
        document = SourceDocument.coerce(source)
        raw_lines = list(document.lines)
        lines = reflow_tables(raw_lines, protected=fenced_line_indices(raw_lines))
        state = _ScanState()
        output: list[LiteralLine] = []

        for number, line in enumerate(lines, start=1):
            if state.mode is _Mode.IN_COMMENT:
                output.append(_single(number, TokenKind.COMMENT, line))
                close_at = line.find(COMMENT_CLOSE)
                if close_at != -1 and not opens_unclosed_comment(line[close_at + len(COMMENT_CLOSE) :]):
                    state.reset()
                continue

            if state.mode is _Mode.IN_CODE_BLOCK:
                if is_fence_close(line, state.fence):
                    self._flush_code_block(state, number - 1, output)
                    output.append(_single(number, TokenKind.CODE_FENCE, line))
                    state.reset()
                else:
                    state.body.append(line)
                continue

            if opens_unclosed_comment(line):
                output.append(_single(number, TokenKind.COMMENT, line))
                state.mode = _Mode.IN_COMMENT
                continue

            opened = match_fence_open(line)
            if opened is not None:
                output.append(_single(number, TokenKind.CODE_FENCE, line))
                state.enter_code_block(opened[0], opened[1], number + 1)
                continue

            output.append(classify_line(number, line))

        if state.mode is _Mode.IN_CODE_BLOCK:
            # End of document closes the block; the body is still shown.
            self._flush_code_block(state, len(lines), output)
            state.reset()

        return self._attach_anchors(output, heading_anchors)

    @staticmethod
    def _flush_code_block(state: _ScanState, last_line: int, output: list[LiteralLine]) -> None:
        if not state.body:
            return
        body = HighlightToken(TokenKind.CODE_BLOCK_BODY, "\n".join(state.body), language=state.language or None)
        output.append(LiteralLine(LineRange(state.body_start, last_line), (body,)))

    @staticmethod
    def _attach_anchors(lines: list[LiteralLine], heading_anchors: Mapping[int, str] | None) -> list[LiteralLine]:
        anchored: list[LiteralLine] = []
        for item in lines:
            found: list[str] = []
            if heading_anchors is not None:
                # A code body can cover several headings when markdown-it
                # closes a fence earlier than the line scanner does.
                for number in range(item.lines.start, item.lines.end + 1):
                    anchor = heading_anchors.get(number)
                    if anchor and anchor not in found:
                        found.append(anchor)
            elif item.tokens and item.tokens[0].kind is TokenKind.HEADING:
                anchor = slugify(atx_heading_text(item.tokens[0].text))
                if anchor:
                    found.append(anchor)
            if found:
                item = LiteralLine(item.lines, item.tokens, item.indent, found[0], tuple(found[1:]))
            anchored.append(item)
        return anchored

    # -- HTML ---------------------------------------------------------------

    def render(
        self,
        source: SourceDocument | str | Sequence[str],
        heading_anchors: Mapping[int, str] | None = None,
    ) -> str:
        return self.render_lines(self.tokenize(source, heading_anchors))

    def render_lines(self, lines: Sequence[LiteralLine]) -> str:
        return "".join(self._render_line(item) for item in lines)

    def _render_line(self, item: LiteralLine) -> str:
        attrs = f' data-md-line-start="{item.lines.start}" data-md-line-end="{item.lines.end}"'
        if item.anchor_id:
            attrs += f' id="{html.escape(item.anchor_id)}"'
        markers = "".join(f'<span class="line-anchor" id="{html.escape(slug)}"></span>' for slug in item.extra_anchors)
        if item.tokens and item.tokens[0].kind is TokenKind.CODE_BLOCK_BODY:
            body = self._render_code_body(item.tokens[0])
            return f'<div class="line md-code-block-wrapper"{attrs}>{markers}<pre>{body}</pre></div>\n'
        if item.indent:
            attrs += f' style="padding-left:{len(item.indent)}ch"'
        body = "".join(self._render_token(token) for token in item.tokens)
        return f'<div class="line"{attrs}>{markers}{body}</div>\n'

    def _render_code_body(self, token: HighlightToken) -> str:
        highlighted: str | None = None
        if token.language and self._code_highlighter is not None:
            highlighted = self._code_highlighter(token.text, token.language)
        if highlighted is None:
            return html.escape(token.text, quote=False)
        return highlighted

    def _render_token(self, token: HighlightToken) -> str:
        if token.kind is TokenKind.PLAIN:
            return html.escape(token.text, quote=False)
        css_class = _CSS_CLASSES.get(token.kind, "")
        if not token.children:
            body = html.escape(token.text, quote=False)
        else:
            inner = "".join(self._render_token(child) for child in token.children)
            inner_length = sum(len(child.text) for child in token.children)
            open_length = _opening_delimiter_length(token)
            close_at = open_length + inner_length
            body = (
                html.escape(token.text[:open_length], quote=False)
                + inner
                + html.escape(token.text[close_at:], quote=False)
            )
        if token.kind is TokenKind.LINK:
            return f'<a href="{html.escape(_safe_href(token.href or ""))}" class="{css_class}">{body}</a>'
        return f'<span class="{css_class}">{body}</span>'


def _opening_delimiter_length(token: HighlightToken) -> int:
    if token.kind is TokenKind.BOLD:
        return 2
    if token.kind in (TokenKind.ITALIC, TokenKind.LINK):
        return 1
    return 0


def _safe_href(href: str) -> str:
    if href.strip().lower().startswith(("javascript:", "vbscript:")):
        logger.debug("Dropping script link target in literal view: %s", href)
        return "#"
    return href
