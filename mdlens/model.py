"""Data types shared by the renderers and the selection extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence


@dataclass(frozen=True, order=True)
class LineRange:
    """Inclusive, 1-indexed range of source lines."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1:
            raise ValueError(f"line range must start at 1 or later, got {self.start}")
        if self.start > self.end:
            raise ValueError(f"line range start {self.start} is after end {self.end}")

    @classmethod
    def parse(cls, value: str) -> LineRange:
        """Parse `N` or `N-M` into a range."""
        text = (value or "").strip()
        start_text, sep, end_text = text.partition("-")
        try:
            start = int(start_text)
            end = int(end_text) if sep else start
        except ValueError as exc:
            raise ValueError(f"invalid line range: {value!r}") from exc
        return cls(start, end)

    @staticmethod
    def union(ranges: Iterable[LineRange]) -> LineRange | None:
        """Return the minimal range covering every input range, or None."""
        min_line: int | None = None
        max_line: int | None = None
        for item in ranges:
            if min_line is None or item.start < min_line:
                min_line = item.start
            if max_line is None or item.end > max_line:
                max_line = item.end
        if min_line is None or max_line is None:
            return None
        return LineRange(min_line, max_line)

    def to_attr(self) -> str:
        return f"{self.start}-{self.end}"

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class SourceDocument:
    """Immutable source text, addressed by 1-indexed lines."""

    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> SourceDocument:
        normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
        return cls(tuple(normalized.split("\n")))

    @classmethod
    def coerce(cls, source: SourceDocument | str | Sequence[str]) -> SourceDocument:
        """Accept a document, raw text, or an already split line sequence."""
        if isinstance(source, SourceDocument):
            return source
        if isinstance(source, str):
            return cls.from_text(source)
        return cls(tuple(str(line) for line in source))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def line(self, number: int) -> str:
        return self.lines[number - 1]

    def clamp(self, line_range: LineRange) -> LineRange | None:
        """Clip a range to the document, or None when nothing is left."""
        start = max(1, line_range.start)
        end = min(len(self.lines), line_range.end)
        if start > end:
            return None
        return LineRange(start, end)

    def slice(self, line_range: LineRange) -> str:
        clamped = self.clamp(line_range)
        if clamped is None:
            return ""
        return "\n".join(self.lines[clamped.start - 1 : clamped.end])


class TokenKind(str, Enum):
    COMMENT = "comment"
    CODE_FENCE = "code-fence"
    CODE_BLOCK_BODY = "code-block-body"
    HEADING = "heading"
    HORIZONTAL_RULE = "horizontal-rule"
    BLOCKQUOTE = "blockquote"
    TABLE_ROW = "table-row"
    TABLE_SEPARATOR = "table-separator"
    LIST_MARKER = "list-marker"
    BOLD = "bold"
    ITALIC = "italic"
    INLINE_CODE = "inline-code"
    LINK = "link"
    PLAIN = "plain"


@dataclass(frozen=True)
class HighlightToken:
    """Classified span of literal text.

    `text` always holds every character the token covers, delimiters
    included. Tokens that wrap other markup (table rows, bold, italic, links)
    also list the inner tokens in `children`; their texts concatenate to the
    part of `text` between the delimiters.
    """

    kind: TokenKind
    text: str
    children: tuple[HighlightToken, ...] = ()
    href: str | None = None
    language: str | None = None


@dataclass(frozen=True)
class LiteralLine:
    """One line of the literal view (a whole body for fenced code).

    `extra_anchors` holds heading slugs for further lines a multi-line body
    covers; they are emitted as empty id markers.
    """

    lines: LineRange
    tokens: tuple[HighlightToken, ...]
    indent: str = ""
    anchor_id: str | None = None
    extra_anchors: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return self.indent + "".join(token.text for token in self.tokens)


@dataclass(frozen=True)
class AnnotatedBlock:
    tag: str
    kind: str
    lines: LineRange
    slug: str | None = None
    level: int = 0


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    slug: str
    lines: LineRange


@dataclass(frozen=True)
class SelectionDescriptor:
    """Selected plain text plus the line ranges of the elements it touches."""

    text: str
    ranges: tuple[LineRange, ...] = ()

    @property
    def covering_range(self) -> LineRange | None:
        return LineRange.union(self.ranges)


@dataclass
class RenderResult:
    source: SourceDocument
    annotated_html: str
    literal_html: str
    headings: list[Heading] = field(default_factory=list)
    blocks: list[AnnotatedBlock] = field(default_factory=list)
    literal_lines: list[LiteralLine] = field(default_factory=list)

    @property
    def slugs(self) -> list[str]:
        return [heading.slug for heading in self.headings]
