"""Smart copy: map a rendered-view selection back to its markdown source.

Matching rendered text against raw markdown is not injective, so every step
here is a best-effort narrowing of the candidate block. Any failure falls back
to returning the whole candidate block.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from .model import LineRange, SelectionDescriptor, SourceDocument

logger = logging.getLogger(__name__)

SYNTAX_CHARS = frozenset("*_`#|[]()>~-")
ANCHOR_WORDS = 3
MIN_RESULT_RATIO = 0.5

_OPENING_FENCE_PREFIX_RE = re.compile(r"\s*(?:`{3,}|~{3,})[^\n]*\n\s*")
_CLOSING_FENCE_SUFFIX_RE = re.compile(r"\s*(?:`{3,}|~{3,})\s*")
_LIST_PREFIX_RE = re.compile(r"^\s*(?:[-*+]|\d{1,9}[.)])\s+")


def _coerce_range(item: LineRange | Sequence[int]) -> LineRange | None:
    if isinstance(item, LineRange):
        return item
    try:
        first, last = int(item[0]), int(item[1])
    except (TypeError, ValueError, IndexError):
        logger.debug("Ignoring malformed line range %r", item)
        return None
    start, end = sorted((first, last))
    if end < 1:
        logger.debug("Ignoring line range before the document start %r", item)
        return None
    return LineRange(max(1, start), end)


def _find_start(block: str, words: list[str]) -> int:
    anchor = " ".join(words[:ANCHOR_WORDS])
    index = block.find(anchor)
    if index == -1:
        index = block.find(words[0])
    return index


def _find_end(block: str, words: list[str]) -> int:
    # Last occurrence, so a repeated trailing phrase pulls in more content.
    anchor = " ".join(words[-ANCHOR_WORDS:])
    index = block.rfind(anchor)
    if index != -1:
        return index + len(anchor)
    index = block.rfind(words[-1])
    if index != -1:
        return index + len(words[-1])
    return len(block)


def _expand_backward(block: str, index: int) -> int:
    """Walk back over syntax characters, then spaces, then syntax characters."""
    while index > 0 and block[index - 1] in SYNTAX_CHARS:
        index -= 1
    while index > 0 and block[index - 1] == " ":
        index -= 1
    while index > 0 and block[index - 1] in SYNTAX_CHARS:
        index -= 1
    return index


def _expand_forward(block: str, index: int) -> int:
    length = len(block)
    while index < length and block[index] in SYNTAX_CHARS:
        index += 1
    while index < length and block[index] == " ":
        index += 1
    while index < length and block[index] in SYNTAX_CHARS:
        index += 1
    return index


def _line_start(block: str, index: int) -> int:
    return block.rfind("\n", 0, index) + 1


def _line_end(block: str, index: int) -> int:
    newline = block.find("\n", index)
    return len(block) if newline == -1 else newline


def _count_runs(text: str, ch: str, *, min_length: int = 1, intraword_ok: bool = True) -> int:
    """Count runs of `ch`; with intraword_ok False, runs inside a word are skipped."""
    count = 0
    i = 0
    length = len(text)
    while i < length:
        if text[i] != ch:
            i += 1
            continue
        start = i
        while i < length and text[i] == ch:
            i += 1
        if i - start < min_length:
            continue
        if not intraword_ok:
            before = text[start - 1] if start > 0 else " "
            after = text[i] if i < length else " "
            if before.isalnum() and after.isalnum():
                continue
        count += 1
    return count


def has_open_markup(segment: str) -> bool:
    """True when the segment leaves an emphasis, code, strike or link unclosed."""
    text = _LIST_PREFIX_RE.sub("", segment, count=1)
    if _count_runs(text, "*") % 2 or _count_runs(text, "`") % 2:
        return True
    if _count_runs(text, "~", min_length=2) % 2:
        return True
    if _count_runs(text, "_", intraword_ok=False) % 2:
        return True
    return text.count("[") > text.count("]") or text.count("(") > text.count(")")


def _balance_markup(block: str, start: int, end: int) -> tuple[int, int]:
    """Grow to whole lines when the region cuts through inline markup."""
    if has_open_markup(block[max(start, _line_start(block, end)) : end]):
        end = _line_end(block, end)
    if has_open_markup(block[start : min(end, _line_end(block, start))]):
        start = _line_start(block, start)
    return start, end


def extract_selection(
    selection_text: str,
    intersected_ranges: Iterable[LineRange | Sequence[int]],
    source: SourceDocument | str | Sequence[str],
) -> str | None:
    """Return the markdown behind a selection, or None when no block was hit.

    `intersected_ranges` are the line ranges of every annotated element the
    selection touches; `source` is the full document.
    """
    document = SourceDocument.coerce(source)
    ranges = [item for item in (_coerce_range(raw) for raw in intersected_ranges) if item is not None]
    covering = LineRange.union(ranges)
    if covering is None:
        return None
    clamped = document.clamp(covering)
    if clamped is None:
        return None

    block = document.slice(clamped)
    text = selection_text or ""
    if not text.strip():
        return block

    words = text.split()
    start = _find_start(block, words)
    if start == -1:
        logger.debug("Selection anchor not found in lines %s; copying the whole block", clamped.to_attr())
        return block
    end = _find_end(block, words)
    if end <= start:
        logger.debug("Selection end anchor precedes start in lines %s", clamped.to_attr())
        return block

    start = _expand_backward(block, start)
    end = _expand_forward(block, end)

    # Keep heading hashes, quote markers and list markers with the text.
    line_start = _line_start(block, start)
    if not any(ch.isalpha() for ch in block[line_start:start]):
        start = line_start

    if start > 0 and _OPENING_FENCE_PREFIX_RE.fullmatch(block[:start]):
        start = 0

    start, end = _balance_markup(block, start, end)

    if end < len(block) and _CLOSING_FENCE_SUFFIX_RE.fullmatch(block[end:]):
        end = len(block)

    candidate = block[start:end]
    if len(candidate) < len(text) * MIN_RESULT_RATIO:
        logger.debug("Expanded selection too short (%d < %d/2); copying the whole block", len(candidate), len(text))
        return block
    return candidate


def extract_descriptor(selection: SelectionDescriptor, source: SourceDocument | str | Sequence[str]) -> str | None:
    return extract_selection(selection.text, selection.ranges, source)
