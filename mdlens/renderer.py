"""Rendered view: markdown-it conversion with source line ranges on blocks."""

from __future__ import annotations

import base64
import html
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence
from urllib.parse import unquote

from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from .codehl import CodeHighlighter
from .model import AnnotatedBlock, Heading, LineRange, SourceDocument
from .slug import slugify

logger = logging.getLogger(__name__)

LINE_START_ATTR = "data-md-line-start"
LINE_END_ATTR = "data-md-line-end"
_PASSTHROUGH_URL_PREFIXES = ("http://", "https://", "file://", "data:", "mailto:", "#")


@dataclass
class AnnotatedOutput:
    html: str
    blocks: list[AnnotatedBlock] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)

    def heading_anchors(self) -> dict[int, str]:
        """Map each heading's first source line to its slug."""
        return {heading.lines.start: heading.slug for heading in self.headings if heading.slug}


def resolve_image_url(url: str, base_dir: Path | None) -> str:
    """Embed a relative local image as a data URI; leave anything else alone."""
    if not url or url.startswith(_PASSTHROUGH_URL_PREFIXES) or base_dir is None:
        return url
    candidate = base_dir / unquote(url)
    try:
        if not candidate.is_file():
            return url
        data = candidate.read_bytes()
    except Exception as exc:
        logger.debug("Could not embed image %s: %s", candidate, exc)
        return url
    mime_type = mimetypes.guess_type(candidate.name)[0] or "application/octet-stream"
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _source_line_range(token_map: Sequence[int], lines: Sequence[str]) -> LineRange:
    """Convert a 0-based half-open markdown-it map to an inclusive 1-based range.

    Trailing blank lines that markdown-it folds into list items and quotes
    are not claimed.
    """
    start = int(token_map[0]) + 1
    end = max(start, int(token_map[1]))
    while end > start and end <= len(lines) and not lines[end - 1].strip():
        end -= 1
    return LineRange(start, end)


def _line_attrs(line_range: LineRange) -> str:
    return f' {LINE_START_ATTR}="{line_range.start}" {LINE_END_ATTR}="{line_range.end}"'


class MarkdownRenderer:
    """Converts markdown to HTML and tags every block with its source lines."""

    def __init__(self, code_highlighter: CodeHighlighter | None = None) -> None:
        self._code_highlighter = code_highlighter
        self._md = MarkdownIt(
            "commonmark",
            # No typographer: rendered text has to stay findable in the source.
            {"html": True, "typographer": False},
        ).enable("table").enable("strikethrough")
        self._md.use(footnote_plugin).use(tasklists_plugin)

        default_render_token = self._md.renderer.renderToken
        default_image = self._md.renderer.rules["image"]

        def record_block(tokens, idx, env) -> LineRange | None:
            token = tokens[idx]
            if not token.map or len(token.map) != 2 or not isinstance(env, dict):
                return None
            line_range = _source_line_range(token.map, env.get("source_lines", ()))
            slug: str | None = None
            if token.type == "heading_open":
                slug = self._record_heading(tokens, idx, line_range, env)
            kind = token.type[: -len("_open")] if token.type.endswith("_open") else token.type
            env.setdefault("blocks", []).append(AnnotatedBlock(token.tag, kind, line_range, slug or None, token.level))
            return line_range

        def custom_render_token(tokens, idx, options, env):
            # Attach source-line metadata so rendered selections can be mapped
            # back to the markdown that produced them.
            token = tokens[idx]
            if not token.hidden and (token.nesting == 1 or token.type == "hr"):
                line_range = record_block(tokens, idx, env)
                if line_range is not None:
                    token.attrSet(LINE_START_ATTR, str(line_range.start))
                    token.attrSet(LINE_END_ATTR, str(line_range.end))
            return default_render_token(tokens, idx, options, env)

        def custom_fence(tokens, idx, options, env):
            token = tokens[idx]
            info = token.info.strip() if token.info else ""
            language = info.split(maxsplit=1)[0] if info else ""
            line_range = record_block(tokens, idx, env)
            line_attrs = _line_attrs(line_range) if line_range is not None else ""
            class_attr = f' class="language-{html.escape(language)}"' if language else ""
            body = self._highlight_code(token.content, language)
            return f"<pre{line_attrs}><code{class_attr}>{body}</code></pre>\n"

        def custom_code_block(tokens, idx, options, env):
            token = tokens[idx]
            line_range = record_block(tokens, idx, env)
            line_attrs = _line_attrs(line_range) if line_range is not None else ""
            return f"<pre{line_attrs}><code>{html.escape(token.content, quote=False)}</code></pre>\n"

        def custom_image(tokens, idx, options, env):
            token = tokens[idx]
            base_dir = env.get("base_dir") if isinstance(env, dict) else None
            src = token.attrGet("src")
            if isinstance(src, str) and base_dir is not None:
                token.attrSet("src", resolve_image_url(src, base_dir))
            return default_image(tokens, idx, options, env)

        self._md.renderer.rules["fence"] = custom_fence
        self._md.renderer.rules["code_block"] = custom_code_block
        self._md.renderer.rules["image"] = custom_image
        self._md.renderer.renderToken = custom_render_token

    @staticmethod
    def _record_heading(tokens, idx: int, line_range: LineRange, env: dict) -> str:
        """Slug the parsed heading text, set it as the element id, and log a TOC entry."""
        token = tokens[idx]
        inline = tokens[idx + 1] if idx + 1 < len(tokens) else None
        parts: list[str] = []
        for child in (inline.children or []) if inline is not None else []:
            if child.type in {"text", "code_inline"}:
                parts.append(child.content)
            elif child.type in {"softbreak", "hardbreak"}:
                parts.append(" ")
        text = "".join(parts).strip()
        slug = slugify(text)
        if slug:
            token.attrSet("id", slug)
        if text:
            level = int(token.tag[1:]) if token.tag[1:].isdigit() else 1
            env.setdefault("headings", []).append(Heading(level, text, slug, line_range))
        return slug

    def _highlight_code(self, code: str, language: str) -> str:
        if language and self._code_highlighter is not None:
            highlighted = self._code_highlighter(code, language)
            if highlighted is not None:
                return highlighted
        return html.escape(code, quote=False)

    def render(self, source: SourceDocument | str | Sequence[str], base_dir: Path | None = None) -> AnnotatedOutput:
        document = SourceDocument.coerce(source)
        env: dict = {"source_lines": document.lines, "blocks": [], "headings": []}
        if base_dir is not None:
            env["base_dir"] = Path(base_dir)
        body = self._md.render(document.text, env)
        return AnnotatedOutput(body, list(env["blocks"]), list(env["headings"]))
