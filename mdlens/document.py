"""Both views from one source, and the standalone page that hosts them."""

from __future__ import annotations

import html
import json
import logging
from pathlib import Path
from typing import Sequence

from .codehl import CodeHighlighter, PygmentsHighlighter
from .config import Settings
from .highlight import LiteralHighlighter
from .model import Heading, RenderResult, SourceDocument
from .renderer import MarkdownRenderer

logger = logging.getLogger(__name__)


class DocumentRenderer:
    """Render the annotated and literal views of a document in one pass.

    The literal view takes its heading ids from the annotated render so both
    views expose the same set of slugs.
    """

    def __init__(self, settings: Settings | None = None, code_highlighter: CodeHighlighter | None = None) -> None:
        self.settings = settings or Settings()
        if code_highlighter is None:
            code_highlighter = PygmentsHighlighter(self.settings.code_style)
        self._markdown = MarkdownRenderer(code_highlighter)
        self._literal = LiteralHighlighter(code_highlighter)

    def render(self, source: SourceDocument | str | Sequence[str], base_dir: Path | None = None) -> RenderResult:
        document = SourceDocument.coerce(source)
        annotated = self._markdown.render(document, base_dir=base_dir)
        literal_lines = self._literal.tokenize(document, annotated.heading_anchors())
        logger.debug(
            "Rendered %d lines: %d blocks, %d headings",
            len(document),
            len(annotated.blocks),
            len(annotated.headings),
        )
        return RenderResult(
            source=document,
            annotated_html=annotated.html,
            literal_html=self._literal.render_lines(literal_lines),
            headings=annotated.headings,
            blocks=annotated.blocks,
            literal_lines=literal_lines,
        )


def render(
    source: SourceDocument | str | Sequence[str],
    *,
    base_dir: Path | None = None,
    settings: Settings | None = None,
    code_highlighter: CodeHighlighter | None = None,
) -> RenderResult:
    return DocumentRenderer(settings, code_highlighter).render(source, base_dir=base_dir)


def build_toc_html(headings: Sequence[Heading]) -> str:
    items: list[str] = []
    for heading in headings:
        if not heading.slug:
            continue
        items.append(
            f'<a href="#{html.escape(heading.slug)}" data-slug="{html.escape(heading.slug)}" '
            f'class="toc-item toc-level-{heading.level}">{html.escape(heading.text)}</a>'
        )
    return "\n".join(items)


def build_document(
    result: RenderResult,
    title: str,
    settings: Settings | None = None,
    *,
    initial_heading: str | None = None,
    code_background: str = "#272822",
) -> str:
    """Assemble a standalone page with both views, the TOC and view scripts."""
    settings = settings or Settings()
    mode = settings.view_mode if settings.view_mode in {"rendered", "literal"} else "rendered"
    toc_class = "" if settings.toc_visible else " hidden"
    initial_json = json.dumps({"mode": mode, "heading": initial_heading or ""})
    escaped_title = html.escape(title)
    rendered_display = "block" if mode == "rendered" else "none"
    literal_display = "block" if mode == "literal" else "none"
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{escaped_title}</title>
  <style>
    :root {{
      color-scheme: light dark;
      --fg: #1f2937;
      --bg: #f9fafb;
      --code-bg: #e5e7eb;
      --border: #d1d5db;
      --link: #0b57d0;
      --toc-width: 200px;
    }}
    @media (prefers-color-scheme: dark) {{
      :root {{
        --fg: #e5e7eb;
        --bg: #111827;
        --code-bg: #1f2937;
        --border: #374151;
        --link: #8ab4f8;
      }}
    }}
    html, body {{
      margin: 0;
      padding: 0;
      background: var(--bg);
      color: var(--fg);
      font-family: "Noto Sans", "DejaVu Sans", sans-serif;
      line-height: 1.55;
      font-size: 16px;
    }}
    #toc {{
      position: fixed;
      top: 0;
      left: 0;
      bottom: 0;
      width: var(--toc-width);
      overflow-y: auto;
      border-right: 1px solid var(--border);
      padding: 0.8rem 0.5rem;
      box-sizing: border-box;
      font-size: 0.85rem;
    }}
    #toc.hidden {{
      display: none;
    }}
    #toc:not(.hidden) ~ #content {{
      margin-left: var(--toc-width);
    }}
    .toc-item {{
      display: block;
      color: inherit;
      text-decoration: none;
      padding: 0.1rem 0.2rem;
      border-radius: 4px;
    }}
    .toc-item.active {{
      background: var(--code-bg);
    }}
    .toc-level-2 {{ padding-left: 0.8rem; }}
    .toc-level-3 {{ padding-left: 1.6rem; }}
    .toc-level-4, .toc-level-5, .toc-level-6 {{ padding-left: 2.4rem; }}
    #content {{
      max-width: 980px;
      margin: 0 auto;
      padding: 1.1rem 1.4rem 4rem 1.4rem;
    }}
    a {{
      color: var(--link);
    }}
    pre, code {{
      font-family: "Noto Sans Mono", "DejaVu Sans Mono", monospace;
    }}
    #rendered-view code {{
      background: var(--code-bg);
      border-radius: 4px;
      padding: 0.1rem 0.35rem;
    }}
    #rendered-view pre {{
      background: {code_background};
      color: #f8f8f2;
      border: 1px solid var(--border);
      border-radius: 6px;
      padding: 0.8rem;
      overflow: auto;
    }}
    #rendered-view pre > code {{
      background: transparent;
      padding: 0;
    }}
    table {{
      border-collapse: collapse;
    }}
    th, td {{
      border: 1px solid var(--border);
      padding: 0.4rem 0.6rem;
    }}
    blockquote {{
      margin-left: 0;
      padding-left: 1rem;
      border-left: 4px solid var(--border);
    }}
    #literal-view {{
      font-family: "Noto Sans Mono", "DejaVu Sans Mono", monospace;
      font-size: 13px;
      background: #1e1e1e;
      color: #d4d4d4;
      padding: 0.8rem 1rem;
      border-radius: 6px;
    }}
    #literal-view .line {{
      white-space: pre-wrap;
      min-height: 1.45em;
    }}
    #literal-view pre {{
      margin: 0;
      white-space: pre-wrap;
      background: {code_background};
    }}
    .md-heading {{ color: #569cd6; font-weight: bold; }}
    .md-hr, .md-table-sep {{ color: #6b7280; }}
    .md-blockquote {{ color: #9ca3af; font-style: italic; }}
    .md-table {{ color: #d7ba7d; }}
    .md-list-marker {{ color: #c586c0; }}
    .md-bold {{ font-weight: bold; color: #ffffff; }}
    .md-italic {{ font-style: italic; }}
    .md-code {{ color: #ce9178; }}
    .md-code-fence {{ color: #6a9955; }}
    .md-comment {{ color: #6a9955; font-style: italic; }}
    .md-link {{ color: #4ec9b0; text-decoration: none; }}
    .code-header {{
      font-size: 0.75rem;
      color: #9ca3af;
      text-transform: lowercase;
      margin: -0.3rem 0 0.4rem 0;
      user-select: none;
    }}
    #search-bar {{
      position: fixed;
      top: 0.6rem;
      right: 1rem;
      z-index: 10;
      display: flex;
      gap: 0.4rem;
      align-items: center;
      background: var(--bg);
      border: 1px solid var(--border);
      border-radius: 6px;
      padding: 0.3rem 0.5rem;
      font-size: 0.85rem;
    }}
    #search-bar.hidden {{
      display: none;
    }}
    mark.search-highlight {{
      background: #f5d34f;
      color: #111827;
    }}
    mark.search-highlight.current {{
      background: #f6a05f;
    }}
  </style>
</head>
<body>
  <nav id="toc" class="toc{toc_class}">
{build_toc_html(result.headings)}
  </nav>
  <div id="search-bar" class="hidden">
    <input id="search-input" type="search" placeholder="Find in page" autocomplete="off"/>
    <span id="search-count"></span>
  </div>
  <main id="content" class="content {mode}">
    <article id="rendered-view" style="display:{rendered_display}">
{result.annotated_html}
    </article>
    <article id="literal-view" style="display:{literal_display}">
{result.literal_html}
    </article>
  </main>
  <script>
(() => {{
  const initial = {initial_json};
  let currentMode = initial.mode;
  const views = {{ rendered: "rendered-view", literal: "literal-view" }};

  function activeView() {{
    return document.getElementById(views[currentMode]);
  }}

  function headingsIn(view) {{
    if (currentMode === "rendered") {{
      return Array.from(view.querySelectorAll("h1[id], h2[id], h3[id], h4[id], h5[id], h6[id]"));
    }}
    return Array.from(view.querySelectorAll(".line[id], .line-anchor[id]"));
  }}

  function currentHeadingId() {{
    const view = activeView();
    let current = null;
    for (const heading of headingsIn(view)) {{
      if (heading.getBoundingClientRect().top <= 100) {{
        current = heading;
      }} else {{
        break;
      }}
    }}
    return current ? current.id : null;
  }}

  function scrollToHeading(slug, smooth) {{
    if (!slug) return false;
    const el = activeView().querySelector("#" + CSS.escape(slug));
    if (!el) return false;
    el.scrollIntoView({{ behavior: smooth ? "smooth" : "auto", block: "start" }});
    return true;
  }}

  function setMode(mode, headingId) {{
    currentMode = mode === "literal" ? "literal" : "rendered";
    document.getElementById("content").className = "content " + currentMode;
    document.getElementById("rendered-view").style.display = currentMode === "rendered" ? "block" : "none";
    document.getElementById("literal-view").style.display = currentMode === "literal" ? "block" : "none";
    if (searchMatches.length > 0) performSearch(document.getElementById("search-input").value);
    scrollToHeading(headingId, false);
  }}

  function updateTocHighlight() {{
    const id = currentHeadingId();
    for (const item of document.querySelectorAll(".toc-item")) {{
      item.classList.toggle("active", !!id && item.dataset.slug === id);
    }}
  }}

  function lineRange(el) {{
    const start = parseInt(el.getAttribute("data-md-line-start"), 10);
    const end = parseInt(el.getAttribute("data-md-line-end"), 10);
    if (Number.isNaN(start) || Number.isNaN(end)) return null;
    return [Math.min(start, end), Math.max(start, end)];
  }}

  function enclosingRanges(node, into) {{
    while (node && node !== document.body) {{
      if (node.nodeType === Node.ELEMENT_NODE && node.hasAttribute("data-md-line-start")) {{
        const range = lineRange(node);
        if (range) into.push(range);
      }}
      node = node.parentNode;
    }}
  }}

  // Selection text plus the line ranges of every annotated element it touches.
  window.__mdlensSelection = () => {{
    const sel = window.getSelection();
    if (!sel || sel.rangeCount === 0 || sel.isCollapsed) {{
      return {{ text: "", ranges: [], mode: currentMode }};
    }}
    const range = sel.getRangeAt(0);
    const ranges = [];
    enclosingRanges(range.startContainer, ranges);
    enclosingRanges(range.endContainer, ranges);
    let root = range.commonAncestorContainer;
    if (root.nodeType !== Node.ELEMENT_NODE) root = root.parentElement;
    if (root) {{
      for (const el of root.querySelectorAll("[data-md-line-start]")) {{
        if (sel.containsNode(el, true)) {{
          const found = lineRange(el);
          if (found) ranges.push(found);
        }}
      }}
    }}
    return {{ text: sel.toString(), ranges, mode: currentMode }};
  }};

  window.__mdlensState = () => ({{ mode: currentMode, heading: currentHeadingId() }});

  const BASE_FONT_SIZE = 16;
  const LITERAL_BASE_SIZE = 13;
  let fontSizeLevel = 0;

  function applyFontSize() {{
    const scale = 1 + fontSizeLevel * 0.1;
    document.body.style.fontSize = BASE_FONT_SIZE * scale + "px";
    document.getElementById("literal-view").style.fontSize = LITERAL_BASE_SIZE * scale + "px";
  }}

  function adjustFontSize(delta) {{
    fontSizeLevel = Math.max(-3, Math.min(5, fontSizeLevel + delta));
    applyFontSize();
  }}

  function resetFontSize() {{
    fontSizeLevel = 0;
    applyFontSize();
  }}

  let searchMatches = [];
  let currentMatchIndex = -1;

  function openSearch() {{
    document.getElementById("search-bar").classList.remove("hidden");
    const input = document.getElementById("search-input");
    input.focus();
    input.select();
  }}

  function closeSearch() {{
    document.getElementById("search-bar").classList.add("hidden");
    clearHighlights();
    document.getElementById("search-input").value = "";
    document.getElementById("search-count").textContent = "";
  }}

  function clearHighlights() {{
    for (const mark of document.querySelectorAll("mark.search-highlight")) {{
      const parent = mark.parentNode;
      parent.replaceChild(document.createTextNode(mark.textContent), mark);
      parent.normalize();
    }}
    searchMatches = [];
    currentMatchIndex = -1;
  }}

  function highlightTextNode(node, needle) {{
    const text = node.textContent;
    const lowered = text.toLowerCase();
    let index = lowered.indexOf(needle);
    if (index === -1) return;
    const fragment = document.createDocumentFragment();
    let last = 0;
    while (index !== -1) {{
      if (index > last) fragment.appendChild(document.createTextNode(text.slice(last, index)));
      const mark = document.createElement("mark");
      mark.className = "search-highlight";
      mark.textContent = text.slice(index, index + needle.length);
      fragment.appendChild(mark);
      last = index + needle.length;
      index = lowered.indexOf(needle, last);
    }}
    if (last < text.length) fragment.appendChild(document.createTextNode(text.slice(last)));
    node.parentNode.replaceChild(fragment, node);
  }}

  function performSearch(query) {{
    clearHighlights();
    const counter = document.getElementById("search-count");
    if (!query || query.length < 2) {{
      counter.textContent = "";
      return;
    }}
    const walker = document.createTreeWalker(activeView(), NodeFilter.SHOW_TEXT, null);
    const textNodes = [];
    while (walker.nextNode()) textNodes.push(walker.currentNode);
    const needle = query.toLowerCase();
    for (const node of textNodes) highlightTextNode(node, needle);
    searchMatches = Array.from(activeView().querySelectorAll("mark.search-highlight"));
    currentMatchIndex = searchMatches.length > 0 ? 0 : -1;
    showCurrentMatch();
  }}

  function showCurrentMatch() {{
    const count = searchMatches.length;
    document.getElementById("search-count").textContent = count > 0 ? `${{currentMatchIndex + 1}}/${{count}}` : "No results";
    searchMatches.forEach((mark, i) => mark.classList.toggle("current", i === currentMatchIndex));
    if (searchMatches[currentMatchIndex]) {{
      searchMatches[currentMatchIndex].scrollIntoView({{ behavior: "smooth", block: "center" }});
    }}
  }}

  function searchNext() {{
    if (searchMatches.length === 0) return;
    currentMatchIndex = (currentMatchIndex + 1) % searchMatches.length;
    showCurrentMatch();
  }}

  function searchPrev() {{
    if (searchMatches.length === 0) return;
    currentMatchIndex = (currentMatchIndex - 1 + searchMatches.length) % searchMatches.length;
    showCurrentMatch();
  }}

  const searchInput = document.getElementById("search-input");
  searchInput.addEventListener("input", (event) => performSearch(event.target.value));
  searchInput.addEventListener("keydown", (event) => {{
    if (event.key === "Enter") {{
      event.preventDefault();
      if (event.shiftKey) searchPrev(); else searchNext();
    }} else if (event.key === "Escape") {{
      event.preventDefault();
      closeSearch();
    }}
  }});

  // Language label above each highlighted block in the rendered view.
  function initCodeBlocks() {{
    for (const code of document.querySelectorAll("#rendered-view pre > code")) {{
      const languageClass = Array.from(code.classList).find((name) => name.startsWith("language-"));
      const pre = code.parentElement;
      if (!languageClass || pre.querySelector(".code-header")) continue;
      const header = document.createElement("div");
      header.className = "code-header";
      header.textContent = languageClass.slice("language-".length);
      pre.insertBefore(header, code);
    }}
  }}

  document.addEventListener("keydown", (event) => {{
    const target = event.target;
    if (target && (target.tagName === "INPUT" || target.tagName === "TEXTAREA")) return;
    if ((event.metaKey || event.ctrlKey) && !event.altKey) {{
      const key = event.key.toLowerCase();
      if (key === "f") {{
        event.preventDefault();
        openSearch();
      }} else if (key === "=" || key === "+") {{
        event.preventDefault();
        adjustFontSize(1);
      }} else if (key === "-") {{
        event.preventDefault();
        adjustFontSize(-1);
      }} else if (key === "0") {{
        event.preventDefault();
        resetFontSize();
      }}
      return;
    }}
    if (event.key === "Escape" && !document.getElementById("search-bar").classList.contains("hidden")) {{
      closeSearch();
      return;
    }}
    if (event.key === "Tab") {{
      event.preventDefault();
      const headingId = currentHeadingId();
      setMode(currentMode === "rendered" ? "literal" : "rendered", headingId);
      return;
    }}
    if (event.metaKey || event.ctrlKey || event.altKey) return;
    if (event.key.toLowerCase() === "c") {{
      document.getElementById("toc").classList.toggle("hidden");
    }}
  }});

  for (const item of document.querySelectorAll(".toc-item")) {{
    item.addEventListener("click", (event) => {{
      event.preventDefault();
      scrollToHeading(item.dataset.slug, true);
    }});
  }}

  window.addEventListener("scroll", updateTocHighlight, {{ passive: true }});
  document.addEventListener("DOMContentLoaded", () => {{
    initCodeBlocks();
    applyFontSize();
    setMode(currentMode, initial.heading);
    updateTocHighlight();
  }});
}})();
  </script>
</body>
</html>
"""
