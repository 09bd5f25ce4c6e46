"""Markdown viewer core: rendered and literal views plus smart copy."""

from .document import DocumentRenderer, build_document, render
from .extract import extract_selection
from .model import (
    AnnotatedBlock,
    Heading,
    HighlightToken,
    LineRange,
    LiteralLine,
    RenderResult,
    SelectionDescriptor,
    SourceDocument,
    TokenKind,
)
from .slug import slugify

__version__ = "0.1.0"

__all__ = [
    "AnnotatedBlock",
    "DocumentRenderer",
    "Heading",
    "HighlightToken",
    "LineRange",
    "LiteralLine",
    "RenderResult",
    "SelectionDescriptor",
    "SourceDocument",
    "TokenKind",
    "build_document",
    "extract_selection",
    "render",
    "slugify",
]
