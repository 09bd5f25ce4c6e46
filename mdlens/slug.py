"""Heading identifiers shared by the rendered and literal views."""

from __future__ import annotations


def slugify(text: str) -> str:
    """Lowercase, map non `[a-z0-9]` characters to `-`, collapse and trim.

    Repeated headings produce the same slug; navigation resolves the first.
    """
    mapped = "".join(ch if ("a" <= ch <= "z" or "0" <= ch <= "9") else "-" for ch in (text or "").lower())
    return "-".join(part for part in mapped.split("-") if part)
