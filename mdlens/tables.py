"""Fixed-width reflow for pipe tables in the literal view."""

from __future__ import annotations

import re
from typing import Container, Sequence

MIN_COLUMN_WIDTH = 3
_SEPARATOR_CELL_RE = re.compile(r"^[-:]+$")


def is_table_line(line: str) -> bool:
    """Return True when the trimmed line starts and ends with a bare `|`."""
    stripped = line.strip()
    return len(stripped) >= 2 and stripped.startswith("|") and stripped.endswith("|") and not stripped.endswith("\\|")


def split_cells(line: str) -> list[str]:
    """Split a table line on unescaped pipes, dropping the outer borders."""
    stripped = line.strip()
    cells: list[str] = []
    buffer: list[str] = []
    i = 0
    while i < len(stripped):
        ch = stripped[i]
        if ch == "\\" and i + 1 < len(stripped):
            buffer.append(stripped[i : i + 2])
            i += 2
            continue
        if ch == "|":
            cells.append("".join(buffer))
            buffer = []
        else:
            buffer.append(ch)
        i += 1
    cells.append("".join(buffer))
    return [cell.strip() for cell in cells[1:-1]]


def _cell_width(cell: str) -> int:
    if _SEPARATOR_CELL_RE.match(cell):
        return cell.count("-")
    return len(cell)


def format_table(table_lines: Sequence[str]) -> list[str]:
    """Pad every cell to its column width and collapse the separator row."""
    rows = [split_cells(line) for line in table_lines]
    if len(rows) < 2 or any(not row for row in rows):
        return list(table_lines)

    widths: list[int] = []
    for row in rows:
        for col, cell in enumerate(row):
            width = max(_cell_width(cell), MIN_COLUMN_WIDTH)
            if col < len(widths):
                widths[col] = max(widths[col], width)
            else:
                widths.append(width)

    formatted: list[str] = []
    for row_index, row in enumerate(rows):
        cells: list[str] = []
        for col, cell in enumerate(row):
            width = widths[col]
            if row_index == 1 and _SEPARATOR_CELL_RE.match(cell):
                cells.append("-" * width)
            else:
                cells.append(cell.ljust(width))
        formatted.append("| " + " | ".join(cells) + " |")
    return formatted


def reflow_tables(lines: Sequence[str], protected: Container[int] = ()) -> list[str]:
    """Reformat every maximal run of table lines; line count is preserved.

    Indices in `protected` (0-based, e.g. lines inside fenced code) are never
    treated as table lines and break any run they interrupt.
    """
    output: list[str] = []
    buffer: list[str] = []
    for index, line in enumerate(lines):
        if index not in protected and is_table_line(line):
            buffer.append(line)
            continue
        if buffer:
            output.extend(format_table(buffer))
            buffer = []
        output.append(line)
    if buffer:
        output.extend(format_table(buffer))
    return output
