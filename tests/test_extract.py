from mdlens.extract import extract_descriptor, extract_selection, has_open_markup
from mdlens.model import LineRange, SelectionDescriptor


def test_list_item_keeps_marker_and_emphasis():
    source = ["- **Step 1:** Do the thing"]

    assert extract_selection("Step 1", [(1, 1)], source) == "- **Step 1:** Do the thing"


def test_fenced_block_includes_both_fences():
    source = "Intro\n\n```python\nx = 1\ny = 2\n```\n\nAfter"

    result = extract_selection("x = 1\ny = 2", [LineRange(3, 6)], source)

    assert result == "```python\nx = 1\ny = 2\n```"


def test_heading_hashes_are_kept():
    source = "# Title here\n\npara"

    assert extract_selection("Title here", [(1, 1)], source) == "# Title here"


def test_missing_anchor_returns_whole_block():
    source = "Some   spaced   text here\nsecond line"

    assert extract_selection("Completely different words", [(1, 2)], source) == source


def test_partial_paragraph_selection_narrows():
    source = "The quick brown fox jumps over the lazy dog"

    result = extract_selection("brown fox jumps", [(1, 1)], source)

    assert result.strip() == "brown fox jumps"


def test_whitespace_selection_returns_block():
    assert extract_selection("   ", [(1, 2)], "a\nb\nc") == "a\nb"


def test_no_ranges_returns_none():
    assert extract_selection("text", [], "text") is None


def test_ranges_outside_document_return_none():
    assert extract_selection("text", [(10, 12)], "one\ntwo") is None


def test_ranges_are_unioned():
    source = "alpha\nbeta\ngamma\ndelta"

    result = extract_selection("alpha beta gamma", [(3, 3), (1, 1)], source)

    assert result == "alpha\nbeta\ngamma"


def test_descriptor_wrapper():
    selection = SelectionDescriptor("Title here", (LineRange(1, 1),))

    assert selection.covering_range == LineRange(1, 1)
    assert extract_descriptor(selection, "# Title here") == "# Title here"


def test_open_markup_detection():
    assert has_open_markup("**Step 1")
    assert not has_open_markup("**Step 1:**")
    assert not has_open_markup("snake_case")
    assert has_open_markup("see [link")
    assert not has_open_markup("- item")


def test_too_short_expansion_returns_whole_block():
    source = "ab word"

    assert extract_selection("word qqqqqqqqqqqqqqqqqqqq", [(1, 1)], source) == source


def test_end_anchor_uses_last_occurrence():
    source = "Intro text here and the end here\nthe end here"

    result = extract_selection("Intro text here and the end here", [(1, 2)], source)

    assert result == source


def test_ranges_before_the_first_line_are_dropped():
    assert extract_selection("x", [(0, 0)], "line one") is None
    assert extract_selection("x", [(-3, -1)], "line one") is None
    assert extract_selection("   ", [(0, 1)], "line one\nline two") == "line one"
