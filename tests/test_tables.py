from mdlens.tables import format_table, is_table_line, reflow_tables, split_cells


def test_format_table_pads_columns_and_collapses_separator():
    lines = ["| a | bb |", "|---|:-:|", "| ccc | d |"]

    assert format_table(lines) == [
        "| a   | bb  |",
        "| --- | --- |",
        "| ccc | d   |",
    ]


def test_reflow_is_idempotent():
    lines = [
        "Intro",
        "| Name | Description |",
        "|:-----|------------:|",
        "| x | a longer cell |",
        "",
        "after",
    ]
    once = reflow_tables(lines)
    assert reflow_tables(once) == once
    assert len(once) == len(lines)
    assert once[0] == "Intro"
    assert once[-1] == "after"


def test_single_row_is_left_alone():
    assert reflow_tables(["| just one |"]) == ["| just one |"]


def test_protected_lines_are_not_reflowed():
    lines = ["```", "| a | b |", "| c | dd |", "```"]

    assert reflow_tables(lines, protected={0, 1, 2, 3}) == lines
    assert reflow_tables(lines)[1] == "| a   | b   |"


def test_escaped_pipes_stay_inside_cells():
    assert split_cells(r"| a \| b | c |") == [r"a \| b", "c"]


def test_is_table_line():
    assert is_table_line("  | a | b |  ")
    assert not is_table_line("|")
    assert not is_table_line("| a \\|")
    assert not is_table_line("a | b")
