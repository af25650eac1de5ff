import re

import pytest

from pagetree.cli import main


def _lines(capsys):
    assert main([]) == 0
    return capsys.readouterr().out.splitlines()


def test_output_has_three_lines(capsys):
    lines = _lines(capsys)
    assert len(lines) == 3


def test_small_tree_is_one_page(capsys):
    lines = _lines(capsys)
    assert lines[0] == "Tree has 1 pages"


def test_cherry_is_deleted(capsys):
    lines = _lines(capsys)
    assert lines[1] == "Deleted 'cherry': true"


def test_final_page_count_line(capsys):
    lines = _lines(capsys)
    match = re.fullmatch(r"After adding 100 items, tree has (\d+) pages", lines[2])
    assert match is not None
    assert int(match.group(1)) >= 1


def test_unknown_argument_is_rejected():
    with pytest.raises(SystemExit) as info:
        main(["--bogus"])
    assert info.value.code == 2