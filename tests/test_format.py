import pytest

from tally.database import Database
from tally.evaluate import roll
from tally.expr import Expression, Literal
from tally.format import format_expr


@pytest.mark.parametrize(
  ("source", "rolls", "expected"),
  [
    ("1d20 + 5", [14], "1d20 (14) + 5"),
    ("d20", [7], "1d20 (7)"),
    ("3d%", [5, 50, 100], "3d100 (5, 50, 100)"),
    ("(2, 1d6)", [3], "(2, 1d6 (3))"),
    ("(3,)", [], "(3,)"),
    ("()", [], "()"),
    ("0d6", [], "0d6 ()"),
    ("2d6kh1", [3, 5], "2d6kh1 (~~3~~, 5)"),
    ("1d6rr1", [1, 4], "1d6rr1 (~~1~~ 4)"),
    ("1d6e6", [6, 2], "1d6e6 (6! 2)"),
    ("1d6mi3", [1], "1d6mi3 (~~1~~ 3)"),
    ("2d20ro<3", [2, 10, 4], "2d20ro<3 (~~2~~ 4, 10)"),
    ("(1d6, 4)kl1", [2], "(1d6 (2), ~~4~~)kl1"),
  ],
)
def test_breakdown(scripted, source, rolls, expected):
  assert roll(source, scripted(rolls)).format() == expected


@pytest.mark.parametrize(
  ("source", "expected"),
  [
    ("2 * (1 + 3)", "2 * (1 + 3)"),
    ("(2 * 1) + 3", "2 * 1 + 3"),
    ("1 - (2 - 3)", "1 - (2 - 3)"),
    ("(1 - 2) - 3", "1 - 2 - 3"),
    ("8 / (4 / 2)", "8 / (4 / 2)"),
    ("-(1 + 2)", "-(1 + 2)"),
    ("-3", "-3"),
    ("--3", "--3"),
  ],
)
def test_parenthesized_by_precedence(scripted, source, expected):
  assert roll(source, scripted([])).format() == expected


def test_dropped_die_is_struck_whole(scripted):
  # the rerolled face is not struck a second time inside the dropped die
  result = roll("2d6ro1kh1", scripted([1, 5, 2]))
  assert result.format() == "2d6ro1kh1 (~~1 2~~, 5)"


def test_long_lists_are_cut_short(scripted):
  result = roll("5d6", scripted([1, 2, 3, 4, 5]))
  assert result.format(width=5) == "5d6 (1, …)"
  assert result.format() == "5d6 (1, 2, 3, 4, 5)"


def test_overwritten_literal():
  db = Database()
  idx = db.alloc(Expression(Literal([1, 2, 3])))
  assert format_expr(db, idx) == "~~1~~ ~~2~~ 3"
