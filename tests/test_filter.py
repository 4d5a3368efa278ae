import pytest

from tally.config import Limits
from tally.database import Database
from tally.expr import Dice, Die, Literal, SetOp, SetOperation, SetSel
from tally.filter import (
  IncompatibleSetOperation,
  InvalidSetOperation,
  TooManyRerolls,
  resolve,
  select,
)
from tally.lower import lower
from tally.parse import parse
from tally.total import total


def resolved(source: str, ctx, limits: Limits | None = None):
  db = Database()
  root = lower(parse(source).tree, db, ctx, limits)
  resolve(db, root, ctx, limits)
  return db, root


def dice_of(db: Database, idx):
  kind = db.get(idx).kind
  assert isinstance(kind, Dice)
  return kind.values


def kept(db: Database, idxs):
  return [db.get(idx).kept for idx in idxs]


def faces(db: Database, die):
  """Every face a die showed, oldest first, as (values, kept, exploded)."""
  kind = db.get(die).kind
  assert isinstance(kind, Die)
  result = []
  for face in kind.values:
    lit = db.get(face)
    assert isinstance(lit.kind, Literal)
    result.append((lit.kind.values, lit.kept, lit.kind.exploded))
  return result


# keep and drop


def test_keep_highest(scripted):
  db, root = resolved("2d6kh1", scripted([3, 5]))
  assert kept(db, dice_of(db, root)) == [False, True]
  assert total(db, root) == 5


def test_keep_highest_ties_go_to_the_earlier_die(scripted):
  db, root = resolved("3d6kh2", scripted([4, 4, 4]))
  assert kept(db, dice_of(db, root)) == [True, True, False]


@pytest.mark.parametrize("k", [0, 1, 2, 4, 5, 9])
def test_keep_highest_keeps_the_top_k(scripted, k):
  rolls = [2, 6, 3, 6, 1]
  db, root = resolved(f"5d6kh{k}", scripted(rolls))
  dies = dice_of(db, root)
  kept_totals = [r for r, die in zip(rolls, dies) if db.get(die).kept]
  dropped_totals = [r for r, die in zip(rolls, dies) if not db.get(die).kept]
  assert len(kept_totals) == min(k, len(rolls))
  if kept_totals and dropped_totals:
    assert min(kept_totals) >= max(dropped_totals)


def test_drop_lowest(scripted):
  db, root = resolved("4d6pl1", scripted([3, 1, 4, 1]))
  assert kept(db, dice_of(db, root)) == [True, False, True, True]
  assert total(db, root) == 8


def test_value_selection_is_capped_at_num(scripted):
  db, root = resolved("4d6p1", scripted([1, 1, 1, 2]))
  assert kept(db, dice_of(db, root)) == [False, True, True, True]


def test_keep_greater(scripted):
  db, root = resolved("4d6k>3", scripted([1, 5, 6, 4]))
  assert kept(db, dice_of(db, root)) == [False, True, True, True]
  assert total(db, root) == 15


def test_ops_apply_in_order(scripted):
  # drop the lowest of four, then keep the highest two of what is left
  db, root = resolved("4d6pl1kh2", scripted([2, 5, 1, 4]))
  assert kept(db, dice_of(db, root)) == [False, True, False, True]
  assert total(db, root) == 9


# rerolls


def test_reroll_until_nothing_qualifies(scripted):
  db, root = resolved("1d6rr<3", scripted([1, 2, 5]))
  [die] = dice_of(db, root)
  assert faces(db, die) == [
    ([1], False, False),
    ([2], False, False),
    ([5], True, False),
  ]
  assert total(db, root) == 5


def test_reroll_is_capped(scripted):
  with pytest.raises(TooManyRerolls):
    resolved("1d6rr1", scripted([1, 1, 1]), Limits(reroll_limit=2))


def test_reroll_once(scripted):
  db, root = resolved("2d6ro1", scripted([1, 6, 1]))
  first, second = dice_of(db, root)
  assert faces(db, first) == [([1], False, False), ([1], True, False)]
  assert faces(db, second) == [([6], True, False)]
  assert total(db, root) == 7


def test_dropped_dice_are_not_rerolled(scripted):
  ctx = scripted([1, 6, 6, 4])
  db, root = resolved("3d6pl1rr<2", ctx)
  assert ctx.faces == [4]
  assert total(db, root) == 12


def test_reroll_once_can_select_a_dropped_die(scripted):
  ctx = scripted([1, 3, 4, 5, 6])
  db, root = resolved("4d6pl1rol1", ctx)
  first, *rest = dice_of(db, root)
  assert ctx.faces == []
  # the dropped die counts as 0, so it is the lowest and takes the reroll
  assert faces(db, first) == [([1], False, False), ([6], True, False)]
  assert kept(db, [first, *rest]) == [False, True, True, True]
  assert total(db, root) == 12


# explosions


def test_explode_adds_to_the_die(scripted):
  db, root = resolved("3d6e6", scripted([6, 2, 6, 6, 3]))
  first, second, third = dice_of(db, root)
  assert faces(db, first) == [([6], True, True), ([6], True, False)]
  assert faces(db, second) == [([2], True, False)]
  assert faces(db, third) == [([6], True, True), ([3], True, False)]
  assert total(db, root) == 12 + 2 + 9


def test_explode_greater_excludes_exploded_dice(scripted):
  ctx = scripted([5, 3, 6])
  db, root = resolved("2d6e>4", ctx)
  assert ctx.faces == []
  assert total(db, root) == 5 + 6 + 3


def test_explode_repeats_for_newly_selected_dice(scripted):
  # only one die is taken per round, so it takes three rounds
  db, root = resolved("3d6e1", scripted([1, 1, 1, 4, 5, 6]))
  assert [total(db, die) for die in dice_of(db, root)] == [5, 6, 7]
  assert total(db, root) == 18


def test_explode_can_select_a_dropped_die(scripted):
  ctx = scripted([2, 5, 6, 1])
  db, root = resolved("3d6pl1e<3", ctx)
  first, second, third = dice_of(db, root)
  assert ctx.faces == []
  assert faces(db, first) == [([2], True, True), ([1], True, False)]
  assert kept(db, [first, second, third]) == [False, True, True]
  assert total(db, root) == 11


def test_reroll_add_can_select_a_dropped_die(scripted):
  ctx = scripted([6, 3, 4])
  db, root = resolved("2d6pl1ral1", ctx)
  first, second = dice_of(db, root)
  assert ctx.faces == []
  assert [total(db, die) for die in (first, second)] == [6, 0]
  assert total(db, root) == 6


def test_reroll_add_happens_once(scripted):
  ctx = scripted([6, 6, 2, 6])
  db, root = resolved("2d6ra6", ctx)
  assert ctx.faces == []
  assert [total(db, die) for die in dice_of(db, root)] == [8, 12]


# min and max


def test_min_forces_low_dice_up(scripted):
  db, root = resolved("3d6mi3", scripted([1, 4, 2]))
  first, second, third = dice_of(db, root)
  assert faces(db, first) == [([1, 3], True, False)]
  assert faces(db, second) == [([4], True, False)]
  assert total(db, root) == 10


def test_max_forces_high_dice_down(scripted):
  db, root = resolved("2d6ma4", scripted([6, 2]))
  assert total(db, root) == 6


def test_max_after_explode(scripted):
  db, root = resolved("1d6e6ma4", scripted([6, 5]))
  [die] = dice_of(db, root)
  assert faces(db, die) == [([6], False, True), ([5, 4], True, False)]
  assert total(db, root) == 4


# validation


@pytest.mark.parametrize(
  ("op", "sel"),
  [
    ("rr", "h"),
    ("rr", "l"),
    *((op, sel) for op in ("mi", "ma") for sel in ("h", "l", ">", "<")),
  ],
)
@pytest.mark.parametrize("num", [0, 1, 6, 100])
def test_incompatible_selectors(scripted, op, sel, num):
  with pytest.raises(IncompatibleSetOperation):
    resolved(f"2d6{op}{sel}{num}", scripted([3, 4]))


def test_validation_happens_before_any_mutation(scripted):
  db = Database()
  ctx = scripted([3, 5, 2])
  root = lower(parse("2d6kh1 + 1d6rrh1").tree, db, ctx)
  with pytest.raises(IncompatibleSetOperation):
    resolve(db, root, ctx)
  assert all(expr.kept for _, expr in db)


# sets


def test_keep_on_a_set(scripted):
  db, root = resolved("(1d6, 3, 5)kh2", scripted([4]))
  items = db.get(root).kind.items
  assert kept(db, items) == [True, False, True]
  assert total(db, root) == 9


def test_drop_on_a_set(scripted):
  db, root = resolved("(2, 1d6)pl1", scripted([1]))
  assert total(db, root) == 2


def test_set_items_are_resolved_first(scripted):
  db, root = resolved("(2d6kh1, 3)kh1", scripted([1, 2]))
  assert total(db, root) == 3


def test_only_keep_and_drop_apply_to_sets(scripted):
  ctx = scripted([100, 100])
  with pytest.raises(InvalidSetOperation) as exc:
    resolved("(100, 2d100)e100", ctx)
  assert exc.value.operation == SetOperation(SetOp.EXPLODE, SetSel.NUMBER, 100)


# selection


def test_select_with_explicit_cap(scripted):
  db, root = resolved("4d6", scripted([6, 6, 6, 1]))
  dies = dice_of(db, root)
  op = SetOperation(SetOp.KEEP, SetSel.NUMBER, 6)
  assert select(db, dies, op) == set(dies[:3])
  assert select(db, dies, op, max_targets=2) == set(dies[:2])


def test_select_lowest(scripted):
  db, root = resolved("3d6", scripted([5, 2, 2]))
  dies = dice_of(db, root)
  op = SetOperation(SetOp.KEEP, SetSel.LOWEST, 1)
  assert select(db, dies, op) == {dies[1]}


def test_select_counts_dropped_children_as_zero(scripted):
  db, root = resolved("3d6pl1", scripted([1, 4, 5]))
  dies = dice_of(db, root)
  op = SetOperation(SetOp.KEEP, SetSel.LESS, 3)
  assert select(db, dies, op) == {dies[0]}
