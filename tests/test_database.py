import pytest

from tally.database import Database, ForeignIndex
from tally.expr import Expression, ExprIdx, Literal, Missing


def test_alloc_is_append_only():
  db = Database()
  first = db.alloc(Expression(Literal([1])))
  second = db.alloc(Expression(Literal([2])))
  assert first != second
  assert len(db) == 2
  assert db.get(first).kind == Literal([1])
  assert db[second].kind == Literal([2])


def test_mutation_is_seen_through_every_lookup():
  db = Database()
  idx = db.alloc(Expression(Literal([4])))
  db.get_mut(idx).drop()
  assert not db.get(idx).kept


def test_iterates_in_allocation_order():
  db = Database()
  idxs = [db.alloc(Expression(Literal([n]))) for n in range(3)]
  assert [idx for idx, _ in db] == idxs
  assert [expr.kind.values for _, expr in db] == [[0], [1], [2]]


def test_index_from_another_arena():
  db = Database()
  db.alloc(Expression(Missing()))
  other = Database()
  idx = other.alloc(Expression(Missing()))
  with pytest.raises(ForeignIndex):
    db.get(idx)


def test_index_out_of_range():
  db = Database()
  with pytest.raises(ForeignIndex):
    db.get(ExprIdx(db.id, 0))


def test_get_mut_checks_the_index_too():
  db = Database()
  other = Database()
  idx = other.alloc(Expression(Missing()))
  with pytest.raises(ForeignIndex):
    db.get_mut(idx)
