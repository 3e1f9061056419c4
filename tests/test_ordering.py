import random
from types import SimpleNamespace

import pytest

import ordering
from errors import ValidationError


def make_items(*names):
    return [SimpleNamespace(id=i + 1, name=n, order=i) for i, n in enumerate(names)]


def names_in_order(items):
    return [it.name for it in ordering.sort_by_order(items)]


def by_name(items, name):
    return next(it for it in items if it.name == name)


def test_next_order_is_count():
    assert ordering.next_order([]) == 0
    assert ordering.next_order(make_items("A", "B", "C")) == 3


def test_move_up_to_front():
    items = make_items("A", "B", "C", "D")
    ordering.move(items, by_name(items, "C"), 0)
    assert {it.name: it.order for it in items} == {"C": 0, "A": 1, "B": 2, "D": 3}


def test_move_down_shifts_items_between():
    items = make_items("A", "B", "C", "D")
    ordering.move(items, by_name(items, "A"), 2)
    assert names_in_order(items) == ["B", "C", "A", "D"]
    assert ordering.is_dense(items)


def test_move_to_same_position_is_noop():
    items = make_items("A", "B", "C")
    before = [(it.name, it.order) for it in items]
    ordering.move(items, by_name(items, "B"), 1)
    assert [(it.name, it.order) for it in items] == before


@pytest.mark.parametrize("bad", [-1, 3, 99])
def test_move_rejects_out_of_range(bad):
    items = make_items("A", "B", "C")
    with pytest.raises(ValidationError):
        ordering.move(items, by_name(items, "A"), bad)
    assert names_in_order(items) == ["A", "B", "C"]


def test_reindex_closes_gaps_preserving_order():
    items = make_items("A", "B", "C")
    del items[1]
    ordering.reindex(items)
    assert {it.name: it.order for it in items} == {"A": 0, "C": 1}


def test_reindex_breaks_ties_by_id():
    items = [SimpleNamespace(id=2, name="B", order=0), SimpleNamespace(id=1, name="A", order=0)]
    ordering.reindex(items)
    assert names_in_order(items) == ["A", "B"]


def test_random_operations_keep_orders_dense():
    rng = random.Random(1234)
    items = []
    next_id = 1
    for _ in range(500):
        op = rng.choice(["append", "remove", "move"]) if items else "append"
        if op == "append":
            items.append(SimpleNamespace(id=next_id, name=str(next_id), order=ordering.next_order(items)))
            next_id += 1
        elif op == "remove":
            items.remove(rng.choice(items))
            ordering.reindex(items)
        else:
            ordering.move(items, rng.choice(items), rng.randrange(len(items)))
        assert ordering.is_dense(items)
