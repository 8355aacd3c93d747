"""Filter coordination: incremental groups against from-scratch folds."""

from __future__ import annotations

from random import Random

import pytest

from crossview.core import (
    AllFilter,
    Crossfilter,
    ExactFilter,
    FilterEvent,
    RangeFilter,
    Reducer,
    ReentrantFilterError,
    as_filter_spec,
    count_reducer,
    count_sum_reducer,
    field_value,
    fold,
    sum_reducer,
)

pytestmark = pytest.mark.unit


def _rows(seed: int = 7, n: int = 200) -> list[dict]:
    rng = Random(seed)
    rows = []
    for _ in range(n):
        v = rng.choice(
            [None, float("nan"), 0.1, 0.2, 0.3, 1e16, -1e16, rng.uniform(-50, 50)]
            + list(range(-5, 50))
        )
        rows.append({"a": rng.randrange(10), "b": rng.randrange(5), "v": v})
    return rows


def _passes(spec, key) -> bool:
    if isinstance(spec, AllFilter):
        return True
    return key is not None and spec.matches(key)


class Harness:
    """A crossfilter with two dimensions and several groups, plus the
    brute-force reference each group must agree with."""

    def __init__(self, rows):
        self.rows = rows
        self.cf = Crossfilter(rows)
        self.a = self.cf.dimension(field_value("a"), name="a")
        self.b = self.cf.dimension(field_value("b"), name="b")
        self.groups = [
            (self.a, self.a.group(count_sum_reducer("v")), count_sum_reducer("v"), False),
            (self.b, self.b.group(sum_reducer("v")), sum_reducer("v"), False),
            (self.a, self.a.group(count_reducer(), ignore_own_filter=True), count_reducer(), True),
        ]
        self.totals = self.cf.group_all(count_reducer())

    def visible(self, skip=None):
        out = []
        for r in self.rows:
            ok = True
            for dim in (self.a, self.b):
                if dim is skip:
                    continue
                if not _passes(dim.current_filter, dim.projection(r)):
                    ok = False
            if ok:
                out.append(r)
        return out

    def check(self) -> None:
        for dim, group, reducer, ignore_own in self.groups:
            visible = self.visible(skip=dim if ignore_own else None)
            for key in dim.keys():
                expected = fold(reducer, [r for r in visible if dim.projection(r) == key])
                assert group.value(key) == expected, (dim.name, key)
        assert self.totals.value_all() == len(self.visible())
        assert self.cf.visible_count() == len(self.visible())

    def values(self):
        return [group.all() for _, group, _, _ in self.groups] + [self.totals.value_all()]


@pytest.fixture
def harness() -> Harness:
    return Harness(_rows())


def test_groups_match_refold_over_random_filter_sequences(harness) -> None:
    """Incremental maintenance never diverges from a full recomputation."""

    rng = Random(42)

    def even(key):
        return key % 2 == 0

    baseline = harness.values()
    harness.check()
    for _ in range(150):
        dim = rng.choice([harness.a, harness.b])
        kind = rng.choice(["range", "exact", "predicate", "all"])
        if kind == "range":
            lo = rng.randrange(-1, 11)
            dim.filter_range(lo, lo + rng.randrange(0, 6))
        elif kind == "exact":
            dim.filter_exact(rng.randrange(10))
        elif kind == "predicate":
            dim.filter_function(even)
        else:
            dim.filter_all()
        harness.check()

    harness.cf.filter_all()
    assert harness.values() == baseline


def test_filter_then_filter_all_restores_baseline(harness) -> None:
    baseline = harness.values()

    harness.a.filter_range(2, 7)
    assert harness.values() != baseline

    harness.a.filter_all()
    assert harness.values() == baseline


def test_same_filter_twice_changes_nothing(harness) -> None:
    harness.a.filter_range(2, 7)
    once = harness.values()

    event = harness.cf.apply_filter("a", (2, 7))

    assert harness.values() == once
    assert (event.added, event.removed) == (0, 0)


def test_same_predicate_twice_changes_nothing(harness) -> None:
    def odd(key):
        return key % 2 == 1

    harness.b.filter_function(odd)
    once = harness.values()
    harness.b.filter_function(odd)
    assert harness.values() == once


def test_filters_on_different_dimensions_compose_with_and(harness) -> None:
    harness.a.filter_range(2, 6)
    harness.b.filter_exact(1)

    expected = [r for r in harness.rows if 2 <= r["a"] < 6 and r["b"] == 1]
    assert harness.cf.visible_records() == expected
    harness.check()


def test_range_sequence_ending_in_filter_all_equals_never_filtering(harness) -> None:
    """[0, 10) then [5, 10) then clear leaves every group at its baseline."""

    baseline = harness.values()
    harness.a.filter_range(0, 10)
    harness.a.filter_range(5, 10)
    harness.a.filter_all()
    assert harness.values() == baseline


def test_narrowing_a_range_only_touches_records_that_leave() -> None:
    """Moving a brush only calls add/remove for records crossing its edge."""

    calls = {"add": 0, "remove": 0}

    def add(acc, r):
        calls["add"] += 1
        return acc + 1

    def remove(acc, r):
        calls["remove"] += 1
        return acc - 1

    cf = Crossfilter([{"k": i} for i in range(100)])
    k = cf.dimension(field_value("k"))
    group = cf.group_all(Reducer(add=add, remove=remove, initial=lambda: 0))
    k.filter_range(0, 50)
    calls.update(add=0, remove=0)

    k.filter_range(10, 50)

    assert calls == {"add": 0, "remove": 10}
    assert group.value_all() == 40

    k.filter_range(20, 60)
    assert calls == {"add": 10, "remove": 20}
    assert group.value_all() == 40


def test_listeners_called_once_each_in_registration_order() -> None:
    cf = Crossfilter([{"k": 1}, {"k": 2}, {"k": 3}])
    k = cf.dimension(field_value("k"), name="k")
    calls = []
    cf.subscribe(lambda e: calls.append(("first", e)))
    cf.subscribe(lambda e: calls.append(("second", e)))

    k.filter_range(2, 4)

    assert [name for name, _ in calls] == ["first", "second"]
    event = calls[0][1]
    assert isinstance(event, FilterEvent)
    assert event.dimension_id == k.id
    assert event.dimension_name == "k"
    assert event.old == AllFilter()
    assert event.new == RangeFilter(2, 4)
    assert (event.added, event.removed) == (0, 1)
    assert event.to_dict()["new"] == {"range": [2, 4]}


def test_groups_are_updated_before_listeners_run() -> None:
    cf = Crossfilter([{"k": 1}, {"k": 2}, {"k": 3}])
    k = cf.dimension(field_value("k"))
    total = cf.group_all()
    seen = []
    cf.subscribe(lambda e: seen.append(total.value_all()))

    k.filter_exact(2)

    assert seen == [1]


def test_unsubscribed_listener_is_not_called() -> None:
    cf = Crossfilter([{"k": 1}])
    k = cf.dimension(field_value("k"))
    calls = []
    listener = cf.subscribe(calls.append)
    cf.unsubscribe(listener)
    k.filter_exact(1)
    assert calls == []


def test_nested_filter_from_listener_is_rejected() -> None:
    """No transition may begin while another is being applied."""

    cf = Crossfilter([{"k": 1}, {"k": 2}])
    k = cf.dimension(field_value("k"))
    other = cf.dimension(field_value("k"))
    listener = cf.subscribe(lambda e: other.filter_exact(1))

    with pytest.raises(ReentrantFilterError):
        k.filter_exact(2)

    # the coordinator is usable again afterwards
    cf.unsubscribe(listener)
    other.filter_exact(1)
    assert cf.visible_count() == 0


def test_group_created_after_filtering_starts_consistent() -> None:
    cf = Crossfilter([{"k": i % 4, "v": i} for i in range(20)])
    k = cf.dimension(field_value("k"))
    k.filter_range(1, 3)

    late = k.group(sum_reducer("v"))

    for key in k.keys():
        assert late.value(key) == fold(
            sum_reducer("v"), [r for r in cf.visible_records() if r["k"] == key]
        )


def test_ignore_own_filter_keeps_full_series_under_own_brush() -> None:
    cf = Crossfilter([{"k": 1, "c": "x"}, {"k": 2, "c": "y"}, {"k": 2, "c": "x"}])
    k = cf.dimension(field_value("k"))
    c = cf.dimension(lambda r: r["c"])
    series = k.group(ignore_own_filter=True)

    k.filter_exact(1)
    assert series.all() == [(1.0, 1), (2.0, 2)]

    c.filter_exact("x")
    assert series.all() == [(1.0, 1), (2.0, 1)]


def test_filter_all_clears_every_dimension(harness) -> None:
    baseline = harness.values()
    harness.a.filter_range(1, 4)
    harness.b.filter_exact(3)

    events = harness.cf.filter_all()

    assert [e.dimension_name for e in events] == ["a", "b"]
    assert harness.cf.active_filters() == {}
    assert harness.values() == baseline


def test_as_filter_spec_rejects_wrong_arity() -> None:
    with pytest.raises(ValueError):
        as_filter_spec([1, 2, 3])
    assert as_filter_spec(ExactFilter(1)) == ExactFilter(1)
