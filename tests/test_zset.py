import random

import pytest

from kvserver.zset import ZSet


def _shuffled(size, seed):
    values = list(range(size))
    random.Random(seed).shuffle(values)
    return values


@pytest.mark.parametrize("size", [100, 500, 100])
def test_insert_lookup_delete_like_reference_tree(size):
    test_data = _shuffled(size, size)
    lookup_data = []
    for i in range(size // 2):
        lookup_data.append(test_data[i])
        lookup_data.append(size + i)
    random.Random(size + 1).shuffle(lookup_data)

    zset = ZSet()
    for value in test_data:
        assert zset.insert(str(value), float(value)) is True
    assert len(zset) == size

    found = sum(1 for value in lookup_data if str(value) in zset)
    assert found == size // 2

    for value in test_data:
        assert zset.delete(str(value)) is True
    assert len(zset) == 0


def test_duplicate_insert_is_ignored_for_size():
    zset = ZSet()
    assert zset.insert("a", 1.0) is True
    assert zset.insert("a", 1.0) is False
    assert len(zset) == 1


def test_insert_updates_score_and_order():
    zset = ZSet()
    zset.insert("a", 1.0)
    zset.insert("b", 2.0)
    assert zset.insert("a", 3.0) is False
    assert zset.lookup("a") == 3.0
    assert list(zset) == [(b"b", 2.0), (b"a", 3.0)]


def test_lookup_missing_returns_none():
    zset = ZSet()
    zset.insert(b"x", 5.0)
    assert zset.lookup(b"x") == 5.0
    assert zset.lookup("y") is None


def test_delete_missing_returns_false():
    zset = ZSet()
    zset.insert("x", 1.0)
    assert zset.delete("nope") is False
    assert len(zset) == 1


def test_order_ties_broken_by_name():
    zset = ZSet()
    for name in ["c", "a", "b", "ab"]:
        zset.insert(name, 1.0)
    zset.insert("z", 0.5)
    assert [name for name, _ in zset] == [b"z", b"a", b"ab", b"b", b"c"]


def test_rank_matches_sorted_position():
    zset = ZSet()
    values = _shuffled(200, 7)
    for value in values:
        zset.insert(f"n{value}", float(value))
    for value in values:
        assert zset.rank(f"n{value}") == value
    assert zset.rank("missing") is None


def test_rank_after_delete_shifts():
    zset = ZSet()
    for i, name in enumerate(["a", "b", "c", "d"]):
        zset.insert(name, float(i))
    zset.delete("b")
    assert zset.rank("a") == 0
    assert zset.rank("c") == 1
    assert zset.rank("d") == 2


@pytest.fixture
def sample():
    zset = ZSet()
    zset.insert("a", 1.0)
    zset.insert("b", 2.0)
    zset.insert("c", 3.0)
    zset.insert("d", 4.0)
    return zset


def test_query_from_start(sample):
    assert sample.query(0.0, "", 0, 10) == [
        (b"a", 1.0),
        (b"b", 2.0),
        (b"c", 3.0),
        (b"d", 4.0),
    ]


def test_query_limit(sample):
    assert sample.query(0.0, "", 0, 2) == [(b"a", 1.0), (b"b", 2.0)]


def test_query_ceil_between_members(sample):
    assert sample.query(2.5, "", 0, 10) == [(b"c", 3.0), (b"d", 4.0)]


def test_query_exact_member_included(sample):
    assert sample.query(2.0, "b", 0, 1) == [(b"b", 2.0)]


def test_query_name_after_member_skips_it(sample):
    assert sample.query(2.0, "bb", 0, 1) == [(b"c", 3.0)]


def test_query_positive_offset(sample):
    assert sample.query(1.0, "a", 2, 10) == [(b"c", 3.0), (b"d", 4.0)]


def test_query_negative_offset(sample):
    assert sample.query(3.0, "c", -2, 2) == [(b"a", 1.0), (b"b", 2.0)]


def test_query_offset_before_start_is_empty(sample):
    assert sample.query(1.0, "a", -1, 10) == []


def test_query_offset_past_end_is_empty(sample):
    assert sample.query(1.0, "a", 4, 10) == []


def test_query_beyond_last_member_is_empty_even_with_negative_offset(sample):
    assert sample.query(10.0, "", -2, 10) == []


@pytest.mark.parametrize("limit", [0, -1])
def test_query_nonpositive_limit(sample, limit):
    assert sample.query(0.0, "", 0, limit) == []


def test_query_empty_set():
    assert ZSet().query(0.0, "", 0, 5) == []


def test_clear(sample):
    sample.clear()
    assert len(sample) == 0
    assert sample.lookup("a") is None
    assert sample.query(0.0, "", 0, 5) == []


def test_nan_score_rejected():
    zset = ZSet()
    with pytest.raises(ValueError):
        zset.insert("a", float("nan"))
    assert len(zset) == 0


def test_bad_name_type_rejected():
    with pytest.raises(TypeError):
        ZSet().insert(123, 1.0)


def test_str_and_bytes_names_are_the_same_member():
    zset = ZSet()
    zset.insert("k", 1.0)
    assert zset.insert(b"k", 2.0) is False
    assert zset.lookup("k") == 2.0
    assert b"k" in zset


def test_random_operations_keep_sorted_invariant():
    rng = random.Random(42)
    zset = ZSet()
    model = {}
    for _ in range(2000):
        name = f"m{rng.randrange(100)}".encode()
        if rng.random() < 0.3:
            assert zset.delete(name) == (name in model)
            model.pop(name, None)
        else:
            score = float(rng.randrange(20))
            assert zset.insert(name, score) == (name not in model)
            model[name] = score
    assert len(zset) == len(model)
    items = list(zset)
    assert items == sorted(items, key=lambda pair: (pair[1], pair[0]))
    assert dict(items) == model
    for position, (name, _) in enumerate(items):
        assert zset.rank(name) == position