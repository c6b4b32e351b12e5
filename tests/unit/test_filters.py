from datetime import datetime

import pytest

from resourcekit.db.filters import UnsupportedFilter, coerce_to, matches, regex_flags

DOC = {"id": "a1", "name": "Blue Widget", "price": 15, "in_stock": True, "tags": None}


@pytest.mark.parametrize(
    "filter,expected",
    [
        ({}, True),
        (None, True),
        ({"name": "Blue Widget"}, True),
        ({"name": "blue widget"}, False),
        ({"price": "15"}, True),
        ({"price": "16"}, False),
        ({"price": "not-a-number"}, False),
        ({"in_stock": "true"}, True),
        ({"in_stock": "0"}, False),
        ({"missing": None}, True),
        ({"tags": None}, True),
        ({"price": {"$gt": 10, "$lte": 15}}, True),
        ({"price": {"$gte": "16"}}, False),
        ({"price": {"$lt": 15}}, False),
        ({"price": {"$ne": 15}}, False),
        ({"price": {"$in": ["14", "15"]}}, True),
        ({"price": {"$nin": [15]}}, False),
        ({"missing": {"$exists": False}}, True),
        ({"name": {"$exists": True}}, True),
        ({"name": {"$regex": "^blue", "$options": "i"}}, True),
        ({"name": {"$regex": "^blue"}}, False),
        ({"missing": {"$regex": "x"}}, False),
        ({"$or": [{"name": "nope"}, {"price": 15}]}, True),
        ({"$or": [{"name": "nope"}, {"price": 16}]}, False),
        ({"$or": []}, True),
        ({"$and": [{"price": 15}, {"in_stock": True}]}, True),
        ({"$and": [{"price": 15}, {"in_stock": False}]}, False),
    ],
)
def test_matches(filter, expected):
    assert matches(DOC, filter) is expected


def test_unknown_operators_are_rejected():
    with pytest.raises(UnsupportedFilter):
        matches(DOC, {"$nor": []})
    with pytest.raises(UnsupportedFilter):
        matches(DOC, {"price": {"$where": "1"}})
    with pytest.raises(UnsupportedFilter):
        matches(DOC, {"$or": {"name": "x"}})
    with pytest.raises(UnsupportedFilter):
        matches(DOC, {"price": {"$in": "15"}})


def test_regex_flags():
    assert regex_flags(None) == 0
    assert regex_flags("im")
    with pytest.raises(UnsupportedFilter):
        regex_flags("g")


def test_coerce_to():
    assert coerce_to("5", int) == 5
    assert coerce_to("2.5", float) == 2.5
    assert coerce_to("yes", bool) is True
    assert coerce_to("2024-01-02T03:04:05", datetime) == datetime(2024, 1, 2, 3, 4, 5)
    assert coerce_to(5, str) == 5
    with pytest.raises(ValueError):
        coerce_to("maybe", bool)
