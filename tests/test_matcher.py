# ruff: noqa: E402, I001
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from staging_review.matcher import filter_accounts, matches_in_order, split_query


def test_split_query_drops_empty_parts_and_lowercases():
    assert split_query(" Ex::Fo: ") == ["ex", "fo"]
    assert split_query(":") == []
    assert split_query("") == []


def test_empty_query_returns_catalog_in_order(catalog):
    assert filter_accounts("", catalog) == list(catalog)
    assert filter_accounts("::", catalog) == list(catalog)


def test_segment_prefixes_match_case_insensitively(catalog):
    assert filter_accounts("ex:fo:co", catalog) == ["Expenses:Food:Coffee"]
    assert filter_accounts("EXP:TRAV", catalog) == ["Expenses:Travel:Flights"]


def test_in_order_matches_rank_before_out_of_order():
    catalog = ["Food:Expenses:Misc", "Expenses:Food", "Expenses:Other:Food"]
    # "Food:Expenses:Misc" only matches with the parts swapped.
    assert filter_accounts("ex:fo", catalog) == [
        "Expenses:Food",
        "Expenses:Other:Food",
        "Food:Expenses:Misc",
    ]


def test_each_group_is_sorted():
    catalog = ["Expenses:Zoo", "Expenses:Bar", "Expenses:Apple"]
    assert filter_accounts("expenses", catalog) == [
        "Expenses:Apple",
        "Expenses:Bar",
        "Expenses:Zoo",
    ]


def test_no_match_returns_empty(catalog):
    assert filter_accounts("nope", catalog) == []


def test_every_part_must_match_some_segment(catalog):
    assert filter_accounts("ex:zz", catalog) == []


def test_parts_may_reuse_the_same_segment_out_of_order():
    # Both parts are prefixes of "Expenses"; only the out-of-order rule admits it.
    assert filter_accounts("ex:e", ["Expenses"]) == ["Expenses"]


@pytest.mark.parametrize(
    ("query", "segments", "expected"),
    [
        (["ex", "fo"], ["expenses", "food"], True),
        (["fo", "ex"], ["expenses", "food"], False),
        (["ex", "ex"], ["expenses"], False),
        (["a", "c"], ["a", "b", "c"], True),
        ([], ["a"], True),
    ],
)
def test_matches_in_order(query, segments, expected):
    assert matches_in_order(query, segments) is expected


def test_matching_is_subset_of_catalog_without_duplicates(catalog):
    for query in ["e", "ex:f", "a:b", "inc", "f:e"]:
        result = filter_accounts(query, catalog)
        assert set(result) <= set(catalog)
        assert len(result) == len(set(result))


def test_restaurant_example():
    catalog = ["Expenses:Food:Restaurant", "Expenses:Food:Grocery", "Expenses:Transport:Taxi"]
    assert filter_accounts("fo:r", catalog) == ["Expenses:Food:Restaurant"]
    assert filter_accounts("ex", catalog) == sorted(catalog)
