"""Query Parameter Pollution — tests for last-value-wins collapsing.

Invariants:
    - Duplicated keys keep their last value
    - Whitelisted keys keep every value
    - Key order follows first appearance
"""

from urllib.parse import parse_qsl

from streamgate.core.query_params import collapse_duplicate_params, collapse_query_string


def test_single_values_pass_through_unchanged():
    result = collapse_query_string("a=1&b=2")
    assert result.params == [("a", "1"), ("b", "2")]
    assert result.polluted == {}


def test_duplicate_key_keeps_last_value():
    result = collapse_query_string("sort=asc&sort=desc")
    assert result.params == [("sort", "desc")]
    assert result.polluted == {"sort": ["asc", "desc"]}


def test_key_order_follows_first_appearance():
    result = collapse_query_string("a=1&b=2&a=3")
    assert result.params == [("a", "3"), ("b", "2")]


def test_whitelisted_key_keeps_all_values():
    result = collapse_query_string("tag=x&tag=y&page=1&page=2", whitelist=("tag",))
    assert result.params == [("tag", "x"), ("tag", "y"), ("page", "2")]
    assert "tag" not in result.polluted


def test_blank_values_are_kept():
    result = collapse_query_string("q=&q=last")
    assert result.params == [("q", "last")]


def test_query_string_round_trips_through_parser():
    result = collapse_duplicate_params([("a", "1"), ("a", "two words")])
    assert parse_qsl(result.query_string) == [("a", "two words")]


def test_collapse_is_deterministic():
    raw = "x=1&y=2&x=3&z=&y=4"
    assert collapse_query_string(raw) == collapse_query_string(raw)
