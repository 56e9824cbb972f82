"""
Tests — natural ordering of process numbers.

Covers:
    - digit runs compare by value ("OE-4.2" < "OE-4.10")
    - shorter prefixes sort first, empty / None first of all
    - mixed digit/text tokens, case sensitivity
    - total order when tokens tie by value ("a01" vs "a1")
    - natural_sorted with and without a key
"""

import pytest

from app.utils.natural_sort import natural_compare, natural_sorted, tokenize


def _sign(value):
    return (value > 0) - (value < 0)


class TestTokenize:
    def test_alternating_runs(self):
        assert tokenize("OE-4.10") == ["OE-", "4", ".", "10"]

    def test_empty_and_none(self):
        assert tokenize("") == []
        assert tokenize(None) == []


class TestNaturalCompare:
    @pytest.mark.parametrize("a, b", [
        ("OE-4.2", "OE-4.10"),
        ("OE-1.9", "OE-1.10"),
        ("OE-2.1", "OE-10.1"),
        ("OE-4", "OE-4.1"),
        ("", "OE-1.1"),
        ("A", "a"),
        ("a01", "a1"),
    ])
    def test_orders_left_before_right(self, a, b):
        assert natural_compare(a, b) < 0
        assert natural_compare(b, a) > 0

    def test_equal_strings(self):
        assert natural_compare("OE-3.1", "OE-3.1") == 0

    def test_none_is_empty(self):
        assert natural_compare(None, "") == 0
        assert natural_compare(None, "OE-1") < 0

    def test_digit_against_text_token(self):
        # "1" vs "x" compares as text: digits sort before letters
        assert natural_compare("OE-1", "OE-x") < 0

    def test_large_numbers(self):
        assert natural_compare("OE-99999999999999999999", "OE-100000000000000000000") < 0

    def test_antisymmetric_and_transitive(self):
        values = ["OE-1.10", "OE-1.2", "OE-1", "oe-1.1", "OE-1.02", "OE-1.2a", ""]
        for a in values:
            for b in values:
                assert _sign(natural_compare(a, b)) == -_sign(natural_compare(b, a))
        ordered = natural_sorted(values)
        for i, a in enumerate(ordered):
            for b in ordered[i + 1:]:
                assert natural_compare(a, b) <= 0


class TestNaturalSorted:
    def test_process_numbers(self):
        numbers = ["OE-4.10", "OE-4.2", "OE-4.1", "OE-3.11", "OE-3.2"]
        assert natural_sorted(numbers) == ["OE-3.2", "OE-3.11", "OE-4.1", "OE-4.2", "OE-4.10"]

    def test_with_key(self):
        rows = [{"n": "OE-1.10"}, {"n": "OE-1.9"}, {"n": None}]
        assert [r["n"] for r in natural_sorted(rows, key=lambda r: r["n"])] == [None, "OE-1.9", "OE-1.10"]

    def test_does_not_mutate_input(self):
        numbers = ["b2", "b10", "b1"]
        natural_sorted(numbers)
        assert numbers == ["b2", "b10", "b1"]
