"""
Tests for fuzzy_match: edit distance, fuzzy name lookup and nearest token value.
"""

import pytest

from fuzzy_match import (
    NumericCandidate,
    edit_distance,
    find_closest_numeric,
    find_fuzzy_match,
    fuzzy_threshold,
)


# =============================================================================
# Edit Distance
# =============================================================================

class TestEditDistance:

    @pytest.mark.parametrize("a, b, expected", [
        ("", "", 0),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("button", "button", 0),
        ("buton", "button", 1),
    ])
    def test_known_distances(self, a, b, expected):
        assert edit_distance(a, b) == expected

    def test_symmetric(self):
        assert edit_distance("header", "heder") == edit_distance("heder", "header")

    def test_case_sensitive(self):
        assert edit_distance("Card", "card") == 1


# =============================================================================
# Fuzzy Name Lookup
# =============================================================================

class TestFindFuzzyMatch:

    def test_threshold_scales_with_length(self):
        assert fuzzy_threshold("card") == 1
        assert fuzzy_threshold("abcdefgh") == 1
        assert fuzzy_threshold("navigation") == 2

    def test_short_name_within_one_edit(self):
        assert find_fuzzy_match("buton", ["icon", "button"]) == "button"

    def test_short_name_two_edits_rejected(self):
        assert find_fuzzy_match("btn", ["button"]) is None

    def test_long_name_allows_two_edits(self):
        assert find_fuzzy_match("navigtionBr", ["navigationBar"]) == "navigationBar"
        assert find_fuzzy_match("navBar", ["navigationBar"]) is None

    def test_case_insensitive(self):
        assert find_fuzzy_match("Header", ["heade", "header"]) == "header"

    def test_identical_entry_matches(self):
        assert find_fuzzy_match("header", ["heder", "header"]) == "header"

    def test_first_of_equally_close_wins(self):
        assert find_fuzzy_match("cart", ["card", "care"]) == "card"

    def test_empty_pool(self):
        assert find_fuzzy_match("anything", []) is None


# =============================================================================
# Nearest Numeric Token
# =============================================================================

class TestFindClosestNumeric:

    @pytest.fixture
    def spacing(self):
        return [
            NumericCandidate(id="v0", name="spacing/zero", value=0),
            NumericCandidate(id="v1", name="spacing/sm", value=4),
            NumericCandidate(id="v2", name="spacing/md", value=8),
            NumericCandidate(id="v3", name="spacing/lg", value=16),
            NumericCandidate(id="v4", name="spacing/none", value=0),
        ]

    def test_empty_pool(self):
        assert find_closest_numeric(12, []) is None

    def test_exact_value(self, spacing):
        assert find_closest_numeric(8, spacing).name == "spacing/md"

    def test_nearest_value(self, spacing):
        assert find_closest_numeric(7, spacing).name == "spacing/md"
        assert find_closest_numeric(100, spacing).name == "spacing/lg"

    def test_tie_keeps_first_candidate(self, spacing):
        assert find_closest_numeric(6, spacing).name == "spacing/sm"

    def test_zero_prefers_none_token(self, spacing):
        assert find_closest_numeric(0, spacing).id == "v4"

    def test_zero_accepts_bare_none_name(self):
        pool = [NumericCandidate(id="a", name="radius/0", value=0), NumericCandidate(id="b", name="None", value=2)]
        assert find_closest_numeric(0, pool).id == "b"

    def test_zero_without_none_token_uses_distance(self):
        pool = [NumericCandidate(id="a", name="radius/sm", value=2), NumericCandidate(id="b", name="radius/flat", value=0)]
        assert find_closest_numeric(0, pool).id == "b"
