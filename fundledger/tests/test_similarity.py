"""
String similarity tests.
"""

import pytest

from fundledger.app.domain.duplicates.similarity import levenshtein_distance, string_similarity


@pytest.mark.parametrize("source,target,expected", [
    ("", "", 0),
    ("", "abc", 3),
    ("abc", "", 3),
    ("kitten", "sitting", 3),
    ("flaw", "lawn", 2),
    ("same", "same", 0),
])
def test_levenshtein_distance(source, target, expected):
    assert levenshtein_distance(source, target) == expected


def test_identical_after_normalization():
    assert string_similarity("  ABC Corp ", "abc corp") == 1.0


def test_containment_scores_point_nine():
    assert string_similarity("Office Depot", "office depot #1142") == 0.9


def test_edit_distance_ratio():
    # one substitution over six characters
    assert string_similarity("Staple", "Stable") == pytest.approx(1 - 1 / 6)


def test_empty_strings_do_not_match():
    assert string_similarity("", "anything") == 0.0
    assert string_similarity(None, "anything") == 0.0
