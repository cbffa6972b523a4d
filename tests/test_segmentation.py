"""Tests for the optimal segmentation engine."""

import itertools
import time

import pytest

from glyphlex.models import SpellFailure
from glyphlex.segmentation import resolve, segment


def _best_by_brute_force(text, phoneme_map):
    """(coverage, segment_count) of the best partition, found exhaustively."""
    best = None

    def walk(i, coverage, count):
        nonlocal best
        if i == len(text):
            key = (coverage, -count)
            if best is None or key > best:
                best = key
            return
        for sound in phoneme_map:
            if text.startswith(sound, i):
                walk(i + len(sound), coverage + len(sound), count + 1)
        walk(i + 1, coverage, count)

    walk(0, 0, 0)
    return best[0], -best[1]


class TestScenarios:

    def test_dp_beats_greedy(self):
        phoneme_map = {"ABC": 1, "AB": 2, "CD": 3}
        result = resolve("ABCD", phoneme_map)
        assert result.success
        assert [s.symbol_id for s in result.segments] == [2, 3]
        assert result.covered == ("AB", "CD")
        assert result.unmatched == ()

    def test_empty_input(self):
        result = resolve("", {"A": 1})
        assert not result.success
        assert result.reason is SpellFailure.EMPTY_INPUT
        assert result.segments == ()

    @pytest.mark.parametrize("blank", [None, "   ", "\t\n"])
    def test_blank_input(self, blank):
        assert resolve(blank, {"A": 1}).reason is SpellFailure.EMPTY_INPUT

    def test_empty_input_checked_before_map(self):
        assert resolve("", {}).reason is SpellFailure.EMPTY_INPUT

    def test_no_usable_mapping(self):
        result = resolve("abc", {})
        assert not result.success
        assert result.reason is SpellFailure.NO_USABLE_MAPPING

    def test_partial_coverage(self):
        result = resolve("axb", {"a": 1, "b": 2})
        assert not result.success
        assert result.reason is SpellFailure.PARTIAL_COVERAGE
        assert result.unmatched == ("x",)
        assert result.covered == ("a", "b")


class TestUnmatchedRuns:

    def test_consecutive_skips_form_one_run(self):
        result = resolve("axyb", {"a": 1, "b": 2})
        assert result.unmatched == ("xy",)

    def test_separate_runs(self):
        result = resolve("xaybz", {"a": 1, "b": 2})
        assert result.unmatched == ("x", "y", "z")

    def test_nothing_matches(self):
        result = resolve("xyz", {"a": 1})
        assert not result.success
        assert result.unmatched == ("xyz",)
        assert result.covered == ()

    def test_segments_keep_positions(self):
        result = resolve("axb", {"a": 1, "b": 2})
        assert [(s.start, s.text, s.matched) for s in result.segments] == [
            (0, "a", True), (1, "x", False), (2, "b", True),
        ]


class TestSelectionRule:

    def test_fewest_segments_on_full_coverage(self):
        result = resolve("ab", {"a": 1, "b": 2, "ab": 3})
        assert [s.symbol_id for s in result.segments] == [3]

    def test_coverage_beats_segment_count(self):
        # "abc" alone strands "d"; "ab" + "cd" covers everything.
        result = resolve("abcd", {"abc": 1, "ab": 2, "cd": 3})
        assert result.coverage == 4
        assert result.segment_count == 2

    def test_multi_character_sounds(self):
        result = resolve("shash", {"sh": 1, "a": 2, "s": 3, "h": 4})
        assert [s.symbol_id for s in result.segments] == [1, 2, 1]

    def test_deterministic_across_runs(self):
        phoneme_map = {"a": 1, "aa": 2, "aaa": 3}
        first = resolve("aaaa", phoneme_map)
        for _ in range(5):
            assert resolve("aaaa", phoneme_map) == first

    def test_independent_of_map_insertion_order(self):
        items = [("a", 1), ("ab", 2), ("b", 3), ("ba", 4)]
        results = {
            resolve("abab", dict(order)).segments
            for order in itertools.permutations(items)
        }
        assert len(results) == 1

    def test_case_sensitive(self):
        result = resolve("A", {"a": 1})
        assert not result.success


class TestOptimalityAgainstBruteForce:

    MAPS = [
        {"a": 1, "b": 2, "ab": 3},
        {"abc": 1, "ab": 2, "cd": 3, "d": 4},
        {"aa": 1, "aaa": 2},
        {"ba": 1, "ab": 2, "c": 3},
    ]

    @pytest.mark.parametrize("phoneme_map", MAPS)
    def test_matches_brute_force(self, phoneme_map):
        alphabet = "abcd"
        for length in range(1, 6):
            for chars in itertools.product(alphabet, repeat=length):
                text = "".join(chars)
                result = segment(text, phoneme_map)
                expected = _best_by_brute_force(text, phoneme_map)
                assert (result.coverage, result.segment_count) == expected, text

    def test_full_coverage_when_possible(self):
        phoneme_map = {"ka": 1, "k": 2, "ato": 3, "to": 4}
        result = resolve("kato", phoneme_map)
        assert result.success
        assert result.coverage == 4


class TestPerformance:

    def test_long_input_is_fast(self):
        phoneme_map = {s: i for i, s in enumerate(
            ["a", "e", "i", "o", "u", "k", "t", "n", "s", "sh", "ch", "ts",
             "ng", "ai", "ou", "kk", "tt", "aa", "ii", "uu"], start=1)}
        text = "kashitsunaichoungatteiuu" * 2 + "qq"
        start = time.perf_counter()
        result = resolve(text, phoneme_map)
        elapsed = time.perf_counter() - start
        assert elapsed < 0.1
        assert result.unmatched == ("qq",)

    def test_unknown_characters_terminate(self):
        result = resolve("ǂǁʘ" * 20, {"a": 1})
        assert not result.success
        assert result.coverage == 0
