"""Optimal segmentation of a pronunciation into known sound strings.

Dynamic programming over string positions ``0..n``. ``dp[i]`` holds the
best ``(coverage, segment_count)`` for the prefix ``pronunciation[:i]``
together with a back-pointer describing how that prefix ends: either a
sound string from the phoneme map ending at ``i`` or a single unmatched
character.

Selection rule, applied with a strict comparison so that the first
candidate examined wins a tie:

1. maximise coverage (characters matched by real symbols);
2. minimise the number of matched segments.

Candidates are examined longest sound first, then the skip transition, so
the result never depends on the iteration order of the map.

With phonemes ``ABC -> g1``, ``AB -> g2``, ``CD -> g3`` and input ``ABCD``
a greedy longest match would take ``ABC`` and strand ``D``; the DP finds
``AB`` + ``CD``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from glyphlex.models import SpellFailure
from glyphlex.phonemes import max_sound_length


@dataclass(frozen=True, slots=True)
class Segment:
    """A run of the pronunciation: a matched sound or one unmatched character."""

    symbol_id: int | None
    start: int
    text: str

    @property
    def matched(self) -> bool:
        return self.symbol_id is not None

    @property
    def end(self) -> int:
        return self.start + len(self.text)


@dataclass(frozen=True, slots=True)
class Segmentation:
    """Result of running the engine on one pronunciation."""

    success: bool
    segments: tuple[Segment, ...]
    covered: tuple[str, ...]
    unmatched: tuple[str, ...]
    reason: SpellFailure | None = None

    @property
    def coverage(self) -> int:
        return sum(len(s.text) for s in self.segments if s.matched)

    @property
    def segment_count(self) -> int:
        return sum(1 for s in self.segments if s.matched)


# (coverage, segment_count, start, symbol_id or None for a skip)
_Candidate = tuple[int, int, int, "int | None"]


def _better(a: _Candidate, b: _Candidate | None) -> bool:
    if b is None:
        return True
    if a[0] != b[0]:
        return a[0] > b[0]
    return a[1] < b[1]


def is_blank(pronunciation: str | None) -> bool:
    """True for ``None``, the empty string, or whitespace only."""
    return not pronunciation or not pronunciation.strip()


def segment(pronunciation: str, phoneme_map: Mapping[str, int]) -> Segmentation:
    """Run the DP without input guards.

    Always terminates; with an empty map every character is unmatched.
    """
    n = len(pronunciation)
    max_len = max_sound_length(phoneme_map)

    coverage = [0] * (n + 1)
    count = [0] * (n + 1)
    back: list[tuple[int, int | None]] = [(0, None)] * (n + 1)

    for i in range(1, n + 1):
        best: _Candidate | None = None
        for length in range(min(max_len, i), 0, -1):
            start = i - length
            symbol_id = phoneme_map.get(pronunciation[start:i])
            if symbol_id is None:
                continue
            candidate = (coverage[start] + length, count[start] + 1, start, symbol_id)
            if _better(candidate, best):
                best = candidate
        # An unmatched character adds a gap but does not count as a segment.
        skip = (coverage[i - 1], count[i - 1], i - 1, None)
        if _better(skip, best):
            best = skip
        coverage[i], count[i] = best[0], best[1]
        back[i] = (best[2], best[3])

    segments: list[Segment] = []
    i = n
    while i > 0:
        start, symbol_id = back[i]
        segments.append(Segment(symbol_id, start, pronunciation[start:i]))
        i = start
    segments.reverse()

    covered = tuple(s.text for s in segments if s.matched)
    unmatched = _unmatched_runs(segments)
    success = not unmatched
    return Segmentation(
        success=success,
        segments=tuple(segments),
        covered=covered,
        unmatched=unmatched,
        reason=None if success else SpellFailure.PARTIAL_COVERAGE,
    )


def _unmatched_runs(segments: list[Segment]) -> tuple[str, ...]:
    """Maximal runs of consecutive unmatched characters."""
    runs: list[str] = []
    current: list[str] = []
    for seg in segments:
        if seg.matched:
            if current:
                runs.append("".join(current))
                current = []
        else:
            current.append(seg.text)
    if current:
        runs.append("".join(current))
    return tuple(runs)


def resolve(pronunciation: str | None, phoneme_map: Mapping[str, int]) -> Segmentation:
    """Segment a pronunciation, failing early on blank input or an empty map."""
    if is_blank(pronunciation):
        return Segmentation(False, (), (), (), SpellFailure.EMPTY_INPUT)
    if not phoneme_map:
        return Segmentation(
            False, (), (), (pronunciation,), SpellFailure.NO_USABLE_MAPPING
        )
    return segment(pronunciation, phoneme_map)
