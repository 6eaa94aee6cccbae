# blunder_scout/core/score_utils.py
"""
Provides a collection of pure, stateless functions for working with scores.

A `Score` is either a centipawn value or a mate distance, and the two cannot
be compared directly. Everything that does arithmetic on scores goes through
`to_centipawns` first, which maps a forced mate onto a bounded sentinel.
"""

from typing import Final, Optional

from blunder_scout.types import Centipawn, Mate, Score

DEFAULT_MATE_SCORE_CP: Final[int] = 10000


def to_centipawns(score: Score, mate_score_cp: int = DEFAULT_MATE_SCORE_CP) -> int:
    """
    Normalizes a score to a finite, White-positive centipawn value.

    A forced mate becomes `+mate_score_cp` when White is mating and
    `-mate_score_cp` when Black is, regardless of the distance.
    """
    if isinstance(score, Mate):
        return mate_score_cp if score.moves > 0 else -mate_score_cp
    return score.value


def evaluation_delta(
    score_before: Score, score_after: Score, mate_score_cp: int = DEFAULT_MATE_SCORE_CP
) -> int:
    """
    Measures how far the evaluation moved across one ply.

    Both scores are White-positive, so the unsigned difference is the same
    whichever side made the move.
    """
    return abs(to_centipawns(score_before, mate_score_cp) - to_centipawns(score_after, mate_score_cp))


def score_from_service(evaluation_pawns: float, mate: Optional[int]) -> Score:
    """Builds a score from a service reply that reports pawns and an optional mate distance."""
    if mate:
        return Mate(int(mate))
    return Centipawn(int(round(evaluation_pawns * 100)))


def format_score(score: Score) -> str:
    """
    Renders a score for a transcript line.

    Mates are shown as `#+3` / `#-2`, centipawns as signed pawns with two
    decimals, e.g. `+0.35`.
    """
    if isinstance(score, Mate):
        return f"#{score.moves:+d}"
    return f"{score.value / 100:+.2f}"
