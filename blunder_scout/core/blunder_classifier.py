# blunder_scout/core/blunder_classifier.py
"""
Contains the rule that decides whether a played move was a blunder.

A move is a blunder when the evaluation swings by at least the configured
threshold *and* the player did not play the move the evaluation source
suggested. A large swing caused by the suggested move itself only means the
position was already bad; it is never the player's blunder.
"""
from dataclasses import dataclass
from typing import Optional

from blunder_scout.core.score_utils import evaluation_delta
from blunder_scout.types import Score


@dataclass(frozen=True, slots=True)
class BlunderVerdict:
    delta_cp: int; is_blunder: bool; played_suggested_move: bool


def _strip_suffixes(san: str) -> str:
    return san.rstrip("+#!?")


def is_same_move(played_san: str, suggested_san: Optional[str]) -> bool:
    """Compares two SAN strings, ignoring check, mate and annotation suffixes."""
    if suggested_san is None:
        return False
    return _strip_suffixes(played_san) == _strip_suffixes(suggested_san)


class BlunderClassifier:
    """A stateless classifier applying the threshold-and-missed-best-move rule."""

    def __init__(self, threshold_cp: int, mate_score_cp: int):
        """
        Args:
            threshold_cp: The smallest evaluation swing that can be a blunder.
            mate_score_cp: The centipawn value forced mates are normalized to.
        """
        self._threshold_cp = threshold_cp
        self._mate_score_cp = mate_score_cp

    def classify(
        self, score_before: Score, score_after: Score, played_san: str, suggested_san: Optional[str]
    ) -> BlunderVerdict:
        delta = evaluation_delta(score_before, score_after, self._mate_score_cp)
        played_suggested = is_same_move(played_san, suggested_san)
        return BlunderVerdict(
            delta_cp=delta,
            is_blunder=delta >= self._threshold_cp and not played_suggested,
            played_suggested_move=played_suggested,
        )
