# blunder_scout/services/local_evaluation_source.py
"""
Provides the local implementation of the `EvaluationSource` protocol.

The local source wraps the static `PositionEvaluator`. It needs no network and
never fails, so the game analyzer does not pace its requests. The CPU-bound
scoring runs in a worker thread via `asyncio.to_thread`, keeping the event
loop free for other games analyzed at the same time.
"""

import asyncio
from typing import List, TYPE_CHECKING

import chess
import structlog

from blunder_scout.core.tactics import describe_move, identify_tactical_themes
from blunder_scout.types import AlternativeMove, EvaluationLimit, EvaluationResult, EvaluationSource
from blunder_scout.utils import metrics

if TYPE_CHECKING:
    from blunder_scout.core.position_evaluator import PositionEvaluator
    from blunder_scout.types import ChessRules

logger = structlog.get_logger(__name__)


class LocalEvaluationSource(EvaluationSource):
    """Scores positions with the heuristic evaluator and a one-ply best-move search."""

    name = "local"
    requires_spacing = False

    def __init__(self, evaluator: "PositionEvaluator", rules: "ChessRules", alternative_count: int = 3):
        """
        Args:
            evaluator: The heuristic evaluator and best-move search.
            rules: Converts suggested moves to SAN.
            alternative_count: How many candidate moves, in generation order, to score and describe.
        """
        self._evaluator = evaluator
        self._rules = rules
        self._alternative_count = alternative_count

    def _alternatives(self, position: chess.Board) -> List[AlternativeMove]:
        return [
            AlternativeMove(
                move_san=self._rules.to_algebraic(position, move),
                score_cp=score,
                description=describe_move(position, move),
            )
            for move, score in self._evaluator.rank_moves(position, limit=self._alternative_count)
        ]

    def _evaluate_sync(self, position: chess.Board) -> EvaluationResult:
        score = self._evaluator.evaluate(position)
        best_move = self._evaluator.find_best_move(position)
        return EvaluationResult(
            score=score,
            best_move=self._rules.to_algebraic(position, best_move) if best_move is not None else None,
            source=self.name,
            continuation=[best_move.uci()] if best_move is not None else [],
            alternatives=self._alternatives(position),
            tactical_themes=identify_tactical_themes(position),
        )

    async def evaluate(self, position: chess.Board, limit: EvaluationLimit) -> EvaluationResult:
        """
        Evaluates `position`. The limit is accepted for interface compatibility;
        the heuristic always searches exactly one ply.
        """
        with metrics.EVALUATION_DURATION_SECONDS.labels(source=self.name).time():
            result = await asyncio.to_thread(self._evaluate_sync, position)
        metrics.EVALUATIONS_TOTAL.labels(source=self.name, outcome="success").inc()
        return result

    async def close(self) -> None:
        """Nothing to release."""
        return None
