# blunder_scout/core/position_evaluator.py
"""
Contains the static position evaluator and its depth-1 best-move search.

The `PositionEvaluator` is a deterministic stand-in for a real search engine:
it sums the weighted terms from `evaluation_factors` into a single White-positive
centipawn score. It holds no mutable state, so one instance can be shared by
any number of concurrent analyses.
"""
from typing import List, Optional, Tuple, TYPE_CHECKING

import chess
import structlog

from blunder_scout.core import evaluation_factors as factors
from blunder_scout.types import Centipawn, EvaluationBreakdown, Score

if TYPE_CHECKING:
    from blunder_scout.config.settings import EvaluatorWeightsModel

logger = structlog.get_logger(__name__)


class PositionEvaluator:
    """Scores positions from weighted heuristic factors."""

    def __init__(self, weights: "EvaluatorWeightsModel"):
        """
        Initializes the evaluator.

        Args:
            weights: The centipawn weights of every scoring term.
        """
        self._weights = weights

    def evaluate_breakdown(self, board: chess.Board) -> EvaluationBreakdown:
        """
        Computes every scoring term separately.

        Legal moves are enumerated once and shared by the terms that need them,
        in the order `python-chess` generates them.
        """
        legal_moves = list(board.legal_moves)
        return EvaluationBreakdown(
            material=factors.material(board, self._weights),
            mobility=factors.mobility(board, legal_moves, self._weights),
            king_safety=factors.king_safety(board, self._weights),
            pawn_structure=factors.pawn_structure(board, self._weights),
            positional=factors.positional(board, legal_moves, self._weights),
            tactical=factors.tactical(board, legal_moves, self._weights),
        )

    def evaluate(self, board: chess.Board) -> Score:
        """Returns the White-positive score of `board`."""
        return Centipawn(self.evaluate_breakdown(board).total)

    def _score_for_mover(self, board: chess.Board) -> int:
        """Scores the position after a move from the point of view of the player who made it."""
        white_relative = self.evaluate_breakdown(board).total
        # The opponent is now to move; the mover's view is the negation of theirs.
        opponent_view = white_relative if board.turn == chess.WHITE else -white_relative
        return -opponent_view

    def rank_moves(self, board: chess.Board, limit: Optional[int] = None) -> List[Tuple[chess.Move, int]]:
        """
        Scores legal moves one ply deep, in generation order.

        With `limit`, only the first `limit` generated moves are scored. The
        caller's board is never touched; the search plays and takes back moves
        on a private copy.
        """
        scratch = board.copy(stack=False)
        ranked: List[Tuple[chess.Move, int]] = []
        for move in list(scratch.legal_moves)[:limit]:
            scratch.push(move)
            try:
                ranked.append((move, self._score_for_mover(scratch)))
            finally:
                scratch.pop()
        return ranked

    def find_best_move(self, board: chess.Board) -> Optional[chess.Move]:
        """
        Picks the legal move with the highest one-ply score.

        Ties keep the move generated first. Returns None when the side to move
        has no legal move (checkmate or stalemate).
        """
        best_move: Optional[chess.Move] = None
        best_score: Optional[int] = None
        for move, score in self.rank_moves(board):
            if best_score is None or score > best_score:
                best_move, best_score = move, score

        if best_move is None:
            logger.debug("No legal moves available for best-move search.", fen=board.fen())
        return best_move
