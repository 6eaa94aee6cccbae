# blunder_scout/core/evaluation_factors.py
"""
Provides the individual scoring terms of the static position evaluator.

Every function here is pure: it reads a `chess.Board`, never mutates it, and
returns a signed integer in centipawns from White's point of view. Terms that
describe what the side to move *could* do (mobility, attacked squares,
available captures and checks) are credited to that side, so they change sign
with the turn. Together they form the "math library" that
`position_evaluator` sums up.
"""

from typing import Dict, Final, List, TYPE_CHECKING

import chess

if TYPE_CHECKING:
    from blunder_scout.config.settings import EvaluatorWeightsModel

CENTER_SQUARES: Final[List[chess.Square]] = [chess.D4, chess.E4, chess.D5, chess.E5]
MINOR_PIECES: Final = (chess.KNIGHT, chess.BISHOP)


def piece_values(weights: "EvaluatorWeightsModel") -> Dict[chess.PieceType, int]:
    """Maps each piece type to its configured centipawn value; the king is priceless and counts zero."""
    return {
        chess.PAWN: weights.pawn_value,
        chess.KNIGHT: weights.knight_value,
        chess.BISHOP: weights.bishop_value,
        chess.ROOK: weights.rook_value,
        chess.QUEEN: weights.queen_value,
        chess.KING: 0,
    }


def _turn_sign(board: chess.Board) -> int:
    return 1 if board.turn == chess.WHITE else -1


def _captured_piece_type(board: chess.Board, move: chess.Move) -> chess.PieceType:
    # En passant lands on an empty square.
    if board.is_en_passant(move):
        return chess.PAWN
    return board.piece_type_at(move.to_square) or chess.PAWN


def material(board: chess.Board, weights: "EvaluatorWeightsModel") -> int:
    """Sums piece values, White pieces positive and Black pieces negative."""
    values = piece_values(weights)
    total = 0
    for piece in board.piece_map().values():
        value = values[piece.piece_type]
        total += value if piece.color == chess.WHITE else -value
    return total


def mobility(board: chess.Board, legal_moves: List[chess.Move], weights: "EvaluatorWeightsModel") -> int:
    """
    Scores the activity available to the side to move.

    A flat amount per legal move, with extra credit for captures, checks and
    knight/bishop moves.
    """
    activity = len(legal_moves) * weights.mobility_per_move
    for move in legal_moves:
        if board.is_capture(move):
            activity += weights.mobility_capture_bonus
        if board.gives_check(move):
            activity += weights.mobility_check_bonus
        if board.piece_type_at(move.from_square) in MINOR_PIECES:
            activity += weights.mobility_minor_piece_bonus
    return _turn_sign(board) * activity


def king_safety(board: chess.Board, weights: "EvaluatorWeightsModel") -> int:
    """Penalizes the side to move for being in check and rewards each castling right still held."""
    safety = 0
    if board.is_check():
        safety -= _turn_sign(board) * weights.in_check_penalty

    for color, sign in ((chess.WHITE, 1), (chess.BLACK, -1)):
        rights = int(board.has_kingside_castling_rights(color)) + int(board.has_queenside_castling_rights(color))
        safety += sign * rights * weights.castling_right_bonus
    return safety


def _pawn_structure_penalty(board: chess.Board, color: chess.Color, weights: "EvaluatorWeightsModel") -> int:
    pawns_per_file = [0] * 8
    for square in board.pieces(chess.PAWN, color):
        pawns_per_file[chess.square_file(square)] += 1

    penalty = 0
    for file_index, count in enumerate(pawns_per_file):
        if count == 0:
            continue
        if count > 1:
            penalty += (count - 1) * weights.doubled_pawn_penalty

        neighbours = [pawns_per_file[f] for f in (file_index - 1, file_index + 1) if 0 <= f < 8]
        if not any(neighbours):
            penalty += count * weights.isolated_pawn_penalty
    return penalty


def pawn_structure(board: chess.Board, weights: "EvaluatorWeightsModel") -> int:
    """Penalizes doubled and isolated pawns for each side."""
    return (
        _pawn_structure_penalty(board, chess.BLACK, weights)
        - _pawn_structure_penalty(board, chess.WHITE, weights)
    )


def positional(board: chess.Board, legal_moves: List[chess.Move], weights: "EvaluatorWeightsModel") -> int:
    """Rewards occupying the four central squares and controlling many distinct squares."""
    score = 0
    for square in CENTER_SQUARES:
        piece = board.piece_at(square)
        if piece is not None:
            score += weights.center_occupancy_bonus if piece.color == chess.WHITE else -weights.center_occupancy_bonus

    attacked_squares = {move.to_square for move in legal_moves}
    score += _turn_sign(board) * len(attacked_squares) * weights.attacked_square_bonus
    return score


def tactical(board: chess.Board, legal_moves: List[chess.Move], weights: "EvaluatorWeightsModel") -> int:
    """Credits the side to move with the value of everything it can capture and every check it can give."""
    values = piece_values(weights)
    opportunities = 0
    for move in legal_moves:
        if board.is_capture(move):
            opportunities += values[_captured_piece_type(board, move)]
        if board.gives_check(move):
            opportunities += weights.check_threat_bonus
    return _turn_sign(board) * opportunities
