# blunder_scout/core/tactics.py
"""
Provides pure functions that name the tactical ideas of a position.

The detectors look one ply ahead only. They report what the side to move
could do next (capture, give check, fork with a knight, pin with a line
piece), not whether doing it is any good.
"""

from typing import List

import chess

from blunder_scout.types import TacticalTheme

_LINE_PIECES = (chess.BISHOP, chess.ROOK, chess.QUEEN)


def describe_move(board: chess.Board, move: chess.Move) -> str:
    """Labels a legal move of `board` as a capture, check, castling, pawn advance or development."""
    if board.is_capture(move):
        return "Capture"
    if board.gives_check(move):
        return "Check"
    if board.is_castling(move):
        return "Castling"
    if board.piece_type_at(move.from_square) == chess.PAWN:
        return "Pawn advance"
    return "Development"


def creates_fork(board: chess.Board, move: chess.Move) -> bool:
    """True when a knight move lands on a square attacking two or more enemy pieces."""
    if board.piece_type_at(move.from_square) != chess.KNIGHT:
        return False
    targets = chess.BB_KNIGHT_ATTACKS[move.to_square] & board.occupied_co[not board.turn]
    return len(chess.SquareSet(targets)) >= 2


def _pinned_squares(board: chess.Board, color: chess.Color) -> chess.SquareSet:
    return chess.SquareSet(
        square for square in chess.SquareSet(board.occupied_co[color])
        if board.piece_type_at(square) != chess.KING and board.is_pinned(color, square)
    )


def creates_pin(board: chess.Board, move: chess.Move) -> bool:
    """True when a bishop, rook or queen move pins an enemy piece that was not pinned before."""
    if board.piece_type_at(move.from_square) not in _LINE_PIECES:
        return False
    opponent = not board.turn
    before = _pinned_squares(board, opponent)
    after_board = board.copy(stack=False)
    after_board.push(move)
    return bool(_pinned_squares(after_board, opponent) - before)


def identify_tactical_themes(board: chess.Board) -> List[TacticalTheme]:
    """
    Lists the themes available to the side to move, each once.

    Themes appear in the order their first move is generated by python-chess,
    so the result is deterministic for a given position.
    """
    themes: List[TacticalTheme] = []

    def note(theme: TacticalTheme) -> None:
        if theme not in themes:
            themes.append(theme)

    for move in board.legal_moves:
        if board.is_capture(move):
            note(TacticalTheme.CAPTURE)
        if board.gives_check(move):
            note(TacticalTheme.CHECK)
        if creates_fork(board, move):
            note(TacticalTheme.FORK)
        if creates_pin(board, move):
            note(TacticalTheme.PIN)
    return themes
