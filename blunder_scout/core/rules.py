# blunder_scout/core/rules.py
"""
Adapts the `python-chess` library to the application's `ChessRules` protocol.

This module acts as an Anti-Corruption Layer around the rules of chess. The
rest of the application treats a position as an immutable handle: every
operation here works on a copy and returns a new board, so a caller holding
the previous position can rely on it never changing underneath it.
"""
from typing import List, Optional, Union

import chess

from blunder_scout.exceptions import IllegalMoveError
from blunder_scout.types import FEN, ChessRules

# Castling written with zeros is common in hand-typed game records.
_ZERO_CASTLING = {"0-0": "O-O", "0-0-0": "O-O-O"}


class PythonChessRules(ChessRules):
    """A stateless rules capability backed by `python-chess`."""

    def initial_position(self, fen: Optional[FEN] = None) -> chess.Board:
        """Returns the standard starting position, or the position described by `fen`."""
        return chess.Board(fen or chess.STARTING_FEN)

    def parse_move(self, position: chess.Board, notation: str) -> chess.Move:
        """
        Resolves SAN (or, failing that, UCI) text to a legal move.

        Raises:
            IllegalMoveError: If the text names no legal move in `position`.
        """
        text = notation.strip()
        san_text = _ZERO_CASTLING.get(text.rstrip("+#"), text)
        try:
            return position.parse_san(san_text)
        except ValueError:
            pass
        try:
            move = chess.Move.from_uci(text)
        except ValueError as e:
            raise IllegalMoveError(f"Unrecognized move '{notation}'.", notation) from e
        if move not in position.legal_moves:
            raise IllegalMoveError(f"Move '{notation}' is illegal in {position.fen()}.", notation)
        return move

    def apply_move(self, position: chess.Board, notation: str) -> chess.Board:
        """Returns the position reached by playing `notation`; `position` is left untouched."""
        move = self.parse_move(position, notation)
        successor = position.copy(stack=False)
        successor.push(move)
        return successor

    def legal_moves(self, position: chess.Board) -> List[chess.Move]:
        return list(position.legal_moves)

    def to_algebraic(self, position: chess.Board, move: Union[chess.Move, str]) -> str:
        """Renders a move object, UCI string or loose SAN string as canonical SAN."""
        if isinstance(move, str):
            move = self.parse_move(position, move)
        if move not in position.legal_moves:
            raise IllegalMoveError(f"Move '{move.uci()}' is illegal in {position.fen()}.", move.uci())
        return position.san(move)

    def is_in_check(self, position: chess.Board) -> bool:
        return position.is_check()

    def canonical_notation(self, position: chess.Board) -> FEN:
        return position.fen()
