# blunder_scout/core/game_phaser.py
"""
Labels a position as Opening, Middlegame or Endgame.

The label is attached to every move record so a reader can see where in the
game a blunder happened. The move number decides first: early moves are the
opening and late moves the endgame. A middlegame position that has already
been traded down to a few pieces is labelled an endgame as well.
"""

from typing import TYPE_CHECKING

import chess

from blunder_scout.types import GamePhase

if TYPE_CHECKING:
    from blunder_scout.config.settings import GamePhaserSettingsModel


def determine_game_phase(board: chess.Board, settings: "GamePhaserSettingsModel") -> GamePhase:
    """
    Classifies `board` by its full-move number, then by the pieces left.

    Returns:
        OPENING up to `opening_max_fullmoves`; ENDGAME from
        `endgame_min_fullmoves` on, or earlier once at most
        `endgame_max_piece_count` knights, bishops, rooks and queens remain;
        MIDDLEGAME otherwise.
    """
    move_number = board.fullmove_number
    if move_number <= settings.opening_max_fullmoves:
        return GamePhase.OPENING
    if move_number >= settings.endgame_min_fullmoves:
        return GamePhase.ENDGAME

    remaining = len(chess.SquareSet(board.knights | board.bishops | board.rooks | board.queens))
    return GamePhase.ENDGAME if remaining <= settings.endgame_max_piece_count else GamePhase.MIDDLEGAME
