# tests/core/test_game_phaser.py
import chess
import pytest

from blunder_scout.config.settings import GamePhaserSettingsModel
from blunder_scout.core.game_phaser import determine_game_phase
from blunder_scout.types import GamePhase

SETTINGS = GamePhaserSettingsModel(opening_max_fullmoves=10, endgame_min_fullmoves=30, endgame_max_piece_count=6)
ROOK_ENDING_FEN = "8/8/8/8/8/4k3/8/R3K3 w - - 0 1"


@pytest.mark.parametrize("move_number, expected", [
    (1, GamePhase.OPENING),
    (10, GamePhase.OPENING),
    (11, GamePhase.MIDDLEGAME),
    (29, GamePhase.MIDDLEGAME),
    (30, GamePhase.ENDGAME),
])
def test_full_material_is_phased_by_move_number(move_number, expected):
    # Arrange
    board = chess.Board()
    board.fullmove_number = move_number

    # Act
    phase = determine_game_phase(board, SETTINGS)

    # Assert
    assert phase == expected


def test_traded_down_middlegame_is_an_endgame():
    board = chess.Board(ROOK_ENDING_FEN)
    board.fullmove_number = 20

    assert determine_game_phase(board, SETTINGS) == GamePhase.ENDGAME


def test_early_moves_stay_in_the_opening_whatever_the_material():
    board = chess.Board(ROOK_ENDING_FEN)
    board.fullmove_number = 4

    assert determine_game_phase(board, SETTINGS) == GamePhase.OPENING


def test_default_thresholds():
    settings = GamePhaserSettingsModel()

    assert (settings.opening_max_fullmoves, settings.endgame_min_fullmoves) == (10, 30)
