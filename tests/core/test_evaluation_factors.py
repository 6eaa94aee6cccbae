# tests/core/test_evaluation_factors.py
import chess

from blunder_scout.config.settings import EvaluatorWeightsModel
from blunder_scout.core import evaluation_factors as factors

WEIGHTS = EvaluatorWeightsModel()


def test_material_is_balanced_at_the_start():
    assert factors.material(chess.Board(), WEIGHTS) == 0


def test_material_counts_a_missing_black_queen_for_white():
    board = chess.Board()
    board.remove_piece_at(chess.D8)

    assert factors.material(board, WEIGHTS) == WEIGHTS.queen_value


def test_pawn_structure_penalizes_doubled_and_isolated_pawns():
    # White has two pawns on the a-file with no neighbours; Black has none.
    board = chess.Board("4k3/8/8/8/8/P7/P7/4K3 w - - 0 1")

    score = factors.pawn_structure(board, WEIGHTS)

    expected_penalty = WEIGHTS.doubled_pawn_penalty + 2 * WEIGHTS.isolated_pawn_penalty
    assert score == -expected_penalty


def test_king_safety_penalizes_the_side_in_check():
    board = chess.Board("4k3/8/8/8/8/8/4r3/4K3 w - - 0 1")
    assert board.is_check()

    assert factors.king_safety(board, WEIGHTS) == -WEIGHTS.in_check_penalty


def test_king_safety_rewards_castling_rights():
    board = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w KQ - 0 1")

    assert factors.king_safety(board, WEIGHTS) == 2 * WEIGHTS.castling_right_bonus


def test_tactical_counts_en_passant_as_a_pawn_capture():
    board = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2")
    legal_moves = list(board.legal_moves)

    assert chess.Move.from_uci("e5d6") in legal_moves
    assert factors.tactical(board, legal_moves, WEIGHTS) == WEIGHTS.pawn_value


def test_positional_rewards_center_occupancy():
    board = chess.Board("4k3/8/8/8/4P3/8/8/4K3 b - - 0 1")

    with_center = factors.positional(board, [], WEIGHTS)

    assert with_center == WEIGHTS.center_occupancy_bonus
