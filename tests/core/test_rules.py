# tests/core/test_rules.py
import chess
import pytest

from blunder_scout.core.rules import PythonChessRules
from blunder_scout.exceptions import IllegalMoveError
from blunder_scout.types import ChessRules


def test_rules_satisfy_the_protocol():
    assert isinstance(PythonChessRules(), ChessRules)


def test_apply_move_returns_a_new_position():
    rules = PythonChessRules()
    start = rules.initial_position()

    after = rules.apply_move(start, "e4")

    assert start.fen() == chess.STARTING_FEN
    assert after.piece_at(chess.E4) == chess.Piece(chess.PAWN, chess.WHITE)
    assert after is not start


def test_moves_are_accepted_in_san_uci_and_zero_castling():
    rules = PythonChessRules()
    position = rules.initial_position()
    for notation in ["e4", "e7e5", "Nf3", "Nc6", "Bc4", "Bc5"]:
        position = rules.apply_move(position, notation)

    assert rules.to_algebraic(position, "0-0") == "O-O"
    assert rules.to_algebraic(position, "e1g1") == "O-O"
    castled = rules.apply_move(position, "0-0")
    assert castled.piece_at(chess.G1) == chess.Piece(chess.KING, chess.WHITE)


def test_illegal_and_unreadable_moves_raise():
    rules = PythonChessRules()
    start = rules.initial_position()

    with pytest.raises(IllegalMoveError) as excinfo:
        rules.apply_move(start, "Ke3")
    assert excinfo.value.notation == "Ke3"

    with pytest.raises(IllegalMoveError):
        rules.to_algebraic(start, "e2e5")
    with pytest.raises(IllegalMoveError):
        rules.to_algebraic(start, chess.Move.from_uci("e1e2"))


def test_initial_position_from_fen_and_check_detection():
    rules = PythonChessRules()
    fen = "4k3/8/8/8/8/8/4r3/4K3 w - - 0 1"

    position = rules.initial_position(fen)

    assert rules.canonical_notation(position) == fen
    assert rules.is_in_check(position)
    assert not rules.is_in_check(rules.initial_position())
    assert len(rules.legal_moves(rules.initial_position())) == 20
