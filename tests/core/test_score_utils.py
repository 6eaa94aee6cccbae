# tests/core/test_score_utils.py
import pytest

from blunder_scout.core.score_utils import evaluation_delta, format_score, score_from_service, to_centipawns
from blunder_scout.types import Centipawn, Mate


def test_to_centipawns_normalizes_mates_by_sign():
    assert to_centipawns(Mate(3)) == 10000
    assert to_centipawns(Mate(-2)) == -10000
    assert to_centipawns(Mate(1), mate_score_cp=5000) == 5000
    assert to_centipawns(Centipawn(-35)) == -35


def test_mate_distance_must_be_nonzero():
    with pytest.raises(ValueError):
        Mate(0)


def test_evaluation_delta_is_unsigned():
    assert evaluation_delta(Centipawn(150), Centipawn(-150)) == 300
    assert evaluation_delta(Centipawn(-150), Centipawn(150)) == 300
    assert evaluation_delta(Centipawn(500), Mate(-4)) == 10500


def test_score_from_service():
    assert score_from_service(0.35, None) == Centipawn(35)
    assert score_from_service(-1.234, None) == Centipawn(-123)
    assert score_from_service(0.0, 3) == Mate(3)
    assert score_from_service(0.0, 0) == Centipawn(0)


def test_format_score():
    assert format_score(Centipawn(35)) == "+0.35"
    assert format_score(Centipawn(-120)) == "-1.20"
    assert format_score(Mate(3)) == "#+3"
    assert format_score(Mate(-2)) == "#-2"
