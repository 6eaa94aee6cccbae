# tests/orchestration/test_game_analyzer.py
import asyncio

import chess
import httpx
import pytest

from blunder_scout.config.settings import (AnalyzerSettings, EvaluatorWeightsModel, RateLimitModel,
                                           RemoteServiceModel, RetryPolicyModel)
from blunder_scout.core.position_evaluator import PositionEvaluator
from blunder_scout.core.rules import PythonChessRules
from blunder_scout.exceptions import EvaluationTransportError, MalformedEvaluationError
from blunder_scout.orchestration.game_analyzer import GameAnalyzer
from blunder_scout.services.local_evaluation_source import LocalEvaluationSource
from blunder_scout.services.remote_evaluation_source import RemoteEvaluationSource
from blunder_scout.types import (AlternativeMove, Centipawn, EvaluationResult, ExtractionMethod, GamePhase,
                                 Mate, ReportStatus, TacticalTheme)
from blunder_scout.utils.rate_limiter import RateLimiter

OPENING = ["e4", "e5", "Nf3", "Nc6", "Bb5"]


class ScriptedSource:
    """An evaluation source replaying scripted results and errors, one per request."""

    name = "scripted"

    def __init__(self, *steps, requires_spacing: bool = False):
        self.steps = list(steps)
        self.requires_spacing = requires_spacing
        self.positions = []

    async def evaluate(self, position, limit):
        self.positions.append(position.fen())
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    async def close(self):
        return None


def _result(score, best_move=None) -> EvaluationResult:
    return EvaluationResult(score=score, best_move=best_move, source="scripted")


def _analyzer(**overrides) -> GameAnalyzer:
    settings = AnalyzerSettings(**overrides)
    return GameAnalyzer(settings, PythonChessRules(), RateLimiter(RateLimitModel(min_interval_s=0.0)))


def _local_source() -> LocalEvaluationSource:
    return LocalEvaluationSource(PositionEvaluator(EvaluatorWeightsModel()), PythonChessRules())


@pytest.mark.asyncio
async def test_local_analysis_produces_one_record_per_ply():
    # Act
    report = await _analyzer().analyze_game(OPENING, _local_source(), game_id="ruy_lopez")

    # Assert
    assert report.status == ReportStatus.COMPLETED
    assert [record.ply for record in report.records] == [1, 2, 3, 4, 5]
    assert [record.side for record in report.records] == ["w", "b", "w", "b", "w"]
    assert [record.move_san for record in report.records] == OPENING
    assert report.requested_plies == 5
    assert report.skipped_plies == ()
    assert report.has_blunders == any(record.is_blunder for record in report.records)
    assert all(record.phase == GamePhase.OPENING for record in report.records)
    assert report.transcript[0] == "Game: ruy_lopez"
    assert report.transcript[1].startswith("Move 1: e4     | Eval: ")
    assert report.transcript[-2] == ""


@pytest.mark.asyncio
async def test_recorded_moves_replay_to_the_recorded_positions():
    rules = PythonChessRules()
    report = await _analyzer().analyze_game(OPENING, _local_source())

    position = rules.initial_position()
    for record in report.records:
        position = rules.apply_move(position, record.move_san)
        assert rules.canonical_notation(position) == record.position_after


@pytest.mark.asyncio
async def test_local_analysis_is_idempotent():
    first = await _analyzer().analyze_game(OPENING, _local_source(), game_id="same")
    second = await _analyzer().analyze_game(OPENING, _local_source(), game_id="same")

    assert first == second


@pytest.mark.asyncio
async def test_after_evaluation_is_reused_as_the_next_before_evaluation():
    source = ScriptedSource(
        _result(Centipawn(30), "e5"), _result(Centipawn(25), "Nf3"), _result(Centipawn(40), "Nc6"),
    )

    report = await _analyzer().analyze_game(["e4", "e5"], source)

    assert len(source.positions) == 3
    assert report.records[1].score_before == Centipawn(25)
    assert report.records[1].best_move == "Nf3"


@pytest.mark.asyncio
async def test_missing_the_suggested_move_on_a_big_swing_is_a_blunder():
    source = ScriptedSource(_result(Centipawn(150), "d4"), _result(Centipawn(-150)))

    report = await _analyzer().analyze_game(["e4"], source)

    record = report.records[0]
    assert record.is_blunder
    assert record.delta_cp == 300
    assert report.has_blunders
    assert report.transcript[1].endswith("?? best was d4")
    assert report.transcript[-1].startswith("Blunders detected: 1")


@pytest.mark.asyncio
async def test_playing_the_suggested_move_is_not_a_blunder():
    source = ScriptedSource(_result(Centipawn(150), "e4"), _result(Centipawn(-150)))

    report = await _analyzer().analyze_game(["e4"], source)

    assert not report.records[0].is_blunder
    assert not report.has_blunders
    assert report.transcript[-1].startswith("No blunders detected")


@pytest.mark.asyncio
async def test_mate_scores_are_normalized_before_comparing():
    source = ScriptedSource(_result(Centipawn(0), "Nf3"), _result(Mate(-1)))

    report = await _analyzer().analyze_game(["f3"], source)

    assert report.records[0].delta_cp == 10000
    assert report.records[0].score_after == Mate(-1)
    assert report.records[0].is_blunder


@pytest.mark.asyncio
async def test_max_plies_caps_the_analysis():
    report = await _analyzer(max_plies=2).analyze_game(OPENING, _local_source())

    assert report.requested_plies == 2
    assert [record.move_san for record in report.records] == ["e4", "e5"]
    assert report.status == ReportStatus.COMPLETED


@pytest.mark.asyncio
async def test_illegal_move_truncates_the_report():
    report = await _analyzer().analyze_game(["e4", "e5", "Ke3", "Nc6"], _local_source())

    assert report.status == ReportStatus.TRUNCATED
    assert len(report.records) == 2
    assert "Ke3" in report.reason
    assert "ply 3" in report.reason


@pytest.mark.asyncio
async def test_fatal_evaluation_error_skips_only_that_move():
    # Arrange: the after-evaluation of ply 1 fails, so ply 2 needs a fresh before-evaluation.
    source = ScriptedSource(
        _result(Centipawn(20), "e4"),
        MalformedEvaluationError("garbage"),
        _result(Centipawn(25), "Nf3"),
        _result(Centipawn(30), "Nc6"),
    )

    # Act
    report = await _analyzer().analyze_game(["e4", "e5"], source)

    # Assert
    assert report.status == ReportStatus.COMPLETED
    assert report.skipped_plies == (1,)
    assert [record.ply for record in report.records] == [2]
    assert report.records[0].side == "b"


@pytest.mark.asyncio
async def test_exhausted_retries_also_skip_the_move():
    source = ScriptedSource(EvaluationTransportError("down"), _result(Centipawn(0), "e5"))

    report = await _analyzer().analyze_game(["e4"], source)

    assert report.records == ()
    assert report.skipped_plies == (1,)
    assert report.reason == "All 1 plies failed to evaluate."
    assert report.transcript[-1] == "No moves were evaluated: All 1 plies failed to evaluate."


@pytest.mark.asyncio
async def test_empty_move_list_is_never_reported_as_clean():
    report = await _analyzer().analyze_game([], _local_source(), game_id="empty")

    assert report.records == ()
    assert not report.has_blunders
    assert report.reason == "The move list was empty."
    assert report.transcript == ("Game: empty", "", "No moves were evaluated: The move list was empty.")


@pytest.mark.asyncio
async def test_cancellation_before_the_first_move():
    shutdown_event = asyncio.Event()
    shutdown_event.set()

    report = await _analyzer().analyze_game(OPENING, _local_source(), shutdown_event=shutdown_event)

    assert report.status == ReportStatus.CANCELLED
    assert report.records == ()


@pytest.mark.asyncio
async def test_cancellation_aborts_the_in_flight_evaluation():
    # Arrange
    shutdown_event = asyncio.Event()
    aborted = asyncio.Event()

    class HangingSource(ScriptedSource):
        async def evaluate(self, position, limit):
            if len(self.steps) > 0:
                return await super().evaluate(position, limit)
            shutdown_event.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                aborted.set()
                raise

    source = HangingSource(_result(Centipawn(20), "e4"), _result(Centipawn(25), "e5"))

    # Act
    report = await _analyzer().analyze_game(OPENING, source, shutdown_event=shutdown_event)

    # Assert
    assert report.status == ReportStatus.CANCELLED
    assert [record.move_san for record in report.records] == ["e4"]
    assert report.reason == "Analysis cancelled at ply 2."
    assert aborted.is_set()


@pytest.mark.asyncio
async def test_spaced_sources_go_through_the_rate_limiter():
    limiter = RateLimiter(RateLimitModel(min_interval_s=0.0))
    analyzer = GameAnalyzer(AnalyzerSettings(), PythonChessRules(), limiter)
    source = ScriptedSource(
        _result(Centipawn(0)), _result(Centipawn(0)), _result(Centipawn(0)), requires_spacing=True
    )

    await analyzer.analyze_game(["e4", "e5"], source)

    assert limiter.granted == 3


@pytest.mark.asyncio
async def test_analyze_pgn_uses_structured_moves_and_derives_the_game_id():
    pgn = '[Event "Club"]\n[White "Player A"]\n[Black "Player B"]\n[Date "2025.01.01"]\n\n1. e4 e5 2. Nf3 *'

    report = await _analyzer().analyze_pgn(pgn, _local_source())

    assert report.game_id == "local_Player_A_vs_Player_B_2025.01.01"
    assert report.extraction == ExtractionMethod.STRUCTURED
    assert report.transcript[0] == "Game: Club"
    assert len(report.records) == 3
    assert report.reason is None


@pytest.mark.asyncio
async def test_analyze_pgn_falls_back_to_recovered_moves():
    pgn = '[Event "Broken"]\n\n1. e4 e5 2. Ke3 Nc6 *'

    report = await _analyzer().analyze_pgn(pgn, _local_source(), game_id="broken")

    assert report.status == ReportStatus.COMPLETED
    assert report.extraction == ExtractionMethod.RECOVERED
    assert [record.move_san for record in report.records] == ["e4", "e5"]
    assert report.reason.startswith("Moves recovered from raw text")


@pytest.mark.asyncio
async def test_analyze_pgn_reports_input_failure():
    report = await _analyzer().analyze_pgn("", _local_source(), game_id="nothing")

    assert report.status == ReportStatus.INPUT_FAILED
    assert report.extraction == ExtractionMethod.NONE
    assert report.records == ()
    assert report.reason.startswith("No moves could be extracted")
    assert report.transcript[-1].startswith("No moves were evaluated: ")


@pytest.mark.asyncio
async def test_game_from_a_custom_position_starts_there():
    fen = "4k3/8/8/3q4/8/8/8/3QK3 w - - 0 1"

    report = await _analyzer().analyze_game(["Qxd5"], _local_source(), starting_fen=fen)

    board = chess.Board(fen)
    board.push_san("Qxd5")
    assert report.records[0].position_after == board.fen()
    assert not report.records[0].is_blunder


@pytest.mark.asyncio
async def test_record_keeps_the_details_of_the_before_evaluation():
    before = EvaluationResult(
        score=Centipawn(20), best_move="e4", source="scripted", continuation=["e2e4", "e7e5"],
        alternatives=[AlternativeMove("a3", -15, "Pawn advance")], tactical_themes=[TacticalTheme.CHECK],
    )
    source = ScriptedSource(before, _result(Centipawn(30)))

    report = await _analyzer().analyze_game(["e4"], source)

    record = report.records[0]
    assert record.continuation == ("e2e4", "e7e5")
    assert record.alternatives == (AlternativeMove("a3", -15, "Pawn advance"),)
    assert record.tactical_themes == (TacticalTheme.CHECK,)


@pytest.mark.asyncio
async def test_local_records_carry_alternatives():
    report = await _analyzer().analyze_game(OPENING, _local_source())

    assert all(len(record.alternatives) == 3 for record in report.records)
    assert all(len(record.continuation) == 1 for record in report.records)


@pytest.mark.asyncio
@pytest.mark.parametrize("evaluation", ["nan", "inf"])
async def test_non_finite_remote_score_skips_only_that_ply(evaluation):
    # Arrange: the third request is the after-evaluation of ply 2.
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        score = evaluation if len(requests) == 3 else 0.2
        return httpx.Response(200, json={"success": True, "evaluation": score, "mate": None, "bestmove": "bestmove (none)"})

    async def no_sleep(seconds: float) -> None:
        return None

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    source = RemoteEvaluationSource(
        RemoteServiceModel(), RetryPolicyModel(), PythonChessRules(), client=client, sleep=no_sleep
    )

    # Act
    report = await _analyzer().analyze_game(["e4", "e5", "Nf3", "Nc6"], source)

    # Assert
    assert report.status == ReportStatus.COMPLETED
    assert report.skipped_plies == (2,)
    assert [record.ply for record in report.records] == [1, 3, 4]
    await client.aclose()


@pytest.mark.asyncio
async def test_cancelling_the_caller_finishes_the_in_flight_evaluation():
    # Arrange
    started = asyncio.Event()
    aborted = asyncio.Event()

    class StuckSource(ScriptedSource):
        async def evaluate(self, position, limit):
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                aborted.set()
                raise

    analysis = asyncio.create_task(
        _analyzer().analyze_game(OPENING, StuckSource(), shutdown_event=asyncio.Event())
    )
    await started.wait()

    # Act
    analysis.cancel()
    with pytest.raises(asyncio.CancelledError):
        await analysis

    # Assert
    assert aborted.is_set()
