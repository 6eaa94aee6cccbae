# blunder_scout/orchestration/game_analyzer.py
"""
Defines the `GameAnalyzer`, which walks one game move by move and produces
its `GameReport`.

For every ply the analyzer obtains an evaluation of the position before the
move, plays the move, evaluates the position after it and lets the
`BlunderClassifier` judge the swing. Moves are evaluated strictly in order;
only the current evaluation is ever in flight.

Failure handling per ply:

* a per-move fatal evaluation error skips that ply's record but keeps the
  move on the board, so later plies are still analyzed;
* an illegal move stops the analysis with a TRUNCATED report;
* setting the caller's `shutdown_event` aborts the in-flight evaluation and
  returns the partial report as CANCELLED.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TYPE_CHECKING

import chess
import structlog

from blunder_scout.core import pgn_parser
from blunder_scout.core.blunder_classifier import BlunderClassifier
from blunder_scout.core.game_phaser import determine_game_phase
from blunder_scout.exceptions import AnalysisCancelledError, EvaluationError, IllegalMoveError
from blunder_scout.output.report_generator import build_transcript
from blunder_scout.tracing import trace_operation
from blunder_scout.types import (EvaluationResult, EvaluationSource, ExtractionMethod, FEN,
                                 GameReport, MoveRecord, ReportStatus)
from blunder_scout.utils import metrics

if TYPE_CHECKING:
    from blunder_scout.config.settings import AnalyzerSettings
    from blunder_scout.types import ChessRules
    from blunder_scout.utils.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


@dataclass
class _ReportBuilder:
    """Accumulates the results of one run; frozen into a `GameReport` exactly once."""
    game_id: str
    game_name: str
    extraction: ExtractionMethod
    requested_plies: int = 0
    note: Optional[str] = None
    records: List[MoveRecord] = field(default_factory=list)
    skipped_plies: List[int] = field(default_factory=list)

    def finalize(self, status: ReportStatus, reason: Optional[str] = None) -> GameReport:
        reason = reason or self.note
        if not self.records and reason is None:
            reason = "The move list was empty." if self.requested_plies == 0 else (
                f"All {self.requested_plies} plies failed to evaluate."
            )
        records = tuple(self.records)
        report = GameReport(
            game_id=self.game_id,
            records=records,
            has_blunders=any(record.is_blunder for record in records),
            status=status,
            transcript=build_transcript(self.game_name, records, reason),
            reason=reason,
            requested_plies=self.requested_plies,
            skipped_plies=tuple(self.skipped_plies),
            extraction=self.extraction,
        )
        metrics.GAMES_ANALYZED_TOTAL.labels(status=status.value).inc()
        metrics.BLUNDERS_FLAGGED_TOTAL.inc(len(report.blunders))
        return report


class GameAnalyzer:
    """Analyzes single games against an evaluation source."""

    def __init__(self, settings: "AnalyzerSettings", rules: "ChessRules", rate_limiter: "RateLimiter"):
        """
        Initializes the GameAnalyzer.

        Args:
            settings: Limits, blunder threshold and ply cap for every analysis.
            rules: The rules capability used to replay the moves.
            rate_limiter: The pacer shared by every game using a spaced source.
        """
        self._settings = settings
        self._rules = rules
        self._rate_limiter = rate_limiter
        self._limit = settings.limit
        self._classifier = BlunderClassifier(settings.blunder_threshold_cp, settings.mate_score_cp)

    async def _await_or_cancel(self, coro, shutdown_event: Optional[asyncio.Event]):
        """Awaits `coro`, abandoning it as soon as `shutdown_event` is set."""
        if shutdown_event is None:
            return await coro

        task = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(shutdown_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise AnalysisCancelledError("Analysis cancelled while an evaluation was in flight.")

    async def _evaluate(
        self, position: chess.Board, source: EvaluationSource, shutdown_event: Optional[asyncio.Event]
    ) -> EvaluationResult:
        if source.requires_spacing:
            await self._await_or_cancel(self._rate_limiter.acquire(), shutdown_event)
        return await self._await_or_cancel(source.evaluate(position, self._limit), shutdown_event)

    @trace_operation
    async def analyze_game(
        self,
        moves: Sequence[str],
        source: EvaluationSource,
        *,
        game_id: str = "game",
        game_name: Optional[str] = None,
        shutdown_event: Optional[asyncio.Event] = None,
        starting_fen: Optional[FEN] = None,
        extraction: ExtractionMethod = ExtractionMethod.STRUCTURED,
        note: Optional[str] = None,
    ) -> GameReport:
        """
        Analyzes `moves` from the initial (or given) position.

        Args:
            moves: The plies to analyze, in SAN (UCI is accepted as well).
            source: Where evaluations come from.
            game_id: The identifier stored on the report.
            game_name: The heading used in the transcript; defaults to `game_id`.
            shutdown_event: Setting it stops the analysis with a CANCELLED report.
            starting_fen: A custom start position.
            extraction: How the moves were obtained; copied onto the report.
            note: A remark about the input, kept as the reason of a COMPLETED report.

        Returns:
            The finished `GameReport`. This method does not raise for bad moves,
            failed evaluations or cancellation; those are reflected in the report.
        """
        plies = list(moves)
        if self._settings.max_plies is not None:
            plies = plies[: self._settings.max_plies]

        builder = _ReportBuilder(
            game_id=game_id, game_name=game_name or game_id, extraction=extraction,
            requested_plies=len(plies), note=note,
        )
        start_time = time.monotonic()
        with structlog.contextvars.bound_contextvars(game_id=game_id):
            try:
                report = await self._run(plies, source, builder, shutdown_event, starting_fen)
            finally:
                metrics.GAME_ANALYSIS_DURATION_SECONDS.observe(time.monotonic() - start_time)
            logger.info(
                "Game analysis finished.", status=report.status.value,
                evaluated=report.evaluated_plies, requested=report.requested_plies,
                blunders=len(report.blunders),
            )
        return report

    async def _run(
        self,
        plies: List[str],
        source: EvaluationSource,
        builder: _ReportBuilder,
        shutdown_event: Optional[asyncio.Event],
        starting_fen: Optional[FEN],
    ) -> GameReport:
        position = self._rules.initial_position(starting_fen)
        # Evaluation of `position`, carried over from the previous ply's after-evaluation.
        known: Optional[EvaluationResult] = None

        for ply, notation in enumerate(plies, start=1):
            if shutdown_event is not None and shutdown_event.is_set():
                return builder.finalize(ReportStatus.CANCELLED, f"Analysis cancelled before ply {ply}.")

            side = "w" if position.turn == chess.WHITE else "b"
            failure: Optional[EvaluationError] = None
            before = known
            try:
                if before is None:
                    before = await self._evaluate(position, source, shutdown_event)
            except EvaluationError as e:
                failure = e
            except AnalysisCancelledError:
                return builder.finalize(ReportStatus.CANCELLED, f"Analysis cancelled at ply {ply}.")

            try:
                played_san = self._rules.to_algebraic(position, notation)
                next_position = self._rules.apply_move(position, notation)
            except IllegalMoveError as e:
                logger.warning("Illegal move in move list, stopping analysis.", ply=ply, move=notation, error=str(e))
                return builder.finalize(
                    ReportStatus.TRUNCATED, f"Illegal move '{notation}' at ply {ply}; analysis stopped."
                )
            prior, position = position, next_position

            known = None
            after: Optional[EvaluationResult] = None
            try:
                after = await self._evaluate(position, source, shutdown_event)
                known = after
            except EvaluationError as e:
                failure = failure or e
            except AnalysisCancelledError:
                return builder.finalize(ReportStatus.CANCELLED, f"Analysis cancelled at ply {ply}.")

            if failure is not None or before is None or after is None:
                error_type = type(failure).__name__ if failure else "MissingEvaluation"
                logger.warning("Skipping move after a fatal evaluation error.", ply=ply, move=played_san, error=str(failure))
                metrics.MOVES_SKIPPED_TOTAL.labels(error_type=error_type).inc()
                builder.skipped_plies.append(ply)
                continue

            verdict = self._classifier.classify(before.score, after.score, played_san, before.best_move)
            record = MoveRecord(
                ply=ply, side=side, move_san=played_san,
                score_before=before.score, score_after=after.score, best_move=before.best_move,
                is_blunder=verdict.is_blunder, delta_cp=verdict.delta_cp,
                position_after=self._rules.canonical_notation(position),
                phase=determine_game_phase(prior, self._settings.phaser),
                continuation=tuple(before.continuation), alternatives=tuple(before.alternatives),
                tactical_themes=tuple(before.tactical_themes),
            )
            if record.is_blunder:
                logger.info("Blunder detected.", ply=ply, move=played_san, best_move=before.best_move, delta_cp=verdict.delta_cp)
            builder.records.append(record)

        return builder.finalize(ReportStatus.COMPLETED)

    async def analyze_pgn(
        self,
        pgn_text: str,
        source: EvaluationSource,
        *,
        game_id: Optional[str] = None,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> GameReport:
        """
        Extracts the moves of a PGN record and analyzes them.

        Structured parsing is tried first, then best-effort recovery from the
        raw text. When no move can be extracted the report is INPUT_FAILED and
        its reason says why.
        """
        parsed = pgn_parser.load_game(pgn_text, self._rules)
        game_id = game_id or pgn_parser.derive_game_id(parsed.metadata)

        if not parsed.moves:
            logger.warning("No moves could be extracted from PGN.", game_id=game_id, reason=parsed.reason)
            builder = _ReportBuilder(game_id=game_id, game_name=parsed.metadata.event, extraction=parsed.extraction)
            return builder.finalize(ReportStatus.INPUT_FAILED, parsed.reason)

        return await self.analyze_game(
            parsed.moves, source,
            game_id=game_id, game_name=parsed.metadata.event, shutdown_event=shutdown_event,
            starting_fen=parsed.starting_fen, extraction=parsed.extraction, note=parsed.reason,
        )
