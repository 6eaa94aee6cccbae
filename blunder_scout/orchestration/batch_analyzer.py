# blunder_scout/orchestration/batch_analyzer.py
"""
Analyzes many independent games concurrently.
"""

import asyncio
import uuid
from typing import List, Optional, Sequence, TYPE_CHECKING

import structlog

from blunder_scout.output.report_generator import build_transcript
from blunder_scout.tracing import CorrelationID
from blunder_scout.types import BatchReport, EvaluationSource, ExtractionMethod, GameReport, ReportStatus
from blunder_scout.utils import metrics

if TYPE_CHECKING:
    from blunder_scout.config.settings import BatchSettings
    from blunder_scout.orchestration.game_analyzer import GameAnalyzer

logger = structlog.get_logger(__name__)


class BatchAnalyzer:
    """
    Runs one `GameAnalyzer` over a list of PGN records with bounded concurrency.

    Every game keeps its own retry state; the analyzer's `RateLimiter` is
    shared, so the combined request rate stays within the configured pacing.
    """

    def __init__(self, settings: "BatchSettings", analyzer: "GameAnalyzer"):
        self._analyzer = analyzer
        self._concurrency = settings.concurrency

    async def _analyze_one(
        self,
        index: int,
        pgn_text: str,
        source: EvaluationSource,
        semaphore: asyncio.Semaphore,
        run_id: str,
        shutdown_event: Optional[asyncio.Event],
    ) -> GameReport:
        """A safe wrapper for analyzing a single game."""
        async with semaphore:
            cid = CorrelationID.for_game(run_id, game_id=f"game_{index}")
            with cid.bound():
                try:
                    return await self._analyzer.analyze_pgn(pgn_text, source, shutdown_event=shutdown_event)
                except Exception as e:
                    logger.error("Unhandled exception while analyzing game.", index=index, exc_info=e)
                    metrics.GAMES_ANALYZED_TOTAL.labels(status=ReportStatus.INPUT_FAILED.value).inc()
                    reason = f"Analysis failed unexpectedly: {e}"
                    return GameReport(
                        game_id=cid.game_id,
                        records=(),
                        has_blunders=False,
                        status=ReportStatus.INPUT_FAILED,
                        transcript=build_transcript(cid.game_id, (), reason),
                        reason=reason,
                        extraction=ExtractionMethod.NONE,
                    )

    async def analyze_games(
        self,
        pgn_texts: Sequence[str],
        source: EvaluationSource,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> BatchReport:
        """
        Analyzes every PGN record and returns the reports in input order.

        A game that fails unexpectedly yields an INPUT_FAILED report instead of
        aborting the batch; its failure is also listed in `warnings`.
        """
        run_id = uuid.uuid4().hex[:8]
        semaphore = asyncio.Semaphore(self._concurrency)
        logger.info("Starting batch analysis.", run_id=run_id, games=len(pgn_texts), concurrency=self._concurrency)

        tasks = [
            asyncio.create_task(self._analyze_one(index, text, source, semaphore, run_id, shutdown_event))
            for index, text in enumerate(pgn_texts, start=1)
        ]
        reports: List[GameReport] = list(await asyncio.gather(*tasks))

        warnings = [
            f"{report.game_id}: {report.reason}"
            for report in reports
            if report.status in (ReportStatus.INPUT_FAILED, ReportStatus.TRUNCATED)
        ]
        batch = BatchReport(reports=reports, warnings=warnings)
        logger.info(
            "Batch analysis finished.", run_id=run_id, games=len(reports),
            games_with_blunders=batch.games_with_blunders, warnings=len(warnings),
        )
        return batch
