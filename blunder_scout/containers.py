# blunder_scout/containers.py
"""
Defines the Dependency Injection (DI) container for the application.

This module uses the `punq` library to manage the creation and wiring of the
rules adapter, the evaluator, the shared rate limiter, the evaluation source
selected by configuration, and the analyzers built on top of them.
"""

from typing import Optional

import httpx
import punq

from blunder_scout.config.settings import Settings
from blunder_scout.core.position_evaluator import PositionEvaluator
from blunder_scout.core.rules import PythonChessRules
from blunder_scout.orchestration.batch_analyzer import BatchAnalyzer
from blunder_scout.orchestration.game_analyzer import GameAnalyzer
from blunder_scout.output.report_generator import ReportGenerator
from blunder_scout.services.local_evaluation_source import LocalEvaluationSource
from blunder_scout.services.remote_evaluation_source import RemoteEvaluationSource
from blunder_scout.types import ChessRules, EvaluationMode, EvaluationSource
from blunder_scout.utils.rate_limiter import RateLimiter


def get_container(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> punq.Container:
    """
    Initializes and returns a DI container for one configuration.

    Args:
        settings: The complete application settings.
        http_client: An optional client for the remote source (tests inject one
            built on `httpx.MockTransport`).
    """
    container = punq.Container()
    analyzer_settings = settings.analyzer

    container.register(Settings, instance=settings)
    container.register(ChessRules, factory=PythonChessRules, scope=punq.Scope.singleton)
    container.register(
        PositionEvaluator, factory=lambda: PositionEvaluator(analyzer_settings.weights), scope=punq.Scope.singleton
    )
    # One limiter per container, shared by every game that talks to the remote service.
    container.register(
        RateLimiter, factory=lambda: RateLimiter(analyzer_settings.rate_limit), scope=punq.Scope.singleton
    )

    if analyzer_settings.mode is EvaluationMode.REMOTE:
        container.register(
            EvaluationSource,
            factory=lambda: RemoteEvaluationSource(
                analyzer_settings.remote, analyzer_settings.retry, container.resolve(ChessRules), client=http_client
            ),
            scope=punq.Scope.singleton,
        )
    else:
        container.register(
            EvaluationSource,
            factory=lambda: LocalEvaluationSource(container.resolve(PositionEvaluator), container.resolve(ChessRules)),
            scope=punq.Scope.singleton,
        )

    container.register(
        GameAnalyzer,
        factory=lambda: GameAnalyzer(analyzer_settings, container.resolve(ChessRules), container.resolve(RateLimiter)),
        scope=punq.Scope.singleton,
    )
    container.register(BatchAnalyzer, factory=lambda: BatchAnalyzer(settings.batch, container.resolve(GameAnalyzer)))
    container.register(ReportGenerator)

    return container
