# blunder_scout/services/remote_evaluation_source.py
"""
Provides the remote implementation of the `EvaluationSource` protocol.

This module acts as an adapter to an HTTP reference evaluation service (by
default the public stockfish.online API). It sends a position's FEN and the
requested depth, and translates the JSON reply into the application's
`EvaluationResult`. The reply schema is treated as an evolvable contract:
fields this adapter does not know about are ignored.

Failures are mapped onto the exception hierarchy so the retry controller can
tell them apart:

* connection problems, HTTP 429 and 5xx -> `EvaluationTransportError` (retried)
* a request exceeding its timeout        -> `EvaluationTimeoutError` (retried)
* `"success": false` in the reply        -> `EvaluationServiceError` (retried)
* anything that is not a usable reply    -> `MalformedEvaluationError` (not retried)
"""

import asyncio
import math
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

import chess
import httpx
import structlog

from blunder_scout.core.score_utils import score_from_service
from blunder_scout.exceptions import (EvaluationError, EvaluationServiceError,
                                      EvaluationTimeoutError, EvaluationTransportError,
                                      IllegalMoveError, MalformedEvaluationError)
from blunder_scout.types import EvaluationLimit, EvaluationResult, EvaluationSource
from blunder_scout.utils import metrics
from blunder_scout.utils.retry import SleepFunc, retry_with_backoff

if TYPE_CHECKING:
    from blunder_scout.config.settings import RemoteServiceModel, RetryPolicyModel
    from blunder_scout.types import ChessRules

logger = structlog.get_logger(__name__)


def _parse_best_move(raw: Any) -> Optional[str]:
    """Extracts the UCI move from `"bestmove e2e4 ponder e7e5"` or a bare `"e2e4"`."""
    if not isinstance(raw, str):
        return None
    tokens = raw.split()
    if tokens and tokens[0] == "bestmove":
        tokens = tokens[1:]
    if not tokens or tokens[0] == "(none)":
        return None
    return tokens[0]


def _parse_continuation(raw: Any) -> List[str]:
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, list):
        return [str(move) for move in raw]
    return []


class RemoteEvaluationSource(EvaluationSource):
    """
    Evaluates positions through an HTTP service, with bounded retries.

    The `httpx.AsyncClient` may be injected (tests pass one built on
    `httpx.MockTransport`); otherwise the source creates and owns its own
    client and closes it in `close()`.
    """

    name = "remote"
    requires_spacing = True

    def __init__(
        self,
        service: "RemoteServiceModel",
        retry_policy: "RetryPolicyModel",
        rules: "ChessRules",
        client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Initializes the RemoteEvaluationSource.

        Args:
            service: The service URL, depth cap and user agent.
            retry_policy: Attempts, backoff delays and the per-attempt timeout.
            rules: Used to render FENs and convert the suggested move to SAN.
            client: An optional pre-built HTTP client.
            sleep: The coroutine used to wait between retries.
        """
        self._service = service
        self._retry_policy = retry_policy
        self._rules = rules
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=retry_policy.timeout_s,
            headers={"User-Agent": service.user_agent},
        )

    def _plan_request(self, limit: EvaluationLimit) -> Tuple[int, "RetryPolicyModel"]:
        """Chooses the depth to request and the retry policy for one call under `limit`."""
        if limit.depth is not None:
            return min(limit.depth, self._service.max_depth), self._retry_policy

        timeout_s = min(self._retry_policy.timeout_s, limit.time_ms / 1000)
        return self._service.max_depth, self._retry_policy.model_copy(update={"timeout_s": timeout_s})

    async def _request_evaluation(self, position: chess.Board, depth: int, timeout_s: float) -> EvaluationResult:
        """Performs exactly one HTTP round trip and interprets the reply."""
        fen = self._rules.canonical_notation(position)
        try:
            response = await self._client.get(
                self._service.base_url, params={"fen": fen, "depth": depth}, timeout=timeout_s
            )
        except httpx.TimeoutException as e:
            raise EvaluationTimeoutError(f"Evaluation request timed out: {e}", source=self.name) from e
        except httpx.TransportError as e:
            raise EvaluationTransportError(f"Evaluation service unreachable: {e}", source=self.name) from e

        if response.status_code == 429 or response.status_code >= 500:
            raise EvaluationTransportError(
                f"Evaluation service answered HTTP {response.status_code}.", source=self.name
            )
        if response.status_code >= 400:
            raise MalformedEvaluationError(
                f"Evaluation service rejected the request with HTTP {response.status_code}.", source=self.name
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedEvaluationError("Evaluation service reply is not JSON.", source=self.name) from e

        return self._parse_payload(position, payload)

    def _parse_payload(self, position: chess.Board, payload: Any) -> EvaluationResult:
        """Translates a decoded reply into an `EvaluationResult`; unknown fields are ignored."""
        if not isinstance(payload, dict):
            raise MalformedEvaluationError("Evaluation reply is not a JSON object.", source=self.name)

        if payload.get("success") is False:
            detail = payload.get("data") or payload.get("error") or "no detail"
            raise EvaluationServiceError(f"Evaluation service reported failure: {detail}", source=self.name)

        raw_mate = payload.get("mate")
        raw_evaluation = payload.get("evaluation")
        try:
            mate = int(raw_mate) if raw_mate is not None else None
            if raw_evaluation is None:
                if not mate:
                    raise MalformedEvaluationError("Evaluation reply has no 'evaluation' field.", source=self.name)
                evaluation = 0.0
            else:
                evaluation = float(raw_evaluation)
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedEvaluationError(f"Evaluation reply has non-numeric scores: {e}", source=self.name) from e
        if not math.isfinite(evaluation):
            raise MalformedEvaluationError(f"Evaluation reply has a non-finite score: {raw_evaluation!r}", source=self.name)

        best_move_san: Optional[str] = None
        best_move_uci = _parse_best_move(payload.get("bestmove"))
        if best_move_uci is not None:
            try:
                best_move_san = self._rules.to_algebraic(position, best_move_uci)
            except IllegalMoveError:
                logger.warning("Evaluation service suggested an unplayable move.", best_move=best_move_uci)

        return EvaluationResult(
            score=score_from_service(evaluation, mate),
            best_move=best_move_san,
            source=self.name,
            continuation=_parse_continuation(payload.get("continuation")),
        )

    async def evaluate(self, position: chess.Board, limit: EvaluationLimit) -> EvaluationResult:
        """
        Evaluates `position` through the service, retrying transient failures.

        Raises:
            RetryableEvaluationError: The last transient error, once retries are exhausted.
            MalformedEvaluationError: Immediately, when the reply cannot be interpreted.
        """
        depth, policy = self._plan_request(limit)
        request = retry_with_backoff(policy, sleep=self._sleep, operation="remote_evaluation")(
            self._request_evaluation
        )
        try:
            with metrics.EVALUATION_DURATION_SECONDS.labels(source=self.name).time():
                result = await request(position, depth, policy.timeout_s)
        except EvaluationError as e:
            metrics.EVALUATIONS_TOTAL.labels(source=self.name, outcome=type(e).__name__).inc()
            raise
        metrics.EVALUATIONS_TOTAL.labels(source=self.name, outcome="success").inc()
        return result

    async def close(self) -> None:
        """Closes the HTTP client if this source created it."""
        if self._owns_client:
            await self._client.aclose()
