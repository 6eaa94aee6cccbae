# blunder_scout/exceptions.py
"""
Defines custom exceptions for the Blunder Scout application.

Centralizing exceptions in this module prevents circular dependencies that can
arise when different components need to catch errors defined in others. A clear
exception hierarchy, with a common `BlunderScoutError` base, allows the game
analyzer to tell a transient network hiccup apart from a per-move fatal error
or a broken move list.
"""

from typing import Optional


class BlunderScoutError(Exception):
    """Base class for all application-specific, catchable errors."""
    pass


class EvaluationError(BlunderScoutError):
    """
    Base class for errors raised while obtaining a position evaluation.

    Attributes:
        source: The name of the evaluation source that failed, if known.
    """
    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class RetryableEvaluationError(EvaluationError):
    """
    Base class for transient evaluation failures.

    These are resolved inside the retry controller and only surface to the
    caller once the retry budget has been exhausted.
    """
    pass


class EvaluationTransportError(RetryableEvaluationError):
    """Raised when the evaluation service cannot be reached or answers with a server-side status."""
    pass


class EvaluationTimeoutError(RetryableEvaluationError):
    """Raised when a single evaluation request exceeds its hard timeout."""
    pass


class EvaluationServiceError(RetryableEvaluationError):
    """Raised when the service answers but flags the request as unsuccessful."""
    pass


class MalformedEvaluationError(EvaluationError):
    """
    Raised when a response cannot be interpreted as an evaluation.

    This is never retried: the same request would produce the same response.
    The game analyzer treats it as fatal for the current move only.
    """
    pass


class IllegalMoveError(BlunderScoutError):
    """
    Raised by the rules adapter when a move cannot be played from a position.

    Attributes:
        notation: The rejected move text.
    """
    def __init__(self, message: str, notation: str):
        super().__init__(message)
        self.notation = notation


class PgnError(BlunderScoutError):
    """Base class for errors related to PGN (Portable Game Notation) handling."""
    pass


class PgnParsingError(PgnError):
    """
    Raised when structured PGN parsing fails for a game record.

    Callers are expected to fall back to best-effort move extraction.
    """
    pass


class ReportGenerationError(BlunderScoutError):
    """Raised for errors encountered while exporting a report to disk."""
    pass


class AnalysisCancelledError(BlunderScoutError):
    """Raised inside the game analyzer when the caller asks a running analysis to stop."""
    pass
