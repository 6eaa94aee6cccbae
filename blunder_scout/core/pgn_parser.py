# blunder_scout/core/pgn_parser.py
"""
Parses PGN text into the application's `ParsedGame` data contract.

This module acts as an Anti-Corruption Layer, translating data from the external
`python-chess` PGN reader into our domain's pure data structures. Structured
parsing is strict: any integrity problem the reader reports raises a
`PgnParsingError`. `load_game` then falls back to best-effort move recovery
(see `pgn_fallback`), so a damaged record still yields whatever moves can be
validated.
"""
import io
import re
from typing import List, Optional, Tuple, TYPE_CHECKING

import chess
import chess.pgn
import structlog

from blunder_scout.core import pgn_fallback
from blunder_scout.exceptions import PgnParsingError
from blunder_scout.types import ExtractionMethod, FEN, GameMetadata, ParsedGame
from blunder_scout.utils import metrics

if TYPE_CHECKING:
    from blunder_scout.types import ChessRules

logger = structlog.get_logger(__name__)


def build_metadata(headers) -> GameMetadata:
    """Builds `GameMetadata` from any mapping of PGN tag names to values."""
    return GameMetadata(
        white_player=headers.get("White", "Unknown Player"),
        black_player=headers.get("Black", "Unknown Player"),
        result=headers.get("Result", "*"),
        event=headers.get("Event", "Unknown Event"),
        site=headers.get("Site", "Unknown Site"),
        date=headers.get("Date", "????.??.??"),
    )


def _mainline_sans(game: chess.pgn.Game) -> Tuple[List[str], Optional[FEN]]:
    """Replays the main line and returns its moves in SAN plus the custom start FEN, if any."""
    board = game.board()
    starting_fen = None if board.fen() == chess.STARTING_FEN else board.fen()
    sans: List[str] = []
    for move in game.mainline_moves():
        sans.append(board.san(move))
        board.push(move)
    return sans, starting_fen


def parse_pgn(pgn_text: str) -> ParsedGame:
    """
    Parses the first game of `pgn_text` with `python-chess`.

    Games starting from a custom position (a FEN header) are supported.

    Raises:
        PgnParsingError: If no game is found, if the reader reports an error
            (an illegal, ambiguous or unreadable move), or if the game has no moves.
    """
    try:
        game = chess.pgn.read_game(io.StringIO(pgn_text))
    except (ValueError, AssertionError) as e:
        raise PgnParsingError(f"PGN reader failed: {e}") from e

    if game is None:
        raise PgnParsingError("No game found in PGN text.")
    if game.errors:
        raise PgnParsingError(f"PGN integrity error: {game.errors[0]}")

    try:
        moves, starting_fen = _mainline_sans(game)
    except (AssertionError, ValueError) as e:
        raise PgnParsingError(f"Corrupt or illegal move sequence: {e}") from e

    if not moves:
        raise PgnParsingError("PGN game contains no moves.")

    return ParsedGame(
        metadata=build_metadata(game.headers),
        moves=moves,
        extraction=ExtractionMethod.STRUCTURED,
        starting_fen=starting_fen,
    )


def load_game(pgn_text: str, rules: "ChessRules") -> ParsedGame:
    """
    Produces a move list from PGN text, never raising.

    Structured parsing is tried first. When it fails, moves are recovered from
    the raw text; the failure is kept as the `reason` so a caller can tell a
    recovered (possibly truncated) list apart from a clean parse.
    """
    try:
        return parse_pgn(pgn_text)
    except PgnParsingError as e:
        logger.warning("Structured PGN parsing failed, recovering moves from raw text.", error=str(e))
        structured_error = str(e)

    moves = pgn_fallback.extract_moves(pgn_text, rules)
    metadata = build_metadata(pgn_fallback.extract_headers(pgn_text))
    metrics.MOVES_RECOVERED_TOTAL.inc(len(moves))

    if not moves:
        return ParsedGame(
            metadata=metadata,
            moves=[],
            extraction=ExtractionMethod.NONE,
            reason=f"No moves could be extracted ({structured_error}).",
        )
    return ParsedGame(
        metadata=metadata,
        moves=moves,
        extraction=ExtractionMethod.RECOVERED,
        reason=f"Moves recovered from raw text after parsing failed ({structured_error}).",
    )


# Patterns are tried in order; the first match names the game after its source site.
_GAME_ID_PATTERNS: List[Tuple[str, "re.Pattern[str]"]] = [
    ("lichess", re.compile(r"lichess\.org/([a-zA-Z0-9]{8})")),
    ("chesscom", re.compile(r"chess\.com/game/live/(\d+)")),
]


def derive_game_id(metadata: GameMetadata) -> str:
    """
    Derives a stable identifier for a game from its metadata.

    Lichess and Chess.com game URLs in the Site tag yield their native IDs;
    otherwise the ID is built from the player names and the date.
    """
    for prefix, pattern in _GAME_ID_PATTERNS:
        if match := pattern.search(metadata.site):
            return f"{prefix}_{match.group(1)}"

    white = metadata.white_player.replace(" ", "_")
    black = metadata.black_player.replace(" ", "_")
    return f"local_{white}_vs_{black}_{metadata.date}"
