# blunder_scout/core/pgn_fallback.py
"""
Best-effort recovery of a move list from PGN text the structured parser rejected.

The recovery works in three passes:

1. Line cleanup. Header lines (`[Tag "value"]`) keep only what follows their
   closing bracket, comments are removed, and a trailing result token
   (`1-0`, `0-1`, `1/2-1/2`, `*`) is dropped from every line.
2. Token scan. The surviving text is split into tokens; move numbers, result
   markers and anything not shaped like an algebraic move are discarded.
3. Replay. Candidates are played from the initial position through the rules
   capability, stopping at the first one it rejects. Only that validated
   prefix is returned.

Nothing in this module raises: the worst case is an empty list.
"""
import re
from typing import Dict, List, TYPE_CHECKING

import structlog

from blunder_scout.exceptions import IllegalMoveError

if TYPE_CHECKING:
    from blunder_scout.types import ChessRules

logger = structlog.get_logger(__name__)

_HEADER_PATTERN = re.compile(r'\[\s*(\w+)\s+"([^"]*)"\s*\]')
_TRAILING_RESULT = re.compile(r"\s*(?:1-0|0-1|1/2-1/2|\*)\s*$")
_BRACE_COMMENT = re.compile(r"\{[^}]*\}")
_LINE_COMMENT = re.compile(r";.*$")
_VARIATION = re.compile(r"\([^()]*\)")
_NAG = re.compile(r"\$\d+")
_MOVE_NUMBER = re.compile(r"\d+\.(?:\.\.)?")
_ANNOTATION_GLYPHS = "!?"

_SAN_TOKEN = re.compile(
    r"""
    (?:
        [O0]-[O0](?:-[O0])?                 # castling, with letters or zeros
      | [KQRBN][a-h]?[1-8]?x?[a-h][1-8]     # piece move or capture, optional disambiguation
      | [a-h](?:x[a-h])?[1-8](?:=?[QRBN])?  # pawn push or capture, optional promotion
    )
    [+\#]?                                  # check or mate
    """,
    re.VERBOSE,
)


def extract_headers(raw_text: str) -> Dict[str, str]:
    """Collects `[Tag "value"]` pairs from raw text; later duplicates win."""
    return {name: value for name, value in _HEADER_PATTERN.findall(raw_text)}


def _clean_line(line: str) -> str:
    text = line.strip()
    if text.startswith("["):
        closing = text.rfind("]")
        text = text[closing + 1:] if closing != -1 else ""
    text = _LINE_COMMENT.sub("", text).strip()
    return _TRAILING_RESULT.sub("", text)


def _strip_variations(text: str) -> str:
    # Innermost first, so nested variations disappear too.
    previous = None
    while previous != text:
        previous, text = text, _VARIATION.sub(" ", text)
    return text


def candidate_tokens(raw_text: str) -> List[str]:
    """Returns every algebraic-move-shaped token of `raw_text`, in order, before any legality check."""
    survivors = [cleaned for cleaned in (_clean_line(line) for line in raw_text.splitlines()) if cleaned]
    movetext = " ".join(survivors)
    movetext = _BRACE_COMMENT.sub(" ", movetext)
    movetext = _strip_variations(movetext)
    movetext = _NAG.sub(" ", movetext)
    movetext = _MOVE_NUMBER.sub(" ", movetext)

    candidates: List[str] = []
    for token in movetext.split():
        token = token.rstrip(_ANNOTATION_GLYPHS)
        if _SAN_TOKEN.fullmatch(token):
            candidates.append(token)
    return candidates


def extract_moves(raw_text: str, rules: "ChessRules") -> List[str]:
    """
    Recovers the longest legal prefix of moves found in `raw_text`.

    Args:
        raw_text: Any text that may contain a game's moves.
        rules: The rules capability used to validate each candidate.

    Returns:
        The validated moves in canonical SAN. May be empty.
    """
    candidates = candidate_tokens(raw_text)
    position = rules.initial_position()
    recovered: List[str] = []

    for index, token in enumerate(candidates):
        try:
            san = rules.to_algebraic(position, token)
            position = rules.apply_move(position, token)
        except IllegalMoveError:
            logger.info(
                "Stopping move recovery at first rejected candidate.",
                token=token, index=index, recovered=len(recovered), candidates=len(candidates),
            )
            break
        recovered.append(san)

    logger.debug("Move recovery finished.", recovered=len(recovered))
    return recovered
