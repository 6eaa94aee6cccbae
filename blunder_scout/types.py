# blunder_scout/types.py
"""
A central module for shared data structures and service interfaces (Protocols).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Tuple, TYPE_CHECKING, TypeAlias, Union, runtime_checkable

if TYPE_CHECKING:
    import chess

FEN: TypeAlias = str


class GamePhase(str, Enum):
    OPENING = "Opening"; MIDDLEGAME = "Middlegame"; ENDGAME = "Endgame"

class EvaluationMode(str, Enum):
    LOCAL = "local"; REMOTE = "remote"

class ReportStatus(str, Enum):
    COMPLETED = "completed"; TRUNCATED = "truncated"
    CANCELLED = "cancelled"; INPUT_FAILED = "input_failed"

class ExtractionMethod(str, Enum):
    STRUCTURED = "structured"; RECOVERED = "recovered"; NONE = "none"

class TacticalTheme(str, Enum):
    CAPTURE = "Capture"; CHECK = "Check"; FORK = "Fork"; PIN = "Pin"


# --- SCORES: a tagged union, never both forms at once ---

@dataclass(frozen=True, slots=True)
class Centipawn:
    """A White-positive evaluation in hundredths of a pawn."""
    value: int

@dataclass(frozen=True, slots=True)
class Mate:
    """A forced mate. Positive `moves` means White mates, negative means Black mates."""
    moves: int

    def __post_init__(self) -> None:
        if self.moves == 0:
            raise ValueError("Mate distance must be nonzero; its sign names the mating side.")

Score: TypeAlias = Union[Centipawn, Mate]


@dataclass(frozen=True, slots=True)
class EvaluationLimit:
    """How much effort a source may spend on one position: a depth or a time budget, never both."""
    depth: Optional[int] = None
    time_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.depth is None) == (self.time_ms is None):
            raise ValueError("EvaluationLimit requires exactly one of 'depth' or 'time_ms'.")
        if self.depth is not None and self.depth < 1:
            raise ValueError("Evaluation depth must be at least 1.")
        if self.time_ms is not None and self.time_ms <= 0:
            raise ValueError("Evaluation time budget must be positive.")


# --- DATA CONTRACTS ---

@dataclass(frozen=True, slots=True)
class AlternativeMove:
    """A candidate move and its one-ply score from the point of view of the side playing it."""
    move_san: str; score_cp: int; description: str

@dataclass(frozen=True, slots=True)
class EvaluationResult:
    score: Score; best_move: Optional[str]; source: str
    continuation: List[str] = field(default_factory=list)
    alternatives: List[AlternativeMove] = field(default_factory=list)
    tactical_themes: List[TacticalTheme] = field(default_factory=list)

@dataclass(frozen=True, slots=True)
class EvaluationBreakdown:
    material: int; mobility: int; king_safety: int
    pawn_structure: int; positional: int; tactical: int

    @property
    def total(self) -> int:
        return (self.material + self.mobility + self.king_safety
                + self.pawn_structure + self.positional + self.tactical)

@dataclass(frozen=True, slots=True)
class MoveRecord:
    ply: int; side: str; move_san: str
    score_before: Score; score_after: Score; best_move: Optional[str]
    is_blunder: bool; delta_cp: int; position_after: FEN
    phase: Optional[GamePhase] = None
    # Taken from the evaluation of the position the move was played from.
    continuation: Tuple[str, ...] = (); alternatives: Tuple[AlternativeMove, ...] = ()
    tactical_themes: Tuple[TacticalTheme, ...] = ()

@dataclass(frozen=True, slots=True)
class GameMetadata:
    white_player: str; black_player: str; result: str; event: str; site: str; date: str

@dataclass(frozen=True)
class ParsedGame:
    metadata: GameMetadata; moves: List[str]
    extraction: ExtractionMethod; reason: Optional[str] = None
    starting_fen: Optional[FEN] = None

@dataclass(frozen=True)
class GameReport:
    """
    The authoritative result of one analysis run.

    `records` holds one entry per successfully evaluated ply, in order.
    `skipped_plies` lists plies whose evaluation failed fatally; those moves
    were still played on the board. `reason` explains any status other than
    COMPLETED, and is always set when no move was evaluated.
    """
    game_id: str
    records: Tuple[MoveRecord, ...]
    has_blunders: bool
    status: ReportStatus
    transcript: Tuple[str, ...] = ()
    reason: Optional[str] = None
    requested_plies: int = 0
    skipped_plies: Tuple[int, ...] = ()
    extraction: ExtractionMethod = ExtractionMethod.STRUCTURED

    @property
    def evaluated_plies(self) -> int:
        return len(self.records)

    @property
    def blunders(self) -> List[MoveRecord]:
        return [record for record in self.records if record.is_blunder]

@dataclass
class BatchReport:
    reports: List[GameReport]; warnings: List[str] = field(default_factory=list)

    @property
    def games_with_blunders(self) -> int:
        return sum(1 for report in self.reports if report.has_blunders)


# --- PROTOCOLS: Abstract Interfaces for Services ---
# These define the "contracts" that concrete implementations must adhere to.
# They allow the analyzer to work with any rules engine or evaluation source
# and make both easy to replace with fakes in tests.

@runtime_checkable
class ChessRules(Protocol):
    """The rules-of-chess capability: board state, move legality and notation."""
    def initial_position(self, fen: Optional[FEN] = None) -> "chess.Board": ...
    def apply_move(self, position: "chess.Board", notation: str) -> "chess.Board": ...
    def legal_moves(self, position: "chess.Board") -> List["chess.Move"]: ...
    def to_algebraic(self, position: "chess.Board", move: Union["chess.Move", str]) -> str: ...
    def is_in_check(self, position: "chess.Board") -> bool: ...
    def canonical_notation(self, position: "chess.Board") -> FEN: ...

@runtime_checkable
class EvaluationSource(Protocol):
    """Defines the abstract interface for anything that can score a position."""
    name: str
    requires_spacing: bool
    async def evaluate(self, position: "chess.Board", limit: EvaluationLimit) -> EvaluationResult: ...
    async def close(self) -> None: ...
