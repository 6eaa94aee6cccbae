# blunder_scout/config/settings.py
"""
Configuration settings for the Blunder Scout application, powered by Pydantic.

This module centralizes all tunable parameters, default values, and configuration
schemas. Using Pydantic allows for type-safe, self-documenting configuration
that can be loaded from environment variables, providing a clear separation of
configuration from code. Components never read the module-level `settings`
instance themselves; they receive the model they need at construction.
"""
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blunder_scout.types import EvaluationLimit, EvaluationMode

# --- Nested Models for Configuration Schemas ---

class EvaluatorWeightsModel(BaseModel):
    """
    Weights for the static position evaluator, all in centipawns.

    Piece values feed both the material term and the tactical term (the value
    of a piece that can be captured right now).
    """
    pawn_value: int = 100
    knight_value: int = 320
    bishop_value: int = 330
    rook_value: int = 500
    queen_value: int = 900

    mobility_per_move: int = Field(4, description="Bonus per legal move available to the side to move.")
    mobility_capture_bonus: int = Field(15, description="Extra mobility bonus per capturing move.")
    mobility_check_bonus: int = Field(20, description="Extra mobility bonus per checking move.")
    mobility_minor_piece_bonus: int = Field(5, description="Extra mobility bonus per knight or bishop move.")

    in_check_penalty: int = Field(60, description="Penalty for the side to move while its king is in check.")
    castling_right_bonus: int = Field(25, description="Bonus per castling right still held.")

    doubled_pawn_penalty: int = Field(25, description="Penalty per pawn beyond the first on a file.")
    isolated_pawn_penalty: int = Field(20, description="Penalty per pawn with no friendly pawn on an adjacent file.")

    center_occupancy_bonus: int = Field(35, description="Bonus per piece standing on d4, e4, d5 or e5.")
    attacked_square_bonus: int = Field(2, description="Bonus per distinct square reachable by a legal move.")

    check_threat_bonus: int = Field(50, description="Tactical bonus per available checking move.")


class RetryPolicyModel(BaseModel):
    """Bounded linear backoff for one logical remote call."""
    attempts: int = Field(3, ge=1, description="Total attempts, including the first one.")
    base_delay_s: float = Field(0.6, ge=0.0, description="Delay before the first retry.")
    delay_increment_s: float = Field(0.2, ge=0.0, description="Added to the delay for every further retry.")
    timeout_s: float = Field(15.0, gt=0.0, description="Hard cap for a single attempt, independent of the retry budget.")

    def delay_for(self, failed_attempt: int) -> float:
        """Returns the sleep before the attempt that follows `failed_attempt` (1-indexed)."""
        return self.base_delay_s + self.delay_increment_s * (failed_attempt - 1)


class RemoteServiceModel(BaseModel):
    """Where and how to reach the reference evaluation service."""
    base_url: str = "https://stockfish.online/api/s/v2.php"
    max_depth: int = Field(15, ge=1, description="The service rejects deeper requests.")
    user_agent: str = "blunder-scout/1.0"


class RateLimitModel(BaseModel):
    """Request pacing shared by every game talking to the remote service."""
    min_interval_s: float = Field(0.5, ge=0.0, description="Minimum spacing between two evaluation requests.")
    max_requests_per_minute: Optional[int] = Field(None, ge=1, description="Optional rolling budget across all games.")


class GamePhaserSettingsModel(BaseModel):
    """Encapsulates thresholds for determining the phase of a chess game."""
    opening_max_fullmoves: int = Field(10, description="Moves at or before this fullmove number are considered 'Opening'.")
    endgame_min_fullmoves: int = Field(30, description="Moves at or after this fullmove number are considered 'Endgame'.")
    endgame_max_piece_count: int = Field(6, description="Before that move, a position with at most this many knights, bishops, rooks and queens is an 'Endgame'.")


class AnalyzerSettings(BaseModel):
    """Groups all settings related to analyzing one game."""
    mode: EvaluationMode = Field(EvaluationMode.LOCAL, description="Which evaluation source to use.")
    depth: Optional[int] = Field(15, ge=1, description="Search depth requested from the evaluation source.")
    time_ms: Optional[int] = Field(None, gt=0, description="Per-position time budget; replaces depth when set.")
    blunder_threshold_cp: int = Field(200, gt=0, description="Minimum evaluation swing, in centipawns, for a blunder.")
    max_plies: Optional[int] = Field(30, ge=1, description="Analyze at most this many plies; None analyzes the whole game.")
    mate_score_cp: int = Field(10000, gt=0, description="The centipawn value a forced mate is normalized to.")

    weights: EvaluatorWeightsModel = Field(default_factory=EvaluatorWeightsModel)
    retry: RetryPolicyModel = Field(default_factory=RetryPolicyModel)
    remote: RemoteServiceModel = Field(default_factory=RemoteServiceModel)
    rate_limit: RateLimitModel = Field(default_factory=RateLimitModel)
    phaser: GamePhaserSettingsModel = Field(default_factory=GamePhaserSettingsModel)

    @model_validator(mode='before')
    @classmethod
    def time_budget_replaces_depth(cls, data):
        """A configured time budget wins over the default depth, so callers only set one."""
        if isinstance(data, dict) and data.get("time_ms") is not None and "depth" not in data:
            data = {**data, "depth": None}
        return data

    @model_validator(mode='after')
    def validate_limit(self) -> 'AnalyzerSettings':
        """Ensures exactly one of depth or time budget is configured."""
        if (self.depth is None) == (self.time_ms is None):
            raise ValueError("Configuration error: set exactly one of 'depth' or 'time_ms'.")
        return self

    @property
    def limit(self) -> EvaluationLimit:
        return EvaluationLimit(depth=self.depth, time_ms=self.time_ms)


class BatchSettings(BaseModel):
    """Configuration for analyzing several independent games at once."""
    concurrency: int = Field(2, ge=1, description="How many games may be analyzed at the same time.")


# --- Main Application Settings Class ---

class Settings(BaseSettings):
    """
    Main configuration class for the application.

    It loads settings from environment variables with the prefix 'BLUNDER_SCOUT_'.
    Nested models can be configured using a double underscore delimiter, e.g.,
    `BLUNDER_SCOUT_ANALYZER__BLUNDER_THRESHOLD_CP=150`.
    """
    model_config = SettingsConfigDict(env_prefix='BLUNDER_SCOUT_', env_nested_delimiter='__')

    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)

# A convenience instance for entry points; library code takes settings explicitly.
settings = Settings()
