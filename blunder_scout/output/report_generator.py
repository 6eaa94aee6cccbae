# blunder_scout/output/report_generator.py
"""
Renders game reports for people and spreadsheets.

`build_transcript` produces the human-readable lines stored on every
`GameReport`. `ReportGenerator` is a "dumb" I/O service that flattens the move
records of finished reports into a CSV file; it contains no analysis logic.
"""

import csv
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from blunder_scout.core.score_utils import format_score
from blunder_scout.exceptions import ReportGenerationError
from blunder_scout.types import GameReport, MoveRecord

logger = structlog.get_logger(__name__)

_SAN_COLUMN_WIDTH = 7


def format_move_line(record: MoveRecord) -> str:
    """Formats one record as `Move 3: Nf3    | Eval: +0.35`, flagging blunders."""
    line = f"Move {record.ply}: {record.move_san:<{_SAN_COLUMN_WIDTH}}| Eval: {format_score(record.score_after)}"
    if record.is_blunder:
        line += f" ?? best was {record.best_move}"
    return line


def summary_line(records: Sequence[MoveRecord], reason: Optional[str]) -> str:
    # An empty analysis must never read like a clean game.
    if not records:
        return f"No moves were evaluated: {reason or 'unknown reason'}"
    blunders = sum(1 for record in records if record.is_blunder)
    if blunders:
        return f"Blunders detected: {blunders} of {len(records)} evaluated moves."
    return f"No blunders detected in {len(records)} evaluated moves."


def build_transcript(game_name: str, records: Sequence[MoveRecord], reason: Optional[str]) -> Tuple[str, ...]:
    """
    Builds the display transcript of one analysis.

    The layout is a `Game:` heading, one line per evaluated move, a blank line
    and a one-line summary. A reason, when present, is appended after the
    summary for games that evaluated at least one move.
    """
    lines: List[str] = [f"Game: {game_name}"]
    lines.extend(format_move_line(record) for record in records)
    lines.append("")
    lines.append(summary_line(records, reason))
    if records and reason:
        lines.append(f"Note: {reason}")
    return tuple(lines)


class ReportGenerator:
    """A stateless service that writes the move records of game reports to a CSV file."""

    _CSV_HEADERS: List[str] = [
        "GameID", "Status", "Ply", "Side", "Move", "Phase",
        "ScoreBefore", "ScoreAfter", "DeltaCp", "BestMove", "Continuation", "Blunder",
        "TacticalThemes", "PositionAfter",
    ]

    def generate_csv_report(self, reports: Sequence[GameReport], output_path: Path) -> None:
        """
        Writes one CSV row per evaluated move across all `reports`.

        Args:
            reports: Finished `GameReport` objects, in the order to write them.
            output_path: The `pathlib.Path` to write the CSV report to.

        Raises:
            ReportGenerationError: If the CSV file cannot be written.
        """
        rows: List[Dict[str, Any]] = []
        for report in reports:
            for record in report.records:
                rows.append({
                    "GameID": report.game_id, "Status": report.status.value,
                    "Ply": record.ply, "Side": record.side, "Move": record.move_san,
                    "Phase": record.phase.value if record.phase else "",
                    "ScoreBefore": format_score(record.score_before),
                    "ScoreAfter": format_score(record.score_after),
                    "DeltaCp": record.delta_cp, "BestMove": record.best_move or "",
                    "Continuation": " ".join(record.continuation), "Blunder": record.is_blunder,
                    "TacticalThemes": ";".join(theme.value for theme in record.tactical_themes),
                    "PositionAfter": record.position_after,
                })

        if not rows:
            logger.warning("No evaluated moves to write a report for. Skipping.")
            return

        logger.info("Writing CSV report.", path=str(output_path), num_rows=len(rows))
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with output_path.open("w", newline="", encoding="utf-8") as csvfile:
                writer = csv.DictWriter(csvfile, fieldnames=self._CSV_HEADERS)
                writer.writeheader()
                writer.writerows(rows)
        except OSError as e:
            raise ReportGenerationError(f"Failed to write CSV report to {output_path}") from e
        logger.info("Successfully generated CSV report.", path=str(output_path))
