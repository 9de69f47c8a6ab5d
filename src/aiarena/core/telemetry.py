"""TelemetryLogger — JSONL match audit log.

One logger per match. Writes one JSONL line per resolved turn (attempts
nested) plus a match summary as the final line. All entries include
schema version and match ID. The accepted moves in the turn lines are
enough to replay the match.
"""

import json
import threading
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from pathlib import Path

import aiarena

_SCHEMA_VERSION = "1.0.0"


@dataclass
class TelemetryEntry:
    """One resolved turn of match telemetry."""

    turn_index: int
    player_id: str
    player_name: str
    move: dict | list | str | int | None
    forfeited: bool
    attempts: list[dict] = field(default_factory=list)
    state_before: dict | None = None
    state_after: dict | None = None
    engine_version: str = aiarena.__version__


class TelemetryLogger:
    """Writes JSONL telemetry for a single match."""

    def __init__(self, output_dir: Path, match_id: str):
        self._output_dir = Path(output_dir)
        self._match_id = match_id
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._output_dir / f"{match_id}.jsonl"
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def match_id(self) -> str:
        return self._match_id

    def log_turn(self, entry: TelemetryEntry) -> None:
        record = asdict(entry)
        record["schema_version"] = _SCHEMA_VERSION
        record["match_id"] = self._match_id
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._append(record)

    def finalize_match(self, summary: dict) -> None:
        record = {
            "schema_version": _SCHEMA_VERSION,
            "record_type": "match_summary",
            "match_id": self._match_id,
            "engine_version": aiarena.__version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        record.update(summary)
        self._append(record)

    def _append(self, record: dict) -> None:
        with self._lock, open(self._file_path, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")


def read_match_log(path: Path) -> tuple[list[dict], dict | None]:
    """Return (turn records, match summary or None) from a JSONL log."""
    turns = []
    summary = None
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            record = json.loads(line)
            if record.get("record_type") == "match_summary":
                summary = record
            else:
                turns.append(record)
    return turns, summary
