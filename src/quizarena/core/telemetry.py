"""TelemetryLogger — JSONL contest audit log.

One logger per contest instance. Written only after the contest has settled,
never from inside a running match: one line per response record per player,
then a contest summary as the final line. All entries include schema version
and contest ID.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

import quizarena
from quizarena.core.response_log import ResponseRecord

_SCHEMA_VERSION = "1.0.0"


@dataclass
class ResponseEntry:
    """One question outcome for one player."""

    player_id: str
    question_index: int
    question_id: str
    selected_option: int | None
    is_correct: bool
    response_time_ms: int
    points: int
    time_limit_ms: int

    @classmethod
    def from_record(
        cls, player_id: str, record: ResponseRecord, time_limit_ms: int
    ) -> "ResponseEntry":
        return cls(
            player_id=player_id,
            question_index=record.question_index,
            question_id=record.question_id,
            selected_option=record.selected_option,
            is_correct=record.is_correct,
            response_time_ms=record.response_time_ms,
            points=record.points,
            time_limit_ms=time_limit_ms,
        )


class TelemetryLogger:
    """Writes JSONL telemetry for a single contest instance."""

    def __init__(self, output_dir: Path, contest_id: str):
        self._output_dir = Path(output_dir)
        self._contest_id = contest_id
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._output_dir / f"{contest_id}.jsonl"

    @property
    def file_path(self) -> Path:
        return self._file_path

    def log_response(self, entry: ResponseEntry) -> None:
        record = asdict(entry)
        record["schema_version"] = _SCHEMA_VERSION
        record["record_type"] = "response"
        record["contest_id"] = self._contest_id
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._append(record)

    def finalize_contest(
        self,
        standings: list[dict],
        pool: dict,
        extra: dict | None = None,
    ) -> None:
        record = {
            "schema_version": _SCHEMA_VERSION,
            "record_type": "contest_summary",
            "contest_id": self._contest_id,
            "standings": standings,
            "pool": pool,
            "engine_version": quizarena.__version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if extra:
            record.update(extra)
        self._append(record)

    def _append(self, record: dict) -> None:
        with open(self._file_path, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")
