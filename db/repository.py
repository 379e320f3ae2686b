"""Load/save of persona memory, pending picks, forecast records and the WP calibration table."""

import json
import logging
from typing import Optional

from db.connection import get_connection, read_query, read_first_value, execute, execute_many
from db.schema import create_all_tables
from forecast.models import ForecastRecords, PendingPicks
from memory.models import BotMemory, utc_now
from memory.serialization import serialize_memory, deserialize_memory
from simulation.calibration import CalibrationTable

logger = logging.getLogger(__name__)

MEMORY_UPSERT = "INSERT OR REPLACE INTO bot_memory (persona, season, blob, updated_at) VALUES (?, ?, ?, ?)"
PENDING_UPSERT = "INSERT OR REPLACE INTO pending_picks (season, week, blob, graded) VALUES (?, ?, ?, ?)"
RECORDS_UPSERT = "INSERT OR REPLACE INTO forecast_records (persona, season, wins, losses) VALUES (?, ?, ?, ?)"


def _memory_row(mem: BotMemory, season: int) -> list:
    return [mem.bot, season, serialize_memory(mem), utc_now()]


def _pending_row(pending: PendingPicks, season: int) -> list:
    return [season, pending.week, json.dumps(pending.to_dict()), int(pending.graded)]


def _record_rows(records: ForecastRecords, season: int) -> list:
    return [(persona, season, rec["w"], rec["l"]) for persona, rec in records.records.items()]


class MemoryRepository:
    """Blobs are stored as opaque JSON text; this class owns their (de)serialization."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        create_all_tables(db_path)

    # ── Persona memory ──

    def load_memory(self, persona: str, season: int) -> Optional[BotMemory]:
        blob = read_first_value(
            "SELECT blob FROM bot_memory WHERE persona = ? AND season = ?",
            self.db_path, params=[persona, season],
        )
        return deserialize_memory(blob) if blob is not None else None

    def save_memory(self, mem: BotMemory, season: int):
        execute(MEMORY_UPSERT, self.db_path, params=_memory_row(mem, season))
        logger.debug(f"Saved {mem.bot} memory for {season}")

    # ── Pending picks ──

    def load_pending(self, season: int, week: int) -> Optional[PendingPicks]:
        df = read_query(
            "SELECT blob, graded FROM pending_picks WHERE season = ? AND week = ?",
            self.db_path, params=[season, week],
        )
        if df.empty:
            return None
        pending = PendingPicks.from_dict(json.loads(df["blob"].iloc[0]))
        pending.graded = bool(df["graded"].iloc[0])
        return pending

    def save_pending(self, pending: PendingPicks, season: int):
        execute(PENDING_UPSERT, self.db_path, params=_pending_row(pending, season))

    # ── Forecast records ──

    def load_records(self, season: int) -> ForecastRecords:
        records = ForecastRecords()
        df = read_query(
            "SELECT persona, wins, losses FROM forecast_records WHERE season = ?",
            self.db_path, params=[season],
        )
        for _, row in df.iterrows():
            records.records[row["persona"]] = {"w": int(row["wins"]), "l": int(row["losses"])}
        return records

    def save_records(self, records: ForecastRecords, season: int):
        execute_many(RECORDS_UPSERT, self.db_path, _record_rows(records, season))

    # ── Whole week ──

    def save_week(self, season: int, memories: list, records: ForecastRecords, pendings: list):
        """
        Write a processed week in one transaction.

        Memories, records and pending picks either all land or none do, so a
        failure part way leaves the week unprocessed and safe to re-run.
        """
        with get_connection(self.db_path) as conn:
            for mem in memories:
                conn.execute(MEMORY_UPSERT, _memory_row(mem, season))
            conn.executemany(RECORDS_UPSERT, _record_rows(records, season))
            for pending in pendings:
                conn.execute(PENDING_UPSERT, _pending_row(pending, season))
        logger.debug(f"Saved {len(memories)} memories and {len(pendings)} pending records for {season}")

    # ── Win-probability calibration ──

    def load_wp_model(self) -> Optional[CalibrationTable]:
        blob = read_first_value("SELECT blob FROM wp_model ORDER BY model_id DESC LIMIT 1", self.db_path)
        return CalibrationTable.from_json(blob) if blob is not None else None

    def save_wp_model(self, table: CalibrationTable):
        execute(
            "INSERT INTO wp_model (trained_at, blob) VALUES (?, ?)",
            self.db_path, params=[table.trained_at or utc_now(), table.to_json()],
        )
        logger.info(f"Stored WP calibration table trained at {table.trained_at}")
