"""SQLite schema definitions. Creates the 4 persistence tables."""

import logging
from db.connection import get_connection

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
-- ============================================================
-- PERSONA MEMORY
-- ============================================================

CREATE TABLE IF NOT EXISTS bot_memory (
    persona         TEXT NOT NULL,
    season          INTEGER NOT NULL,
    blob            TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (persona, season)
);

-- ============================================================
-- FORECASTS
-- ============================================================

CREATE TABLE IF NOT EXISTS pending_picks (
    season          INTEGER NOT NULL,
    week            INTEGER NOT NULL,
    blob            TEXT NOT NULL,
    graded          INTEGER DEFAULT 0,
    PRIMARY KEY (season, week)
);

CREATE TABLE IF NOT EXISTS forecast_records (
    persona         TEXT NOT NULL,
    season          INTEGER NOT NULL,
    wins            INTEGER DEFAULT 0,
    losses          INTEGER DEFAULT 0,
    PRIMARY KEY (persona, season)
);

-- ============================================================
-- WIN-PROBABILITY MODEL
-- ============================================================

CREATE TABLE IF NOT EXISTS wp_model (
    model_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    trained_at      TEXT NOT NULL,
    blob            TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_wp_model_trained ON wp_model(trained_at);
"""

TABLES = ["bot_memory", "pending_picks", "forecast_records", "wp_model"]


def create_all_tables(db_path: str):
    """Create all tables if they don't exist."""
    with get_connection(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
    logger.info(f"Database schema ready at {db_path}")
