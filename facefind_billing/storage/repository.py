"""
Repository pattern for data access.

Persists settings sections (billing assumptions, event defaults) as JSON.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from facefind_billing.config.loader import (
    BillingConfig,
    ConfigurationError,
    EventDefaults,
    billing_config_from_dict,
    billing_config_to_dict,
    event_defaults_from_dict,
    event_defaults_to_dict,
)
from .db import DEFAULT_DB_PATH, get_connection
from .models import SettingsRecord

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_KEY = "default"
BILLING_SECTION = "billing"
EVENT_DEFAULTS_SECTION = "event_defaults"


class SettingsRepository:
    """Repository for reading and writing stored settings.

    Every call opens and closes its own connection, so one instance can be
    shared between threads.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH, config_key: str = DEFAULT_CONFIG_KEY):
        """Initialize the repository.

        Args:
            db_path: Path to SQLite database file
            config_key: Settings profile to read and write
        """
        self.db_path = db_path
        self.config_key = config_key

    def fetch_section(self, section: str) -> Optional[SettingsRecord]:
        """Fetch a stored settings section.

        Returns:
            The record, or None if the section was never saved

        Raises:
            ConfigurationError: If the stored payload is not a JSON object
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                """
                SELECT config_key, section, payload, updated_at
                FROM settings_record
                WHERE config_key = ? AND section = ?
                """,
                (self.config_key, section),
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        if row is None:
            return None

        try:
            payload = json.loads(row[2])
        except ValueError as e:
            raise ConfigurationError(f"Stored {section} settings are not valid JSON: {e}")
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Stored {section} settings must be a JSON object")

        return SettingsRecord(
            config_key=row[0],
            section=row[1],
            payload=payload,
            updated_at=datetime.fromisoformat(row[3]),
        )

    def save_section(self, section: str, payload: Dict[str, Any]) -> None:
        """Insert or replace a settings section."""
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO settings_record
                (config_key, section, payload, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    self.config_key,
                    section,
                    json.dumps(payload, sort_keys=True),
                    datetime.now().isoformat(),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Saved %s settings for '%s'", section, self.config_key)

    def delete_section(self, section: str) -> bool:
        """Delete a settings section.

        Returns:
            True if a record was removed
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM settings_record WHERE config_key = ? AND section = ?",
                (self.config_key, section),
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if deleted:
            logger.info("Deleted %s settings for '%s'", section, self.config_key)
        return deleted

    def fetch_billing_config(self) -> Optional[BillingConfig]:
        record = self.fetch_section(BILLING_SECTION)
        if record is None:
            return None
        return billing_config_from_dict(record.payload, path=f"settings.{BILLING_SECTION}")

    def save_billing_config(self, config: BillingConfig) -> None:
        self.save_section(BILLING_SECTION, billing_config_to_dict(config))

    def fetch_event_defaults(self) -> Optional[EventDefaults]:
        record = self.fetch_section(EVENT_DEFAULTS_SECTION)
        if record is None:
            return None
        return event_defaults_from_dict(record.payload, path=f"settings.{EVENT_DEFAULTS_SECTION}")

    def save_event_defaults(self, defaults: EventDefaults) -> None:
        self.save_section(EVENT_DEFAULTS_SECTION, event_defaults_to_dict(defaults))


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the settings_record table if it doesn't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS settings_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                config_key TEXT NOT NULL,
                section TEXT NOT NULL,
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (config_key, section)
            )
        """)
        conn.commit()
    finally:
        conn.close()
