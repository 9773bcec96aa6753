"""
Data models for storage layer.

Defines the persisted settings record.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class SettingsRecord:
    """One section of stored settings for a configuration key.

    Sections are "billing" and "event_defaults"; the payload is the plain
    dictionary form of the section's configuration object.
    """
    config_key: str
    section: str
    payload: Dict[str, Any]
    updated_at: datetime
