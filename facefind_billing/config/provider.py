"""
Cached access to stored settings.

Quotes must never fail because the settings store is unavailable, so reads
fall back to the stock configuration and log a warning instead.
"""

import dataclasses
import logging
import sqlite3
from typing import Any, Callable, Optional, TypeVar

from facefind_billing.storage.cache import TTLCache
from facefind_billing.storage.repository import (
    BILLING_SECTION,
    EVENT_DEFAULTS_SECTION,
    SettingsRepository,
)
from .loader import (
    BillingConfig,
    ConfigurationError,
    EventDefaults,
    default_billing_config,
    default_event_defaults,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettingsProvider:
    """Reads settings through a TTL cache and writes them back with invalidation."""

    def __init__(self, repository: SettingsRepository, cache: Optional[TTLCache] = None):
        self.repository = repository
        self.cache = cache if cache is not None else TTLCache()

    def get_billing_config(self) -> BillingConfig:
        """Current billing configuration, or the defaults if none is usable."""
        return self._get_cached(
            BILLING_SECTION,
            self.repository.fetch_billing_config,
            default_billing_config,
        )

    def get_event_defaults(self) -> EventDefaults:
        return self._get_cached(
            EVENT_DEFAULTS_SECTION,
            self.repository.fetch_event_defaults,
            default_event_defaults,
        )

    def update_billing_config(self, **changes: Any) -> BillingConfig:
        """Apply field changes on top of the current billing configuration.

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid
            sqlite3.Error: If the stored configuration cannot be read
        """
        allowed = {f.name for f in dataclasses.fields(BillingConfig)}
        unknown = set(changes) - allowed
        if unknown:
            raise ConfigurationError(f"Unknown billing config keys: {sorted(unknown)}")

        updated = dataclasses.replace(
            self._stored_or_default(self.repository.fetch_billing_config, default_billing_config),
            **changes,
        )
        self.replace_billing_config(updated)
        return updated

    def replace_billing_config(self, config: BillingConfig) -> None:
        self.repository.save_billing_config(config)
        self.cache.invalidate(BILLING_SECTION)

    def reset_billing_config(self) -> bool:
        """Remove the stored billing configuration so defaults apply again."""
        deleted = self.repository.delete_section(BILLING_SECTION)
        self.cache.invalidate(BILLING_SECTION)
        return deleted

    def update_event_defaults(self, **changes: Any) -> EventDefaults:
        allowed = {f.name for f in dataclasses.fields(EventDefaults)}
        unknown = set(changes) - allowed
        if unknown:
            raise ConfigurationError(f"Unknown event default keys: {sorted(unknown)}")

        updated = dataclasses.replace(
            self._stored_or_default(self.repository.fetch_event_defaults, default_event_defaults),
            **changes,
        )
        self.repository.save_event_defaults(updated)
        self.cache.invalidate(EVENT_DEFAULTS_SECTION)
        return updated

    def invalidate(self) -> None:
        self.cache.clear()

    @staticmethod
    def _stored_or_default(fetch: Callable[[], Optional[T]], default: Callable[[], T]) -> T:
        # Updates apply to the stored record, never to a cached fallback
        stored = fetch()
        return stored if stored is not None else default()

    def _get_cached(
        self,
        section: str,
        fetch: Callable[[], Optional[T]],
        default: Callable[[], T],
    ) -> T:
        cached = self.cache.get(section)
        if cached is not None:
            return cached

        value = None
        try:
            value = fetch()
        except ConfigurationError as e:
            logger.warning("Stored %s settings are invalid, using defaults: %s", section, e)
        except sqlite3.Error as e:
            logger.warning("Could not read %s settings, using defaults: %s", section, e)

        if value is None:
            value = default()
        self.cache.set(section, value)
        return value
