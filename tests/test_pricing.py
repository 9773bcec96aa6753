"""
Unit tests for pricing calculations.

Tests retention tier lookup, rounding behavior and per-line pricing.
"""

from decimal import Decimal

import pytest

from facefind_billing.config.loader import RetentionTier, default_billing_config
from facefind_billing.core.pricing import (
    price_usage,
    retention_multiplier,
    round_currency,
    round_to_unit,
)
from facefind_billing.core.usage import EventBillingInput, derive_usage


@pytest.fixture
def config():
    return default_billing_config()


@pytest.fixture
def breakdown(config):
    event = EventBillingInput(estimated_attendees=100, max_photos=1000, retention_period_days=7)
    return price_usage(derive_usage(event, config), config)


class TestRetentionMultiplier:
    """Test retention tier lookup."""

    @pytest.mark.parametrize("days,expected", [
        (0, "1.0"),
        (7, "1.0"),
        (8, "1.15"),
        (14, "1.15"),
        (15, "1.3"),
        (30, "1.3"),
        (31, "1.5"),
        (60, "1.5"),
        (61, "1.75"),
        (90, "1.75"),
        (91, "2.0"),
        (365, "2.0"),
    ])
    def test_default_tiers(self, config, days, expected):
        """Boundary values belong to the lower tier (inclusive <= comparison)."""
        assert retention_multiplier(days, config.retention_tiers) == Decimal(expected)

    def test_custom_tier_table(self):
        """Tier bounds and multipliers come from data, not constants."""
        tiers = (
            RetentionTier(up_to_days=3, multiplier=1.0),
            RetentionTier(multiplier=5.0),
        )
        assert retention_multiplier(3, tiers) == Decimal("1.0")
        assert retention_multiplier(4, tiers) == Decimal("5.0")

    def test_single_catch_all_tier(self):
        """A table with only the catch-all applies it everywhere."""
        tiers = (RetentionTier(multiplier=1.25),)
        assert retention_multiplier(0, tiers) == Decimal("1.25")
        assert retention_multiplier(1000, tiers) == Decimal("1.25")


class TestRounding:
    """Test rounding helpers."""

    @pytest.mark.parametrize("amount,unit,expected", [
        ("150", "100", "200"),
        ("149.99", "100", "100"),
        ("50", "100", "100"),
        ("49.99", "100", "0"),
        ("0", "100", "0"),
        ("317.47", "100", "300"),
        ("1.25", "0.5", "1.5"),
    ])
    def test_round_to_unit_half_up(self, amount, unit, expected):
        """Verify half-up rounding to the nearest unit."""
        assert round_to_unit(Decimal(amount), Decimal(unit)) == Decimal(expected)

    def test_round_currency(self):
        """Verify 2dp half-up rounding for display."""
        assert round_currency(Decimal("0.005")) == 0.01
        assert round_currency(Decimal("1.234")) == 1.23
        assert round_currency(Decimal("188.970919")) == 188.97


class TestPriceUsage:
    """Test per-line pricing with the default configuration."""

    def test_rekognition_lines(self, breakdown):
        """1000 detections and 300 searches at 83.33 per 1000."""
        assert breakdown.rekognition_detect == Decimal("83.33")
        assert breakdown.rekognition_search == Decimal("24.999")

    def test_messaging_lines(self, breakdown):
        """200 emails at 8.33 per 1000 and 200 WhatsApp messages at 0.25."""
        assert breakdown.email == Decimal("1.666")
        assert breakdown.whatsapp == Decimal("50.00")

    def test_s3_request_line(self, breakdown):
        """3000 PUTs at 0.038/1000 plus 600 GETs at 0.003/1000."""
        assert breakdown.s3_requests == Decimal("0.1158")

    def test_lambda_lines(self, breakdown):
        """2000 invocations and 3072 GB-seconds."""
        assert breakdown.lambda_requests == Decimal("0.03334")
        assert breakdown.lambda_compute == Decimal("0.04267008")

    def test_other_is_overhead_on_s3_lambda_rekognition(self, breakdown):
        """Other services are 10% of S3, Lambda and Rekognition spend."""
        expected = (breakdown.storage + breakdown.compute + breakdown.rekognition) * Decimal("0.1")
        assert abs(breakdown.other - expected) < Decimal("1e-20")

    def test_total_sums_all_lines(self, breakdown):
        """Verify total is the sum of every line item."""
        assert breakdown.total == sum(breakdown.as_dict().values(), Decimal("0"))
        assert round_currency(breakdown.total) == 188.97

    def test_grouped_totals(self, breakdown):
        """Verify grouped totals combine the right lines."""
        assert breakdown.rekognition == Decimal("108.329")
        assert breakdown.dynamodb == (
            breakdown.dynamodb_write + breakdown.dynamodb_read + breakdown.dynamodb_storage
        )
