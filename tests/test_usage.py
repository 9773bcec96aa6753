"""
Unit tests for event input validation and usage derivation.
"""

from decimal import Decimal

import pytest

from facefind_billing.config.loader import default_billing_config
from facefind_billing.core.usage import (
    EventBillingInput,
    ValidationError,
    derive_usage,
)


class TestEventBillingInput:
    """Test input validation."""

    def test_valid_input(self):
        """Verify a typical event is accepted with defaults for optional fields."""
        event = EventBillingInput(estimated_attendees=100, max_photos=1000, retention_period_days=7)
        assert event.confidence_threshold == 85
        assert event.photo_resize_width is None
        assert event.photo_resize_height is None

    def test_zero_counts_allowed(self):
        """Zero photos or attendees are valid and produce zero usage."""
        event = EventBillingInput(estimated_attendees=0, max_photos=0, retention_period_days=0)
        assert event.max_photos == 0

    @pytest.mark.parametrize("field", [
        "estimated_attendees", "max_photos", "retention_period_days",
    ])
    def test_negative_counts_rejected(self, field):
        """Negative counts fail fast instead of producing a negative price."""
        values = {"estimated_attendees": 100, "max_photos": 1000, "retention_period_days": 7}
        values[field] = -1
        with pytest.raises(ValidationError, match=f"{field}: cannot be negative"):
            EventBillingInput(**values)

    @pytest.mark.parametrize("value", ["100", 10.5, True, None])
    def test_non_integer_counts_rejected(self, value):
        """Strings, floats, booleans and None are not counts."""
        with pytest.raises(ValidationError, match="estimated_attendees: must be an integer"):
            EventBillingInput(estimated_attendees=value, max_photos=1000, retention_period_days=7)

    @pytest.mark.parametrize("threshold", [-0.1, 100.5, 150])
    def test_confidence_out_of_range(self, threshold):
        """Confidence threshold must be a percentage."""
        with pytest.raises(ValidationError, match="between 0 and 100"):
            EventBillingInput(
                estimated_attendees=100,
                max_photos=1000,
                retention_period_days=7,
                confidence_threshold=threshold,
            )

    def test_confidence_must_be_numeric(self):
        """Verify non-numeric confidence is rejected."""
        with pytest.raises(ValidationError, match="confidence_threshold: must be a number"):
            EventBillingInput(
                estimated_attendees=100,
                max_photos=1000,
                retention_period_days=7,
                confidence_threshold="high",
            )

    def test_resize_dimensions_must_be_positive(self):
        """Verify zero resize width is rejected."""
        with pytest.raises(ValidationError, match="photo_resize_width: must be > 0"):
            EventBillingInput(
                estimated_attendees=100,
                max_photos=1000,
                retention_period_days=7,
                photo_resize_width=0,
            )

    def test_validation_error_is_value_error(self):
        """Callers catching ValueError also see validation failures."""
        with pytest.raises(ValueError):
            EventBillingInput(estimated_attendees=-5, max_photos=1000, retention_period_days=7)


class TestFromPayload:
    """Test building input from request bodies."""

    def test_camel_case_payload(self):
        """Verify the web form's field names are accepted."""
        event = EventBillingInput.from_payload({
            "estimatedAttendees": 250,
            "maxPhotos": 3000,
            "retentionPeriodDays": 30,
            "confidenceThreshold": 90,
            "photoResizeWidth": 1920,
            "photoResizeHeight": 1080,
        })
        assert event == EventBillingInput(
            estimated_attendees=250,
            max_photos=3000,
            retention_period_days=30,
            confidence_threshold=90,
            photo_resize_width=1920,
            photo_resize_height=1080,
        )

    def test_snake_case_payload(self):
        """Verify snake_case keys are accepted too."""
        event = EventBillingInput.from_payload({
            "estimated_attendees": 10,
            "max_photos": 20,
            "retention_period_days": 3,
        })
        assert event.max_photos == 20

    def test_numeric_strings_coerced(self):
        """Form values often arrive as strings."""
        event = EventBillingInput.from_payload({
            "estimatedAttendees": "100",
            "maxPhotos": " 1000 ",
            "retentionPeriodDays": "7",
            "confidenceThreshold": "85.5",
        })
        assert event.estimated_attendees == 100
        assert event.max_photos == 1000
        assert event.confidence_threshold == 85.5

    def test_empty_optional_fields_skipped(self):
        """Blank optional fields fall back to their defaults."""
        event = EventBillingInput.from_payload({
            "estimatedAttendees": 100,
            "maxPhotos": 1000,
            "retentionPeriodDays": 7,
            "confidenceThreshold": "",
            "photoResizeWidth": None,
        })
        assert event.confidence_threshold == 85
        assert event.photo_resize_width is None

    def test_missing_required_field(self):
        """Verify missing required fields are reported by name."""
        with pytest.raises(ValidationError, match="retention_period_days: is required"):
            EventBillingInput.from_payload({"estimatedAttendees": 100, "maxPhotos": 1000})

    def test_non_numeric_string(self):
        """Verify garbage strings are rejected."""
        with pytest.raises(ValidationError, match="'lots' is not a number"):
            EventBillingInput.from_payload({
                "estimatedAttendees": "lots",
                "maxPhotos": 1000,
                "retentionPeriodDays": 7,
            })

    def test_fractional_count_rejected(self):
        """A fractional photo count is not coerced to an integer."""
        with pytest.raises(ValidationError, match="max_photos: must be an integer"):
            EventBillingInput.from_payload({
                "estimatedAttendees": 100,
                "maxPhotos": "1.5",
                "retentionPeriodDays": 7,
            })

    def test_payload_must_be_mapping(self):
        """Verify non-mapping payloads are rejected."""
        with pytest.raises(ValidationError, match="payload: must be a mapping"):
            EventBillingInput.from_payload([100, 1000, 7])


class TestDeriveUsage:
    """Test usage volumes derived from event size."""

    def setup_method(self):
        self.config = default_billing_config()

    def test_typical_event_volumes(self):
        """Verify volumes for 100 attendees and 1000 photos."""
        event = EventBillingInput(estimated_attendees=100, max_photos=1000, retention_period_days=30)
        usage = derive_usage(event, self.config)

        # (8 + 5 + 0.2) MB * 1000 / 1024 * 1.1 storage overhead
        assert usage.photo_storage_gb == Decimal("14.1796875")
        assert usage.storage_months == 1
        assert usage.s3_put_requests == 3000
        assert usage.s3_get_requests == 600
        assert usage.lambda_invocations == 2000
        assert usage.lambda_gb_seconds == 3072
        assert usage.face_detections == 1000
        assert usage.face_searches == 300
        assert usage.dynamodb_writes == 5000
        assert usage.dynamodb_reads == 1500
        assert usage.emails == 200
        assert usage.whatsapp_messages == 200

    def test_zero_photos_zeroes_photo_volumes(self):
        """With no photos every photo-derived volume is 0, not an error."""
        event = EventBillingInput(estimated_attendees=100, max_photos=0, retention_period_days=7)
        usage = derive_usage(event, self.config)

        assert usage.photo_storage_gb == 0
        assert usage.metadata_storage_gb == 0
        assert usage.s3_put_requests == 0
        assert usage.lambda_invocations == 0
        assert usage.face_detections == 0
        assert usage.dynamodb_writes == 0
        # Attendee-driven volumes are unaffected
        assert usage.face_searches == 300
