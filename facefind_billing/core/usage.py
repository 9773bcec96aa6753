"""
Event parameters and derived service usage.

Turns an event's size and retention into the AWS usage volumes it implies.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from facefind_billing.config.loader import BillingConfig


class ValidationError(ValueError):
    """Raised when event billing input is malformed."""
    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


def _check_count(field: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be an integer")
    if value < 0:
        raise ValidationError(field, "cannot be negative")


@dataclass(frozen=True)
class EventBillingInput:
    """Parameters of an event being quoted. Never persisted."""
    estimated_attendees: int
    max_photos: int
    retention_period_days: int
    confidence_threshold: float = 85
    photo_resize_width: Optional[int] = None
    photo_resize_height: Optional[int] = None

    def __post_init__(self):
        _check_count("estimated_attendees", self.estimated_attendees)
        _check_count("max_photos", self.max_photos)
        _check_count("retention_period_days", self.retention_period_days)

        threshold = self.confidence_threshold
        if (isinstance(threshold, bool) or not isinstance(threshold, (int, float))
                or not math.isfinite(threshold)):
            raise ValidationError("confidence_threshold", "must be a number")
        if not 0 <= threshold <= 100:
            raise ValidationError("confidence_threshold", "must be between 0 and 100")

        for field in ("photo_resize_width", "photo_resize_height"):
            value = getattr(self, field)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(field, "must be an integer")
            if value <= 0:
                raise ValidationError(field, "must be > 0")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EventBillingInput":
        """Build input from a request body.

        Accepts camelCase keys as sent by the web forms, or snake_case.
        Numeric strings are coerced.

        Raises:
            ValidationError: If a required field is missing or not numeric
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("payload", "must be a mapping")

        values = {}
        for field, camel in _PAYLOAD_FIELDS:
            raw = payload.get(field, payload.get(camel))
            if raw is None or raw == "":
                if field in _REQUIRED_FIELDS:
                    raise ValidationError(field, "is required")
                continue
            values[field] = _coerce(field, raw)
        return cls(**values)


_PAYLOAD_FIELDS = (
    ("estimated_attendees", "estimatedAttendees"),
    ("max_photos", "maxPhotos"),
    ("retention_period_days", "retentionPeriodDays"),
    ("confidence_threshold", "confidenceThreshold"),
    ("photo_resize_width", "photoResizeWidth"),
    ("photo_resize_height", "photoResizeHeight"),
)

_REQUIRED_FIELDS = {"estimated_attendees", "max_photos", "retention_period_days"}


def _coerce(field: str, raw: Any) -> Any:
    if isinstance(raw, bool):
        raise ValidationError(field, "must be a number")
    if isinstance(raw, str):
        text = raw.strip()
        try:
            raw = int(text)
        except ValueError:
            try:
                raw = float(text)
            except ValueError:
                raise ValidationError(field, f"'{raw}' is not a number")
    if field != "confidence_threshold" and isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return raw


@dataclass(frozen=True)
class UsageVolumes:
    """AWS usage implied by an event, before pricing."""
    storage_months: Decimal
    photo_storage_gb: Decimal
    metadata_storage_gb: Decimal
    s3_put_requests: Decimal
    s3_get_requests: Decimal
    lambda_invocations: Decimal
    lambda_gb_seconds: Decimal
    face_detections: Decimal
    face_searches: Decimal
    dynamodb_writes: Decimal
    dynamodb_reads: Decimal
    data_transfer_gb: Decimal
    emails: Decimal
    whatsapp_messages: Decimal


def to_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def derive_usage(event: EventBillingInput, config: BillingConfig) -> UsageVolumes:
    """Derive usage volumes from event size and configured per-unit assumptions.

    Photo-driven volumes scale with max_photos and attendee-driven volumes
    with estimated_attendees, so either being 0 zeroes its side.
    """
    photos = to_decimal(event.max_photos)
    attendees = to_decimal(event.estimated_attendees)

    per_photo_mb = (
        to_decimal(config.avg_original_photo_size_mb)
        + to_decimal(config.avg_processed_photo_size_mb)
        + to_decimal(config.thumbnail_size_mb)
    )
    photo_storage_gb = photos * per_photo_mb / 1024 * to_decimal(config.storage_overhead)
    metadata_storage_gb = photos * to_decimal(config.metadata_storage_size_kb) / (1024 * 1024)

    downloads = attendees * to_decimal(config.avg_downloads_per_attendee)
    lambda_invocations = photos * to_decimal(config.lambda_invocations_multiplier)

    return UsageVolumes(
        storage_months=to_decimal(event.retention_period_days) / 30,
        photo_storage_gb=photo_storage_gb,
        metadata_storage_gb=metadata_storage_gb,
        s3_put_requests=photos * to_decimal(config.s3_put_requests_multiplier),
        s3_get_requests=downloads * to_decimal(config.s3_get_requests_multiplier),
        lambda_invocations=lambda_invocations,
        lambda_gb_seconds=(
            lambda_invocations
            * to_decimal(config.lambda_memory_gb)
            * to_decimal(config.lambda_avg_execution_seconds)
        ),
        face_detections=photos,
        face_searches=attendees * to_decimal(config.avg_scans_per_attendee),
        dynamodb_writes=photos * to_decimal(config.dynamodb_write_multiplier),
        dynamodb_reads=attendees * to_decimal(config.avg_photo_views_per_attendee),
        data_transfer_gb=downloads * to_decimal(config.avg_processed_photo_size_mb) / 1024,
        emails=attendees * to_decimal(config.avg_emails_per_attendee),
        whatsapp_messages=attendees * to_decimal(config.avg_whatsapp_messages_per_attendee),
    )
