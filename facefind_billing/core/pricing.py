"""
Pricing calculations and rate management.

Prices usage volumes at the configured AWS unit rates.
"""

from dataclasses import dataclass, fields
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Sequence

from facefind_billing.config.loader import BillingConfig, RetentionTier
from .usage import UsageVolumes, to_decimal


@dataclass(frozen=True)
class CostBreakdown:
    """Unrounded cost per AWS line item."""
    s3_storage: Decimal
    s3_requests: Decimal
    lambda_requests: Decimal
    lambda_compute: Decimal
    rekognition_detect: Decimal
    rekognition_search: Decimal
    dynamodb_write: Decimal
    dynamodb_read: Decimal
    dynamodb_storage: Decimal
    cloudfront: Decimal
    email: Decimal
    whatsapp: Decimal
    other: Decimal

    @property
    def storage(self) -> Decimal:
        return self.s3_storage + self.s3_requests

    @property
    def compute(self) -> Decimal:
        return self.lambda_requests + self.lambda_compute

    @property
    def rekognition(self) -> Decimal:
        return self.rekognition_detect + self.rekognition_search

    @property
    def dynamodb(self) -> Decimal:
        return self.dynamodb_write + self.dynamodb_read + self.dynamodb_storage

    @property
    def total(self) -> Decimal:
        return sum((getattr(self, f.name) for f in fields(self)), Decimal("0"))

    def as_dict(self) -> Dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def retention_multiplier(days: int, tiers: Sequence[RetentionTier]) -> Decimal:
    """Look up the pricing multiplier for a retention period.

    Tiers are checked in order with an inclusive bound, so a value exactly
    on a boundary belongs to the lower tier. The final catch-all tier covers
    anything beyond the last bound.

    Args:
        days: Retention period in days
        tiers: Ordered tier table ending in a catch-all tier

    Returns:
        Multiplier as a Decimal
    """
    for tier in tiers:
        if tier.up_to_days is None or days <= tier.up_to_days:
            return to_decimal(tier.multiplier)
    # Validated tier tables always end in a catch-all
    raise ValueError("retention tier table has no catch-all tier")


def price_usage(usage: UsageVolumes, config: BillingConfig) -> CostBreakdown:
    """Price each usage volume at its configured unit rate.

    The "other" line (WAF, CloudWatch, misc) is a percentage of the S3,
    Lambda and Rekognition spend.
    """
    s3_storage = usage.photo_storage_gb * to_decimal(config.s3_storage_per_gb_month) * usage.storage_months
    s3_requests = (
        usage.s3_put_requests / 1000 * to_decimal(config.s3_put_request_per_1000)
        + usage.s3_get_requests / 1000 * to_decimal(config.s3_get_request_per_1000)
    )
    lambda_requests = usage.lambda_invocations / 1000000 * to_decimal(config.lambda_request_per_1m)
    lambda_compute = usage.lambda_gb_seconds * to_decimal(config.lambda_compute_per_gb_second)
    rekognition_detect = usage.face_detections / 1000 * to_decimal(config.rekognition_detect_faces_per_1000)
    rekognition_search = usage.face_searches / 1000 * to_decimal(config.rekognition_search_faces_per_1000)

    other = (
        s3_storage + s3_requests + lambda_requests + lambda_compute
        + rekognition_detect + rekognition_search
    ) * to_decimal(config.other_services_overhead)

    return CostBreakdown(
        s3_storage=s3_storage,
        s3_requests=s3_requests,
        lambda_requests=lambda_requests,
        lambda_compute=lambda_compute,
        rekognition_detect=rekognition_detect,
        rekognition_search=rekognition_search,
        dynamodb_write=usage.dynamodb_writes / 1000000 * to_decimal(config.dynamodb_write_per_1m),
        dynamodb_read=usage.dynamodb_reads / 1000000 * to_decimal(config.dynamodb_read_per_1m),
        dynamodb_storage=(
            usage.metadata_storage_gb * to_decimal(config.dynamodb_storage_per_gb) * usage.storage_months
        ),
        cloudfront=usage.data_transfer_gb * to_decimal(config.cloudfront_data_transfer_per_gb),
        email=usage.emails / 1000 * to_decimal(config.ses_email_per_1000),
        whatsapp=usage.whatsapp_messages * to_decimal(config.whatsapp_cost_per_message),
        other=other,
    )


def round_to_unit(amount: Decimal, unit: Decimal) -> Decimal:
    """Round half-up to the nearest multiple of unit (e.g. nearest 100)."""
    steps = (amount / unit).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return steps * unit


def round_currency(amount: Decimal) -> float:
    """Round to 2 decimal places, half-up, for display."""
    return float(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
