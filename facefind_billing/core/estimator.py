"""
Event billing estimation.

Converts event parameters into an AWS cost breakdown and a marked-up
customer price. The estimator is a pure function of its input and
configuration:

1. Derive usage volumes from attendees, photos and retention
2. Price each volume at its AWS unit rate and sum the lines
3. Scale by the retention multiplier and processing overhead
4. Add the profit margin and round to the configured price unit
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from facefind_billing.config.loader import BillingConfig, EventDefaults
from .pricing import (
    CostBreakdown,
    price_usage,
    retention_multiplier,
    round_currency,
    round_to_unit,
)
from .usage import EventBillingInput, UsageVolumes, derive_usage, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventBillingEstimate:
    """Result of quoting an event. Recomputed on every input change."""
    event: EventBillingInput
    usage: UsageVolumes
    breakdown: Dict[str, float]
    grouped_breakdown: Dict[str, float]
    total_aws_cost: float
    adjusted_cost: float
    profit_margin: float
    estimated_price: float
    retention_multiplier: float
    total_storage_gb: float
    avg_photo_size_mb: float

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape returned to web clients."""
        return {
            "breakdown": self.grouped_breakdown,
            "lineItems": dict(self.breakdown),
            "totalAWSCost": self.total_aws_cost,
            "adjustedCost": self.adjusted_cost,
            "profitMargin": self.profit_margin,
            "estimatedPrice": self.estimated_price,
            "retentionMultiplier": self.retention_multiplier,
            "configurations": {
                "estimatedAttendees": self.event.estimated_attendees,
                "maxPhotos": self.event.max_photos,
                "retentionPeriodDays": self.event.retention_period_days,
                "confidenceThreshold": self.event.confidence_threshold,
                "avgPhotoSizeMB": self.avg_photo_size_mb,
                "totalStorageGB": self.total_storage_gb,
                "retentionMultiplier": self.retention_multiplier,
            },
        }


def estimate(event: EventBillingInput, config: BillingConfig) -> EventBillingEstimate:
    """Estimate AWS cost and customer price for an event.

    Performs no I/O; configuration is always passed in. Line items are
    rounded for display only, totals are computed from unrounded values.

    Args:
        event: Validated event parameters
        config: Billing configuration to price against

    Returns:
        EventBillingEstimate with per-line costs and summary figures
    """
    usage = derive_usage(event, config)
    breakdown: CostBreakdown = price_usage(usage, config)

    total_aws_cost = breakdown.total
    multiplier = retention_multiplier(event.retention_period_days, config.retention_tiers)
    adjusted_cost = total_aws_cost * multiplier * to_decimal(config.processing_overhead)
    profit_margin = adjusted_cost * to_decimal(config.profit_margin_percent) / 100
    estimated_price = round_to_unit(
        adjusted_cost + profit_margin, to_decimal(config.price_rounding_unit)
    )

    logger.debug(
        "Estimated event: attendees=%s photos=%s retention=%sd aws=%s multiplier=%s price=%s",
        event.estimated_attendees,
        event.max_photos,
        event.retention_period_days,
        total_aws_cost,
        multiplier,
        estimated_price,
    )

    return EventBillingEstimate(
        event=event,
        usage=usage,
        breakdown={name: round_currency(amount) for name, amount in breakdown.as_dict().items()},
        grouped_breakdown={
            "storage": round_currency(breakdown.storage),
            "lambda": round_currency(breakdown.compute),
            "rekognition": round_currency(breakdown.rekognition),
            "dynamodb": round_currency(breakdown.dynamodb),
            "cloudfront": round_currency(breakdown.cloudfront),
            "email": round_currency(breakdown.email),
            "whatsapp": round_currency(breakdown.whatsapp),
            "other": round_currency(breakdown.other),
        },
        total_aws_cost=round_currency(total_aws_cost),
        adjusted_cost=round_currency(adjusted_cost),
        profit_margin=round_currency(profit_margin),
        estimated_price=float(estimated_price),
        retention_multiplier=float(multiplier),
        total_storage_gb=round_currency(usage.photo_storage_gb),
        avg_photo_size_mb=config.avg_processed_photo_size_mb,
    )


def resolve_payment_amount(
    estimate: Optional[EventBillingEstimate],
    defaults: EventDefaults,
) -> float:
    """Amount recorded as an event's payment when it is created.

    Falls back to the configured amount when no estimate could be made
    or the estimate came out at zero.
    """
    if estimate is not None and estimate.estimated_price > 0:
        return estimate.estimated_price
    return float(defaults.fallback_payment_amount)
