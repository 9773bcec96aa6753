"""
Configuration management and loading.

Holds the billing assumptions and event-form defaults used to quote events.
"""

import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


class ConfigurationError(ValueError):
    """Raised when configuration is missing, incomplete or corrupt."""


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class RetentionTier:
    """Pricing multiplier applied up to (and including) a retention length.

    A tier without ``up_to_days`` is the catch-all for longer retention.
    """
    multiplier: float
    up_to_days: Optional[int] = None

    def __post_init__(self):
        if not _is_number(self.multiplier) or self.multiplier <= 0:
            raise ConfigurationError("retention tier multiplier must be > 0")
        if self.up_to_days is not None:
            if isinstance(self.up_to_days, bool) or not isinstance(self.up_to_days, int):
                raise ConfigurationError("retention tier up_to_days must be an integer")
            if self.up_to_days < 0:
                raise ConfigurationError("retention tier up_to_days cannot be negative")


DEFAULT_RETENTION_TIERS: Tuple[RetentionTier, ...] = (
    RetentionTier(up_to_days=7, multiplier=1.0),
    RetentionTier(up_to_days=14, multiplier=1.15),
    RetentionTier(up_to_days=30, multiplier=1.30),
    RetentionTier(up_to_days=60, multiplier=1.50),
    RetentionTier(up_to_days=90, multiplier=1.75),
    RetentionTier(multiplier=2.0),
)


@dataclass(frozen=True)
class BillingConfig:
    """Assumptions and AWS unit prices used by the billing estimator.

    Prices are INR for the ap-south-1 (Mumbai) region. Every field is
    required; use ``default_billing_config()`` for the stock values.
    """
    # Photo sizes
    avg_processed_photo_size_mb: float
    avg_original_photo_size_mb: float
    thumbnail_size_mb: float
    # Attendee behaviour
    avg_scans_per_attendee: float
    avg_downloads_per_attendee: float
    avg_photo_views_per_attendee: float
    avg_emails_per_attendee: float
    avg_whatsapp_messages_per_attendee: float
    # Lambda
    lambda_memory_gb: float
    lambda_avg_execution_seconds: float
    lambda_invocations_multiplier: float
    # DynamoDB
    metadata_storage_size_kb: float
    dynamodb_write_multiplier: float
    # S3
    s3_put_requests_multiplier: float
    s3_get_requests_multiplier: float
    # Margin and overheads
    profit_margin_percent: float
    processing_overhead: float
    storage_overhead: float
    other_services_overhead: float
    whatsapp_cost_per_message: float
    price_rounding_unit: float
    retention_tiers: Tuple[RetentionTier, ...]
    # AWS unit prices
    s3_storage_per_gb_month: float
    s3_put_request_per_1000: float
    s3_get_request_per_1000: float
    lambda_request_per_1m: float
    lambda_compute_per_gb_second: float
    rekognition_detect_faces_per_1000: float
    rekognition_search_faces_per_1000: float
    dynamodb_write_per_1m: float
    dynamodb_read_per_1m: float
    dynamodb_storage_per_gb: float
    cloudfront_data_transfer_per_gb: float
    ses_email_per_1000: float

    def __post_init__(self):
        """Validate numeric fields and the retention tier table."""
        for name in _numeric_field_names():
            value = getattr(self, name)
            if not _is_number(value):
                raise ConfigurationError(f"{name} must be a number")
            if value < 0:
                raise ConfigurationError(f"{name} cannot be negative")

        for name in ("price_rounding_unit", "processing_overhead", "storage_overhead"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")

        _validate_tiers(self.retention_tiers)


def _numeric_field_names() -> List[str]:
    return [f.name for f in fields(BillingConfig) if f.name != "retention_tiers"]


def _validate_tiers(tiers: Tuple[RetentionTier, ...]) -> None:
    if not isinstance(tiers, tuple) or not tiers:
        raise ConfigurationError("retention_tiers must be a non-empty tuple")

    for tier in tiers:
        if not isinstance(tier, RetentionTier):
            raise ConfigurationError("retention_tiers must contain RetentionTier values")

    # Only the last tier may (and must) be open-ended
    if tiers[-1].up_to_days is not None:
        raise ConfigurationError("last retention tier must be a catch-all without up_to_days")

    previous = None
    for tier in tiers[:-1]:
        if tier.up_to_days is None:
            raise ConfigurationError("only the last retention tier may omit up_to_days")
        if previous is not None and tier.up_to_days <= previous:
            raise ConfigurationError("retention tier bounds must be strictly increasing")
        previous = tier.up_to_days

    # Longer retention must never be cheaper
    for lower, higher in zip(tiers, tiers[1:]):
        if higher.multiplier < lower.multiplier:
            raise ConfigurationError("retention tier multipliers must not decrease")


def default_billing_config() -> BillingConfig:
    """Build the stock billing configuration (Mumbai region pricing, INR)."""
    return BillingConfig(
        avg_processed_photo_size_mb=5,
        avg_original_photo_size_mb=8,
        thumbnail_size_mb=0.2,
        avg_scans_per_attendee=3,
        avg_downloads_per_attendee=3,
        avg_photo_views_per_attendee=15,
        avg_emails_per_attendee=2,  # invitation + reminder
        avg_whatsapp_messages_per_attendee=2,  # welcome + photos ready
        lambda_memory_gb=0.512,
        lambda_avg_execution_seconds=3,
        lambda_invocations_multiplier=2,  # upload processing + face indexing
        metadata_storage_size_kb=10,
        dynamodb_write_multiplier=5,
        s3_put_requests_multiplier=3,  # original + processed + thumbnail
        s3_get_requests_multiplier=2,
        profit_margin_percent=40,
        processing_overhead=1.2,
        storage_overhead=1.1,
        other_services_overhead=0.1,  # WAF, CloudWatch, misc
        whatsapp_cost_per_message=0.25,
        price_rounding_unit=100,
        retention_tiers=DEFAULT_RETENTION_TIERS,
        s3_storage_per_gb_month=1.84,
        s3_put_request_per_1000=0.038,
        s3_get_request_per_1000=0.003,
        lambda_request_per_1m=16.67,
        lambda_compute_per_gb_second=0.00001389,
        rekognition_detect_faces_per_1000=83.33,
        rekognition_search_faces_per_1000=83.33,
        dynamodb_write_per_1m=104.17,
        dynamodb_read_per_1m=20.83,
        dynamodb_storage_per_gb=2.08,
        cloudfront_data_transfer_per_gb=7.29,
        ses_email_per_1000=8.33,
    )


@dataclass(frozen=True)
class EventDefaults:
    """Default values offered when creating or quoting an event."""
    estimated_attendees: int = 100
    max_photos: int = 1000
    retention_period_days: int = 7
    confidence_threshold: float = 85
    photo_resize_width: int = 2560
    photo_resize_height: int = 1440
    photo_quality: int = 85
    fallback_payment_amount: float = 15000

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not _is_number(value) or value < 0:
                raise ConfigurationError(f"{f.name} must be a non-negative number")
        for name in _EVENT_DEFAULT_INTEGER_FIELDS:
            if not isinstance(getattr(self, name), int):
                raise ConfigurationError(f"{name} must be an integer")
        for name in ("photo_resize_width", "photo_resize_height"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")
        if self.confidence_threshold > 100:
            raise ConfigurationError("confidence_threshold must be between 0 and 100")


_EVENT_DEFAULT_INTEGER_FIELDS = (
    "estimated_attendees",
    "max_photos",
    "retention_period_days",
    "photo_resize_width",
    "photo_resize_height",
    "photo_quality",
)


def default_event_defaults() -> EventDefaults:
    return EventDefaults()


def billing_config_from_dict(data: Dict[str, Any], path: str = "billing") -> BillingConfig:
    """Parse and strictly validate a billing configuration mapping.

    Args:
        data: Raw mapping, e.g. from YAML or a stored JSON payload
        path: Location used in error messages

    Returns:
        Validated BillingConfig

    Raises:
        ConfigurationError: On unknown keys, missing keys or invalid values
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{path}' must be a dictionary")

    allowed_keys = {f.name for f in fields(BillingConfig)}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown keys in {path}: {sorted(unknown_keys)}")

    missing_keys = allowed_keys - set(data.keys())
    if missing_keys:
        raise ConfigurationError(f"Missing required keys in {path}: {sorted(missing_keys)}")

    values: Dict[str, Any] = {}
    for name in _numeric_field_names():
        value = data[name]
        if not _is_number(value):
            raise ConfigurationError(f"'{name}' in {path} must be a number")
        values[name] = value

    values["retention_tiers"] = _parse_tiers(data["retention_tiers"], f"{path}.retention_tiers")
    return BillingConfig(**values)


def _parse_tiers(data: Any, path: str) -> Tuple[RetentionTier, ...]:
    if not isinstance(data, list) or not data:
        raise ConfigurationError(f"'{path}' must be a non-empty list")

    tiers = []
    for index, tier_data in enumerate(data):
        tier_path = f"{path}[{index}]"
        if not isinstance(tier_data, dict):
            raise ConfigurationError(f"'{tier_path}' must be a dictionary")

        unknown_keys = set(tier_data.keys()) - {"up_to_days", "multiplier"}
        if unknown_keys:
            raise ConfigurationError(f"Unknown keys in {tier_path}: {sorted(unknown_keys)}")
        if "multiplier" not in tier_data:
            raise ConfigurationError(f"Missing required 'multiplier' in {tier_path}")

        tiers.append(RetentionTier(
            up_to_days=tier_data.get("up_to_days"),
            multiplier=tier_data["multiplier"],
        ))
    return tuple(tiers)


def billing_config_to_dict(config: BillingConfig) -> Dict[str, Any]:
    """Serialize a BillingConfig into plain data accepted by billing_config_from_dict."""
    data: Dict[str, Any] = {name: getattr(config, name) for name in _numeric_field_names()}
    tiers = []
    for tier in config.retention_tiers:
        tier_data: Dict[str, Any] = {"multiplier": tier.multiplier}
        if tier.up_to_days is not None:
            tier_data["up_to_days"] = tier.up_to_days
        tiers.append(tier_data)
    data["retention_tiers"] = tiers
    return data


def event_defaults_from_dict(data: Dict[str, Any], path: str = "event_defaults") -> EventDefaults:
    """Parse event defaults; absent keys keep their stock values."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{path}' must be a dictionary")

    allowed_keys = {f.name for f in fields(EventDefaults)}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown keys in {path}: {sorted(unknown_keys)}")

    return EventDefaults(**data)


def event_defaults_to_dict(defaults: EventDefaults) -> Dict[str, Any]:
    return {f.name: getattr(defaults, f.name) for f in fields(EventDefaults)}


def load_billing_config(path: str) -> BillingConfig:
    """Load and validate billing configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated BillingConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ConfigurationError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Billing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ConfigurationError("Configuration file is empty")

    return billing_config_from_dict(raw_config)
