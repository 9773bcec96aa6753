"""
Core modules for FaceFind billing.

This package contains usage derivation, pricing and the event
billing estimator.
"""

from .estimator import EventBillingEstimate, estimate, resolve_payment_amount
from .usage import EventBillingInput, ValidationError

__all__ = [
    "EventBillingEstimate",
    "EventBillingInput",
    "ValidationError",
    "estimate",
    "resolve_payment_amount",
]
