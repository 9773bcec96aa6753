"""
Display helpers for quotes.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List

from .estimator import EventBillingEstimate


def format_inr(amount: float) -> str:
    """Format an amount as whole rupees with Indian digit grouping.

    >>> format_inr(123456)
    '₹1,23,456'
    """
    rupees = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rupees < 0 else ""
    digits = str(abs(rupees))

    # Last three digits, then groups of two
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    groups.append(tail)

    return f"{sign}₹{','.join(groups)}"


def cost_summary(estimate: EventBillingEstimate) -> List[str]:
    """One line per service group for showing next to a quote."""
    lines = estimate.grouped_breakdown
    return [
        f"Storage (S3): {format_inr(lines['storage'])}",
        f"Processing (Lambda): {format_inr(lines['lambda'])}",
        f"Face Recognition: {format_inr(lines['rekognition'])}",
        f"Database: {format_inr(lines['dynamodb'])}",
        f"Data Transfer: {format_inr(lines['cloudfront'])}",
        f"Email: {format_inr(lines['email'])}",
        f"WhatsApp: {format_inr(lines['whatsapp'])}",
        f"Other Services: {format_inr(lines['other'])}",
    ]
