"""Message classifier assigning one category per accepted message."""

from __future__ import annotations

from typing import Sequence

from logic.rules import RuleSet, first_label

# Checked in this order; the first set with a hit decides the category. A
# shipping notice that also carries an order number is an order confirmation.
# Bare "your order" is left out so "20% off your order" stays a promotion.
ORDER_CONFIRMATION_RULES = RuleSet.from_keywords(
    "order_confirmation",
    [
        "order confirmation",
        "order confirmed",
        "thank you for your order",
        "thanks for your order",
        "your order has been placed",
        "your order is confirmed",
        "order #",
        "order number",
        "order no",
        "receipt",
        "purchase confirmation",
        "we received your order",
    ],
    label="order_confirmation",
)

SHIPPING_RULES = RuleSet.from_keywords(
    "shipping",
    [
        "has shipped",
        "shipped",
        "shipping confirmation",
        "shipment",
        "tracking number",
        "track your package",
        "on its way",
        "out for delivery",
        "delivered",
        "in transit",
    ],
    label="shipping",
)

PROMOTION_RULES = RuleSet(
    "promotion",
    [
        (r"\d{1,2}\s?%\s?off", "promotion"),
        (r"\$\d+\s?off", "promotion"),
        (r"(?<![a-z])sale(?![a-z])", "promotion"),
        (r"(?<![a-z])discount", "promotion"),
        (r"(?<![a-z])promo(?:tion)?(?:\s?code)?(?![a-z])", "promotion"),
        (r"(?<![a-z])deals?(?![a-z])", "promotion"),
        (r"(?<![a-z])offers?(?![a-z])", "promotion"),
        (r"free shipping", "promotion"),
        (r"(?<![a-z])coupon", "promotion"),
        (r"new arrivals", "promotion"),
        (r"limited time", "promotion"),
        (r"clearance", "promotion"),
    ],
)

CLASSIFIER_RULE_SETS: Sequence[RuleSet] = (ORDER_CONFIRMATION_RULES, SHIPPING_RULES, PROMOTION_RULES)


def classify_message(subject: str, snippet: str) -> str:
    """Return ``order_confirmation``, ``shipping``, ``promotion`` or ``other``."""

    text = f"{subject or ''} {snippet or ''}".lower()
    return first_label(CLASSIFIER_RULE_SETS, text) or "other"


__all__ = [
    "CLASSIFIER_RULE_SETS",
    "ORDER_CONFIRMATION_RULES",
    "PROMOTION_RULES",
    "SHIPPING_RULES",
    "classify_message",
]
