"""Relevance filter, classifier and rule matcher tests."""

from __future__ import annotations

from logic.classification import classify_message
from logic.relevance import evaluate_relevance, is_fashion_relevant
from logic.rules import RuleSet, first_label, keyword_rules


def test_keyword_rules_respect_word_boundaries() -> None:
    rules = RuleSet.from_keywords("demo", ["tee", ".gov"])
    assert rules.first_label("new graphic tee drop") == "tee"
    assert rules.first_label("meeting notes") is None
    assert rules.first_label("notice from dmv.gov") == ".gov"


def test_keyword_rules_use_group_label() -> None:
    assert keyword_rules(["bank", "loan"], "finance") == [
        (r"(?<![a-z0-9])bank(?![a-z0-9])", "finance"),
        (r"(?<![a-z0-9])loan(?![a-z0-9])", "finance"),
    ]


def test_first_label_checks_rule_sets_in_order() -> None:
    first = RuleSet("first", [(r"order", "first")])
    second = RuleSet("second", [(r"order", "second")])
    assert first_label([first, second], "your order") == "first"
    assert first_label([second, first], "your order") == "second"


def test_fashion_promotion_is_accepted() -> None:
    decision = evaluate_relevance("20% off new arrivals", "Shop the collection", "nike.com", "Nike")
    assert decision.accepted
    assert decision.stage == "fashion_keyword"


def test_exclusion_wins_over_inclusion() -> None:
    decision = evaluate_relevance(
        "Your pharmacy order and new shoes", "Pick up today", "store.example.com", "Example"
    )
    assert not decision.accepted
    assert decision.stage == "exclusion"
    assert decision.reason == "health"


def test_message_without_any_signal_is_dropped() -> None:
    decision = evaluate_relevance("Team meeting notes", "Agenda attached", "example.org", "Example")
    assert not decision.accepted
    assert decision.reason == "no_fashion_signal"


def test_fashion_domain_suffix_is_accepted() -> None:
    decision = evaluate_relevance(
        "Weekly update", "See what is in store", "shop.urbanclothing.com", "Urbanclothing"
    )
    assert decision.accepted
    assert decision.stage == "fashion_domain"
    assert decision.reason == "domain:clothing"


def test_fashion_brand_substring_is_accepted() -> None:
    assert is_fashion_relevant("Members update", "Your rewards", "mail.example.com", "Lululemon")


def test_finance_sender_is_rejected_even_with_sale_language() -> None:
    assert not is_fashion_relevant("Big sale on jackets", "Statement is ready", "chase.com", "Chase")


def test_classifier_prefers_order_confirmation_over_shipping() -> None:
    assert classify_message("Order #88231 has shipped", "Tracking number inside") == "order_confirmation"


def test_classifier_shipping_only() -> None:
    assert classify_message("Your package is on its way", "Tracking number 1Z999") == "shipping"


def test_classifier_promotion() -> None:
    assert classify_message("Flash sale: 30% off", "Today only") == "promotion"


def test_classifier_falls_back_to_other() -> None:
    assert classify_message("Hello there", "Just checking in") == "other"


def test_classifier_keeps_discount_on_your_order_a_promotion() -> None:
    assert classify_message("Take 20% off your order", "New arrivals, limited time") == "promotion"


def test_seamless_apparel_is_not_food_delivery() -> None:
    decision = evaluate_relevance("Seamless leggings 30% off", "Shop activewear", "e.lululemon.com", "Lululemon")
    assert decision.accepted


def test_seamless_delivery_sender_is_excluded() -> None:
    decision = evaluate_relevance("Your dinner deals", "Order now", "orders.seamless.com", "Seamless")
    assert not decision.accepted
    assert decision.reason == "food_delivery"
