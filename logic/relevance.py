"""Two-stage relevance filter deciding whether a message is about fashion.

Stage one rejects anything matching the exclusion lists. Stage two accepts
only messages with a fashion keyword, a fashion-flavoured sender domain or a
known fashion brand. A message matching neither stage is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass

from logic.rules import RuleSet, keyword_rules

EXCLUSION_GROUPS = {
    "health": [
        "pharmacy", "prescription", "medical", "patient", "doctor", "clinic",
        "hospital", "dental", "health insurance", "cvs", "walgreens", "lab results",
    ],
    "entertainment": [
        "netflix", "hulu", "spotify", "disney+", "hbo", "youtube", "twitch",
        "peacock", "paramount+", "ticketmaster", "apple tv",
    ],
    "government": [
        "irs", "dmv", ".gov", "ezpass", "e-zpass", "toll", "tolls", "jury duty", "voter",
    ],
    "sports": ["nfl", "nba", "mlb", "nhl", "mls", "espn", "fantasy football"],
    "finance": [
        "bank", "banking", "chase", "wells fargo", "capital one", "statement is ready",
        "credit card statement", "paypal", "venmo", "mortgage", "loan", "credit score",
        "brokerage", "robinhood",
    ],
    "travel": [
        "airline", "flight", "boarding pass", "itinerary", "hotel", "airbnb",
        "expedia", "booking.com", "united airlines", "southwest", "rental car",
    ],
    "food_delivery": [
        "doordash", "uber eats", "ubereats", "grubhub", "instacart", "postmates",
        "seamless.com", "seamlessweb", "food delivery",
    ],
    "utilities": [
        "utility bill", "electric bill", "water bill", "internet bill", "comcast",
        "xfinity", "verizon", "at&t", "t-mobile", "energy usage",
    ],
    "account_security": [
        "verify your email", "password reset", "reset your password", "security alert",
        "sign-in attempt", "login attempt", "two-factor", "verification code",
        "account security", "new sign-in",
    ],
}

FASHION_KEYWORDS = [
    "fashion", "apparel", "clothing", "wardrobe", "outfit", "outfits", "style",
    "dress", "dresses", "shoe", "shoes", "sneaker", "sneakers", "boots", "denim",
    "jeans", "jacket", "jackets", "sweater", "hoodie", "shirt", "shirts", "tee",
    "pants", "shorts", "skirt", "handbag", "accessories", "jewelry", "activewear",
    "swimwear", "lingerie", "new arrivals", "lookbook", "collection",
]

FASHION_DOMAIN_SUFFIXES = [
    "clothing", "apparel", "fashion", "wear", "boutique", "outfitters",
    "shoes", "footwear", "denim", "style", "closet",
]

FASHION_BRANDS = [
    "nike", "adidas", "zara", "uniqlo", "everlane", "h&m", "patagonia", "j.crew",
    "jcrew", "madewell", "levi", "levi's", "lululemon", "gap", "old navy",
    "banana republic", "ralph lauren", "tommy hilfiger", "nordstrom", "asos",
    "shein", "urban outfitters", "anthropologie", "free people", "abercrombie",
    "hollister", "american eagle", "under armour", "new balance", "vans",
    "converse", "puma", "reebok", "north face", "faherty", "outerknown",
    "tecovas", "bonobos", "allbirds", "ssense", "farfetch", "revolve", "zappos",
    "aritzia", "quince", "vuori", "billabong", "rip curl", "volcom", "quiksilver",
]

EXCLUSION_RULES = RuleSet(
    "exclusion",
    [rule for label, keywords in EXCLUSION_GROUPS.items() for rule in keyword_rules(keywords, label)],
)
FASHION_KEYWORD_RULES = RuleSet.from_keywords("fashion_keyword", FASHION_KEYWORDS)
FASHION_DOMAIN_RULES = RuleSet(
    "fashion_domain",
    [
        (rf"(?<![a-z0-9-])[a-z0-9-]*{suffix}\.(?:[a-z]{{2,}})(?:\.[a-z]{{2}})?(?![a-z0-9])", f"domain:{suffix}")
        for suffix in FASHION_DOMAIN_SUFFIXES
    ],
)
FASHION_BRAND_RULES = RuleSet.from_keywords("fashion_brand", FASHION_BRANDS)
INCLUSION_RULE_SETS = (FASHION_KEYWORD_RULES, FASHION_DOMAIN_RULES, FASHION_BRAND_RULES)


@dataclass(frozen=True)
class RelevanceDecision:
    accepted: bool
    stage: str
    reason: str


def relevance_text(subject: str, snippet: str, sender_domain: str, brand_name: str) -> str:
    return " ".join(part for part in (subject, snippet, sender_domain, brand_name) if part).lower()


def evaluate_relevance(
    subject: str, snippet: str, sender_domain: str, brand_name: str
) -> RelevanceDecision:
    """Run the exclusion stage, then the inclusion stage."""

    text = relevance_text(subject, snippet, sender_domain, brand_name)
    excluded = EXCLUSION_RULES.first_label(text)
    if excluded:
        return RelevanceDecision(accepted=False, stage="exclusion", reason=excluded)

    for rule_set in INCLUSION_RULE_SETS:
        label = rule_set.first_label(text)
        if label:
            return RelevanceDecision(accepted=True, stage=rule_set.name, reason=label)
    return RelevanceDecision(accepted=False, stage="inclusion", reason="no_fashion_signal")


def is_fashion_relevant(subject: str, snippet: str, sender_domain: str, brand_name: str) -> bool:
    return evaluate_relevance(subject, snippet, sender_domain, brand_name).accepted


__all__ = [
    "EXCLUSION_RULES",
    "FASHION_BRAND_RULES",
    "FASHION_DOMAIN_RULES",
    "FASHION_KEYWORD_RULES",
    "RelevanceDecision",
    "evaluate_relevance",
    "is_fashion_relevant",
    "relevance_text",
]
