"""Declarative ``(pattern, label)`` rule sets and the matcher that reads them.

Every keyword heuristic in the pipelines (relevance lists, classifier
keywords, category table, expiration and order patterns) is an ordered
:class:`RuleSet`. Order is significant: the first rule whose pattern matches
wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple


@dataclass(frozen=True)
class Rule:
    pattern: Pattern[str]
    label: str


@dataclass(frozen=True)
class RuleMatch:
    label: str
    match: re.Match

    def group(self, index: int = 1) -> Optional[str]:
        try:
            return self.match.group(index)
        except IndexError:
            return None


def keyword_rules(keywords: Iterable[str], label: str | None = None) -> List[Tuple[str, str]]:
    """Turn literal keywords into whole-word ``(pattern, label)`` pairs.

    Word guards are only added on sides where the keyword starts or ends with
    a letter or digit, so ``.gov`` or ``disney+`` still match inside longer text.
    """

    rules: List[Tuple[str, str]] = []
    for keyword in keywords:
        pattern = re.escape(keyword)
        if keyword[:1].isalnum():
            pattern = r"(?<![a-z0-9])" + pattern
        if keyword[-1:].isalnum():
            pattern = pattern + r"(?![a-z0-9])"
        rules.append((pattern, label or keyword))
    return rules


class RuleSet:
    """An ordered, named collection of regex rules."""

    def __init__(self, name: str, rules: Sequence[Tuple[str, str]], flags: int = re.IGNORECASE) -> None:
        self.name = name
        self.rules: List[Rule] = [Rule(re.compile(pattern, flags), label) for pattern, label in rules]

    @classmethod
    def from_keywords(cls, name: str, keywords: Iterable[str], label: str | None = None) -> "RuleSet":
        """Build a rule set matching whole-word occurrences of literal keywords."""

        return cls(name, keyword_rules(keywords, label))

    def first_match(self, text: str) -> Optional[RuleMatch]:
        for rule in self.rules:
            found = rule.pattern.search(text or "")
            if found:
                return RuleMatch(label=rule.label, match=found)
        return None

    def first_label(self, text: str) -> Optional[str]:
        matched = self.first_match(text)
        return matched.label if matched else None


def first_label(rule_sets: Sequence[RuleSet], text: str) -> Optional[str]:
    """Return the label of the first matching rule across several rule sets, in order."""

    for rule_set in rule_sets:
        label = rule_set.first_label(text)
        if label is not None:
            return label
    return None


__all__ = ["Rule", "RuleMatch", "RuleSet", "first_label", "keyword_rules"]
