"""
Violation detection over the static catalogue plus approved dynamic rules.
"""

import re
from datetime import datetime
from typing import Iterable, List, Optional

from .schema import ViolationMatch, ViolationRule
from ..util.logging import logger


class ViolationDetector:
    """
    Scans source text against rules in catalogue order.

    Static rules come first in authored order, then approved dynamic rules,
    newest generation first. Every matching rule is reported; severity is
    passed through untouched so blocking policy stays with the caller.
    """

    def __init__(self, static_rules: Iterable[ViolationRule]):
        self.static_rules = list(static_rules)

    def ordered_rules(self, dynamic_rules: Iterable[ViolationRule] = ()) -> List[ViolationRule]:
        approved = [r for r in dynamic_rules if r.review_status == "approved"]
        # sorted() is stable, so rules from one batch keep their generation order
        approved = sorted(approved, key=lambda r: r.generated_at or datetime.min, reverse=True)
        return self.static_rules + approved

    def detect(self, code: Optional[str], dynamic_rules: Iterable[ViolationRule] = (),
               file_path: str = None) -> List[ViolationMatch]:
        if not code:
            return []

        matches = []
        for rule in self.ordered_rules(dynamic_rules):
            try:
                matched_text = rule.find(code)
            except re.error as e:
                logger.warning(f"Skipping rule '{rule.id}' with invalid pattern: {e}")
                continue

            if matched_text is not None:
                matches.append(ViolationMatch.from_rule(rule, matched_text, file_path))

        logger.log_detection(matches, len(code), file_path)
        return matches


def has_blocking(matches: Iterable[ViolationMatch]) -> bool:
    """True when any match is critical - the code-generation path refuses those."""
    return any(m.severity == "critical" for m in matches)
