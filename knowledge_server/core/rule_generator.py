"""
Rule generation - turns parsed deprecation facts into draft violation rules.
Generated rules never take part in detection until a reviewer approves them.
"""

import hashlib
import re
from datetime import datetime
from typing import Iterable, List, Optional

from .schema import DeprecationFact, ViolationRule
from ..util.logging import logger

SEVERITY_BY_KIND = {
    "removed": "error",
    "renamed": "warning",
    "changed": "warning",
    "annotated": "warning",
}


def slugify(value: str) -> str:
    """Lowercase kebab-case, keeping only [a-z0-9-]."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return slug.strip("-")


class RuleGenerator:
    """Maps each valid DeprecationFact to exactly one ViolationRule."""

    def generate(self, fact: DeprecationFact, generated_at: datetime = None) -> Optional[ViolationRule]:
        """
        Build a draft rule for one fact.

        Returns None for a malformed fact (unknown kind, empty old name, or a
        missing/unexpected replacement name) rather than emitting a broken rule.
        """
        if not fact.is_valid():
            logger.log_rule_dropped(fact.kind, fact.old_name, "malformed deprecation fact")
            return None

        rule = ViolationRule(
            id=self.rule_id(fact),
            severity=SEVERITY_BY_KIND[fact.kind],
            # Literal match keeps false positives low on common identifiers
            pattern=fact.old_name,
            pattern_type="literal",
            description=self._description(fact),
            fix_suggestion=self._fix_suggestion(fact),
            correction_id=f"deprecated-{slugify(fact.old_name)}-{fact.kind}",
            origin="auto-generated",
            review_status="draft",
            source_release=fact.source_version,
            generated_at=generated_at or datetime.now()
        )

        logger.log_rule_generated(rule.id, rule.severity, fact.source_version)
        return rule

    def generate_all(self, facts: Iterable[DeprecationFact]) -> List[ViolationRule]:
        """Generate rules in fact order; one timestamp is shared by the whole batch."""
        generated_at = datetime.now()
        rules = []
        for fact in facts:
            rule = self.generate(fact, generated_at)
            if rule is not None:
                rules.append(rule)
        return rules

    def rule_id(self, fact: DeprecationFact) -> str:
        """
        Deterministic id: same release and fact always give the same id.

        The slug folds case and punctuation, so a short digest of the exact
        old name keeps HBFoo and HbFoo apart.
        """
        version = slugify(fact.source_version) or "unversioned"
        digest = hashlib.sha256(fact.old_name.encode("utf-8")).hexdigest()[:8]
        return f"auto-{version}-{fact.kind}-{slugify(fact.old_name)}-{digest}"

    def _description(self, fact: DeprecationFact) -> str:
        if fact.kind == "renamed":
            return f"`{fact.old_name}` has been renamed to `{fact.new_name}` in {fact.source_version}."
        elif fact.kind == "changed":
            return f"`{fact.old_name}` has changed to `{fact.new_name}` in {fact.source_version}."
        elif fact.kind == "removed":
            return f"`{fact.old_name}` has been removed from the API in {fact.source_version}."
        return f"`{fact.old_name}` is deprecated as of {fact.source_version}."

    def _fix_suggestion(self, fact: DeprecationFact) -> str:
        if fact.kind in ("renamed", "changed"):
            return f"Replace `{fact.old_name}` with `{fact.new_name}`."
        elif fact.kind == "removed":
            return f"Remove usage of `{fact.old_name}`; no direct replacement."
        return f"Migrate away from `{fact.old_name}`; check the {fact.source_version} release notes for its replacement."
