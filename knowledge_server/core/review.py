"""
Review workflow for generated violation rules.

Generated rules start as drafts. A reviewer (a person using the review CLI or
API, or the auto policy when RULE_APPROVAL_MODE=auto) approves or rejects
them; only approved rules take part in detection.
"""

from typing import Iterable, List

from .config import get_rule_approval_mode
from .schema import ViolationRule
from .store import KnowledgeStore
from ..util.logging import logger

AUTO_REVIEWER = "policy:auto"


def list_pending_rules(store: KnowledgeStore) -> List[ViolationRule]:
    """List all draft rules awaiting review, newest first."""
    pending = store.dynamic_rules(status="draft")
    return sorted(pending, key=lambda r: (r.generated_at is not None, r.generated_at), reverse=True)


def approve_rule(store: KnowledgeStore, rule_id: str, reviewer: str, reason: str = "") -> bool:
    """Approve a draft rule. Returns False when the rule is missing or already decided."""
    updated = store.set_rule_status(rule_id, "approved", reviewer=reviewer, note=reason, from_status="draft")
    return updated is not None


def reject_rule(store: KnowledgeStore, rule_id: str, reviewer: str, reason: str = "") -> bool:
    """Reject a draft rule. Returns False when the rule is missing or already decided."""
    updated = store.set_rule_status(rule_id, "rejected", reviewer=reviewer, note=reason, from_status="draft")
    return updated is not None


def reopen_rule(store: KnowledgeStore, rule_id: str, reviewer: str, reason: str = "") -> bool:
    """Send an approved or rejected rule back to draft."""
    rule = store.rule(rule_id)
    if not rule or rule.review_status == "draft":
        return False

    updated = store.set_rule_status(rule_id, "draft", reviewer=reviewer, note=reason,
                                    from_status=rule.review_status)
    return updated is not None


def apply_review_policy(store: KnowledgeStore, rule_ids: Iterable[str]) -> int:
    """
    Apply the configured approval mode to freshly upserted rules.

    manual: nothing happens, rules wait for a reviewer.
    auto: every rule still in draft is approved. Returns the number approved.
    """
    if get_rule_approval_mode() != "auto":
        return 0

    approved = 0
    for rule_id in rule_ids:
        if approve_rule(store, rule_id, AUTO_REVIEWER, "auto-approved by policy"):
            approved += 1

    if approved:
        logger.info(f"Auto-approved {approved} generated rules")
    return approved
