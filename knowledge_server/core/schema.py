"""
Data model shared by the parser, generator, detector and store.
Everything persisted round-trips through to_dict()/from_dict() as plain JSON.
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional

FACT_KINDS = ("renamed", "removed", "changed", "annotated")
KINDS_WITH_REPLACEMENT = ("renamed", "changed")

SEVERITIES = ("critical", "error", "warning")
REVIEW_STATUSES = ("draft", "approved", "rejected")
ORIGINS = ("static", "auto-generated")
PATTERN_TYPES = ("literal", "regex")

LAYERS = (
    "controller",
    "service",
    "repository",
    "model",
    "middleware",
    "configuration",
    "transport",
    "context",
)


def _parse_datetime(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class DeprecationFact:
    """One deprecation statement parsed out of a release body."""
    kind: str  # renamed, removed, changed, annotated
    old_name: str
    raw_sentence: str
    source_version: str
    new_name: Optional[str] = None
    line_number: int = 0

    def is_valid(self) -> bool:
        """old_name is required; new_name is required iff the kind carries a replacement."""
        if self.kind not in FACT_KINDS or not self.old_name:
            return False
        if self.kind in KINDS_WITH_REPLACEMENT:
            return bool(self.new_name)
        return not self.new_name


@dataclass
class ViolationRule:
    id: str
    severity: str  # critical, error, warning
    pattern: str
    description: str
    fix_suggestion: str = ""
    correction_id: Optional[str] = None
    pattern_type: str = "regex"  # literal, regex
    origin: str = "static"  # static, auto-generated
    review_status: str = "approved"  # draft, approved, rejected
    source_release: Optional[str] = None
    generated_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_note: Optional[str] = None

    def find(self, text: str) -> Optional[str]:
        """Return the first matched substring, or None when the rule does not match."""
        if self.pattern_type == "literal":
            return self.pattern if self.pattern and self.pattern in text else None

        match = re.search(self.pattern, text, re.MULTILINE)
        return match.group(0) if match else None

    def matches(self, text: str) -> bool:
        return self.find(text) is not None

    @property
    def is_active(self) -> bool:
        """Static rules always participate; dynamic ones only once approved."""
        return self.origin == "static" or self.review_status == "approved"

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage."""
        data = asdict(self)
        data['generated_at'] = self.generated_at.isoformat() if self.generated_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'ViolationRule':
        """Create from dictionary (for loading from storage)."""
        data = dict(data)
        data['generated_at'] = _parse_datetime(data.get('generated_at'))
        return cls(**data)


@dataclass
class ViolationMatch:
    """A rule that matched submitted source text."""
    rule_id: str
    severity: str
    description: str
    fix_suggestion: str
    correction_id: Optional[str]
    origin: str
    matched_text: str
    file_path: Optional[str] = None

    @classmethod
    def from_rule(cls, rule: ViolationRule, matched_text: str, file_path: str = None) -> 'ViolationMatch':
        return cls(
            rule_id=rule.id,
            severity=rule.severity,
            description=rule.description,
            fix_suggestion=rule.fix_suggestion,
            correction_id=rule.correction_id,
            origin=rule.origin,
            matched_text=matched_text,
            file_path=file_path
        )


@dataclass
class KnowledgeEntry:
    """A documentation unit: pattern explanation, pitfall, or ingested release summary."""
    id: str
    title: str
    content: str
    layer: Optional[str] = None
    pattern_ids: List[str] = field(default_factory=list)
    violation_ids: List[str] = field(default_factory=list)
    framework_version_range: str = ">=2.0.0"
    language_version_range: str = ">=6.0"
    is_tutorial_pattern: bool = False  # True = anti-pattern example, never a pitfall
    correction_id: Optional[str] = None
    confidence: float = 1.0
    source: str = "bundled"
    last_verified_at: Optional[datetime] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage."""
        data = asdict(self)
        data['last_verified_at'] = self.last_verified_at.isoformat() if self.last_verified_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'KnowledgeEntry':
        """Create from dictionary (for loading from storage)."""
        data = dict(data)
        data['last_verified_at'] = _parse_datetime(data.get('last_verified_at'))
        return cls(**data)
