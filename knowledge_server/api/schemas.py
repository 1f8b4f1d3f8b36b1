"""
Request and response models for the knowledge server HTTP API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

from ..core.schema import KnowledgeEntry, REVIEW_STATUSES, ViolationMatch, ViolationRule


class DetectRequest(BaseModel):
    code: Optional[str] = None
    file_path: Optional[str] = None

    @field_validator('file_path')
    @classmethod
    def file_path_must_not_be_blank(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class ViolationMatchResponse(BaseModel):
    rule_id: str
    severity: str
    description: str
    fix_suggestion: str
    correction_id: Optional[str] = None
    origin: str
    matched_text: str
    file_path: Optional[str] = None

    @classmethod
    def from_match(cls, match: ViolationMatch) -> 'ViolationMatchResponse':
        return cls(**vars(match))


class DetectResponse(BaseModel):
    violations: List[ViolationMatchResponse]
    count: int
    blocking: bool


class KnowledgeEntryResponse(BaseModel):
    id: str
    title: str
    content: str
    layer: Optional[str] = None
    pattern_ids: List[str]
    violation_ids: List[str]
    framework_version_range: str
    language_version_range: str
    is_tutorial_pattern: bool
    correction_id: Optional[str] = None
    confidence: float
    source: str
    last_verified_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: KnowledgeEntry) -> 'KnowledgeEntryResponse':
        return cls(**vars(entry))


class KnowledgeEntryListResponse(BaseModel):
    entries: List[KnowledgeEntryResponse]


class RuleResponse(BaseModel):
    id: str
    severity: str
    pattern: str
    pattern_type: str
    description: str
    fix_suggestion: str
    correction_id: Optional[str] = None
    origin: str
    review_status: str
    source_release: Optional[str] = None
    generated_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_note: Optional[str] = None

    @classmethod
    def from_rule(cls, rule: ViolationRule) -> 'RuleResponse':
        return cls(**vars(rule))


class RuleListResponse(BaseModel):
    rules: List[RuleResponse]


class ReviewRequest(BaseModel):
    decision: str
    reviewer: str
    note: str = ""

    @field_validator('decision')
    @classmethod
    def decision_must_be_valid(cls, v):
        if v not in REVIEW_STATUSES:
            raise ValueError(f'decision must be one of: {list(REVIEW_STATUSES)}')
        return v

    @field_validator('reviewer')
    @classmethod
    def reviewer_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('reviewer cannot be empty')
        return v


class HealthResponse(BaseModel):
    status: str
    version: str
    store: Dict[str, int]
    updater: Dict[str, Any]
