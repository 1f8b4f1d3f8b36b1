"""
Knowledge store - the single owner of knowledge entries and dynamic violation rules.

State lives behind one re-entrant lock: every mutation and every snapshot read
takes it, so readers never see a half-applied upsert. Mutations are written
through to a JSON overlay file before they return; the bundled baseline is
loaded first on startup and the overlay is applied on top.
"""

import copy
import json
import os
import tempfile
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .config import get_baseline_path, get_store_path
from .detector import ViolationDetector
from .schema import KnowledgeEntry, ViolationMatch, ViolationRule, LAYERS, REVIEW_STATUSES
from .violations import get_static_rules
from ..util.logging import logger

OVERLAY_FORMAT_VERSION = 1


class KnowledgeStoreError(Exception):
    """Raised when the baseline cannot be loaded or a write cannot be persisted."""
    pass


class KnowledgeStore:
    """Concurrency-safe repository of knowledge entries and dynamic rules."""

    def __init__(self, baseline_path: str = None, persist_path: str = None,
                 static_rules: Iterable[ViolationRule] = None,
                 seed_entries: Iterable[KnowledgeEntry] = None):
        self._lock = threading.RLock()
        self._entries: Dict[str, KnowledgeEntry] = {}
        self._rules: Dict[str, ViolationRule] = {}
        # Entries that differ from the baseline and therefore belong in the overlay
        self._overlay_ids = set()

        self.persist_path = Path(persist_path) if persist_path else None
        self.detector = ViolationDetector(get_static_rules() if static_rules is None else static_rules)

        for entry in seed_entries or []:
            self._entries[entry.id] = entry

        if baseline_path:
            self._load_baseline(Path(baseline_path))
        if self.persist_path:
            self._load_overlay(self.persist_path)

    @classmethod
    def from_config(cls) -> 'KnowledgeStore':
        """Build the store from the configured baseline and overlay paths."""
        return cls(baseline_path=get_baseline_path(), persist_path=get_store_path())

    # Loading

    def _load_baseline(self, path: Path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            records = data["entries"] if isinstance(data, dict) else data
            for record in records:
                entry = KnowledgeEntry.from_dict(record)
                self._entries[entry.id] = entry
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise KnowledgeStoreError(f"Failed to load baseline knowledge from {path}: {e}") from e

        logger.info(f"Loaded {len(self._entries)} baseline knowledge entries from {path}")

    def _load_overlay(self, path: Path):
        if not path.exists():
            return

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # Baseline stays usable; the next successful write replaces the bad file
            logger.warning(f"Ignoring unreadable knowledge overlay {path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring knowledge overlay {path}: expected an object")
            return

        for record in self._overlay_section(data, "entries", path):
            try:
                entry = KnowledgeEntry.from_dict(record)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed overlay entry: {e}")
                continue
            self._entries[entry.id] = entry
            self._overlay_ids.add(entry.id)

        for record in self._overlay_section(data, "rules", path):
            try:
                rule = ViolationRule.from_dict(record)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed overlay rule: {e}")
                continue
            self._rules[rule.id] = rule

        logger.info(f"Applied knowledge overlay from {path}: "
                    f"{len(self._overlay_ids)} entries, {len(self._rules)} dynamic rules")

    def _overlay_section(self, data: Dict, key: str, path: Path) -> List:
        records = data.get(key, [])
        if not isinstance(records, list):
            logger.warning(f"Ignoring '{key}' in knowledge overlay {path}: expected a list")
            return []
        return records

    # Persistence

    def _persist(self):
        """Write the overlay atomically: temp file in the same directory, then rename."""
        if not self.persist_path:
            return

        document = {
            "version": OVERLAY_FORMAT_VERSION,
            "saved_at": datetime.now().isoformat(),
            "entries": [self._entries[i].to_dict() for i in sorted(self._overlay_ids) if i in self._entries],
            "rules": [rule.to_dict() for rule in self._rules.values()],
        }

        directory = self.persist_path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".knowledge-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.persist_path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.log_store_persist(str(self.persist_path), len(document["entries"]), len(document["rules"]), "failed")
            raise KnowledgeStoreError(f"Failed to persist knowledge overlay to {self.persist_path}: {e}") from e

        logger.log_store_persist(str(self.persist_path), len(document["entries"]), len(document["rules"]))

    # Reads

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def rule_count(self) -> int:
        with self._lock:
            return len(self._rules)

    def entry(self, id: str) -> Optional[KnowledgeEntry]:
        """Look up an entry; None when absent."""
        with self._lock:
            entry = self._entries.get(id)
            return copy.deepcopy(entry) if entry else None

    def all_entries(self) -> List[KnowledgeEntry]:
        with self._lock:
            return copy.deepcopy(list(self._entries.values()))

    def entries(self, layer: str) -> List[KnowledgeEntry]:
        """Entries tagged with one architectural layer."""
        if layer not in LAYERS:
            return []
        with self._lock:
            return copy.deepcopy([e for e in self._entries.values() if e.layer == layer])

    def pitfalls(self) -> List[KnowledgeEntry]:
        """Entries that are not anti-pattern illustrations, highest confidence first."""
        with self._lock:
            items = [e for e in self._entries.values() if not e.is_tutorial_pattern]
            return copy.deepcopy(sorted(items, key=lambda e: e.confidence, reverse=True))

    def anti_pattern_entries(self) -> List[KnowledgeEntry]:
        with self._lock:
            return copy.deepcopy([e for e in self._entries.values() if e.is_tutorial_pattern])

    def rule(self, id: str) -> Optional[ViolationRule]:
        with self._lock:
            rule = self._rules.get(id)
            return copy.deepcopy(rule) if rule else None

    def dynamic_rules(self, status: str = None) -> List[ViolationRule]:
        with self._lock:
            rules = [r for r in self._rules.values() if status is None or r.review_status == status]
            return copy.deepcopy(rules)

    def snapshot(self) -> Dict[str, int]:
        """Counts for health reporting, taken in one consistent read."""
        with self._lock:
            statuses = [r.review_status for r in self._rules.values()]
            return {
                "entries": len(self._entries),
                "static_rules": len(self.detector.static_rules),
                "dynamic_rules": len(statuses),
                "approved_rules": statuses.count("approved"),
                "draft_rules": statuses.count("draft"),
                "rejected_rules": statuses.count("rejected"),
            }

    def detect_violations(self, code: Optional[str], file_path: str = None) -> List[ViolationMatch]:
        """Scan code against static rules plus approved dynamic rules."""
        with self._lock:
            dynamic = copy.deepcopy(list(self._rules.values()))
        return self.detector.detect(code, dynamic, file_path)

    # Writes

    def upsert(self, entry: KnowledgeEntry):
        """Insert or replace an entry by id and persist before returning."""
        self.upsert_all([entry])

    def upsert_all(self, entries: Iterable[KnowledgeEntry]):
        """Upsert several entries with a single persistence write."""
        entries = list(entries)
        if not entries:
            return

        with self._lock:
            previous_entries = dict(self._entries)
            previous_overlay = set(self._overlay_ids)
            for entry in entries:
                self._entries[entry.id] = copy.deepcopy(entry)
                self._overlay_ids.add(entry.id)
            try:
                self._persist()
            except KnowledgeStoreError:
                self._entries = previous_entries
                self._overlay_ids = previous_overlay
                raise

    def upsert_rule(self, rule: ViolationRule) -> ViolationRule:
        """
        Insert or replace a dynamic rule by id and persist before returning.

        Re-generating a rule that already exists keeps its original
        generated_at, and keeps any review decision already made on it, so
        reprocessing a release neither reorders nor demotes rules.
        """
        if rule.origin != "auto-generated":
            raise ValueError(f"Only auto-generated rules can be upserted, got origin '{rule.origin}'")

        with self._lock:
            existing = self._rules.get(rule.id)
            stored = copy.deepcopy(rule)
            if existing is not None:
                stored = replace(stored, generated_at=existing.generated_at or stored.generated_at)
                if stored.review_status == "draft" and existing.review_status != "draft":
                    stored = replace(
                        stored,
                        review_status=existing.review_status,
                        reviewed_by=existing.reviewed_by,
                        review_note=existing.review_note
                    )

            self._rules[rule.id] = stored
            try:
                self._persist()
            except KnowledgeStoreError:
                if existing is None:
                    del self._rules[rule.id]
                else:
                    self._rules[rule.id] = existing
                raise

            return copy.deepcopy(stored)

    def set_rule_status(self, rule_id: str, status: str, reviewer: str = None,
                        note: str = None, from_status: str = None) -> Optional[ViolationRule]:
        """
        Move a dynamic rule to a review status (draft, approved, rejected).

        With from_status set, the transition only happens if the rule is
        currently in that status. Returns the updated rule, or None when no
        rule has that id or the from_status check fails.
        """
        if status not in REVIEW_STATUSES:
            raise ValueError(f"Invalid review status: {status}")

        with self._lock:
            existing = self._rules.get(rule_id)
            if existing is None:
                return None
            if from_status is not None and existing.review_status != from_status:
                return None

            updated = replace(existing, review_status=status, reviewed_by=reviewer, review_note=note)
            self._rules[rule_id] = updated
            try:
                self._persist()
            except KnowledgeStoreError:
                self._rules[rule_id] = existing
                raise

        logger.log_rule_review(rule_id, status, reviewer, note or "")
        return copy.deepcopy(updated)
