"""
Update scheduler - keeps the knowledge store current from upstream releases.

Two states, idle and updating. A cycle runs immediately on start and then every
KNOWLEDGE_UPDATE_INTERVAL seconds on a daemon thread. Each cycle fetches the
latest release, upserts the singleton latest-release entry, and runs the
release body through ChangelogParser and RuleGenerator into draft rules. The
package-index probe runs after, isolated from everything else. No failure in
a cycle escapes it; the scheduler always returns to idle.
"""

import threading
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from .changelog_parser import ChangelogParser
from .config import FRAMEWORK_NAME, RELEASE_CONTENT_LIMIT, get_update_interval
from .review import apply_review_policy
from .rule_generator import RuleGenerator
from .schema import KnowledgeEntry
from .store import KnowledgeStore, KnowledgeStoreError
from .upstream import UpstreamClient, UpstreamError
from ..util.logging import logger

IDLE = "idle"
UPDATING = "updating"

RELEASE_SOURCE = "github-releases"
RELEASE_CONFIDENCE = 0.9


class UpdateScheduler:

    def __init__(self, store: KnowledgeStore, client: UpstreamClient = None,
                 interval_sec: int = None, framework_name: str = None,
                 content_limit: int = None):
        interval_sec = interval_sec if interval_sec is not None else get_update_interval()
        if interval_sec < 1:
            raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

        self.store = store
        self.client = client or UpstreamClient.from_config()
        self.interval_sec = interval_sec
        self.framework_name = framework_name or FRAMEWORK_NAME
        self.content_limit = content_limit or RELEASE_CONTENT_LIMIT
        self.parser = ChangelogParser()
        self.generator = RuleGenerator()

        self.state = IDLE
        self.cycles = 0
        self.last_run: Optional[datetime] = None
        self.last_result: Optional[str] = None
        self.last_release: Optional[str] = None

        self._cycle_lock = threading.Lock()
        self._shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def release_entry_id(self) -> str:
        return f"{self.framework_name}-latest-release"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # Lifecycle

    def start(self):
        """Start the background loop. The first cycle runs immediately."""
        if self.running:
            raise RuntimeError("Update scheduler already running")

        self._shutdown_event.clear()
        self._thread = threading.Thread(target=self._loop, name="knowledge-updater", daemon=True)
        self._thread.start()

        logger.log_operation("updater.start", "running", {
            "interval_sec": self.interval_sec,
            "github_auth": "token" if self.client.authenticated else "unauthenticated"
        })

    def stop(self, timeout: float = 5.0):
        """
        Stop scheduling further cycles.

        A cycle already in flight finishes its current store write; the wait
        for the thread is bounded by timeout.
        """
        if not self.running:
            return

        self._shutdown_event.set()
        self._thread.join(timeout)
        logger.log_operation("updater.stop", "stopped", {"cycles": self.cycles})

    def join(self, timeout: float = None):
        """Block until the background thread exits or timeout elapses."""
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self):
        self.run_cycle()
        # wait() returns True as soon as stop() is called
        while not self._shutdown_event.wait(self.interval_sec):
            self.run_cycle()

    # Cycle

    def run_cycle(self) -> str:
        """
        Run one update cycle. Upstream and store errors never escape.

        Returns the cycle result: 'updated', 'skipped' (upstream unusable, store
        untouched) or 'failed' (an unexpected error, logged). The scheduler is
        back in IDLE afterwards, even when an unexpected error escapes.
        """
        with self._cycle_lock:
            self.state = UPDATING
            start_time = time.monotonic()
            details: Dict[str, Any] = {}
            result = "failed"

            try:
                try:
                    result = self._update_from_release(details)
                except Exception as e:
                    # Error isolation - the store's callers never see a cycle failure
                    logger.error(f"Knowledge update cycle failed: {e}")
                    result = "failed"

                details["package_index"] = self._probe_package_index()
                details["entries"] = self.store.count
            finally:
                self.cycles += 1
                self.last_run = datetime.now()
                self.last_result = result
                self.state = IDLE

            logger.log_update_cycle(start_time, time.monotonic(), result, details)
            return result

    def _update_from_release(self, details: Dict[str, Any]) -> str:
        try:
            release = self.client.fetch_latest_release()
        except UpstreamError as e:
            logger.log_upstream_failure("releases", e)
            return "skipped"

        tag_name = release.get("tag_name")
        body = release.get("body")
        if not isinstance(tag_name, str) or not tag_name or not isinstance(body, str):
            logger.log_upstream_failure("releases", "missing tag_name or body")
            return "skipped"

        self.store.upsert(self.build_release_entry(tag_name, body))
        self.last_release = tag_name

        facts = self.parser.parse(body, tag_name)
        rules = self.generator.generate_all(facts)
        upserted = self._upsert_rules(rules)
        apply_review_policy(self.store, upserted)

        details.update({
            "release": tag_name,
            "facts": len(facts),
            "rules": len(upserted)
        })
        return "updated"

    def _upsert_rules(self, rules) -> List[str]:
        upserted = []
        for rule in rules:
            try:
                self.store.upsert_rule(rule)
            except KnowledgeStoreError as e:
                logger.error(f"Failed to store generated rule '{rule.id}': {e}")
                continue
            upserted.append(rule.id)
        return upserted

    def _probe_package_index(self) -> bool:
        try:
            reachable = self.client.probe_package_index()
        except UpstreamError as e:
            logger.log_upstream_failure("package_index", e, critical=False)
            return False
        except Exception as e:
            logger.debug(f"Package index check failed (non-critical): {e}")
            return False

        logger.debug("Package index reachable")
        return reachable

    def build_release_entry(self, tag_name: str, body: str) -> KnowledgeEntry:
        """Singleton entry describing the latest release; body truncated to the content limit."""
        return KnowledgeEntry(
            id=self.release_entry_id,
            title=f"{self.framework_name.capitalize()} Latest Release: {tag_name}",
            content=f"## {tag_name}\n\n{body[:self.content_limit]}",
            layer=None,
            framework_version_range=f">={tag_name.lstrip('v')}",
            language_version_range=">=6.0",
            is_tutorial_pattern=False,
            confidence=RELEASE_CONFIDENCE,
            source=RELEASE_SOURCE,
            last_verified_at=datetime.now()
        )

    def get_status(self) -> Dict[str, Any]:
        """Return current scheduler status for monitoring."""
        return {
            "status": "running" if self.running else "stopped",
            "state": self.state,
            "interval_sec": self.interval_sec,
            "cycles": self.cycles,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": self.last_result,
            "last_release": self.last_release,
        }
