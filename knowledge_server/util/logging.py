"""
Structured logging for the knowledge server.
Every operation is logged as `Operation: X, Status: Y, Details: {...}` so update
cycles, rule reviews and persistence can be followed in a plain log stream.
"""

import logging
from typing import Any, Dict, List

from ..core.config import LOG_LEVEL


class StructuredLogger:
    """Structured logger for store, pipeline and update-cycle operations."""

    def __init__(self, name: str = "knowledge_server"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(LOG_LEVEL)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_update_cycle(self, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log one update scheduler cycle."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)

        level = logging.WARNING if status == "failed" else logging.INFO
        self.log_operation("updater.cycle", status, log_details, level)

    def log_upstream_failure(self, source: str, error: Any, critical: bool = True):
        """Log a failed upstream call. Non-critical probes log at debug."""
        log_details = {"source": source, "error": str(error)[:200]}
        level = logging.WARNING if critical else logging.DEBUG
        self.log_operation("upstream.fetch", "failed", log_details, level)

    def log_rule_generated(self, rule_id: str, severity: str, source_release: str):
        """Log a draft rule produced by the generator."""
        log_details = {
            "rule_id": rule_id,
            "severity": severity,
            "source_release": source_release
        }
        self.log_operation("rules.generated", "draft", log_details)

    def log_rule_dropped(self, kind: str, old_name: str, reason: str):
        """Log a deprecation fact that could not become a rule."""
        log_details = {
            "kind": kind,
            "old_name": old_name,
            "reason": reason
        }
        self.log_operation("rules.generated", "dropped", log_details, logging.WARNING)

    def log_rule_review(self, rule_id: str, decision: str, reviewer: str = None, note: str = ""):
        """Log a review decision on a dynamic rule."""
        log_details = {
            "rule_id": rule_id,
            "decision": decision,
            "reviewer": reviewer or "unknown",
            "note": note[:100] if note else ""  # Limit note length
        }
        self.log_operation("rules.review", decision, log_details)

    def log_store_persist(self, path: str, entry_count: int, rule_count: int, status: str = "success"):
        """Log a write-through persistence of the store."""
        log_details = {
            "path": path,
            "entries": entry_count,
            "rules": rule_count
        }
        level = logging.ERROR if status == "failed" else logging.DEBUG
        self.log_operation("store.persist", status, log_details, level)

    def log_detection(self, matches: List[Any], code_length: int, file_path: str = None):
        """Log a detection call without echoing the scanned source."""
        log_details = {
            "code_length": code_length,
            "match_count": len(matches)
        }
        if file_path:
            log_details["file_path"] = file_path
        self.log_operation("detector.scan", "clean" if not matches else "violations", log_details, logging.DEBUG)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
