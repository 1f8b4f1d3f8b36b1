"""
Configuration for the knowledge server.
All settings come from environment variables (optionally via a .env file) and
are read once at import; accessor functions re-read the ones tests override.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent.parent

# Store persistence
KNOWLEDGE_BASELINE_PATH = os.getenv("KNOWLEDGE_BASELINE_PATH", str(PACKAGE_DIR / "data" / "knowledge.json"))
KNOWLEDGE_STORE_PATH = os.getenv("KNOWLEDGE_STORE_PATH", "./data/knowledge-overlay.json")

# Auto-update pipeline
AUTO_UPDATE_ENABLED = os.getenv("AUTO_UPDATE_ENABLED", "true").lower() == "true"
KNOWLEDGE_UPDATE_INTERVAL = int(os.getenv("KNOWLEDGE_UPDATE_INTERVAL", "3600"))  # hourly
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")  # Optional, raises the upstream rate limit
FRAMEWORK_NAME = os.getenv("FRAMEWORK_NAME", "hummingbird")
RELEASES_URL = os.getenv(
    "RELEASES_URL",
    "https://api.github.com/repos/hummingbird-project/hummingbird/releases/latest"
)
PACKAGE_INDEX_URL = os.getenv("PACKAGE_INDEX_URL", "https://swift.org/api/v1/packages.json")
UPSTREAM_TIMEOUT_SEC = float(os.getenv("UPSTREAM_TIMEOUT_SEC", "10"))
RELEASE_CONTENT_LIMIT = int(os.getenv("RELEASE_CONTENT_LIMIT", "2000"))

# Review gate for generated rules
RULE_APPROVAL_MODE = os.getenv("RULE_APPROVAL_MODE", "manual")  # manual|auto

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

VERSION = "1.0.0"


class ConfigurationError(Exception):
    """Raised when the environment holds settings the server cannot run with."""
    pass


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", str(DEBUG)).lower() == "true"


def is_auto_update_enabled():
    """Check if the background release poller should run."""
    return os.getenv("AUTO_UPDATE_ENABLED", "true").lower() == "true"


def get_baseline_path() -> str:
    return os.getenv("KNOWLEDGE_BASELINE_PATH", KNOWLEDGE_BASELINE_PATH)


def get_store_path() -> str:
    return os.getenv("KNOWLEDGE_STORE_PATH", KNOWLEDGE_STORE_PATH)


def get_update_interval() -> int:
    """Get the update interval in seconds."""
    return int(os.getenv("KNOWLEDGE_UPDATE_INTERVAL", str(KNOWLEDGE_UPDATE_INTERVAL)))


def get_github_token():
    """Get the optional bearer token; empty strings count as unset."""
    return os.getenv("GITHUB_TOKEN", GITHUB_TOKEN or "") or None


def get_rule_approval_mode():
    """Get rule approval mode (manual|auto)."""
    return os.getenv("RULE_APPROVAL_MODE", RULE_APPROVAL_MODE)


def ensure_store_directory():
    """Ensure the overlay file's directory exists."""
    Path(get_store_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    try:
        if get_update_interval() < 1:
            issues.append("KNOWLEDGE_UPDATE_INTERVAL must be >= 1")
    except ValueError:
        issues.append(f"Invalid KNOWLEDGE_UPDATE_INTERVAL: {os.getenv('KNOWLEDGE_UPDATE_INTERVAL')}")

    if get_rule_approval_mode() not in ["manual", "auto"]:
        issues.append(f"Invalid RULE_APPROVAL_MODE: {get_rule_approval_mode()}")

    if UPSTREAM_TIMEOUT_SEC <= 0:
        issues.append("UPSTREAM_TIMEOUT_SEC must be > 0")

    if RELEASE_CONTENT_LIMIT < 1:
        issues.append("RELEASE_CONTENT_LIMIT must be >= 1")

    if not Path(get_baseline_path()).exists():
        issues.append(f"Baseline knowledge file not found: {get_baseline_path()}")

    return issues


def require_valid_config():
    """Raise ConfigurationError when validate_config() reports anything."""
    issues = validate_config()
    if issues:
        raise ConfigurationError(f"Configuration invalid: {issues}")
