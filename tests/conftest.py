"""
Shared fixtures: isolated stores on temporary files and a scripted upstream client.
"""

import pytest
from unittest.mock import MagicMock

from knowledge_server.core.config import get_baseline_path
from knowledge_server.core.schema import KnowledgeEntry
from knowledge_server.core.store import KnowledgeStore
from knowledge_server.core.upstream import UpstreamClient


def make_entry(id: str, **overrides) -> KnowledgeEntry:
    """Create a knowledge entry with sensible defaults."""
    fields = {
        "title": f"Entry {id}",
        "content": f"Content for {id}",
        "layer": None,
        "confidence": 0.8,
        "source": "test",
    }
    fields.update(overrides)
    return KnowledgeEntry(id=id, **fields)


@pytest.fixture
def overlay_path(tmp_path):
    """Path of the overlay file for one test."""
    return tmp_path / "data" / "knowledge-overlay.json"


@pytest.fixture
def empty_store(overlay_path):
    """Store with no baseline entries, persisting to a temp overlay."""
    return KnowledgeStore(persist_path=str(overlay_path))


@pytest.fixture
def store(overlay_path):
    """Store loaded from the bundled baseline, persisting to a temp overlay."""
    return KnowledgeStore(baseline_path=get_baseline_path(), persist_path=str(overlay_path))


@pytest.fixture
def upstream_client():
    """UpstreamClient stand-in; tests script fetch_latest_release per case."""
    client = MagicMock(spec=UpstreamClient)
    client.authenticated = False
    client.probe_package_index.return_value = True
    return client


def release_payload(tag_name="v2.1.0", body="- `HBFoo` renamed to `Foo`"):
    return {"tag_name": tag_name, "body": body, "name": f"Release {tag_name}"}
