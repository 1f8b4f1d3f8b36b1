"""
HTTP API tests against an isolated store.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from knowledge_server.api.main import create_app
from knowledge_server.core.schema import ViolationRule
from knowledge_server.core.updater import UpdateScheduler


def generated_rule(id="auto-v2-1-0-renamed-hbfoo", pattern="HBFoo", status="draft"):
    return ViolationRule(
        id=id,
        severity="warning",
        pattern=pattern,
        pattern_type="literal",
        description=f"`{pattern}` has been renamed to `Foo` in v2.1.0.",
        fix_suggestion=f"Replace `{pattern}` with `Foo`.",
        correction_id="deprecated-hbfoo-renamed",
        origin="auto-generated",
        review_status=status,
        source_release="v2.1.0",
        generated_at=datetime(2024, 5, 1)
    )


class TestKnowledgeAPI:
    """Query and detection endpoints."""

    @pytest.fixture
    def client(self, store):
        with TestClient(create_app(store=store, auto_update=False)) as test_client:
            yield test_client

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"]["entries"] == 14
        assert data["store"]["static_rules"] == 17
        assert data["updater"] == {"status": "disabled"}

    def test_detect_static_violation(self, client):
        code = 'router.get("users") { req, ctx in try await db.query("SELECT 1") }'

        response = client.post("/violations/detect", json={"code": code, "file_path": "Sources/App/Routes.swift"})

        assert response.status_code == 200
        data = response.json()
        assert data["blocking"] is True
        assert data["violations"][0]["rule_id"] == "inline-db-in-handler"
        assert data["violations"][0]["file_path"] == "Sources/App/Routes.swift"
        assert data["count"] == len(data["violations"])

    def test_detect_clean_code(self, client):
        response = client.post("/violations/detect", json={"code": "let x = HBFoo()"})

        assert response.json() == {"violations": [], "count": 0, "blocking": False}

    @pytest.mark.parametrize("body", [{}, {"code": None}, {"code": ""}])
    def test_detect_absent_or_empty_code(self, client, body):
        response = client.post("/violations/detect", json=body)

        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_list_entries_sorted(self, client):
        ids = [e["id"] for e in client.get("/entries").json()["entries"]]

        assert len(ids) == 14
        assert ids == sorted(ids)

    def test_list_entries_by_layer(self, client):
        entries = client.get("/entries", params={"layer": "service"}).json()["entries"]

        assert entries
        assert all(e["layer"] == "service" for e in entries)

    def test_list_entries_empty_layer(self, client):
        response = client.get("/entries", params={"layer": "transport"})

        assert response.status_code == 200
        assert response.json()["entries"] == []

    def test_list_entries_invalid_layer(self, client):
        assert client.get("/entries", params={"layer": "view"}).status_code == 400

    def test_get_entry(self, client):
        response = client.get("/entries/structured-logging")

        assert response.status_code == 200
        assert response.json()["id"] == "structured-logging"
        assert response.json()["is_tutorial_pattern"] is False

    def test_get_entry_missing(self, client):
        assert client.get("/entries/not-there").status_code == 404

    def test_pitfalls_exclude_tutorial_patterns(self, client):
        entries = client.get("/pitfalls").json()["entries"]

        assert entries
        assert not any(e["is_tutorial_pattern"] for e in entries)
        confidences = [e["confidence"] for e in entries]
        assert confidences == sorted(confidences, reverse=True)


class TestRuleReviewAPI:

    @pytest.fixture
    def client(self, store):
        store.upsert_rule(generated_rule())
        with TestClient(create_app(store=store, auto_update=False)) as test_client:
            yield test_client

    def test_list_rules(self, client):
        rules = client.get("/rules").json()["rules"]

        assert [r["id"] for r in rules] == ["auto-v2-1-0-renamed-hbfoo"]
        assert rules[0]["review_status"] == "draft"

    def test_list_rules_by_status(self, client):
        assert client.get("/rules", params={"status": "approved"}).json()["rules"] == []
        assert client.get("/rules", params={"status": "bogus"}).status_code == 400

    def test_draft_rule_not_detected_until_approved(self, client):
        code = {"code": "let x = HBFoo()"}
        assert client.post("/violations/detect", json=code).json()["count"] == 0

        response = client.post("/rules/auto-v2-1-0-renamed-hbfoo/review",
                               json={"decision": "approved", "reviewer": "sam", "note": "verified"})

        assert response.status_code == 200
        assert response.json()["review_status"] == "approved"
        assert response.json()["reviewed_by"] == "sam"

        violations = client.post("/violations/detect", json=code).json()["violations"]
        assert [v["rule_id"] for v in violations] == ["auto-v2-1-0-renamed-hbfoo"]
        assert violations[0]["severity"] == "warning"

    def test_second_decision_conflicts(self, client):
        url = "/rules/auto-v2-1-0-renamed-hbfoo/review"
        client.post(url, json={"decision": "rejected", "reviewer": "sam"})

        response = client.post(url, json={"decision": "approved", "reviewer": "sam"})

        assert response.status_code == 409

    def test_reopen(self, client):
        url = "/rules/auto-v2-1-0-renamed-hbfoo/review"
        client.post(url, json={"decision": "rejected", "reviewer": "sam"})

        response = client.post(url, json={"decision": "draft", "reviewer": "kim"})

        assert response.status_code == 200
        assert response.json()["review_status"] == "draft"

    def test_unknown_rule(self, client):
        response = client.post("/rules/auto-missing/review", json={"decision": "approved", "reviewer": "sam"})
        assert response.status_code == 404

    @pytest.mark.parametrize("body", [
        {"decision": "maybe", "reviewer": "sam"},
        {"decision": "approved", "reviewer": "   "},
        {"decision": "approved"},
    ])
    def test_invalid_review_request(self, client, body):
        assert client.post("/rules/auto-v2-1-0-renamed-hbfoo/review", json=body).status_code == 422


class TestLifespan:

    def test_scheduler_started_and_stopped(self, store):
        scheduler = MagicMock(spec=UpdateScheduler)
        scheduler.get_status.return_value = {"status": "running", "cycles": 0}

        with TestClient(create_app(store=store, scheduler=scheduler, auto_update=True)) as client:
            scheduler.start.assert_called_once()
            assert client.get("/health").json()["updater"]["status"] == "running"

        scheduler.stop.assert_called_once()

    def test_store_built_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_STORE_PATH", str(tmp_path / "overlay.json"))

        with TestClient(create_app(auto_update=False)) as client:
            assert client.get("/health").json()["store"]["entries"] == 14
