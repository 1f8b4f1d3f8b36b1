"""
Detector tests - rule ordering, review gating and the static catalogue.
"""

from datetime import datetime, timedelta

import pytest

from knowledge_server.core.detector import ViolationDetector, has_blocking
from knowledge_server.core.schema import ViolationRule
from knowledge_server.core.violations import get_static_rules, rules_by_id


def dynamic_rule(id, pattern, status="approved", generated_at=None, severity="warning"):
    return ViolationRule(
        id=id,
        severity=severity,
        pattern=pattern,
        pattern_type="literal",
        description=f"{pattern} is deprecated",
        origin="auto-generated",
        review_status=status,
        generated_at=generated_at or datetime(2024, 1, 1)
    )


@pytest.fixture
def detector():
    return ViolationDetector(get_static_rules())


class TestStaticCatalogue:

    def test_ids_are_unique(self):
        rules = get_static_rules()
        assert len({r.id for r in rules}) == len(rules)

    def test_all_static_rules_are_approved_regex_rules(self):
        for rule in get_static_rules():
            assert rule.origin == "static"
            assert rule.review_status == "approved"
            assert rule.severity in ("critical", "error", "warning")

    def test_get_static_rules_returns_a_copy(self):
        rules = get_static_rules()
        rules.clear()
        assert get_static_rules()

    def test_critical_rules_present(self):
        rules = rules_by_id()
        assert rules["inline-db-in-handler"].severity == "critical"
        assert rules["service-construction-in-handler"].severity == "critical"

    def test_plain_constructor_call_matches_no_static_rule(self, detector):
        assert detector.detect("let x = HBFoo()") == []


class TestOrdering:

    def test_static_rules_come_before_dynamic(self, detector):
        rules = detector.ordered_rules([dynamic_rule("auto-a", "HBFoo")])

        static_count = len(get_static_rules())
        assert all(r.origin == "static" for r in rules[:static_count])
        assert rules[-1].id == "auto-a"

    def test_newest_dynamic_rule_first(self, detector):
        older = dynamic_rule("auto-old", "HBOld", generated_at=datetime(2024, 1, 1))
        newer = dynamic_rule("auto-new", "HBNew", generated_at=datetime(2024, 1, 1) + timedelta(days=1))

        matches = detector.detect("HBOld(); HBNew()", [older, newer])

        assert [m.rule_id for m in matches] == ["auto-new", "auto-old"]

    def test_same_batch_keeps_generation_order(self, detector):
        stamp = datetime(2024, 3, 1)
        rules = [dynamic_rule("auto-1", "HBOne", generated_at=stamp),
                 dynamic_rule("auto-2", "HBTwo", generated_at=stamp)]

        matches = detector.detect("HBOne HBTwo", rules)

        assert [m.rule_id for m in matches] == ["auto-1", "auto-2"]

    def test_static_matches_reported_before_dynamic(self, detector):
        code = 'let url = "https://api.example.com"\nlet x = HBFoo()'

        matches = detector.detect(code, [dynamic_rule("auto-foo", "HBFoo")])

        assert matches[0].origin == "static"
        assert matches[-1].rule_id == "auto-foo"


class TestGatingAndResults:

    @pytest.mark.parametrize("status", ["draft", "rejected"])
    def test_unapproved_dynamic_rules_never_match(self, detector, status):
        assert detector.detect("let x = HBFoo()", [dynamic_rule("auto-foo", "HBFoo", status=status)]) == []

    def test_approved_dynamic_rule_matches_once(self, detector):
        matches = detector.detect("let x = HBFoo()\nlet y = HBFoo()", [dynamic_rule("auto-foo", "HBFoo")])

        assert len(matches) == 1
        assert matches[0].matched_text == "HBFoo"
        assert matches[0].origin == "auto-generated"

    @pytest.mark.parametrize("code", [None, ""])
    def test_empty_input_has_no_matches(self, detector, code):
        assert detector.detect(code, [dynamic_rule("auto-foo", "HBFoo")]) == []

    def test_file_path_is_echoed(self, detector):
        matches = detector.detect("HBFoo", [dynamic_rule("auto-foo", "HBFoo")], file_path="Sources/App.swift")

        assert matches[0].file_path == "Sources/App.swift"

    def test_invalid_regex_rule_is_skipped(self):
        broken = ViolationRule(id="broken", severity="error", pattern="(unclosed", description="bad")
        detector = ViolationDetector([broken])

        assert detector.detect("(unclosed") == []

    def test_has_blocking(self, detector):
        critical = dynamic_rule("auto-crit", "HBCrit", severity="critical")
        warning = dynamic_rule("auto-warn", "HBWarn")

        assert has_blocking(detector.detect("HBCrit", [critical]))
        assert not has_blocking(detector.detect("HBWarn", [warning]))
        assert not has_blocking([])
