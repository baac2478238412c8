"""
Tests for severity tiers and the severity classifier.
"""

import pytest

from core.severity import Finding, Severity, SeverityClassifier


def make_finding(severity, line_number=1, rule_id="rule", file_name="lib.rs"):
    return Finding(
        severity=severity,
        rule_id=rule_id,
        file_path=f"src/{file_name}",
        file_name=file_name,
        line_number=line_number,
        message=f"{rule_id} in {file_name} (line {line_number})",
    )


class TestSeverity:
    """Tier ordering and parsing."""

    def test_tiers_are_declared_most_urgent_first(self):
        assert list(Severity) == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]
        assert [s.rank for s in Severity] == [0, 1, 2, 3]

    def test_labels(self):
        assert Severity.CRITICAL.label == "CRITICAL"
        assert Severity.LOW.label == "LOW"

    @pytest.mark.parametrize("value,expected", [
        ("critical", Severity.CRITICAL),
        ("HIGH", Severity.HIGH),
        ("  Medium ", Severity.MEDIUM),
        ("low", Severity.LOW),
    ])
    def test_parse(self, value, expected):
        assert Severity.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown severity"):
            Severity.parse("urgent")

    def test_at_least(self):
        assert Severity.CRITICAL.at_least(Severity.HIGH)
        assert Severity.HIGH.at_least(Severity.HIGH)
        assert not Severity.MEDIUM.at_least(Severity.HIGH)
        assert Severity.LOW.at_least(Severity.LOW)


class TestFinding:
    """The immutable finding record."""

    def test_to_dict_uses_severity_value(self):
        data = make_finding(Severity.HIGH, line_number=7).to_dict()

        assert data["severity"] == "high"
        assert data["line_number"] == 7
        assert data["remediation"] is None

    def test_findings_are_frozen(self):
        finding = make_finding(Severity.LOW)
        with pytest.raises(AttributeError):
            finding.line_number = 2


class TestSeverityClassifier:
    """Bucketing findings while preserving discovery order."""

    def setup_method(self):
        self.classifier = SeverityClassifier()

    def test_empty(self):
        assert self.classifier.total == 0
        assert self.classifier.by_tier() == {severity: [] for severity in Severity}

    def test_buckets_by_severity(self):
        self.classifier.classify_all([
            make_finding(Severity.LOW, 1),
            make_finding(Severity.CRITICAL, 2),
            make_finding(Severity.LOW, 3),
        ])

        assert self.classifier.count(Severity.LOW) == 2
        assert self.classifier.count(Severity.CRITICAL) == 1
        assert self.classifier.count(Severity.HIGH) == 0
        assert self.classifier.total == 3

    def test_preserves_insertion_order_within_tier(self):
        findings = [make_finding(Severity.HIGH, n) for n in (9, 2, 5)]
        self.classifier.classify_all(findings)

        assert [f.line_number for f in self.classifier.by_tier()[Severity.HIGH]] == [9, 2, 5]

    def test_by_tier_is_a_copy(self):
        self.classifier.classify(make_finding(Severity.MEDIUM))
        tiers = self.classifier.by_tier()
        tiers[Severity.MEDIUM].clear()

        assert self.classifier.count(Severity.MEDIUM) == 1

    def test_by_tier_key_order(self):
        assert list(self.classifier.by_tier()) == list(Severity)
