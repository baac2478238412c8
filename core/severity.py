"""
Severity tiers, the Finding record, and the classifier that buckets findings.

Findings are appended to their tier strictly in discovery order (file order,
then line order, then rule-table order for the same line).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class Severity(Enum):
    """Severity tier, declared in descending order of urgency."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for CRITICAL up to 3 for LOW."""
        return _RANKS[self]

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse a tier name case-insensitively ('high', 'HIGH')."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown severity: {value!r}") from None

    def at_least(self, threshold: "Severity") -> bool:
        """True when this tier is as urgent as *threshold* or more."""
        return self.rank <= threshold.rank


_RANKS = {severity: index for index, severity in enumerate(Severity)}


@dataclass(frozen=True)
class Finding:
    """A single rule firing on one line of one file."""
    severity: Severity
    rule_id: str
    file_path: str
    file_name: str
    line_number: int
    message: str
    function_name: Optional[str] = None
    snippet: str = ""
    remediation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


class SeverityClassifier:
    """Append-only per-tier finding lists."""

    def __init__(self):
        self._tiers: Dict[Severity, List[Finding]] = {severity: [] for severity in Severity}

    def classify(self, finding: Finding) -> None:
        self._tiers[finding.severity].append(finding)

    def classify_all(self, findings: Iterable[Finding]) -> None:
        for finding in findings:
            self.classify(finding)

    def count(self, severity: Severity) -> int:
        return len(self._tiers[severity])

    @property
    def total(self) -> int:
        return sum(len(items) for items in self._tiers.values())

    def by_tier(self) -> Dict[Severity, List[Finding]]:
        """Copy of the tier lists, keyed in CRITICAL..LOW order."""
        return {severity: list(self._tiers[severity]) for severity in Severity}
