"""
Report assembly and rendering for SolScan results.

The assembler turns the per-tier finding lists and the evidence snapshot of a
scan session into a ScanReport. Rendering is deterministic: the same input
always yields byte-identical text (no timestamps, fixed ordering).
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence

from core.evidence import EvidenceSignal
from core.remediation import remediation_for
from core.severity import Finding, Severity


TOOL_NAME = "SolScan"
TOOL_VERSION = "1.0"
DEFAULT_ATTRIBUTION = "cybersecurity experts"
SEPARATOR = "-" * 35
MAX_TOP_FIXES = 2

# PASSED statements, in the order they are listed
PASSED_STATEMENTS = (
    (EvidenceSignal.SIGNER_CHECKS, "Signer checks (is_signer) found in codebase"),
    (EvidenceSignal.OWNER_CHECKS, "Owner validation found in codebase"),
    (EvidenceSignal.CHECKED_MATH, "Checked arithmetic in use"),
)
NO_CRITICAL_STATEMENT = "No critical vulnerabilities detected"


@dataclass
class ScanReport:
    """Terminal artifact of a scan session."""
    target: str
    files_scanned: int
    findings: Dict[Severity, List[Finding]]
    passed: List[str] = field(default_factory=list)
    top_fixes: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    attribution: str = DEFAULT_ATTRIBUTION

    def tier(self, severity: Severity) -> List[Finding]:
        return self.findings.get(severity, [])

    def count(self, severity: Severity) -> int:
        return len(self.tier(severity))

    @property
    def total_findings(self) -> int:
        return sum(self.count(severity) for severity in Severity)

    @property
    def has_findings(self) -> bool:
        return self.total_findings > 0

    def all_findings(self) -> List[Finding]:
        """Every finding, tier by tier in CRITICAL..LOW order."""
        return [finding for severity in Severity for finding in self.tier(severity)]

    def worst_severity(self) -> Optional[Severity]:
        for severity in Severity:
            if self.tier(severity):
                return severity
        return None

    def render(self) -> str:
        """Render the plain-text report."""
        lines = [
            f"{TOOL_NAME} Report -- {self.target}",
            SEPARATOR,
            f"Scanning {self.files_scanned} file(s)...",
            "",
        ]

        for severity in Severity:
            findings = self.tier(severity)
            if not findings:
                continue
            lines.append(f"[{severity.label}] ({len(findings)})")
            lines.extend(f"  * {finding.message}" for finding in findings)
            lines.append("")

        if not self.has_findings:
            lines.append(f"No vulnerabilities detected in {self.files_scanned} file(s).")
            lines.append("")

        if self.passed:
            lines.append("PASSED:")
            lines.extend(f"  * {statement}" for statement in self.passed)
            lines.append("")

        if self.top_fixes:
            lines.append("Top Fix:")
            lines.extend(f"-> {fix}" for fix in self.top_fixes)
            lines.append("")

        lines.append(SEPARATOR)
        lines.append(f"by {self.attribution} | {TOOL_NAME} v{TOOL_VERSION}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": TOOL_NAME,
            "version": TOOL_VERSION,
            "target": self.target,
            "files_scanned": self.files_scanned,
            "skipped_files": list(self.skipped_files),
            "counts": {severity.value: self.count(severity) for severity in Severity},
            "findings": {
                severity.value: [finding.to_dict() for finding in self.tier(severity)]
                for severity in Severity
            },
            "passed": list(self.passed),
            "top_fixes": list(self.top_fixes),
        }


class ReportAssembler:
    """Builds a ScanReport from classified findings and evidence."""

    def __init__(self, attribution: str = DEFAULT_ATTRIBUTION, max_top_fixes: int = MAX_TOP_FIXES):
        self.attribution = attribution
        self.max_top_fixes = max_top_fixes

    def assemble(
        self,
        findings_by_tier: Mapping[Severity, Sequence[Finding]],
        evidence: FrozenSet[EvidenceSignal],
        *,
        files_scanned: int,
        target: str,
        skipped_files: Sequence[str] = (),
    ) -> ScanReport:
        findings = {
            severity: [self._with_remediation(item) for item in findings_by_tier.get(severity, ())]
            for severity in Severity
        }

        return ScanReport(
            target=target,
            files_scanned=files_scanned,
            findings=findings,
            passed=self._passed_statements(findings, evidence, files_scanned),
            top_fixes=self._top_fixes(findings),
            skipped_files=list(skipped_files),
            attribution=self.attribution,
        )

    @staticmethod
    def _with_remediation(finding: Finding) -> Finding:
        if finding.remediation is not None:
            return finding
        hint = remediation_for(finding.rule_id)
        if hint is None:
            return finding
        return replace(finding, remediation=hint)

    @staticmethod
    def _passed_statements(
        findings: Mapping[Severity, Sequence[Finding]],
        evidence: FrozenSet[EvidenceSignal],
        files_scanned: int,
    ) -> List[str]:
        passed = [statement for signal, statement in PASSED_STATEMENTS if signal in evidence]
        # Nothing scanned means nothing was shown to be free of critical issues
        if files_scanned > 0 and not findings.get(Severity.CRITICAL):
            passed.append(NO_CRITICAL_STATEMENT)
        return passed

    def _top_fixes(self, findings: Mapping[Severity, Sequence[Finding]]) -> List[str]:
        candidates = list(findings.get(Severity.CRITICAL, ())) + list(findings.get(Severity.HIGH, ()))
        return [self._fix_line(finding) for finding in candidates[:self.max_top_fixes]]

    @staticmethod
    def _fix_line(finding: Finding) -> str:
        action = finding.remediation or remediation_for(finding.rule_id) or finding.message
        return f"{action} ({finding.file_name}:{finding.line_number})"
