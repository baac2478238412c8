"""
Detection Rules

The ordered registry of line-level detection rules for Solana/Anchor programs.

Each rule pairs a trigger pattern (a token that signals risk) with an
optional suppression pattern (a mitigating token on the same line, or the
absence of structural evidence in the lookahead window). Rules are stateless
and read only the ScanLine they are given plus the LookaheadWindow that
follows it. Positive evidence (signer checks, owner checks, checked math) is
reported to the session's EvidenceAccumulator while rules evaluate.
"""

import logging
import os
import re
from typing import Dict, Iterable, List, Optional, Sequence

from core.evidence import EvidenceAccumulator, EvidenceSignal
from core.scan_context import DEFAULT_LOOKAHEAD, LookaheadWindow, ScanLine
from core.severity import Finding, Severity

logger = logging.getLogger(__name__)


# ── Shared patterns ────────────────────────────────────────────────────

_RE_INVOKE = re.compile(r'\binvoke(?:_signed)?\s*\(')
_RE_PROGRAM_ID_CHECK = re.compile(r'require_keys_eq|\bkey\(\)\s*[!=]=')
_RE_IS_SIGNER = re.compile(r'\.is_signer\b')
_RE_CHECKED_MATH = re.compile(r'\bchecked_(?:add|sub|mul|div)\b|\bsaturating_\w+')


class DetectionRule:
    """
    Base class for a single detection rule.

    Subclasses set the class attributes and implement ``match`` (returns the
    matched fragment, or None when the trigger is absent). ``is_suppressed``
    and ``observe`` are optional hooks.
    """

    rule_id: str = ""
    title: str = ""
    severity: Severity = Severity.LOW
    message_template: str = ""
    lookahead: int = 0

    def match(self, line: ScanLine, window: LookaheadWindow) -> Optional[str]:
        raise NotImplementedError

    def is_suppressed(self, line: ScanLine, window: LookaheadWindow, fragment: str) -> bool:
        return False

    def observe(self, line: ScanLine) -> Iterable[EvidenceSignal]:
        """Positive evidence visible on *line*, independent of the trigger."""
        return ()

    def evaluate(self, line: ScanLine, window: LookaheadWindow, file_path: str) -> List[Finding]:
        fragment = self.match(line, window)
        if fragment is None or self.is_suppressed(line, window, fragment):
            return []
        return [self._finding(line, file_path, fragment)]

    def _finding(self, line: ScanLine, file_path: str, fragment: str) -> Finding:
        file_name = os.path.basename(file_path)
        message = self.message_template.format(
            file=file_name,
            line=line.line_number,
            fragment=fragment,
            function=line.function_name or "<module>",
        )
        return Finding(
            severity=self.severity,
            rule_id=self.rule_id,
            file_path=file_path,
            file_name=file_name,
            line_number=line.line_number,
            message=message,
            function_name=line.function_name,
            snippet=line.text[:200],
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.rule_id} [{self.severity.label}]>"


# ── CRITICAL ───────────────────────────────────────────────────────────

class MissingSignerCheckRule(DetectionRule):
    """Public instruction handlers with a sensitive verb and no is_signer check."""

    rule_id = "missing_signer_check"
    title = "Missing signer check"
    severity = Severity.CRITICAL
    message_template = (
        "Possible missing signer check near '{fragment}' in {file} (line {line})"
        " - verify is_signer validation exists"
    )

    SENSITIVE_VERBS = re.compile(r'^(?:process_|withdraw|transfer|mint|burn|close|update|initialize)')

    def match(self, line, window):
        if not line.is_public_declaration or not line.function_name:
            return None
        if self.SENSITIVE_VERBS.match(line.function_name):
            return line.function_name
        return None

    def is_suppressed(self, line, window, fragment):
        return 'is_signer' in line.text

    def observe(self, line):
        if _RE_IS_SIGNER.search(line.text):
            yield EvidenceSignal.SIGNER_CHECKS


class UncheckedCpiRule(DetectionRule):
    """invoke()/invoke_signed() without a program-ID check on the same line."""

    rule_id = "unchecked_cpi"
    title = "Unchecked CPI"
    severity = Severity.CRITICAL
    message_template = "Unchecked CPI call in {file} (line {line}) - validate program ID before invoke()"

    def match(self, line, window):
        found = _RE_INVOKE.search(line.text)
        return found.group(0) if found else None

    def is_suppressed(self, line, window, fragment):
        return bool(_RE_PROGRAM_ID_CHECK.search(line.text))


class LamportDrainRule(DetectionRule):
    """Balance zeroing or raw-deref lamport mutation."""

    rule_id = "lamport_drain"
    title = "Lamport drain"
    severity = Severity.CRITICAL
    message_template = "Potential lamport drain pattern in {file} (line {line}) - verify account balance protection"

    PATTERNS = (
        # **acct.lamports.borrow_mut() = 0;  **acct.try_borrow_mut_lamports()? = 0
        re.compile(r'lamports\b[\w.()?]*\s*=\s*0(?:u64)?\b'),
        # **from_account.try_borrow_mut_lamports()? -= amount
        re.compile(r'\*\*\s*from_account\b'),
    )

    def match(self, line, window):
        for pattern in self.PATTERNS:
            found = pattern.search(line.text)
            if found:
                return found.group(0)
        return None


# ── HIGH ───────────────────────────────────────────────────────────────

class UncheckedArithmeticRule(DetectionRule):
    """Raw + - * on financial values instead of checked/saturating math."""

    rule_id = "unchecked_arithmetic"
    title = "Unchecked arithmetic"
    severity = Severity.HIGH
    message_template = (
        "Unchecked arithmetic on '{fragment}' in {file} (line {line})"
        " - use checked_add/checked_sub/checked_mul"
    )

    FINANCIAL_OPERAND = re.compile(r'\b(amount|balance|price|fee|reward|supply)\s*[+\-*](?!>)')

    def match(self, line, window):
        found = self.FINANCIAL_OPERAND.search(line.text)
        return found.group(1) if found else None

    def is_suppressed(self, line, window, fragment):
        return bool(_RE_CHECKED_MATH.search(line.text))

    def observe(self, line):
        if _RE_CHECKED_MATH.search(line.text):
            yield EvidenceSignal.CHECKED_MATH


class UncheckedOwnerRule(DetectionRule):
    """Reads of an account's owner that are not compared against anything."""

    rule_id = "unchecked_owner"
    title = "Unchecked owner access"
    severity = Severity.HIGH
    message_template = "Possible unchecked owner access in {file} (line {line}) - validate account owner"

    OWNER_ACCESS = re.compile(r'\.owner\b')
    OWNER_COMPARISON = re.compile(r'require_keys_eq|==|!=|\bhas_one\b')
    OWNER_CONSTRAINT = re.compile(r'require_keys_eq.*owner|\bhas_one\s*=')

    def match(self, line, window):
        found = self.OWNER_ACCESS.search(line.text)
        return found.group(0) if found else None

    def is_suppressed(self, line, window, fragment):
        return bool(self.OWNER_COMPARISON.search(line.text))

    def observe(self, line):
        text = line.text
        if self.OWNER_CONSTRAINT.search(text) or (
            self.OWNER_ACCESS.search(text) and self.OWNER_COMPARISON.search(text)
        ):
            yield EvidenceSignal.OWNER_CHECKS


class UncheckedCpiReturnRule(DetectionRule):
    """invoke() whose Result is neither propagated nor bound."""

    rule_id = "unchecked_cpi_return"
    title = "Unchecked CPI return"
    severity = Severity.HIGH
    message_template = "Unchecked CPI return value in {file} (line {line}) - propagate invoke() errors with ?"

    RESULT_HANDLED = re.compile(r'\?|\blet\b|\breturn\b|\.map_err\s*\(|\.unwrap\s*\(|\.expect\s*\(')

    def match(self, line, window):
        found = _RE_INVOKE.search(line.text)
        return found.group(0) if found else None

    def is_suppressed(self, line, window, fragment):
        return bool(self.RESULT_HANDLED.search(line.text))


# ── MEDIUM ─────────────────────────────────────────────────────────────

class CpiReentrancyRule(DetectionRule):
    """State written to an account shortly after a CPI."""

    rule_id = "cpi_reentrancy"
    title = "Reentrancy via CPI"
    severity = Severity.MEDIUM
    message_template = (
        "Possible reentrancy: '{fragment}' mutated after CPI in {file} (line {line})"
        " - update state before invoke()"
    )

    ACCOUNT_FIELD_ASSIGNMENT = re.compile(
        r'\b((?:ctx\.accounts\.\w+|\w+_account)(?:\.\w+)+)\s*(?:[+\-*/]=|=(?![=>]))'
    )

    def __init__(self, lookahead: int = DEFAULT_LOOKAHEAD):
        self.lookahead = lookahead

    def match(self, line, window):
        if not _RE_INVOKE.search(line.text):
            return None
        for following in window.limit(self.lookahead):
            found = self.ACCOUNT_FIELD_ASSIGNMENT.search(following)
            if found:
                return found.group(1)
        return None


class TimestampDependenceRule(DetectionRule):
    """Clock reads inside value-moving or time-gated functions."""

    rule_id = "timestamp_dependence"
    title = "Timestamp dependence"
    severity = Severity.MEDIUM
    message_template = "Timestamp dependence in {function} in {file} (line {line}) - avoid clock for critical logic"

    CLOCK_READ = re.compile(r'\bClock::(?:get|from_account_info)\s*\(')
    SENSITIVE_FUNCTIONS = re.compile(r'transfer|withdraw|reward|vesting|unlock', re.IGNORECASE)

    def match(self, line, window):
        found = self.CLOCK_READ.search(line.text)
        if not found or not line.function_name:
            return None
        if self.SENSITIVE_FUNCTIONS.search(line.function_name):
            return found.group(0)
        return None


class UncheckedAccountCloseRule(DetectionRule):
    """Anchor `close = target` without an accompanying constraint."""

    rule_id = "unchecked_account_close"
    title = "Unchecked account close"
    severity = Severity.MEDIUM
    message_template = (
        "Unchecked account close in {file} (line {line})"
        " - add constraint to validate close authority"
    )

    CLOSE_ASSIGNMENT = re.compile(r'\bclose\s*=(?!=)')
    CLOSE_GUARD = re.compile(r'constraint|require')

    def match(self, line, window):
        found = self.CLOSE_ASSIGNMENT.search(line.text)
        return found.group(0) if found else None

    def is_suppressed(self, line, window, fragment):
        return bool(self.CLOSE_GUARD.search(line.text))


# ── LOW ────────────────────────────────────────────────────────────────

class SecurityTodoRule(DetectionRule):
    """TODO/FIXME/HACK/XXX markers that mention, or sit in, security code."""

    rule_id = "security_todo"
    title = "Security TODO"
    severity = Severity.LOW
    message_template = "{fragment} in security context in {file} (line {line})"

    MARKER = re.compile(r'(?://|/\*)\s*(TODO|FIXME|HACK|XXX)\b', re.IGNORECASE)
    SECURITY_TERMS = re.compile(r'security|auth|signer|owner|permission|validate|verify', re.IGNORECASE)

    def match(self, line, window):
        found = self.MARKER.search(line.text)
        if not found:
            return None
        if self.SECURITY_TERMS.search(line.text) or (
            line.function_name and self.SECURITY_TERMS.search(line.function_name)
        ):
            return found.group(1).upper()
        return None


class HardcodedAddressRule(DetectionRule):
    """Quoted base58 literals that look like Solana public keys."""

    rule_id = "hardcoded_address"
    title = "Hardcoded address"
    severity = Severity.LOW
    message_template = "Hardcoded Solana address in {file} (line {line}) - use declare_id! or constants"

    BASE58_LITERAL = re.compile(r'"([1-9A-HJ-NP-Za-km-z]{32,44})"')

    def match(self, line, window):
        comment = _line_comment_start(line.text)
        for found in self.BASE58_LITERAL.finditer(line.text):
            if comment is not None and found.start() >= comment:
                return None
            return found.group(1)
        return None


def _line_comment_start(text: str) -> Optional[int]:
    """Index of the first `//` outside a string literal, or None."""
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif text.startswith('//', index):
            return index
    return None


class MissingEventEmissionRule(DetectionRule):
    """Value-moving handlers declared without an emit!."""

    rule_id = "missing_event_emission"
    title = "Missing event emission"
    severity = Severity.LOW
    message_template = (
        "No event emitted in '{fragment}' in {file} (line {line})"
        " - emit an event for off-chain tracking"
    )

    EVENT_FUNCTIONS = re.compile(r'^(?:withdraw|transfer|mint|burn)')
    EMIT_CALL = re.compile(r'\bemit(?:_cpi)?!\s*\(')

    def match(self, line, window):
        if not line.is_public_declaration or not line.function_name:
            return None
        if self.EVENT_FUNCTIONS.match(line.function_name):
            return line.function_name
        return None

    def is_suppressed(self, line, window, fragment):
        return bool(self.EMIT_CALL.search(line.text))


# ── Registry ───────────────────────────────────────────────────────────

def default_rules(lookahead: int = DEFAULT_LOOKAHEAD) -> List[DetectionRule]:
    """The canonical rule table, in evaluation order."""
    return [
        MissingSignerCheckRule(),
        UncheckedCpiRule(),
        LamportDrainRule(),
        UncheckedArithmeticRule(),
        UncheckedOwnerRule(),
        UncheckedCpiReturnRule(),
        CpiReentrancyRule(lookahead=lookahead),
        TimestampDependenceRule(),
        UncheckedAccountCloseRule(),
        SecurityTodoRule(),
        HardcodedAddressRule(),
        MissingEventEmissionRule(),
    ]


class RuleRegistry:
    """Ordered, immutable set of detection rules."""

    def __init__(self, rules: Sequence[DetectionRule], disabled_rules: Iterable[str] = ()):
        known = {rule.rule_id for rule in rules}
        disabled = set(disabled_rules)
        unknown = sorted(disabled - known)
        if unknown:
            raise ValueError(f"Unknown rule id(s): {', '.join(unknown)}")

        self._all_rules = tuple(rules)
        self._rules = tuple(rule for rule in rules if rule.rule_id not in disabled)
        for rule_id in sorted(disabled):
            logger.info(f"Rule disabled by configuration: {rule_id}")

    @classmethod
    def default(cls, lookahead: int = DEFAULT_LOOKAHEAD, disabled_rules: Iterable[str] = ()) -> "RuleRegistry":
        return cls(default_rules(lookahead), disabled_rules)

    @property
    def rules(self) -> Sequence[DetectionRule]:
        return self._rules

    @property
    def all_rules(self) -> Sequence[DetectionRule]:
        return self._all_rules

    @property
    def window_size(self) -> int:
        """Largest lookahead any enabled rule needs."""
        return max((rule.lookahead for rule in self._rules), default=0)

    def get(self, rule_id: str) -> Optional[DetectionRule]:
        for rule in self._all_rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def is_enabled(self, rule_id: str) -> bool:
        return any(rule.rule_id == rule_id for rule in self._rules)

    def evaluate(
        self,
        line: ScanLine,
        window: LookaheadWindow,
        file_path: str,
        evidence: Optional[EvidenceAccumulator] = None,
    ) -> List[Finding]:
        """Run every enabled rule against one line, in table order."""
        if evidence is not None:
            # Evidence is independent of which rules are enabled
            for rule in self._all_rules:
                evidence.record_all(rule.observe(line))

        findings: List[Finding] = []
        for rule in self._rules:
            findings.extend(rule.evaluate(line, window, file_path))
        return findings

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {severity.value: 0 for severity in Severity}
        for rule in self._rules:
            counts[rule.severity.value] += 1
        return counts

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)
