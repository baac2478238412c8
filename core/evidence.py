"""
Evidence Accumulator

Tracks positive evidence seen anywhere during a scan session (signer checks,
owner checks, checked arithmetic). Signals are monotonic: once recorded they
stay set until the accumulator is discarded at the end of the session.
"""

from enum import Enum
from typing import FrozenSet, Iterable, Set


class EvidenceSignal(Enum):
    """Positive-evidence signals that back the PASSED section."""
    SIGNER_CHECKS = "signer_checks_observed"
    OWNER_CHECKS = "owner_checks_observed"
    CHECKED_MATH = "checked_math_observed"


class EvidenceAccumulator:
    """Per-session set of observed evidence signals."""

    def __init__(self):
        self._signals: Set[EvidenceSignal] = set()

    def record(self, signal: EvidenceSignal) -> None:
        self._signals.add(signal)

    def record_all(self, signals: Iterable[EvidenceSignal]) -> None:
        for signal in signals:
            self.record(signal)

    def has(self, signal: EvidenceSignal) -> bool:
        return signal in self._signals

    def merge(self, other: "EvidenceAccumulator") -> None:
        """Fold another accumulator's signals into this one."""
        self._signals.update(other.snapshot())

    def snapshot(self) -> FrozenSet[EvidenceSignal]:
        return frozenset(self._signals)

    def __len__(self) -> int:
        return len(self._signals)
