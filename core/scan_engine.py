"""
Scan Engine

Drives one scan session: each file is scanned into an independent
FileScanResult (its findings plus the evidence it produced), and results are
merged in discovery order into the session's classifier and accumulator.
Because per-file results are merged in order, scanning files on a thread pool
produces exactly the same report as scanning them one by one.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from core.detection_rules import RuleRegistry
from core.evidence import EvidenceAccumulator
from core.report_generator import DEFAULT_ATTRIBUTION, ReportAssembler, ScanReport
from core.scan_context import ContextTracker, LookaheadWindow
from core.severity import Finding, SeverityClassifier
from utils.file_handler import FileHandler

logger = logging.getLogger(__name__)


@dataclass
class FileScanResult:
    """Findings and evidence produced by scanning one file."""
    file_path: str
    findings: List[Finding] = field(default_factory=list)
    evidence: EvidenceAccumulator = field(default_factory=EvidenceAccumulator)
    line_count: int = 0
    error: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.error is not None


def scan_lines(
    lines: Sequence[str],
    file_path: str,
    registry: RuleRegistry,
    evidence: Optional[EvidenceAccumulator] = None,
) -> List[Finding]:
    """Run the registry over already-loaded lines of one file."""
    tracker = ContextTracker(lines)
    trimmed = tracker.trimmed_lines
    window_size = registry.window_size

    findings: List[Finding] = []
    for index, line in enumerate(tracker):
        window = LookaheadWindow.following(trimmed, index, window_size)
        findings.extend(registry.evaluate(line, window, file_path, evidence))
    return findings


class ScanSession:
    """One invocation of the scanner over a set of files."""

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        file_handler: Optional[FileHandler] = None,
        attribution: str = DEFAULT_ATTRIBUTION,
        parallel: bool = False,
        max_workers: int = 4,
    ):
        self.registry = registry or RuleRegistry.default()
        self.file_handler = file_handler or FileHandler()
        self.assembler = ReportAssembler(attribution=attribution)
        self.parallel = parallel
        self.max_workers = max(1, max_workers)
        self.reset()

    def reset(self) -> None:
        """Drop all findings and evidence gathered so far."""
        self.classifier = SeverityClassifier()
        self.evidence = EvidenceAccumulator()
        self.files_scanned = 0
        self.skipped_files: List[str] = []

    def scan_file(self, file_path: Union[str, Path]) -> FileScanResult:
        """Scan a single file without touching session state."""
        path_str = str(file_path)
        result = FileScanResult(file_path=path_str)

        try:
            lines = self.file_handler.read_source_lines(file_path)
        except UnicodeDecodeError as e:
            result.error = f"not valid UTF-8 text ({e.reason})"
            return result
        except OSError as e:
            result.error = str(e)
            return result

        result.line_count = len(lines)
        result.findings = scan_lines(lines, path_str, self.registry, result.evidence)
        return result

    def merge(self, result: FileScanResult) -> None:
        """Fold one file's result into the session aggregates."""
        if result.skipped:
            logger.warning(f"Skipping {result.file_path}: {result.error}")
            self.skipped_files.append(result.file_path)
            return

        self.files_scanned += 1
        self.classifier.classify_all(result.findings)
        self.evidence.merge(result.evidence)
        logger.debug(f"{result.file_path}: {result.line_count} line(s), {len(result.findings)} finding(s)")

    def scan_files(self, file_paths: Sequence[Union[str, Path]]) -> None:
        if self.parallel and len(file_paths) > 1:
            workers = min(self.max_workers, len(file_paths))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map() yields in submission order, which keeps discovery order
                for result in executor.map(self.scan_file, file_paths):
                    self.merge(result)
        else:
            for file_path in file_paths:
                self.merge(self.scan_file(file_path))

    def report(self, target: str) -> ScanReport:
        return self.assembler.assemble(
            self.classifier.by_tier(),
            self.evidence.snapshot(),
            files_scanned=self.files_scanned,
            target=target,
            skipped_files=self.skipped_files,
        )

    def run(self, target: Union[str, Path]) -> ScanReport:
        """Discover sources under *target*, scan them, and build the report."""
        sources = self.file_handler.discover_sources(target)
        logger.info(f"Scanning {len(sources)} file(s) under {target}")
        self.reset()
        self.scan_files(sources)
        return self.report(str(target))
