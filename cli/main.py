"""
Main CLI implementation for SolScan.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from core.config_manager import DEFAULT_CONFIG_FILE, ConfigError, ConfigManager
from core.detection_rules import RuleRegistry
from core.report_generator import TOOL_NAME, TOOL_VERSION, ScanReport
from core.scan_engine import ScanSession
from core.severity import Severity
from utils.file_handler import FileHandler

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FINDINGS = 2

# Line prefix -> rich style used when rendering to a terminal
REPORT_STYLES = (
    ("[CRITICAL]", "bold red"),
    ("[HIGH]", "red"),
    ("[MEDIUM]", "yellow"),
    ("[LOW]", "cyan"),
    ("PASSED:", "bold green"),
    ("Top Fix:", "bold magenta"),
    ("No vulnerabilities detected", "green"),
    (f"{TOOL_NAME} Report", "bold"),
)


def setup_logging(verbose: bool) -> None:
    """Log to stderr so the report on stdout stays untouched."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solscan",
        description="SolScan: pattern-based security auditor for Solana smart contracts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  solscan programs/vault/src/lib.rs
  solscan programs/ --fail-on high
  solscan programs/ --format json > report.json
        """
    )
    parser.add_argument("path", nargs="?", help="Rust source file or directory to scan")
    parser.add_argument("--config", default=None, help=f"YAML config file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--format", choices=["text", "json"], default=None, help="Report format")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--fail-on",
        choices=[severity.value for severity in Severity],
        default=None,
        help="Exit with status 2 if any finding at or above this severity exists",
    )
    parser.add_argument("--list-rules", action="store_true", help="List detection rules and exit")
    parser.add_argument("--show-config", action="store_true", help="Show effective configuration and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"{TOOL_NAME} v{TOOL_VERSION}")
    return parser


class SolScanCLI:
    """Wires configuration, discovery, the scan session and rendering."""

    def __init__(self, config_manager: ConfigManager, console: Optional[Console] = None):
        self.config_manager = config_manager
        self.config = config_manager.config
        self.console = console or Console(highlight=False, no_color=not self.config.color)
        self.error_console = Console(stderr=True, highlight=False)

    def build_session(self) -> ScanSession:
        registry = RuleRegistry.default(
            lookahead=self.config.lookahead_window,
            disabled_rules=self.config.disabled_rules,
        )
        file_handler = FileHandler(
            extensions=self.config.normalized_extensions,
            exclude_dirs=self.config.exclude_dirs,
            max_file_size_bytes=self.config.max_file_size_bytes,
        )
        return ScanSession(
            registry=registry,
            file_handler=file_handler,
            attribution=self.config.attribution,
            parallel=self.config.parallel_scan,
            max_workers=self.config.max_workers,
        )

    def run_scan(self, path: str) -> int:
        session = self.build_session()
        try:
            report = session.run(path)
        except FileNotFoundError:
            self.error_console.print(f"[red]Error: Path not found: {escape(str(path))}[/red]")
            return EXIT_ERROR

        if report.files_scanned == 0 and report.skipped_files:
            self.error_console.print(f"[red]Error: No readable source files in {escape(str(path))}[/red]")
            return EXIT_ERROR

        self.emit_report(report)
        return self.exit_status(report)

    def emit_report(self, report: ScanReport) -> None:
        if self.config.report_format == "json":
            sys.stdout.write(json.dumps(report.to_dict(), indent=2, ensure_ascii=True) + "\n")
            return

        styled = Text()
        for line in report.render().splitlines(keepends=True):
            style = next((style for prefix, style in REPORT_STYLES if line.startswith(prefix)), None)
            styled.append(line, style=style)
        self.console.print(styled, soft_wrap=True, end="")

    def exit_status(self, report: ScanReport) -> int:
        if not self.config.fail_on:
            return EXIT_OK
        threshold = Severity.parse(self.config.fail_on)
        worst = report.worst_severity()
        if worst is not None and worst.at_least(threshold):
            return EXIT_FINDINGS
        return EXIT_OK

    def list_rules(self) -> None:
        registry = RuleRegistry.default(lookahead=self.config.lookahead_window)
        table = Table(title=f"{TOOL_NAME} Detection Rules")
        table.add_column("#", justify="right")
        table.add_column("Rule", style="cyan")
        table.add_column("Title")
        table.add_column("Severity")
        table.add_column("Enabled")

        for index, rule in enumerate(registry.all_rules, start=1):
            enabled = "yes" if rule.rule_id not in self.config.disabled_rules else "no"
            table.add_row(str(index), rule.rule_id, rule.title, rule.severity.label, enabled)

        self.console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the SolScan CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config_manager = ConfigManager(args.config or DEFAULT_CONFIG_FILE)
        if args.config and not config_manager.config_file.exists():
            raise ConfigError(f"Config file not found: {args.config}")

        overrides = {}
        if args.format:
            overrides["report_format"] = args.format
        if args.fail_on:
            overrides["fail_on"] = args.fail_on
        if args.no_color:
            overrides["color"] = False
        if overrides:
            config_manager.apply(overrides)
    except ConfigError as e:
        Console(stderr=True).print(f"[red]Configuration error: {escape(str(e))}[/red]")
        return EXIT_ERROR

    cli = SolScanCLI(config_manager)

    if args.show_config:
        config_manager.show_config()
        return EXIT_OK

    if args.list_rules:
        cli.list_rules()
        return EXIT_OK

    if not args.path:
        parser.print_usage(sys.stderr)
        return EXIT_ERROR

    return cli.run_scan(args.path)


if __name__ == "__main__":
    sys.exit(main())
