#!/usr/bin/env python3
"""
Configuration Manager for SolScan

Loads scanner settings from a YAML file (default ~/.solscan/config.yaml),
falling back to built-in defaults when no file exists.
"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

from core.detection_rules import default_rules
from core.report_generator import DEFAULT_ATTRIBUTION
from core.scan_context import DEFAULT_LOOKAHEAD

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "~/.solscan/config.yaml"


class ConfigError(ValueError):
    pass


_FIELD_TYPES = {
    "source_extensions": list,
    "exclude_dirs": list,
    "max_file_size_bytes": int,
    "lookahead_window": int,
    "disabled_rules": list,
    "parallel_scan": bool,
    "max_workers": int,
    "attribution": str,
    "report_format": str,
    "color": bool,
    "fail_on": str,
}

_TYPE_NAMES = {list: "a list", int: "an integer", bool: "true or false", str: "a string"}


@dataclass
class SolScanConfig:
    """Main configuration for SolScan."""

    # Discovery settings
    source_extensions: List[str] = field(default_factory=lambda: [".rs"])
    exclude_dirs: List[str] = field(default_factory=lambda: ["target", ".git", "node_modules", ".anchor"])
    max_file_size_bytes: int = 5_000_000

    # Rule settings
    lookahead_window: int = DEFAULT_LOOKAHEAD  # lines checked after a CPI for state writes
    disabled_rules: List[str] = field(default_factory=list)

    # Execution settings
    parallel_scan: bool = False
    max_workers: int = 4

    # Reporting settings
    attribution: str = DEFAULT_ATTRIBUTION
    report_format: str = "text"  # text, json
    color: bool = True
    fail_on: Optional[str] = None  # critical, high, medium, low

    def validate(self) -> None:
        """Raise ConfigError on values the scanner cannot work with."""
        self._check_types()

        if not self.source_extensions:
            raise ConfigError("source_extensions must list at least one extension")
        if self.lookahead_window < 0:
            raise ConfigError("lookahead_window must be >= 0")
        if self.max_workers < 1:
            raise ConfigError("max_workers must be >= 1")
        if self.max_file_size_bytes <= 0:
            raise ConfigError("max_file_size_bytes must be positive")
        if self.report_format not in ("text", "json"):
            raise ConfigError(f"Unsupported report_format: {self.report_format}")
        if self.fail_on is not None and self.fail_on.lower() not in ("critical", "high", "medium", "low"):
            raise ConfigError(f"Unsupported fail_on severity: {self.fail_on}")

        known = {rule.rule_id for rule in default_rules()}
        unknown = sorted(set(self.disabled_rules) - known)
        if unknown:
            raise ConfigError(f"Unknown rule id(s) in disabled_rules: {', '.join(unknown)}")

    def _check_types(self) -> None:
        for key, expected in _FIELD_TYPES.items():
            value = getattr(self, key)
            if key == "fail_on" and value is None:
                continue
            # bool is an int subclass; reject it where a count is expected
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigError(
                    f"{key} must be {_TYPE_NAMES[expected]}, got {type(value).__name__}: {value!r}"
                )

        for key in ("source_extensions", "exclude_dirs", "disabled_rules"):
            if not all(isinstance(item, str) for item in getattr(self, key)):
                raise ConfigError(f"{key} must be a list of strings")

    @property
    def normalized_extensions(self) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in self.source_extensions]


class ConfigManager:
    """Manages SolScan configuration."""

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE, console: Optional[Console] = None):
        self.config_file = Path(config_file).expanduser()
        self.console = console or Console(stderr=True)
        self.config = SolScanConfig()

        self.load_config()

    def load_config(self) -> None:
        """Load configuration from file, keeping defaults for missing keys."""
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}, using defaults")
            return

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self.console.print(f"[yellow]Warning: Could not load config file: {e}[/yellow]")
            return

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {self.config_file}")

        self.apply(data)

    def apply(self, data: Dict[str, Any]) -> None:
        """Overlay known keys from *data* onto the current config."""
        for key, value in data.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)
            else:
                self.console.print(f"[yellow]Warning: Ignoring unknown config key '{key}'[/yellow]")

        for key in ("source_extensions", "exclude_dirs", "disabled_rules"):
            if isinstance(getattr(self.config, key), str):
                setattr(self.config, key, [getattr(self.config, key)])

        self.config.validate()

    def save_config(self) -> None:
        """Save current configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(asdict(self.config), f, default_flow_style=False, indent=2, sort_keys=True)
        self.console.print(f"[green]✓ Configuration saved to {self.config_file}[/green]")

    def show_config(self) -> None:
        """Display current configuration."""
        from rich.table import Table

        table = Table(title="SolScan Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        for key, value in asdict(self.config).items():
            if isinstance(value, list):
                value = ", ".join(str(item) for item in value) or "-"
            table.add_row(key, str(value))

        self.console.print(table)
        self.console.print(f"\n[bold cyan]Config File:[/bold cyan] {self.config_file}")
