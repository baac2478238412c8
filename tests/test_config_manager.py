"""
Tests for the YAML configuration manager.
"""

import io

import pytest
import yaml
from rich.console import Console

from core.config_manager import ConfigError, ConfigManager, SolScanConfig


def quiet_console():
    return Console(file=io.StringIO(), width=200)


class TestSolScanConfig:
    """Defaults and validation."""

    def test_defaults(self):
        config = SolScanConfig()

        assert config.source_extensions == [".rs"]
        assert "target" in config.exclude_dirs
        assert config.lookahead_window == 3
        assert config.disabled_rules == []
        assert config.parallel_scan is False
        assert config.attribution == "cybersecurity experts"
        assert config.report_format == "text"
        assert config.fail_on is None
        config.validate()

    @pytest.mark.parametrize("field_name,value,message", [
        ("source_extensions", [], "source_extensions"),
        ("lookahead_window", -1, "lookahead_window"),
        ("max_workers", 0, "max_workers"),
        ("max_file_size_bytes", 0, "max_file_size_bytes"),
        ("report_format", "xml", "report_format"),
        ("fail_on", "urgent", "fail_on"),
        ("disabled_rules", ["no_such_rule"], "no_such_rule"),
    ])
    def test_invalid_values(self, field_name, value, message):
        config = SolScanConfig()
        setattr(config, field_name, value)

        with pytest.raises(ConfigError, match=message):
            config.validate()

    def test_normalized_extensions(self):
        config = SolScanConfig(source_extensions=["RS", ".Move"])
        assert config.normalized_extensions == [".rs", ".move"]

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestConfigManager:
    """Loading, applying and saving YAML config files."""

    def setup_method(self):
        self.console = quiet_console()

    def test_missing_file_uses_defaults(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "absent.yaml"), console=self.console)
        assert manager.config == SolScanConfig()

    def test_empty_file_uses_defaults(self, empty_config):
        manager = ConfigManager(str(empty_config), console=self.console)
        assert manager.config == SolScanConfig()

    def test_loads_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "lookahead_window: 5\n"
            "disabled_rules: security_todo\n"
            "attribution: the audit team\n"
            "parallel_scan: true\n",
            encoding="utf-8",
        )
        manager = ConfigManager(str(path), console=self.console)

        assert manager.config.lookahead_window == 5
        assert manager.config.disabled_rules == ["security_todo"]
        assert manager.config.attribution == "the audit team"
        assert manager.config.parallel_scan is True

    def test_unknown_keys_warn(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("colour_scheme: dark\n", encoding="utf-8")
        ConfigManager(str(path), console=self.console)

        assert "Ignoring unknown config key 'colour_scheme'" in self.console.file.getvalue()

    def test_invalid_yaml_warns_and_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("lookahead_window: [1, 2\n", encoding="utf-8")
        manager = ConfigManager(str(path), console=self.console)

        assert manager.config == SolScanConfig()
        assert "Could not load config file" in self.console.file.getvalue()

    def test_non_mapping_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="mapping"):
            ConfigManager(str(path), console=self.console)

    def test_invalid_value_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("disabled_rules: [bogus_rule]\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="bogus_rule"):
            ConfigManager(str(path), console=self.console)

    @pytest.mark.parametrize("yaml_text,key", [
        ('lookahead_window: "3"\n', "lookahead_window"),
        ("fail_on: 3\n", "fail_on"),
        ("max_workers: true\n", "max_workers"),
        ("parallel_scan: yes please\n", "parallel_scan"),
        ("attribution: 42\n", "attribution"),
        ("disabled_rules: [1, 2]\n", "disabled_rules"),
        ("source_extensions: {rs: 1}\n", "source_extensions"),
    ])
    def test_wrong_value_types_are_rejected(self, tmp_path, yaml_text, key):
        path = tmp_path / "config.yaml"
        path.write_text(yaml_text, encoding="utf-8")

        with pytest.raises(ConfigError, match=key):
            ConfigManager(str(path), console=self.console)

    def test_single_string_becomes_list(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("exclude_dirs: build\nsource_extensions: .rs\n", encoding="utf-8")
        manager = ConfigManager(str(path), console=self.console)

        assert manager.config.exclude_dirs == ["build"]
        assert manager.config.source_extensions == [".rs"]

    def test_apply_overrides(self, config_manager):
        config_manager.apply({"report_format": "json", "fail_on": "high"})

        assert config_manager.config.report_format == "json"
        assert config_manager.config.fail_on == "high"

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        manager = ConfigManager(str(path), console=self.console)
        manager.apply({"max_workers": 8, "exclude_dirs": ["target"]})
        manager.save_config()

        saved = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert saved["max_workers"] == 8
        assert saved["exclude_dirs"] == ["target"]

        reloaded = ConfigManager(str(path), console=self.console)
        assert reloaded.config == manager.config

    def test_show_config(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "absent.yaml"), console=self.console)
        manager.show_config()
        output = self.console.file.getvalue()

        assert "SolScan Configuration" in output
        assert "lookahead_window" in output
        assert "absent.yaml" in output
