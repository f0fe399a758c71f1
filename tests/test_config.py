"""Tests for proposal_site.config — settings from env, YAML and dicts."""

from pathlib import Path

import pytest

from proposal_site.config import SiteSettings
from proposal_site.errors import ConfigError, ErrorCategory


class TestSiteSettings:
    """Defaults, environment and validation."""

    def test_defaults(self):
        settings = SiteSettings()
        assert settings.output_dir == Path("build")
        assert settings.include_patterns == ["pep-*.rst", "pep-*.txt"]
        assert settings.color_scheme == "auto"
        assert settings.max_workers == 4
        assert settings.write_report is True

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("PROPOSAL_SITE_SITE_TITLE", "My PEPs")
        monkeypatch.setenv("PROPOSAL_SITE_MAX_WORKERS", "2")
        settings = SiteSettings()
        assert settings.site_title == "My PEPs"
        assert settings.max_workers == 2

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("PROPOSAL_SITE_COLOR_SCHEME=dark\n")
        assert SiteSettings().color_scheme == "dark"

    def test_log_level_is_normalized(self):
        assert SiteSettings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize("data", [
        {"max_workers": 0},
        {"color_scheme": "sepia"},
        {"log_level": "LOUD"},
        {"include_patterns": []},
    ])
    def test_invalid_values_raise_config_error(self, data):
        with pytest.raises(ConfigError) as excinfo:
            SiteSettings.from_dict(data)
        assert excinfo.value.category is ErrorCategory.CONFIG

    def test_to_dict_is_json_friendly(self):
        data = SiteSettings(source_dir=Path("peps")).to_dict()
        assert data["source_dir"] == "peps"
        assert data["theme_dir"] is None


class TestFromYaml:
    """YAML configuration files."""

    def test_relative_paths_resolve_against_file(self, tmp_path):
        config = tmp_path / "conf" / "site.yaml"
        config.parent.mkdir()
        config.write_text("source_dir: peps\noutput_dir: out\nsite_title: Docs\n")

        settings = SiteSettings.from_yaml(config)
        assert settings.source_dir == config.parent / "peps"
        assert settings.output_dir == config.parent / "out"
        assert settings.site_title == "Docs"

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        config = tmp_path / "site.yaml"
        config.write_text("max_workers: 2\nsite_title: Docs\n")

        settings = SiteSettings.from_yaml(config, max_workers=8, site_title=None)
        assert settings.max_workers == 8
        assert settings.site_title == "Docs"

    def test_empty_file_gives_defaults(self, tmp_path):
        config = tmp_path / "site.yaml"
        config.write_text("")
        assert SiteSettings.from_yaml(config).max_workers == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as excinfo:
            SiteSettings.from_yaml(tmp_path / "nope.yaml")
        assert excinfo.value.context.path.endswith("nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "site.yaml"
        config.write_text("source_dir: [unclosed\n")
        with pytest.raises(ConfigError):
            SiteSettings.from_yaml(config)

    def test_non_mapping(self, tmp_path):
        config = tmp_path / "site.yaml"
        config.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            SiteSettings.from_yaml(config)
