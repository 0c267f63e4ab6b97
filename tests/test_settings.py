"""Tests for Settings."""

import json

from solarboat.config import DEFAULT_SETTINGS, Settings
from solarboat.core.terraform_parser import ParserMarkers


class TestSettingsLoad:
    def test_defaults_without_file(self, tmp_path):
        settings = Settings(tmp_path)
        assert settings.get("change_source") == "merge-base"
        assert settings.get("base_branch") == "main"
        assert settings.get("markers.backend") == "backend "
        assert settings.get("command_timeout") is None

    def test_user_values_merge_over_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text(json.dumps({
            "base_branch": "develop",
            "markers": {"file_suffix": ".hcl"},
        }))

        settings = Settings(tmp_path)

        assert settings.get("base_branch") == "develop"
        assert settings.get("markers.file_suffix") == ".hcl"
        assert settings.get("markers.module_block") == "module"

    def test_invalid_json_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text("{not json")
        settings = Settings(tmp_path)
        assert settings.as_dict() == DEFAULT_SETTINGS

    def test_non_object_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text("[1, 2]")
        assert Settings(tmp_path).as_dict() == DEFAULT_SETTINGS

    def test_defaults_are_not_mutated(self, tmp_path):
        settings = Settings(tmp_path)
        settings.set("markers.backend", "store ")
        settings.get("ignored_dirs").append("vendor")
        assert DEFAULT_SETTINGS["markers"]["backend"] == "backend "
        assert DEFAULT_SETTINGS["ignored_dirs"] == [".git", ".terraform"]


class TestSettingsAccess:
    def test_get_missing_returns_default(self, tmp_path):
        assert Settings(tmp_path).get("nope.deeper", 42) == 42

    def test_set_creates_nested_keys(self, tmp_path):
        settings = Settings(tmp_path)
        settings.set("extra.nested.key", True)
        assert settings.get("extra.nested.key") is True

    def test_save_round_trip(self, tmp_path):
        config_dir = tmp_path / "config"
        settings = Settings(config_dir)
        settings.set("parser", "hcl")
        settings.save()

        assert (config_dir / "settings.json").exists()
        assert Settings(config_dir).get("parser") == "hcl"

    def test_markers(self, tmp_path):
        settings = Settings(tmp_path)
        assert settings.markers() == ParserMarkers()

        settings.set("markers.config_block", "opentofu {")
        assert settings.markers().config_block == "opentofu {"

    def test_markers_not_an_object_uses_defaults(self, tmp_path):
        settings = Settings(tmp_path)
        settings.set("markers", "x")
        assert settings.markers() == ParserMarkers()

    def test_invalid_marker_entry_uses_default(self, tmp_path):
        settings = Settings(tmp_path)
        settings.set("markers.backend", 3)
        settings.set("markers.source", "")
        settings.set("markers.file_suffix", ".tofu")

        markers = settings.markers()

        assert markers.backend == ParserMarkers().backend
        assert markers.source == ParserMarkers().source
        assert markers.file_suffix == ".tofu"

    def test_ignored_dirs(self, tmp_path):
        settings = Settings(tmp_path)
        assert settings.ignored_dirs() == [".git", ".terraform"]

        settings.set("ignored_dirs", ["vendor"])
        assert settings.ignored_dirs() == ["vendor"]

    def test_ignored_dirs_string_uses_defaults(self, tmp_path):
        settings = Settings(tmp_path)
        settings.set("ignored_dirs", "vendor")
        assert settings.ignored_dirs() == [".git", ".terraform"]
