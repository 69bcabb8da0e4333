"""Tests for the TOML-backed SettingsManager."""
from __future__ import annotations

from settings import AppSettings, SettingsManager, resolve_workspace_dir


class TestSettingsManager:
    def test_defaults_without_file(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.settings == AppSettings()
        assert sm.settings.canvas.width == 1600
        assert sm.settings.history.max_entries == 50

    def test_ensure_file_complete_writes_file(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        sm.ensure_file_complete()
        assert (tmp_path / "settings.toml").exists()

    def test_round_trip(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        sm.settings.canvas.background_color = "#101010"
        sm.settings.slides.autosave_interval_ms = 5000
        sm.settings.export.format = "jpeg"
        sm.save()

        reloaded = SettingsManager(settings_dir=tmp_path)
        assert reloaded.settings == sm.settings

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        (tmp_path / "settings.toml").write_text("[history]\nmax_entries = 20\n", encoding="utf-8")
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.settings.history.max_entries == 20
        assert sm.settings.canvas.height == 900

    def test_int_accepted_for_float(self, tmp_path):
        (tmp_path / "settings.toml").write_text("[images]\nmax_initial_scale = 1\n", encoding="utf-8")
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.settings.images.max_initial_scale == 1.0
        assert isinstance(sm.settings.images.max_initial_scale, float)

    def test_wrong_type_ignored(self, tmp_path):
        (tmp_path / "settings.toml").write_text('[canvas]\nwidth = "wide"\n', encoding="utf-8")
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.settings.canvas.width == 1600

    def test_corrupted_file_uses_defaults(self, tmp_path):
        (tmp_path / "settings.toml").write_text("this is = = not toml", encoding="utf-8")
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.settings == AppSettings()

    def test_workspace_dir_default(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.get_workspace_dir().name == "SlideKit"

    def test_workspace_dir_configured(self, tmp_path):
        (tmp_path / "settings.toml").write_text(
            f"[general]\nworkspace_dir = '{tmp_path.as_posix()}/decks'\n", encoding="utf-8")
        sm = SettingsManager(settings_dir=tmp_path)
        assert sm.get_workspace_dir() == tmp_path / "decks"
        assert resolve_workspace_dir(sm.settings) == sm.get_workspace_dir()

    def test_decode_limit_round_trip(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        sm.settings.images.max_decode_pixels = 250_000_000
        sm.save()
        assert SettingsManager(settings_dir=tmp_path).settings.images.max_decode_pixels == 250_000_000
