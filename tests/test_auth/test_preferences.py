"""Tests for Preferences persistence."""

from reddit_desk.auth.preferences import Preferences


def test_defaults_when_file_missing(tmp_path):
    prefs = Preferences.load(tmp_path / "missing.json")
    assert prefs.dark_mode is True
    assert prefs.default_feed == "home"
    assert prefs.sort == "hot"


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "preferences.json"
    Preferences(dark_mode=False, sort="new").save(path)

    loaded = Preferences.load(path)
    assert loaded.dark_mode is False
    assert loaded.sort == "new"


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text("{broken", encoding="utf-8")
    assert Preferences.load(path) == Preferences()
