"""Tests for crawl config parsing."""
import json
from pathlib import Path

import pytest

from crawler_service.mobile.config import CrawlConfigError, load_json_file
from crawler_service.runner import load_crawl_config


def _write(tmp_path, payload) -> Path:
    path = tmp_path / "crawl.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


MINIMAL = {
    "capabilities": {"platformName": "iOS", "appium:automationName": "XCUITest"},
    "initial_username": "@alice",
}


def test_defaults_are_applied(tmp_path, monkeypatch):
    """Only capabilities and the initial username are required."""
    monkeypatch.delenv("GCS_BUCKET", raising=False)
    config = load_crawl_config(_write(tmp_path, MINIMAL))

    assert config.initial_username == "alice"
    assert config.appium_server_url == "http://127.0.0.1:4723"
    assert config.session_payload == {
        "capabilities": {"alwaysMatch": MINIMAL["capabilities"], "firstMatch": [{}]}
    }
    assert config.reels_range == (18, 24)
    assert config.comment_scrolls == 1
    assert config.handedness == "right"
    assert config.gemini_model == "gemini-2.5-flash"
    assert config.gcs_bucket == "ig-reels-recordings"
    assert config.records_dir == Path("artifacts/records")
    assert config.log_level == "INFO"


def test_full_webdriver_payload_is_passed_through(tmp_path):
    """A payload that already has a capabilities key is used as-is."""
    payload = {"capabilities": {"alwaysMatch": {"platformName": "iOS"}, "firstMatch": [{}]}}
    config = load_crawl_config(_write(tmp_path, {**MINIMAL, "capabilities": payload}))
    assert config.session_payload == payload


def test_null_comment_scrolls_selects_formula(tmp_path):
    """comment_scrolls: null means scroll by comment count."""
    config = load_crawl_config(_write(tmp_path, {**MINIMAL, "comment_scrolls": None, "log_level": "debug"}))
    assert config.comment_scrolls is None
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"initial_username": ""}, "initial_username"),
        ({"reels_range": [24, 18]}, "reels_range"),
        ({"reels_range": [5]}, "reels_range"),
        ({"comment_scrolls": -1}, "comment_scrolls"),
        ({"handedness": "both"}, "handedness"),
        ({"gemini_model": "gpt-4"}, "gemini_model"),
        ({"capabilities": {}}, "capabilities"),
        ({"log_level": "LOUD"}, "log_level"),
    ],
)
def test_invalid_fields_are_rejected(tmp_path, overrides, field):
    """Bad values raise CrawlConfigError naming the field."""
    with pytest.raises(CrawlConfigError, match=field):
        load_crawl_config(_write(tmp_path, {**MINIMAL, **overrides}))


def test_missing_required_key(tmp_path):
    """A config without initial_username fails fast."""
    with pytest.raises(CrawlConfigError, match="initial_username"):
        load_crawl_config(_write(tmp_path, {"capabilities": MINIMAL["capabilities"]}))


def test_load_json_file_errors(tmp_path):
    """Missing files, directories and non-object JSON are rejected."""
    with pytest.raises(FileNotFoundError):
        load_json_file(tmp_path / "missing.json")
    with pytest.raises(IsADirectoryError):
        load_json_file(tmp_path)
    bad = tmp_path / "list.json"
    bad.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(CrawlConfigError):
        load_json_file(bad)
