"""Tests for .env loading."""
import logging
import os
from unittest.mock import patch

from crawler_service.mobile import env
from crawler_service.mobile.env import _parse_dotenv_line, crawler_env_status, ensure_dotenv_loaded, load_dotenv


def test_parse_dotenv_line_variants():
    """Comments, exports and quotes are handled."""
    assert _parse_dotenv_line("# comment") is None
    assert _parse_dotenv_line("") is None
    assert _parse_dotenv_line("NOEQUALS") is None
    assert _parse_dotenv_line("export GCS_BUCKET=reels") == ("GCS_BUCKET", "reels")
    assert _parse_dotenv_line('GEMINI_API_KEY="abc 123"') == ("GEMINI_API_KEY", "abc 123")
    assert _parse_dotenv_line("GCP_PROJECT_REGION='us-east1'") == ("GCP_PROJECT_REGION", "us-east1")


def test_load_dotenv_does_not_override_existing(tmp_path):
    """Values already in the environment win unless override is set."""
    dotenv = tmp_path / ".env"
    dotenv.write_text("CRAWLER_TEST_A=from-file\nCRAWLER_TEST_B=from-file\n", encoding="utf-8")
    with patch.dict(os.environ, {"CRAWLER_TEST_A": "from-env"}, clear=False):
        loaded = load_dotenv(path=dotenv)
        assert loaded == {"CRAWLER_TEST_B": "from-file"}
        assert os.environ["CRAWLER_TEST_A"] == "from-env"
        assert os.environ["CRAWLER_TEST_B"] == "from-file"

        load_dotenv(path=dotenv, override=True)
        assert os.environ["CRAWLER_TEST_A"] == "from-file"


def test_missing_dotenv_is_ignored(tmp_path):
    """A missing .env file loads nothing."""
    assert load_dotenv(path=tmp_path / "absent.env") == {}


def test_ensure_dotenv_loaded_reports_crawler_keys(tmp_path, monkeypatch, caplog):
    """The first load logs the crawler keys it provided; later calls are no-ops."""
    monkeypatch.setattr(env, "_DOTENV_LOADED", False)
    dotenv = tmp_path / ".env"
    dotenv.write_text("GEMINI_API_KEY=abc\nGCS_BUCKET=reels\nUNRELATED=x\n", encoding="utf-8")
    clean = {"GCP_PROJECT_ID": "", "GEMINI_API_KEY": "", "GCS_BUCKET": "", "UNRELATED": ""}
    with patch.dict(os.environ, clean, clear=False):
        for key in clean:
            del os.environ[key]
        with caplog.at_level(logging.INFO):
            loaded = ensure_dotenv_loaded(path=dotenv)
        assert loaded == {"GEMINI_API_KEY": "abc", "GCS_BUCKET": "reels", "UNRELATED": "x"}
        assert "loaded GCS_BUCKET, GEMINI_API_KEY from .env" in caplog.text
        assert "neither GCP_PROJECT_ID nor GEMINI_API_KEY" not in caplog.text
        assert crawler_env_status()["GEMINI_API_KEY"] is True
        assert crawler_env_status()["GCP_PROJECT_ID"] is False
        assert ensure_dotenv_loaded(path=dotenv) == {}


def test_ensure_dotenv_loaded_warns_without_gemini_credentials(tmp_path, monkeypatch, caplog):
    """With no Vertex project and no API key a warning is logged."""
    monkeypatch.setattr(env, "_DOTENV_LOADED", False)
    with patch.dict(os.environ, {"GCP_PROJECT_ID": " ", "GEMINI_API_KEY": ""}, clear=False):
        with caplog.at_level(logging.WARNING):
            assert ensure_dotenv_loaded(path=tmp_path / "absent.env") == {}
    assert "neither GCP_PROJECT_ID nor GEMINI_API_KEY is set" in caplog.text
