"""Tests for crawl run wiring and session cleanup."""
import json
from unittest.mock import MagicMock

import pytest

from crawler_service import runner
from crawler_service.mobile.appium_http_client import ElementNotFoundError
from crawler_service.mobile.instagram_crawler import CrawlStats

from .fakes import FakeUploader


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "crawl.json"
    payload = {
        "capabilities": {"platformName": "iOS"},
        "initial_username": "alice",
        "reels_range": [1, 1],
        "records_dir": str(tmp_path / "records"),
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def client():
    client = MagicMock()
    client.create_session.return_value = "session-123"
    return client


@pytest.fixture
def completion_client():
    completion = MagicMock()
    completion.total_cost = 0.0123456789
    return completion


class StubCrawler:
    instances = []

    def __init__(self, driver, synthesizer, analysis_service, record_store, uploader, **kwargs):
        self.driver = driver
        self.record_store = record_store
        self.uploader = uploader
        self.kwargs = kwargs
        StubCrawler.instances.append(self)

    def crawl(self, initial_username):
        return CrawlStats(profiles_visited=[initial_username, "bob"], reels_processed=1)


class FailingCrawler(StubCrawler):
    def crawl(self, initial_username):
        raise ElementNotFoundError(using="accessibility id", value="Reels")


def test_run_crawl_reports_result_and_closes_session(monkeypatch, config_path, client, completion_client, tmp_path):
    """A successful crawl returns its stats and deletes the session once."""
    StubCrawler.instances = []
    monkeypatch.setattr(runner, "InstagramCrawler", StubCrawler)
    uploader = FakeUploader()

    result = runner.run_crawl(config_path, client=client, completion_client=completion_client, uploader=uploader)

    assert result.session_id == "session-123"
    assert result.initial_username == "alice"
    assert result.profiles_visited == ("alice", "bob")
    assert result.reels_processed == 1
    assert result.total_cost == 0.012346
    client.create_session.assert_called_once_with(
        {"capabilities": {"alwaysMatch": {"platformName": "iOS"}, "firstMatch": [{}]}}
    )
    client.delete_session.assert_called_once_with()

    (crawler,) = StubCrawler.instances
    assert crawler.driver is client
    assert crawler.uploader is uploader
    assert crawler.record_store.records_dir == tmp_path / "records"
    assert crawler.kwargs["reels_range"] == (1, 1)
    assert crawler.kwargs["comment_scrolls"] == 1
    assert crawler.kwargs["handedness"] == "right"


def test_run_crawl_closes_session_on_failure(monkeypatch, config_path, client, completion_client):
    """A fatal crawl error still deletes the session exactly once and propagates."""
    monkeypatch.setattr(runner, "InstagramCrawler", FailingCrawler)

    with pytest.raises(ElementNotFoundError):
        runner.run_crawl(config_path, client=client, completion_client=completion_client, uploader=FakeUploader())

    client.delete_session.assert_called_once_with()


def test_invalid_config_never_opens_a_session(tmp_path, client, completion_client):
    """Config errors are raised before any device session exists."""
    path = tmp_path / "crawl.json"
    path.write_text(json.dumps({"capabilities": {"platformName": "iOS"}}), encoding="utf-8")

    with pytest.raises(runner.CrawlConfigError):
        runner.run_crawl(path, client=client, completion_client=completion_client, uploader=FakeUploader())

    client.create_session.assert_not_called()
    client.delete_session.assert_not_called()


def test_package_exports_run_crawl_lazily():
    """The package root exposes the runner entry point."""
    import crawler_service

    assert crawler_service.run_crawl is runner.run_crawl
