"""
Process wiring for one crawl run.

Reads a crawl config JSON, builds every collaborator (Appium session,
interaction synthesizer, Gemini completion client, analysis service, Cloud
Storage uploader, record store) and runs the Instagram crawler. The Appium
session is always deleted, whether or not the crawl succeeds.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .analysis.completion import MODEL_PRICING, GeminiCompletionClient
from .analysis.media_analysis import MediaAnalysisService
from .mobile.appium_http_client import AppiumHTTPClient
from .mobile.config import (
    CrawlConfigError,
    as_choice,
    as_int_range,
    as_non_empty_str,
    load_json_file,
    require_key,
)
from .mobile.env import ensure_dotenv_loaded
from .mobile.gestures import HANDEDNESS
from .mobile.instagram_crawler import DEFAULT_REELS_RANGE, InstagramCrawler
from .mobile.interactions import InteractionSynthesizer
from .storage.gcs import GCSUploader, get_bucket_name
from .storage.record_store import JsonlRecordStore

logger = logging.getLogger(__name__)

DEFAULT_APPIUM_SERVER_URL = "http://127.0.0.1:4723"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_RECORDS_DIR = "artifacts/records"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class CrawlRunConfig:
    appium_server_url: str
    session_payload: dict[str, Any]
    initial_username: str
    reels_range: tuple[int, int]
    comment_scrolls: Optional[int]
    handedness: str
    gemini_model: str
    gcs_bucket: str
    records_dir: Path
    log_level: str


@dataclass(frozen=True)
class CrawlResult:
    session_id: str
    initial_username: str
    profiles_visited: tuple[str, ...]
    reels_processed: int
    total_cost: float


def _session_payload(capabilities: Any, *, context: str) -> dict[str, Any]:
    if not isinstance(capabilities, dict) or not capabilities:
        raise CrawlConfigError(f"{context}: 'capabilities' must be a non-empty object")
    if "capabilities" in capabilities:
        return capabilities
    return {"capabilities": {"alwaysMatch": capabilities, "firstMatch": [{}]}}


def _comment_scrolls(value: Any, *, context: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise CrawlConfigError(f"{context}: 'comment_scrolls' must be a non-negative integer or null")
    return value


def load_crawl_config(path: str | Path) -> CrawlRunConfig:
    context = str(path)
    raw = load_json_file(path)

    records_dir = raw.get("records_dir", DEFAULT_RECORDS_DIR)
    return CrawlRunConfig(
        appium_server_url=as_non_empty_str(
            raw.get("appium_server_url", DEFAULT_APPIUM_SERVER_URL),
            field="appium_server_url",
            context=context,
        ),
        session_payload=_session_payload(require_key(raw, "capabilities", context=context), context=context),
        initial_username=as_non_empty_str(
            require_key(raw, "initial_username", context=context),
            field="initial_username",
            context=context,
        ).lstrip("@"),
        reels_range=as_int_range(
            raw.get("reels_range", list(DEFAULT_REELS_RANGE)),
            field="reels_range",
            context=context,
        ),
        comment_scrolls=_comment_scrolls(raw.get("comment_scrolls", 1), context=context),
        handedness=as_choice(raw.get("handedness", "right"), field="handedness", context=context, choices=HANDEDNESS),
        gemini_model=as_choice(
            raw.get("gemini_model", DEFAULT_GEMINI_MODEL),
            field="gemini_model",
            context=context,
            choices=tuple(sorted(MODEL_PRICING)),
        ),
        gcs_bucket=as_non_empty_str(raw.get("gcs_bucket") or get_bucket_name(), field="gcs_bucket", context=context),
        records_dir=Path(as_non_empty_str(records_dir, field="records_dir", context=context)),
        log_level=as_choice(
            str(raw.get("log_level", "INFO")).upper(),
            field="log_level",
            context=context,
            choices=LOG_LEVELS,
        ),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def run_crawl(
    config_json_path: str | Path,
    *,
    client: Optional[AppiumHTTPClient] = None,
    completion_client: Optional[GeminiCompletionClient] = None,
    uploader: Optional[GCSUploader] = None,
    rng: Optional[random.Random] = None,
) -> CrawlResult:
    """
    Run one crawl described by `config_json_path`.

    `client`, `completion_client`, `uploader` and `rng` replace the collaborators
    that would otherwise be built from the config and environment.
    """
    ensure_dotenv_loaded()
    config = load_crawl_config(config_json_path)
    configure_logging(config.log_level)

    rng = rng or random.Random()
    completion_client = completion_client or GeminiCompletionClient(config.gemini_model)
    uploader = uploader or GCSUploader(config.gcs_bucket)
    client = client or AppiumHTTPClient(config.appium_server_url)

    session_id = client.create_session(config.session_payload)
    logger.info("[runner] appium session %s started for %s", session_id, config.initial_username)
    try:
        synthesizer = InteractionSynthesizer(client, rng=rng)
        crawler = InstagramCrawler(
            client,
            synthesizer,
            MediaAnalysisService(completion_client),
            JsonlRecordStore(config.records_dir),
            uploader,
            rng=rng,
            reels_range=config.reels_range,
            comment_scrolls=config.comment_scrolls,
            handedness=config.handedness,
        )
        stats = crawler.crawl(config.initial_username)
    finally:
        logger.info("[runner] closing appium session %s", session_id)
        client.delete_session()

    result = CrawlResult(
        session_id=session_id,
        initial_username=config.initial_username,
        profiles_visited=tuple(stats.profiles_visited),
        reels_processed=stats.reels_processed,
        total_cost=round(completion_client.total_cost, 6),
    )
    logger.info(
        "[runner] crawl for %s done: %d profile(s), %d reel(s), $%.6f",
        result.initial_username,
        len(result.profiles_visited),
        result.reels_processed,
        result.total_cost,
    )
    return result
