"""
Instagram reel crawler: drives the app through Appium, extracts profile and
comment data with Gemini, and persists the results.
"""

from __future__ import annotations

from typing import Any

__all__ = ["CrawlResult", "CrawlRunConfig", "load_crawl_config", "run_crawl"]


def __getattr__(name: str) -> Any:
    """
    Lazy exports.

    The runner pulls in `google-genai` and the storage collaborators; importing
    it lazily keeps `crawler_service.mobile.*` usable without them loaded.
    """
    if name in __all__:
        from . import runner

        return getattr(runner, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
