from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_DOTENV_LOADED = False

# Keys the crawler reads from the environment.
GEMINI_CREDENTIAL_KEYS = ("GCP_PROJECT_ID", "GEMINI_API_KEY")
CRAWLER_ENV_KEYS = (*GEMINI_CREDENTIAL_KEYS, "GCP_PROJECT_REGION", "GCS_BUCKET")


def _repo_root() -> Path:
    # crawler_service/mobile/env.py -> repo root is two levels up
    return Path(__file__).resolve().parents[2]


def _parse_dotenv_line(raw_line: str) -> Optional[tuple[str, str]]:
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export ") :].strip()
    if "=" not in line:
        return None
    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        value = value[1:-1]
    return key, value


def load_dotenv(*, path: Optional[str | Path] = None, override: bool = False) -> dict[str, str]:
    """
    Load KEY=VALUE pairs from a .env file into os.environ.

    Existing environment variables win unless override=True.
    Returns the keys that were set.
    """
    dotenv_path = Path(path).expanduser().resolve() if path is not None else (_repo_root() / ".env")
    if not dotenv_path.exists():
        return {}
    if dotenv_path.is_dir():
        raise RuntimeError(f".env path is a directory: {dotenv_path}")

    loaded: dict[str, str] = {}
    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_dotenv_line(raw_line)
        if parsed is None:
            continue
        key, value = parsed
        if not override and os.environ.get(key) is not None:
            continue
        os.environ[key] = value
        loaded[key] = value
    return loaded


def crawler_env_status() -> dict[str, bool]:
    """Which crawler keys are set (non-blank) in the current environment."""
    return {key: bool(os.environ.get(key, "").strip()) for key in CRAWLER_ENV_KEYS}


def ensure_dotenv_loaded(*, path: Optional[str | Path] = None) -> dict[str, str]:
    """
    Load repo-root .env exactly once per process.

    Logs which crawler keys the file provided and warns when neither Gemini
    credential (Vertex project or API key) is available afterwards.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return {}
    loaded = load_dotenv(path=path)
    _DOTENV_LOADED = True

    from_file = sorted(key for key in loaded if key in CRAWLER_ENV_KEYS)
    if from_file:
        logger.info("[env] loaded %s from .env", ", ".join(from_file))
    status = crawler_env_status()
    if not any(status[key] for key in GEMINI_CREDENTIAL_KEYS):
        logger.warning("[env] neither GCP_PROJECT_ID nor GEMINI_API_KEY is set; Gemini calls will fail")
    return loaded
