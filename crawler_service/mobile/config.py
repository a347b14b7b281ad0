from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class CrawlConfigError(ValueError):
    pass


def load_json_file(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"JSON file not found: {file_path}")
    if file_path.is_dir():
        raise IsADirectoryError(f"Expected a JSON file but found a directory: {file_path}")

    raw = file_path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CrawlConfigError(f"Invalid JSON in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise CrawlConfigError(f"Expected top-level JSON object in {file_path}")
    return data


def require_key(obj: dict[str, Any], key: str, *, context: str) -> Any:
    if key not in obj:
        raise CrawlConfigError(f"Missing required key '{key}' in {context}")
    return obj[key]


def as_non_empty_str(value: Any, *, field: str, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CrawlConfigError(f"{context}: '{field}' must be a non-empty string")
    return value.strip()


def as_positive_int(value: Any, *, field: str, context: str) -> int:
    if isinstance(value, bool):
        raise CrawlConfigError(f"{context}: '{field}' must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise CrawlConfigError(f"{context}: '{field}' must be an integer") from e
    if parsed <= 0:
        raise CrawlConfigError(f"{context}: '{field}' must be > 0")
    return parsed


def as_int_range(value: Any, *, field: str, context: str) -> tuple[int, int]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise CrawlConfigError(f"{context}: '{field}' must be a [min, max] pair")
    low = as_positive_int(value[0], field=f"{field}[0]", context=context)
    high = as_positive_int(value[1], field=f"{field}[1]", context=context)
    if low > high:
        raise CrawlConfigError(f"{context}: '{field}' min must be <= max (got {low} > {high})")
    return low, high


def as_choice(value: Any, *, field: str, context: str, choices: tuple[str, ...]) -> str:
    if not isinstance(value, str) or value not in choices:
        raise CrawlConfigError(f"{context}: '{field}' must be one of {list(choices)} (got {value!r})")
    return value
