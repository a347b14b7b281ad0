from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from .dates import parse_comment_uploaded_at, parse_uploaded_at

logger = logging.getLogger(__name__)

ACCOUNT_ROLES = {
    "INFLUENCER": "influencer",
    "RESTAURANT": "restaurant",
    "OTHER": "other",
}


class RecordStoreError(RuntimeError):
    pass


def _stable_id(*parts: Any) -> str:
    raw = json.dumps([str(p) for p in parts], ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, dict):
        return dict(value)
    raise RecordStoreError(f"Expected a model or dict, got {type(value).__name__}")


def normalize_username(value: str) -> str:
    return value.strip().lstrip("@").strip().lower()


class _JsonlTable:
    """
    Append-only JSONL table with a keyed in-memory index.

    Each line is {"ts", "key", "value"}; on load, later lines for the same key
    replace earlier ones, so an upsert is a single append.
    """

    def __init__(self, *, path: Path):
        self.path = path
        self._index: dict[str, dict[str, Any]] = {}
        self._loaded = False

    def load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.exists():
            return
        if self.path.is_dir():
            raise RecordStoreError(f"Record table path is a directory: {self.path}")
        for lineno, raw in enumerate(self.path.read_text(encoding="utf-8").splitlines(), start=1):
            line = raw.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError as e:
                raise RecordStoreError(f"Corrupt record at {self.path}:{lineno}: {e}") from e
            if not isinstance(row, dict):
                continue
            key = row.get("key")
            value = row.get("value")
            if isinstance(key, str) and isinstance(value, dict):
                self._index[key] = value

    def get(self, key: str) -> Optional[dict[str, Any]]:
        self.load()
        return self._index.get(key)

    def values(self) -> list[dict[str, Any]]:
        self.load()
        return list(self._index.values())

    def put(self, key: str, value: dict[str, Any]) -> None:
        self.load()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        row = {"ts": datetime.now().isoformat(), "key": key, "value": value}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")
        self._index[key] = value


class JsonlRecordStore:
    """
    Persists crawled accounts, reels and comments as JSONL under `records_dir`.

    Accounts are keyed by username, reels by (caption, uploaded_at) and
    comments by (reel_id, username, text, uploaded_at). Re-crawling the same
    content updates the existing row and keeps its id.
    """

    def __init__(self, records_dir: str | Path, *, now: Optional[Any] = None):
        self.records_dir = Path(records_dir)
        self.accounts = _JsonlTable(path=self.records_dir / "accounts.jsonl")
        self.reels = _JsonlTable(path=self.records_dir / "reels.jsonl")
        self.comments = _JsonlTable(path=self.records_dir / "comments.jsonl")
        self._now = now or datetime.now

    def find_account(self, username: str) -> Optional[dict[str, Any]]:
        return self.accounts.get(normalize_username(username))

    def upsert_profile(self, parsed: Any) -> dict[str, Any]:
        data = _as_dict(parsed)
        username = normalize_username(str(data.get("username") or ""))
        if not username:
            raise RecordStoreError("Profile has no username")

        profile_type = str(data.get("profile_type") or "OTHER").upper()
        existing = self.accounts.get(username)
        now = self._now().isoformat()
        row = {
            **data,
            "id": existing["id"] if existing else _stable_id("account", username),
            "username": username,
            "role": ACCOUNT_ROLES.get(profile_type, "other"),
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        self.accounts.put(username, row)
        logger.info("[records] upserted account %s (role=%s)", username, row["role"])
        return row

    def _resolve_account_ids(self, usernames: Iterable[str], *, kind: str) -> list[str]:
        ids: list[str] = []
        for raw in usernames:
            account = self.find_account(raw)
            if account is None:
                logger.warning("[records] skipping unknown %s account %r", kind, raw)
                continue
            if account["id"] not in ids:
                ids.append(account["id"])
        return ids

    def upsert_reel_with_comments(
        self,
        reel: Any,
        comments: Iterable[Any],
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """
        Store one reel and its extracted comments.

        `reel` carries caption, counts, the displayed upload time, collaborator
        and mention usernames and the recording URI. `comments` are parsed
        comment entries with a relative {unit, value} timestamp.
        """
        now_dt = self._now()
        now = now_dt.isoformat()
        uploaded_at = parse_uploaded_at(reel.uploaded_at, now=now_dt).isoformat()
        reel_key = json.dumps([reel.caption, uploaded_at], ensure_ascii=False)

        existing = self.reels.get(reel_key)
        reel_row = {
            "id": existing["id"] if existing else _stable_id("reel", reel.caption, uploaded_at),
            "caption": reel.caption,
            "uploaded_at": uploaded_at,
            "like_count": reel.like_count,
            "comment_count": reel.comment_count,
            "share_count": reel.share_count,
            "recording_uri": reel.recording_uri,
            "collaborator_ids": self._resolve_account_ids(reel.collaborators, kind="collaborator"),
            "mention_ids": self._resolve_account_ids(reel.mentions, kind="mention"),
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        self.reels.put(reel_key, reel_row)

        comment_rows: list[dict[str, Any]] = []
        for comment in comments:
            data = _as_dict(comment)
            comment_at = parse_comment_uploaded_at(data.get("uploaded_at"), now=now_dt).isoformat()
            key_parts = [reel_row["id"], data.get("username"), data.get("text"), comment_at]
            comment_key = json.dumps(key_parts, ensure_ascii=False)
            prior = self.comments.get(comment_key)
            row = {
                "id": prior["id"] if prior else _stable_id("comment", *key_parts),
                "reel_id": reel_row["id"],
                "username": data.get("username"),
                "text": data.get("text"),
                "uploaded_at": comment_at,
                "like_count": data.get("like_count", 0),
                "reply_count": data.get("reply_count", 0),
                "created_at": prior["created_at"] if prior else now,
                "updated_at": now,
            }
            self.comments.put(comment_key, row)
            comment_rows.append(row)

        logger.info(
            "[records] upserted reel %s with %d comment(s)",
            reel_row["id"],
            len(comment_rows),
        )
        return reel_row, comment_rows
