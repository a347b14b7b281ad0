"""
Collaborator implementations used by the crawler: object storage for
recordings and a local record store for accounts, reels and comments.
"""

from .dates import parse_comment_uploaded_at, parse_uploaded_at
from .gcs import GCSUploader, get_bucket_name
from .record_store import JsonlRecordStore, RecordStoreError, normalize_username

__all__ = [
    "GCSUploader",
    "JsonlRecordStore",
    "RecordStoreError",
    "get_bucket_name",
    "normalize_username",
    "parse_comment_uploaded_at",
    "parse_uploaded_at",
]
