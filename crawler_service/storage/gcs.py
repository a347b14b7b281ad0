"""Cloud Storage uploads for comment-section recordings."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "ig-reels-recordings"


def get_bucket_name() -> str:
    """Bucket name from the GCS_BUCKET env var, else the default."""
    return os.environ.get("GCS_BUCKET", "").strip() or DEFAULT_BUCKET


class GCSUploader:
    def __init__(self, bucket_name: Optional[str] = None, *, client: Any = None) -> None:
        self.bucket_name = bucket_name or get_bucket_name()
        self._client = client

    def _bucket(self) -> Any:
        if self._client is None:
            from google.cloud import storage

            self._client = storage.Client(project=os.environ.get("GCP_PROJECT_ID") or None)
        return self._client.bucket(self.bucket_name)

    def upload_local_file(self, path: str | Path, destination: str) -> Optional[str]:
        """
        Upload `path` to `destination` in the bucket and return its gs:// URI.

        Returns None when the upload fails; the error is logged with the file
        and destination so the caller can decide how fatal that is.
        """
        try:
            blob = self._bucket().blob(destination)
            blob.upload_from_filename(str(path))
        except Exception:
            logger.exception(
                "[gcs] failed to upload %s to gs://%s/%s",
                path,
                self.bucket_name,
                destination,
            )
            return None
        return f"gs://{self.bucket_name}/{destination}"
