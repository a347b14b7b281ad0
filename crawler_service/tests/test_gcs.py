"""Tests for Cloud Storage uploads."""
import sys
from unittest.mock import MagicMock, patch

from crawler_service.storage.gcs import DEFAULT_BUCKET, GCSUploader, get_bucket_name


def _mock_storage():
    mock_blob = MagicMock()
    mock_bucket = MagicMock()
    mock_bucket.blob.return_value = mock_blob
    mock_client = MagicMock()
    mock_client.bucket.return_value = mock_bucket
    mock_storage = MagicMock()
    mock_storage.Client.return_value = mock_client
    mock_cloud = MagicMock()
    mock_cloud.storage = mock_storage
    return mock_cloud, mock_storage, mock_client, mock_bucket, mock_blob


def test_get_bucket_name_default():
    """Without GCS_BUCKET the default bucket is used."""
    with patch.dict("os.environ", {"GCS_BUCKET": ""}, clear=False):
        assert get_bucket_name() == DEFAULT_BUCKET


def test_get_bucket_name_from_env():
    """GCS_BUCKET overrides the default, whitespace stripped."""
    with patch.dict("os.environ", {"GCS_BUCKET": "  my-bucket  "}, clear=False):
        assert get_bucket_name() == "my-bucket"


def test_upload_local_file_returns_gs_uri(tmp_path):
    """A successful upload returns the object's gs:// URI."""
    recording = tmp_path / "clip.mp4"
    recording.write_bytes(b"mp4")
    mock_cloud, mock_storage, mock_client, mock_bucket, mock_blob = _mock_storage()

    with patch.dict(sys.modules, {"google.cloud": mock_cloud, "google.cloud.storage": mock_storage}):
        uri = GCSUploader("reels-bucket").upload_local_file(recording, "abcd1234.mp4")

    assert uri == "gs://reels-bucket/abcd1234.mp4"
    mock_client.bucket.assert_called_once_with("reels-bucket")
    mock_bucket.blob.assert_called_once_with("abcd1234.mp4")
    mock_blob.upload_from_filename.assert_called_once_with(str(recording))


def test_upload_failure_returns_none(tmp_path, caplog):
    """Upload errors are logged and reported as a missing URI."""
    client = MagicMock()
    client.bucket.return_value.blob.return_value.upload_from_filename.side_effect = OSError("network down")

    uri = GCSUploader("reels-bucket", client=client).upload_local_file(tmp_path / "clip.mp4", "x.mp4")

    assert uri is None
    assert "failed to upload" in caplog.text

