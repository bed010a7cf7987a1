"""
Object storage for profile photos.

Two backends share the same two calls, ``put`` and ``public_url``:
  - LocalObjectStore writes under MEDIA_ROOT, served by the app at MEDIA_BASE_URL
  - GCSObjectStore writes to a Google Cloud Storage bucket
Pick one with STORAGE_BACKEND=local|gcs.
"""

import logging
import os
from pathlib import Path

from google.api_core import exceptions as gcs_exceptions
from google.auth import default as google_auth_default
from google.cloud import storage
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

MEDIA_ROOT = os.getenv("MEDIA_ROOT", "media")
MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")


class ObjectStoreError(Exception):
    pass


class ObjectExists(ObjectStoreError):
    pass


class LocalObjectStore:
    def __init__(self, root: str = MEDIA_ROOT, base_url: str = MEDIA_BASE_URL):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ObjectStoreError(f"Key escapes storage root: {key}")
        return path

    def put(self, key: str, data: bytes, *, overwrite: bool = False,
            content_type: str = "application/octet-stream", cache_control: str | None = None):
        # content type and cache headers come from StaticFiles for local files
        path = self._path(key)
        if path.exists() and not overwrite:
            raise ObjectExists(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".part")
            tmp.write_bytes(data)
            tmp.replace(path)
        except OSError as e:
            raise ObjectStoreError(str(e)) from e

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"


class GCSObjectStore:
    def __init__(self, bucket_name: str | None = None, client=None):
        self.bucket_name = bucket_name or os.getenv("GCS_BUCKET_NAME", "")
        if not self.bucket_name:
            raise RuntimeError("GCS_BUCKET_NAME is not set")
        self.client = client or storage.Client(credentials=self._build_creds())
        self.bucket = self.client.bucket(self.bucket_name)

    @staticmethod
    def _build_creds():
        key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        scopes = ["https://www.googleapis.com/auth/cloud-platform"]
        if key_path and os.path.exists(key_path):
            return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
        creds, _ = google_auth_default(scopes=scopes)
        return creds

    def put(self, key: str, data: bytes, *, overwrite: bool = False,
            content_type: str = "application/octet-stream", cache_control: str | None = None):
        blob = self.bucket.blob(key)
        if cache_control:
            blob.cache_control = cache_control
        try:
            # generation 0 means "only if the object does not exist yet"
            blob.upload_from_string(
                data,
                content_type=content_type,
                if_generation_match=None if overwrite else 0,
            )
        except gcs_exceptions.PreconditionFailed as e:
            raise ObjectExists(key) from e
        except (gcs_exceptions.GoogleAPIError, OSError) as e:
            raise ObjectStoreError(str(e)) from e

    def public_url(self, key: str) -> str:
        return self.bucket.blob(key).public_url


_store = None


def get_object_store():
    """FastAPI dependency. One store per process, chosen by STORAGE_BACKEND."""
    global _store
    if _store is None:
        backend = os.getenv("STORAGE_BACKEND", "local").lower()
        if backend == "gcs":
            _store = GCSObjectStore()
        else:
            _store = LocalObjectStore()
        logger.info("Using %s object store", backend)
    return _store
