import logging
import os
import time
from dataclasses import dataclass

from qyou.services import encoder
from qyou.services.errors import UploadFailed
from qyou.services.storage import ObjectStoreError

logger = logging.getLogger(__name__)

PHOTO_BYTE_BUDGET = int(os.getenv("PHOTO_BYTE_BUDGET", str(300 * 1024)))  # 300 KiB
PHOTO_PREFIX = "profile_pics"
NO_CACHE = "no-cache, max-age=0"

JPEG_MAGIC = b"\xff\xd8\xff"


def photo_key(account_id: str) -> str:
    return f"{PHOTO_PREFIX}/{account_id}.jpg"


@dataclass(frozen=True)
class PhotoRef:
    url: str
    token: int

    def __str__(self) -> str:
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}t={self.token}"


class MediaUploadCoordinator:
    """Puts a user's photo at their single storage key and hands back a cache-busted URL."""

    def __init__(self, store, byte_budget: int = PHOTO_BYTE_BUDGET, clock=time.time):
        self.store = store
        self.byte_budget = byte_budget
        self.clock = clock

    def prepare(self, data: bytes) -> bytes:
        """Return JPEG bytes for upload, compressing only when needed."""
        is_jpeg = data[:3] == JPEG_MAGIC
        if len(data) <= self.byte_budget and is_jpeg:
            # validates the bytes decode; raises ValidationError otherwise
            encoder.load_image(data)
            return data

        result = encoder.encode(data, self.byte_budget)
        logger.info(
            "compressed photo %d -> %d bytes (q=%.2f, %d attempts, %dx%d)",
            len(data), result.size, result.quality, result.attempts, result.width, result.height,
        )
        return result.data

    def replace_photo(self, account_id: str, data: bytes) -> PhotoRef:
        """
        Overwrite the account's photo and return the new PhotoRef.

        Raises UploadFailed if the store rejects the write; nothing else is
        touched in that case, so the profile keeps pointing at its old photo.
        """
        payload = self.prepare(data)
        key = photo_key(account_id)

        try:
            self.store.put(key, payload, overwrite=True, content_type="image/jpeg", cache_control=NO_CACHE)
        except ObjectStoreError as e:
            logger.error("photo upload failed for account %s: %s", account_id, e)
            raise UploadFailed(e) from e

        return PhotoRef(url=self.store.public_url(key), token=int(self.clock() * 1000))
