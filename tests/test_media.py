import io

import pytest
from PIL import Image

from conftest import noise_jpeg, png_bytes, solid_jpeg
from qyou.services.errors import UploadFailed, ValidationError
from qyou.services.media import MediaUploadCoordinator, PhotoRef, photo_key
from qyou.services.storage import ObjectStoreError


@pytest.fixture
def media(store):
    return MediaUploadCoordinator(store, byte_budget=300 * 1024, clock=lambda: 1700000000.123)


def test_small_jpeg_is_uploaded_unchanged(media, store):
    data = solid_jpeg()
    ref = media.replace_photo("acc-1", data)

    assert store.objects["profile_pics/acc-1.jpg"] == data
    assert store.puts[0]["content_type"] == "image/jpeg"
    assert "no-cache" in store.puts[0]["cache_control"]
    assert ref == PhotoRef(url="https://cdn.example.com/profile_pics/acc-1.jpg", token=1700000000123)
    assert str(ref) == "https://cdn.example.com/profile_pics/acc-1.jpg?t=1700000000123"


def test_oversized_photo_goes_through_encoder(media, store):
    data = noise_jpeg((1600, 1200))
    media.replace_photo("acc-1", data)

    stored = store.objects[photo_key("acc-1")]
    assert len(stored) < len(data)
    assert Image.open(io.BytesIO(stored)).width == 800


def test_small_png_is_stored_as_jpeg(media, store):
    media.replace_photo("acc-1", png_bytes())
    assert store.objects[photo_key("acc-1")][:3] == b"\xff\xd8\xff"


def test_replacement_overwrites_same_key(media, store):
    media.replace_photo("acc-1", solid_jpeg(color=(1, 2, 3)))
    second = solid_jpeg(color=(200, 200, 200))
    media.replace_photo("acc-1", second)

    assert list(store.objects) == ["profile_pics/acc-1.jpg"]
    assert store.objects["profile_pics/acc-1.jpg"] == second


def test_store_failure_surfaces_upload_failed(media, store):
    cause = ObjectStoreError("bucket unavailable")
    store.fail_with = cause

    with pytest.raises(UploadFailed) as exc:
        media.replace_photo("acc-1", solid_jpeg())

    assert exc.value.cause is cause
    assert store.objects == {}


def test_garbage_is_rejected_before_upload(media, store):
    with pytest.raises(ValidationError):
        media.replace_photo("acc-1", b"\xff\xd8\xff but not really a jpeg")
    assert store.puts == []
