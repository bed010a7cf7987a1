import pytest

from conftest import solid_jpeg
from qyou.services.claims import ClaimLedger
from qyou.services.editor import ProfileEditor, validate_fields
from qyou.services.errors import ProfileNotFound, UploadFailed, ValidationError
from qyou.services.media import MediaUploadCoordinator
from qyou.services.storage import ObjectStoreError


@pytest.fixture
def editor(db, store):
    return ProfileEditor(db, MediaUploadCoordinator(store, clock=lambda: 1700000000.0))


@pytest.fixture
def owner(db, make_account):
    account_id = make_account()
    ClaimLedger(db).claim("ab12cd34", account_id)
    return account_id


def test_partial_update_touches_only_given_fields(editor, owner):
    editor.update(owner, {"name": "Budi", "bio": "hello"})
    profile = editor.update(owner, {"instagram": "@budi"})

    assert profile.name == "Budi"
    assert profile.bio == "hello"
    assert profile.instagram == "@budi"
    assert profile.code == "ab12cd34"


def test_blank_name_rejected_and_row_unchanged(editor, owner):
    editor.update(owner, {"name": "Budi"})

    with pytest.raises(ValidationError):
        editor.update(owner, {"name": ""})

    assert editor.get(owner).name == "Budi"


def test_full_form_requires_name(editor, owner):
    with pytest.raises(ValidationError):
        editor.update(owner, {"bio": "no name here"}, full_form=True)


@pytest.mark.parametrize("raw,expected", [("", None), (None, None), ("25", 25), (0, 0), (42, 42)])
def test_age_normalisation(raw, expected):
    assert validate_fields({"age": raw})["age"] == expected


@pytest.mark.parametrize("raw", ["-1", -3, "abc", "2.5", 2.5, True])
def test_bad_ages_rejected(raw):
    with pytest.raises(ValidationError):
        validate_fields({"age": raw})


def test_code_is_not_editable(editor, owner):
    with pytest.raises(ValidationError):
        editor.update(owner, {"code": "other999"})
    assert editor.get(owner).code == "ab12cd34"


def test_blank_socials_are_cleared(editor, owner):
    editor.update(owner, {"tiktok": "budi"})
    profile = editor.update(owner, {"tiktok": "   "})
    assert profile.tiktok is None


def test_bio_limit():
    with pytest.raises(ValidationError):
        validate_fields({"bio": "x" * 501})


def test_photo_and_fields_commit_together(editor, owner, store):
    profile = editor.update(owner, {"name": "Budi"}, photo=solid_jpeg())

    assert profile.name == "Budi"
    assert profile.photo_url == "https://cdn.example.com/profile_pics/%s.jpg?t=1700000000000" % owner
    assert "profile_pics/%s.jpg" % owner in store.objects


def test_failed_upload_aborts_whole_update(editor, owner, store):
    first = editor.update(owner, {"name": "Budi"}, photo=solid_jpeg())
    previous_photo = first.photo_url

    store.fail_with = ObjectStoreError("network down")
    with pytest.raises(UploadFailed):
        editor.update(owner, {"name": "Changed"}, photo=solid_jpeg(color=(0, 0, 0)))

    profile = editor.get(owner)
    assert profile.photo_url == previous_photo
    assert profile.name == "Budi"


def test_missing_profile(editor, make_account):
    with pytest.raises(ProfileNotFound):
        editor.update(make_account("nobody@example.com"), {"name": "x"})
