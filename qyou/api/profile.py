from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from qyou.dependencies import get_current_account, get_editor, get_ledger
from qyou.services.claims import ClaimLedger
from qyou.services.editor import ProfileEditor
from qyou.services.errors import ProfileNotFound
from qyou.services.guard import profile_saves

router = APIRouter(prefix="/api", tags=["profile"])

SOCIAL_LINKS = {
    "instagram": "https://instagram.com/{}",
    "tiktok": "https://tiktok.com/@{}",
    "twitter": "https://twitter.com/{}",
}


class ProfilePatch(BaseModel):
    name: str | None = None
    age: int | str | None = None
    bio: str | None = None
    instagram: str | None = None
    tiktok: str | None = None
    twitter: str | None = None


def serialize_profile(profile):
    """Owner's view of the profile, as returned to the dashboard."""
    return {
        "account_id": profile.account_id,
        "email": profile.email,
        "code": profile.code,
        "name": profile.name,
        "age": profile.age,
        "bio": profile.bio,
        "instagram": profile.instagram,
        "tiktok": profile.tiktok,
        "twitter": profile.twitter,
        "photo_url": profile.photo_url,
        "claimed_at": profile.claimed_at.isoformat() if profile.claimed_at else None,
        "updated_at": profile.updated_at.isoformat() if profile.updated_at else None,
    }


def social_links(profile):
    links = []
    for platform, template in SOCIAL_LINKS.items():
        handle = getattr(profile, platform)
        if handle:
            handle = handle.lstrip("@")
            links.append({"platform": platform, "handle": handle, "url": template.format(handle)})
    return links


def public_profile(profile):
    """What anyone scanning the bracelet sees. No email, no account id."""
    return {
        "code": profile.code,
        "name": profile.name,
        "age": profile.age,
        "bio": profile.bio,
        "instagram": profile.instagram,
        "tiktok": profile.tiktok,
        "twitter": profile.twitter,
        "photo_url": profile.photo_url,
        "socials": social_links(profile),
    }


@router.get("/profile/{code}")
def get_public_profile(code: str, ledger: ClaimLedger = Depends(get_ledger)):
    profile = ledger.profile_for_code(code)
    if not profile:
        raise ProfileNotFound("No profile is linked to this code")
    return {"user": public_profile(profile)}


@router.get("/profile")
def get_profile(account_id: str = Depends(get_current_account), editor: ProfileEditor = Depends(get_editor)):
    return {"user": serialize_profile(editor.get(account_id))}


@router.post("/profile")
def save_profile(
    name: str | None = Form(None),
    age: str | None = Form(None),
    bio: str | None = Form(None),
    instagram: str | None = Form(None),
    tiktok: str | None = Form(None),
    twitter: str | None = Form(None),
    full_form: bool = Form(True),
    photo: UploadFile | None = File(None),
    account_id: str = Depends(get_current_account),
    editor: ProfileEditor = Depends(get_editor),
):
    """
    Dashboard save: text fields plus an optional new photo, committed together.
    A full-form save sends every field, so a blank one clears it.
    """
    fields = {
        "name": name,
        "age": age,
        "bio": bio,
        "instagram": instagram,
        "tiktok": tiktok,
        "twitter": twitter,
    }
    if not full_form:
        fields = {k: v for k, v in fields.items() if v is not None}

    photo_bytes = photo.file.read() if photo else None

    with profile_saves.hold(account_id):
        profile = editor.update(account_id, fields, photo=photo_bytes, full_form=full_form)

    return {"message": "Profile saved successfully", "user": serialize_profile(profile)}


@router.patch("/profile")
def patch_profile(
    data: ProfilePatch,
    account_id: str = Depends(get_current_account),
    editor: ProfileEditor = Depends(get_editor),
):
    """Partial JSON edit. Only the keys present in the body are touched."""
    with profile_saves.hold(account_id):
        profile = editor.update(account_id, data.model_dump(exclude_unset=True))
    return {"message": "Profile saved successfully", "user": serialize_profile(profile)}
