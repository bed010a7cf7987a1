import logging

from sqlalchemy.orm import Session

from qyou.models.profile import Profile
from qyou.services.errors import ProfileNotFound, StoreError, ValidationError
from qyou.services.media import MediaUploadCoordinator

logger = logging.getLogger(__name__)

# ✅ CHARACTER LIMITS
CHAR_LIMIT_NAME = 100
CHAR_LIMIT_BIO = 500
CHAR_LIMIT_HANDLE = 100

SOCIAL_FIELDS = ("instagram", "tiktok", "twitter")
EDITABLE_FIELDS = ("name", "age", "bio") + SOCIAL_FIELDS


def _clean_text(value, field: str, limit: int) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if len(value) > limit:
        raise ValidationError(f"{field.title()} exceeds {limit} characters")
    return value or None


def _clean_age(value) -> int | None:
    # empty input means "no age", not zero
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError("Age must be a whole number")
    if isinstance(value, int):
        age = value
    elif isinstance(value, str) and value.strip().isdigit():
        age = int(value.strip())
    else:
        raise ValidationError("Age must be a whole number")
    if age < 0:
        raise ValidationError("Age cannot be negative")
    return age


def validate_fields(fields: dict, full_form: bool = False) -> dict:
    """Turn raw form input into a column patch. Raises ValidationError, touches nothing."""
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit: {', '.join(sorted(unknown))}")

    if full_form and "name" not in fields:
        raise ValidationError("Name is required")

    patch = {}
    if "name" in fields:
        name = _clean_text(fields["name"], "name", CHAR_LIMIT_NAME)
        if not name:
            raise ValidationError("Name is required")
        patch["name"] = name
    if "age" in fields:
        patch["age"] = _clean_age(fields["age"])
    if "bio" in fields:
        patch["bio"] = _clean_text(fields["bio"], "bio", CHAR_LIMIT_BIO)
    for social in SOCIAL_FIELDS:
        if social in fields:
            patch[social] = _clean_text(fields[social], social, CHAR_LIMIT_HANDLE)
    return patch


class ProfileEditor:
    def __init__(self, db: Session, media: MediaUploadCoordinator):
        self.db = db
        self.media = media

    def get(self, account_id: str) -> Profile:
        profile = self.db.query(Profile).filter(Profile.account_id == account_id).first()
        if not profile:
            raise ProfileNotFound()
        return profile

    def update(self, account_id: str, fields: dict, photo: bytes | None = None,
               full_form: bool = False) -> Profile:
        """
        Apply a partial edit as one row update.

        The photo (if any) is uploaded first and its PhotoRef joins the same
        patch, so the row never points at an upload that did not finish and
        never commits the text fields without the photo that came with them.
        """
        patch = validate_fields(fields, full_form=full_form)
        profile = self.get(account_id)

        if photo:
            # UploadFailed propagates; the row is not touched
            patch["photo_url"] = str(self.media.replace_photo(account_id, photo))

        if not patch:
            return profile

        for column, value in patch.items():
            setattr(profile, column, value)
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("profile update failed for account %s: %s", account_id, e)
            raise StoreError() from e

        self.db.refresh(profile)
        return profile
