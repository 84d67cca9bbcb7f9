"""The current user's LLM settings."""

from fastapi import APIRouter

from imagineer.api.deps import Cipher, CurrentUser, Db
from imagineer.auth.crypto import ApiKeyCipher, mask_api_key
from imagineer.core.exceptions import ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.campaigns import UserSettingsResponse, UserSettingsUpdate
from imagineer.models.enums import LLMService
from imagineer.storage.users import UserRepository, UserSettingsRecord

logger = get_logger(__name__)

router = APIRouter(prefix="/api/user/settings", tags=["user"])


def _to_response(record: UserSettingsRecord, cipher: ApiKeyCipher) -> UserSettingsResponse:
    plain = cipher.decrypt(record.content_gen_api_key) if record.content_gen_api_key else ""
    return UserSettingsResponse(
        user_id=record.user_id,
        content_gen_service=record.content_gen_service,
        content_gen_api_key_masked=mask_api_key(plain),
        has_content_gen_api_key=bool(plain),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _parse_service(value: str | None) -> str | None:
    if not value:
        return None
    try:
        return LLMService(value).value
    except ValueError as exc:
        raise ValidationError(
            f"Unknown content generation service: {value}",
            field_name="content_gen_service",
            invalid_value=value,
        ) from exc


@router.get("", response_model=UserSettingsResponse)
def get_user_settings(user: CurrentUser, db: Db, cipher: Cipher) -> UserSettingsResponse:
    return _to_response(UserRepository(db).get_settings(user.id), cipher)


@router.put("", response_model=UserSettingsResponse)
def update_user_settings(
    body: UserSettingsUpdate, user: CurrentUser, db: Db, cipher: Cipher
) -> UserSettingsResponse:
    """Update settings; absent fields are kept and empty strings clear."""
    changes = body.changes()
    updates: dict[str, str | None] = {}
    if "content_gen_service" in changes:
        updates["content_gen_service"] = _parse_service(changes["content_gen_service"])
    if "content_gen_api_key" in changes:
        key = (changes["content_gen_api_key"] or "").strip()
        updates["content_gen_api_key"] = cipher.encrypt(key) if key else None

    record = UserRepository(db).update_settings(user.id, **updates)
    logger.info(
        "User settings updated",
        user_id=user.id,
        fields=sorted(updates),
        service=record.content_gen_service,
    )
    return _to_response(record, cipher)


__all__ = ["router"]
