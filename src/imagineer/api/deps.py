"""FastAPI dependencies shared by the routers.

Services live on ``app.state`` and are created once by ``create_app``.
"""

from typing import Annotated

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from imagineer.analysis.resolution import ResolutionService
from imagineer.auth.crypto import ApiKeyCipher
from imagineer.auth.oauth import GoogleOAuthClient
from imagineer.auth.tokens import decode_access_token
from imagineer.core.config import Settings
from imagineer.core.exceptions import AuthenticationError
from imagineer.enrichment.runner import EnrichmentRunner
from imagineer.storage.campaigns import CampaignRecord, CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.users import UserRecord, UserRepository

bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# Application services
# =============================================================================


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_runner(request: Request) -> EnrichmentRunner:
    return request.app.state.runner


def get_resolution(request: Request) -> ResolutionService:
    return request.app.state.resolution


def get_oauth(request: Request) -> GoogleOAuthClient:
    return request.app.state.oauth


def get_cipher_dep(request: Request) -> ApiKeyCipher:
    return request.app.state.cipher


AppSettings = Annotated[Settings, Depends(get_settings_dep)]
Db = Annotated[Database, Depends(get_db)]
Runner = Annotated[EnrichmentRunner, Depends(get_runner)]
Resolution = Annotated[ResolutionService, Depends(get_resolution)]
OAuth = Annotated[GoogleOAuthClient, Depends(get_oauth)]
Cipher = Annotated[ApiKeyCipher, Depends(get_cipher_dep)]


# =============================================================================
# Authentication
# =============================================================================


def user_from_token(token: str, settings: Settings, db: Database) -> UserRecord:
    """Resolve a bearer token to an existing user.

    Raises:
        AuthenticationError: If the token is invalid or its user is gone.
    """
    claims = decode_access_token(token, settings.auth)
    user = UserRepository(db).get(claims.user_id)
    if user is None:
        raise AuthenticationError("User no longer exists")
    return user


def get_current_user(
    settings: AppSettings,
    db: Db,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserRecord:
    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    return user_from_token(credentials.credentials, settings, db)


def get_beacon_user(
    settings: AppSettings,
    db: Db,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    token: Annotated[str | None, Query()] = None,
) -> UserRecord:
    """Like ``get_current_user``, but also accepts ``?token=``.

    Page-unload beacons cannot set headers.
    """
    if credentials is not None:
        return user_from_token(credentials.credentials, settings, db)
    if token:
        return user_from_token(token, settings, db)
    raise AuthenticationError("Missing bearer token")


CurrentUser = Annotated[UserRecord, Depends(get_current_user)]
BeaconUser = Annotated[UserRecord, Depends(get_beacon_user)]


# =============================================================================
# Ownership
# =============================================================================


def get_owned_campaign(campaign_id: int, user: CurrentUser, db: Db) -> CampaignRecord:
    """The path's campaign, if the current user owns it (404 otherwise)."""
    return CampaignRepository(db).get_owned(campaign_id, user.id)


OwnedCampaign = Annotated[CampaignRecord, Depends(get_owned_campaign)]


__all__ = [
    "AppSettings",
    "Db",
    "Runner",
    "Resolution",
    "OAuth",
    "Cipher",
    "CurrentUser",
    "BeaconUser",
    "OwnedCampaign",
    "user_from_token",
    "get_current_user",
    "get_beacon_user",
    "get_owned_campaign",
]
