"""Google sign-in and the current user."""

import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from imagineer.api.deps import AppSettings, CurrentUser, Db, OAuth
from imagineer.auth.oauth import generate_state
from imagineer.auth.tokens import create_access_token
from imagineer.core.constants import OAUTH_STATE_COOKIE, OAUTH_STATE_MAX_AGE
from imagineer.core.exceptions import AuthenticationError, ImagineerError
from imagineer.core.logging import get_logger
from imagineer.models.campaigns import UserResponse
from imagineer.storage.users import UserRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _is_https(request: Request) -> bool:
    forwarded = request.headers.get("x-forwarded-proto", "")
    return request.url.scheme == "https" or forwarded.split(",")[0].strip() == "https"


def _callback_redirect(frontend_url: str, params: dict[str, str]) -> RedirectResponse:
    response = RedirectResponse(
        f"{frontend_url}/auth/callback?{urlencode(params)}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    return response


@router.get("/google")
def google_login(request: Request, oauth: OAuth) -> RedirectResponse:
    """Redirect to Google's consent screen with a fresh state cookie."""
    state = generate_state()
    response = RedirectResponse(
        oauth.authorization_url(state),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=OAUTH_STATE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=_is_https(request),
    )
    return response


@router.get("/google/callback")
def google_callback(
    request: Request,
    settings: AppSettings,
    db: Db,
    oauth: OAuth,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Finish sign-in and hand the token to the frontend.

    Every outcome is a redirect to ``{frontend_url}/auth/callback``,
    carrying either ``token`` and ``user`` or ``error``.
    """
    frontend_url = settings.auth.frontend_url
    try:
        if error:
            raise AuthenticationError(f"Google sign-in failed: {error}")
        expected = request.cookies.get(OAUTH_STATE_COOKIE)
        if not state or not expected or not secrets.compare_digest(state, expected):
            raise AuthenticationError("Invalid OAuth state")
        if not code:
            raise AuthenticationError("Missing authorization code")

        info = oauth.fetch_user_info(oauth.exchange_code(code))
        user = UserRepository(db).upsert_google_user(
            google_id=info.google_id,
            email=info.email,
            name=info.name,
            avatar_url=info.avatar_url,
        )
        token = create_access_token(user, settings.auth)
    except ImagineerError as exc:
        logger.warning("Google sign-in failed", error=exc.message)
        return _callback_redirect(frontend_url, {"error": exc.message})

    logger.info("User signed in", user_id=user.id)
    user_json = UserResponse.model_validate(user).model_dump_json(by_alias=True)
    return _callback_redirect(frontend_url, {"token": token, "user": user_json})


@router.get("/me", response_model=UserResponse)
def current_user(user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(user)


__all__ = ["router"]
