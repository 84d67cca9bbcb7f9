"""Pytest configuration and shared fixtures.

This module provides common fixtures for the Imagineer test suite: a
temporary database with a seeded user and campaign, a scripted LLM
provider, and a FastAPI test client wired to both.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient
from pydantic import SecretStr

from imagineer.api.app import create_app
from imagineer.auth.crypto import ApiKeyCipher
from imagineer.auth.oauth import GoogleUserInfo
from imagineer.auth.tokens import create_access_token
from imagineer.core.config import AuthSettings, DatabaseSettings, Settings
from imagineer.enrichment.runner import EnrichmentRunner
from imagineer.llm.provider import CompletionRequest, CompletionResponse, LLMProvider
from imagineer.storage.campaigns import CampaignRecord, CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord, EntityRepository
from imagineer.storage.users import UserRecord, UserRepository


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from fastapi import FastAPI


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from imagineer.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def encryption_key() -> str:
    """Provide a fresh Fernet key."""
    return Fernet.generate_key().decode()


@pytest.fixture
def settings(tmp_path: Path, encryption_key: str) -> Settings:
    """Provide settings pointing at a temporary database.

    Returns:
        Settings with a test signing secret and encryption key.
    """
    return Settings(
        database=DatabaseSettings(database_path=tmp_path / "imagineer.db"),
        auth=AuthSettings(
            jwt_secret=SecretStr("test-signing-secret"),
            frontend_url="http://frontend.test",
            google_client_id="client-id",
            google_client_secret=SecretStr("client-secret"),
            encryption_key=SecretStr(encryption_key),
        ),
    )


@pytest.fixture
def cipher(encryption_key: str) -> ApiKeyCipher:
    """Provide a cipher using the test encryption key."""
    return ApiKeyCipher(encryption_key)


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def db(settings: Settings) -> Database:
    """Provide an initialised database in a temporary directory."""
    return Database(settings.database.database_path)


@pytest.fixture
def user(db: Database) -> UserRecord:
    """Provide a signed-up user."""
    return UserRepository(db).upsert_google_user(
        google_id="google-gm",
        email="gm@example.com",
        name="Game Master",
    )


@pytest.fixture
def other_user(db: Database) -> UserRecord:
    """Provide a second user who owns nothing of the first user's."""
    return UserRepository(db).upsert_google_user(
        google_id="google-rival",
        email="rival@example.com",
        name="Rival GM",
    )


@pytest.fixture
def campaign(db: Database, user: UserRecord) -> CampaignRecord:
    """Provide a campaign owned by ``user``."""
    return CampaignRepository(db).create(
        user.id,
        name="The Sunken Crown",
        description="Pirates and drowned gods.",
    )


@pytest.fixture
def entities(db: Database, campaign: CampaignRecord) -> dict[str, EntityRecord]:
    """Provide a small cast of entities keyed by name.

    Returns:
        Captain Vex (npc), Port Azure (location) and Henry Armitage (npc).
    """
    repo = EntityRepository(db)
    created = [
        repo.create(
            campaign.id,
            entity_type="npc",
            name="Captain Vex",
            description="A ruthless pirate captain with a silver hook.",
        ),
        repo.create(
            campaign.id,
            entity_type="location",
            name="Port Azure",
            description="A harbour town on the Shattered Coast.",
        ),
        repo.create(campaign.id, entity_type="npc", name="Henry Armitage"),
    ]
    return {entity.name: entity for entity in created}


# =============================================================================
# LLM Fixtures
# =============================================================================


class ScriptedProvider(LLMProvider):
    """LLM provider that answers from a script and records every request.

    Routed replies are chosen by a marker found in the system prompt.
    Unrouted requests take the next queued reply, then ``default``.
    A reply that is an exception instance is raised instead.
    """

    name = "scripted"
    model = "scripted-1"

    def __init__(self, default: str = "{}") -> None:
        self.default = default
        self.routes: dict[str, Any] = {}
        self.queue: list[Any] = []
        self.requests: list[CompletionRequest] = []

    def route(self, marker: str, reply: Any) -> None:
        self.routes[marker] = reply

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        reply = next(
            (value for marker, value in self.routes.items() if marker in request.system_prompt),
            None,
        )
        if reply is None:
            reply = self.queue.pop(0) if self.queue else self.default
        if isinstance(reply, Exception):
            raise reply
        return CompletionResponse(content=reply, tokens_used=42)


@pytest.fixture
def provider() -> ScriptedProvider:
    """Provide a scripted provider answering ``{}`` by default."""
    return ScriptedProvider()


@pytest.fixture
def runner(db: Database, provider: ScriptedProvider, cipher: ApiKeyCipher) -> EnrichmentRunner:
    """Provide a runner whose configured LLM is the scripted provider."""
    return EnrichmentRunner(db, provider_factory=lambda service, key: provider, cipher=cipher)


@pytest.fixture
def llm_configured(db: Database, user: UserRecord, cipher: ApiKeyCipher) -> None:
    """Store LLM settings for ``user`` so enrichment can run."""
    UserRepository(db).update_settings(
        user.id,
        content_gen_service="anthropic",
        content_gen_api_key=cipher.encrypt("sk-ant-test-1234"),
    )


# =============================================================================
# API Fixtures
# =============================================================================


class FakeOAuth:
    """Stand-in for the Google OAuth client."""

    def __init__(self) -> None:
        self.exchanged: list[str] = []
        self.user_info = GoogleUserInfo(
            google_id="google-new",
            email="new@example.com",
            name="New Keeper",
            avatar_url="https://example.com/avatar.png",
        )

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example.com/auth?state={state}"

    def exchange_code(self, code: str) -> str:
        self.exchanged.append(code)
        return f"access-{code}"

    def fetch_user_info(self, access_token: str) -> GoogleUserInfo:
        return self.user_info


@pytest.fixture
def oauth() -> FakeOAuth:
    """Provide a fake Google OAuth client."""
    return FakeOAuth()


@pytest.fixture
def app(settings: Settings, db: Database, runner: EnrichmentRunner, oauth: FakeOAuth) -> FastAPI:
    """Provide an application wired to the test collaborators."""
    return create_app(settings, database=db, runner=runner, oauth=oauth, configure_logs=False)


@pytest.fixture
def anonymous_client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a client without credentials."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def token(user: UserRecord, settings: Settings) -> str:
    """Provide an access token for ``user``."""
    return create_access_token(user, settings.auth)


@pytest.fixture
def client(app: FastAPI, token: str) -> Generator[TestClient, None, None]:
    """Provide a client authenticated as ``user``."""
    with TestClient(app, headers={"Authorization": f"Bearer {token}"}) as test_client:
        yield test_client


@pytest.fixture
def rival_client(app: FastAPI, other_user: UserRecord, settings: Settings) -> Generator[TestClient, None, None]:
    """Provide a client authenticated as ``other_user``."""
    rival_token = create_access_token(other_user, settings.auth)
    with TestClient(app, headers={"Authorization": f"Bearer {rival_token}"}) as test_client:
        yield test_client
