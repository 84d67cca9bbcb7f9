"""Authentication: access tokens, Google sign-in and API key encryption.

Exports:
    create_access_token, decode_access_token: Issue and verify JWTs.
    GoogleOAuthClient, generate_state: Google authorization-code flow.
    ApiKeyCipher, get_cipher, mask_api_key: Stored API key handling.
"""

from imagineer.auth.crypto import ApiKeyCipher, get_cipher, mask_api_key
from imagineer.auth.oauth import GoogleOAuthClient, GoogleUserInfo, generate_state
from imagineer.auth.tokens import TokenClaims, create_access_token, decode_access_token

__all__ = [
    "ApiKeyCipher",
    "get_cipher",
    "mask_api_key",
    "GoogleOAuthClient",
    "GoogleUserInfo",
    "generate_state",
    "TokenClaims",
    "create_access_token",
    "decode_access_token",
]
