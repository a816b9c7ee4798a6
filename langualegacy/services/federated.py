"""Verify Firebase/Google ID tokens against Google's published signing keys."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import jwt

from langualegacy.schemas.auth import FederatedIdentity
from langualegacy.services.errors import (
    FederatedIdentityError,
    FederatedLoginNotConfiguredError,
    IdentityProviderUnavailableError,
)

if TYPE_CHECKING:
    from langualegacy.core.config import Settings

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"
ID_TOKEN_ALGORITHMS = ["RS256"]
# Seconds to cache the provider's public keys between refreshes.
JWKS_CACHE_LIFESPAN_SEC = 3600
JWKS_REQUEST_TIMEOUT_SEC = 10


class FirebaseTokenVerifier:
    """Check signature, audience, issuer and subject of a Firebase ID token."""

    def __init__(self, project_id: str, jwks_url: str) -> None:
        self.project_id = project_id
        self.issuer = f"{FIREBASE_ISSUER_PREFIX}{project_id}"
        self._jwks_client = jwt.PyJWKClient(
            jwks_url,
            cache_keys=True,
            lifespan=JWKS_CACHE_LIFESPAN_SEC,
            timeout=JWKS_REQUEST_TIMEOUT_SEC,
        )

    def _decode(self, id_token: str) -> dict[str, Any]:
        signing_key = self._jwks_client.get_signing_key_from_jwt(id_token)
        return jwt.decode(
            id_token,
            signing_key.key,
            algorithms=ID_TOKEN_ALGORITHMS,
            audience=self.project_id,
            issuer=self.issuer,
            options={"require": ["exp", "iat", "sub"]},
        )

    def verify(self, id_token: str) -> FederatedIdentity:
        """
        Return the verified identity carried by id_token.

        Raises FederatedIdentityError for any invalid, expired or foreign token and
        IdentityProviderUnavailableError when the signing keys cannot be fetched.
        """
        try:
            claims = self._decode(id_token)
        except jwt.PyJWKClientConnectionError as e:
            logger.error("Fetching identity provider keys failed", extra={"reason": str(e)[:200]})
            raise IdentityProviderUnavailableError() from e
        except jwt.PyJWTError as e:
            logger.info("Identity token rejected", extra={"reason": type(e).__name__})
            raise FederatedIdentityError() from e
        return claims_to_identity(claims)


def claims_to_identity(claims: dict[str, Any]) -> FederatedIdentity:
    """Map ID token claims onto FederatedIdentity."""
    subject_id = claims.get("sub") or claims.get("user_id")
    if not subject_id:
        raise FederatedIdentityError()
    return FederatedIdentity(
        subject_id=str(subject_id),
        email=claims.get("email") or None,
        email_verified=bool(claims.get("email_verified", False)),
        display_name=claims.get("name") or None,
        avatar_url=claims.get("picture") or None,
    )


@lru_cache
def _verifier_for(project_id: str, jwks_url: str) -> FirebaseTokenVerifier:
    return FirebaseTokenVerifier(project_id, jwks_url)


def build_identity_verifier(settings: Settings) -> FirebaseTokenVerifier:
    """Return the (cached) verifier for the configured Firebase project."""
    if not settings.FIREBASE_PROJECT_ID:
        raise FederatedLoginNotConfiguredError(
            "Google sign-in is not configured; set FIREBASE_PROJECT_ID."
        )
    return _verifier_for(settings.FIREBASE_PROJECT_ID, settings.FIREBASE_JWKS_URL)
