"""
Caller identity resolution from hosted-auth access tokens.

The same HS256 access token can arrive in the session cookie (web) or in an
Authorization: Bearer header (mobile/API). The session channel is tried
first; the bearer channel is only consulted when the session yields nothing.
"""

from collections.abc import Mapping
from typing import Any
from uuid import UUID

import jwt
from structlog import get_logger

from hanar.exceptions import InvalidInputError
from hanar.models.domain import CallerIdentity

logger = get_logger(__name__)


def identity_from_claims(payload: Mapping[str, Any]) -> CallerIdentity:
    """
    Build a CallerIdentity from verified token claims.

    Raises:
        InvalidInputError: The subject claim is missing or not a UUID
    """
    subject = payload.get("sub")
    if not subject:
        raise InvalidInputError("token has no subject")
    try:
        user_id = UUID(str(subject))
    except ValueError as exc:
        raise InvalidInputError(f"token subject is not a user id: {str(subject)[:40]}") from exc

    email = payload.get("email")
    return CallerIdentity(user_id=user_id, email=email if isinstance(email, str) else None)


class AccessTokenVerifier:
    """Verifies access tokens and resolves the calling user."""

    def __init__(self, jwt_secret: str, audience: str | None = "authenticated") -> None:
        self.jwt_secret = jwt_secret
        self.audience = audience

    def decode(self, token: str) -> dict[str, Any] | None:
        """Verify signature, expiry and audience; return the claims or None."""
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
            return payload
        except jwt.ExpiredSignatureError:
            logger.warning("access_token_expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning("access_token_invalid", error=str(e))
            return None

    def verify(self, token: str) -> CallerIdentity | None:
        """Resolve a single token to an identity, or None if it is unusable."""
        payload = self.decode(token)
        if payload is None:
            return None
        try:
            return identity_from_claims(payload)
        except InvalidInputError as exc:
            logger.warning("access_token_bad_subject", error=exc.message)
            return None

    def resolve_identity(
        self,
        session_token: str | None,
        bearer_token: str | None,
    ) -> CallerIdentity | None:
        """Try the session channel, then the bearer channel."""
        for channel, token in (("session", session_token), ("bearer", bearer_token)):
            if not token:
                continue
            identity = self.verify(token)
            if identity is not None:
                logger.debug(
                    "caller_identity_resolved",
                    channel=channel,
                    user_id=str(identity.user_id),
                )
                return identity
        return None
