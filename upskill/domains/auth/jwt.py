# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token verification utilities.

Access tokens are issued by the external identity provider. This module
verifies them with python-jose and exposes their claims. Token creation
is kept for tooling and tests that need to mint provider-compatible
tokens with the shared key.

Example:
    >>> from upskill.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(external_id="user_2abc", email="a@b.co")
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from upskill.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (identity provider user ID).
        email: Primary email address of the account.
        name: Display name, if the provider includes it.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID, if present.
    """

    sub: str
    email: str | None = None
    name: str | None = None
    exp: int
    iat: int | None = None
    jti: str | None = None


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        external_id: str,
        email: str | None = None,
        name: str | None = None,
        expires_minutes: int | None = None,
    ) -> str:
        """Create a signed access token.

        Args:
            external_id: Identity provider user ID.
            email: Account email.
            name: Display name.
            expires_minutes: Lifetime override; negative values produce an
                already expired token.

        Returns:
            Encoded JWT string.
        """
        now = datetime.now(timezone.utc)
        lifetime = (
            expires_minutes
            if expires_minutes is not None
            else self._settings.access_token_expire_minutes
        )

        payload: dict[str, Any] = {
            "sub": external_id,
            "email": email,
            "name": name,
            "exp": int((now + timedelta(minutes=lifetime)).timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        if self._settings.issuer:
            payload["iss"] = self._settings.issuer
        if self._settings.audience:
            payload["aud"] = self._settings.audience

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT token.

        Args:
            token: JWT token string.

        Returns:
            Decoded token payload.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed or the signature,
                issuer or audience does not match.
        """
        options = {"verify_aud": bool(self._settings.audience)}
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options=options,
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JoseJWTError as e:
            logger.debug("Token validation failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {e}") from e

        try:
            return TokenPayload(**payload)
        except ValueError as e:
            raise InvalidTokenError(f"Invalid token payload: {e}") from e
