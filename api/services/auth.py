# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token validation.

Identity is issued by an external provider; this service verifies RS256
access tokens and turns their claims into an Actor. Token issuing exists
for scripts and tests only.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError
import logging

from models.entities import Actor, User

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """JWT authentication service with RS256 signing."""

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
        """
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")

        if not public_key:
            # One pair for both sides so locally issued tokens verify
            logger.warning("No JWT_PUBLIC_KEY found, generating development key pair")
            private_key, public_key = self._generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.access_token_expire_minutes = 15

    def _generate_dev_key_pair(self) -> Tuple[str, str]:
        """Generate RSA key pair for development use."""
        private_key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=2048
        )

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode('utf-8')

        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode('utf-8')

        return private_pem, public_pem

    def generate_access_token(self, user: User, expires_minutes: Optional[int] = None) -> str:
        """
        Issue an access token for a user.

        Args:
            user: User to issue the token for
            expires_minutes: Lifetime override

        Returns:
            Encoded JWT
        """
        if not self.private_key:
            raise TokenValidationError("No private key configured for token issuing")

        with tracer.start_as_current_span("auth.generate_access_token") as span:
            span.set_attributes({
                "auth.operation": "generate_access_token",
                "user.id": user.id,
                "user.role": user.role
            })

            now = datetime.now(timezone.utc)
            expires = now + timedelta(minutes=expires_minutes or self.access_token_expire_minutes)

            payload = {
                "sub": user.id,
                "role": user.role,
                "email": user.email,
                "phone": user.phone,
                "name": user.display_name,
                "iat": now,
                "exp": expires,
                "type": "access"
            }

            return jwt.encode(payload, self.private_key, algorithm=self.algorithm)

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate and decode an access token.

        Args:
            token: JWT token string to validate

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.operation", "validate_token")

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["sub", "exp"]}
                )

                if payload.get("type") != "access":
                    raise TokenValidationError("Invalid token type. Expected access")

                span.set_attributes({
                    "auth.validation_result": "success",
                    "user.id": payload.get("sub")
                })

                logger.debug(
                    "Token validated successfully",
                    extra={"extra_fields": {"user_id": payload.get("sub"), "role": payload.get("role")}}
                )

                return payload

            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")

            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

    def actor_from_token(self, token: str) -> Actor:
        """
        Validate a token and build the Actor it identifies.

        Raises:
            TokenValidationError: If the token is invalid or its claims are incomplete
        """
        payload = self.validate_token(token)
        try:
            return Actor(
                user_id=payload["sub"],
                role=str(payload.get("role", "")).upper(),
                email=payload.get("email"),
                phone=payload.get("phone"),
                name=payload.get("name")
            )
        except PydanticValidationError as e:
            logger.warning(f"Token claims rejected: {e.error_count()} errors")
            raise TokenValidationError("Token claims are incomplete")
