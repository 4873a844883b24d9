"""Bearer-token identity provider backed by JWT."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import jwt

from ..config import IdentityConfig
from .keys import load_private_key, load_public_key


class AuthError(ValueError):
    """Raised when a credential cannot be accepted."""


class AuthRequired(AuthError):
    """No credential was presented."""


class AuthInvalid(AuthError):
    """The credential is malformed, expired, or not signed by us."""


@dataclass(frozen=True)
class Identity:
    subject: str
    verified: bool
    claims: dict[str, Any]


class IdentityProvider:
    def __init__(self, config: IdentityConfig) -> None:
        self._algorithm = config.algorithm
        self._issuer = config.issuer
        self._ttl = config.token_ttl_seconds
        self.require_verified = config.require_verified
        if config.algorithm == "EdDSA":
            self._verify_key: Any = load_public_key(config.public_key_pem)
            self._signing_key: Any = (
                load_private_key(config.private_key_pem) if config.private_key_pem else None
            )
        else:
            if not config.secret:
                raise ValueError("identity secret missing")
            self._verify_key = self._signing_key = config.secret

    def issue(self, subject: str, *, verified: bool = True, **extra: Any) -> str:
        if self._signing_key is None:
            raise AuthError("this provider can only verify tokens")
        now = int(time.time())
        claims = {
            **extra,
            "sub": subject,
            "verified": verified,
            "iss": self._issuer,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def verify(self, token: str | None) -> Identity:
        if not token:
            raise AuthRequired("authentication required")
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthInvalid("token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthInvalid("invalid token") from exc
        return Identity(
            subject=str(claims["sub"]),
            verified=bool(claims.get("verified", False)),
            claims=claims,
        )

    def is_verified(self, identity: Identity) -> bool:
        return identity.verified or not self.require_verified
