"""Credential handling: password hashing and bearer token issuance."""

from datetime import timedelta
from typing import Any

import bcrypt
import jwt
from pydantic import SecretStr

from taskboard_service.core.errors import InvalidToken
from taskboard_service.models.base import utcnow
from taskboard_service.models.users import User
from taskboard_service.utils.logging import get_logger

logger = get_logger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt password hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """Hash a password for storage."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its stored hash."""
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("ascii"))
        except ValueError:
            logger.warning("malformed_password_hash")
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend the same work as a real check when the user does not exist."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=self.rounds))
        bcrypt.checkpw(self._encode(password), self._dummy_hash)


class TokenService:
    """Issues and verifies short-lived HMAC-signed JWTs.

    Issued tokens carry the user id in ``sub`` plus ``username`` and
    ``role``. Older tokens carried only ``userId`` holding a username; those
    still verify and are interpreted by the principal resolver.
    """

    def __init__(
        self,
        secret: SecretStr | str,
        algorithm: str = "HS256",
        expire_minutes: int = 10,
    ) -> None:
        """Initialize token service.

        Args:
            secret: Signing secret
            algorithm: HMAC algorithm name
            expire_minutes: Token lifetime
        """
        self._secret = secret.get_secret_value() if isinstance(secret, SecretStr) else secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, user: User) -> str:
        """Issue a token for an authenticated user."""
        now = utcnow()
        payload = {
            "sub": user.id,
            "username": user.username,
            "role": user.role,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def encode_claims(self, claims: dict[str, Any]) -> str:
        """Sign arbitrary claims (tooling and tests)."""
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """Verify signature and expiry and return the claims.

        Raises:
            InvalidToken: If the token is expired, tampered with or malformed
        """
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken("Invalid token", details=str(e)) from e
