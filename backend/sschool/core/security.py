from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from sschool.core.config import Settings
from sschool.core.exceptions import InvalidTokenError, TokenExpiredError


class PasswordHasher:
    """bcrypt hashing with a fixed cost factor.

    One instance is built from settings at startup and shared by every code
    path that sets a password, so registration, admin-create and both update
    flows always hash with the same number of rounds.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        # bcrypt salts every hash itself, so equal passwords never share a digest
        # deprecated="auto" lets passlib flag digests made with an older scheme
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, plaintext: str) -> str:
        # Cost factor comes from BCRYPT_ROUNDS; raising it slows every login and write
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, digest: Optional[str]) -> bool:
        """Constant-time check; a malformed digest reads as a wrong password"""
        # Accounts without a stored digest can never log in
        if not digest:
            return False
        try:
            return self._context.verify(plaintext, digest)
        except (ValueError, TypeError):
            # passlib raises on digests it cannot identify; treat as a mismatch
            return False


class TokenService:
    """Issues and verifies signed bearer tokens.

    Claims are ``{"sub": <user id>, "role": <role>, "iat", "exp"}``. Tokens are
    valid for a fixed period from issuance and cannot be refreshed or revoked.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, subject_id: str, role: str, now: Optional[datetime] = None) -> str:
        # ``now`` is only passed by tests that need a fixed issue time
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "role": role,
            # JWT NumericDate values are whole seconds
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        # Signed with SECRET_KEY; rotating it invalidates every issued token
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """Return the decoded claims.

        Raises TokenExpiredError once ``exp`` has passed and InvalidTokenError
        for anything else that fails decoding (bad signature, garbage input,
        missing subject).
        """
        try:
            # Checks signature and exp; a token is accepted through its exp second
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise InvalidTokenError()

        # A signed token without a subject cannot be mapped to a user
        if not claims.get("sub"):
            raise InvalidTokenError()
        return claims


def build_password_hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


def build_token_service(settings: Settings) -> TokenService:
    return TokenService(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        ttl=timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
    )
