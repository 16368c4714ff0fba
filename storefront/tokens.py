# storefront/tokens.py
import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from passlib.context import CryptContext

from .config import Settings
from .errors import InvalidToken, TokenExpired

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"
RESET = "reset"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def generate_otp() -> str:
    """Six-digit numeric code, 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _encode(claims: Dict[str, Any], secret: str, algorithm: str, expires: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({"iat": now, "exp": now + expires})
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def create_access_token(settings: Settings, user_id: str, role: str) -> str:
    return _encode(
        {"sub": user_id, "role": role, "type": ACCESS},
        settings.access_token_secret,
        settings.jwt_algorithm,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(settings: Settings, user_id: str, role: str) -> str:
    # jti keeps two logins in the same second from minting the same token
    return _encode(
        {"sub": user_id, "role": role, "type": REFRESH, "jti": uuid.uuid4().hex},
        settings.refresh_token_secret,
        settings.jwt_algorithm,
        timedelta(days=settings.refresh_token_expire_days),
    )


def create_reset_token(settings: Settings, user_id: str) -> str:
    return _encode(
        {"sub": user_id, "type": RESET, "jti": uuid.uuid4().hex},
        settings.reset_password_secret,
        settings.jwt_algorithm,
        timedelta(minutes=settings.reset_token_expire_minutes),
    )


_SECRETS = {
    ACCESS: "access_token_secret",
    REFRESH: "refresh_token_secret",
    RESET: "reset_password_secret",
}


def decode_token(settings: Settings, token: str, kind: str) -> Dict[str, Any]:
    """
    Verify signature, expiry and token kind. Raises TokenExpired for an
    expired signature and InvalidToken for anything else.
    """
    secret = getattr(settings, _SECRETS[kind])
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise InvalidToken()
    if payload.get("type") != kind or not payload.get("sub"):
        raise InvalidToken()
    return payload
