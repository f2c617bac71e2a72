# onboardpro/utils/security.py
import secrets
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from onboardpro.config import Settings
from onboardpro.utils.dates import utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(data: dict, secret: str, expires_delta: timedelta, token_type: str) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": utcnow() + expires_delta, "type": token_type})
    return jwt.encode(to_encode, secret, algorithm=Settings.JWT["algorithm"])


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    expires_delta = expires_delta or timedelta(days=Settings.JWT["expire_days"])
    return _encode(data, Settings.JWT["secret"], expires_delta, ACCESS_TOKEN)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    expires_delta = expires_delta or timedelta(days=Settings.JWT["refresh_expire_days"])
    return _encode(data, Settings.JWT["refresh_secret"], expires_delta, REFRESH_TOKEN)


def create_token_pair(user) -> dict:
    claims = {"sub": str(user.id), "role": user.role.value}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def decode_token(token: str, token_type: str = ACCESS_TOKEN) -> Optional[dict]:
    """Verify a token and return its payload, or None if invalid or of the wrong type."""
    secret = Settings.JWT["refresh_secret"] if token_type == REFRESH_TOKEN else Settings.JWT["secret"]
    try:
        payload = jwt.decode(token, secret, algorithms=[Settings.JWT["algorithm"]])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def generate_otp() -> str:
    """Six-digit one-time password for password resets."""
    return f"{secrets.randbelow(1000000):06d}"


def generate_temporary_password(length: int = 12) -> str:
    return secrets.token_urlsafe(length)[:length]
