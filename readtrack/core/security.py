from datetime import datetime, timedelta
from typing import Optional
import bcrypt
from jose import JWTError, jwt
from readtrack.core.config import settings


def _truncate_password(password: str) -> bytes:
    """
    Ensure the password is at most 72 bytes when UTF-8 encoded.
    Bcrypt ignores everything past 72 bytes, and recent bcrypt releases
    raise if we don't truncate.
    """
    if password is None:
        return b""

    if not isinstance(password, str):
        password = str(password)

    raw = password.encode("utf-8")
    if len(raw) <= 72:
        return raw

    # Drop any partial multibyte char at the end
    return raw[:72].decode("utf-8", errors="ignore").encode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_truncate_password(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(_truncate_password(password), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
