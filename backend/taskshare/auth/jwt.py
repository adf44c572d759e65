"""JWT token creation and decoding.

Token claims:
  - sub:   user ID
  - type:  "access"
  - exp:   expiry timestamp

Tokens are issued by the identity provider in production; the helper
here is used by the management CLI and the tests.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from taskshare.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}


def user_id_from_token(token: str | None) -> str | None:
    """Return the verified caller id carried by an access token, if any."""
    if not token:
        return None
    payload = decode_token(token)
    if payload.get("type") != "access":
        return None
    return payload.get("sub") or None
