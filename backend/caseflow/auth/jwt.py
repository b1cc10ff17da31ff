"""JWT access tokens: HS256, carrying the user id, email and role."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from caseflow.config import settings

ALGORITHM = "HS256"
TOKEN_TYPE = "access"

_REQUIRED_CLAIMS = ("sub", "role", "exp")


def create_access_token(user_id: str, email: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
        "type": TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry and return the claims.

    Raises JWTError if the token is malformed, expired, not an access
    token, or missing the subject or role.
    """
    claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    if claims.get("type") != TOKEN_TYPE:
        raise JWTError("Not an access token")
    missing = [c for c in _REQUIRED_CLAIMS if not claims.get(c)]
    if missing:
        raise JWTError(f"Token is missing claims: {', '.join(missing)}")
    return claims
