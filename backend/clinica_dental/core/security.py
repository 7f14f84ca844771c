"""Bearer token helpers.

Sign-in happens at the hosted identity provider; the API only verifies the
session token it issues and resolves ``sub`` to a local staff member. Minting
is kept for local development and the test-suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt


class InvalidTokenError(ValueError):
    pass


def create_access_token(
    *,
    subject: str,
    secret: str,
    alg: str,
    expires_minutes: int,
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if issuer:
        claims["iss"] = issuer
    if audience:
        claims["aud"] = audience
    if extra:
        claims.update(extra)
    return jwt.encode(claims, secret, algorithm=alg)


def decode_access_token(
    token: str,
    *,
    secret: str,
    alg: str,
    audience: Optional[str] = None,
    issuer: Optional[str] = None,
) -> Dict[str, Any]:
    options = {"verify_aud": audience is not None}
    return jwt.decode(token, secret, algorithms=[alg], audience=audience, issuer=issuer, options=options)


def subject_from_token(token: str, **kwargs: Any) -> str:
    """Return the identity provider user id carried in ``sub``."""
    try:
        claims = decode_access_token(token, **kwargs)
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    subject = claims.get("sub")
    if not subject:
        raise InvalidTokenError("Token has no subject")
    return str(subject)
