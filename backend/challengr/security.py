from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any
import jwt
from challengr.config import settings

JWT_ALG = "HS256"

# Tokens are issued by the identity provider; this helper mirrors its claims
# for local development and tests.
def make_access_token(
    sub: str,
    *,
    role: str = "user",
    premium: bool = False,
    username: str | None = None,
    ttl_min: int | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "type": "access",
        "role": role,
        "premium": premium,
        "iat": now.timestamp(),
        "exp": int((now + timedelta(minutes=ttl_min or settings.access_ttl_min)).timestamp()),
    }
    if username:
        payload["username"] = username
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)

def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
