"""Bearer token verification (ES256).

Tokens are minted by the platform's identity provider; this service only
verifies them.  Production sets JWT_PUBLIC_KEY to the provider's PEM
public key.  Dev and tests run without it: an ephemeral key pair is
generated on import and ``create_access_token`` signs with it, so a
local token can be minted without the provider.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from learning_progress.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "learning-platform-identity"
AUDIENCE = "learning-progress"
ACCESS_TOKEN_TTL_MIN = 15

_private_key = ec.generate_private_key(ec.SECP256R1())

if SETTINGS.jwt_public_key:
    _public_key = load_pem_public_key(SETTINGS.jwt_public_key.encode())
else:
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    """Sign a local access token (dev/test only; see module docstring)."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 so alg:none and alg-switching tokens are
    rejected.  Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
