"""Throwaway RS256 key pair and a Clerk-shaped session token factory for tests."""

import time
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)

PRIVATE_KEY_PEM = _PRIVATE_KEY.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.PKCS8,
    encryption_algorithm=serialization.NoEncryption(),
).decode()

PUBLIC_KEY_PEM = _PRIVATE_KEY.public_key().public_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

TEST_CLERK_ID = "user_2abcTEST"


def make_session_token(
    sub: str = TEST_CLERK_ID,
    expires_in: int = 300,
    kid: Optional[str] = None,
    **claims,
) -> str:
    """Sign a session token with the test key; negative expires_in gives an expired token."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "sid": "sess_test",
        "iat": now,
        "nbf": now,
        "exp": now + expires_in,
    }
    payload.update(claims)
    headers = {"kid": kid} if kid else None
    return jwt.encode(payload, PRIVATE_KEY_PEM, algorithm="RS256", headers=headers)
