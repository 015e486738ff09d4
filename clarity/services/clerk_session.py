"""Clerk session token verification.

WHAT: Verifies the RS256 session JWT that Clerk issues to signed-in browsers
WHY: Authentication is delegated to Clerk; every protected endpoint trusts
     only a token whose signature, expiry and authorized party check out

Two key sources:
    - CLERK_JWT_KEY (PEM): networkless verification, preferred in production
    - Clerk Backend API JWKS: fetched on first use of an unseen `kid`,
      at most once per JWKS_MIN_REFRESH_SECONDS

REFERENCES:
    - https://clerk.com/docs/backend-requests/handling/manual-jwt
    - https://clerk.com/docs/reference/backend-api/tag/JWKS
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from jose import JWTError, jwt

from ..exceptions import UnauthorizedError
from ..settings import Settings

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
CLOCK_SKEW_LEEWAY_SECONDS = 5

# Unseen key ids trigger at most one JWKS fetch per interval
JWKS_MIN_REFRESH_SECONDS = 60


@dataclass(frozen=True)
class ClerkSession:
    """A verified session. `user_id` is the Clerk user id (the `sub` claim)."""

    user_id: str
    session_id: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


class ClerkSessionVerifier:
    """Verify Clerk session tokens against a PEM key or the Clerk JWKS.

    Usage:
        verifier = ClerkSessionVerifier.from_settings(get_settings())
        session = verifier.verify(token)  # raises UnauthorizedError
    """

    def __init__(
        self,
        *,
        jwt_key: Optional[str],
        jwks_url: str,
        secret_key: str,
        authorized_parties: Optional[List[str]] = None,
        http_client: Optional[httpx.Client] = None,
        min_refresh_seconds: float = JWKS_MIN_REFRESH_SECONDS,
    ):
        self._jwt_key = jwt_key
        self._jwks_url = jwks_url
        self._secret_key = secret_key
        self._authorized_parties = authorized_parties or []
        self._http_client = http_client
        self._jwks: Dict[str, Dict[str, Any]] = {}
        self._min_refresh_seconds = min_refresh_seconds
        self._jwks_fetched_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.Client] = None) -> "ClerkSessionVerifier":
        return cls(
            jwt_key=settings.CLERK_JWT_KEY,
            jwks_url=f"{settings.CLERK_API_URL.rstrip('/')}/jwks",
            secret_key=settings.CLERK_SECRET_KEY,
            authorized_parties=settings.authorized_parties,
            http_client=http_client,
        )

    def verify(self, token: str) -> ClerkSession:
        """Validate a session token and return its identity.

        Raises:
            UnauthorizedError: malformed, expired, wrongly signed, or issued
            for a party that is not authorized.
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise UnauthorizedError("Malformed session token") from exc

        key = self._jwt_key or self._signing_key(header.get("kid"))

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                options={"verify_aud": False, "leeway": CLOCK_SKEW_LEEWAY_SECONDS},
            )
        except JWTError as exc:
            logger.info("[AUTH] Session token rejected: %s", exc)
            raise UnauthorizedError("Invalid session token") from exc

        azp = claims.get("azp")
        if self._authorized_parties and azp and azp not in self._authorized_parties:
            logger.warning("[AUTH] Session token from unauthorized party: %s", azp)
            raise UnauthorizedError("Invalid session token")

        subject = claims.get("sub")
        if not subject:
            raise UnauthorizedError("Invalid session token payload")

        return ClerkSession(user_id=subject, session_id=claims.get("sid"), claims=claims)

    def _signing_key(self, kid: Optional[str]) -> Dict[str, Any]:
        if not kid:
            raise UnauthorizedError("Session token has no key id")
        if kid not in self._jwks and self._refresh_allowed():
            self._refresh_jwks()
        if kid not in self._jwks:
            raise UnauthorizedError("Session token signed with unknown key")
        return self._jwks[kid]

    def _refresh_allowed(self) -> bool:
        if self._jwks_fetched_at is None:
            return True
        return time.monotonic() - self._jwks_fetched_at >= self._min_refresh_seconds

    def _refresh_jwks(self) -> None:
        self._jwks_fetched_at = time.monotonic()
        client = self._http_client or httpx.Client(timeout=10.0)
        try:
            response = client.get(
                self._jwks_url,
                headers={"Authorization": f"Bearer {self._secret_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("[AUTH] Failed to fetch Clerk JWKS: %s", exc)
            raise UnauthorizedError("Unable to verify session") from exc
        finally:
            if self._http_client is None:
                client.close()

        keys = response.json().get("keys", [])
        self._jwks = {key["kid"]: key for key in keys if key.get("kid")}
        logger.info("[AUTH] Loaded %d Clerk signing key(s)", len(self._jwks))
