"""Tests for Clerk session token verification (PEM and JWKS key sources)."""

import httpx
import pytest
from jose import jwk

from clarity.exceptions import UnauthorizedError
from clarity.services.clerk_session import ClerkSessionVerifier
from clarity.tests.tokens import PUBLIC_KEY_PEM, make_session_token

JWKS_URL = "https://api.clerk.test/v1/jwks"
KID = "ins_test_key"


def _pem_verifier(**kwargs):
    return ClerkSessionVerifier(
        jwt_key=PUBLIC_KEY_PEM,
        jwks_url=JWKS_URL,
        secret_key="sk_test_clarity",
        **kwargs,
    )


def _jwks_verifier(handler, **kwargs):
    return ClerkSessionVerifier(
        jwt_key=None,
        jwks_url=JWKS_URL,
        secret_key="sk_test_clarity",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


def test_valid_token_yields_session():
    session = _pem_verifier().verify(make_session_token("user_abc"))

    assert session.user_id == "user_abc"
    assert session.session_id == "sess_test"
    assert session.claims["sub"] == "user_abc"


def test_expired_token_is_rejected():
    with pytest.raises(UnauthorizedError):
        _pem_verifier().verify(make_session_token(expires_in=-60))


def test_garbage_token_is_rejected():
    with pytest.raises(UnauthorizedError):
        _pem_verifier().verify("not.a.jwt")


def test_token_without_subject_is_rejected():
    with pytest.raises(UnauthorizedError):
        _pem_verifier().verify(make_session_token(sub=""))


def test_unauthorized_party_is_rejected():
    verifier = _pem_verifier(authorized_parties=["https://app.claritytracking.com"])

    with pytest.raises(UnauthorizedError):
        verifier.verify(make_session_token(azp="https://evil.example.com"))

    session = verifier.verify(make_session_token(azp="https://app.claritytracking.com"))
    assert session.user_id


def test_jwks_key_is_fetched_once_and_cached():
    public_jwk = jwk.construct(PUBLIC_KEY_PEM, algorithm="RS256").to_dict()
    public_jwk["kid"] = KID
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        assert request.headers["Authorization"] == "Bearer sk_test_clarity"
        return httpx.Response(200, json={"keys": [public_jwk]})

    verifier = _jwks_verifier(handler)
    token = make_session_token("user_jwks", kid=KID)

    assert verifier.verify(token).user_id == "user_jwks"
    assert verifier.verify(token).user_id == "user_jwks"
    assert len(calls) == 1


def test_unknown_kid_is_rejected():
    verifier = _jwks_verifier(lambda request: httpx.Response(200, json={"keys": []}))

    with pytest.raises(UnauthorizedError):
        verifier.verify(make_session_token(kid="ins_rotated_away"))


def test_jwks_fetch_failure_is_unauthorized():
    verifier = _jwks_verifier(lambda request: httpx.Response(503))

    with pytest.raises(UnauthorizedError):
        verifier.verify(make_session_token(kid=KID))


def test_unknown_kids_do_not_refetch_jwks_within_refresh_interval():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"keys": []})

    verifier = _jwks_verifier(handler)

    for attempt in range(5):
        with pytest.raises(UnauthorizedError):
            verifier.verify(make_session_token(kid=f"ins_forged_{attempt}"))

    assert len(calls) == 1


def test_jwks_is_refetched_once_refresh_interval_has_passed():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"keys": []})

    verifier = _jwks_verifier(handler, min_refresh_seconds=0)

    for attempt in range(3):
        with pytest.raises(UnauthorizedError):
            verifier.verify(make_session_token(kid=f"ins_rotated_{attempt}"))

    assert len(calls) == 3
