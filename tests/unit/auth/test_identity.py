from __future__ import annotations

import time

import pytest

from dealflow.actions import deals as deal_actions
from dealflow.auth.identity import StaticIdentity, TokenIdentity, bearer_identity
from dealflow.auth.jwt import issue_access_token, read_claims, sign_claims, verify_access_token
from dealflow.core.exceptions import AuthenticationError

SECRET = "test-secret"


def _claims(**overrides):
    claims = {"sub": "7", "token_use": "access", "exp": int(time.time()) + 300}
    claims.update(overrides)
    return {key: value for key, value in claims.items() if value is not None}


def test_access_token_roundtrip_contains_required_claims():
    token = issue_access_token(owner_id=10, secret=SECRET)
    claims = read_claims(token, secret=SECRET)
    assert claims["sub"] == "10"
    assert claims["token_use"] == "access"
    assert "exp" in claims
    assert "iat" in claims
    assert verify_access_token(token, secret=SECRET) == 10


def test_verify_rejects_wrong_secret():
    token = issue_access_token(owner_id=10, secret=SECRET)
    with pytest.raises(AuthenticationError, match="signature"):
        verify_access_token(token, secret="other-secret")


def test_verify_rejects_tampered_payload():
    header, _body, signature = issue_access_token(owner_id=10, secret=SECRET).split(".")
    forged_body = sign_claims(_claims(sub="99"), secret="attacker").split(".")[1]
    with pytest.raises(AuthenticationError):
        verify_access_token(f"{header}.{forged_body}.{signature}", secret=SECRET)


def test_verify_rejects_expired_token():
    token = issue_access_token(owner_id=10, secret=SECRET, ttl_minutes=-5)
    with pytest.raises(AuthenticationError, match="expired"):
        verify_access_token(token, secret=SECRET)


@pytest.mark.parametrize(
    "claims",
    [
        _claims(token_use="refresh"),
        _claims(token_use=None),
        _claims(sub=None),
        _claims(sub="not-a-number"),
        _claims(exp=None),
    ],
)
def test_verify_rejects_unusable_claims(claims):
    with pytest.raises(AuthenticationError):
        verify_access_token(sign_claims(claims, secret=SECRET), secret=SECRET)


def test_signing_requires_secret():
    with pytest.raises(AuthenticationError):
        issue_access_token(owner_id=1, secret="")


def test_token_identity_resolves_owner():
    token = issue_access_token(owner_id=7, secret=SECRET)
    assert TokenIdentity(token=token, secret=SECRET).get_current_owner() == 7


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c.d", "a.b.é", "é.é.é", "a.b.!!!"])
def test_token_identity_rejects_missing_or_malformed_tokens(token):
    with pytest.raises(AuthenticationError):
        TokenIdentity(token=token, secret=SECRET).get_current_owner()


def test_non_ascii_token_fails_as_outcome(patched_sessions):
    outcome = deal_actions.list_deals(TokenIdentity(token="a.b.é", secret=SECRET))

    assert outcome.success is False
    assert outcome.error.code == "authentication_error"


def test_static_identity():
    assert StaticIdentity(owner_id=3).get_current_owner() == 3
    with pytest.raises(AuthenticationError):
        StaticIdentity(owner_id=None).get_current_owner()


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer"])
def test_bearer_identity_without_usable_header_is_anonymous(header):
    assert bearer_identity(header).token is None


def test_bearer_identity_extracts_token():
    assert bearer_identity("bearer  abc.def.ghi ").token == "abc.def.ghi"
