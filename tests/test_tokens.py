from dataclasses import replace
from datetime import timedelta

import pytest
from jose import jwt

from ledger_core.exceptions import InvalidSignatureError, TokenExpiredError
from ledger_core.tokens import TokenService


def test_issue_and_validate(tokens):
    token = tokens.issue_token("account-1")

    assert tokens.validate_token(token) == "account-1"


def test_token_claims(tokens, clock):
    claims = jwt.get_unverified_claims(tokens.issue_token("account-1"))

    issued_at = int(clock.now.timestamp())
    assert claims == {"sub": "account-1", "iat": issued_at, "exp": issued_at + 3600}


def test_expiry_boundary(tokens, clock):
    token = tokens.issue_token("account-1")

    clock.advance(seconds=3599)
    assert tokens.validate_token(token) == "account-1"

    clock.advance(seconds=1)
    with pytest.raises(TokenExpiredError):
        tokens.validate_token(token)

    clock.advance(days=1)
    with pytest.raises(TokenExpiredError):
        tokens.validate_token(token)


def test_fractional_issue_time_keeps_full_lifetime(tokens, clock):
    clock.now = clock.now.replace(microsecond=700000)
    token = tokens.issue_token("account-1")

    clock.advance(seconds=3599, microseconds=600000)
    assert tokens.validate_token(token) == "account-1"

    clock.advance(microseconds=700000)
    with pytest.raises(TokenExpiredError):
        tokens.validate_token(token)


def test_custom_lifetime(settings, clock):
    service = TokenService(replace(settings, token_lifetime=timedelta(minutes=5)), clock=clock)
    token = service.issue_token("account-1")

    clock.advance(minutes=4, seconds=59)
    assert service.validate_token(token) == "account-1"
    clock.advance(seconds=1)
    with pytest.raises(TokenExpiredError):
        service.validate_token(token)


def test_tampered_payload_is_rejected(tokens):
    header, _, signature = tokens.issue_token("account-1").split(".")
    forged_payload = jwt.encode({"sub": "account-2", "iat": 0, "exp": 2**40}, "other").split(".")[1]

    with pytest.raises(InvalidSignatureError):
        tokens.validate_token(f"{header}.{forged_payload}.{signature}")


def test_token_signed_with_other_secret_is_rejected(settings, tokens, clock):
    foreign = TokenService(replace(settings, secret_key="another-secret"), clock=clock)

    with pytest.raises(InvalidSignatureError):
        tokens.validate_token(foreign.issue_token("account-1"))


def test_expired_and_forged_token_reports_signature(tokens, clock):
    header, payload, signature = tokens.issue_token("account-1").split(".")
    forged_signature = ("B" if signature[0] == "A" else "A") + signature[1:]
    clock.advance(hours=2)

    with pytest.raises(InvalidSignatureError):
        tokens.validate_token(f"{header}.{payload}.{forged_signature}")


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c", 12345])
def test_malformed_tokens(tokens, token):
    with pytest.raises(InvalidSignatureError):
        tokens.validate_token(token)


def test_missing_claims_are_rejected(settings, tokens):
    without_subject = jwt.encode({"exp": 2**40}, settings.secret_key, algorithm="HS256")
    without_expiry = jwt.encode({"sub": "account-1"}, settings.secret_key, algorithm="HS256")

    with pytest.raises(InvalidSignatureError):
        tokens.validate_token(without_subject)
    with pytest.raises(InvalidSignatureError):
        tokens.validate_token(without_expiry)
