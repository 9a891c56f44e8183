"""Unit tests for token issuance and verification."""

from __future__ import annotations

from datetime import timedelta

import pytest

from sessionguard.services._shared.errors import KeyMaterialError
from sessionguard.services.tokens.dto import Identity, VerifyStatus
from sessionguard.services.tokens.service import TokenService, hash_token

ANA = Identity(user_id="1", role="admin", email="ana@example.com", name="Ana")


def test_access_token_claims(tokens, codec, clock):
    access = tokens.issue_access_token(ANA, device_id="laptop")
    claims = codec.decode(access.token)

    assert claims["sub"] == "1"
    assert claims["role"] == "admin"
    assert claims["email"] == "ana@example.com"
    assert claims["name"] == "Ana"
    assert claims["typ"] == "access"
    assert claims["did"] == "laptop"
    assert claims["jti"] == access.jti
    assert claims["iat"] == int(clock().timestamp())
    assert claims["exp"] - claims["iat"] == 600
    assert access.expires_in == 600


def test_access_token_without_device_omits_did(tokens, codec):
    claims = codec.decode(tokens.issue_access_token(ANA).token)
    assert "did" not in claims


def test_refresh_token_uses_record_id_as_jti(tokens, codec):
    issued = tokens.issue_refresh_token("1", "laptop", record_id="rec-1")
    claims = codec.decode(issued.raw)

    assert issued.id == "rec-1"
    assert claims["jti"] == "rec-1"
    assert claims["typ"] == "refresh"
    assert claims["sub"] == "1"
    assert claims["did"] == "laptop"
    assert issued.expires_at - issued.issued_at == timedelta(days=1)


def test_every_token_has_unique_jti(tokens):
    jtis = {tokens.issue_access_token(ANA).jti for _ in range(20)}
    assert len(jtis) == 20


def test_verify_valid_access_token(tokens):
    verdict = tokens.verify(tokens.issue_access_token(ANA).token, expected_type="access")
    assert verdict.is_valid
    assert verdict.claims["sub"] == "1"


def test_verify_rejects_wrong_type(tokens):
    refresh = tokens.issue_refresh_token("1")
    verdict = tokens.verify(refresh.raw, expected_type="access")
    assert verdict.status is VerifyStatus.INVALID
    assert verdict.reason == "wrong_type"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (599, VerifyStatus.VALID),
        (600, VerifyStatus.EXPIRED),
        (601, VerifyStatus.EXPIRED),
    ],
)
def test_expiry_boundary(tokens, clock, seconds, expected):
    """``exp <= now`` is expired, one second earlier is still valid."""
    token = tokens.issue_access_token(ANA).token
    clock.advance(seconds=seconds)
    assert tokens.verify(token, expected_type="access").status is expected


def test_expired_verdict_keeps_claims(tokens, clock):
    token = tokens.issue_access_token(ANA).token
    clock.advance(hours=1)
    verdict = tokens.verify(token, expected_type="access")
    assert verdict.status is VerifyStatus.EXPIRED
    assert verdict.claims["sub"] == "1"


def test_tampered_token_is_invalid_not_raised(tokens):
    token = tokens.issue_access_token(ANA).token
    head, payload, sig = token.split(".")
    flipped = sig[:-2] + ("AA" if sig[-2:] != "AA" else "BB")
    verdict = tokens.verify(f"{head}.{payload}.{flipped}", expected_type="access")
    assert verdict.status is VerifyStatus.INVALID


def test_garbage_is_invalid(tokens):
    assert tokens.verify("garbage", expected_type="access").status is VerifyStatus.INVALID


@pytest.mark.parametrize("missing", ["sub", "jti", "exp"])
def test_missing_required_claims_is_invalid(tokens, codec, clock, missing):
    claims = {
        "sub": "1",
        "jti": "x",
        "typ": "access",
        "exp": int(clock().timestamp()) + 60,
    }
    claims.pop(missing)
    assert tokens.verify(codec.encode(claims), expected_type="access").status is VerifyStatus.INVALID


def test_hash_token_is_sha256_hex():
    digest = hash_token("raw-token")
    assert len(digest) == 64
    assert digest == TokenService.hash_token("raw-token")
    assert digest != hash_token("raw-token2")


def test_broken_key_material_propagates(tokens):
    class BrokenCodec:
        def encode(self, claims):
            raise KeyMaterialError("no key")

        def decode(self, token):
            raise KeyMaterialError("no key")

    broken = TokenService(codec=BrokenCodec(), lifetimes=tokens.lifetimes, clock=tokens.clock)
    with pytest.raises(KeyMaterialError):
        broken.issue_access_token(ANA)
    with pytest.raises(KeyMaterialError):
        broken.verify("a.b.c")
