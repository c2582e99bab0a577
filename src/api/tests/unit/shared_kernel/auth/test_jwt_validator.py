"""Unit tests for bearer token validation.

Tokens are signed with an RSA key generated per test session; the OIDC
provider is an httpx client double serving the discovery document and
the matching JWKS.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from shared_kernel.auth.jwt_validator import (
    InvalidTokenError,
    JWTValidator,
    TokenClaims,
)
from shared_kernel.auth.observability import JWTValidatorProbe

ISSUER = "https://auth.example.com/realms/tenantgate"
AUDIENCE = "tenantgate"
KID = "signing-key-1"


@pytest.fixture(scope="session")
def signing_key() -> tuple[str, str]:
    """RSA key pair as (private PEM, public PEM)."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return private_pem, public_pem


@pytest.fixture(scope="session")
def jwks(signing_key) -> dict[str, Any]:
    """JWKS document publishing the public key."""
    key = jwk.construct(signing_key[1], "RS256").to_dict()
    key.update(kid=KID, use="sig", alg="RS256")
    return {"keys": [key]}


@pytest.fixture
def make_token(signing_key):
    """Build signed tokens; keyword arguments override or add claims."""

    def _make(expires_in: timedelta = timedelta(hours=1), **claims: Any) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": "user-123",
            "preferred_username": "alice",
            "iss": ISSUER,
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int((now + expires_in).timestamp()),
        }
        payload.update(claims)
        return jwt.encode(
            payload, signing_key[0], algorithm="RS256", headers={"kid": KID}
        )

    return _make


def _response(body: dict[str, Any]) -> MagicMock:
    response = MagicMock()
    response.json.return_value = body
    response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def provider(jwks) -> Iterator[AsyncMock]:
    """Patched httpx client answering discovery and JWKS requests."""
    discovery = {"issuer": ISSUER, "jwks_uri": f"{ISSUER}/protocol/openid-connect/certs"}

    async def get(url: str, **kwargs: Any) -> MagicMock:
        if url.endswith("/.well-known/openid-configuration"):
            return _response(discovery)
        return _response(jwks)

    with patch("httpx.AsyncClient") as client_class:
        client = AsyncMock()
        client.get.side_effect = get
        client_class.return_value.__aenter__.return_value = client
        yield client


@pytest.fixture
def probe() -> MagicMock:
    return MagicMock(spec=JWTValidatorProbe)


@pytest.fixture
def validator(probe) -> JWTValidator:
    return JWTValidator(issuer_url=ISSUER, audience=AUDIENCE, probe=probe)


class TestTokenClaims:
    """Tests for the TokenClaims value object."""

    def test_defaults_to_no_tenants_or_roles(self) -> None:
        claims = TokenClaims(sub="user-123", preferred_username=None)
        assert claims.tenant_ids == ()
        assert claims.roles == frozenset()

    def test_is_immutable(self) -> None:
        claims = TokenClaims(sub="user-123", preferred_username="alice")
        with pytest.raises(AttributeError):
            claims.sub = "other"  # type: ignore[misc]


@pytest.mark.asyncio
class TestValidateToken:
    """Tests for JWTValidator.validate_token."""

    async def test_valid_token(self, validator, probe, provider, make_token) -> None:
        claims = await validator.validate_token(make_token())

        assert claims == TokenClaims(sub="user-123", preferred_username="alice")
        probe.token_accepted.assert_called_once_with(user_id="user-123", tenant_count=0)

    async def test_tenant_and_role_claims(
        self, validator, probe, provider, make_token
    ) -> None:
        """Tenant and role claims accept a string or a list; blanks and
        duplicates are dropped, claim order is kept."""
        token = make_token(
            tenant_id=["acme", " globex ", "acme", ""], roles="tenancy-operator"
        )

        claims = await validator.validate_token(token)

        assert claims.tenant_ids == ("acme", "globex")
        assert claims.roles == frozenset({"tenancy-operator"})
        probe.token_accepted.assert_called_once_with(user_id="user-123", tenant_count=2)

    async def test_custom_claim_names(self, probe, provider, make_token) -> None:
        validator = JWTValidator(
            issuer_url=ISSUER,
            audience=AUDIENCE,
            probe=probe,
            user_id_claim="uid",
            username_claim="email",
            tenant_claim="org",
            roles_claim="groups",
        )
        token = make_token(
            uid="u-9", email="bob@example.com", org="initech", groups=["viewer"]
        )

        claims = await validator.validate_token(token)

        assert claims.sub == "u-9"
        assert claims.preferred_username == "bob@example.com"
        assert claims.tenant_ids == ("initech",)
        assert claims.roles == frozenset({"viewer"})

    async def test_missing_username_is_none(self, probe, provider, make_token) -> None:
        validator = JWTValidator(
            issuer_url=ISSUER, audience=AUDIENCE, probe=probe, username_claim="nope"
        )

        claims = await validator.validate_token(make_token())

        assert claims.preferred_username is None

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"expires_in": timedelta(hours=-1)}, "expired"),
            ({"iss": "https://other.example.com/realms/x"}, "issuer"),
            ({"aud": "someone-else"}, "audience"),
            ({"tenant_id": {"id": "acme"}}, "unsupported claim"),
        ],
    )
    async def test_rejected_tokens(
        self, validator, probe, provider, make_token, overrides, message
    ) -> None:
        with pytest.raises(InvalidTokenError) as exc_info:
            await validator.validate_token(make_token(**overrides))

        assert message in str(exc_info.value).lower()
        probe.token_rejected.assert_called_once()
        probe.token_accepted.assert_not_called()

    async def test_tampered_signature(
        self, validator, probe, provider, make_token
    ) -> None:
        header_and_payload, _ = make_token().rsplit(".", 1)

        with pytest.raises(InvalidTokenError, match="(?i)signature|invalid"):
            await validator.validate_token(f"{header_and_payload}.forged")

        probe.token_rejected.assert_called_once()

    async def test_missing_user_id_claim(self, probe, provider, make_token) -> None:
        validator = JWTValidator(
            issuer_url=ISSUER, audience=AUDIENCE, probe=probe, user_id_claim="nope"
        )

        with pytest.raises(InvalidTokenError, match="claim"):
            await validator.validate_token(make_token())

    async def test_malformed_token_skips_key_fetch(
        self, validator, probe, provider
    ) -> None:
        with pytest.raises(InvalidTokenError, match="(?i)invalid"):
            await validator.validate_token("not.a.valid.jwt.token")

        provider.get.assert_not_called()
        probe.token_rejected.assert_called_once()


@pytest.mark.asyncio
class TestSigningKeys:
    """Tests for JWKS discovery and caching."""

    async def test_keys_are_cached(self, validator, probe, provider, make_token) -> None:
        await validator.validate_token(make_token(sub="user-1"))
        await validator.validate_token(make_token(sub="user-2"))

        # discovery + jwks, once
        assert provider.get.call_count == 2
        probe.signing_keys_fetched.assert_called_once_with(key_count=1)
        probe.signing_keys_cache_hit.assert_called_once()

    async def test_expired_cache_refetches(self, probe, provider, make_token) -> None:
        validator = JWTValidator(
            issuer_url=ISSUER,
            audience=AUDIENCE,
            probe=probe,
            jwks_cache_ttl=timedelta(seconds=0),
        )

        await validator.validate_token(make_token())
        await validator.validate_token(make_token())

        assert provider.get.call_count == 4

    async def test_provider_unreachable(self, validator, probe, make_token) -> None:
        with patch("httpx.AsyncClient") as client_class:
            client = AsyncMock()
            client.get.side_effect = httpx.ConnectError("Connection refused")
            client_class.return_value.__aenter__.return_value = client

            with pytest.raises(InvalidTokenError, match="fetch"):
                await validator.validate_token(make_token())

        probe.signing_keys_unavailable.assert_called_once()

    async def test_discovery_without_jwks_uri(self, validator, probe, make_token) -> None:
        with patch("httpx.AsyncClient") as client_class:
            client = AsyncMock()
            client.get.return_value = _response({"issuer": ISSUER})
            client_class.return_value.__aenter__.return_value = client

            with pytest.raises(InvalidTokenError, match="jwks_uri"):
                await validator.validate_token(make_token())

        probe.signing_keys_unavailable.assert_called_once()

    async def test_concurrent_validations_share_one_fetch(
        self, validator, jwks, make_token
    ) -> None:
        calls: list[str] = []

        async def slow_get(url: str, **kwargs: Any) -> MagicMock:
            calls.append(url)
            await asyncio.sleep(0.01)
            if url.endswith("openid-configuration"):
                return _response({"jwks_uri": f"{ISSUER}/certs"})
            return _response(jwks)

        with patch("httpx.AsyncClient") as client_class:
            client = AsyncMock()
            client.get.side_effect = slow_get
            client_class.return_value.__aenter__.return_value = client

            results = await asyncio.gather(
                *(validator.validate_token(make_token(sub=f"user-{i}")) for i in range(5))
            )

        assert [claims.sub for claims in results] == [f"user-{i}" for i in range(5)]
        assert len(calls) == 2
