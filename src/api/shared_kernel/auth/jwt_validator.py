"""Bearer token validation against an OIDC provider.

Tokens are verified with the provider's signing keys (JWKS), which are
discovered through the OpenID configuration document and cached. The
validated claims are the only trusted source of a caller's tenants and
roles.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httpx
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

if TYPE_CHECKING:
    from shared_kernel.auth.observability import JWTValidatorProbe

_ALGORITHMS = ["RS256"]


@dataclass(frozen=True)
class TokenClaims:
    """Validated JWT claims.

    Attributes:
        sub: Subject (principal identifier).
        preferred_username: Human readable username, if present.
        tenant_ids: Tenants the principal may act for, in claim order.
        roles: Roles granted to the principal.
    """

    sub: str
    preferred_username: str | None
    tenant_ids: tuple[str, ...] = ()
    roles: frozenset[str] = field(default_factory=frozenset)


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be trusted."""

    pass


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    """Normalize a string-or-list claim into unique, non-empty strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise InvalidTokenError(f"Unsupported claim value: {value!r}")

    seen: dict[str, None] = {}
    for item in items:
        item = item.strip()
        if item:
            seen.setdefault(item)
    return tuple(seen)


class JWTValidator:
    """Validates bearer tokens issued by one OIDC realm."""

    def __init__(
        self,
        issuer_url: str,
        audience: str,
        probe: JWTValidatorProbe,
        user_id_claim: str = "sub",
        username_claim: str = "preferred_username",
        tenant_claim: str = "tenant_id",
        roles_claim: str = "roles",
        jwks_cache_ttl: timedelta = timedelta(hours=24),
    ):
        """Initialize the validator.

        Args:
            issuer_url: Realm URL; also the expected ``iss`` claim.
            audience: Expected ``aud`` claim.
            probe: Observability probe.
            user_id_claim: Claim holding the principal id.
            username_claim: Claim holding the display name.
            tenant_claim: Claim holding one tenant id or a list of them.
            roles_claim: Claim holding the principal's roles.
            jwks_cache_ttl: How long fetched signing keys are reused.
        """
        self._issuer_url = issuer_url.rstrip("/")
        self._audience = audience
        self._probe = probe
        self._user_id_claim = user_id_claim
        self._username_claim = username_claim
        self._tenant_claim = tenant_claim
        self._roles_claim = roles_claim
        self._cache_ttl = jwks_cache_ttl

        self._signing_keys: dict[str, Any] | None = None
        self._keys_fetched_at: datetime | None = None
        self._keys_lock = asyncio.Lock()

    async def validate_token(self, token: str) -> TokenClaims:
        """Verify a bearer token and extract its claims.

        Raises:
            InvalidTokenError: If the token is malformed, expired, signed by
                an unknown key, issued for another realm or audience, or
                lacks the principal id.
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            self._reject(f"Malformed token: {e}")
            raise InvalidTokenError(f"Invalid token format: {e}") from e
        if not header:
            self._reject("Missing token header")
            raise InvalidTokenError("Invalid token: missing header")

        payload = self._decode(token, await self._get_signing_keys())
        claims = self._extract_claims(payload)
        self._probe.token_accepted(
            user_id=claims.sub, tenant_count=len(claims.tenant_ids)
        )
        return claims

    def _decode(self, token: str, keys: dict[str, Any]) -> dict[str, Any]:
        try:
            return jwt.decode(
                token=token,
                key=keys,
                algorithms=_ALGORITHMS,
                audience=self._audience,
                issuer=self._issuer_url,
            )
        except ExpiredSignatureError as e:
            self._reject("Token expired")
            raise InvalidTokenError("Token has expired") from e
        except JWTClaimsError as e:
            message = str(e).lower()
            for claim in ("audience", "issuer"):
                if claim in message:
                    self._reject(f"Invalid {claim}")
                    raise InvalidTokenError(f"Invalid {claim} claim") from e
            self._reject(f"Claims error: {e}")
            raise InvalidTokenError(f"Invalid token claims: {e}") from e
        except JWTError as e:
            if "signature" in str(e).lower():
                self._reject("Invalid signature")
                raise InvalidTokenError("Invalid token signature") from e
            self._reject(f"JWT error: {e}")
            raise InvalidTokenError(f"Invalid token: {e}") from e

    def _extract_claims(self, payload: dict[str, Any]) -> TokenClaims:
        user_id = payload.get(self._user_id_claim)
        if user_id is None:
            self._reject(f"Missing {self._user_id_claim} claim")
            raise InvalidTokenError(f"Missing required claim: {self._user_id_claim}")

        try:
            tenant_ids = _as_str_tuple(payload.get(self._tenant_claim))
            roles = frozenset(_as_str_tuple(payload.get(self._roles_claim)))
        except InvalidTokenError as e:
            self._reject(str(e))
            raise

        username = payload.get(self._username_claim)
        return TokenClaims(
            sub=str(user_id),
            preferred_username=None if username is None else str(username),
            tenant_ids=tenant_ids,
            roles=roles,
        )

    def _reject(self, reason: str) -> None:
        self._probe.token_rejected(reason=reason)

    def _keys_are_fresh(self) -> bool:
        if self._signing_keys is None or self._keys_fetched_at is None:
            return False
        age = datetime.now(tz=timezone.utc) - self._keys_fetched_at
        return age < self._cache_ttl

    async def _get_signing_keys(self) -> dict[str, Any]:
        """Return cached signing keys, fetching them once per TTL."""
        if not self._keys_are_fresh():
            async with self._keys_lock:
                # Another request may have refreshed while we waited.
                if not self._keys_are_fresh():
                    return await self._fetch_signing_keys()
        self._probe.signing_keys_cache_hit()
        return self._signing_keys  # type: ignore[return-value]

    async def _fetch_signing_keys(self) -> dict[str, Any]:
        """Fetch the JWKS advertised by the provider's discovery document.

        Raises:
            InvalidTokenError: If the provider cannot be reached or does not
                advertise a JWKS endpoint.
        """
        discovery_url = f"{self._issuer_url}/.well-known/openid-configuration"
        try:
            async with httpx.AsyncClient() as client:
                discovery = await client.get(discovery_url)
                discovery.raise_for_status()
                jwks_uri = discovery.json().get("jwks_uri")
                if not jwks_uri:
                    self._probe.signing_keys_unavailable(
                        error="Missing jwks_uri in OpenID configuration"
                    )
                    raise InvalidTokenError(
                        "OIDC provider missing jwks_uri in configuration"
                    )
                response = await client.get(jwks_uri)
                response.raise_for_status()
                keys = response.json()
        except httpx.HTTPError as e:
            self._probe.signing_keys_unavailable(error=str(e))
            raise InvalidTokenError(
                f"Failed to fetch JWKS from OIDC provider: {e}"
            ) from e

        self._signing_keys = keys
        self._keys_fetched_at = datetime.now(tz=timezone.utc)
        self._probe.signing_keys_fetched(key_count=len(keys.get("keys", [])))
        return keys
