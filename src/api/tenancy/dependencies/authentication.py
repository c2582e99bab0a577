"""Authentication dependencies for the tenancy API.

Bearer tokens are validated against the OIDC provider's JWKS; the
validated claims are the only source of a caller's tenants and roles.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2AuthorizationCodeBearer

from infrastructure.settings import OIDCSettings, get_oidc_settings
from shared_kernel.auth import InvalidTokenError, JWTValidator, TokenClaims
from shared_kernel.auth.observability import DefaultJWTValidatorProbe


def _create_oauth2_scheme() -> OAuth2AuthorizationCodeBearer:
    """Create OAuth2 security scheme for Swagger UI integration."""
    issuer = get_oidc_settings().issuer_url

    return OAuth2AuthorizationCodeBearer(
        authorizationUrl=f"{issuer}/protocol/openid-connect/auth",
        tokenUrl=f"{issuer}/protocol/openid-connect/token",
        refreshUrl=f"{issuer}/protocol/openid-connect/token",
        scopes={"openid": "OpenID Connect", "profile": "User profile"},
        auto_error=False,
    )


oauth2_scheme = _create_oauth2_scheme()


@lru_cache
def get_jwt_validator() -> JWTValidator:
    """Get cached JWT validator.

    A single instance is reused across requests so its JWKS cache is shared.
    """
    settings = get_oidc_settings()
    return JWTValidator(
        issuer_url=settings.issuer_url,
        audience=settings.audience,
        probe=DefaultJWTValidatorProbe(),
        user_id_claim=settings.user_id_claim,
        username_claim=settings.username_claim,
        tenant_claim=settings.tenant_claim,
        roles_claim=settings.roles_claim,
    )


async def get_token_claims(
    validator: Annotated[JWTValidator, Depends(get_jwt_validator)],
    token: Annotated[str | None, Depends(oauth2_scheme)] = None,
) -> TokenClaims:
    """Validate the bearer token of the request.

    Raises:
        HTTPException 401: If the token is missing or invalid
    """
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await validator.validate_token(token)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def require_operator(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    settings: Annotated[OIDCSettings, Depends(get_oidc_settings)],
) -> TokenClaims:
    """Require the operator role for migration endpoints.

    Raises:
        HTTPException 403: If the principal lacks the operator role
    """
    if settings.operator_role not in claims.roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{settings.operator_role}' required",
        )
    return claims
