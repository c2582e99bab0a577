"""Bearer token authentication shared by the tenancy context."""

from shared_kernel.auth.jwt_validator import (
    InvalidTokenError,
    JWTValidator,
    TokenClaims,
)
from shared_kernel.auth.observability import (
    DefaultJWTValidatorProbe,
    JWTValidatorProbe,
)

__all__ = [
    "DefaultJWTValidatorProbe",
    "InvalidTokenError",
    "JWTValidator",
    "JWTValidatorProbe",
    "TokenClaims",
]
