"""Domain probe for bearer token validation.

Rejections are warnings: a burst of them usually means a client is
talking to the wrong realm or audience. Tenant counts are logged on
acceptance so multi-tenant credentials are visible without logging the
tenants themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class JWTValidatorProbe(Protocol):
    """Domain probe for bearer token validation."""

    def token_accepted(self, user_id: str, tenant_count: int) -> None: ...

    def token_rejected(self, reason: str) -> None: ...

    def signing_keys_fetched(self, key_count: int) -> None: ...

    def signing_keys_cache_hit(self) -> None: ...

    def signing_keys_unavailable(self, error: str) -> None: ...

    def with_context(self, context: ObservationContext) -> JWTValidatorProbe: ...


class DefaultJWTValidatorProbe:
    """Structlog implementation of JWTValidatorProbe."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultJWTValidatorProbe:
        return DefaultJWTValidatorProbe(logger=self._logger, context=context)

    def token_accepted(self, user_id: str, tenant_count: int) -> None:
        self._logger.debug(
            "bearer_token_accepted",
            user_id=user_id,
            tenant_count=tenant_count,
            **self._get_context_kwargs(),
        )

    def token_rejected(self, reason: str) -> None:
        self._logger.warning(
            "bearer_token_rejected",
            reason=reason,
            **self._get_context_kwargs(),
        )

    def signing_keys_fetched(self, key_count: int) -> None:
        self._logger.info(
            "oidc_signing_keys_fetched",
            key_count=key_count,
            **self._get_context_kwargs(),
        )

    def signing_keys_cache_hit(self) -> None:
        self._logger.debug("oidc_signing_keys_cache_hit", **self._get_context_kwargs())

    def signing_keys_unavailable(self, error: str) -> None:
        self._logger.error(
            "oidc_signing_keys_unavailable",
            error=error,
            **self._get_context_kwargs(),
        )
