"""Unit tests for the TenantContext shared value object and TenantContextProbe.

Tests the pure value object from the shared kernel and the domain probe
protocol + default implementation.
"""

from __future__ import annotations

import typing
from typing import get_type_hints
from unittest.mock import Mock

import pytest

from shared_kernel.middleware.observability.tenant_context_probe import (
    DefaultTenantContextProbe,
)
from shared_kernel.middleware.tenant_context import TenantContext


class TestTenantContext:
    """Tests for the TenantContext value object."""

    def test_tenant_context_is_immutable(self) -> None:
        """TenantContext should be a frozen dataclass."""
        context = TenantContext(tenant_id="acme", source="header")
        with pytest.raises(AttributeError):
            context.tenant_id = "something-else"  # type: ignore[misc]

    def test_tenant_context_stores_source_token(self) -> None:
        """TenantContext should store 'token' source for single-tenant credentials."""
        context = TenantContext(tenant_id="acme", source="token")
        assert context.source == "token"
        assert context.tenant_id == "acme"

    def test_tenant_context_equality(self) -> None:
        """Two TenantContext instances with same values should be equal."""
        a = TenantContext(tenant_id="abc", source="header")
        b = TenantContext(tenant_id="abc", source="header")
        assert a == b

    def test_tenant_context_inequality(self) -> None:
        """Two TenantContext instances with different values should not be equal."""
        a = TenantContext(tenant_id="abc", source="header")
        b = TenantContext(tenant_id="abc", source="token")
        assert a != b

    def test_source_field_is_literal_type(self) -> None:
        """TenantContext.source should be typed as Literal['token', 'header']."""
        hints = get_type_hints(TenantContext, include_extras=True)
        source_type = hints["source"]

        assert typing.get_origin(source_type) is typing.Literal
        assert set(typing.get_args(source_type)) == {"token", "header"}


class TestDefaultTenantContextProbe:
    """Tests for the DefaultTenantContextProbe implementation."""

    def test_implements_protocol(self) -> None:
        """DefaultTenantContextProbe should implement TenantContextProbe protocol."""
        probe = DefaultTenantContextProbe()
        assert callable(probe.tenant_resolved)
        assert callable(probe.tenant_claim_missing)
        assert callable(probe.tenant_ambiguous)
        assert callable(probe.tenant_selector_rejected)
        assert callable(probe.with_context)

    def test_with_context_returns_new_instance(self) -> None:
        """with_context should return a new probe instance with context bound."""
        from shared_kernel.observability_context import ObservationContext

        probe = DefaultTenantContextProbe()
        context = ObservationContext(request_id="req-123")
        new_probe = probe.with_context(context)

        assert new_probe is not probe
        assert isinstance(new_probe, DefaultTenantContextProbe)

    def test_bound_context_is_logged(self) -> None:
        from shared_kernel.observability_context import ObservationContext

        logger = Mock()
        probe = DefaultTenantContextProbe(logger=logger).with_context(
            ObservationContext(request_id="req-123")
        )

        probe.tenant_resolved(tenant_id="acme", user_id="u1", source="token")

        logger.debug.assert_called_once_with(
            "tenant_context_resolved",
            tenant_id="acme",
            user_id="u1",
            source="token",
            request_id="req-123",
        )

    def test_rejections_log_warnings(self) -> None:
        logger = Mock()
        probe = DefaultTenantContextProbe(logger=logger)

        probe.tenant_claim_missing(user_id="u1")
        probe.tenant_ambiguous(user_id="u1", candidate_count=2)
        probe.tenant_selector_rejected(requested="globex", user_id="u1")

        events = [c.args[0] for c in logger.warning.call_args_list]
        assert events == [
            "tenant_context_claim_missing",
            "tenant_context_ambiguous",
            "tenant_context_selector_rejected",
        ]

    def test_probe_methods_do_not_raise(self) -> None:
        """All probe methods should execute without raising exceptions."""
        probe = DefaultTenantContextProbe()

        probe.tenant_resolved(tenant_id="t1", user_id="u1", source="header")
        probe.tenant_claim_missing(user_id="u1")
        probe.tenant_ambiguous(user_id="u1", candidate_count=3)
        probe.tenant_selector_rejected(requested="bad", user_id="u1")
