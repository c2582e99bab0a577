"""Unit tests for TenantContextResolver."""

from unittest.mock import create_autospec

import pytest

from shared_kernel.auth import TokenClaims
from shared_kernel.middleware.observability import TenantContextProbe
from tenancy.application import TenantContextResolver
from tenancy.domain.exceptions import MissingTenantContextError


def _claims(*tenant_ids: str) -> TokenClaims:
    return TokenClaims(sub="user-1", preferred_username="alice", tenant_ids=tenant_ids)


@pytest.fixture
def mock_probe():
    return create_autospec(TenantContextProbe, instance=True)


@pytest.fixture
def resolver(mock_probe) -> TenantContextResolver:
    return TenantContextResolver(probe=mock_probe)


class TestSingleTenantCredential:
    """Credentials carrying one tenant."""

    def test_resolves_from_token(self, resolver, mock_probe):
        context = resolver.resolve(_claims("acme"))

        assert context.tenant_id == "acme"
        assert context.source == "token"
        mock_probe.tenant_resolved.assert_called_once_with(
            tenant_id="acme", user_id="user-1", source="token"
        )

    def test_selector_naming_the_tenant_is_accepted(self, resolver):
        context = resolver.resolve(_claims("acme"), selector="acme")

        assert context.tenant_id == "acme"

    def test_selector_naming_other_tenant_is_rejected(self, resolver, mock_probe):
        with pytest.raises(MissingTenantContextError) as exc_info:
            resolver.resolve(_claims("acme"), selector="globex")

        assert not exc_info.value.ambiguous
        mock_probe.tenant_selector_rejected.assert_called_once_with(
            requested="globex", user_id="user-1"
        )


class TestMultiTenantCredential:
    """Credentials carrying several tenants."""

    def test_selector_picks_granted_tenant(self, resolver):
        context = resolver.resolve(_claims("acme", "globex"), selector="globex")

        assert context.tenant_id == "globex"
        assert context.source == "header"

    def test_missing_selector_is_ambiguous(self, resolver, mock_probe):
        with pytest.raises(MissingTenantContextError) as exc_info:
            resolver.resolve(_claims("acme", "globex"))

        assert exc_info.value.ambiguous
        mock_probe.tenant_ambiguous.assert_called_once_with(
            user_id="user-1", candidate_count=2
        )

    def test_blank_selector_is_treated_as_absent(self, resolver):
        with pytest.raises(MissingTenantContextError) as exc_info:
            resolver.resolve(_claims("acme", "globex"), selector="  ")

        assert exc_info.value.ambiguous


class TestNoTenant:
    """Credentials without tenants."""

    def test_no_tenant_claim_is_rejected(self, resolver, mock_probe):
        with pytest.raises(MissingTenantContextError) as exc_info:
            resolver.resolve(_claims())

        assert not exc_info.value.ambiguous
        mock_probe.tenant_claim_missing.assert_called_once_with(user_id="user-1")

    def test_selector_cannot_grant_a_tenant(self, resolver):
        with pytest.raises(MissingTenantContextError):
            resolver.resolve(_claims(), selector="acme")
