"""Unit tests for StaticTargetProvisioner."""

from unittest.mock import create_autospec

import pytest

from tenancy.domain.value_objects import PhysicalTarget, TenantId, Tier
from tenancy.infrastructure import InMemoryStoreDriverFactory, StaticTargetProvisioner
from tenancy.infrastructure.observability import ProvisionerProbe

ACME = TenantId(value="acme")


@pytest.fixture
def mock_probe():
    return create_autospec(ProvisionerProbe, instance=True)


@pytest.fixture
def memory_drivers() -> InMemoryStoreDriverFactory:
    return InMemoryStoreDriverFactory()


@pytest.fixture
def static_provisioner(memory_drivers, mock_probe) -> StaticTargetProvisioner:
    return StaticTargetProvisioner(
        drivers=memory_drivers,
        shared_pool_address="memory://shared-pool",
        shard_addresses=["memory://shard-0", "memory://shard-1"],
        dedicated_address_template="memory://dedicated-{tenant_id}",
        archive_address="memory://archive",
        probe=mock_probe,
    )


class TestAllocate:
    """Tests for allocate."""

    @pytest.mark.asyncio
    async def test_shared_tier_uses_pool(self, static_provisioner):
        target = await static_provisioner.allocate(ACME, Tier.SHARED)

        assert target == PhysicalTarget(Tier.SHARED, "memory://shared-pool")

    @pytest.mark.asyncio
    async def test_sharded_tier_uses_a_shard(self, static_provisioner):
        target = await static_provisioner.allocate(ACME, Tier.SHARDED)

        assert target.tier == Tier.SHARDED
        assert target.address in ("memory://shard-0", "memory://shard-1")

    @pytest.mark.asyncio
    async def test_sharded_placement_is_stable(self, static_provisioner):
        first = await static_provisioner.allocate(ACME, Tier.SHARDED)
        second = await static_provisioner.allocate(ACME, Tier.SHARDED)

        assert first == second

    @pytest.mark.asyncio
    async def test_dedicated_tier_is_per_tenant(self, static_provisioner, mock_probe):
        target = await static_provisioner.allocate(ACME, Tier.DEDICATED)

        assert target == PhysicalTarget(Tier.DEDICATED, "memory://dedicated-acme")
        mock_probe.target_allocated.assert_called_once_with(
            tenant_id="acme", tier="dedicated", address="memory://dedicated-acme"
        )


class TestArchive:
    """Tests for archive."""

    @pytest.mark.asyncio
    async def test_moves_tenant_documents_to_archive(
        self, static_provisioner, memory_drivers
    ):
        source = memory_drivers.driver("memory://shared-pool")
        await source.create({"tenant_id": "acme", "id": "d1"})
        await source.create({"tenant_id": "acme", "id": "d2"})
        await source.create({"tenant_id": "globex", "id": "g1"})
        await source.freeze_tenant("acme")

        archived = await static_provisioner.archive(
            ACME, PhysicalTarget(Tier.SHARED, "memory://shared-pool")
        )

        assert archived == 2
        assert await source.find({}) == [{"tenant_id": "globex", "id": "g1"}]
        archive = memory_drivers.driver("memory://archive")
        assert len(await archive.find({"tenant_id": "acme"})) == 2
