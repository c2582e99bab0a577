"""Unit tests for the in-memory document store."""

from unittest.mock import create_autospec

import pytest

from tenancy.domain.exceptions import (
    DuplicateDocumentError,
    InvalidOperationError,
    StoreReadOnlyError,
)
from tenancy.infrastructure import InMemoryDocumentStore, InMemoryStoreDriverFactory
from tenancy.infrastructure.observability import DocumentStoreProbe


@pytest.fixture
def mock_probe():
    return create_autospec(DocumentStoreProbe, instance=True)


@pytest.fixture
def store(mock_probe) -> InMemoryDocumentStore:
    return InMemoryDocumentStore("memory://shared-pool", probe=mock_probe)


class TestCrud:
    """Tests for create, find, update and delete."""

    @pytest.mark.asyncio
    async def test_find_matches_all_filter_fields(self, store):
        await store.create({"tenant_id": "acme", "id": "d1", "status": "open"})
        await store.create({"tenant_id": "acme", "id": "d2", "status": "closed"})

        found = await store.find({"tenant_id": "acme", "status": "open"})

        assert found == [{"tenant_id": "acme", "id": "d1", "status": "open"}]

    @pytest.mark.asyncio
    async def test_missing_field_does_not_match(self, store):
        await store.create({"tenant_id": "acme", "id": "d1"})

        assert await store.find({"status": None}) == []

    @pytest.mark.asyncio
    async def test_same_id_in_two_tenants(self, store):
        await store.create({"tenant_id": "acme", "id": "d1"})
        await store.create({"tenant_id": "globex", "id": "d1"})

        assert len(await store.find({"id": "d1"})) == 2

    @pytest.mark.asyncio
    async def test_duplicate_create_is_rejected(self, store):
        await store.create({"tenant_id": "acme", "id": "d1"})

        with pytest.raises(DuplicateDocumentError):
            await store.create({"tenant_id": "acme", "id": "d1"})

    @pytest.mark.asyncio
    async def test_documents_need_key_fields(self, store):
        with pytest.raises(InvalidOperationError):
            await store.create({"id": "d1"})

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store):
        await store.create({"tenant_id": "acme", "id": "d1", "tags": ["a"]})

        found = await store.find({"id": "d1"})
        found[0]["tags"].append("b")

        assert (await store.find({"id": "d1"}))[0]["tags"] == ["a"]

    @pytest.mark.asyncio
    async def test_update_returns_new_state(self, store):
        await store.create({"tenant_id": "acme", "id": "d1", "n": 1})

        updated = await store.update({"id": "d1"}, {"n": 2})

        assert updated == [{"tenant_id": "acme", "id": "d1", "n": 2}]

    @pytest.mark.asyncio
    async def test_delete_returns_ids(self, store):
        await store.create({"tenant_id": "acme", "id": "d1"})
        await store.create({"tenant_id": "acme", "id": "d2"})

        assert sorted(await store.delete({"tenant_id": "acme"})) == ["d1", "d2"]
        assert await store.find({}) == []


class TestMaintenance:
    """Tests for freeze, purge and upsert."""

    @pytest.mark.asyncio
    async def test_frozen_tenant_rejects_writes(self, store, mock_probe):
        await store.create({"tenant_id": "acme", "id": "d1"})
        await store.freeze_tenant("acme")

        with pytest.raises(StoreReadOnlyError):
            await store.create({"tenant_id": "acme", "id": "d2"})
        with pytest.raises(StoreReadOnlyError):
            await store.update({"id": "d1"}, {"n": 1})
        with pytest.raises(StoreReadOnlyError):
            await store.delete({"id": "d1"})

        assert mock_probe.frozen_write_rejected.call_count == 3
        assert await store.find({"id": "d1"}) == [{"tenant_id": "acme", "id": "d1"}]

    @pytest.mark.asyncio
    async def test_freeze_is_per_tenant(self, store):
        await store.freeze_tenant("acme")

        await store.create({"tenant_id": "globex", "id": "g1"})

    @pytest.mark.asyncio
    async def test_purge_removes_documents_and_lifts_freeze(self, store, mock_probe):
        await store.create({"tenant_id": "acme", "id": "d1"})
        await store.create({"tenant_id": "globex", "id": "g1"})
        await store.freeze_tenant("acme")

        removed = await store.purge_tenant("acme")

        assert removed == 1
        assert await store.find({}) == [{"tenant_id": "globex", "id": "g1"}]
        await store.create({"tenant_id": "acme", "id": "d2"})
        mock_probe.tenant_purged.assert_called_once_with(
            address="memory://shared-pool", tenant_id="acme", removed=1
        )

    @pytest.mark.asyncio
    async def test_upsert_replaces_document(self, store):
        await store.upsert({"tenant_id": "acme", "id": "d1", "n": 1})
        await store.upsert({"tenant_id": "acme", "id": "d1", "n": 2})

        assert await store.find({}) == [{"tenant_id": "acme", "id": "d1", "n": 2}]


class TestDriverFactory:
    """Tests for InMemoryStoreDriverFactory."""

    @pytest.mark.asyncio
    async def test_same_address_same_store(self):
        drivers = InMemoryStoreDriverFactory()

        await drivers.prepare("memory://a")

        assert drivers.driver("memory://a") is drivers.driver("memory://a")
        assert drivers.driver("memory://a") is not drivers.driver("memory://b")

    @pytest.mark.asyncio
    async def test_close_drops_stores(self):
        drivers = InMemoryStoreDriverFactory()
        await drivers.driver("memory://a").create({"tenant_id": "acme", "id": "d1"})

        await drivers.close()

        assert await drivers.driver("memory://a").find({}) == []
