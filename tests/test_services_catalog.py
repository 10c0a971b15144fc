"""
Tests for CatalogService
"""
import pytest
from unittest.mock import AsyncMock

from exceptions import APIException, MissingReferenceError
from models.unit import UnitKind
from services.catalog_service import CatalogService
from utils.cache import CatalogCache


def _catalog_responses(endpoint, object_id=None, params=None):
    data = {
        'hsr/primaries': {'count': 3, 'primaries': [
            {'code': 'seele', 'name': 'Seele', 'rarity': 5, 'limited': True},
            {'code': 'asta', 'name': 'Asta', 'rarity': 4},
            {'name': 'no id'},
        ]},
        'hsr/attachments': [
            {'id': 23001, 'name': 'In the Night', 'rarity': 5, 'limited': True},
        ],
        'hsr/cost-tables': [
            {'code': 'seele', 'costs': [1, 1.5, 2, 2, 2.5, 2.5, 3]},
            {'code': 'broken', 'costs': [1, 2]},
        ],
    }
    return data.get(endpoint)


class TestCatalogService:
    """Test catalog loading and caching."""

    @pytest.fixture
    def mock_client(self):
        client = AsyncMock()
        client.get.side_effect = _catalog_responses
        return client

    @pytest.fixture
    def service(self, mock_client):
        return CatalogService(CatalogCache(), client=mock_client)

    @pytest.mark.asyncio
    async def test_load_catalog_validates_records(self, service):
        count = await service.load_catalog("hsr")

        assert count == 3
        assert {u.id for u in service.cache.units("hsr", UnitKind.PRIMARY)} == {"seele", "asta"}
        assert service.cache.get_unit("hsr", "23001", UnitKind.ATTACHMENT).limited is True
        assert service.cache.default_tables("hsr").lookup("seele", UnitKind.PRIMARY) is not None
        assert service.cache.default_tables("hsr").lookup("broken", UnitKind.PRIMARY) is None

    @pytest.mark.asyncio
    async def test_load_catalog_is_cached(self, service, mock_client):
        await service.load_catalog("hsr")
        await service.load_catalog("hsr")

        assert mock_client.get.await_count == 3

    @pytest.mark.asyncio
    async def test_force_reload(self, service, mock_client):
        await service.load_catalog("hsr")
        await service.load_catalog("hsr", force=True)

        assert mock_client.get.await_count == 6

    @pytest.mark.asyncio
    async def test_empty_family(self, service):
        count = await service.load_catalog("zzz")

        assert count == 0
        assert service.cache.is_loaded("zzz")
        assert len(service.cache.default_tables("zzz")) == 0

    @pytest.mark.asyncio
    async def test_get_units(self, service):
        units = await service.get_units("hsr", UnitKind.ATTACHMENT)
        assert [u.id for u in units] == ["23001"]

    @pytest.mark.asyncio
    async def test_get_unit(self, service):
        assert (await service.get_unit("hsr", "seele")).name == "Seele"
        assert await service.get_unit("hsr", "nobody") is None

    @pytest.mark.asyncio
    async def test_require_unit_missing(self, service):
        with pytest.raises(MissingReferenceError, match="Unknown attachment 'x' in hsr catalog"):
            await service.require_unit("hsr", "x", UnitKind.ATTACHMENT)

    @pytest.mark.asyncio
    async def test_refresh_forces_reload(self, service, mock_client):
        await service.load_catalog("hsr")
        service.refresh()

        assert not service.cache.is_loaded("hsr")
        await service.load_catalog("hsr")
        assert mock_client.get.await_count == 6

    @pytest.mark.asyncio
    async def test_api_failure_propagates(self, mock_client):
        mock_client.get.side_effect = APIException("Network error: refused")
        service = CatalogService(CatalogCache(), client=mock_client)

        with pytest.raises(APIException):
            await service.load_catalog("hsr")
        assert not service.cache.is_loaded("hsr")
