"""
Tests for BaseService functionality
"""
import pytest
from unittest.mock import AsyncMock, patch

from services.base_service import BaseService
from models.base import DraftBaseModel
from exceptions import APIException


class MockModel(DraftBaseModel):
    """Mock model for testing BaseService."""
    id: str
    name: str
    value: int = 100


class TestBaseService:
    """Test BaseService functionality."""

    @pytest.fixture
    def mock_client(self):
        """Mock API client."""
        return AsyncMock()

    @pytest.fixture
    def base_service(self, mock_client):
        """Create BaseService instance for testing."""
        return BaseService(MockModel, 'mocks', client=mock_client)

    def test_init(self):
        """Test service initialization."""
        service = BaseService(MockModel, 'test_endpoint')
        assert service.model_class == MockModel
        assert service.endpoint == 'test_endpoint'
        assert service._client is None

    @pytest.mark.asyncio
    async def test_get_client_uses_injected_client(self, base_service, mock_client):
        assert await base_service.get_client() is mock_client

    @pytest.mark.asyncio
    async def test_get_client_falls_back_to_global(self):
        global_client = AsyncMock()
        service = BaseService(MockModel, 'mocks')
        with patch('services.base_service.get_global_client', AsyncMock(return_value=global_client)) as mock_global:
            assert await service.get_client() is global_client
            assert await service.get_client() is global_client
            mock_global.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_by_id_success(self, base_service, mock_client):
        """Test successful get_by_id."""
        mock_client.get.return_value = {'id': 'a1', 'name': 'Test', 'value': 200}

        result = await base_service.get_by_id('a1')

        assert isinstance(result, MockModel)
        assert result.id == 'a1'
        assert result.value == 200
        mock_client.get.assert_called_once_with('mocks', object_id='a1', params=None)

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, base_service, mock_client):
        """Test get_by_id when object not found."""
        mock_client.get.return_value = None

        assert await base_service.get_by_id('missing') is None

    @pytest.mark.asyncio
    async def test_get_by_id_invalid_record(self, base_service, mock_client):
        mock_client.get.return_value = {'id': 'a1'}

        with pytest.raises(APIException, match="Failed to parse MockModel a1"):
            await base_service.get_by_id('a1')

    @pytest.mark.asyncio
    async def test_get_all_with_count(self, base_service, mock_client):
        """Test get_all with count response format."""
        mock_client.get.return_value = {
            'count': 2,
            'mocks': [
                {'id': '1', 'name': 'Test1'},
                {'id': '2', 'name': 'Test2', 'value': 200}
            ]
        }

        result = await base_service.get_all()

        assert [item.id for item in result] == ['1', '2']
        mock_client.get.assert_called_once_with('mocks', object_id=None, params=None)

    @pytest.mark.asyncio
    async def test_get_all_drops_malformed_records(self, base_service, mock_client):
        mock_client.get.return_value = [
            {'id': '1', 'name': 'Good'},
            {'id': '2'},
            {'id': '3', 'name': 'Also good', 'value': 'not a number'},
            {'id': '4', 'name': 'Fine'},
        ]

        result = await base_service.get_all()

        assert [item.id for item in result] == ['1', '4']

    @pytest.mark.asyncio
    async def test_get_all_empty(self, base_service, mock_client):
        mock_client.get.return_value = None
        assert await base_service.get_all() == []

    @pytest.mark.asyncio
    async def test_get_all_custom_endpoint(self, base_service, mock_client):
        mock_client.get.return_value = {'primaries': [{'id': '1', 'name': 'A'}]}

        result = await base_service.get_all(endpoint='hsr/primaries')

        assert len(result) == 1
        mock_client.get.assert_called_once_with('hsr/primaries', object_id=None, params=None)

    @pytest.mark.asyncio
    async def test_upsert_updates_existing(self, base_service, mock_client):
        mock_client.put.return_value = {'id': '1'}

        result = await base_service.upsert('1', {'id': '1', 'name': 'X'})

        assert result == {'id': '1'}
        mock_client.put.assert_called_once_with('mocks', {'id': '1', 'name': 'X'}, object_id='1')
        mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_creates_when_missing(self, base_service, mock_client):
        mock_client.put.return_value = None
        mock_client.post.return_value = {'id': '1'}

        result = await base_service.upsert('1', {'id': '1', 'name': 'X'})

        assert result == {'id': '1'}
        mock_client.post.assert_called_once_with('mocks', {'id': '1', 'name': 'X'})

    @pytest.mark.asyncio
    async def test_delete_success(self, base_service, mock_client):
        """Test successful object deletion."""
        mock_client.delete.return_value = True

        assert await base_service.delete('1') is True
        mock_client.delete.assert_called_once_with('mocks', object_id='1')

    @pytest.mark.asyncio
    async def test_api_errors_propagate(self, base_service, mock_client):
        mock_client.get.side_effect = APIException("Network error: refused")

        with pytest.raises(APIException, match="Network error"):
            await base_service.get_all()


class TestExtractItems:
    """Test response unwrapping."""

    @pytest.fixture
    def service(self):
        return BaseService(MockModel, 'hsr/attachments')

    def test_direct_list(self, service):
        data = [{'id': '1'}, {'id': '2'}]
        assert service._extract_items(data) == data

    def test_keyed_by_endpoint_tail(self, service):
        assert service._extract_items({'count': 1, 'attachments': [{'id': '1'}]}) == [{'id': '1'}]

    def test_items_and_results_fields(self, service):
        assert service._extract_items({'items': [{'id': '1'}]}) == [{'id': '1'}]
        assert service._extract_items({'results': [{'id': '2'}]}) == [{'id': '2'}]

    def test_unrecognised_shapes(self, service):
        assert service._extract_items({'count': 5, 'unknown': [{'id': '1'}]}) == []
        assert service._extract_items("unexpected") == []
