"""
Base service class for the draft session engine

Provides shared API access, response unwrapping and record validation for the
services that talk to the catalog and persistence API.
"""
import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from api.client import APIClient, get_global_client
from exceptions import APIException
from models.base import DraftBaseModel

logger = logging.getLogger(f'{__name__}.BaseService')

T = TypeVar('T', bound=DraftBaseModel)


class BaseService(Generic[T]):
    """
    Base service class providing common API operations for draft models.

    Features:
    - Generic type support for any DraftBaseModel subclass
    - Per-record validation that drops malformed records instead of failing
    - API response format handling (plain list or count + list format)
    - Connection management via global client
    """

    def __init__(self,
                 model_class: Type[T],
                 endpoint: str,
                 client: Optional[APIClient] = None):
        """
        Initialize base service.

        Args:
            model_class: Pydantic model class for this service
            endpoint: API endpoint path (e.g., 'sessions', 'units')
            client: Optional API client override (uses global client by default)
        """
        self.model_class = model_class
        self.endpoint = endpoint
        self._client = client
        self._cached_client: Optional[APIClient] = None

        logger.debug(f"Initialized {self.__class__.__name__} for {model_class.__name__} at endpoint '{endpoint}'")

    async def get_client(self) -> APIClient:
        """
        Get API client instance with caching to reduce async overhead.

        Returns:
            APIClient instance (cached after first access)
        """
        if self._client:
            return self._client

        if self._cached_client is None:
            self._cached_client = await get_global_client()

        return self._cached_client

    def _extract_items(self, data: Any, endpoint: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Unwrap a list response.

        Accepts a bare list, {'count': n, '<endpoint>': [...]} or {'items': [...]}.
        """
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            key = (endpoint or self.endpoint).rstrip('/').split('/')[-1]
            for candidate in (key, 'items', 'results'):
                if isinstance(data.get(candidate), list):
                    return data[candidate]
        logger.warning(f"Unexpected response shape from {endpoint or self.endpoint}: {type(data).__name__}")
        return []

    def _validate_items(
        self,
        items: List[Dict[str, Any]],
        parser: Optional[Callable[[Dict[str, Any]], T]] = None,
        label: Optional[str] = None
    ) -> List[T]:
        """
        Validate raw records into models, dropping malformed ones with a warning.

        Args:
            items: Raw API records
            parser: Record parser (defaults to model_class.from_api_data)
            label: Record name for log messages (defaults to the model name)

        Returns:
            Valid model instances in input order
        """
        parse = parser or self.model_class.from_api_data
        label = label or self.model_class.__name__
        models = []
        for item in items:
            try:
                models.append(parse(item))
            except (ValidationError, ValueError, TypeError, KeyError) as e:
                logger.warning(f"Dropping malformed {label} record: {e}")
        return models

    async def get_raw(self, object_id: Optional[str] = None,
                      params: Optional[List[tuple]] = None,
                      endpoint: Optional[str] = None) -> Optional[Any]:
        """
        Fetch raw JSON from the API.

        Returns:
            Response data or None for 404

        Raises:
            APIException: For API errors
        """
        client = await self.get_client()
        return await client.get(endpoint or self.endpoint, object_id=object_id, params=params)

    async def get_by_id(self, object_id: str) -> Optional[T]:
        """
        Get single object by ID.

        Args:
            object_id: Unique identifier for the object

        Returns:
            Model instance or None if not found

        Raises:
            APIException: For API errors or an invalid record
        """
        data = await self.get_raw(object_id=object_id)
        if not data:
            logger.debug(f"{self.model_class.__name__} {object_id} not found")
            return None

        try:
            model = self.model_class.from_api_data(data)
        except (ValidationError, ValueError) as e:
            logger.error(f"Invalid {self.model_class.__name__} {object_id}: {e}")
            raise APIException(f"Failed to parse {self.model_class.__name__} {object_id}: {e}") from e

        logger.debug(f"Retrieved {self.model_class.__name__} {object_id}")
        return model

    async def get_all(self, params: Optional[List[tuple]] = None,
                      endpoint: Optional[str] = None) -> List[T]:
        """
        Get all valid objects from a list endpoint.

        Raises:
            APIException: For API errors
        """
        data = await self.get_raw(params=params, endpoint=endpoint)
        if not data:
            logger.debug(f"No {self.model_class.__name__} objects found")
            return []

        items = self._extract_items(data, endpoint)
        models = self._validate_items(items)
        logger.debug(f"Retrieved {len(models)} of {len(items)} {self.model_class.__name__} records")
        return models

    async def upsert(self, object_id: str, model_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Replace an object, creating it when the API does not know it yet.

        Raises:
            APIException: For API errors
        """
        client = await self.get_client()
        response = await client.put(self.endpoint, model_data, object_id=object_id)
        if response is None:
            logger.debug(f"{self.model_class.__name__} {object_id} not found for update, creating")
            response = await client.post(self.endpoint, model_data)
        return response

    async def delete(self, object_id: str) -> bool:
        """
        Delete object by ID.

        Returns:
            True if deleted, False if not found

        Raises:
            APIException: For API errors
        """
        client = await self.get_client()
        success = await client.delete(self.endpoint, object_id=object_id)

        if success:
            logger.debug(f"Deleted {self.model_class.__name__} {object_id}")
        else:
            logger.debug(f"{self.model_class.__name__} {object_id} not found for deletion")
        return success
