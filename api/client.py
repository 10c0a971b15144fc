"""
API client for the draft session engine

aiohttp-based HTTP client for the catalog and session persistence API, plus
the event-stream reader spectators use to follow a live draft.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Union
from urllib.parse import urljoin

import aiohttp

from config import get_config
from exceptions import APIException, TransportError
from models.events import SyncEvent, SyncEventKind

logger = logging.getLogger(f'{__name__}.APIClient')

ObjectId = Union[int, str]


def _truncate(data: Any, limit: int = 1200) -> str:
    text = str(data)
    return text[:limit] + "..." if len(text) > limit else text


class APIClient:
    """
    Async HTTP client for the draft API.

    Features:
    - Connection pooling with proper session management
    - Bearer token authentication
    - Standardized error handling (APIException for HTTP, TransportError for streams)
    - Debug logging with response truncation
    """

    def __init__(self, base_url: Optional[str] = None, api_token: Optional[str] = None):
        """
        Initialize API client with configuration.

        Args:
            base_url: Override default API URL from config
            api_token: Override default API token from config

        Raises:
            ValueError: If required configuration is missing
        """
        config = get_config()
        self.base_url = base_url or config.api_url
        self.api_token = api_token or config.api_token
        self.api_version = config.api_version
        self.default_timeout = config.default_timeout
        self._session: Optional[aiohttp.ClientSession] = None

        if not self.base_url:
            raise ValueError("API_URL must be configured")
        if not self.api_token:
            raise ValueError("API_TOKEN must be configured")

        logger.debug(f"APIClient initialized with base_url: {self.base_url}")

    @property
    def headers(self) -> Dict[str, str]:
        """Get headers with authentication and content type."""
        return {
            'Authorization': f'Bearer {self.api_token}',
            'Content-Type': 'application/json',
            'User-Agent': 'draft-engine/1.0'
        }

    def _build_url(self, endpoint: str, object_id: Optional[ObjectId] = None) -> str:
        """
        Build complete API URL from components.

        Args:
            endpoint: API endpoint path
            object_id: Optional object ID to append

        Returns:
            Complete URL for API request
        """
        if endpoint.startswith(('http://', 'https://')):
            return endpoint

        path = f"{self.api_version}/{endpoint.strip('/')}"
        if object_id is not None:
            path += f"/{object_id}"

        return urljoin(self.base_url.rstrip('/') + '/', path)

    def _add_params(self, url: str, params: Optional[List[tuple]] = None) -> str:
        """Append (key, value) query parameters to a URL."""
        if not params:
            return url

        param_str = "&".join(f"{key}={value}" for key, value in params)
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{param_str}"

    async def _ensure_session(self) -> None:
        """Ensure aiohttp session exists and is not closed."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=30,
                ttl_dns_cache=300,
                use_dns_cache=True
            )

            timeout = aiohttp.ClientTimeout(total=self.default_timeout * 3, connect=self.default_timeout)

            self._session = aiohttp.ClientSession(
                headers=self.headers,
                connector=connector,
                timeout=timeout
            )

            logger.debug("Created new aiohttp session with connection pooling")

    async def _raise_for_status(self, method: str, url: str, response: aiohttp.ClientResponse,
                                ok: tuple = (200, 201)) -> None:
        """Map HTTP error statuses onto APIException."""
        if response.status == 401:
            logger.error(f"Authentication failed for {method}: {url}")
            raise APIException("Authentication failed - check API token")
        if response.status == 403:
            logger.error(f"Access forbidden for {method}: {url}")
            raise APIException("Access forbidden - insufficient permissions")
        if response.status not in ok:
            error_text = await response.text()
            logger.error(f"{method} error {response.status}: {url} - {error_text}")
            raise APIException(f"{method} request failed with status {response.status}: {error_text}")

    async def get(
        self,
        endpoint: str,
        object_id: Optional[ObjectId] = None,
        params: Optional[List[tuple]] = None,
        timeout: Optional[int] = None
    ) -> Optional[Any]:
        """
        Make GET request to API.

        Args:
            endpoint: API endpoint
            object_id: Optional object ID
            params: Query parameters
            timeout: Request timeout override

        Returns:
            JSON response data or None for 404

        Raises:
            APIException: For HTTP errors or network issues
        """
        url = self._add_params(self._build_url(endpoint, object_id), params)

        await self._ensure_session()

        try:
            logger.debug(f"GET: {endpoint} id: {object_id} params: {params}")
            request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

            async with self._session.get(url, timeout=request_timeout) as response:
                if response.status == 404:
                    logger.warning(f"Resource not found: {url}")
                    return None
                await self._raise_for_status("GET", url, response, ok=(200,))

                data = await response.json()
                logger.debug(f"Response: {_truncate(data)}")
                return data

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP client error for {url}: {e}")
            raise APIException(f"Network error: {e}") from e

    async def post(
        self,
        endpoint: str,
        data: Dict[str, Any],
        timeout: Optional[int] = None
    ) -> Optional[Any]:
        """
        Make POST request to API.

        Raises:
            APIException: For HTTP errors or network issues
        """
        url = self._build_url(endpoint)

        await self._ensure_session()

        try:
            logger.debug(f"POST: {endpoint} data: {_truncate(data)}")
            request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

            async with self._session.post(url, json=data, timeout=request_timeout) as response:
                await self._raise_for_status("POST", url, response)
                result = await response.json()
                logger.debug(f"POST Response: {_truncate(result)}")
                return result

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP client error for POST {url}: {e}")
            raise APIException(f"Network error: {e}") from e

    async def put(
        self,
        endpoint: str,
        data: Dict[str, Any],
        object_id: Optional[ObjectId] = None,
        timeout: Optional[int] = None
    ) -> Optional[Any]:
        """
        Make PUT request to API.

        Returns:
            JSON response data, or None when the resource does not exist

        Raises:
            APIException: For HTTP errors or network issues
        """
        url = self._build_url(endpoint, object_id)

        await self._ensure_session()

        try:
            logger.debug(f"PUT: {endpoint} id: {object_id}")
            request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

            async with self._session.put(url, json=data, timeout=request_timeout) as response:
                if response.status == 404:
                    logger.warning(f"Resource not found for PUT: {url}")
                    return None
                await self._raise_for_status("PUT", url, response)
                result = await response.json()
                logger.debug(f"PUT Response: {_truncate(result)}")
                return result

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP client error for PUT {url}: {e}")
            raise APIException(f"Network error: {e}") from e

    async def delete(
        self,
        endpoint: str,
        object_id: Optional[ObjectId] = None,
        timeout: Optional[int] = None
    ) -> bool:
        """
        Make DELETE request to API.

        Returns:
            True if deletion successful, False if resource not found

        Raises:
            APIException: For HTTP errors or network issues
        """
        url = self._build_url(endpoint, object_id)

        await self._ensure_session()

        try:
            logger.debug(f"DELETE: {endpoint} id: {object_id}")
            request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

            async with self._session.delete(url, timeout=request_timeout) as response:
                if response.status == 404:
                    logger.warning(f"Resource not found for DELETE: {url}")
                    return False
                await self._raise_for_status("DELETE", url, response, ok=(200, 204))
                logger.debug(f"DELETE successful: {url}")
                return True

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP client error for DELETE {url}: {e}")
            raise APIException(f"Network error: {e}") from e

    async def stream_events(self, endpoint: str, key: str) -> AsyncIterator[SyncEvent]:
        """
        Follow a session's event stream.

        Parses text/event-stream frames ("event:" / "data:" lines, blank line
        terminated) into SyncEvents. A 404 yields a single not_found event.

        Args:
            endpoint: Stream endpoint (e.g. 'sessions')
            key: Session key

        Yields:
            SyncEvent for every complete frame

        Raises:
            TransportError: If the connection fails or the stream ends before
                a not_found event
        """
        url = self._build_url(f"{endpoint.strip('/')}/{key}/stream")

        await self._ensure_session()

        try:
            # No total timeout: the stream stays open for the life of the draft
            stream_timeout = aiohttp.ClientTimeout(total=None, sock_connect=self.default_timeout)
            async with self._session.get(
                url, timeout=stream_timeout, headers={'Accept': 'text/event-stream'}
            ) as response:
                if response.status == 404:
                    logger.info(f"Stream target not found: {key}")
                    yield SyncEvent.not_found(key)
                    return
                if response.status != 200:
                    raise TransportError(f"Event stream rejected with status {response.status}")

                event_name: Optional[str] = None
                data_lines: List[str] = []
                malformed = False

                async for raw_line in response.content:
                    try:
                        line = raw_line.decode('utf-8').rstrip('\r\n')
                    except UnicodeDecodeError as e:
                        logger.warning(f"Undecodable line in event stream for {key}: {e}")
                        malformed = True
                        continue

                    if not line:
                        if malformed:
                            logger.warning(f"Dropping malformed {event_name} frame for {key}")
                        elif event_name is not None:
                            try:
                                event = SyncEvent.from_wire(event_name, "\n".join(data_lines), key)
                            except ValueError as e:
                                logger.warning(f"Dropping malformed {event_name} frame for {key}: {e}")
                            else:
                                yield event
                                if event.kind == SyncEventKind.NOT_FOUND:
                                    return
                        event_name, data_lines, malformed = None, [], False
                        continue

                    if line.startswith(':'):
                        continue
                    field, _, value = line.partition(':')
                    value = value[1:] if value.startswith(' ') else value
                    if field == 'event':
                        event_name = value
                    elif field == 'data':
                        data_lines.append(value)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Event stream for {key} interrupted: {e}")
            raise TransportError(f"Event stream interrupted: {e}") from e

        raise TransportError(f"Event stream for {key} closed by server")

    async def close(self) -> None:
        """Close the HTTP session and clean up resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed aiohttp session")

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


@asynccontextmanager
async def get_api_client() -> AsyncIterator[APIClient]:
    """
    Get API client as async context manager.

    Usage:
        async with get_api_client() as client:
            data = await client.get('units')
    """
    client = APIClient()
    try:
        yield client
    finally:
        await client.close()


# Global API client instance for reuse
_global_client: Optional[APIClient] = None


async def get_global_client() -> APIClient:
    """
    Get global API client instance with automatic session management.

    Returns:
        Shared APIClient instance
    """
    global _global_client
    if _global_client is None:
        _global_client = APIClient()

    await _global_client._ensure_session()
    return _global_client


async def cleanup_global_client() -> None:
    """Clean up global API client. Call during shutdown."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
