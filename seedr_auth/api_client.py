"""
HTTP API clients for the Seedr service.

This module provides the aiohttp transport for the OAuth token endpoint and
the device authorization (XBMC) endpoints, and the single authenticated call
primitive that resource API wrappers are built on.
"""

import asyncio
import json
import logging
from typing import Optional, Dict, Any, Tuple, TYPE_CHECKING
from urllib.parse import urljoin

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError

from seedr_auth.exceptions import ErrorCode, NetworkError, RemoteAuthError
from seedr_auth.interfaces import IAuthAPIClient
from seedr_auth.models import TokenResponse, DeviceCodeResponse

if TYPE_CHECKING:
    from seedr_auth.auth.token_manager import TokenLifecycleManager

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://www.seedr.cc'
OAUTH_CLIENT_ID = 'seedr_chrome'
DEVICE_CLIENT_ID = 'seedr_xbmc'

TOKEN_PATH = '/oauth_test/token.php'
RESOURCE_PATH = '/oauth_test/resource.php'
DEVICE_CODE_PATH = '/api/device/code'
DEVICE_AUTHORIZE_PATH = '/api/device/authorize'


class _SessionMixin:
    """Lazily created aiohttp session shared by the Seedr clients."""

    base_url: str
    timeout: ClientTimeout
    _session: Optional[ClientSession]
    _owns_session: bool

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure HTTP session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=10,
                limit_per_host=5,
                keepalive_timeout=30
            )
            self._session = ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers={'User-Agent': 'seedr-auth/1.0'}
            )
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _make_request(
        self,
        method: str,
        path: str,
        form: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Tuple[int, Dict[str, Any]]:
        """
        Make a single HTTP request and decode the JSON body.

        Non-success statuses are returned to the caller rather than raised,
        since the Seedr endpoints describe their failures in the body.

        Args:
            method: HTTP method (GET, POST)
            path: API path relative to the base URL
            form: Form-encoded request body
            params: Query parameters
            headers: Extra request headers

        Returns:
            Tuple of HTTP status and decoded body ({} when the body is not JSON)

        Raises:
            NetworkError: On connection failure or timeout
        """
        await self._ensure_session()

        url = urljoin(self.base_url + '/', path.lstrip('/'))
        logger.debug(f"Making {method} request to {url}")

        try:
            async with self._session.request(
                method=method,
                url=url,
                data=_drop_none(form) if form is not None else None,
                params=_drop_none(params) if params is not None else None,
                headers=headers
            ) as response:
                body = await self._read_body(response)
                return response.status, body

        except asyncio.TimeoutError as e:
            logger.warning(f"Request to {url} timed out")
            raise NetworkError(
                f"Request to {path} timed out",
                ErrorCode.NETWORK_TIMEOUT,
                cause=e
            )
        except ClientError as e:
            logger.warning(f"Network error on {method} {url}: {e}")
            raise NetworkError(
                f"Network request to {path} failed: {e}",
                ErrorCode.NETWORK_CONNECTION_FAILED,
                cause=e
            )

    async def _read_body(self, response) -> Dict[str, Any]:
        """Decode a JSON body regardless of the declared content type."""
        try:
            body = await response.json(content_type=None)
        except (json.JSONDecodeError, ValueError):
            text = await response.text()
            logger.debug(f"Non-JSON response body ({response.status}): {text[:200]}")
            return {}
        return body if isinstance(body, dict) else {'result': body}


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _raise_for_error(status: int, body: Dict[str, Any], operation: str) -> None:
    """Raise RemoteAuthError for a non-200 status or an error payload."""
    if status == 200 and not body.get('error'):
        return
    error = body.get('error')
    description = body.get('error_description') or error
    if not description:
        description = f"{operation} failed ({status}): {json.dumps(body)}"
    raise RemoteAuthError(description, status_code=status, error=error)


def _parse(record_type, body: Dict[str, Any], operation: str):
    try:
        return record_type.from_dict(body)
    except (KeyError, TypeError, ValueError) as e:
        raise NetworkError(
            f"Malformed {operation} response: missing or invalid {e}",
            ErrorCode.NETWORK_INVALID_RESPONSE,
            cause=e
        )


class SeedrAuthAPIClient(_SessionMixin, IAuthAPIClient):
    """
    HTTP client for the Seedr authentication endpoints.

    Each method performs exactly one request. Failures are reported as
    RemoteAuthError (service rejected the request) or NetworkError (the
    request never produced a usable answer).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        oauth_client_id: str = OAUTH_CLIENT_ID,
        device_client_id: str = DEVICE_CLIENT_ID,
        session: Optional[ClientSession] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = ClientTimeout(total=timeout)
        self.oauth_client_id = oauth_client_id
        self.device_client_id = device_client_id
        self._session = session
        self._owns_session = False

        logger.debug(f"Auth API client initialized for {self.base_url}")

    async def fetch_token_password(self, username: str, password: str) -> TokenResponse:
        """Exchange a username and password for access and refresh tokens."""
        status, body = await self._make_request(
            'POST',
            TOKEN_PATH,
            form={
                'grant_type': 'password',
                'username': username,
                'password': password,
                'client_id': self.oauth_client_id,
            }
        )
        _raise_for_error(status, body, 'Password login')
        return _parse(TokenResponse, body, 'password login')

    async def fetch_token_refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new access token."""
        status, body = await self._make_request(
            'POST',
            TOKEN_PATH,
            form={
                'grant_type': 'refresh_token',
                'refresh_token': refresh_token,
                'client_id': self.oauth_client_id,
            }
        )
        _raise_for_error(status, body, 'Token refresh')
        return _parse(TokenResponse, body, 'token refresh')

    async def fetch_device_code(self) -> DeviceCodeResponse:
        """Request a new device/user code pair."""
        status, body = await self._make_request(
            'GET',
            DEVICE_CODE_PATH,
            params={'client_id': self.device_client_id}
        )
        _raise_for_error(status, body, 'Device code request')
        return _parse(DeviceCodeResponse, body, 'device code')

    async def fetch_device_token(self, device_code: str) -> Optional[TokenResponse]:
        """
        Exchange a device code for an access token.

        Returns:
            The token response, or None while the user has not approved the
            pairing yet.
        """
        status, body = await self._make_request(
            'GET',
            DEVICE_AUTHORIZE_PATH,
            params={
                'device_code': device_code,
                'client_id': self.device_client_id,
            }
        )
        if body.get('error') == 'authorization_pending':
            logger.debug("Device authorization still pending")
            return None
        _raise_for_error(status, body, 'Device authorization')
        return _parse(TokenResponse, body, 'device authorization')


class SeedrResourceClient(_SessionMixin):
    """
    Authenticated call primitive for the Seedr resource API.

    Fetches a currently valid access token from the token manager before every
    call and attaches it as a bearer credential.
    """

    def __init__(
        self,
        auth: 'TokenLifecycleManager',
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: Optional[ClientSession] = None
    ):
        self.auth = auth
        self.base_url = base_url.rstrip('/')
        self.timeout = ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = False

    async def call_func(self, func: str, form: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call a resource API function.

        Args:
            func: Resource function name (e.g. 'list_contents')
            form: Form fields for the call

        Returns:
            Decoded response body

        Raises:
            Unauthenticated: If no access token can be obtained
            RemoteAuthError: On a non-200 status or an error payload
        """
        token = await self.auth.get_access_token()
        status, body = await self._make_request(
            'POST',
            RESOURCE_PATH,
            form=form or {},
            params={'func': func},
            headers={'Authorization': f'Bearer {token}'}
        )
        if status != 200 or body.get('error'):
            raise RemoteAuthError(
                body.get('error_description') or f"Unexpected response ({status}): {json.dumps(body)}",
                status_code=status,
                error=body.get('error')
            )
        return body
