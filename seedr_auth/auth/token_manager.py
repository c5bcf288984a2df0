"""
Token lifecycle manager for the Seedr authentication client.

This module owns the cached AuthState, performs the OAuth password and refresh
grants and the XBMC device code flow, and renews the access token on demand
through an ordered cascade of renewal strategies.
"""

import asyncio
import inspect
import logging
from typing import Optional, Callable, List, Dict, Any, Iterable

from seedr_auth.api_client import SeedrAuthAPIClient
from seedr_auth.auth.renewal import RenewalStrategy, default_strategies
from seedr_auth.exceptions import (
    ErrorCode, AuthenticationError, NetworkError, SeedrAuthError,
    MissingCredential, TokenStillValid, NoRefreshToken, Unauthenticated,
    DeviceCodePending, DeviceAlreadyRegistered, NoDeviceCode, AuthorizationPending
)
from seedr_auth.interfaces import IAuthStore, IAuthAPIClient
from seedr_auth.logging_config import AuditLogger, log_structured_error
from seedr_auth.models import (
    AuthState, AccessToken, RefreshToken, DevicePairing, Credential,
    TokenResponse, DeviceCodeResponse, now_ms, expiry_from_ttl, mask_token
)

logger = logging.getLogger(__name__)


class TokenLifecycleManager:
    """
    Manages Seedr access tokens with transparent renewal.

    The AuthState is loaded from the store on first use, cached for the
    lifetime of the manager and written back after every mutation. The
    manager never re-reads the store once loaded.
    """

    def __init__(
        self,
        store: IAuthStore,
        api_client: Optional[IAuthAPIClient] = None,
        clock: Optional[Callable[[], int]] = None,
        poll_pending_device_code: bool = True,
        strategies: Optional[Iterable[RenewalStrategy]] = None
    ):
        self.store = store
        self._owns_api_client = api_client is None
        self.api_client = api_client or SeedrAuthAPIClient()
        self._clock = clock or now_ms
        if strategies is None:
            strategies = default_strategies(poll_pending_device_code)
        self.strategies: List[RenewalStrategy] = list(strategies)

        self._auth: Optional[AuthState] = None
        self._renew_lock = asyncio.Lock()
        self._token_refresh_callbacks: List[Callable[[str], None]] = []
        self.audit = AuditLogger()

        logger.debug(f"Token manager initialized with strategies {self.strategies}")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the API client if this manager created it."""
        if self._owns_api_client:
            await self.api_client.close()

    def add_token_refresh_callback(self, callback: Callable[[str], None]) -> None:
        """
        Add callback for token refresh events.

        Args:
            callback: Function called with each newly obtained access token
        """
        self._token_refresh_callbacks.append(callback)

    def _notify_token_refresh(self, new_token: str) -> None:
        """Notify callbacks of token refresh."""
        for callback in self._token_refresh_callbacks:
            try:
                callback(new_token)
            except Exception as e:
                logger.error(f"Error in token refresh callback: {e}")

    async def _load(self) -> AuthState:
        """Load the state from the store once, then serve the cached copy."""
        if self._auth is None:
            state = self.store.load()
            if inspect.isawaitable(state):
                state = await state
            self._auth = state if state is not None else AuthState()
            if self._auth.is_empty():
                logger.info("No stored credentials, log in or register a device first")
            else:
                logger.debug(f"Auth state loaded: {self._auth.describe(self._clock())}")
        return self._auth

    async def _persist(self) -> None:
        result = self.store.save(self._auth)
        if inspect.isawaitable(result):
            await result

    def _new_access(self, response: TokenResponse) -> AccessToken:
        """Build the access token for a response, before any state is touched."""
        try:
            return AccessToken(
                token=response.access_token,
                expiry=expiry_from_ttl(response.expires_in, self._clock())
            )
        except (TypeError, ValueError) as e:
            raise NetworkError(
                f"Token response carried no usable access token: {e}",
                ErrorCode.NETWORK_INVALID_RESPONSE,
                cause=e
            )

    async def get_state(self) -> AuthState:
        """The loaded auth state. Callers must not mutate it."""
        return await self._load()

    async def status(self) -> Dict[str, Any]:
        """Secret-free summary of the loaded state."""
        state = await self._load()
        return state.describe(self._clock())

    async def login_oauth(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        save: bool = False
    ) -> TokenResponse:
        """
        Log in with the OAuth password grant.

        The cached credential takes precedence over the arguments. Obtains
        both an access and a refresh token.

        Args:
            username: Account email, used when no credential is cached
            password: Account password, used when no credential is cached
            save: Cache the username and password in the state (plain text)

        Returns:
            The token response

        Raises:
            TokenStillValid: If the cached access token has not expired
            MissingCredential: If no username/password is available
            RemoteAuthError: If the service rejects the login
        """
        auth = await self._load()

        if auth.is_access_valid(self._clock()):
            raise TokenStillValid(expiry=auth.access.expiry)

        if auth.credential is not None:
            username = auth.credential.username or username
            password = auth.credential.password or password

        if not username or not password:
            raise MissingCredential()

        try:
            response = await self.api_client.fetch_token_password(username, password)
            access = self._new_access(response)
        except SeedrAuthError as e:
            self.audit.log_authentication('password', success=False, failure_reason=e.message, username=username)
            raise

        if save:
            logger.warning("Username/password stored in auth state as plain text")
            auth.credential = Credential(username=username, password=password)

        auth.access = access
        if response.refresh_token:
            auth.refresh = RefreshToken(token=response.refresh_token)
        else:
            logger.warning("Login response carried no refresh token")

        await self._persist()

        logger.info(f"Logged in as {username}, access token {mask_token(response.access_token)}")
        self.audit.log_authentication('password', success=True, username=username)
        self._notify_token_refresh(response.access_token)
        return response

    async def refresh_token_oauth(self) -> TokenResponse:
        """
        Obtain a new access token with the cached refresh token.

        Returns:
            The token response

        Raises:
            NoRefreshToken: If no refresh token is cached
            RemoteAuthError: If the service rejects the refresh token
        """
        auth = await self._load()
        if auth.refresh is None:
            raise NoRefreshToken()

        try:
            response = await self.api_client.fetch_token_refresh(auth.refresh.token)
            access = self._new_access(response)
        except SeedrAuthError as e:
            self.audit.log_authentication('refresh_token', success=False, failure_reason=e.message)
            raise

        auth.access = access
        await self._persist()

        logger.info(f"Access token refreshed with OAuth refresh token: {mask_token(response.access_token)}")
        self.audit.log_authentication('refresh_token', success=True)
        self._notify_token_refresh(response.access_token)
        return response

    async def obtain_device_code(self) -> DeviceCodeResponse:
        """
        Start registering this client as an XBMC device.

        Approve the returned user code at the verification URL
        (https://www.seedr.cc/devices), then call refresh_token_xbmc() or
        get_access_token().

        Returns:
            The newly issued device code

        Raises:
            DeviceCodePending: If an unexpired code is still waiting for approval
            DeviceAlreadyRegistered: If the stored code was already approved
            RemoteAuthError: If the service refuses to issue a code
        """
        auth = await self._load()
        pairing = auth.xbmc

        if pairing is not None:
            if pairing.is_approved:
                raise DeviceAlreadyRegistered()
            if not pairing.is_lapsed(self._clock()):
                raise DeviceCodePending(user_code=pairing.user_code)
            logger.info(f"Device code {pairing.user_code} lapsed before approval, requesting a new one")

        response = await self.api_client.fetch_device_code()

        auth.xbmc = DevicePairing(
            device_code=response.device_code,
            user_code=response.user_code,
            expiry=expiry_from_ttl(response.expires_in, self._clock())
        )
        await self._persist()

        logger.info(
            f"Device code issued, approve with {response.user_code} at {response.verification_url}"
        )
        self.audit.log_device_registration(response.user_code, response.expires_in)
        return response

    async def refresh_token_xbmc(self) -> TokenResponse:
        """
        Obtain a new access token with the cached XBMC device code.

        The first successful exchange marks the pairing approved.

        Returns:
            The token response

        Raises:
            NoDeviceCode: If no device code is cached
            AuthorizationPending: If the user has not approved the pairing yet
            RemoteAuthError: If the service rejects the device code
        """
        auth = await self._load()
        pairing = auth.xbmc
        if pairing is None:
            raise NoDeviceCode()

        try:
            response = await self.api_client.fetch_device_token(pairing.device_code)
        except SeedrAuthError as e:
            self.audit.log_authentication('xbmc', success=False, failure_reason=e.message)
            raise

        if response is None:
            raise AuthorizationPending(user_code=pairing.user_code)

        try:
            access = self._new_access(response)
        except NetworkError as e:
            self.audit.log_authentication('xbmc', success=False, failure_reason=e.message)
            raise

        if not pairing.is_approved:
            logger.info(f"Device pairing {pairing.user_code} approved")
            pairing.mark_approved()

        auth.access = access
        await self._persist()

        logger.info(f"Access token refreshed with XBMC device code: {mask_token(response.access_token)}")
        self.audit.log_authentication('xbmc', success=True)
        self._notify_token_refresh(response.access_token)
        return response

    async def get_access_token(self) -> str:
        """
        Return a valid access token, renewing it if needed.

        A cached, unexpired token is returned without any network call.
        Otherwise the renewal strategies are tried in order; a failing
        strategy is logged and the next one attempted.

        Returns:
            A valid access token

        Raises:
            Unauthenticated: If no strategy produced an access token
        """
        auth = await self._load()
        if auth.is_access_valid(self._clock()):
            return auth.access.token

        async with self._renew_lock:
            # Another coroutine may have renewed while we waited
            if auth.is_access_valid(self._clock()):
                return auth.access.token

            if auth.access is not None:
                logger.warning("Access token expired")

            for strategy in self.strategies:
                if not strategy.is_applicable(auth, self._clock()):
                    continue

                logger.info(f"Renewing access token with {strategy.description}")
                try:
                    await strategy.renew(self)
                except (AuthenticationError, NetworkError) as e:
                    log_structured_error(
                        logger, e,
                        level=logging.WARNING,
                        message=f"Renewal with {strategy.description} failed: {e.message}"
                    )
                    continue

                if auth.is_access_valid(self._clock()):
                    return auth.access.token

        error = Unauthenticated()
        self.audit.log_error(error)
        raise error
