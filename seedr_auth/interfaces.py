"""
Core interfaces for the Seedr authentication client.

This module defines the abstract interfaces that the persistence stores,
the auth transport and the configuration manager implement.
"""

from abc import ABC, abstractmethod
from typing import Optional, Any, Awaitable, Union

from .models import AuthState, TokenResponse, DeviceCodeResponse


class IAuthStore(ABC):
    """
    Durable holder for one AuthState record.

    Implementations may be synchronous or asynchronous; callers await the
    result when it is awaitable.
    """

    @abstractmethod
    def load(self) -> Union[AuthState, Awaitable[AuthState]]:
        """Load the stored state, or an empty AuthState if nothing is stored."""
        pass

    @abstractmethod
    def save(self, state: AuthState) -> Union[None, Awaitable[None]]:
        """Replace the stored state."""
        pass


class IAuthAPIClient(ABC):
    """Interface for the Seedr auth service endpoints."""

    @abstractmethod
    async def fetch_token_password(self, username: str, password: str) -> TokenResponse:
        """Password grant."""
        pass

    @abstractmethod
    async def fetch_token_refresh(self, refresh_token: str) -> TokenResponse:
        """Refresh token grant."""
        pass

    @abstractmethod
    async def fetch_device_code(self) -> DeviceCodeResponse:
        """Issue a new device/user code pair."""
        pass

    @abstractmethod
    async def fetch_device_token(self, device_code: str) -> Optional[TokenResponse]:
        """
        Exchange a device code for an access token.

        Returns None while the pairing is still waiting for approval.
        """
        pass


class IConfigurationManager(ABC):
    """Interface for configuration management."""

    @abstractmethod
    def get_base_url(self) -> str:
        """Get the Seedr service base URL."""
        pass

    @abstractmethod
    def get_state_file(self) -> str:
        """Get the path of the persisted auth state."""
        pass

    @abstractmethod
    def set_config(self, key: str, value: Any) -> None:
        """Set configuration value."""
        pass

    @abstractmethod
    def get_config(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        pass
