"""
Access token renewal strategies.

Each strategy decides from the cached AuthState whether it can produce a new
access token and, if so, performs the renewal through the token manager's
public operations. The token manager walks default_strategies() in order,
cheapest first, until one of them leaves a valid access token behind.
"""

from abc import ABC, abstractmethod
from typing import List, TYPE_CHECKING

from seedr_auth.models import AuthState, TokenResponse

if TYPE_CHECKING:
    from seedr_auth.auth.token_manager import TokenLifecycleManager


class RenewalStrategy(ABC):
    """A single mechanism for obtaining a fresh access token."""

    name: str = ''
    description: str = ''

    @abstractmethod
    def is_applicable(self, state: AuthState, now: int) -> bool:
        """Whether the state holds the material this strategy needs."""
        pass

    @abstractmethod
    async def renew(self, manager: 'TokenLifecycleManager') -> TokenResponse:
        """Attempt the renewal; raises on failure."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DeviceCodeRenewal(RenewalStrategy):
    """
    Exchange the stored XBMC device code for an access token.

    Applies to approved pairings and, unless ``poll_pending`` is disabled, to
    pairings still waiting for approval. Polling a pending pairing is how it
    becomes approved without an explicit refresh_token_xbmc() call.
    """

    name = 'xbmc'
    description = 'XBMC device code'

    def __init__(self, poll_pending: bool = True):
        self.poll_pending = poll_pending

    def is_applicable(self, state: AuthState, now: int) -> bool:
        if state.xbmc is None:
            return False
        if self.poll_pending:
            return state.xbmc.is_usable(now)
        return state.xbmc.is_approved

    async def renew(self, manager: 'TokenLifecycleManager') -> TokenResponse:
        return await manager.refresh_token_xbmc()

    def __repr__(self) -> str:
        return f"DeviceCodeRenewal(poll_pending={self.poll_pending})"


class RefreshTokenRenewal(RenewalStrategy):
    """Exchange the stored OAuth refresh token."""

    name = 'refresh_token'
    description = 'OAuth refresh token'

    def is_applicable(self, state: AuthState, now: int) -> bool:
        return state.refresh is not None

    async def renew(self, manager: 'TokenLifecycleManager') -> TokenResponse:
        return await manager.refresh_token_oauth()


class PasswordLoginRenewal(RenewalStrategy):
    """Log in again with the cached username and password."""

    name = 'password'
    description = 'OAuth password login'

    def is_applicable(self, state: AuthState, now: int) -> bool:
        return state.credential is not None

    async def renew(self, manager: 'TokenLifecycleManager') -> TokenResponse:
        return await manager.login_oauth()


def default_strategies(poll_pending_device_code: bool = True) -> List[RenewalStrategy]:
    """The renewal cascade in priority order."""
    return [
        DeviceCodeRenewal(poll_pending=poll_pending_device_code),
        RefreshTokenRenewal(),
        PasswordLoginRenewal(),
    ]
