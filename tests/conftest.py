"""
Shared fixtures for the Seedr auth client tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from seedr_auth.auth.token_storage import NoPersistence
from seedr_auth.interfaces import IAuthAPIClient
from seedr_auth.models import (
    AuthState, AccessToken, RefreshToken, DevicePairing, Credential,
    TokenResponse, DeviceCodeResponse
)

NOW = 1_700_000_000_000


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


def make_token_response(token='access-new', expires_in=3600, refresh_token=None):
    return TokenResponse(
        access_token=token,
        expires_in=expires_in,
        token_type='Bearer',
        refresh_token=refresh_token
    )


def make_device_code_response(device_code='dev-code-1', user_code='ABCD1234', expires_in=600):
    return DeviceCodeResponse(
        device_code=device_code,
        user_code=user_code,
        expires_in=expires_in,
        interval=5,
        verification_url='https://www.seedr.cc/devices'
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api_client():
    """Auth API client double; every endpoint is an AsyncMock."""
    return AsyncMock(spec=IAuthAPIClient)


@pytest.fixture
def make_store():
    """Build an in-memory store whose load/save calls are recorded."""
    def _make(state=None):
        return MagicMock(wraps=NoPersistence(state or AuthState()))
    return _make


@pytest.fixture
def valid_access():
    return AccessToken(token='access-cached', expiry=NOW + 60_000)


@pytest.fixture
def expired_access():
    return AccessToken(token='access-old', expiry=NOW - 1)


@pytest.fixture
def refresh_token():
    return RefreshToken(token='refresh-1')


@pytest.fixture
def credential():
    return Credential(username='user@example.com', password='hunter2')


@pytest.fixture
def pending_pairing():
    return DevicePairing(device_code='dev-code-1', user_code='ABCD1234', expiry=NOW + 300_000)


@pytest.fixture
def approved_pairing():
    return DevicePairing(device_code='dev-code-1', user_code='ABCD1234', expiry=None)
