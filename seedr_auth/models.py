"""
Data models for the Seedr authentication client.

This module defines the persisted authentication state and the typed records
for the token and device code responses of the Seedr auth service. All
timestamps are integer milliseconds since the Unix epoch.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
import time


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def expiry_from_ttl(expires_in: float, now: int) -> int:
    """Absolute expiry for a server-declared TTL given in seconds."""
    return int(now + expires_in * 1000)


def mask_token(token: Optional[str]) -> str:
    """Short, log-safe prefix of a secret."""
    if not token:
        return "<none>"
    return f"{token[:8]}..."


@dataclass
class AccessToken:
    """Short-lived bearer credential."""
    token: str
    expiry: int

    def __post_init__(self):
        if not self.token:
            raise ValueError("Access token cannot be empty")

    def is_valid(self, now: int) -> bool:
        return now < self.expiry

    def to_dict(self) -> Dict[str, Any]:
        return {'token': self.token, 'expiry': self.expiry}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccessToken':
        return cls(token=data['token'], expiry=int(data['expiry']))


@dataclass
class RefreshToken:
    """Long-lived OAuth refresh credential."""
    token: str
    expiry: Optional[int] = None

    def __post_init__(self):
        if not self.token:
            raise ValueError("Refresh token cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'token': self.token}
        if self.expiry is not None:
            data['expiry'] = self.expiry
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RefreshToken':
        expiry = data.get('expiry')
        return cls(token=data['token'], expiry=int(expiry) if expiry is not None else None)


@dataclass
class DevicePairing:
    """
    Device authorization (XBMC) pairing state.

    ``expiry`` is set while the pairing waits for approval and cleared once the
    device code has been exchanged for a token. A cleared expiry means the
    device code stays usable until it is revoked server-side.
    """
    device_code: str
    user_code: str
    expiry: Optional[int] = None

    def __post_init__(self):
        if not self.device_code:
            raise ValueError("Device code cannot be empty")

    @property
    def is_approved(self) -> bool:
        return self.expiry is None

    def is_pending(self, now: int) -> bool:
        """Waiting for approval and not yet lapsed."""
        return self.expiry is not None and now < self.expiry

    def is_lapsed(self, now: int) -> bool:
        return self.expiry is not None and now >= self.expiry

    def is_usable(self, now: int) -> bool:
        """Approved, or pending and unexpired."""
        return self.is_approved or self.is_pending(now)

    def mark_approved(self) -> None:
        self.expiry = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'device_code': self.device_code,
            'user_code': self.user_code,
        }
        if self.expiry is not None:
            data['expiry'] = self.expiry
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DevicePairing':
        expiry = data.get('expiry')
        return cls(
            device_code=data['device_code'],
            user_code=data.get('user_code', ''),
            expiry=int(expiry) if expiry is not None else None
        )


@dataclass
class Credential:
    """Plaintext login, cached only on explicit opt-in."""
    username: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {'username': self.username, 'password': self.password}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Credential':
        return cls(username=data['username'], password=data['password'])


@dataclass
class AuthState:
    """
    The single persisted aggregate of all credential material.

    Every field is optional; an absent field means that credential has never
    been obtained.
    """
    access: Optional[AccessToken] = None
    refresh: Optional[RefreshToken] = None
    xbmc: Optional[DevicePairing] = None
    credential: Optional[Credential] = None

    def is_access_valid(self, now: int) -> bool:
        return self.access is not None and self.access.is_valid(now)

    def is_empty(self) -> bool:
        return not (self.access or self.refresh or self.xbmc or self.credential)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape, omitting absent fields."""
        data: Dict[str, Any] = {}
        if self.access is not None:
            data['access'] = self.access.to_dict()
        if self.refresh is not None:
            data['refresh'] = self.refresh.to_dict()
        if self.xbmc is not None:
            data['xbmc'] = self.xbmc.to_dict()
        if self.credential is not None:
            data['credential'] = self.credential.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AuthState':
        """Build from a possibly partial mapping; unknown keys are ignored."""
        if not data:
            return cls()
        access = data.get('access')
        refresh = data.get('refresh')
        xbmc = data.get('xbmc')
        credential = data.get('credential')
        return cls(
            access=AccessToken.from_dict(access) if access else None,
            refresh=RefreshToken.from_dict(refresh) if refresh else None,
            xbmc=DevicePairing.from_dict(xbmc) if xbmc else None,
            credential=Credential.from_dict(credential) if credential else None
        )

    def describe(self, now: int) -> Dict[str, Any]:
        """Secret-free summary of the state, for status output."""
        if self.access is None:
            access_status = 'absent'
        elif self.access.is_valid(now):
            access_status = 'valid'
        else:
            access_status = 'expired'

        if self.xbmc is None:
            device_status = 'absent'
        elif self.xbmc.is_approved:
            device_status = 'approved'
        elif self.xbmc.is_lapsed(now):
            device_status = 'lapsed'
        else:
            device_status = 'pending'

        summary: Dict[str, Any] = {
            'access': access_status,
            'access_expires_in': (
                max(0, (self.access.expiry - now) // 1000) if self.access else None
            ),
            'refresh': self.refresh is not None,
            'device': device_status,
            'credential': self.credential is not None,
        }
        if device_status == 'pending':
            summary['user_code'] = self.xbmc.user_code
        if self.credential is not None:
            summary['username'] = self.credential.username
        return summary


@dataclass
class TokenResponse:
    """Success payload of the token endpoints."""
    access_token: str
    expires_in: int
    token_type: str = 'Bearer'
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenResponse':
        access_token = data['access_token']
        if not access_token or not isinstance(access_token, str):
            raise ValueError('access_token')
        return cls(
            access_token=access_token,
            expires_in=int(data['expires_in']),
            token_type=data.get('token_type') or 'Bearer',
            refresh_token=data.get('refresh_token'),
            scope=data.get('scope')
        )


@dataclass
class DeviceCodeResponse:
    """Success payload of the device code issuance endpoint."""
    device_code: str
    user_code: str
    expires_in: int
    interval: int = 5
    verification_url: str = 'https://www.seedr.cc/devices'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeviceCodeResponse':
        return cls(
            device_code=data['device_code'],
            user_code=data['user_code'],
            expires_in=int(data['expires_in']),
            interval=int(data.get('interval', 5)),
            verification_url=data.get('verification_url') or 'https://www.seedr.cc/devices'
        )
