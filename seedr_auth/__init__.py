"""
Seedr authentication client.

Produces a currently valid Seedr access token on demand, renewing it through
the XBMC device code, OAuth refresh token or OAuth password grants, and
persists whatever credential material it obtains.
"""

from seedr_auth.auth.token_manager import TokenLifecycleManager
from seedr_auth.auth.token_storage import NoPersistence, FilePersistence, KeyringPersistence
from seedr_auth.api_client import SeedrAuthAPIClient, SeedrResourceClient
from seedr_auth.models import AuthState

__version__ = "1.0.0"

__all__ = [
    'TokenLifecycleManager',
    'NoPersistence',
    'FilePersistence',
    'KeyringPersistence',
    'SeedrAuthAPIClient',
    'SeedrResourceClient',
    'AuthState',
]
