"""
Auth state persistence for the Seedr authentication client.

This module provides the stores that hold the single AuthState record:
an in-memory store, a JSON file store and a system keyring store.
"""

import os
import json
import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

import keyring
from keyring.errors import KeyringError

from seedr_auth.exceptions import ErrorCode, TokenStorageError
from seedr_auth.interfaces import IAuthStore
from seedr_auth.models import AuthState

logger = logging.getLogger(__name__)


def get_default_state_path() -> Path:
    """Default location of the auth state file."""
    xdg_config = os.environ.get('XDG_CONFIG_HOME')
    if xdg_config:
        config_dir = Path(xdg_config) / 'seedr'
    else:
        config_dir = Path.home() / '.config' / 'seedr'
    return config_dir / 'auth_state.json'


class NoPersistence(IAuthStore):
    """Keeps the state in memory only; nothing survives the process."""

    def __init__(self, state: Optional[AuthState] = None):
        self.state = state or AuthState()

    def load(self) -> AuthState:
        return self.state

    def save(self, state: AuthState) -> None:
        self.state = state


class FilePersistence(IAuthStore):
    """
    Stores the state as a single JSON object on disk.

    The file is created as ``{}`` when missing and replaced wholesale on every
    save through a temporary file and an atomic rename, so a crash mid-write
    never leaves a truncated state file behind.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else get_default_state_path()

    def load(self) -> AuthState:
        if not self.path.exists():
            logger.info(f"No auth state at {self.path}, creating empty state file")
            self._write({})
            return AuthState()

        try:
            content = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise TokenStorageError(
                f"Failed to read auth state: {e}",
                ErrorCode.STORAGE_READ_FAILED,
                path=str(self.path),
                cause=e
            )

        if not content.strip():
            return AuthState()

        try:
            data = json.loads(content)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return AuthState.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            raise TokenStorageError(
                f"Auth state file is corrupt: {e}",
                ErrorCode.STORAGE_CORRUPT,
                path=str(self.path),
                cause=e
            )

    def save(self, state: AuthState) -> None:
        self._write(state.to_dict())
        logger.debug(f"Auth state saved to {self.path}")

    def _write(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix='.tmp'
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                # Restrictive permissions before the file becomes visible
                os.chmod(temp_path, 0o600)
                os.replace(temp_path, self.path)
            except BaseException:
                Path(temp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise TokenStorageError(
                f"Failed to write auth state: {e}",
                ErrorCode.STORAGE_WRITE_FAILED,
                path=str(self.path),
                cause=e
            )


class KeyringPersistence(IAuthStore):
    """Stores the state as one JSON secret in the system keyring."""

    def __init__(self, service_name: str = 'seedr-auth', username: str = 'auth_state'):
        self.service_name = service_name
        self.username = username

    def load(self) -> AuthState:
        try:
            value = keyring.get_password(self.service_name, self.username)
        except KeyringError as e:
            raise TokenStorageError(
                f"Failed to read auth state from keyring: {e}",
                ErrorCode.STORAGE_READ_FAILED,
                cause=e
            )

        if not value:
            logger.debug(f"No auth state in keyring service {self.service_name}")
            return AuthState()

        try:
            return AuthState.from_dict(json.loads(value))
        except (ValueError, KeyError, TypeError) as e:
            raise TokenStorageError(
                f"Keyring auth state is corrupt: {e}",
                ErrorCode.STORAGE_CORRUPT,
                cause=e
            )

    def save(self, state: AuthState) -> None:
        try:
            keyring.set_password(self.service_name, self.username, json.dumps(state.to_dict()))
        except KeyringError as e:
            raise TokenStorageError(
                f"Failed to store auth state in keyring: {e}",
                ErrorCode.STORAGE_WRITE_FAILED,
                cause=e
            )
        logger.debug(f"Auth state saved to keyring service {self.service_name}")
