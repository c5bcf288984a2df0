"""
Configuration Management for the Seedr authentication client.

This module handles the service URL, client identifiers, auth state storage
and logging settings with support for configuration files and environment
variables.
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from configparser import ConfigParser, Error as ConfigParserError

from seedr_auth.api_client import SeedrAuthAPIClient, DEFAULT_BASE_URL, OAUTH_CLIENT_ID, DEVICE_CLIENT_ID
from seedr_auth.auth.token_storage import (
    NoPersistence, FilePersistence, KeyringPersistence, get_default_state_path
)
from seedr_auth.exceptions import ConfigurationError, ErrorCode
from seedr_auth.interfaces import IConfigurationManager, IAuthStore

logger = logging.getLogger(__name__)

STORE_TYPES = ('file', 'memory', 'keyring')


class ClientConfiguration(IConfigurationManager):
    """
    Configuration manager for the Seedr authentication client.

    Supports configuration from:
    1. Command line arguments (highest priority)
    2. Environment variables
    3. Configuration file
    4. Default values (lowest priority)
    """

    def __init__(self, config_file: Optional[str] = None):
        self._config_file = config_file or self._get_default_config_path()
        self._config_data: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}

        self._load_configuration()

    def _get_default_config_path(self) -> str:
        """Get default configuration file path, creating it on first use."""
        config_dir = Path.home() / '.seedr'
        user_config_path = str(config_dir / 'client.conf')

        if not os.path.exists(user_config_path):
            try:
                config_dir.mkdir(parents=True, exist_ok=True)
                self._create_default_config(user_config_path)
            except OSError as e:
                logger.warning(f"Could not create default configuration at {user_config_path}: {e}")

        return user_config_path

    def _create_default_config(self, config_path: str) -> None:
        """Create a minimal default configuration file."""
        default_config = """# Seedr Auth Client Configuration
# Configuration file: {config_path}

[server]
# Seedr service URL
base_url = {base_url}

# Request timeout in seconds
timeout = 30

[auth]
# Auth state store: file, memory or keyring
store = file

# Auth state file used by the file store
state_file = {state_file}

# Keep polling a device code that is waiting for approval
poll_pending_device_code = true

[logging]
# Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
level = INFO

# Log format: standard, json or detailed
format = standard
""".format(
            config_path=config_path,
            base_url=DEFAULT_BASE_URL,
            state_file=get_default_state_path()
        )

        with open(config_path, 'w') as f:
            f.write(default_config)

        logger.info(f"Created default configuration file: {config_path}")

    def _load_configuration(self) -> None:
        """Load configuration from file and environment variables."""
        if os.path.exists(self._config_file):
            self._load_from_file()
            logger.debug(f"Configuration loaded from: {self._config_file}")
        else:
            logger.debug(f"Configuration file not found: {self._config_file}")

        self._load_from_environment()
        self._set_defaults()

    def _load_from_file(self) -> None:
        """Load configuration from INI file."""
        config = ConfigParser()
        try:
            config.read(self._config_file)
        except ConfigParserError as e:
            raise ConfigurationError(
                f"Failed to parse configuration file {self._config_file}: {e}",
                ErrorCode.CONFIG_INVALID_VALUE,
                cause=e
            )

        for section_name in config.sections():
            section_data = {}
            for key, value in config[section_name].items():
                # Parse JSON scalars (numbers, true/false); keep anything else as a string
                try:
                    section_data[key] = json.loads(value)
                except (json.JSONDecodeError, ValueError):
                    section_data[key] = value

            self._config_data[section_name] = section_data

    def _load_from_environment(self) -> None:
        """Load configuration from environment variables."""
        env_mappings = {
            'SEEDR_BASE_URL': ('server', 'base_url'),
            'SEEDR_TIMEOUT': ('server', 'timeout'),
            'SEEDR_STORE': ('auth', 'store'),
            'SEEDR_STATE_FILE': ('auth', 'state_file'),
            'SEEDR_POLL_PENDING_DEVICE_CODE': ('auth', 'poll_pending_device_code'),
            'SEEDR_LOG_LEVEL': ('logging', 'level'),
        }

        for env_var, (section, key) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                if section not in self._config_data:
                    self._config_data[section] = {}

                if value.lower() in ('true', 'false'):
                    self._config_data[section][key] = value.lower() == 'true'
                elif value.isdigit():
                    self._config_data[section][key] = int(value)
                else:
                    self._config_data[section][key] = value

    def _set_defaults(self) -> None:
        """Set default configuration values."""
        defaults = {
            'server': {
                'base_url': DEFAULT_BASE_URL,
                'timeout': 30.0,
            },
            'auth': {
                'store': 'file',
                'state_file': str(get_default_state_path()),
                'keyring_service': 'seedr-auth',
                'oauth_client_id': OAUTH_CLIENT_ID,
                'device_client_id': DEVICE_CLIENT_ID,
                'poll_pending_device_code': True,
            },
            'logging': {
                'level': 'INFO',
                'format': 'standard',
                'file': None,
            },
        }

        for section, section_defaults in defaults.items():
            if section not in self._config_data:
                self._config_data[section] = {}

            for key, default_value in section_defaults.items():
                if key not in self._config_data[section]:
                    self._config_data[section][key] = default_value

    def get_base_url(self) -> str:
        """Get the Seedr service base URL."""
        return self._overrides.get('base_url') or self._config_data['server']['base_url']

    def get_state_file(self) -> str:
        """Get the auth state file path."""
        return self._overrides.get('state_file') or str(self._config_data['auth']['state_file'])

    def get_store_type(self) -> str:
        """Get the configured auth state store type."""
        store = self._overrides.get('store') or self._config_data['auth']['store']
        store = str(store).lower()
        if store not in STORE_TYPES:
            raise ConfigurationError(
                f"Unknown auth store '{store}', expected one of {', '.join(STORE_TYPES)}",
                config_key='auth.store'
            )
        return store

    def get_config(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key in format 'section.key'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if '.' not in key:
            return self._config_data.get(key, default)

        section, config_key = key.split('.', 1)
        return self._config_data.get(section, {}).get(config_key, default)

    def set_config(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key in format 'section.key'
            value: Value to set
        """
        if '.' not in key:
            self._config_data[key] = value
            return

        section, config_key = key.split('.', 1)
        if section not in self._config_data:
            self._config_data[section] = {}
        self._config_data[section][config_key] = value

    def set_override(self, key: str, value: Any) -> None:
        """
        Set configuration override (highest priority).

        Args:
            key: Configuration key (base_url, state_file, store)
            value: Override value
        """
        self._overrides[key] = value

    def save_configuration(self) -> None:
        """Save current configuration to file."""
        config = ConfigParser()

        for section_name, section_data in self._config_data.items():
            if not isinstance(section_data, dict):
                continue
            config.add_section(section_name)
            for key, value in section_data.items():
                if value is None:
                    continue
                if isinstance(value, bool):
                    config.set(section_name, key, 'true' if value else 'false')
                elif isinstance(value, (dict, list)):
                    config.set(section_name, key, json.dumps(value))
                else:
                    config.set(section_name, key, str(value))

        config_path = Path(self._config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_file, 'w') as f:
            config.write(f)

        logger.info(f"Configuration saved to: {self._config_file}")

    def get_all_config(self) -> Dict[str, Any]:
        """Get all configuration data."""
        return self._config_data.copy()

    def get_config_file_path(self) -> str:
        """Get configuration file path."""
        return self._config_file

    def reload_configuration(self) -> None:
        """Reload configuration from file and environment."""
        self._config_data.clear()
        self._load_configuration()
        logger.info("Configuration reloaded")

    # Convenience methods for common configuration values

    def get_server_timeout(self) -> float:
        """Get server request timeout."""
        value = self.get_config('server.timeout', 30.0)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid timeout: {value!r}", config_key='server.timeout')

    def get_poll_pending_device_code(self) -> bool:
        """Whether the renewal cascade polls a device code awaiting approval."""
        value = self.get_config('auth.poll_pending_device_code', True)
        if isinstance(value, str):
            return value.lower() in ('1', 'true', 'yes', 'on')
        return bool(value)

    def get_keyring_service(self) -> str:
        return self.get_config('auth.keyring_service', 'seedr-auth')

    def get_log_level(self) -> str:
        """Get logging level."""
        return str(self.get_config('logging.level', 'INFO')).upper()

    def get_log_format(self) -> str:
        """Get logging format."""
        return str(self.get_config('logging.format', 'standard')).lower()

    def get_log_file(self) -> Optional[str]:
        """Get log file path."""
        return self.get_config('logging.file')

    # Factories

    def create_store(self) -> IAuthStore:
        """Build the configured auth state store."""
        store_type = self.get_store_type()
        if store_type == 'memory':
            return NoPersistence()
        if store_type == 'keyring':
            return KeyringPersistence(service_name=self.get_keyring_service())
        return FilePersistence(self.get_state_file())

    def create_api_client(self) -> SeedrAuthAPIClient:
        """Build an auth API client for the configured service."""
        return SeedrAuthAPIClient(
            base_url=self.get_base_url(),
            timeout=self.get_server_timeout(),
            oauth_client_id=self.get_config('auth.oauth_client_id', OAUTH_CLIENT_ID),
            device_client_id=self.get_config('auth.device_client_id', DEVICE_CLIENT_ID)
        )
