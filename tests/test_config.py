"""
Tests for client configuration loading and precedence.
"""

import pytest

from seedr_auth.api_client import SeedrAuthAPIClient
from seedr_auth.auth.token_storage import NoPersistence, FilePersistence, KeyringPersistence
from seedr_auth.config import ClientConfiguration
from seedr_auth.exceptions import ConfigurationError

SEEDR_ENV_VARS = (
    'SEEDR_BASE_URL', 'SEEDR_TIMEOUT', 'SEEDR_STORE', 'SEEDR_STATE_FILE',
    'SEEDR_POLL_PENDING_DEVICE_CODE', 'SEEDR_LOG_LEVEL',
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    for name in SEEDR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'xdg'))


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'client.conf'
    path.write_text("""
[server]
base_url = https://seedr.example
timeout = 12

[auth]
store = memory
poll_pending_device_code = false

[logging]
level = WARNING
""")
    return str(path)


class TestClientConfiguration:

    def test_defaults_without_file(self, tmp_path):
        config = ClientConfiguration(str(tmp_path / 'missing.conf'))

        assert config.get_base_url() == 'https://www.seedr.cc'
        assert config.get_server_timeout() == 30.0
        assert config.get_store_type() == 'file'
        assert config.get_state_file() == str(tmp_path / 'xdg' / 'seedr' / 'auth_state.json')
        assert config.get_poll_pending_device_code() is True
        assert config.get_log_level() == 'INFO'
        assert config.get_log_format() == 'standard'
        assert config.get_log_file() is None

    def test_file_values(self, config_file):
        config = ClientConfiguration(config_file)

        assert config.get_base_url() == 'https://seedr.example'
        assert config.get_server_timeout() == 12.0
        assert config.get_store_type() == 'memory'
        assert config.get_poll_pending_device_code() is False
        assert config.get_log_level() == 'WARNING'
        assert config.get_config('auth.oauth_client_id') == 'seedr_chrome'

    def test_environment_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv('SEEDR_BASE_URL', 'https://env.example')
        monkeypatch.setenv('SEEDR_TIMEOUT', '5')
        monkeypatch.setenv('SEEDR_POLL_PENDING_DEVICE_CODE', 'true')

        config = ClientConfiguration(config_file)

        assert config.get_base_url() == 'https://env.example'
        assert config.get_server_timeout() == 5.0
        assert config.get_poll_pending_device_code() is True

    def test_override_beats_environment(self, config_file, monkeypatch):
        monkeypatch.setenv('SEEDR_STATE_FILE', '/env/state.json')
        config = ClientConfiguration(config_file)
        config.set_override('state_file', '/cli/state.json')

        assert config.get_state_file() == '/cli/state.json'

    def test_dot_notation(self, tmp_path):
        config = ClientConfiguration(str(tmp_path / 'missing.conf'))

        config.set_config('logging.file', '/tmp/seedr.log')

        assert config.get_config('logging.file') == '/tmp/seedr.log'
        assert config.get_config('logging.missing', 'fallback') == 'fallback'
        assert config.get_config('nosection.key') is None
        assert 'server' in config.get_all_config()

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / 'conf' / 'client.conf'
        config = ClientConfiguration(str(path))
        config.set_config('server.base_url', 'https://saved.example')
        config.set_config('auth.poll_pending_device_code', False)

        config.save_configuration()

        reloaded = ClientConfiguration(str(path))
        assert reloaded.get_base_url() == 'https://saved.example'
        assert reloaded.get_poll_pending_device_code() is False

        path.write_text("[server]\nbase_url = https://edited.example\n")
        reloaded.reload_configuration()
        assert reloaded.get_base_url() == 'https://edited.example'

    def test_invalid_store(self, tmp_path, monkeypatch):
        monkeypatch.setenv('SEEDR_STORE', 'cloud')
        config = ClientConfiguration(str(tmp_path / 'missing.conf'))

        with pytest.raises(ConfigurationError) as exc_info:
            config.create_store()
        assert exc_info.value.context['config_key'] == 'auth.store'

    def test_invalid_timeout(self, tmp_path, monkeypatch):
        monkeypatch.setenv('SEEDR_TIMEOUT', 'soon')
        config = ClientConfiguration(str(tmp_path / 'missing.conf'))

        with pytest.raises(ConfigurationError):
            config.get_server_timeout()

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / 'client.conf'
        path.write_text("base_url = no section header\n")

        with pytest.raises(ConfigurationError):
            ClientConfiguration(str(path))


class TestFactories:

    @pytest.mark.parametrize("store_type,store_class", [
        ('memory', NoPersistence),
        ('file', FilePersistence),
        ('keyring', KeyringPersistence),
    ])
    def test_create_store(self, tmp_path, monkeypatch, store_type, store_class):
        monkeypatch.setenv('SEEDR_STORE', store_type)
        config = ClientConfiguration(str(tmp_path / 'missing.conf'))

        assert isinstance(config.create_store(), store_class)

    def test_file_store_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv('SEEDR_STATE_FILE', str(tmp_path / 'state.json'))
        config = ClientConfiguration(str(tmp_path / 'missing.conf'))

        assert config.create_store().path == tmp_path / 'state.json'

    def test_create_api_client(self, config_file):
        client = ClientConfiguration(config_file).create_api_client()

        assert isinstance(client, SeedrAuthAPIClient)
        assert client.base_url == 'https://seedr.example'
        assert client.timeout.total == 12.0
        assert client.device_client_id == 'seedr_xbmc'
