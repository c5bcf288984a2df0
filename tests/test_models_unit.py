"""
Unit tests for the auth state and response models.
"""

import pytest

from seedr_auth.models import (
    AuthState, AccessToken, RefreshToken, DevicePairing, Credential,
    TokenResponse, DeviceCodeResponse, expiry_from_ttl, mask_token
)

from conftest import NOW


class TestAccessToken:

    def test_validity_boundary(self):
        token = AccessToken('a', NOW)
        assert token.is_valid(NOW - 1)
        assert not token.is_valid(NOW)

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            AccessToken('', NOW)


class TestDevicePairing:

    def test_pending_and_lapsed(self, pending_pairing):
        assert pending_pairing.is_pending(NOW)
        assert not pending_pairing.is_approved
        assert pending_pairing.is_lapsed(pending_pairing.expiry)
        assert not pending_pairing.is_usable(pending_pairing.expiry)

    def test_mark_approved(self, pending_pairing):
        pending_pairing.mark_approved()
        assert pending_pairing.is_approved
        assert pending_pairing.is_usable(NOW + 10 ** 12)
        assert 'expiry' not in pending_pairing.to_dict()

    def test_from_dict_without_user_code(self):
        pairing = DevicePairing.from_dict({'device_code': 'd'})
        assert pairing == DevicePairing('d', '', None)


class TestAuthState:

    def test_empty_dict(self):
        assert AuthState.from_dict({}) == AuthState()
        assert AuthState.from_dict(None).is_empty()
        assert AuthState().to_dict() == {}

    def test_to_dict_shape(self, credential):
        state = AuthState(
            access=AccessToken('a', NOW),
            refresh=RefreshToken('r'),
            credential=credential
        )
        assert state.to_dict() == {
            'access': {'token': 'a', 'expiry': NOW},
            'refresh': {'token': 'r'},
            'credential': {'username': 'user@example.com', 'password': 'hunter2'},
        }
        assert AuthState.from_dict(state.to_dict()) == state

    def test_is_access_valid(self, valid_access, expired_access):
        assert AuthState(access=valid_access).is_access_valid(NOW)
        assert not AuthState(access=expired_access).is_access_valid(NOW)
        assert not AuthState().is_access_valid(NOW)

    def test_describe_never_contains_secrets(self, expired_access, refresh_token, approved_pairing, credential):
        state = AuthState(access=expired_access, refresh=refresh_token,
                          xbmc=approved_pairing, credential=credential)

        summary = state.describe(NOW)

        assert summary['access'] == 'expired'
        assert summary['access_expires_in'] == 0
        assert summary['device'] == 'approved'
        text = str(summary)
        for secret in ('access-old', 'refresh-1', 'dev-code-1', 'hunter2'):
            assert secret not in text

    def test_describe_lapsed_and_absent(self):
        state = AuthState(xbmc=DevicePairing('d', 'U', expiry=NOW - 1))
        summary = state.describe(NOW)
        assert summary['access'] == 'absent'
        assert summary['access_expires_in'] is None
        assert summary['device'] == 'lapsed'
        assert 'user_code' not in summary


class TestResponses:

    def test_token_response_defaults(self):
        response = TokenResponse.from_dict({'access_token': 'a', 'expires_in': '3600'})
        assert response.expires_in == 3600
        assert response.token_type == 'Bearer'
        assert response.refresh_token is None

    def test_token_response_missing_field(self):
        with pytest.raises(KeyError):
            TokenResponse.from_dict({'expires_in': 3600})

    @pytest.mark.parametrize("token", ['', None, 42])
    def test_token_response_unusable_access_token(self, token):
        with pytest.raises(ValueError, match="access_token"):
            TokenResponse.from_dict({'access_token': token, 'expires_in': 3600})

    def test_device_code_response(self):
        response = DeviceCodeResponse.from_dict({
            'device_code': 'd', 'user_code': 'U', 'expires_in': 600, 'interval': 10
        })
        assert response.interval == 10
        assert response.verification_url == 'https://www.seedr.cc/devices'


def test_expiry_from_ttl():
    assert expiry_from_ttl(3600, NOW) == NOW + 3_600_000
    assert expiry_from_ttl(0.5, NOW) == NOW + 500


def test_mask_token():
    assert mask_token('abcdefghijklmnop') == 'abcdefgh...'
    assert mask_token(None) == '<none>'
