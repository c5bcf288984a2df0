"""
Exception hierarchy for the Seedr authentication client.

This module defines structured exceptions with error codes, context information,
and recovery suggestions so token lifecycle failures can be reported and
logged consistently.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorCode(Enum):
    """Standardized error codes for the Seedr authentication client."""

    # Credential flow errors (1000-1099)
    AUTH_MISSING_CREDENTIAL = "AUTH_1001"
    AUTH_TOKEN_STILL_VALID = "AUTH_1002"
    AUTH_NO_REFRESH_TOKEN = "AUTH_1003"
    AUTH_UNAUTHENTICATED = "AUTH_1004"
    AUTH_REMOTE_REJECTED = "AUTH_1005"

    # Device authorization errors (1100-1199)
    DEVICE_CODE_PENDING = "DEVICE_1101"
    DEVICE_ALREADY_REGISTERED = "DEVICE_1102"
    DEVICE_NO_CODE = "DEVICE_1103"
    DEVICE_AUTHORIZATION_PENDING = "DEVICE_1104"

    # Network and communication errors (2000-2099)
    NETWORK_CONNECTION_FAILED = "NETWORK_2001"
    NETWORK_TIMEOUT = "NETWORK_2002"
    NETWORK_INVALID_RESPONSE = "NETWORK_2003"

    # Storage errors (3000-3099)
    STORAGE_READ_FAILED = "STORAGE_3001"
    STORAGE_WRITE_FAILED = "STORAGE_3002"
    STORAGE_CORRUPT = "STORAGE_3003"

    # Configuration errors (8000-8099)
    CONFIG_INVALID_VALUE = "CONFIG_8004"

    # Internal errors (9000-9099)
    INTERNAL_UNEXPECTED_ERROR = "INTERNAL_9001"


class ErrorSeverity(Enum):
    """Error severity levels for logging and handling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryAction(Enum):
    """Suggested recovery actions for errors."""
    RETRY = "retry"
    WAIT_FOR_APPROVAL = "wait_for_approval"
    LOGIN = "login"
    REGISTER_DEVICE = "register_device"
    USE_EXISTING_TOKEN = "use_existing_token"
    CHECK_CONFIGURATION = "check_configuration"
    USER_INTERVENTION = "user_intervention"
    IGNORE = "ignore"


class SeedrAuthError(Exception):
    """
    Base exception class for all Seedr authentication errors.

    Provides structured error information including error codes, context,
    and recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        recovery_actions: Optional[List[RecoveryAction]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.context = context or {}
        self.recovery_actions = recovery_actions or []
        self.cause = cause
        self.user_message = user_message or message
        self.timestamp = datetime.now()

        if cause:
            self.context['cause_type'] = type(cause).__name__
            self.context['cause_message'] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for serialization."""
        return {
            'error': {
                'type': type(self).__name__,
                'code': self.error_code.value,
                'message': self.message,
                'user_message': self.user_message,
                'severity': self.severity.value,
                'timestamp': self.timestamp.isoformat(),
                'context': self.context,
                'recovery_actions': [action.value for action in self.recovery_actions],
                'cause': {
                    'type': self.context.get('cause_type'),
                    'message': self.context.get('cause_message')
                } if self.cause else None
            }
        }


# Category base classes

class AuthenticationError(SeedrAuthError):
    """Failures of a credential flow; a later renewal strategy may still succeed."""

    def __init__(self, message: str, error_code: ErrorCode, **kwargs):
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)
        kwargs.setdefault('recovery_actions', [RecoveryAction.LOGIN])
        super().__init__(message=message, error_code=error_code, **kwargs)


class NetworkError(SeedrAuthError):
    """Network and communication related errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.NETWORK_CONNECTION_FAILED, **kwargs):
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)
        kwargs.setdefault('recovery_actions', [RecoveryAction.RETRY])
        super().__init__(message=message, error_code=error_code, **kwargs)


class TokenStorageError(SeedrAuthError):
    """Persistence store failures."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
                 path: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if path:
            context['path'] = path
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        kwargs.setdefault('recovery_actions', [RecoveryAction.CHECK_CONFIGURATION])
        super().__init__(message=message, error_code=error_code, context=context, **kwargs)


class ConfigurationError(SeedrAuthError):
    """Configuration related errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFIG_INVALID_VALUE,
                 config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if config_key:
            context['config_key'] = config_key
        super().__init__(
            message=message,
            error_code=error_code,
            severity=ErrorSeverity.HIGH,
            recovery_actions=[RecoveryAction.CHECK_CONFIGURATION],
            context=context,
            **kwargs
        )


# Specific credential flow errors

class MissingCredential(AuthenticationError):
    """Neither the cached credential nor the arguments supplied a username and password."""

    def __init__(self, message: str = "No username or password provided", **kwargs):
        super().__init__(
            message,
            ErrorCode.AUTH_MISSING_CREDENTIAL,
            severity=ErrorSeverity.LOW,
            recovery_actions=[RecoveryAction.USER_INTERVENTION],
            **kwargs
        )


class TokenStillValid(AuthenticationError):
    """An explicit login was refused because the cached access token has not expired."""

    def __init__(self, expiry: Optional[int] = None, **kwargs):
        context = kwargs.pop('context', {})
        if expiry is not None:
            context['expiry'] = expiry
        super().__init__(
            "Valid token already exists",
            ErrorCode.AUTH_TOKEN_STILL_VALID,
            severity=ErrorSeverity.LOW,
            recovery_actions=[RecoveryAction.USE_EXISTING_TOKEN],
            context=context,
            **kwargs
        )


class NoRefreshToken(AuthenticationError):
    """No refresh token is cached."""

    def __init__(self, **kwargs):
        super().__init__(
            "Attempted to refresh without refresh token",
            ErrorCode.AUTH_NO_REFRESH_TOKEN,
            **kwargs
        )


class RemoteAuthError(AuthenticationError):
    """The auth service answered with a non-success status or an error payload."""

    def __init__(
        self,
        description: str,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        context['status_code'] = status_code
        context['error'] = error
        super().__init__(
            description,
            ErrorCode.AUTH_REMOTE_REJECTED,
            context=context,
            **kwargs
        )
        self.description = description
        self.status_code = status_code
        self.error = error


class Unauthenticated(AuthenticationError):
    """Terminal failure: no renewal strategy produced an access token."""

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(
            message or (
                "Not logged in or registered, use login_oauth() or "
                "obtain_device_code() with a persistent store"
            ),
            ErrorCode.AUTH_UNAUTHENTICATED,
            severity=ErrorSeverity.HIGH,
            recovery_actions=[RecoveryAction.LOGIN, RecoveryAction.REGISTER_DEVICE],
            **kwargs
        )


# Device authorization errors

def _pending_message(user_code: Optional[str], verification_url: Optional[str]) -> str:
    if user_code:
        return (
            f"Device code is valid, yet to be authorized, use {user_code} "
            f"in {verification_url or 'https://www.seedr.cc/devices'}"
        )
    return "Device code is valid, yet to be authorized"


class DeviceCodePending(AuthenticationError):
    """An unexpired device code is still waiting for approval."""

    def __init__(self, user_code: Optional[str] = None, verification_url: Optional[str] = None, **kwargs):
        super().__init__(
            _pending_message(user_code, verification_url),
            ErrorCode.DEVICE_CODE_PENDING,
            severity=ErrorSeverity.LOW,
            recovery_actions=[RecoveryAction.WAIT_FOR_APPROVAL],
            context={'user_code': user_code},
            **kwargs
        )
        self.user_code = user_code


class DeviceAlreadyRegistered(AuthenticationError):
    """The stored device code has already been approved."""

    def __init__(self, **kwargs):
        super().__init__(
            "Device code already registered",
            ErrorCode.DEVICE_ALREADY_REGISTERED,
            severity=ErrorSeverity.LOW,
            recovery_actions=[RecoveryAction.IGNORE],
            **kwargs
        )


class NoDeviceCode(AuthenticationError):
    """No device code is cached."""

    def __init__(self, **kwargs):
        super().__init__(
            "No device code, generate code and authorize",
            ErrorCode.DEVICE_NO_CODE,
            recovery_actions=[RecoveryAction.REGISTER_DEVICE],
            **kwargs
        )


class AuthorizationPending(AuthenticationError):
    """The device pairing has not been approved by the user yet."""

    def __init__(self, user_code: Optional[str] = None, verification_url: Optional[str] = None, **kwargs):
        super().__init__(
            _pending_message(user_code, verification_url),
            ErrorCode.DEVICE_AUTHORIZATION_PENDING,
            severity=ErrorSeverity.LOW,
            recovery_actions=[RecoveryAction.WAIT_FOR_APPROVAL],
            context={'user_code': user_code},
            **kwargs
        )
        self.user_code = user_code


def handle_exception(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    default_error_code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED_ERROR
) -> SeedrAuthError:
    """
    Convert a generic exception to a structured SeedrAuthError.

    Args:
        exception: The original exception
        context: Additional context information
        default_error_code: Default error code if specific mapping not found

    Returns:
        Structured SeedrAuthError
    """
    if isinstance(exception, SeedrAuthError):
        return exception

    if isinstance(exception, TimeoutError):
        return NetworkError(str(exception), ErrorCode.NETWORK_TIMEOUT, context=context, cause=exception)
    if isinstance(exception, ConnectionError):
        return NetworkError(str(exception), ErrorCode.NETWORK_CONNECTION_FAILED, context=context, cause=exception)
    if isinstance(exception, (PermissionError, FileNotFoundError, IsADirectoryError)):
        return TokenStorageError(str(exception), ErrorCode.STORAGE_READ_FAILED, context=context, cause=exception)

    return SeedrAuthError(
        message=str(exception),
        error_code=default_error_code,
        context=context,
        cause=exception
    )
