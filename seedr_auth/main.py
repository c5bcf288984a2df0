"""
Command-line interface for the Seedr authentication client.

Logs in, registers this client as a device, renews and prints access tokens,
and reports the state of the stored credentials.
"""

import sys
import json
import asyncio
import argparse
import getpass
import logging
from typing import Optional, List, Dict, Any

from seedr_auth.auth.token_manager import TokenLifecycleManager
from seedr_auth.auth.token_storage import NoPersistence, FilePersistence
from seedr_auth.config import ClientConfiguration
from seedr_auth.exceptions import SeedrAuthError, ConfigurationError, handle_exception
from seedr_auth.logging_config import setup_logging, LogLevel, LogFormat, log_structured_error
from seedr_auth.models import TokenResponse, DeviceCodeResponse

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="seedr-auth",
        description="Seedr authentication client",
        epilog="""
Examples:
  %(prog)s login -u user@example.com --save   # Log in and cache the password
  %(prog)s device-code                        # Register this client as a device
  %(prog)s authorize                          # Finish device registration
  %(prog)s token                              # Print a valid access token
  %(prog)s status --json                      # Show stored credentials as JSON
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    config_group = parser.add_argument_group('Configuration')
    config_group.add_argument("--config", type=str, metavar="FILE",
                              help="Path to configuration file")
    config_group.add_argument("--base-url", type=str, metavar="URL",
                              help="Override Seedr service URL")
    store_group = config_group.add_mutually_exclusive_group()
    store_group.add_argument("--state-file", type=str, metavar="FILE",
                             help="Auth state file to use")
    store_group.add_argument("--memory", action="store_true",
                             help="Keep auth state in memory only")

    output_group = parser.add_argument_group('Output')
    output_group.add_argument("--json", action="store_true",
                              help="Output results in JSON format")
    output_group.add_argument("--debug", action="store_true",
                              help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    login_parser = subparsers.add_parser("login", help="Log in with username and password")
    login_parser.add_argument("--username", "-u", type=str, help="Account email")
    login_parser.add_argument("--password", "-p", type=str,
                              help="Account password (prompted for when omitted and no login is cached)")
    login_parser.add_argument("--save", action="store_true",
                              help="Store username and password in the auth state (plain text)")

    subparsers.add_parser("device-code", help="Request a device code to approve at seedr.cc/devices")
    subparsers.add_parser("authorize", help="Exchange the device code for an access token")
    subparsers.add_parser("refresh", help="Renew the access token with the refresh token")
    subparsers.add_parser("token", help="Print a valid access token, renewing it if needed")
    subparsers.add_parser("status", help="Show the stored credentials")

    return parser.parse_args(argv)


def _token_summary(response: TokenResponse) -> Dict[str, Any]:
    return {
        'token_type': response.token_type,
        'expires_in': response.expires_in,
        'refresh_token': response.refresh_token is not None,
    }


def _device_code_summary(response: DeviceCodeResponse) -> Dict[str, Any]:
    return {
        'user_code': response.user_code,
        'verification_url': response.verification_url,
        'expires_in': response.expires_in,
        'interval': response.interval,
    }


def _print_result(args: argparse.Namespace, message: str, data: Dict[str, Any]) -> None:
    if args.json:
        print(json.dumps(data, indent=2))
    else:
        print(message)


def _print_status(args: argparse.Namespace, status: Dict[str, Any]) -> None:
    if args.json:
        print(json.dumps(status, indent=2))
        return

    access = status['access']
    if access == 'valid':
        access = f"valid for {status['access_expires_in']}s"
    print(f"Access token:  {access}")
    print(f"Refresh token: {'present' if status['refresh'] else 'absent'}")

    device = status['device']
    if device == 'pending':
        device = f"pending approval of {status['user_code']}"
    print(f"Device:        {device}")

    credential = f"cached for {status['username']}" if status['credential'] else 'absent'
    print(f"Credential:    {credential}")


async def run_command(args: argparse.Namespace, config: ClientConfiguration) -> int:
    """
    Run a single CLI command.

    Args:
        args: Parsed command line arguments
        config: Loaded client configuration

    Returns:
        Process exit code
    """
    if args.memory:
        store = NoPersistence()
    elif args.state_file:
        store = FilePersistence(args.state_file)
    else:
        store = config.create_store()

    async with config.create_api_client() as api_client:
        manager = TokenLifecycleManager(
            store,
            api_client=api_client,
            poll_pending_device_code=config.get_poll_pending_device_code()
        )

        if args.command == 'login':
            password = args.password
            state = await manager.get_state()
            if args.username and not password and state.credential is None:
                password = getpass.getpass("Seedr password: ")
            response = await manager.login_oauth(args.username, password, save=args.save)
            _print_result(args, f"Logged in, access token valid for {response.expires_in}s",
                          _token_summary(response))

        elif args.command == 'device-code':
            response = await manager.obtain_device_code()
            _print_result(
                args,
                f"Enter code {response.user_code} at {response.verification_url}, "
                f"then run 'seedr-auth authorize'",
                _device_code_summary(response)
            )

        elif args.command == 'authorize':
            response = await manager.refresh_token_xbmc()
            _print_result(args, f"Device authorized, access token valid for {response.expires_in}s",
                          _token_summary(response))

        elif args.command == 'refresh':
            response = await manager.refresh_token_oauth()
            _print_result(args, f"Access token refreshed, valid for {response.expires_in}s",
                          _token_summary(response))

        elif args.command == 'token':
            token = await manager.get_access_token()
            _print_result(args, token, {'access_token': token})

        elif args.command == 'status':
            _print_status(args, await manager.status())

    return 0


def _report_error(args: argparse.Namespace, error: SeedrAuthError) -> None:
    log_structured_error(logger, error, level=logging.DEBUG)
    if args.json:
        print(json.dumps(error.to_dict(), indent=2, default=str), file=sys.stderr)
    else:
        print(f"Error: {error.user_message}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the seedr-auth command."""
    args = parse_arguments(argv)

    try:
        config = ClientConfiguration(args.config)
        if args.base_url:
            config.set_override('base_url', args.base_url)

        try:
            log_level = LogLevel.DEBUG if args.debug else LogLevel(config.get_log_level())
            log_format = LogFormat(config.get_log_format())
        except ValueError as e:
            raise ConfigurationError(f"Invalid logging configuration: {e}", config_key="logging")
        setup_logging(
            log_level=log_level,
            log_format=log_format,
            log_file=config.get_log_file()
        )
        logger.debug(f"Using configuration file {config.get_config_file_path()}")

        return asyncio.run(run_command(args, config))

    except SeedrAuthError as e:
        _report_error(args, e)
        return 1
    except OSError as e:
        _report_error(args, handle_exception(e, context={'command': args.command}))
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130


if __name__ == '__main__':
    sys.exit(main())
