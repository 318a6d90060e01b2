#!/usr/bin/env python3
"""
Selorg client - terminal front end for the session core.

Main entry point: log in with an OTP, check the session, log out.
"""

import argparse
import asyncio
import logging
import os
import sys
import threading

from selorg_client.core.config.settings import get_settings, load_env_variables
from selorg_client.core.exceptions import (
    ApiError,
    ConfigurationError,
    OTPError,
    get_user_friendly_message,
)
from selorg_client.core.logger import setup_structured_logging
from selorg_client.core.retry import get_network_retry
from selorg_client.services.api.endpoints import UserEndpoints
from selorg_client.services.api.types import ApiResponse
from selorg_client.services.auth.models import OTPState
from selorg_client.services.auth.otp_flow import OTPLoginFlow
from selorg_client.services.session_context import SessionContext

logger = logging.getLogger(__name__)

RESEND_COMMAND = "r"
QUIT_COMMAND = "q"


async def prompt(text: str) -> str:
    """
    Read a line without blocking the event loop (the cooldown keeps ticking).

    The read runs on a daemon thread rather than the default executor, so
    Ctrl-C at the prompt exits at once instead of waiting for Enter.
    """
    loop = asyncio.get_running_loop()
    future: "asyncio.Future[str]" = loop.create_future()

    def deliver(setter, value) -> None:
        if not future.done():
            setter(value)

    def read() -> None:
        try:
            line = input(text)
        except BaseException as e:  # EOFError, KeyboardInterrupt
            outcome = (future.set_exception, e)
        else:
            outcome = (future.set_result, line)
        try:
            loop.call_soon_threadsafe(deliver, *outcome)
        except RuntimeError:
            # Loop already closed, nobody is waiting for this line
            pass

    threading.Thread(target=read, name="selorg-prompt", daemon=True).start()
    return (await future).strip()


async def run_login(context: SessionContext, phone: str) -> int:
    """Run the OTP flow interactively."""
    flow = context.new_login_flow()
    try:
        if not await flow.send_otp(phone):
            print(f"Error: {flow.error}")
            return 1
        print(f"OTP sent to {phone}.")

        while flow.state != OTPState.VERIFIED:
            hint = (
                f"'{RESEND_COMMAND}' to resend"
                if flow.can_resend
                else f"resend in {flow.timer.format_remaining()}"
            )
            answer = await prompt(f"Enter OTP ({hint}, '{QUIT_COMMAND}' to quit): ")

            if answer.lower() == QUIT_COMMAND:
                return 1

            if answer.lower() == RESEND_COMMAND:
                await _resend(flow)
                continue

            if not await flow.verify_otp(answer):
                print(f"Error: {flow.error}")

        print("Logged in.")
        if flow.persist_error:
            print(f"Warning: {flow.persist_error}")
        return 0
    finally:
        flow.dispose()


async def _resend(flow: OTPLoginFlow) -> None:
    try:
        if await flow.resend_otp():
            print("OTP resent.")
        else:
            print(f"Error: {flow.error}")
    except OTPError as e:
        print(e.message)


async def run_logout(context: SessionContext) -> int:
    """Log out and drop the stored tokens."""
    if not context.token_manager.is_authenticated():
        print("Not logged in.")
        return 0
    removed = await context.logout()
    print("Logged out." if removed else "Logged out, but stored tokens could not be removed.")
    return 0 if removed else 1


@get_network_retry()
async def _fetch_profile(context: SessionContext) -> ApiResponse:
    return await context.client.get(UserEndpoints.PROFILE)


async def run_status(context: SessionContext) -> int:
    """Report whether the stored session is still accepted by the server."""
    if not context.token_manager.is_authenticated():
        print("Not logged in.")
        return 1

    try:
        response = await _fetch_profile(context)
    except ApiError as e:
        # A 401 has already cleared the stored tokens
        print(f"Session check failed: {get_user_friendly_message(e)}")
        return 1

    if not response.success:
        print(f"Session check failed: {response.failure_message('unknown error')}")
        return 1

    profile = response.data if isinstance(response.data, dict) else {}
    print(f"Logged in as {profile.get('name') or profile.get('phoneNumber') or 'unknown user'}.")
    return 0


async def run_command(args: argparse.Namespace) -> int:
    """Build the session core, run one command, tear it down."""
    async with SessionContext.create(get_settings()) as context:
        if not context.started:
            logger.warning("Stored session could not be loaded, continuing logged out")

        if args.command == "login":
            return await run_login(context, args.phone)
        if args.command == "logout":
            return await run_logout(context)
        return await run_status(context)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Selorg client - OTP login and session tools")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to SELORG_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Log in with a one-time password")
    login_parser.add_argument("--phone", required=True, help="Phone number to send the OTP to")
    subparsers.add_parser("logout", help="Log out and remove stored tokens")
    subparsers.add_parser("status", help="Check the stored session against the server")

    args = parser.parse_args()

    load_env_variables()

    try:
        settings = get_settings()
    except ValueError as e:
        # pydantic ValidationError is a ValueError
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    json_logging = os.getenv("JSON_LOGGING", "false").lower() == "true"
    setup_structured_logging(args.log_level or settings.log_level, json_format=json_logging)

    try:
        sys.exit(asyncio.run(run_command(args)))
    except KeyboardInterrupt:
        sys.exit(130)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        sys.exit(2)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
