"""Command line client: open a bridge session and follow it until the wallet answers."""

from __future__ import annotations

import asyncio
import io
import logging
import sys

import click
import qrcode

from .config import get_settings
from .errors import WalletBridgeError
from .logging_config import setup_logging
from .models import CredentialCategory, VerificationLevel
from .session import BridgeSession, request_credential_categories, request_verification
from .status import AwaitingConfirmation, Confirmed, Failed, WaitingForConnection

logger = logging.getLogger(__name__)

EXIT_CONFIRMED = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def render_qr(data: str) -> str:
    """Render ``data`` as a terminal QR code."""
    qr = qrcode.QRCode(border=2, error_correction=qrcode.constants.ERROR_CORRECT_M)
    qr.add_data(data)
    qr.make(fit=True)

    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)
    return out.getvalue()


async def follow_session(session: BridgeSession, timeout: float | None, show_qr: bool) -> int:
    """Print the connector URL, then each status transition. Returns the exit code."""
    async with session:
        click.echo(f"Connector URL: {session.connector_url}")
        if show_qr:
            click.echo(render_qr(session.connector_url))

        async with session.status() as stream:
            try:
                async with asyncio.timeout(timeout):
                    async for status in stream:
                        if isinstance(status, WaitingForConnection):
                            click.echo("Waiting for the wallet to scan the QR code")
                        elif isinstance(status, AwaitingConfirmation):
                            click.echo("Awaiting user confirmation")
                        elif isinstance(status, Confirmed):
                            click.echo(f"Confirmed: {status.result.model_dump_json()}")
                            return EXIT_CONFIRMED
                        elif isinstance(status, Failed):
                            click.echo(f"Failed: {status.error_code.description}")
                            return EXIT_FAILED
            except TimeoutError:
                click.echo("Timed out waiting for the wallet")
                return EXIT_FAILED

    return EXIT_FAILED


def _run(opener, timeout: float | None, show_qr: bool) -> int:
    async def run() -> int:
        session = await opener()
        return await follow_session(session, timeout, show_qr)

    try:
        return asyncio.run(run())
    except WalletBridgeError as e:
        logger.debug("Bridge session failed", exc_info=True)
        click.echo(f"Error: {e.message}", err=True)
        return EXIT_ERROR


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.option("--json-logs", is_flag=True, help="Log as JSON lines")
def main(verbose: bool, json_logs: bool) -> None:
    """Wallet Bridge client."""
    settings = get_settings()
    setup_logging(
        "DEBUG" if verbose else settings.log_level,
        "json" if json_logs else settings.log_format,
    )


@main.command()
@click.argument("app_id")
@click.argument("action")
@click.option(
    "--verification-level",
    type=click.Choice([level.value for level in VerificationLevel]),
    default=VerificationLevel.ORB.value,
    show_default=True,
)
@click.option("--signal", default="", help="Signal to bind the proof to (hashed before sending)")
@click.option("--action-description", default=None)
@click.option("--bridge-url", default=None, help="Relay URL (defaults to the configured relay)")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.option("--no-qr", is_flag=True, help="Do not render the connector URL as a QR code")
def verify(
    app_id: str,
    action: str,
    verification_level: str,
    signal: str,
    action_description: str | None,
    bridge_url: str | None,
    timeout: float | None,
    no_qr: bool,
) -> None:
    """Request a uniqueness proof for ACTION from APP_ID."""

    def opener():
        return request_verification(
            app_id,
            action,
            verification_level=VerificationLevel(verification_level),
            bridge_url=bridge_url,
            signal=signal,
            action_description=action_description,
        )

    sys.exit(_run(opener, timeout, not no_qr))


@main.command()
@click.argument("app_id")
@click.argument("action")
@click.option(
    "--category",
    "categories",
    type=click.Choice([category.value for category in CredentialCategory]),
    multiple=True,
    required=True,
    help="Accepted credential category (repeatable)",
)
@click.option("--signal", default="", help="Signal to bind the proof to (hashed before sending)")
@click.option("--action-description", default=None)
@click.option("--bridge-url", default=None, help="Relay URL (defaults to the configured relay)")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.option("--no-qr", is_flag=True, help="Do not render the connector URL as a QR code")
def credential(
    app_id: str,
    action: str,
    categories: tuple[str, ...],
    signal: str,
    action_description: str | None,
    bridge_url: str | None,
    timeout: float | None,
    no_qr: bool,
) -> None:
    """Request proof of a credential in any of the given categories."""

    def opener():
        return request_credential_categories(
            app_id,
            action,
            {CredentialCategory(category) for category in categories},
            bridge_url=bridge_url,
            signal=signal,
            action_description=action_description,
        )

    sys.exit(_run(opener, timeout, not no_qr))


if __name__ == "__main__":
    main()
