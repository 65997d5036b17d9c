#!/usr/bin/python

"""Command line interface for sending commands to a Tesla through the vehicle command proxy."""

import argparse
import asyncio
import logging
import sys

import httpx
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from pyteslaproxy.channel import VehicleCommandChannel
from pyteslaproxy.config import load_settings, normalize_vin
from pyteslaproxy.const import POLICIES
from pyteslaproxy.coordinator import WakeRetryCoordinator
from pyteslaproxy.exceptions import TeslaExceptionError, TeslaTransportError
from pyteslaproxy.models import DeliveryPhase, ProgressEvent, WakeState
from pyteslaproxy.oauth2 import Credentials, OAuth2Client, load_token, save_token
from pyteslaproxy.remote_services import RemoteServices

vehicle_commands = {
    "lock": "Lock doors",
    "unlock": "Unlock doors",
    "sentry_on": "Enable sentry mode",
    "sentry_off": "Disable sentry mode",
    "wake": "Wake the vehicle and wait until it is online",
    "status": "Check if the vehicle is awake",
}

menu_choices = {
    "1": ("lock", "Lock Doors"),
    "2": ("unlock", "Unlock Doors"),
    "3": ("sentry_on", "Sentry Mode ON"),
    "4": ("sentry_off", "Sentry Mode OFF"),
    "5": (None, "Quit"),
}

console = Console()
printc = console.print

logging.basicConfig()
logging.root.setLevel(logging.WARNING)

_LOGGER = logging.getLogger(__name__)


def progress_printer(time_unit: float = 1.0):
    """Return a listener rendering coordinator progress on the console."""

    def show_progress(event: ProgressEvent):
        if event.phase == DeliveryPhase.CHECKING_WAKE:
            if event.wake_state == WakeState.AWAKE:
                printc("Vehicle is awake")
            else:
                printc("Vehicle is sleeping")
        elif event.phase == DeliveryPhase.WAKING:
            printc("Sending wake command...")
        elif event.phase == DeliveryPhase.WAITING:
            printc(f"   Still waiting... ({event.attempt} attempts, {event.elapsed * time_unit:g} seconds elapsed)")
        elif event.phase == DeliveryPhase.RETRYING:
            printc(f"Retrying command (attempt {event.attempt})...")

    return show_progress


async def lock(services, _args):
    """Lock the doors."""
    return await services.lock_doors()


async def unlock(services, _args):
    """Unlock the doors."""
    return await services.unlock_doors()


async def sentry_on(services, _args):
    """Enable sentry mode."""
    return await services.sentry_mode(on=True)


async def sentry_off(services, _args):
    """Disable sentry mode."""
    return await services.sentry_mode(on=False)


async def wake(services, _args):
    """Wake the vehicle."""
    return await services.wake_up()


async def status(services, _args):
    """Get vehicle wake state."""
    return (await services.wake_state()).value


def render_outcome(outcome):
    """Print a delivery outcome in green or red."""
    if outcome.succeeded:
        printc(f"[green]{escape(outcome.message)}[/green]")
    else:
        printc(f"[red]{escape(outcome.message)}[/red]")


async def menu(services, args):
    """Run the interactive menu until the user quits."""
    if not args.no_wake_check:
        printc("Initial vehicle status check:")
        outcome = await services.wake_up()
        if not outcome.succeeded:
            printc(f"[yellow]Warning: could not verify vehicle is awake: {escape(outcome.message)}[/yellow]")

    while True:
        printc("\nWhat would you like to do?")
        for key, (_, label) in menu_choices.items():
            printc(f"{key}. {label}")
        choice = Prompt.ask("Enter choice", choices=list(menu_choices), show_choices=False)
        command, label = menu_choices[choice]
        if command is None:
            printc("Goodbye!")
            return None
        printc(f"{label}...")
        render_outcome(await globals()[command](services, args))


async def authenticate(settings):
    """Run the OAuth flow and return a fresh token."""
    client_id = settings.client_id or Prompt.ask("Enter Tesla CLIENT_ID")
    client_secret = settings.client_secret or Prompt.ask("Enter Tesla CLIENT_SECRET", password=True)
    credentials = Credentials(client_id, client_secret, settings.redirect_uri)
    async with httpx.AsyncClient() as client:
        oauth2_client = OAuth2Client(client, credentials)
        printc("Opening browser for Tesla login...")
        url = oauth2_client.authorization_url()
        printc(f"If the browser doesn't open, open this URL:\n{url}")
        return await oauth2_client.authorize(url=url)


async def main(args):
    """Get arguments from parser and run command."""
    if args.debug:
        logging.root.setLevel(logging.DEBUG)

    try:
        settings = load_settings()
    except TeslaExceptionError as e:
        sys.exit(e.message)

    vin = normalize_vin(args.vin) or settings.vin
    if not vin and args.command != "token":
        sys.exit(
            "TESLA_VEHICLE_VIN not found in .env\n\n"
            "Please add your vehicle VIN to .env:\n"
            "  TESLA_VEHICLE_VIN=your_vin_here\n\n"
            "You can find your VIN in your vehicle under Settings > Software",
        )

    proxy = settings.proxy
    if args.proxy:
        proxy = proxy._replace(base_url=args.proxy)
    if args.policy:
        proxy = proxy._replace(policy=args.policy)
    token_file = args.token_file or settings.token_file

    token = load_token(token_file)
    try:
        if not token.access_token:
            printc("No valid tokens found, performing authentication...")
            token = await authenticate(settings)
            try:
                save_token(token_file, token)
                printc(f"Tokens saved to {token_file}")
            except OSError as e:
                _LOGGER.warning("Failed to save tokens to %s: %s", token_file, e)
        if token.is_expired():
            _LOGGER.warning("Access token in %s has expired, requests will likely be refused", token_file)

        if args.command == "token":
            printc(dict(token))
            return

        async with VehicleCommandChannel(token.access_token, proxy) as channel:
            coordinator = WakeRetryCoordinator(channel, vin, proxy, on_progress=progress_printer(proxy.time_unit))
            services = RemoteServices(coordinator)
            response = await globals()[args.func](services, args)
    except TeslaTransportError as e:
        sys.exit(f"Error: {e.message}")
    except TeslaExceptionError as e:
        sys.exit(e.message)

    if response is None:
        return
    if hasattr(response, "succeeded"):
        render_outcome(response)
        if not response.succeeded:
            sys.exit(1)
    else:
        printc(response)


def cli():
    """Get configuration parameters and command line arguments and run main loop."""
    parser = argparse.ArgumentParser(description="Tesla vehicle command proxy CLI")
    subparsers = parser.add_subparsers(help="command help", dest="command")

    parser.add_argument("-d", "--debug", dest="debug", action="store_true")
    parser.add_argument("-v", "--vin", dest="vin", default=None)
    parser.add_argument("-p", "--proxy", dest="proxy", default=None, help="Proxy base URL")
    parser.add_argument("-s", "--tokenfile", dest="token_file", default=None)
    parser.add_argument("--policy", dest="policy", choices=POLICIES, default=None)
    parser.set_defaults(func="menu", no_wake_check=False)

    subparsers.add_parser("token", help="Authenticate if needed and print the token")

    parser_menu = subparsers.add_parser("menu", help="Interactive menu")
    parser_menu.set_defaults(func="menu")
    parser_menu.add_argument("--no-wake-check", dest="no_wake_check", action="store_true")

    for vcmd, vdesc in vehicle_commands.items():
        parser_command = subparsers.add_parser(vcmd, help=vdesc)
        parser_command.set_defaults(func=vcmd)

    args = parser.parse_args()

    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        printc("Goodbye!")
