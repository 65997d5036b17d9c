"""Example code for using the pyteslaproxy library."""

import asyncio
import contextlib
import logging
from sys import argv

from pyteslaproxy.channel import VehicleCommandChannel
from pyteslaproxy.config import ProxyConfig
from pyteslaproxy.coordinator import WakeRetryCoordinator
from pyteslaproxy.oauth2 import load_token
from pyteslaproxy.remote_services import RemoteServices

logging.basicConfig()

# Invoke like this: python ./examples/example.py <your vin> [probe|send-first]
# The access token is read from tesla-tokens.json, run the teslaproxy CLI
# once to create it.

logging.root.setLevel(logging.DEBUG)

vin = argv[1]
policy = argv[2] if len(argv) > 2 else "probe"


async def lock() -> None:
    """Lock the vehicle, waking it up first if needed."""
    token = load_token("tesla-tokens.json")
    config = ProxyConfig(policy=policy)
    async with VehicleCommandChannel(token.access_token, config) as channel:
        coordinator = WakeRetryCoordinator(channel, vin, config, on_progress=print)
        outcome = await RemoteServices(coordinator).lock_doors()
        print(f"{outcome.state.value}: {outcome.message}")


if __name__ == "__main__":
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    with contextlib.suppress(KeyboardInterrupt):
        loop.run_until_complete(lock())
