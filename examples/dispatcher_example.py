#!/usr/bin/env python
"""
Dispatcher Example

Connects with settings from WIRERPC_* environment variables, answers the
server's `status` requests, listens for `lot.updated` notifications and
makes an `echo` call.

    WIRERPC_ADDRESS=tcp://localhost:5555 python examples/dispatcher_example.py
"""

import logging
import time
from typing import Any

from wirerpc import ClientConfig, Dispatcher, RemoteError, TransportError
from wirerpc.telemetry import increment_counter, setup_metrics

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def handle_lot_update(params: Any):
    logger.info(f"Lot updated: {params}")
    increment_counter("events.received", 1, {"event_type": "lot.updated"})


def main():
    """Run the dispatcher example"""
    config = ClientConfig.from_env()
    setup_metrics(config.service_name)

    with Dispatcher.from_config(config) as dispatcher:
        dispatcher.register_method("status", lambda params: {"uptime": time.monotonic()})
        dispatcher.subscribe("lot.updated", handle_lot_update)

        try:
            response = dispatcher.call("echo", {"message": "Hello, WireRPC!", "timestamp": time.time()})
            logger.info(f"Received echo response: {response}")
        except RemoteError as e:
            logger.error(f"Server rejected echo: {e}")
        except TransportError as e:
            logger.error(f"Echo failed: {e}")
            return

        logger.info("Waiting for server messages (press Ctrl+C to terminate)...")
        try:
            while not dispatcher.client.closed:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Interrupted")


if __name__ == "__main__":
    main()
