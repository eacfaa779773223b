"""
Follow the live notification stream from the command line.

    python scripts/listen.py --token <JWT> [--url http://localhost:8000/api/notifications/stream]

Prints every notification as it arrives and the connection status whenever
it changes. Stops on Ctrl+C or once the reconnect budget is exhausted.
"""

import sys
import os
import argparse
import asyncio

# Add parent directory to path to import project modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import config
from constants import ConnectionState
from logging_config import get_logger, setup_logging
from models.notification import NotificationModel
from utils.stream_client import RealtimeStreamClient

logger = get_logger("listen")


def print_notification(notification: NotificationModel):
    print(f"🔔 [{notification.type}] {notification.title}: {notification.message}")


async def listen(url: str, token: str):
    stopped = asyncio.Event()

    def on_state_change(state: str):
        print(f"• {'Live' if state == ConnectionState.CONNECTED else 'Offline'} ({state})")
        if state == ConnectionState.DISCONNECTED and client.connection_error:
            print(f"✖ {client.connection_error}")
            stopped.set()

    client = RealtimeStreamClient(url=url, credential=token, on_state_change=on_state_change)
    client.add_listener(print_notification)
    client.connect()
    try:
        await stopped.wait()
    finally:
        await client.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Follow the live notification stream")
    parser.add_argument("--url", default=config.STREAM_URL)
    parser.add_argument("--token", default=os.getenv("TASKPULSE_TOKEN"), help="Bearer token (or TASKPULSE_TOKEN)")
    args = parser.parse_args()

    if not args.token:
        parser.error("a bearer token is required")

    setup_logging(file_logging=False)
    try:
        asyncio.run(listen(args.url, args.token))
    except KeyboardInterrupt:
        pass
