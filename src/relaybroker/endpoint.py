"""
Reference endpoint — connects to a relay broker, declares a pairing, and
exchanges commands with whichever peer declares the mirrored pairing.

Usage:
    python -m relaybroker.endpoint --client a --target b --key secret
    relaybroker connect --client a --target b --key secret
"""

import asyncio
import json
import logging
import signal
import sys
import threading
from collections.abc import Awaitable, Callable
from typing import Any

import websockets

from relaybroker.sessions.models import SESSION_NOT_UP, SESSION_UP

logger = logging.getLogger(__name__)

# ─── Default config ──────────────────────────────────────────────────

DEFAULT_BROKER_URL = "ws://localhost:8000/"
RECONNECT_DELAY = 5  # seconds between reconnect attempts

SignalHandler = Callable[[str, int | None], Awaitable[None] | None]
PayloadHandler = Callable[[str], Awaitable[None] | None]


def parse_signal(text: str) -> tuple[str, int | None] | None:
    """
    Recognise a broker status signal.

    Returns:
        ("SESSION_UP", None), ("SESSION_NOT_UP", code), or None for
        anything else (a relayed payload).
    """
    if text == SESSION_UP:
        return SESSION_UP, None
    prefix = f"{SESSION_NOT_UP}: "
    if text.startswith(prefix):
        try:
            return SESSION_NOT_UP, int(text[len(prefix):])
        except ValueError:
            return None
    return None


async def _maybe_await(result) -> None:
    if asyncio.iscoroutine(result):
        await result


class Endpoint:
    """WebSocket client that pairs with a peer through the broker.

    Args:
        url: WebSocket URL of the broker.
        client_id: This endpoint's identifier.
        target_id: The identifier of the peer to reach.
        key: Shared secret both sides must declare.
        on_signal: Called with (signal, code) for broker status signals.
        on_payload: Called with each payload relayed from the peer.
    """

    def __init__(
        self,
        client_id: str,
        target_id: str,
        key: str,
        url: str = DEFAULT_BROKER_URL,
        on_signal: SignalHandler | None = None,
        on_payload: PayloadHandler | None = None,
    ):
        self.url = url
        self.client_id = client_id
        self.target_id = target_id
        self.key = key
        self.on_signal = on_signal
        self.on_payload = on_payload
        self.linked = False
        self.last_code: int | None = None
        self._ws = None
        self._stop = False

    def declaration(self) -> dict[str, Any]:
        """Build the pairing message."""
        return {
            "type": "SESSION",
            "client": self.client_id,
            "target": self.target_id,
            "key": self.key,
        }

    async def send_command(self, command: Any) -> bool:
        """
        Send a command for the peer.

        Returns:
            False if not connected. Commands sent before the link is up are
            dropped by the broker.
        """
        if self._ws is None:
            logger.warning("Not connected; command not sent")
            return False
        if not self.linked:
            logger.warning("Session not up; broker will drop this command")
        await self._ws.send(json.dumps({"type": "COMMAND", "command": command}))
        return True

    async def handle_frame(self, text: str) -> None:
        """Dispatch one inbound frame to the signal or payload handler."""
        parsed = parse_signal(text)
        if parsed is None:
            if self.on_payload:
                await _maybe_await(self.on_payload(text))
            else:
                logger.info(f"Payload: {text}")
            return

        name, code = parsed
        self.linked = name == SESSION_UP
        self.last_code = code
        if self.linked:
            logger.info(f"Session up with '{self.target_id}'")
        else:
            logger.info(f"Session not up ({code})")

        if self.on_signal:
            await _maybe_await(self.on_signal(name, code))

    async def run_once(self) -> None:
        """Connect, declare, and run the message loop until disconnect."""
        logger.info(f"Connecting to {self.url} as '{self.client_id}' ...")

        async with websockets.connect(self.url) as ws:
            self._ws = ws
            try:
                await ws.send(json.dumps(self.declaration()))

                async for message in ws:
                    if self._stop:
                        break
                    if isinstance(message, bytes):
                        message = message.decode("utf-8", errors="replace")
                    await self.handle_frame(message)
            finally:
                self._ws = None
                self.linked = False

    async def run(self) -> None:
        """Run with automatic reconnection; each reconnect re-declares."""
        while not self._stop:
            try:
                await self.run_once()
            except (ConnectionError, OSError) as e:
                if self._stop:
                    break
                logger.warning(
                    f"Disconnected: {e}. Reconnecting in {RECONNECT_DELAY}s..."
                )
                await asyncio.sleep(RECONNECT_DELAY)
            except websockets.exceptions.ConnectionClosed as e:
                if self._stop:
                    break
                logger.warning(
                    f"Connection closed: {e}. Reconnecting in {RECONNECT_DELAY}s..."
                )
                await asyncio.sleep(RECONNECT_DELAY)
            else:
                if not self._stop:
                    await asyncio.sleep(RECONNECT_DELAY)

        logger.info("Endpoint stopped.")

    def stop(self) -> None:
        """Signal the endpoint to stop."""
        self._stop = True


def _start_line_reader(
    stream, loop: asyncio.AbstractEventLoop, lines: asyncio.Queue
) -> None:
    """Feed lines from a blocking stream into ``lines`` from a daemon thread.

    None marks EOF. A pending readline does not block interpreter exit.
    """

    def _publish(item) -> bool:
        try:
            loop.call_soon_threadsafe(lines.put_nowait, item)
        except RuntimeError:
            # Event loop already closed
            return False
        return True

    def _read() -> None:
        for line in iter(stream.readline, ""):
            if not _publish(line):
                return
        _publish(None)

    threading.Thread(target=_read, name="stdin-reader", daemon=True).start()


async def pump_stdin(endpoint: Endpoint, stream=None) -> None:
    """Send each line typed on stdin (or ``stream``) as a command."""
    lines: asyncio.Queue = asyncio.Queue()
    _start_line_reader(stream or sys.stdin, asyncio.get_running_loop(), lines)
    while True:
        line = await lines.get()
        if line is None:
            endpoint.stop()
            return
        line = line.rstrip("\n")
        if line:
            await endpoint.send_command(line)


async def run_interactive(endpoint: Endpoint) -> None:
    """Run the endpoint alongside a stdin reader until either finishes."""
    tasks = [
        asyncio.create_task(endpoint.run()),
        asyncio.create_task(pump_stdin(endpoint)),
    ]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        endpoint.stop()
        for task in tasks:
            task.cancel()


# ─── CLI entry point ─────────────────────────────────────────────────


def main():
    """Start an interactive endpoint from the command line."""
    import argparse

    parser = argparse.ArgumentParser(description="relaybroker endpoint")
    parser.add_argument("--client", required=True, help="This endpoint's ID")
    parser.add_argument("--target", required=True, help="Peer endpoint's ID")
    parser.add_argument("--key", required=True, help="Shared key")
    parser.add_argument("--url", default=DEFAULT_BROKER_URL, help="Broker WS URL")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    endpoint = Endpoint(
        client_id=args.client,
        target_id=args.target,
        key=args.key,
        url=args.url,
        on_payload=lambda text: print(text, flush=True),
    )

    def _signal_handler(sig, frame):
        logger.info("Shutting down...")
        endpoint.stop()

    signal.signal(signal.SIGINT, _signal_handler)

    asyncio.run(run_interactive(endpoint))


if __name__ == "__main__":
    main()
