"""
Outbound Commands - Fire-and-forget publishing toward field devices

The only command today is the substation recharge token. Publishing never
waits for an acknowledgement and never changes local state; the grid view
follows once the substation reports OK again.
"""
import asyncio
import logging
import threading
from typing import List, Optional, Set, Tuple

import aiohttp

from config import TRANSPORT_CONFIG

logger = logging.getLogger(__name__)


class CommandPublisher:
    """Base publisher: logs the command and does nothing else"""

    def publish(self, topic: str, payload: str):
        logger.info(f"Command {payload!r} on {topic} (no transport configured)")

    def publish_recharge(self):
        self.publish(TRANSPORT_CONFIG["topics"]["COMMANDS"], TRANSPORT_CONFIG["recharge_token"])


class HttpCommandPublisher(CommandPublisher):
    """
    Posts commands to an HTTP bridge with aiohttp.

    Inside a running event loop the POST is scheduled as a background
    task; outside one it runs on a daemon thread with its own loop.
    Either way publish returns without waiting for the bridge.
    """

    def __init__(self, url: Optional[str] = None, timeout_s: float = TRANSPORT_CONFIG["command_timeout_s"]):
        self.url = url if url is not None else TRANSPORT_CONFIG["command_url"]
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._tasks: Set[asyncio.Task] = set()
        self._threads: Set[threading.Thread] = set()
        self.sent = 0
        self.failed = 0

    def publish(self, topic: str, payload: str):
        if not self.url:
            super().publish(topic, payload)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            thread = threading.Thread(
                target=self._post_in_thread, args=(topic, payload), name="command-publisher", daemon=True
            )
            self._threads.add(thread)
            thread.start()
            return

        task = loop.create_task(self._post(topic, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _post_in_thread(self, topic: str, payload: str):
        try:
            asyncio.run(self._post(topic, payload))
        finally:
            self._threads.discard(threading.current_thread())

    async def _post(self, topic: str, payload: str):
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json={"topic": topic, "payload": payload}) as response:
                    if response.status >= 400:
                        self.failed += 1
                        logger.error(f"Command {payload!r} rejected by {self.url}: HTTP {response.status}")
                        return
            self.sent += 1
            logger.info(f"Command {payload!r} sent on {topic}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.failed += 1
            logger.error(f"Failed to send command {payload!r} to {self.url}: {e}")


class RecordingCommandPublisher(CommandPublisher):
    """Keeps published commands in memory"""

    def __init__(self):
        self.published: List[Tuple[str, str]] = []

    def publish(self, topic: str, payload: str):
        self.published.append((topic, payload))
        logger.debug(f"Recorded command {payload!r} on {topic}")
