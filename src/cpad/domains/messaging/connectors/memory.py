"""In-memory transport for tests and local demos."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from cpad.core.pipeline.models import InboundMessage
from cpad.domains.messaging.connectors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentMessage:
    text: str
    recipient_id: str


class InMemoryTransport:
    """Queue-backed transport.

    ``push()`` enqueues inbound messages; ``close()`` ends the receive
    stream after the queued messages drain. ``fail_sends`` makes the next
    N sends fail, for exercising retry paths.

    Usage::

        transport = InMemoryTransport()
        transport.push("Can you help me with this?", "alice")
        transport.close()
        async for message in transport.receive():
            ...
    """

    def __init__(self, fail_sends: int = 0) -> None:
        self._queue: asyncio.Queue[InboundMessage | None] = asyncio.Queue()
        self._closed = False
        self._fail_sends = fail_sends
        self.sent: list[SentMessage] = []
        self.send_attempts = 0

    def push(self, text: str, sender_id: str) -> InboundMessage:
        if self._closed:
            raise TransportError("Transport is closed")
        message = InboundMessage(text=text, sender_id=sender_id)
        self._queue.put_nowait(message)
        return message

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def send(self, text: str, recipient_id: str) -> bool:
        self.send_attempts += 1
        if self._fail_sends > 0:
            self._fail_sends -= 1
            logger.debug("Simulated send failure (%d remaining)", self._fail_sends)
            return False
        self.sent.append(SentMessage(text=text, recipient_id=recipient_id))
        return True

    async def receive(self) -> AsyncIterator[InboundMessage]:
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message
