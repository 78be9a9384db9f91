"""Message relay: moves messages between a transport and the pipeline.

The pipeline itself is synchronous. The relay runs it in a worker thread
under a caller-imposed timeout; if the timeout passes, the result is
discarded and the unmodified input is sent instead. Sends are retried a
bounded number of times with exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from cpad.core.config.settings import Settings, get_settings
from cpad.core.pipeline.engine import PaddingPipeline
from cpad.core.pipeline.models import InboundMessage
from cpad.domains.messaging.connectors import MessageTransport, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayOutcome:
    """What happened to one inbound message."""

    message: InboundMessage
    response: str
    delivered: bool
    timed_out: bool
    attempts: int


class MessageRelay:
    """Usage::

        relay = MessageRelay(pipeline, transport, timeout_seconds=2.0, send_retries=2)
        outcomes = await relay.run()
    """

    def __init__(
        self,
        pipeline: PaddingPipeline,
        transport: MessageTransport,
        *,
        timeout_seconds: float = 2.0,
        send_retries: int = 2,
        retry_delay: float = 0.05,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if send_retries < 0:
            raise ValueError("send_retries must not be negative")
        self._pipeline = pipeline
        self._transport = transport
        self._timeout = timeout_seconds
        self._retries = send_retries
        self._retry_delay = retry_delay
        self.handled = 0
        self.timeouts = 0
        self.delivery_failures = 0

    async def run(self, limit: int | None = None) -> list[RelayOutcome]:
        """Relay messages until the transport stream ends (or ``limit`` is reached)."""
        outcomes: list[RelayOutcome] = []
        async for message in self._transport.receive():
            outcomes.append(await self.handle(message))
            if limit is not None and len(outcomes) >= limit:
                break
        logger.info(
            "Relay stopped after %d messages (%d timeouts, %d undelivered)",
            self.handled, self.timeouts, self.delivery_failures,
        )
        return outcomes

    async def handle(self, message: InboundMessage) -> RelayOutcome:
        response, timed_out = await self._process(message)
        delivered, attempts = await self._send(response, message.sender_id)
        self.handled += 1
        return RelayOutcome(
            message=message,
            response=response,
            delivered=delivered,
            timed_out=timed_out,
            attempts=attempts,
        )

    async def _process(self, message: InboundMessage) -> tuple[str, bool]:
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._pipeline.process, message.text, message.sender_id),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            self.timeouts += 1
            logger.warning(
                "Pipeline exceeded %.2fs; sending the unmodified input", self._timeout
            )
            return message.text, True
        return response, False

    async def _send(self, text: str, recipient_id: str) -> tuple[bool, int]:
        attempts = 0
        for attempt in range(self._retries + 1):
            attempts += 1
            try:
                if await self._transport.send(text, recipient_id):
                    return True, attempts
            except TransportError as exc:
                logger.warning("Send attempt %d failed: %s", attempts, exc)
            if attempt < self._retries:
                await asyncio.sleep(self._retry_delay * (2 ** attempt))
        self.delivery_failures += 1
        logger.error("Giving up on delivery after %d attempts", attempts)
        return False, attempts


def build_relay(
    transport: MessageTransport,
    pipeline: PaddingPipeline,
    settings: Settings | None = None,
) -> MessageRelay:
    """Construct a relay with the timeout and retry policy from settings."""
    settings = settings or get_settings()
    return MessageRelay(
        pipeline,
        transport,
        timeout_seconds=settings.process_timeout_seconds,
        send_retries=settings.send_retries,
    )
