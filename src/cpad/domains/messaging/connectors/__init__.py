"""Message transports: the boundary between the pipeline and a messaging service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from cpad.core.pipeline.models import InboundMessage


class TransportError(Exception):
    """Raised when a transport cannot receive or send."""


@runtime_checkable
class MessageTransport(Protocol):
    """Abstract interface for fetching and sending messages.

    The relay calls these methods without knowing which service sits behind
    them. Implementations own their own connection handling.
    """

    async def send(self, text: str, recipient_id: str) -> bool:
        """Deliver ``text`` to ``recipient_id``; False on a failed delivery."""
        ...

    def receive(self) -> AsyncIterator[InboundMessage]:
        """Stream inbound messages until the transport is closed."""
        ...
