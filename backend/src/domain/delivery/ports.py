"""Delivery Dispatcher Port - Domain interface for outbound mail.

The core hands a finalized message to the dispatcher and treats it as
opaque. Dispatchers never retry internally; retries belong to the
delivery worker.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RenderedMessage:
    """Fully rendered outbound message.

    Attributes:
        kind: feedback | sender_confirmation | delivered_notice | report_confirmation | response_notice
        subject: Mail subject line
        body: Plain-text body
    """
    kind: str
    subject: str
    body: str


@dataclass
class DeliveryReceipt:
    """Transport acknowledgement for an accepted message.

    Attributes:
        receipt_id: Transport-assigned or generated message id
        accepted_at: When the transport accepted the message
        transport: Transport name (e.g. 'smtp')
    """
    receipt_id: str
    accepted_at: datetime
    transport: str
    details: dict = field(default_factory=dict)


class TransportError(Exception):
    """Transport-layer failure (connection, auth, refusal)"""

    def __init__(self, message: str, transient: bool = True, details: Optional[dict] = None):
        super().__init__(message)
        self.transient = transient
        self.details = details or {}


class DeliveryDispatcherPort(ABC):
    """Port interface for outbound delivery.

    Example Usage:
        receipt = await dispatcher.dispatch(address, message)
    """

    @abstractmethod
    async def dispatch(self, destination: str, message: RenderedMessage) -> DeliveryReceipt:
        """Hand a message to the transport.

        Args:
            destination: Raw destination address (never logged)
            message: Rendered message

        Returns:
            DeliveryReceipt when the transport accepted the message

        Raises:
            TransportError: When the transport refused or was unreachable
        """
        pass
