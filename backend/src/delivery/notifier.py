"""Best-effort notices (confirmations, reply notices).

Notices are not part of the submission state machine. A transport
failure is logged and counted, never surfaced to the sender.
"""

import logging
from typing import Optional

from domain.delivery.ports import DeliveryDispatcherPort, DeliveryReceipt, RenderedMessage, TransportError
from observability.metrics import deliveries_total

logger = logging.getLogger(__name__)


async def send_notice(
    dispatcher: DeliveryDispatcherPort,
    destination: str,
    message: RenderedMessage,
) -> Optional[DeliveryReceipt]:
    """Dispatch a notice, absorbing transport errors."""
    try:
        receipt = await dispatcher.dispatch(destination, message)
    except TransportError as e:
        deliveries_total.labels(kind=message.kind, status="error").inc()
        logger.warning(f"Notice '{message.kind}' not sent: {e}")
        return None

    deliveries_total.labels(kind=message.kind, status="success").inc()
    return receipt
