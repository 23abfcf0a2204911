"""Delivery domain - dispatcher port"""

from .ports import RenderedMessage, DeliveryReceipt, TransportError, DeliveryDispatcherPort

__all__ = ["RenderedMessage", "DeliveryReceipt", "TransportError", "DeliveryDispatcherPort"]
