"""Outbound mail adapters"""

from .smtp_dispatcher import SmtpDispatcher

__all__ = ["SmtpDispatcher"]
