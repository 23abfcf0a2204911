"""Outbound message rendering and best-effort notices"""

from .notifier import send_notice
from . import templates

__all__ = ["send_notice", "templates"]
