"""AI Infrastructure - Adapters for content providers.

This module contains concrete implementations of the content provider port.
"""

from .openai_provider import OpenAICompatibleProvider

__all__ = [
    "OpenAICompatibleProvider",
]
