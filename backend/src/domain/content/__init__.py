"""Content domain - provider port and verdict model"""

from .ports import (
    BLOCK_CATEGORIES,
    ProviderVerdict,
    ContentProviderPort,
    ProviderError,
    ProviderTimeoutError,
    ProviderRateLimitError,
    ProviderAuthError,
    ProviderServiceError,
    ProviderInvalidResponseError,
)

__all__ = [
    "BLOCK_CATEGORIES",
    "ProviderVerdict",
    "ContentProviderPort",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderRateLimitError",
    "ProviderAuthError",
    "ProviderServiceError",
    "ProviderInvalidResponseError",
]
